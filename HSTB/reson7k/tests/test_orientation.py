import pytest
import numpy

from HSTB.reson7k import orientation


def test_rotation_matrix_is_orthonormal():
    mat = orientation.rotation_matrix(10.0, -5.0, 123.0)
    numpy.testing.assert_almost_equal(mat @ mat.T, numpy.eye(3))
    numpy.testing.assert_almost_equal(numpy.linalg.det(mat), 1.0)


def test_rotation_matrix_stacks():
    mats = orientation.rotation_matrix(numpy.array([0.0, 10.0]), 0.0, 0.0)
    assert mats.shape == (2, 3, 3)
    numpy.testing.assert_almost_equal(mats[0], numpy.eye(3))


def test_roll_tilts_starboard_down():
    # starboard axis goes down (positive z) with positive roll
    axis = orientation.array_axis((0.0, 0.0, 0.0), (10.0, 0.0, 0.0), (0.0, 1.0, 0.0))
    numpy.testing.assert_almost_equal(axis, [0.0, numpy.cos(numpy.deg2rad(10.0)), numpy.sin(numpy.deg2rad(10.0))])


def test_pitch_raises_bow():
    axis = orientation.array_axis((0.0, 0.0, 0.0), (0.0, 10.0, 0.0), (1.0, 0.0, 0.0))
    numpy.testing.assert_almost_equal(axis, [numpy.cos(numpy.deg2rad(10.0)), 0.0, -numpy.sin(numpy.deg2rad(10.0))])


@pytest.mark.parametrize("rx_steer,theta,phi", [
    (0.0, 0.0, 0.0),
    (30.0, 30.0, 0.0),
    (-30.0, 30.0, 180.0),
])
def test_level_takeoff(rx_steer, theta, phi):
    t, p = orientation.beam_takeoff((0.0, 0.0, 0.0), (0.0, 0.0, 0.0), 0.0, (0.0, 0.0, 0.0), (0.0, 0.0, 0.0), rx_steer, 0.0)
    numpy.testing.assert_almost_equal(t, theta)
    if theta > 0:
        numpy.testing.assert_almost_equal(numpy.abs(p), phi)


def test_alongtrack_steer():
    t, p = orientation.beam_takeoff((0.0, 0.0, 0.0), (0.0, 0.0, 0.0), 10.0, (0.0, 0.0, 0.0), (0.0, 0.0, 0.0), 0.0, 0.0)
    numpy.testing.assert_almost_equal(t, 10.0)
    numpy.testing.assert_almost_equal(p, 90.0)


@pytest.mark.parametrize("roll,pitch,tx_steer,rx_steer", [
    (10.0, 0.0, 0.0, 10.0),
    (-5.0, 0.0, 0.0, 20.0),
    (3.0, 2.0, 0.0, -40.0),
])
def test_composable_matches_legacy_at_zero_heading(roll, pitch, tx_steer, rx_steer):
    t1, p1 = orientation.beam_takeoff((0.0, 0.0, 0.0), (roll, pitch, 0.0), tx_steer, (0.0, 0.0, 0.0), (roll, pitch, 0.0),
                                      rx_steer, 0.0)
    t2, p2 = orientation.rollpitch_to_takeoff(tx_steer, rx_steer, roll, pitch)
    numpy.testing.assert_almost_equal(t1, t2, decimal=1)
    if t2 > 0.5:
        numpy.testing.assert_almost_equal(numpy.cos(numpy.deg2rad(p1)), numpy.cos(numpy.deg2rad(p2)), decimal=2)


def test_roll_compensates_steer():
    theta, phi = orientation.beam_takeoff((0.0, 0.0, 0.0), (10.0, 0.0, 45.0), 0.0, (0.0, 0.0, 0.0), (10.0, 0.0, 45.0), 10.0, 45.0)
    numpy.testing.assert_almost_equal(theta, 0.0, decimal=5)


@pytest.mark.parametrize("mount_roll,mount_pitch", [
    (0.0, 0.0),
    (1.5, -0.5),
])
def test_reverse_mount(mount_roll, mount_pitch):
    steer = numpy.array([-20.0, 0.0, 35.0])
    attitude = (2.0, -1.0, 30.0)
    forward = orientation.beam_takeoff((-mount_roll, -mount_pitch, 0.0), attitude, 5.0, (-mount_roll, -mount_pitch, 0.0),
                                       attitude, steer, 30.0)
    reversed_ = orientation.beam_takeoff((mount_roll, mount_pitch, 180.0), attitude, -5.0, (mount_roll, mount_pitch, 180.0),
                                         attitude, -steer, 30.0)
    numpy.testing.assert_almost_equal(forward[0], reversed_[0])
    numpy.testing.assert_almost_equal(forward[1], reversed_[1])


def test_correct_reverse_mount():
    assert orientation.correct_reverse_mount(1.0, 2.0, 10.0, 5.0) == (1.0, 2.0, 10.0, 5.0)
    roll, pitch, heading, steer = orientation.correct_reverse_mount(1.0, 2.0, 181.0, 5.0)
    assert (roll, pitch, heading) == (-1.0, -2.0, 1.0)
    numpy.testing.assert_almost_equal(steer, -5.0)


def test_unreachable_cones_are_nan():
    theta, phi = orientation.beam_takeoff((0.0, 0.0, 0.0), (0.0, 0.0, 0.0), 60.0, (0.0, 0.0, 0.0), (0.0, 0.0, 0.0), 60.0, 0.0)
    assert numpy.isnan(theta)


@pytest.mark.parametrize("angle,factor,expected", [
    (30.0, 1.0, 30.0),
    (30.0, 0.98, numpy.rad2deg(numpy.arcsin(0.49))),
    (-45.0, 1.02, -numpy.rad2deg(numpy.arcsin(1.02 * numpy.sin(numpy.deg2rad(45.0))))),
])
def test_snell_rescale(angle, factor, expected):
    numpy.testing.assert_almost_equal(orientation.snell_rescale(angle, factor), expected)
