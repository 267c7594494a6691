import pytest
import numpy

from HSTB.reson7k import s7k
from HSTB.reson7k.navigation import NavigationHistory, TimeSeries


def test_linear_interpolation():
    series = TimeSeries('roll')
    series.append(0.0, 1.0)
    series.append(10.0, 3.0)
    value, extrapolated = series.interpolate(numpy.array([0.0, 5.0, 10.0]))
    numpy.testing.assert_almost_equal(value, [1.0, 2.0, 3.0])
    assert not numpy.any(extrapolated)


def test_extrapolation_holds_end_value():
    series = TimeSeries('roll')
    series.append(0.0, 1.0)
    series.append(10.0, 3.0)
    value, extrapolated = series.interpolate(numpy.array([-5.0, 15.0]))
    numpy.testing.assert_almost_equal(value, [1.0, 3.0])
    assert numpy.all(extrapolated)


def test_empty_series():
    assert TimeSeries('pitch').interpolate(1.0) is None


def test_out_of_order_sample_dropped():
    series = TimeSeries('heave')
    assert series.append(1.0, 0.5)
    assert not series.append(1.0, 0.7)
    assert not series.append(0.5, 0.7)
    assert len(series) == 1


@pytest.mark.parametrize("first,second,expected", [
    (350.0, 10.0, 0.0),
    (10.0, 350.0, 0.0),
    (170.0, 190.0, 180.0),
    (355.0, 15.0, 5.0),
])
def test_heading_wrap(first, second, expected):
    series = TimeSeries('heading', angular=True)
    series.append(0.0, first)
    series.append(1.0, second)
    value, extrapolated = series.interpolate(0.5)
    diff = (float(value) - expected + 180.0) % 360.0 - 180.0
    assert abs(diff) < 1e-6
    assert 0.0 <= float(value) < 360.0


def test_position_channel():
    history = NavigationHistory()
    history.add('position', 0.0, (10.0, 20.0, 1.0))
    history.add('position', 2.0, (12.0, 22.0, 3.0))
    value, extrapolated = history.interpolate('position', 1.0)
    numpy.testing.assert_almost_equal(value, [11.0, 21.0, 2.0])


def _build(cls, **fields):
    header = numpy.zeros(1, dtype=cls.hdr_dtype)
    for ky, val in fields.items():
        header[ky] = val
    return cls(header.tobytes())


def test_ingest_converts_radians():
    history = NavigationHistory()
    assert history.ingest(_build(s7k.Data1012, Roll=numpy.deg2rad(2.0), Pitch=numpy.deg2rad(-1.0), Heave=0.3), 100.0)
    assert history.ingest(_build(s7k.Data1013, Heading=numpy.deg2rad(270.0)), 100.0)
    assert history.ingest(_build(s7k.Data7610, SoundVelocity=1490.0), 100.0)
    assert not history.ingest(_build(s7k.Data1000), 100.0)
    numpy.testing.assert_almost_equal(history.interpolate('roll', 100.0)[0], 2.0, decimal=5)
    numpy.testing.assert_almost_equal(history.interpolate('pitch', 100.0)[0], -1.0, decimal=5)
    numpy.testing.assert_almost_equal(history.interpolate('heading', 100.0)[0], 270.0, decimal=4)
    numpy.testing.assert_almost_equal(history.interpolate('sound_velocity', 100.0)[0], 1490.0)
    assert history.count('heave') == 1


def test_ingest_attitude_burst():
    data = numpy.zeros(3, dtype=s7k.Data1016.data_dtype)
    data['TimeOffset'] = [0, 10, 20]
    data['Roll'] = numpy.deg2rad([1.0, 2.0, 3.0])
    header = numpy.zeros(1, dtype=s7k.Data1016.hdr_dtype)
    header['NumberOfDatasets'] = 3
    record = s7k.Data1016(header.tobytes() + data.tobytes(), 50.0)
    history = NavigationHistory()
    history.ingest(record, 50.0)
    assert history.count('roll') == 3
    numpy.testing.assert_almost_equal(history.interpolate('roll', 50.015)[0], 2.5, decimal=4)


def test_ingest_vehicle_depth_only():
    history = NavigationHistory()
    history.ingest(_build(s7k.Data1008, DepthDescriptor=1, Depth=40.0), 1.0)
    assert history.count('sensor_depth') == 0
    history.ingest(_build(s7k.Data1008, DepthDescriptor=0, Depth=4.0), 2.0)
    assert history.count('sensor_depth') == 1
