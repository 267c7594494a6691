import pytest
import numpy

from HSTB.reson7k import s7k, bathymetry, sidescan
from HSTB.reson7k.config import BackscatterSource, ProcessingOptions
from HSTB.reson7k.ping import PingAggregate
from HSTB.reson7k.quality import BeamFlag
from HSTB.reson7k.s7k import RecordKind
from HSTB.reson7k.stream import S7kStream


def aggregate(*frames):
    ping = PingAggregate()
    for datagram in S7kStream().feed(b''.join(frames)):
        datagram.decode()
        ping.dispatch(datagram)
    return ping


def side_scan(records, ping_number, port, starboard, nadir_samples=0):
    body = numpy.asarray(port, dtype='<u2').tobytes() + numpy.asarray(starboard, dtype='<u2').tobytes()
    return records.build(s7k.Data7007, body, PingNumber=ping_number, SamplesPerSide=len(port), NumberOfBytes=2,
                         NadirDepth=nadir_samples)


@pytest.mark.parametrize("previous,candidate,expected", [
    (0.0, 2.0, 2.0),
    (-1.0, 2.0, 2.0),
    (1.0, 10.0, 1.05),
    (1.0, 0.1, 0.95),
    (1.0, 1.02, 1.02),
])
def test_damp_pixel_size(previous, candidate, expected):
    numpy.testing.assert_almost_equal(sidescan.damp_pixel_size(previous, candidate), expected)


def test_damping_sequence():
    size = 1.0
    for candidate in [10.0, 10.0, 10.0, 0.01]:
        new_size = sidescan.damp_pixel_size(size, candidate)
        assert 0.95 * size - 1e-12 <= new_size <= 1.05 * size + 1e-12
        size = new_size


@pytest.mark.parametrize("swath_width,depth,count,expected", [
    (45.0, 100.0, 1000, 0.2),
    (0.01, 100.0, 1024, 100.0 * numpy.sin(numpy.deg2rad(0.1))),
])
def test_candidate_pixel_size(swath_width, depth, count, expected):
    numpy.testing.assert_almost_equal(sidescan.candidate_pixel_size(swath_width, depth, count), expected)


@pytest.mark.parametrize("samples,gap,expected", [
    ([1.0, numpy.nan, 3.0], 1, [1.0, 2.0, 3.0]),
    ([1.0, numpy.nan, numpy.nan, 4.0], 1, [1.0, numpy.nan, numpy.nan, 4.0]),
    ([1.0, numpy.nan, numpy.nan, 4.0], 2, [1.0, 2.0, 3.0, 4.0]),
    ([numpy.nan, 1.0, numpy.nan, 3.0, numpy.nan], 1, [numpy.nan, 1.0, 2.0, 3.0, numpy.nan]),
    ([1.0, numpy.nan, 3.0], 0, [1.0, numpy.nan, 3.0]),
])
def test_interpolate_gaps(samples, gap, expected):
    filled, alongtrack = sidescan.interpolate_gaps(samples, numpy.zeros(len(samples)), gap)
    numpy.testing.assert_array_equal(filled, expected)


def test_swath_width_from_beams():
    angles = numpy.array([-60.0, 10.0, 65.0, numpy.nan])
    valid = numpy.array([True, True, False, False])
    assert sidescan.swath_width_from_beams(angles, valid) == 62.5
    assert sidescan.swath_width_from_beams(angles, numpy.zeros(4, dtype=bool)) is None


@pytest.fixture(scope="module")
def snippet_ping(records):
    ranges = [0.02, 0.02, 0.02]
    snippets = records.snippets(1, [(0, 10, 11, [100, 100, 100]), (1, 50, 50, [200]), (2, 50, 50, [300])])
    return aggregate(records.ping_bytes(1, ranges, [0.0, 20.0, -20.0]), records.frame(RecordKind.SNIPPET, snippets))


def test_mosaic_from_snippets(snippet_ping):
    solved = bathymetry.solve(snippet_ping)
    mosaic = sidescan.build_mosaic(snippet_ping, solved, ProcessingOptions(pixel_size=1.0, pixel_count=64))
    assert mosaic.source == BackscatterSource.SNIPPET
    assert mosaic.pixel_size == 1.0
    numpy.testing.assert_almost_equal(mosaic.samples[32], 100.0)
    assert mosaic.counts[32] == 3
    numpy.testing.assert_almost_equal(mosaic.samples[37], 200.0)
    numpy.testing.assert_almost_equal(mosaic.samples[27], 300.0)
    numpy.testing.assert_almost_equal(mosaic.acrosstrack[[27, 32, 37]], [-5.0, 0.0, 5.0])
    assert numpy.all(numpy.isnan(mosaic.samples[33:37]))
    assert numpy.all(numpy.isnan(mosaic.samples[:27]))
    assert snippet_ping.pixel_size == 1.0


def test_mosaic_gap_interpolation(snippet_ping):
    solved = bathymetry.solve(snippet_ping)
    mosaic = sidescan.build_mosaic(snippet_ping, solved, ProcessingOptions(pixel_size=1.0, pixel_count=64, gap_interpolation=5))
    numpy.testing.assert_almost_equal(mosaic.samples[32:38], [100.0, 120.0, 140.0, 160.0, 180.0, 200.0])


def test_mosaic_pixel_size_is_damped(snippet_ping):
    solved = bathymetry.solve(snippet_ping)
    snippet_ping.pixel_size = 0.0
    first = sidescan.build_mosaic(snippet_ping, solved, ProcessingOptions(pixel_count=64))
    median = solved.median_depth
    candidate = sidescan.candidate_pixel_size(first.swath_width, median, 64)
    numpy.testing.assert_almost_equal(first.pixel_size, candidate)
    numpy.testing.assert_almost_equal(first.swath_width, 22.5, decimal=4)
    snippet_ping.pixel_size = candidate / 10.0
    second = sidescan.build_mosaic(snippet_ping, solved, ProcessingOptions(pixel_count=64))
    numpy.testing.assert_almost_equal(second.pixel_size, 1.05 * candidate / 10.0)


def test_backscatter_source_selection(records):
    ping = aggregate(records.ping_bytes(1, [0.02], [0.0]),
                     records.frame(RecordKind.SNIPPET, records.snippets(1, [(0, 10, 10, [5])])),
                     records.frame(RecordKind.SIDE_SCAN, side_scan(records, 1, [1, 2], [3, 4])))
    assert sidescan.select_backscatter_source(ping, ProcessingOptions()) == BackscatterSource.SNIPPET
    options = ProcessingOptions(backscatter_source=BackscatterSource.SIDE_SCAN)
    assert sidescan.select_backscatter_source(ping, options) == BackscatterSource.SIDE_SCAN
    options = ProcessingOptions(backscatter_source=BackscatterSource.SNIPPET_BACKSCATTER)
    assert sidescan.select_backscatter_source(ping, options) == BackscatterSource.SNIPPET


def test_no_backscatter_no_mosaic(records):
    ping = aggregate(records.ping_bytes(1, [0.02], [0.0]))
    assert sidescan.build_mosaic(ping, bathymetry.solve(ping)) is None


def test_side_scan_ground_range(records):
    # 1000 Hz at 1500 m/s gives 0.75 m per sample, 4 samples of nadir gives a 3 m altitude
    port = [0, 0, 0, 0, 0, 10]
    starboard = [0, 0, 0, 0, 0, 20]
    ping = aggregate(records.ping_bytes(1, [0.02], [0.0]),
                     records.frame(RecordKind.SIDE_SCAN, side_scan(records, 1, port, starboard, nadir_samples=4)))
    solved = bathymetry.solve(ping)
    mosaic = sidescan.build_mosaic(ping, solved, ProcessingOptions(pixel_size=0.5, pixel_count=32))
    assert mosaic.source == BackscatterSource.SIDE_SCAN
    ground = numpy.sqrt(3.75 ** 2 - 3.0 ** 2)
    k = int(numpy.rint(ground / 0.5))
    numpy.testing.assert_almost_equal(mosaic.samples[16 + k], 20.0)
    numpy.testing.assert_almost_equal(mosaic.samples[16 - k], 10.0)


def test_flagged_beams_left_out_of_mosaic(records):
    # quality 13 lacks a validity bit, the sonar rejected beam 1
    snippets = records.snippets(1, [(0, 10, 10, [100]), (1, 50, 50, [999])])
    ping = aggregate(records.ping_bytes(1, [0.02, 0.2], [0.0, 20.0], quality=[15, 13]),
                     records.frame(RecordKind.SNIPPET, snippets))
    solved = bathymetry.solve(ping)
    numpy.testing.assert_array_equal(solved.beam_flag, [BeamFlag.GOOD, BeamFlag.FLAGGED_SONAR])
    numpy.testing.assert_array_equal(solved.good, [True, False])
    numpy.testing.assert_almost_equal(solved.median_depth, 15.0, decimal=4)
    mosaic = sidescan.build_mosaic(ping, solved, ProcessingOptions(pixel_size=1.0, pixel_count=64))
    numpy.testing.assert_almost_equal(mosaic.swath_width, 2.5)
    numpy.testing.assert_almost_equal(mosaic.samples[32], 100.0)
    assert not numpy.any(mosaic.samples == 999.0)
    assert numpy.count_nonzero(mosaic.counts) == 1
