"""
Sidescan mosaic of one ping.

Backscatter samples are laid out across track around the bottom detection of their beam and binned into a fixed
number of pixels centered on nadir.  Pixel size follows the median depth and swath width but is damped to change by
at most 5% from one ping to the next.  Short runs of empty pixels between filled ones are interpolated.
"""

import logging

import numpy as np

from HSTB.reson7k.config import BackscatterSource, ProcessingOptions
from HSTB.reson7k.s7k import RecordKind

logger = logging.getLogger(__name__)

SWATH_MARGIN = 2.5
MIN_BEAMWIDTH = 0.1
DAMPING = 0.05


class Mosaic:
    """Pixels of one ping, NaN where nothing was binned or interpolated"""

    def __init__(self, pixel_count, pixel_size, swath_width, source=None):
        self.pixel_size = pixel_size
        self.swath_width = swath_width
        self.source = source
        self.samples = np.full(pixel_count, np.nan)
        self.alongtrack = np.full(pixel_count, np.nan)
        self.counts = np.zeros(pixel_count, dtype=np.int64)

    @property
    def pixel_count(self):
        return self.samples.size

    @property
    def acrosstrack(self):
        return (np.arange(self.pixel_count) - self.pixel_count // 2) * self.pixel_size

    @property
    def empty(self):
        return not np.any(np.isfinite(self.samples))


def swath_width_from_beams(pointing_angle, good):
    """Half swath angle covering the widest good beam plus a margin, degrees"""
    angles = np.abs(pointing_angle[good & np.isfinite(pointing_angle)])
    if angles.size == 0:
        return None
    return min(SWATH_MARGIN + float(angles.max()), 89.0)


def candidate_pixel_size(swath_width, median_depth, pixel_count):
    """Pixel size spreading the swath over pixel_count pixels, never finer than a 0.1 degree footprint at nadir"""
    size = 2.0 * np.tan(np.deg2rad(swath_width)) * median_depth / pixel_count
    return float(max(size, median_depth * np.sin(np.deg2rad(MIN_BEAMWIDTH))))


def damp_pixel_size(previous, candidate):
    """Limit the change from the previous ping to 5% either way, a non positive previous size takes the candidate"""
    if previous <= 0.0:
        return candidate
    if (1.0 - DAMPING) * previous > candidate:
        return (1.0 - DAMPING) * previous
    if (1.0 + DAMPING) * previous < candidate:
        return (1.0 + DAMPING) * previous
    return candidate


def interpolate_gaps(samples, alongtrack, gap):
    """
    Linearly fill runs of at most gap empty (NaN) pixels that lie between two filled pixels, returns new arrays
    """
    samples = np.array(samples, dtype=np.float64)
    alongtrack = np.array(alongtrack, dtype=np.float64)
    filled = np.flatnonzero(np.isfinite(samples))
    for k1, k2 in zip(filled[:-1], filled[1:]):
        if 1 < k2 - k1 <= gap + 1:
            k = np.arange(k1 + 1, k2)
            w = (k - k1) / (k2 - k1)
            samples[k] = samples[k1] + (samples[k2] - samples[k1]) * w
            alongtrack[k] = alongtrack[k1] + (alongtrack[k2] - alongtrack[k1]) * w
    return samples, alongtrack


def select_backscatter_source(ping, options):
    """The requested source when the ping has it, otherwise the first available in priority order"""
    if options.backscatter_source is not None:
        if ping.has(RecordKind(int(options.backscatter_source))):
            return options.backscatter_source
        logger.debug(f'ping {ping.identity}: requested backscatter {int(options.backscatter_source)} not present')
    for source in BackscatterSource:
        if ping.has(RecordKind(int(source))):
            return source
    return None


def _sample_rate(ping, record=None):
    rate = float(getattr(record, 'SamplingRate', 0.0)) if record is not None else 0.0
    if rate <= 0:
        settings = ping.record(RecordKind.SONAR_SETTINGS)
        rate = float(settings.SampleRate) if settings is not None else 0.0
    if rate <= 0:
        raw = ping.record(RecordKind.RAW_DETECTION)
        rate = float(raw.SamplingRate) if raw is not None else 0.0
    return rate


def _receive_beamwidth(ping, options, numbeams):
    geometry = ping.record(RecordKind.BEAM_GEOMETRY, current=False)
    if geometry is not None and int(geometry.NumberOfBeams) == numbeams:
        width = np.rad2deg(geometry.data['BeamWidthAcrossTrack'].astype(np.float64))
        return np.where(width > 0, width, options.receive_beamwidth)
    return np.full(numbeams, options.receive_beamwidth)


def _beam_snippets(ping, source, bathymetry):
    """
    Yield (beam, amplitudes, center) for each beam of a per beam snippet source, center being the sample index of
    the bottom detection within amplitudes
    """
    record = ping.record(RecordKind(int(source)))
    if source == BackscatterSource.SNIPPET_BACKSCATTER:
        for desc, series in zip(record.descriptor, record.backscatter):
            yield int(desc['BeamDescriptor']), series.astype(np.float64), int(desc['BottomSample']) - int(desc['BeginSample'])
    elif source == BackscatterSource.SNIPPET:
        for desc, series in zip(record.descriptor, record.snippets):
            yield int(desc['BeamDescriptor']), series.astype(np.float64), int(desc['DetectionSample']) - int(desc['BeginSample'])
    elif source == BackscatterSource.GENERIC_WATER_COLUMN:
        rate = _sample_rate(ping)
        for i, desc in enumerate(record.descriptors):
            beam = int(desc['BeamNumber'])
            if beam >= bathymetry.numbeams or not np.isfinite(bathymetry.traveltime[beam]):
                continue
            center = int(np.rint(bathymetry.traveltime[beam] * rate)) - int(desc['FirstSample'])
            yield beam, record.magnitude(i), center


def _bin_beams(mosaic, ping, source, bathymetry, options):
    """Accumulate per beam snippets into the pixel sums"""
    rate = _sample_rate(ping, ping.record(RecordKind(int(source))))
    if rate <= 0:
        logger.warning(f'ping {ping.identity}: no sample rate for backscatter record {int(source)}')
        return
    ss_spacing = bathymetry.sound_speed / (2.0 * rate)
    beamwidth = _receive_beamwidth(ping, options, bathymetry.numbeams)
    npix = mosaic.pixel_count
    for beam, amplitudes, center in _beam_snippets(ping, source, bathymetry):
        if beam >= bathymetry.numbeams or not bathymetry.good[beam] or amplitudes.size == 0:
            continue
        nsamples = amplitudes.size
        angle = np.deg2rad(bathymetry.pointing_angle[beam])
        beam_foot = bathymetry.slant_range[beam] * np.sin(np.deg2rad(beamwidth[beam])) / np.cos(angle)
        sint = abs(np.sin(angle))
        if sint < nsamples * ss_spacing / beam_foot:
            spacing = beam_foot / nsamples
        else:
            spacing = ss_spacing / sint
        if bathymetry.acrosstrack[beam] < 0:
            spacing = -spacing
        x = bathymetry.acrosstrack[beam] + spacing * (np.arange(nsamples) - center)
        kk = npix // 2 + np.rint(x / mosaic.pixel_size).astype(np.int64)
        inside = (kk >= 0) & (kk < npix) & np.isfinite(amplitudes)
        np.add.at(mosaic.samples, kk[inside], amplitudes[inside])
        np.add.at(mosaic.alongtrack, kk[inside], bathymetry.alongtrack[beam])
        np.add.at(mosaic.counts, kk[inside], 1)


def _bin_sidescan(mosaic, ping, bathymetry):
    """Accumulate a port/starboard 7007 series, slant range mapped to ground range with the altitude above bottom"""
    record = ping.record(RecordKind.SIDE_SCAN)
    rate = _sample_rate(ping)
    if rate <= 0:
        logger.warning(f'ping {ping.identity}: no sample rate for side scan')
        return
    ss_spacing = bathymetry.sound_speed / (2.0 * rate)
    altitude = 0.0
    if record.optional is not None and float(record.optional['Altitude']) > 0:
        altitude = float(record.optional['Altitude'])
    elif int(record.NadirDepth) > 0:
        altitude = int(record.NadirDepth) * ss_spacing
    elif bathymetry.median_depth is not None:
        altitude = float(np.nanmin(bathymetry.depth[bathymetry.good])) - bathymetry.sensor_depth
    npix = mosaic.pixel_count
    for side, series in ((-1.0, record.port), (1.0, record.starboard)):
        slant = np.arange(series.size) * ss_spacing
        ground = side * np.sqrt(np.clip(slant ** 2 - altitude ** 2, 0.0, None))
        kk = npix // 2 + np.rint(ground / mosaic.pixel_size).astype(np.int64)
        inside = (slant > altitude) & (kk >= 0) & (kk < npix)
        np.add.at(mosaic.samples, kk[inside], series[inside].astype(np.float64))
        np.add.at(mosaic.alongtrack, kk[inside], 0.0)
        np.add.at(mosaic.counts, kk[inside], 1)


def build_mosaic(ping, bathymetry, options=None):
    """
    Build the mosaic of a solved ping

    Parameters
    ----------
    ping
        PingAggregate, its pixel_size and swath_width are the damping baseline and are updated
    bathymetry
        SolvedBathymetry of the ping
    options
        ProcessingOptions

    Returns
    -------
    Mosaic
        None when the ping carries no backscatter record
    """
    options = options or ProcessingOptions()
    source = select_backscatter_source(ping, options)
    if source is None or bathymetry is None:
        return None

    swath_width = options.swath_width or swath_width_from_beams(bathymetry.pointing_angle, bathymetry.good) or ping.swath_width
    median = bathymetry.median_depth
    if options.pixel_size:
        pixel_size = options.pixel_size
    elif median is not None and median > 0 and swath_width:
        pixel_size = damp_pixel_size(ping.pixel_size, candidate_pixel_size(swath_width, median, options.pixel_count))
    else:
        pixel_size = ping.pixel_size
    if not pixel_size or pixel_size <= 0:
        logger.info(f'ping {ping.identity}: no pixel size available, mosaic skipped')
        return None

    mosaic = Mosaic(options.pixel_count, pixel_size, swath_width, source)
    mosaic.samples[:] = 0.0
    mosaic.alongtrack[:] = 0.0
    if source == BackscatterSource.SIDE_SCAN:
        _bin_sidescan(mosaic, ping, bathymetry)
    else:
        _bin_beams(mosaic, ping, source, bathymetry, options)

    binned = mosaic.counts > 0
    with np.errstate(invalid='ignore', divide='ignore'):
        mosaic.samples = np.where(binned, mosaic.samples / mosaic.counts, np.nan)
        mosaic.alongtrack = np.where(binned, mosaic.alongtrack / mosaic.counts, np.nan)
    mosaic.samples, mosaic.alongtrack = interpolate_gaps(mosaic.samples, mosaic.alongtrack, options.gap_interpolation)

    ping.pixel_size = pixel_size
    ping.swath_width = swath_width or 0.0
    ping.mosaic = mosaic
    return mosaic
