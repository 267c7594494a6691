"""
Bathymetry solver, turns the detections of one ping into depth, across track and along track per beam.

Detections are gathered from the best source the ping carries (see PingAggregate.select_detection_source), quality is
rewritten with the epoch rule of the record it came from, attitude is resolved at transmit time and at the bottom
return time of every beam, then the beam takeoff angles are found from the array geometry and the travel time is
turned into a position.  Every output array has one entry per 7006 beam; beams that can not be solved are NaN with a
NULL beam flag.
"""

import logging

import numpy as np

from HSTB.reson7k import orientation, quality
from HSTB.reson7k.config import InstallationGeometry, ProcessingOptions
from HSTB.reson7k.ping import DetectionSource
from HSTB.reson7k.s7k import RecordKind

logger = logging.getLogger(__name__)


class SolvedBathymetry:
    """
    Per beam results of one ping.

    depth is positive down from the waterline, acrosstrack positive to starboard and alongtrack positive forward,
    all in meters.  pointing_angle (takeoff from vertical) and azimuth are degrees, traveltime is two way seconds.
    """

    def __init__(self, numbeams, source, sound_speed):
        self.source = source
        self.sound_speed = sound_speed
        self.depth = np.full(numbeams, np.nan)
        self.acrosstrack = np.full(numbeams, np.nan)
        self.alongtrack = np.full(numbeams, np.nan)
        self.pointing_angle = np.full(numbeams, np.nan)
        self.azimuth = np.full(numbeams, np.nan)
        self.traveltime = np.full(numbeams, np.nan)
        self.slant_range = np.full(numbeams, np.nan)
        self.quality = np.zeros(numbeams, dtype=np.uint8)
        self.beam_flag = np.zeros(numbeams, dtype=np.uint8)
        self.intensity = np.full(numbeams, np.nan)
        self.sensor_depth = 0.0
        self.heave = 0.0
        self.unresolved_count = 0

    @property
    def numbeams(self):
        return self.depth.size

    @property
    def valid(self):
        return self.beam_flag != quality.BeamFlag.NULL

    @property
    def good(self):
        """Beams solved and not flagged, the only ones the mosaic uses"""
        return self.beam_flag == quality.BeamFlag.GOOD

    @property
    def partial(self):
        return self.unresolved_count > 0 or self.source == DetectionSource.NONE

    @property
    def median_depth(self):
        good = self.good & np.isfinite(self.depth)
        return float(np.median(self.depth[good])) if np.any(good) else None


def recorded_sound_speed(ping, history, options):
    """Sound speed the sonar used: the 7006, then the 7000, then the sound velocity history, then the default"""
    bathy = ping.record(RecordKind.BATHYMETRY)
    if bathy is not None and float(bathy.SoundVelocity) > 0:
        return float(bathy.SoundVelocity)
    settings = ping.record(RecordKind.SONAR_SETTINGS)
    if settings is not None and float(settings.SoundVelocity) > 0:
        return float(settings.SoundVelocity)
    if history is not None and ping.time is not None:
        result = history.interpolate('sound_velocity', ping.time)
        if result is not None and float(result[0]) > 0:
            return float(result[0])
    return options.default_sound_speed


def _gather_detections(ping, source, numbeams):
    """
    Per beam travel time, raw quality and steering for the chosen source.

    Returns a dict with traveltime, raw_quality, signal, version, year and either tx_steer/rx_steer (composable and
    legacy geometry) or theta/phi (angles computed by the sonar).
    """
    nan = np.full(numbeams, np.nan)
    bathy_dg = ping.datagram(RecordKind.BATHYMETRY)
    bathy = bathy_dg.subpack
    dets = {'traveltime': nan.copy(), 'raw_quality': np.zeros(numbeams, dtype=np.int64), 'signal': nan.copy(),
            'version': bathy_dg.protocol_version, 'year': int(bathy_dg.header['Year'])}
    if source == DetectionSource.NONE:
        return dets
    if 'Intensity' in bathy.data.dtype.names:
        dets['signal'] = bathy.data['Intensity'].astype(np.float64)

    if source == DetectionSource.RAW_DETECTION:
        raw_dg = ping.datagram(RecordKind.RAW_DETECTION)
        raw = raw_dg.subpack
        idx = raw.data['BeamDescriptor'].astype(np.int64)
        keep = idx < numbeams
        if not np.all(keep):
            logger.warning(f'ping {ping.identity}: {np.count_nonzero(~keep)} raw detections beyond beam {numbeams} ignored')
        idx = idx[keep]
        data = raw.data[keep]
        dets['traveltime'][idx] = raw.traveltime[keep]
        dets['raw_quality'][idx] = quality.detection_quality(data['Quality'], data['DetectionFlags'] & 1, data['DetectionFlags'] & 2)
        signal = raw.signal_strength
        if signal is not None:
            dets['signal'] = nan.copy()
            dets['signal'][idx] = signal[keep]
        dets['rx_steer'] = nan.copy()
        dets['rx_steer'][idx] = np.rad2deg(data['RxAngle'])
        dets['tx_steer'] = np.full(numbeams, np.rad2deg(float(raw.TxAngle)))
        dets['version'] = raw_dg.protocol_version
        dets['year'] = int(raw_dg.header['Year'])
        dets['geometry'] = 'composable'
        return dets

    dets['traveltime'] = bathy.data['Range'].astype(np.float64)
    if source == DetectionSource.DETECTION:
        dets['raw_quality'] = bathy.data['Quality'].astype(np.int64)
        dets['theta'] = np.rad2deg(bathy.optional_beams['PointingAngle'].astype(np.float64))
        dets['phi'] = np.rad2deg(bathy.optional_beams['AzimuthAngle'].astype(np.float64))
        dets['geometry'] = 'sonar'
        return dets

    beam_geometry = ping.record(RecordKind.BEAM_GEOMETRY)
    dets['tx_steer'] = np.rad2deg(beam_geometry.alongtrack_angles.astype(np.float64))
    dets['rx_steer'] = np.rad2deg(beam_geometry.acrosstrack_angles.astype(np.float64))
    if source == DetectionSource.DETECTION_WITH_SETUP:
        setup_dg = ping.datagram(RecordKind.DETECTION_SETUP)
        setup = setup_dg.subpack
        idx = setup.data['BeamDescriptor'].astype(np.int64)
        keep = idx < numbeams
        dets['raw_quality'][idx[keep]] = quality.detection_quality(setup.data['Quality'][keep], setup.magnitude_detect[keep],
                                                                   setup.phase_detect[keep])
        dets['version'] = setup_dg.protocol_version
        dets['year'] = int(setup_dg.header['Year'])
        dets['geometry'] = 'composable'
    else:
        dets['raw_quality'] = bathy.data['Quality'].astype(np.int64)
        dets['geometry'] = 'legacy'
    return dets


class AttitudeResolver:
    """
    Roll, pitch, heading and heave at arbitrary times.  Channels with enough history samples are interpolated, a
    channel with fewer samples holds its value at ping time, an empty channel falls back to the navigation carried in
    the 7006 optional data, then to zero.
    """
    channels = ('roll', 'pitch', 'heading', 'heave')

    def __init__(self, ping, history, options, time_delay=0.0):
        self.history = history
        self.ping_time = ping.time
        self.min_samples = options.min_history_samples
        self.time_delay = time_delay
        self.fallback = {name: 0.0 for name in self.channels}
        bathy = ping.record(RecordKind.BATHYMETRY)
        if bathy is not None and bathy.optional is not None:
            self.fallback.update({'roll': float(np.rad2deg(bathy.optional['Roll'])),
                                  'pitch': float(np.rad2deg(bathy.optional['Pitch'])),
                                  'heading': float(np.rad2deg(bathy.optional['Heading'])),
                                  'heave': float(bathy.optional['Heave'])})

    def __call__(self, channel, times):
        times = np.asarray(times, dtype=np.float64)
        count = 0 if self.history is None else self.history.count(channel)
        if count == 0:
            return np.full(times.shape, self.fallback[channel])
        if count < self.min_samples:
            times = np.full(times.shape, self.ping_time)
        value, extrapolated = self.history.interpolate(channel, times + self.time_delay)
        if np.any(extrapolated) and count >= self.min_samples:
            logger.debug(f'{channel} held at the end of its history for {np.count_nonzero(extrapolated)} samples')
        return np.asarray(value, dtype=np.float64)


def _sensor_depth(ping, history, geometry):
    depth = geometry.transducer_depth
    if history is not None and history.count('sensor_depth') > 0:
        depth += float(history.interpolate('sensor_depth', ping.time)[0])
    return depth


def solve(ping, history=None, geometry=None, options=None):
    """
    Solve the bathymetry of a ping

    Parameters
    ----------
    ping
        PingAggregate holding at least the 7006 of the ping
    history
        NavigationHistory for attitude, heave, sensor depth and sound velocity, optional
    geometry
        InstallationGeometry, defaults to arrays at the reference point with no mount angles
    options
        ProcessingOptions

    Returns
    -------
    SolvedBathymetry
        None when the ping has no bathymetry record
    """
    geometry = geometry or InstallationGeometry()
    options = options or ProcessingOptions()
    bathy_dg = ping.datagram(RecordKind.BATHYMETRY)
    if bathy_dg is None or bathy_dg.subpack is None:
        logger.info(f'ping {ping.identity}: no bathymetry record, not solved')
        return None
    numbeams = int(bathy_dg.subpack.NumberOfBeams)
    source = ping.select_detection_source()
    recorded = recorded_sound_speed(ping, history, options)
    sound_speed = options.sound_speed or recorded
    snell = options.snell_factor or sound_speed / recorded

    result = SolvedBathymetry(numbeams, source, sound_speed)
    dets = _gather_detections(ping, source, numbeams)
    result.traveltime = dets['traveltime']
    result.intensity = dets['signal']
    result.quality = quality.recompute_quality(dets['raw_quality'], dets['version'], dets['year'], traveltime=dets['traveltime'],
                                               signal=dets['signal'], threshold=options.signal_threshold)
    result.beam_flag = quality.beam_flags(result.quality)
    if source == DetectionSource.NONE:
        logger.info(f'ping {ping.identity}: no usable detection source, {numbeams} beams left null')
        result.quality[:] = 0
        result.beam_flag[:] = quality.BeamFlag.NULL
        return result

    detected = result.valid & np.isfinite(result.traveltime) & (result.traveltime > 0)

    attitude = AttitudeResolver(ping, history, options, time_delay=geometry.motion_time_delay)
    tx_time = ping.time
    rx_time = tx_time + np.where(np.isfinite(result.traveltime), result.traveltime, 0.0)
    tx_att = [attitude(ch, tx_time) for ch in ('roll', 'pitch', 'heading')]
    rx_att = [attitude(ch, rx_time) for ch in ('roll', 'pitch', 'heading')]
    if options.zero_attitude_correction:
        tx_att[0] = tx_att[1] = np.zeros_like(tx_att[0])
        rx_att[0] = rx_att[1] = np.zeros_like(rx_att[0])
    tx_heave = attitude('heave', tx_time)
    rx_heave = attitude('heave', rx_time)
    result.heave = float(tx_heave)
    result.sensor_depth = _sensor_depth(ping, history, geometry)

    if dets['geometry'] == 'sonar':
        theta, phi = dets['theta'], dets['phi']
        if options.zero_alongtrack_angle:
            phi = np.where(np.cos(np.deg2rad(phi)) >= 0, 0.0, 180.0)
    else:
        tx_steer, rx_steer = dets['tx_steer'], dets['rx_steer']
        if snell != 1.0:
            tx_steer = orientation.snell_rescale(tx_steer, snell)
            rx_steer = orientation.snell_rescale(rx_steer, snell)
        if options.zero_alongtrack_angle:
            tx_steer = np.zeros_like(tx_steer)
        if dets['geometry'] == 'composable':
            theta, phi = orientation.beam_takeoff(geometry.transmitter.angles, tx_att, tx_steer,
                                                  geometry.receiver.angles, rx_att, rx_steer, reference_heading=tx_att[2])
        else:
            tx_roll, tx_pitch, tx_heading, tx_steer = orientation.correct_reverse_mount(*geometry.transmitter.angles, tx_steer)
            rx_roll, rx_pitch, rx_heading, rx_steer = orientation.correct_reverse_mount(*geometry.receiver.angles, rx_steer)
            theta, phi = orientation.rollpitch_to_takeoff(tx_steer, rx_steer, rx_att[0] + rx_roll, rx_att[1] + tx_pitch)

    with np.errstate(invalid='ignore'):
        rr = 0.5 * sound_speed * result.traveltime
        xx = rr * np.sin(np.deg2rad(theta))
        zz = rr * np.cos(np.deg2rad(theta))
        acrosstrack = xx * np.cos(np.deg2rad(phi))
        alongtrack = xx * np.sin(np.deg2rad(phi))
        depth = zz + result.sensor_depth - 0.5 * (tx_heave + rx_heave)

    solved = detected & np.isfinite(depth) & np.isfinite(acrosstrack) & np.isfinite(alongtrack)
    unresolved = detected & ~solved
    result.unresolved_count = int(np.count_nonzero(unresolved))
    if result.unresolved_count:
        logger.warning(f'ping {ping.identity}: {result.unresolved_count} detected beams have no geometric solution')
    result.quality[~solved] = 0
    result.beam_flag[~solved] = quality.BeamFlag.NULL
    result.depth = np.where(solved, depth, np.nan)
    result.acrosstrack = np.where(solved, acrosstrack, np.nan)
    result.alongtrack = np.where(solved, alongtrack, np.nan)
    result.pointing_angle = np.where(solved, theta, np.nan)
    result.azimuth = np.where(solved, phi, np.nan)
    result.slant_range = np.where(solved, rr, np.nan)
    return result
