"""
A processing session over one 7k byte stream.

Bytes go in through feed(), finished pings come out.  The session frames and decodes records, keeps the navigation
history, assembles the records of each ping, and when a ping closes solves its bathymetry and builds its mosaic.
"""

import enum
import logging

import numpy as np

from HSTB.reson7k import bathymetry, s7k, sidescan
from HSTB.reson7k.config import InstallationGeometry, ProcessingOptions
from HSTB.reson7k.navigation import NavigationHistory
from HSTB.reson7k.ping import PingAggregate, DetectionSource, ping_records, ping_identity
from HSTB.reson7k.s7k import RecordKind
from HSTB.reson7k.stream import S7kStream

logger = logging.getLogger(__name__)


class PingStatus(enum.Enum):
    SOLVED = 'solved'
    PARTIAL = 'partial'
    INCOMPLETE = 'incomplete'


class EmittedPing:
    """
    One finished ping.  Everything here is owned by the ping, records is a deep copy of the aggregate so it can be
    kept while the session moves on.
    """

    def __init__(self, status, records, time=None, position=None, heading=None, speed=None, sensor_depth=None,
                 sound_velocity=None, sound_velocity_profile=None, comments=None, bathymetry=None, mosaic=None):
        self.status = status
        self.records = records
        self.identity = records.identity
        self.time = time
        self.position = position
        self.heading = heading
        self.speed = speed
        self.sensor_depth = sensor_depth
        self.sound_velocity = sound_velocity
        self.sound_velocity_profile = sound_velocity_profile
        self.comments = list(comments or [])
        self.bathymetry = bathymetry
        self.mosaic = mosaic

    @property
    def ping_number(self):
        return self.records.ping_number

    @property
    def multi_ping_sequence(self):
        return self.records.multi_ping_sequence

    @property
    def detection_source(self):
        return DetectionSource.NONE if self.bathymetry is None else self.bathymetry.source

    def __repr__(self):
        return f'EmittedPing({self.identity}, {self.status.name}, time={self.time})'


class Session:
    """
    Parameters
    ----------
    geometry
        InstallationGeometry, when None it is taken from the first 7030 installation record of the stream
    options
        ProcessingOptions
    log
        logging.Logger to report to, defaults to the module logger
    """

    def __init__(self, geometry=None, options=None, log=None):
        self.options = options or ProcessingOptions()
        self.geometry = geometry
        self.geometry_from_stream = geometry is None
        self.log = log if log is not None else logger
        self.stream = S7kStream(max_record_size=self.options.max_record_size)
        self.history = NavigationHistory()
        self.ping = PingAggregate()
        self.sound_velocity_profile = None
        self.payload_errors = 0

    @property
    def stats(self):
        return self.stream.stats

    def feed(self, data):
        """Feed stream bytes, returns the list of EmittedPing closed by them"""
        emitted = []
        for datagram in self.stream.feed(data):
            emitted.extend(self.process(datagram))
        return emitted

    def flush(self):
        """
        End of stream, records the framer recovers from its buffer are applied, then the open ping is closed and
        returned (with any ping still waiting on its core record)
        """
        emitted = []
        for datagram in self.stream.flush():
            emitted.extend(self.process(datagram))
        if self.ping.identity is not None:
            emitted.append(self.close_ping())
        return emitted

    def process(self, datagram):
        """Decode and apply one framed datagram, returns the pings it closed"""
        try:
            record = datagram.decode()
        except s7k.PayloadError as e:
            self.payload_errors += 1
            self.log.warning(f'record {datagram.dtype} at stream offset {datagram.datagram_start} discarded: {e}')
            return []
        if record is None:
            return []
        emitted = []
        kind = datagram.kind
        if kind in ping_records:
            identity = ping_identity(record)
            if self.ping.identity is not None and identity != self.ping.identity:
                emitted.append(self.close_ping())
        elif kind == RecordKind.INSTALLATION_PARAMETERS and self.geometry_from_stream:
            self.geometry = InstallationGeometry.from_installation_record(record)
            self.log.info(f'installation geometry loaded from record {datagram.record_number}')
        elif kind == RecordKind.SOUND_VELOCITY_PROFILE:
            self.sound_velocity_profile = (record.depth.copy(), record.soundspeed.copy())
        else:
            self.history.ingest(record, datagram.time)
        self.ping.dispatch(datagram)
        return emitted

    def close_ping(self):
        """Solve the open ping, emit it and start the next one"""
        ping = self.ping
        bathy = None
        if ping.complete:
            bathy = bathymetry.solve(ping, self.history, self.geometry, self.options)
            sidescan.build_mosaic(ping, bathy, self.options)
            status = PingStatus.PARTIAL if bathy.partial else PingStatus.SOLVED
            ping.bathymetry = bathy
        else:
            self.log.info(f'ping {ping.identity} closed without its bathymetry record')
            status = PingStatus.INCOMPLETE
        records = ping.copy()
        emitted = EmittedPing(status, records, time=ping.time, comments=ping.comments, bathymetry=records.bathymetry,
                              mosaic=records.mosaic, sound_velocity_profile=self.sound_velocity_profile)
        self._add_navigation(emitted)
        ping.reset()
        return emitted

    def _add_navigation(self, emitted):
        if emitted.time is None:
            return
        for attr, channel in (('position', 'position'), ('heading', 'heading'), ('speed', 'speed')):
            result = self.history.interpolate(channel, emitted.time)
            if result is not None:
                value = result[0]
                setattr(emitted, attr, tuple(float(v) for v in value) if value.ndim else float(value))
        # no history yet, use the navigation the sonar embedded in the 7006
        bathy = emitted.records.record(RecordKind.BATHYMETRY)
        if bathy is not None and bathy.optional is not None:
            if emitted.position is None:
                emitted.position = (float(np.rad2deg(bathy.optional['Latitude'])),
                                    float(np.rad2deg(bathy.optional['Longitude'])), float('nan'))
            if emitted.heading is None:
                emitted.heading = float(np.rad2deg(bathy.optional['Heading'])) % 360.0
        if emitted.bathymetry is not None:
            emitted.sensor_depth = emitted.bathymetry.sensor_depth
            emitted.sound_velocity = emitted.bathymetry.sound_speed
        else:
            emitted.sensor_depth = (self.geometry or InstallationGeometry()).transducer_depth
            emitted.sound_velocity = bathymetry.recorded_sound_speed(emitted.records, self.history, self.options)
