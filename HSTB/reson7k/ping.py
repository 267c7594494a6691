"""
Ping aggregate, the most recent decoded record of every kind plus which of them belong to the ping being assembled.

Per ping records carry a (PingNumber, MultiPingSequence) identity, the first of them to arrive sets the identity of
the aggregate.  Session level records (configuration, beam geometry, installation, sensors) keep their latest
instance across pings and are flagged present in whichever ping is open when they arrive.
"""

import copy
import enum
import logging

from HSTB.reson7k.s7k import RecordKind

logger = logging.getLogger(__name__)

# records that are stamped with a ping number and are only valid for that ping
ping_records = (RecordKind.SONAR_SETTINGS, RecordKind.BATHYMETRY, RecordKind.SIDE_SCAN, RecordKind.GENERIC_WATER_COLUMN,
                RecordKind.DETECTION_SETUP, RecordKind.RAW_DETECTION, RecordKind.SNIPPET, RecordKind.SNIPPET_BACKSCATTER)
CORE_RECORD = RecordKind.BATHYMETRY


class DetectionSource(enum.Enum):
    """Where the beam detections of a ping come from, best first"""
    RAW_DETECTION = 'raw_detection'
    DETECTION_WITH_SETUP = 'detection_with_setup'
    DETECTION = 'detection'
    BEAM_GEOMETRY = 'beam_geometry'
    NONE = 'none'


def ping_identity(record):
    """(PingNumber, MultiPingSequence) of a decoded per ping record, None for anything else"""
    try:
        return int(record.PingNumber), int(record.MultiPingSequence)
    except AttributeError:
        return None


class PingAggregate:
    """
    Records of one ping.  Datagrams are stored whole so the frame header (time, protocol version) stays with each
    decoded payload.
    """

    def __init__(self):
        self.datagrams = {}
        self.present = set()
        self.identity = None
        self.comments = []
        self.bathymetry = None
        self.mosaic = None
        # damping baseline of the mosaic, survives reset
        self.pixel_size = 0.0
        self.swath_width = 0.0

    @property
    def ping_number(self):
        return None if self.identity is None else self.identity[0]

    @property
    def multi_ping_sequence(self):
        return None if self.identity is None else self.identity[1]

    @property
    def complete(self):
        """A ping can only be solved once its bathymetry record is here"""
        return CORE_RECORD in self.present

    @property
    def time(self):
        """Time of the ping from its core record, or the earliest per ping record when the core is missing"""
        if CORE_RECORD in self.present:
            return self.datagrams[CORE_RECORD].time
        times = [self.datagrams[kind].time for kind in ping_records if kind in self.present]
        return min(times) if times else None

    def has(self, kind):
        return kind in self.present

    def datagram(self, kind, current=True):
        """
        Stored datagram of a kind.  With current True per ping kinds are only returned when they belong to this ping,
        session level kinds are returned whenever one has been seen.
        """
        if current and kind in ping_records and kind not in self.present:
            return None
        return self.datagrams.get(kind)

    def record(self, kind, current=True):
        datagram = self.datagram(kind, current)
        return None if datagram is None else datagram.subpack

    def dispatch(self, datagram):
        """
        Store a decoded datagram.  Returns False (and stores nothing) for record types without a decoder.
        """
        kind = datagram.kind
        if kind is None or datagram.subpack is None:
            return False
        if kind in ping_records:
            identity = ping_identity(datagram.subpack)
            if self.identity is None:
                self.identity = identity
            elif identity != self.identity:
                logger.warning(f'record {int(kind)} of ping {identity} stored in the aggregate of ping {self.identity}')
        if kind == RecordKind.SYSTEM_EVENT_MESSAGE:
            self.comments.append(datagram.subpack.message)
        self.datagrams[kind] = datagram
        self.present.add(kind)
        return True

    def select_detection_source(self):
        """
        Pick the best detection source available: raw detections, then the 7006 detections with their 7017 setup
        and 7004 steering, then the 7006 with its own computed angles, then the 7006 with 7004 steering alone.
        """
        bathy = self.record(RecordKind.BATHYMETRY)
        if bathy is None:
            return DetectionSource.NONE
        numbeams = int(bathy.NumberOfBeams)
        raw = self.record(RecordKind.RAW_DETECTION)
        if raw is not None and ping_identity(raw) == self.identity and float(raw.SamplingRate) > 0 and int(raw.Detections) > 0:
            return DetectionSource.RAW_DETECTION
        geometry = self.record(RecordKind.BEAM_GEOMETRY)
        geometry_ok = geometry is not None and int(geometry.NumberOfBeams) == numbeams
        if geometry is not None and not geometry_ok:
            logger.debug(f'ping {self.identity}: beam geometry has {int(geometry.NumberOfBeams)} beams, bathymetry {numbeams}')
        setup = self.record(RecordKind.DETECTION_SETUP)
        if setup is not None and ping_identity(setup) == self.identity and geometry_ok:
            return DetectionSource.DETECTION_WITH_SETUP
        if bathy.optional_beams is not None:
            return DetectionSource.DETECTION
        if geometry_ok:
            return DetectionSource.BEAM_GEOMETRY
        return DetectionSource.NONE

    def reset(self):
        """Start a new ping, per ping records and outputs are dropped, session level records are kept"""
        for kind in ping_records:
            self.datagrams.pop(kind, None)
        self.present = set()
        self.identity = None
        self.comments = []
        self.bathymetry = None
        self.mosaic = None

    def copy(self):
        """Independent deep copy, every record buffer and output array is duplicated"""
        return copy.deepcopy(self)
