"""
Reson 7k record codec.

Every record is a 64 byte frame header, a record type specific payload, an optional data section (located by the
header OptionalDataOffset) and a 4 byte checksum.  Decoding splits the frame in Datagram, then hands the payload to
the DataXXXX class matching the record type identifier.  All of the record classes re-emit the exact bytes they were
built from with get_datablock, including reserved fields, item padding and trailing bytes they do not model.

Byte order is little endian for every field regardless of the host.
"""

import sys
import enum
import logging
from datetime import datetime, timezone, timedelta

import numpy as np

logger = logging.getLogger(__name__)

SYNC_PATTERN = 0x0000FFFF
SYNC_BYTES = b'\xff\xff\x00\x00'
CHECKSUM_SIZE = 4
DEFAULT_PROTOCOL_VERSION = 5

device_identifiers = {20: 'T20', 22: 'T20Dual', 30: 'F30', 50: 'T50', 51: 'T51', 52: 'T50Dual', 103: 'GenericMBES',
                      1000: 'OdomMB1', 1002: 'OdomMB2', 4013: 'TC4013', 7003: 'PDS', 7005: 'ProScan', 7012: '7012', 7100: '7100',
                      7101: '7101', 7102: '7102', 7111: '7111', 7112: '7112', 7123: '7123', 7125: '7125', 7128: '7128',
                      7130: '7130', 7150: '7150', 7160: '7160', 8100: '8100', 8101: '8101', 8102: '8102', 8111: '8111',
                      8123: '8123', 8124: '8124', 8125: '8125', 8128: '8128', 8150: '8150', 8160: '8160', 9000: 'E20',
                      9001: 'Deso5', 9002: 'Deso5DS', 10000: 'DMS05', 10001: '335B', 10002: '332B', 10010: 'SBE37',
                      10200: 'Litton200', 11000: 'FS-DW-SBP', 11001: 'FS-DW-LFSSS', 11002: 'FS-DW-HFSSS',
                      12000: 'RPT319', 13002: 'NorbitFLS', 13003: 'NorbitBathy', 13004: 'NorbitiWBMS', 13005: 'NorbitBathyCompact',
                      13007: 'NorbitBathy', 13008: 'NorbitBathy', 13009: 'NorbitDeepSea', 13010: 'NorbitDeepSea',
                      13011: 'NorbitDeepSea', 13012: 'NorbitiLidar', 13016: 'NorbitBathySTX', 13017: 'NorbitBathySTX',
                      13018: 'NorbitiWBMSe', 14000: 'HydroSweep3DS', 14001: 'HydroSweep3MD50', 14002: 'HydroSweep3MD30'}


class CodecError(ValueError):
    """Base class for anything that stops a record from being decoded"""


class FramingError(CodecError):
    """The frame header, sync pattern, declared size or header time failed validation"""


class PayloadError(CodecError):
    """The payload does not fit the layout its own count fields declare"""


class RecordKind(enum.IntEnum):
    REFERENCE_POINT = 1000
    UNCALIBRATED_SENSOR_OFFSET = 1001
    CALIBRATED_SENSOR_OFFSET = 1002
    POSITION = 1003
    ALTITUDE = 1006
    DEPTH = 1008
    SOUND_VELOCITY_PROFILE = 1009
    CTD = 1010
    ROLL_PITCH_HEAVE = 1012
    HEADING = 1013
    NAVIGATION = 1015
    ATTITUDE = 1016
    SONAR_SETTINGS = 7000
    CONFIGURATION = 7001
    BEAM_GEOMETRY = 7004
    BATHYMETRY = 7006
    SIDE_SCAN = 7007
    GENERIC_WATER_COLUMN = 7008
    DETECTION_SETUP = 7017
    RAW_DETECTION = 7027
    SNIPPET = 7028
    INSTALLATION_PARAMETERS = 7030
    SYSTEM_EVENT_MESSAGE = 7051
    SNIPPET_BACKSCATTER = 7058
    FILE_HEADER = 7200
    FILE_CATALOG = 7300
    REMOTE_CONTROL_SETTINGS = 7503
    SOUND_VELOCITY = 7610


def compute_checksum(datablock):
    """Byte sum of everything ahead of the checksum, truncated to 32 bits"""
    return int(np.frombuffer(datablock, dtype=np.uint8).sum(dtype=np.uint64)) & 0xFFFFFFFF


def s7ktime_to_posix(year, julian_day, hours, minutes, seconds):
    """
    Parse the Reson 7KTIME convention and return utc seconds
    """
    temp_string = str(int(year)).zfill(4) + ',' + str(int(julian_day)).zfill(3) + ',' + str(int(hours)).zfill(2) + ',' + str(int(minutes)).zfill(2)
    try:
        tdata = datetime.strptime(temp_string, '%Y,%j,%H,%M')
    except ValueError as e:
        raise FramingError(f'invalid 7k time {temp_string}: {e}') from e
    tdata = tdata.replace(tzinfo=timezone.utc)
    tdata = tdata + timedelta(microseconds=int(round(float(seconds) * 1000000)))
    return tdata.timestamp()


def posix_to_s7ktime(utctime):
    """
    Build the (Year, Day, Seconds, Hours, Minutes) 7KTIME fields for a utc timestamp
    """
    tdata = datetime.fromtimestamp(float(utctime), tz=timezone.utc)
    seconds = np.float32(tdata.second + tdata.microsecond / 1000000)
    if seconds >= 60:  # float32 rounding can push 59.9999999 up to 60
        seconds = np.nextafter(np.float32(60), np.float32(0))
    return tdata.year, tdata.timetuple().tm_yday, seconds, tdata.hour, tdata.minute


def read_array(datablock, pointer, dtype, count):
    """
    Read count items of dtype starting at pointer, returning an owned (writeable) array and the new pointer.

    Raises PayloadError when the declared count runs past the end of the datablock.
    """
    dtype = np.dtype(dtype)
    count = int(count)
    end = pointer + dtype.itemsize * count
    if count < 0 or end > len(datablock):
        raise PayloadError(f'{count} x {dtype.itemsize} byte items at offset {pointer} overrun the {len(datablock)} byte payload')
    if count == 0:
        return np.zeros(0, dtype=dtype), pointer
    return np.frombuffer(datablock[pointer:end], dtype=dtype, count=count).copy(), end


def read_field_major(datablock, pointer, fields, count):
    """
    Read arrays that are stored one field after another (all of field one, then all of field two...) into a single
    structured array with one entry per item.
    """
    data = np.zeros(int(count), dtype=np.dtype(fields))
    for name, fmt in fields:
        data[name], pointer = read_array(datablock, pointer, fmt, count)
    return data, pointer


def field_major_bytes(data):
    return b''.join(np.ascontiguousarray(data[name]).tobytes() for name in data.dtype.names)


def padded_dtype(fields, itemsize):
    """Item dtype for fields, with a raw Padding field soaking up anything the declared item size adds"""
    dtyp = np.dtype(fields)
    if itemsize > dtyp.itemsize:
        dtyp = np.dtype(list(fields) + [('Padding', f'V{itemsize - dtyp.itemsize}')])
    return dtyp


def strip_string(raw):
    """Fixed width strings are NUL (and sometimes 0xFF) padded"""
    return bytes(raw).rstrip(b'\xff').rstrip(b'\x00').decode(errors='replace')


class Datagram:
    """Designed to read the data frame header, data, optional data and data footer (checksum) of one record"""

    hdr_dtype = np.dtype([('ProtocolVersion', '<u2'), ('Offset', '<u2'), ('SyncPattern', '<u4'), ('Size', '<u4'),
                          ('OptionalDataOffset', '<u4'), ('OptionalDataIdentifier', '<u4'), ('Year', '<u2'), ('Day', '<u2'),
                          ('Seconds', '<f4'), ('Hours', 'u1'), ('Minutes', 'u1'), ('RecordVersion', '<u2'),
                          ('RecordTypeIdentifier', '<u4'), ('DeviceIdentifier', '<u4'), ('ReservedOne', '<u2'),
                          ('SystemEnumerator', '<u2'), ('RecordNumber', '<u4'), ('Flags', '<u2'), ('ReservedTwo', '<u2'),
                          ('ReservedThree', '<u4'), ('TotalRecordsFragmented', '<u4'), ('FragmentNumber', '<u4')])
    hdr_sz = hdr_dtype.itemsize

    def __init__(self, fileblock, start_file_pointer=0):
        self.start_file_pointer = start_file_pointer
        fileblock = bytes(fileblock)
        if len(fileblock) < self.hdr_sz + CHECKSUM_SIZE:
            raise FramingError(f'{len(fileblock)} bytes is too short to hold a record frame')
        self.header = np.frombuffer(fileblock[:self.hdr_sz], dtype=self.hdr_dtype, count=1).copy()[0]
        check_header(self.header, len(fileblock))
        self.datagram_size = int(self.header['Size'])
        self.dtype = int(self.header['RecordTypeIdentifier'])
        data_end = self.datagram_size - CHECKSUM_SIZE
        optional_offset = int(self.header['OptionalDataOffset'])
        if optional_offset:
            if not self.hdr_sz <= optional_offset <= data_end:
                raise FramingError(f'optional data offset {optional_offset} lies outside the {self.datagram_size} byte record')
            self.datablock = fileblock[self.hdr_sz:optional_offset]
            self.optional_datablock = fileblock[optional_offset:data_end]
        else:
            self.datablock = fileblock[self.hdr_sz:data_end]
            self.optional_datablock = b''
        self.checksum = int(np.frombuffer(fileblock[data_end:], dtype='<u4', count=1)[0])
        if self.header['Flags'] & 1:
            computed = compute_checksum(fileblock[:data_end])
            if computed != self.checksum:
                logger.warning(f'record {self.dtype} at byte {start_file_pointer}: checksum {self.checksum} does not match computed {computed}')
        self.subpack = None
        self.decoded = False
        self.time = self.maketime()

    @property
    def datagram_start(self):
        return self.start_file_pointer

    @property
    def datagram_end(self):
        return self.start_file_pointer + self.datagram_size

    @property
    def kind(self):
        try:
            return RecordKind(self.dtype)
        except ValueError:
            return None

    @property
    def protocol_version(self):
        return int(self.header['ProtocolVersion'])

    @property
    def record_number(self):
        return int(self.header['RecordNumber'])

    @property
    def device_identifier(self):
        return int(self.header['DeviceIdentifier'])

    @property
    def sonar_model(self):
        return device_identifiers.get(self.device_identifier, 'Unknown')

    def maketime(self):
        return s7ktime_to_posix(self.header['Year'], self.header['Day'], self.header['Hours'], self.header['Minutes'],
                                self.header['Seconds'])

    def decode(self):
        """Calls the correct class to read the data part of the data frame, returns None for unhandled record types"""
        dgram = get_datagram_by_number(self.dtype)
        if dgram is None:
            self.subpack = None
            self.decoded = False
        else:
            self.subpack = dgram(self.datablock, self.time)
            self.subpack.read_optional(self.optional_datablock)
            self.decoded = True
        return self.subpack

    def get_datablock(self):
        """Rebuild the framed record, from the decoded record when there is one, with a freshly computed checksum"""
        if self.subpack is not None:
            return encode(self.dtype, self.subpack, header=self.header)
        return encode(self.dtype, self.datablock, header=self.header, optional_data=self.optional_datablock)

    def __deepcopy__(self, memo):
        duplicate = Datagram(self.get_datablock(), self.start_file_pointer)
        if self.decoded:
            duplicate.decode()
        return duplicate


def check_header(header, span=None):
    """
    Raise FramingError unless the frame header is consistent with a record of span bytes: sync pattern, protocol
    version, declared size and the calendar bounds of the 7KTIME fields.  With span None only the header itself is
    checked, the declared size is not compared to a record span.
    """
    if int(header['SyncPattern']) != SYNC_PATTERN:
        raise FramingError(f'sync pattern {int(header["SyncPattern"]):#010x} is not {SYNC_PATTERN:#010x}')
    if int(header['ProtocolVersion']) == 0:
        raise FramingError('protocol version 0 is not a valid record')
    size = int(header['Size'])
    if size < Datagram.hdr_sz + CHECKSUM_SIZE:
        raise FramingError(f'declared size {size} is smaller than a frame header and checksum')
    if span is not None and size != span:
        raise FramingError(f'declared size {size} does not match the record span of {span} bytes')
    if not 1 <= int(header['Day']) <= 366:
        raise FramingError(f'day of year {int(header["Day"])} out of range')
    seconds = float(header['Seconds'])
    if not 0 <= seconds < 60:
        raise FramingError(f'seconds {seconds} out of range')
    if int(header['Hours']) > 23:
        raise FramingError(f'hour {int(header["Hours"])} out of range')
    if int(header['Minutes']) > 59:
        raise FramingError(f'minute {int(header["Minutes"])} out of range')


def new_header(record_type, utctime=0.0, **header_fields):
    """Build a frame header for record_type, any header field can be overridden by name"""
    hdr = np.zeros(1, dtype=Datagram.hdr_dtype)
    hdr['ProtocolVersion'] = DEFAULT_PROTOCOL_VERSION
    hdr['Offset'] = 60
    hdr['SyncPattern'] = SYNC_PATTERN
    hdr['RecordVersion'] = 1
    hdr['RecordTypeIdentifier'] = int(record_type)
    hdr['DeviceIdentifier'] = 7125
    hdr['Flags'] = 1
    hdr['Year'], hdr['Day'], hdr['Seconds'], hdr['Hours'], hdr['Minutes'] = posix_to_s7ktime(utctime)
    for ky, val in header_fields.items():
        hdr[ky] = val
    return hdr[0]


def encode(record_type, payload, utctime=None, header=None, optional_data=None, **header_fields):
    """
    Build the bytes of a complete framed record.

    Parameters
    ----------
    record_type
        record type identifier, int or RecordKind
    payload
        a decoded record (BaseData subclass) or the raw payload bytes
    utctime
        utc seconds for the header time, when given it replaces the time of a header passed in
    header
        a frame header to start from (e.g. Datagram.header), its identifiers are preserved and so is its time unless
        utctime is given
    optional_data
        raw optional data bytes, defaults to the optional data carried by a decoded payload
    header_fields
        header fields to override by name, e.g. DeviceIdentifier=7125, RecordNumber=12

    Returns
    -------
    bytes
        header, payload, optional data and checksum
    """
    if isinstance(payload, BaseData):
        if optional_data is None:
            optional_data = payload.get_optional_datablock()
        payload = payload.get_datablock()
    payload = bytes(payload)
    optional_data = bytes(optional_data or b'')
    if header is None:
        hdr = new_header(record_type, utctime or 0.0, **header_fields)
    else:
        hdr = np.frombuffer(header.tobytes(), dtype=Datagram.hdr_dtype, count=1).copy()[0]
        if utctime is not None:
            hdr['Year'], hdr['Day'], hdr['Seconds'], hdr['Hours'], hdr['Minutes'] = posix_to_s7ktime(utctime)
        for ky, val in header_fields.items():
            hdr[ky] = val
    hdr['RecordTypeIdentifier'] = int(record_type)
    hdr['Size'] = Datagram.hdr_sz + len(payload) + len(optional_data) + CHECKSUM_SIZE
    hdr['OptionalDataOffset'] = Datagram.hdr_sz + len(payload) if optional_data else 0
    datablock = hdr.tobytes() + payload + optional_data
    return datablock + np.array([compute_checksum(datablock)], dtype='<u4').tobytes()


def decode(fileblock, start_file_pointer=0):
    """
    Validate the frame and decode the payload of one record.

    Unhandled record types are not an error, the returned Datagram has kind None and decoded False.
    Raises FramingError or PayloadError when the bytes are not a valid record.
    """
    datagram = Datagram(fileblock, start_file_pointer)
    datagram.decode()
    return datagram


class BaseMeta(type):
    """metaclass to read the "hdr_dtype" attribute and convert it into usable attribute names"""

    def __new__(cls, name, bases, classdict):
        if 'hdr_dtype' in classdict:
            # map the dtype names to something python can use as a variable name
            classdict['_data_keys'] = {}
            for field in classdict['hdr_dtype'].names:
                nfield = field.replace(" ", "_").replace("/", "_").replace("(", "").replace("}", "").replace("#", "Num")
                classdict['_data_keys'][nfield] = field
            classdict['hdr_sz'] = classdict['hdr_dtype'].itemsize
        return type.__new__(cls, name, bases, classdict)


class BaseData(object, metaclass=BaseMeta):
    """
    Deriving from BaseData reads the fixed part of the payload via numpy into an attribute named "header".  The field
    names of hdr_dtype are also available directly as attributes, mydata.header['PingNumber'] and mydata.PingNumber are
    the same value, and setting mydata.PingNumber writes into the header.

    Records with variable length parts override __init__ to read them (always sized from the count fields decoded in
    the header) and _body_datablock to write them back out.  Whatever is left after the modeled fields is kept in
    "remainder" and re-emitted, so get_datablock returns the original payload byte for byte.

    Optional data (the section after the payload located by the frame header) is handed over with read_optional and
    returned by get_optional_datablock; records that model it override both.
    """
    hdr_dtype = np.dtype([])
    _data_keys = {}
    hdr_sz = 0

    def __init__(self, datablock, utctime=None):
        if len(datablock) < self.hdr_sz:
            raise PayloadError(f'{type(self).__name__}: {len(datablock)} byte payload is shorter than the {self.hdr_sz} byte header')
        self.header = np.frombuffer(datablock[:self.hdr_sz], dtype=self.hdr_dtype, count=1).copy()[0]
        self.time = utctime
        self.remainder = bytes(datablock[self.hdr_sz:])
        self.optional_remainder = b''

    def read_optional(self, datablock):
        self.optional_remainder = bytes(datablock)

    def get_optional_datablock(self):
        return self.optional_remainder

    def _body_datablock(self):
        return b''

    def get_datablock(self):
        return self.header.tobytes() + self._body_datablock() + self.remainder

    def get_display_string(self):
        """ Displays contents of the header to the command window. """
        result = ""
        for name in self.header.dtype.names:
            result += name + ' : ' + str(self.header[name]) + "\n"
        return result

    def __repr__(self):
        return self.get_display_string()

    def __eq__(self, other):
        if type(self) is not type(other):
            return NotImplemented
        return self.get_datablock() == other.get_datablock() and self.get_optional_datablock() == other.get_optional_datablock()

    __hash__ = None

    def __deepcopy__(self, memo):
        # rebuilding from bytes gives the copy its own buffers for every variable length field
        duplicate = type(self)(self.get_datablock(), self.time)
        duplicate.read_optional(self.get_optional_datablock())
        return duplicate

    def __dir__(self):
        """Custom return of attributes since we have a custom getattr function that adds data members"""
        s = list(self.__dict__.keys())
        s.extend(list(self._data_keys.keys()))
        s.extend(dir(self.__class__))
        ns = sorted([v for v in s if v[0] != "_"])
        return ns

    def __getattr__(self, key):  # Get the value from the underlying subfield
        try:
            ky2 = self._data_keys[key]  # try to access the subfield
            return self.__dict__['header'][ky2]
        except KeyError:
            raise AttributeError(key + " not in " + str(self.__class__))

    def __setattr__(self, key, value):
        try:
            ky2 = self._data_keys[key]  # try to access the subfield
        except KeyError:
            super(BaseData, self).__setattr__(key, value)
        else:
            self.header[ky2] = value


def get_datagram_by_number(datagram_number: int):
    try:
        RecordKind(datagram_number)
    except ValueError:
        logger.debug(f'no record class for record type {datagram_number}')
        return None
    return sys.modules[__name__].__dict__[f'Data{datagram_number}']


class Data1000(BaseData):
    """
    Reference point, vehicle reference point offsets from the center of gravity
    """
    hdr_dtype = np.dtype([('XRefPointToGravity', '<f4'), ('YRefPointToGravity', '<f4'), ('ZRefPointToGravity', '<f4'),
                          ('WaterLevelToGravity', '<f4')])


class Data1001(BaseData):
    """
    Uncalibrated sensor offset, meters and radians
    """
    hdr_dtype = np.dtype([('OffsetX', '<f4'), ('OffsetY', '<f4'), ('OffsetZ', '<f4'), ('OffsetRoll', '<f4'),
                          ('OffsetPitch', '<f4'), ('OffsetYaw', '<f4')])


class Data1002(Data1001):
    """
    Calibrated sensor offset, same layout as 1001
    """
    hdr_dtype = Data1001.hdr_dtype


class Data1003(BaseData):
    """
    Position Record, Latitude/Longitude in radians when the PositionTypeFlag is geographic, otherwise grid northing and
    easting in meters.  Older files end before NumberOfSatellites.
    """
    hdr_dtype = np.dtype([('Datum', '<u4'), ('Latency', '<f4'), ('LatitudeNorthing', '<f8'), ('LongitudeEasting', '<f8'),
                          ('Height', '<f8'), ('PositionTypeFlag', 'u1'), ('UtmZone', 'u1'), ('QualityFlag', 'u1'),
                          ('PositioningMethod', 'u1'), ('NumberOfSatellites', 'u1')])
    short_dtype = np.dtype(hdr_dtype.descr[:-1])

    def __init__(self, datablock, utctime=None):
        if len(datablock) < self.hdr_dtype.itemsize:
            self.hdr_dtype = self.short_dtype
            self.hdr_sz = self.hdr_dtype.itemsize
        super(Data1003, self).__init__(datablock, utctime)

    @property
    def is_geographic(self):
        return int(self.PositionTypeFlag) == 0

    @property
    def latitude(self):
        return float(np.rad2deg(self.LatitudeNorthing)) if self.is_geographic else None

    @property
    def longitude(self):
        return float(np.rad2deg(self.LongitudeEasting)) if self.is_geographic else None


class Data1006(BaseData):
    """
    Altitude Record, distance from the vehicle to the seafloor in meters
    """
    hdr_dtype = np.dtype([('Altitude', '<f4')])


class Data1008(BaseData):
    """
    Depth Record, vehicle depth (DepthDescriptor 0) or water depth (1) in meters
    """
    hdr_dtype = np.dtype([('DepthDescriptor', 'u1'), ('CorrectionFlag', 'u1'), ('Reserved', '<u2'), ('Depth', '<f4')])


class Data1009(BaseData):
    """
    Sound Velocity Profile
    """
    hdr_dtype = np.dtype([('PositionFlag', 'u1'), ('ReservedOne', 'u1'), ('ReservedTwo', '<u2'), ('Latitude', '<f8'),
                          ('Longitude', '<f8'), ('NumberOfLayers', '<u4')])
    layer_dtype = np.dtype([('Depth', '<f4'), ('SoundVelocity', '<f4')])

    def __init__(self, datablock, utctime=None):
        super(Data1009, self).__init__(datablock, utctime)
        self.data, pointer = read_array(datablock, self.hdr_sz, self.layer_dtype, self.NumberOfLayers)
        self.remainder = bytes(datablock[pointer:])

    def _body_datablock(self):
        return self.data.tobytes()

    @property
    def depth(self):
        return self.data['Depth']

    @property
    def soundspeed(self):
        return self.data['SoundVelocity']


class Data1010(BaseData):
    """
    CTD datagram
    """
    hdr_dtype = np.dtype([('Frequency', '<f4'), ('SoundVelocitySourceFlag', 'u1'), ('SoundVelocityAlgorithm', 'u1'),
                          ('ConductivityFlag', 'u1'), ('PressureFlag', 'u1'), ('PositionFlag', 'u1'),
                          ('SampleContentValidity', 'u1'), ('Reserved', '<u2'), ('Latitude', '<f8'), ('Longitude', '<f8'),
                          ('SampleRate', '<f4'), ('NumberOfSamples', '<u4')])
    layer_dtype = np.dtype([('ConductivitySalinity', '<f4'), ('WaterTemperature', '<f4'), ('PressureDepth', '<f4'),
                            ('SoundVelocity', '<f4'), ('Absorption', '<f4')])

    def __init__(self, datablock, utctime=None):
        super(Data1010, self).__init__(datablock, utctime)
        self.data, pointer = read_array(datablock, self.hdr_sz, self.layer_dtype, self.NumberOfSamples)
        self.remainder = bytes(datablock[pointer:])

    def _body_datablock(self):
        return self.data.tobytes()


class Data1012(BaseData):
    """
    Roll Pitch Heave Record, radians and meters
    """
    hdr_dtype = np.dtype([('Roll', '<f4'), ('Pitch', '<f4'), ('Heave', '<f4')])


class Data1013(BaseData):
    """
    Heading Record, radians
    """
    hdr_dtype = np.dtype([('Heading', '<f4')])


class Data1015(BaseData):
    """
    Navigation Record
    """
    hdr_dtype = np.dtype([('VerticalReference', 'u1'), ('Latitude', '<f8'), ('Longitude', '<f8'),
                          ('HorizontalPositionAccuracy', '<f4'), ('VesselHeight', '<f4'), ('HeightAccuracy', '<f4'),
                          ('SpeedOverGround', '<f4'), ('CourseOverGround', '<f4'), ('Heading', '<f4')])


class Data1016(BaseData):
    """
    Attitude Record, a burst of attitude samples with millisecond offsets from the record time
    """
    hdr_dtype = np.dtype([('NumberOfDatasets', 'u1')])
    data_dtype = np.dtype([('TimeOffset', '<u2'), ('Roll', '<f4'), ('Pitch', '<f4'), ('Heave', '<f4'), ('Heading', '<f4')])

    def __init__(self, datablock, utctime=None):
        super(Data1016, self).__init__(datablock, utctime)
        self.data, pointer = read_array(datablock, self.hdr_sz, self.data_dtype, self.NumberOfDatasets)
        self.remainder = bytes(datablock[pointer:])

    def _body_datablock(self):
        return self.data.tobytes()

    @property
    def datatimes(self):
        return (self.time or 0.0) + self.data['TimeOffset'] / 1000.0


class Data7000(BaseData):
    """
    Sonar Settings datagram
    """
    hdr_dtype = np.dtype([('SonarID', '<u8'), ('PingNumber', '<u4'), ('MultiPingSequence', '<u2'), ('Frequency', '<f4'),
                          ('SampleRate', '<f4'), ('ReceiverBandwidth', '<f4'), ('TXPulseWidth', '<f4'),
                          ('TXPulseTypeID', '<u4'), ('TXPulseEnvelope', '<u4'), ('TXPulseEnvelopeParameter', '<f4'),
                          ('TXPulseMode', '<u2'), ('TXPulseReserved', '<u2'), ('MaxPingRate', '<f4'), ('PingPeriod', '<f4'),
                          ('RangeSelection', '<f4'), ('PowerSelection', '<f4'), ('GainSelection', '<f4'), ('ControlFlags', '<u4'),
                          ('ProjectorIdentifier', '<u4'), ('ProjectorBeamSteeringAngleVertical', '<f4'),
                          ('ProjectorBeamSteeringAngleHorizontal', '<f4'), ('ProjectorBeamWidthVertical', '<f4'),
                          ('ProjectorBeamWidthHorizontal', '<f4'), ('ProjectorBeamFocalPoint', '<f4'),
                          ('ProjectorBeamWeightingWindowType', '<u4'), ('ProjectorBeamWeightingWindowParameter', '<f4'),
                          ('TransmitFlags', '<u4'), ('HydrophoneIdentifier', '<u4'), ('ReceiveBeamWeightingWindow', '<u4'),
                          ('ReceiveBeamWeightingParamter', '<f4'), ('ReceiveFlags', '<u4'), ('ReceiveBeamWidth', '<f4'),
                          ('BottomDetectionFilterMinRange', '<f4'), ('BottomDetectionFilterMaxRange', '<f4'),
                          ('BottomDetectionFilterMinDepth', '<f4'), ('BottomDetectionFilterMaxDepth', '<f4'),
                          ('Absorption', '<f4'), ('SoundVelocity', '<f4'), ('Spreading', '<f4'), ('ReservedFlag', '<u2')])


class Data7001(BaseData):
    """
    Configuration record, generated on system startup, does not change during operation
    """
    hdr_dtype = np.dtype([('SonarID', '<u8'), ('NumberOfDevices', '<u4')])
    device_dtype = np.dtype([('DeviceIdentifier', '<u4'), ('DeviceDescription', 'S60'), ('DeviceAlphaDataCard', '<u4'),
                             ('DeviceSerialNumber', '<u8'), ('DeviceInfoLength', '<u4')])

    def __init__(self, datablock, utctime=None):
        super(Data7001, self).__init__(datablock, utctime)
        self.devices = []
        pointer = self.hdr_sz
        for _ in range(int(self.NumberOfDevices)):
            device, pointer = read_array(datablock, pointer, self.device_dtype, 1)
            info, pointer = read_array(datablock, pointer, 'S1', int(device['DeviceInfoLength'][0]))
            self.devices.append((device[0], info.tobytes()))
        self.remainder = bytes(datablock[pointer:])

    def _body_datablock(self):
        return b''.join(device.tobytes() + info for device, info in self.devices)

    @property
    def device_descriptions(self):
        return [strip_string(device['DeviceDescription']) for device, info in self.devices]

    @property
    def device_info(self):
        return [strip_string(info) for device, info in self.devices]


class Data7004(BaseData):
    """
    Beam Geometry, per beam steering angles and beam widths (radians) stored one field after another.  The transmit
    delay array was added in later revisions.
    """
    hdr_dtype = np.dtype([('SonarID', '<u8'), ('NumberOfBeams', '<u4')])
    beam_fields = [('BeamVerticalDirectionAngle', '<f4'), ('BeamHorizontalDirectionAngle', '<f4'),
                   ('BeamWidthAlongTrack', '<f4'), ('BeamWidthAcrossTrack', '<f4'), ('TxDelay', '<f4')]

    def __init__(self, datablock, utctime=None):
        super(Data7004, self).__init__(datablock, utctime)
        numbeams = int(self.NumberOfBeams)
        body = len(datablock) - self.hdr_sz
        if body == 20 * numbeams:
            fields = self.beam_fields
        elif body == 16 * numbeams:
            fields = self.beam_fields[:4]
        elif body > 20 * numbeams:
            fields = self.beam_fields
        elif body > 16 * numbeams:
            fields = self.beam_fields[:4]
        else:
            raise PayloadError(f'Data7004: {body} bytes cannot hold {numbeams} beams')
        self.data, pointer = read_field_major(datablock, self.hdr_sz, fields, numbeams)
        self.remainder = bytes(datablock[pointer:])

    def _body_datablock(self):
        return field_major_bytes(self.data)

    @property
    def alongtrack_angles(self):
        return self.data['BeamVerticalDirectionAngle']

    @property
    def acrosstrack_angles(self):
        return self.data['BeamHorizontalDirectionAngle']


bathymetry_optional_dtype = np.dtype([('Frequency', '<f4'), ('Latitude', '<f8'), ('Longitude', '<f8'), ('Heading', '<f4'),
                                      ('HeightSource', 'u1'), ('Tide', '<f4'), ('Roll', '<f4'), ('Pitch', '<f4'),
                                      ('Heave', '<f4'), ('VehicleDepth', '<f4')])
bathymetry_optional_beam_dtype = np.dtype([('Depth', '<f4'), ('AlongTrackDistance', '<f4'), ('AcrossTrackDistance', '<f4'),
                                           ('PointingAngle', '<f4'), ('AzimuthAngle', '<f4')])


class OptionalBathymetryMixin:
    """
    Optional data shared by 7006 and 7027, navigation at transmit time (radians) followed by the sonar computed
    depth, along/across track distance, pointing and azimuth angle for each beam.
    """

    def read_optional(self, datablock):
        self.optional = None
        self.optional_beams = None
        self.optional_remainder = bytes(datablock)
        needed = bathymetry_optional_dtype.itemsize + bathymetry_optional_beam_dtype.itemsize * self.optional_count
        if not datablock:
            return
        if len(datablock) < needed:
            logger.debug(f'{type(self).__name__}: {len(datablock)} bytes of optional data, expected {needed}, kept raw')
            return
        optional, pointer = read_array(datablock, 0, bathymetry_optional_dtype, 1)
        self.optional = optional[0]
        self.optional_beams, pointer = read_array(datablock, pointer, bathymetry_optional_beam_dtype, self.optional_count)
        self.optional_remainder = bytes(datablock[pointer:])

    def get_optional_datablock(self):
        if self.optional is None:
            return self.optional_remainder
        return self.optional.tobytes() + self.optional_beams.tobytes() + self.optional_remainder


class Data7006(OptionalBathymetryMixin, BaseData):
    """
    Bathymetric Data, the core record of a ping.  Range is two way travel time in seconds, per beam fields are stored
    one field after another, the gate limits are missing from older revisions.
    """
    hdr_dtype = np.dtype([('SonarID', '<u8'), ('PingNumber', '<u4'), ('MultiPingSequence', '<u2'), ('NumberOfBeams', '<u4'),
                          ('LayerCompensationFlag', 'u1'), ('SoundVelocityFlag', 'u1'), ('SoundVelocity', '<f4')])
    beam_fields = [('Range', '<f4'), ('Quality', 'u1'), ('Intensity', '<f4'), ('MinGate', '<f4'), ('MaxGate', '<f4')]

    def __init__(self, datablock, utctime=None):
        super(Data7006, self).__init__(datablock, utctime)
        self.optional = None
        self.optional_beams = None
        numbeams = int(self.NumberOfBeams)
        body = len(datablock) - self.hdr_sz
        if body == 17 * numbeams:
            fields = self.beam_fields
        elif body == 9 * numbeams:
            fields = self.beam_fields[:3]
        elif body > 17 * numbeams:
            fields = self.beam_fields
        elif body > 9 * numbeams:
            fields = self.beam_fields[:3]
        else:
            raise PayloadError(f'Data7006: {body} bytes cannot hold {numbeams} beams')
        self.data, pointer = read_field_major(datablock, self.hdr_sz, fields, numbeams)
        self.remainder = bytes(datablock[pointer:])

    @property
    def optional_count(self):
        return int(self.NumberOfBeams)

    def _body_datablock(self):
        return field_major_bytes(self.data)


class Data7007(BaseData):
    """
    Side Scan Record, port then starboard magnitude series of SamplesPerSide samples of NumberOfBytes each
    """
    hdr_dtype = np.dtype([('SonarID', '<u8'), ('PingNumber', '<u4'), ('MultiPingSequence', '<u2'), ('BeamPosition', '<f4'),
                          ('ControlFlags', '<u4'), ('SamplesPerSide', '<u4'), ('NadirDepth', '<u4'), ('Reserved', '<f4', (7,)),
                          ('NumberOfBeams', '<u2'), ('CurrentBeamNumber', '<u2'), ('NumberOfBytes', 'u1'), ('DataTypes', 'u1')])
    optional_dtype = np.dtype([('Frequency', '<f4'), ('Latitude', '<f8'), ('Longitude', '<f8'), ('Heading', '<f4'),
                               ('Altitude', '<f4'), ('Depth', '<f4')])
    sample_types = {1: '<u1', 2: '<u2', 4: '<u4'}

    def __init__(self, datablock, utctime=None):
        super(Data7007, self).__init__(datablock, utctime)
        self.optional = None
        try:
            dtyp = self.sample_types[int(self.NumberOfBytes)]
        except KeyError:
            raise PayloadError(f'Data7007: unsupported sample size {int(self.NumberOfBytes)}')
        numsamples = int(self.SamplesPerSide)
        self.port, pointer = read_array(datablock, self.hdr_sz, dtyp, numsamples)
        self.starboard, pointer = read_array(datablock, pointer, dtyp, numsamples)
        self.remainder = bytes(datablock[pointer:])

    def _body_datablock(self):
        return self.port.tobytes() + self.starboard.tobytes()

    def read_optional(self, datablock):
        self.optional = None
        self.optional_remainder = bytes(datablock)
        if len(datablock) >= self.optional_dtype.itemsize:
            optional, pointer = read_array(datablock, 0, self.optional_dtype, 1)
            self.optional = optional[0]
            self.optional_remainder = bytes(datablock[pointer:])

    def get_optional_datablock(self):
        if self.optional is None:
            return self.optional_remainder
        return self.optional.tobytes() + self.optional_remainder


class Data7008(BaseData):
    """
    DEPRECATED Generic Water Column Data, superseded by 7018 and 7028.  Used here as the legacy per beam snippet source.

    DataSampleSize is a bit field of sample widths: bits 0-3 magnitude, 4-7 phase, 8-11 I and Q.  RowColumnFlag 0 stores
    all the samples of a beam before the next beam, 1 stores sample one of every beam, then sample two...
    """
    hdr_dtype = np.dtype([('SonarID', '<u8'), ('PingNumber', '<u4'), ('MultiPingSequence', '<u2'),
                          ('NumberOfBeams', '<u2'), ('ReservedOne', '<u2'), ('Samples', '<u4'), ('RecordSubsetFlag', 'u1'),
                          ('RowColumnFlag', 'u1'), ('ReservedTwo', '<u2'), ('DataSampleSize', '<u4')])
    descriptor_dtype = np.dtype([('BeamNumber', '<u2'), ('FirstSample', '<u4'), ('LastSample', '<u4')])
    magnitude_types = {0: None, 1: '<u1', 2: '<u2', 3: '<u4'}
    phase_types = {0: None, 1: '<i1', 2: '<i2', 3: '<i4'}
    iq_types = {0: None, 1: '<i2', 2: '<i4'}

    def __init__(self, datablock, utctime=None):
        super(Data7008, self).__init__(datablock, utctime)
        numbeams = int(self.NumberOfBeams)
        self.descriptors, pointer = read_array(datablock, self.hdr_sz, self.descriptor_dtype, numbeams)
        self.sample_dtype = self._sample_dtype()
        self.beams = []
        windows = self.descriptors['LastSample'].astype(np.int64) - self.descriptors['FirstSample'].astype(np.int64) + 1
        if np.any(windows < 0):
            raise PayloadError('Data7008: beam descriptor with last sample before first sample')
        if self.sample_dtype.itemsize == 0:
            self.beams = [np.zeros(0, dtype=self.sample_dtype) for _ in range(numbeams)]
        elif int(self.RowColumnFlag) == 0:
            for window in windows:
                samples, pointer = read_array(datablock, pointer, self.sample_dtype, window)
                self.beams.append(samples)
        else:
            if numbeams and np.any(windows != windows[0]):
                raise PayloadError('Data7008: sample major layout needs the same sample window for every beam')
            nsamples = int(windows[0]) if numbeams else 0
            samples, pointer = read_array(datablock, pointer, self.sample_dtype, nsamples * numbeams)
            samples = samples.reshape(nsamples, numbeams)
            self.beams = [samples[:, i].copy() for i in range(numbeams)]
        self.remainder = bytes(datablock[pointer:])

    def _sample_dtype(self):
        flags = int(self.DataSampleSize)
        try:
            magnitude = self.magnitude_types[flags & 0xF]
            phase = self.phase_types[(flags >> 4) & 0xF]
            iq = self.iq_types[(flags >> 8) & 0xF]
        except KeyError:
            raise PayloadError(f'Data7008: unsupported data sample size flags {flags:#x}')
        fields = []
        if magnitude:
            fields.append(('Magnitude', magnitude))
        if phase:
            fields.append(('Phase', phase))
        if iq:
            fields.extend([('I', iq), ('Q', iq)])
        return np.dtype(fields)

    def _body_datablock(self):
        if int(self.RowColumnFlag) == 0 or not self.beams:
            return self.descriptors.tobytes() + b''.join(beam.tobytes() for beam in self.beams)
        return self.descriptors.tobytes() + np.stack(self.beams, axis=1).tobytes()

    def magnitude(self, beam_index):
        """Amplitude series of a beam, from the I/Q pair when magnitude is not recorded"""
        samples = self.beams[beam_index]
        if 'Magnitude' in samples.dtype.names:
            return samples['Magnitude'].astype(np.float64)
        if 'I' in samples.dtype.names:
            return np.hypot(samples['I'].astype(np.float64), samples['Q'].astype(np.float64))
        return np.zeros(samples.size)


class Data7017(BaseData):
    """
    Detection Data Setup, how the detections of the matching 7006 were made.  Per detection items are DataBlockSize
    bytes, the uncertainty field is missing from older revisions.
    """
    hdr_dtype = np.dtype([('SonarID', '<u8'), ('PingNumber', '<u4'), ('MultiPingSequence', '<u2'), ('NumberOfBeams', '<u4'),
                          ('DataBlockSize', '<u4'), ('DetectionAlgorithm', 'u1'), ('Flags', '<u4'), ('MinimumDepth', '<f4'),
                          ('MaximumDepth', '<f4'), ('MinimumRange', '<f4'), ('MaximumRange', '<f4'),
                          ('MinimumNadirSearch', '<f4'), ('MaximumNadirSearch', '<f4'), ('AutomaticFilterWindow', 'u1'),
                          ('AppliedRoll', '<f4'), ('DepthGateTilt', '<f4'), ('NadirDepth', '<f4'), ('Reserved', '<u4', (13,))])
    item_fields = [('BeamDescriptor', '<u2'), ('DetectionPoint', '<f4'), ('Flags', '<u4'), ('AutoLimitsMinSample', '<u4'),
                   ('AutoLimitsMaxSample', '<u4'), ('UserLimitsMinSample', '<u4'), ('UserLimitsMaxSample', '<u4'),
                   ('Quality', '<u4'), ('Uncertainty', '<f4')]

    def __init__(self, datablock, utctime=None):
        super(Data7017, self).__init__(datablock, utctime)
        itemsize = int(self.DataBlockSize)
        if itemsize >= np.dtype(self.item_fields).itemsize:
            dtyp = padded_dtype(self.item_fields, itemsize)
        elif itemsize >= np.dtype(self.item_fields[:-1]).itemsize:
            dtyp = padded_dtype(self.item_fields[:-1], itemsize)
        else:
            raise PayloadError(f'Data7017: detection block size {itemsize} is smaller than any known layout')
        self.data, pointer = read_array(datablock, self.hdr_sz, dtyp, self.NumberOfBeams)
        self.remainder = bytes(datablock[pointer:])

    def _body_datablock(self):
        return self.data.tobytes()

    @property
    def magnitude_detect(self):
        return (self.data['Flags'] & (1 << 10)) != 0

    @property
    def phase_detect(self):
        return (self.data['Flags'] & (1 << 11)) != 0


class Data7027(OptionalBathymetryMixin, BaseData):
    """
    Raw Detection Data

    DetectionPoint is a fractional sample number, so two way travel time is DetectionPoint / SamplingRate.  RxAngle and
    TxAngle are in radians.  Three item layouts exist (DataFieldSize 22, 26 and 34 bytes), larger field sizes keep the
    extra bytes as padding.
    """
    hdr_dtype = np.dtype([('SonarID', '<u8'), ('PingNumber', '<u4'), ('MultiPingSequence', '<u2'),
                          ('Detections', '<u4'), ('DataFieldSize', '<u4'), ('DetectionAlgorithm', 'u1'), ('Flags', '<u4'),
                          ('SamplingRate', '<f4'), ('TxAngle', '<f4'), ('AppliedRoll', '<f4'), ('Reserved', '<u4', (15,))])
    # from reson dfd 2.20
    evenolderdetect_fields = [('BeamDescriptor', '<u2'), ('DetectionPoint', '<f4'), ('RxAngle', '<f4'),
                              ('DetectionFlags', '<u4'), ('Quality', '<u4'), ('Uncertainty', '<f4')]
    # from reson dfd 2.41
    olddetect_fields = evenolderdetect_fields + [('SignalStrength', '<f4')]
    newdetect_fields = evenolderdetect_fields + [('Intensity', '<f4'), ('MinLimit', '<f4'), ('MaxLimit', '<f4')]

    def __init__(self, datablock, utctime=None):
        super(Data7027, self).__init__(datablock, utctime)
        self.optional = None
        self.optional_beams = None
        itemsize = int(self.DataFieldSize)
        for fields in [self.newdetect_fields, self.olddetect_fields, self.evenolderdetect_fields]:
            if itemsize >= np.dtype(fields).itemsize:
                dtyp = padded_dtype(fields, itemsize)
                break
        else:
            raise PayloadError(f'Data7027: Unable to decode datagram, data field size {itemsize} matches no known layout')
        self.data, pointer = read_array(datablock, self.hdr_sz, dtyp, self.Detections)
        self.remainder = bytes(datablock[pointer:])

    @property
    def optional_count(self):
        return int(self.Detections)

    def _body_datablock(self):
        return self.data.tobytes()

    @property
    def traveltime(self):
        return self.data['DetectionPoint'] / self.SamplingRate

    @property
    def signal_strength(self):
        for name in ('SignalStrength', 'Intensity'):
            if name in self.data.dtype.names:
                return self.data[name]
        return None


class Data7028(BaseData):
    """
    Snippet Data, sonar snippet imagery data.  Nothing follows the header when ErrorFlags is set, sample series are u2
    unless bit 0 of Flags selects u4.
    """
    hdr_dtype = np.dtype([('SonarID', '<u8'), ('PingNumber', '<u4'), ('MultiPingSequence', '<u2'),
                          ('Detections', '<u2'), ('ErrorFlags', 'u1'), ('ControlFlags', 'u1'), ('Flags', '<u4'),
                          ('SamplingRate', '<f4'), ('Reserved', '<u4', (5,))])
    descriptor_dtype = np.dtype([('BeamDescriptor', '<u2'), ('BeginSample', '<u4'), ('DetectionSample', '<u4'),
                                 ('EndSample', '<u4')])

    def __init__(self, datablock, utctime=None):
        super(Data7028, self).__init__(datablock, utctime)
        self.descriptor = np.zeros(0, dtype=self.descriptor_dtype)
        self.snippets = []
        pointer = self.hdr_sz
        if int(self.ErrorFlags) == 0:
            self.descriptor, pointer = read_array(datablock, pointer, self.descriptor_dtype, self.Detections)
            windows = self.descriptor['EndSample'].astype(np.int64) - self.descriptor['BeginSample'].astype(np.int64) + 1
            if np.any(windows < 0):
                raise PayloadError('Data7028: snippet with end sample before begin sample')
            for window in windows:
                series, pointer = read_array(datablock, pointer, self.sample_type, window)
                self.snippets.append(series)
        self.remainder = bytes(datablock[pointer:])

    @property
    def sample_type(self):
        return '<u4' if int(self.Flags) & 1 else '<u2'

    def _body_datablock(self):
        if int(self.ErrorFlags) != 0:
            return b''
        return self.descriptor.tobytes() + b''.join(snippet.tobytes() for snippet in self.snippets)


class Data7030(BaseData):
    """
    Sonar Installation Parameters, offsets in meters (Reson frame, x starboard, y forward, z up) and angles in radians
    """
    hdr_dtype = np.dtype([('Frequency', '<f4'), ('LengthFirmwareVersion', '<u2'), ('FirmwareVersion', '128u1'), ('LengthSoftwareVersion', '<u2'),
                          ('SoftwareVersion', '128u1'), ('LengthSevenkSoftwareVersion', '<u2'), ('SevenkSoftwareVersion', '128u1'),
                          ('LengthProtocolVersion', '<u2'), ('ProtocolVersion', '128u1'), ('TransmitX', '<f4'), ('TransmitY', '<f4'),
                          ('TransmitZ', '<f4'), ('TransmitRoll', '<f4'), ('TransmitPitch', '<f4'), ('TransmitHeading', '<f4'),
                          ('ReceiveX', '<f4'), ('ReceiveY', '<f4'), ('ReceiveZ', '<f4'), ('ReceiveRoll', '<f4'), ('ReceivePitch', '<f4'),
                          ('ReceiveHeading', '<f4'), ('MotionX', '<f4'), ('MotionY', '<f4'), ('MotionZ', '<f4'), ('MotionRoll', '<f4'),
                          ('MotionPitch', '<f4'), ('MotionHeading', '<f4'), ('MotionTimeDelay', '<u2'), ('PositionX', '<f4'),
                          ('PositionY', '<f4'), ('PositionZ', '<f4'), ('PositionTimeDelay', '<u2'), ('Waterline', '<f4')])

    @property
    def firmware_version(self):
        return strip_string(self.FirmwareVersion)

    @property
    def software_version(self):
        return strip_string(self.SoftwareVersion)

    @property
    def sevenk_version(self):
        return strip_string(self.SevenkSoftwareVersion)

    @property
    def protocol_version(self):
        return strip_string(self.ProtocolVersion)


class Data7051(BaseData):
    """
    System Event Message, free text (comments are EventIdentifier 1).  MessageLength counts the NUL terminated message
    padded to an even number of bytes.
    """
    hdr_dtype = np.dtype([('SonarID', '<u8'), ('EventID', '<u2'), ('MessageLength', '<u2'), ('EventIdentifier', '<u2')])

    def __init__(self, datablock, utctime=None):
        super(Data7051, self).__init__(datablock, utctime)
        message, pointer = read_array(datablock, self.hdr_sz, 'S1', self.MessageLength)
        self.message_bytes = message.tobytes()
        self.remainder = bytes(datablock[pointer:])

    def _body_datablock(self):
        return self.message_bytes

    @property
    def message(self):
        return strip_string(self.message_bytes)

    @classmethod
    def from_comment(cls, text, sonar_id=0, event_identifier=0):
        """Build a comment record, the message is NUL terminated and padded out to an even length"""
        raw = text.encode()
        msglen = len(raw) + 1
        msglen += msglen % 2
        header = np.zeros(1, dtype=cls.hdr_dtype)
        header['SonarID'] = sonar_id
        header['EventID'] = 1
        header['MessageLength'] = msglen
        header['EventIdentifier'] = event_identifier
        return cls(header.tobytes() + raw.ljust(msglen, b'\x00'))


class Data7058(BaseData):
    """
    Snippet Backscattering Strength, calibrated snippets in dB.  Descriptors for every beam are followed by the
    backscatter series of every beam, then the footprint series when bit 6 of ControlFlags is set.
    """
    hdr_dtype = np.dtype([('SonarID', '<u8'), ('PingNumber', '<u4'), ('MultiPingSequence', '<u2'), ('NumberOfBeams', '<u2'),
                          ('ErrorFlag', 'u1'), ('ControlFlags', '<u4'), ('Absorption', '<f4'), ('Reserved', '<u4', (6,))])
    descriptor_dtype = np.dtype([('BeamDescriptor', '<u2'), ('BeginSample', '<u4'), ('BottomSample', '<u4'),
                                 ('EndSample', '<u4')])

    def __init__(self, datablock, utctime=None):
        super(Data7058, self).__init__(datablock, utctime)
        self.descriptor, pointer = read_array(datablock, self.hdr_sz, self.descriptor_dtype, self.NumberOfBeams)
        windows = self.descriptor['EndSample'].astype(np.int64) - self.descriptor['BeginSample'].astype(np.int64) + 1
        if np.any(windows < 0):
            raise PayloadError('Data7058: snippet with end sample before begin sample')
        self.backscatter = []
        self.footprints = []
        for window in windows:
            series, pointer = read_array(datablock, pointer, '<f4', window)
            self.backscatter.append(series)
        if self.has_footprints:
            for window in windows:
                series, pointer = read_array(datablock, pointer, '<f4', window)
                self.footprints.append(series)
        self.remainder = bytes(datablock[pointer:])

    @property
    def has_footprints(self):
        return bool(int(self.ControlFlags) & (1 << 6))

    def _body_datablock(self):
        return self.descriptor.tobytes() + b''.join(s.tobytes() for s in self.backscatter) + b''.join(s.tobytes() for s in self.footprints)


class Data7200(BaseData):
    """
    File header, always the first record of a 7k file
    """
    hdr_dtype = np.dtype([('FileIdentifier', '<u8', (2,)), ('VersionNumber', '<u2'), ('Reserved', '<u2'), ('SessionIdentifier', '<u8', (2,)),
                          ('RecordDataSize', '<u4'), ('NumberOfDevices', '<u4'), ('RecordingName', 'S64'),
                          ('RecordingProgramVersion', 'S16'), ('UserDefinedName', 'S64'), ('Notes', 'S128')])
    device_dtype = np.dtype([('DeviceIdentifier', '<u4'), ('SystemEnumerator', '<u2')])

    def __init__(self, datablock, utctime=None):
        super(Data7200, self).__init__(datablock, utctime)
        pointer = self.hdr_sz
        self.devices = np.zeros(0, dtype=self.device_dtype)
        if int(self.RecordDataSize) != 0:
            self.devices, pointer = read_array(datablock, pointer, self.device_dtype, self.NumberOfDevices)
        self.remainder = bytes(datablock[pointer:])

    def _body_datablock(self):
        return self.devices.tobytes()

    @property
    def recording_name(self):
        return strip_string(self.RecordingName)

    @property
    def user_defined_name(self):
        return strip_string(self.UserDefinedName)

    @property
    def notes(self):
        return strip_string(self.Notes)


class Data7300(BaseData):
    """
    File Catalog Record
    """
    hdr_dtype = np.dtype([('Size', '<u4'), ('Version', '<u2'), ('NumberofRecords', '<u4'), ('Reserved', '<u4')])
    data_dtype = np.dtype([('Size', '<u4'), ('Offset', '<u8'), ('RecordType', '<u2'), ('DeviceIdentifier', '<u2'),
                           ('SystemEnumerator', '<u2'), ('Year', '<u2'), ('Day', '<u2'), ('Seconds', '<f4'),
                           ('Hours', 'u1'), ('Minutes', 'u1'), ('RecordCount', '<u4'), ('Reserved', '<u2', (8,))])

    def __init__(self, datablock, utctime=None):
        super(Data7300, self).__init__(datablock, utctime)
        self.data, pointer = read_array(datablock, self.hdr_sz, self.data_dtype, self.NumberofRecords)
        self.remainder = bytes(datablock[pointer:])

    def _body_datablock(self):
        return self.data.tobytes()


class Data7503(BaseData):
    """
    Remote Control Sonar Settings Datagram, one is produced with each ping.  Older versions end before MaxImageHeight
    and BytesPerPixel.
    """
    hdr_dtype = np.dtype([('SonarID', '<u8'), ('PingNumber', '<u4'), ('Frequency', '<f4'),
                          ('SampleRate', '<f4'), ('ReceiverBandwidth', '<f4'), ('TXPulseWidth', '<f4'),
                          ('TXPulseTypeID', '<u4'), ('TXPulseEnvelope', '<u4'), ('TXPulseEnvelopeParameter', '<f4'),
                          ('TXPulseMode', '<u2'), ('TXPulseReserved', '<u2'), ('MaxPingRate', '<f4'), ('PingPeriod', '<f4'),
                          ('RangeSelection', '<f4'), ('PowerSelection', '<f4'), ('GainSelection', '<f4'), ('ControlFlags', '<u4'),
                          ('ProjectorIdentifier', '<u4'), ('ProjectorBeamSteeringAngleVertical', '<f4'),
                          ('ProjectorBeamSteeringAngleHorizontal', '<f4'), ('ProjectorBeamWidthVertical', '<f4'),
                          ('ProjectorBeamWidthHorizontal', '<f4'), ('ProjectorBeamFocalPoint', '<f4'),
                          ('ProjectorBeamWeightingWindowType', '<u4'), ('ProjectorBeamWeightingWindowParameter', '<f4'),
                          ('TransmitFlags', '<u4'), ('HydrophoneIdentifier', '<u4'), ('ReceiveBeamWeightingWindow', '<u4'),
                          ('ReceiveBeamWeightingParamter', '<f4'), ('ReceiveFlags', '<u4'),
                          ('BottomDetectionFilterMinRange', '<f4'), ('BottomDetectionFilterMaxRange', '<f4'),
                          ('BottomDetectionFilterMinDepth', '<f4'), ('BottomDetectionFilterMaxDepth', '<f4'),
                          ('Absorption', '<f4'), ('SoundVelocity', '<f4'), ('Spreading', '<f4'), ('VernierOperationMode', 'u1'),
                          ('AutomaticFilterWindow', 'u1'), ('TxArrayPositionOffsetX', '<f4'), ('TxArrayPositionOffsetY', '<f4'),
                          ('TxArrayPositionOffsetZ', '<f4'), ('HeadTiltX', '<f4'), ('HeadTiltY', '<f4'), ('HeadTiltZ', '<f4'),
                          ('PingState', '<u4'), ('BeamSpacingMode', '<u2'), ('SonarSourceMode', '<u2'), ('AdaptiveGateBottomMinDepth', '<f4'),
                          ('AdaptiveGateBottomMaxDepth', '<f4'), ('TriggerOutWidth', '<f8'), ('TriggerOutOffset', '<f8'),
                          ('EightSeriesProjectorSelection', '<u2'), ('ReservedOne', '<u4', (2,)), ('EightSeriesAlternateGain', '<f4'),
                          ('VernierFilter', 'u1'), ('ReservedTwo', 'u1'), ('CustomBeams', '<u2'), ('CoverageAngle', '<f4'),
                          ('CoverageMode', 'u1'), ('QualityFilterFlags', 'u1'), ('HorizontalReceiverBeamSteeringAngle', '<f4'),
                          ('FlexModeSectorCoverage', '<f4'), ('FlexModeSectorSteering', '<f4'), ('ConstantSpacing', '<f4'),
                          ('BeamModeSelection', '<u2'), ('DepthGateTilt', '<f4'), ('AppliedFrequency', '<f4'),
                          ('ElementNumber', '<u4'), ('MaxImageHeight', '<u4'), ('BytesPerPixel', '<u4')])
    short_dtype = np.dtype(hdr_dtype.descr[:-2])

    def __init__(self, datablock, utctime=None):
        if len(datablock) < self.hdr_dtype.itemsize:  # some versions will not have the last two entries
            self.hdr_dtype = self.short_dtype
            self.hdr_sz = self.hdr_dtype.itemsize
        super(Data7503, self).__init__(datablock, utctime)


class Data7610(BaseData):
    """
    Sound Velocity at the transducer (m/s), temperature and pressure were added in later revisions
    """
    hdr_dtype = np.dtype([('SoundVelocity', '<f4'), ('Temperature', '<f4'), ('Pressure', '<f4')])
    short_dtype = np.dtype(hdr_dtype.descr[:1])

    def __init__(self, datablock, utctime=None):
        if len(datablock) < self.hdr_dtype.itemsize:
            self.hdr_dtype = self.short_dtype
            self.hdr_sz = self.hdr_dtype.itemsize
        super(Data7610, self).__init__(datablock, utctime)
