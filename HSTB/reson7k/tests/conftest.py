import pytest
import numpy

from HSTB.reson7k import s7k
from HSTB.reson7k.s7k import RecordKind

T0 = 1600000000.0  # 2020-09-13


class RecordFactory:
    """Builds decoded records and framed record bytes with the codec's own encoder"""
    t0 = T0

    @staticmethod
    def build(cls, body=b'', **fields):
        header = numpy.zeros(1, dtype=cls.hdr_dtype)
        for ky, val in fields.items():
            header[ky] = val
        return cls(header.tobytes() + body)

    @staticmethod
    def frame(kind, record, utctime=T0, **header_fields):
        return s7k.encode(kind, record, utctime=utctime, **header_fields)

    def bathymetry(self, ping_number, ranges, quality=15, intensity=100.0, sound_velocity=1500.0, multi_ping=0):
        numbeams = len(ranges)
        data = numpy.zeros(numbeams, dtype=s7k.Data7006.beam_fields)
        data['Range'] = ranges
        data['Quality'] = quality
        data['Intensity'] = intensity
        return self.build(s7k.Data7006, s7k.field_major_bytes(data), PingNumber=ping_number, MultiPingSequence=multi_ping,
                          NumberOfBeams=numbeams, SoundVelocity=sound_velocity)

    def beam_geometry(self, acrosstrack_deg, alongtrack_deg=None, beamwidth_deg=1.0):
        numbeams = len(acrosstrack_deg)
        data = numpy.zeros(numbeams, dtype=s7k.Data7004.beam_fields)
        data['BeamHorizontalDirectionAngle'] = numpy.deg2rad(acrosstrack_deg)
        if alongtrack_deg is not None:
            data['BeamVerticalDirectionAngle'] = numpy.deg2rad(alongtrack_deg)
        data['BeamWidthAlongTrack'] = numpy.deg2rad(beamwidth_deg)
        data['BeamWidthAcrossTrack'] = numpy.deg2rad(beamwidth_deg)
        return self.build(s7k.Data7004, s7k.field_major_bytes(data), NumberOfBeams=numbeams)

    def settings(self, ping_number, sample_rate=1000.0, sound_velocity=1500.0, multi_ping=0):
        return self.build(s7k.Data7000, PingNumber=ping_number, MultiPingSequence=multi_ping, SampleRate=sample_rate,
                          SoundVelocity=sound_velocity)

    def snippets(self, ping_number, beams, sample_rate=1000.0, multi_ping=0):
        """beams is a list of (beam number, begin sample, detection sample, amplitudes)"""
        descriptor = numpy.zeros(len(beams), dtype=s7k.Data7028.descriptor_dtype)
        series = []
        for i, (beam, begin, detect, amplitudes) in enumerate(beams):
            descriptor[i] = (beam, begin, detect, begin + len(amplitudes) - 1)
            series.append(numpy.asarray(amplitudes, dtype='<u2').tobytes())
        return self.build(s7k.Data7028, descriptor.tobytes() + b''.join(series), PingNumber=ping_number,
                          MultiPingSequence=multi_ping, Detections=len(beams), SamplingRate=sample_rate)

    def raw_detection(self, ping_number, beams, detection_points, rx_angles_deg, sample_rate=1000.0, quality=3, flags=1,
                      tx_angle_deg=0.0, multi_ping=0):
        data = numpy.zeros(len(beams), dtype=s7k.Data7027.newdetect_fields)
        data['BeamDescriptor'] = beams
        data['DetectionPoint'] = detection_points
        data['RxAngle'] = numpy.deg2rad(rx_angles_deg)
        data['DetectionFlags'] = flags
        data['Quality'] = quality
        data['Intensity'] = 50.0
        return self.build(s7k.Data7027, data.tobytes(), PingNumber=ping_number, MultiPingSequence=multi_ping,
                          Detections=len(beams), DataFieldSize=data.dtype.itemsize, SamplingRate=sample_rate,
                          TxAngle=numpy.deg2rad(tx_angle_deg))

    def ping_bytes(self, ping_number, ranges, acrosstrack_deg, utctime=T0, **kwargs):
        """A settings, beam geometry and bathymetry record for one ping"""
        return (self.frame(RecordKind.SONAR_SETTINGS, self.settings(ping_number), utctime)
                + self.frame(RecordKind.BEAM_GEOMETRY, self.beam_geometry(acrosstrack_deg), utctime)
                + self.frame(RecordKind.BATHYMETRY, self.bathymetry(ping_number, ranges, **kwargs), utctime))


@pytest.fixture(scope="module")
def records():
    return RecordFactory()
