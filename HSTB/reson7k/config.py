"""
Processing options and installation geometry.

Installation geometry uses the vessel frame of the solver (x forward, y starboard, z down, meters) with mount angles
in degrees.  It is frozen once built, either by hand or from the 7030 installation parameters record.
"""

import enum
from typing import Optional

import numpy as np
from pydantic import BaseModel, Field

DEFAULT_SOUND_SPEED = 1500.0
DEFAULT_PIXEL_COUNT = 1024
MAX_RECORD_SIZE = 64 * 1024 * 1024


class BackscatterSource(enum.IntEnum):
    """Record types a mosaic can be built from, in default priority order"""
    SNIPPET_BACKSCATTER = 7058
    SNIPPET = 7028
    GENERIC_WATER_COLUMN = 7008
    SIDE_SCAN = 7007


class MountOffsets(BaseModel):
    """Lever arm and installation angles of one sensor"""
    model_config = {"frozen": True}

    x: float = Field(0.0, description="forward offset from the reference point (m)")
    y: float = Field(0.0, description="starboard offset from the reference point (m)")
    z: float = Field(0.0, description="downward offset from the reference point (m)")
    roll: float = Field(0.0, description="installation roll, starboard down positive (deg)")
    pitch: float = Field(0.0, description="installation pitch, bow up positive (deg)")
    heading: float = Field(0.0, description="installation heading, clockwise positive (deg)")

    @property
    def angles(self):
        return self.roll, self.pitch, self.heading


class InstallationGeometry(BaseModel):
    """Static sensor installation of a session"""
    model_config = {"frozen": True}

    transmitter: MountOffsets = Field(default_factory=MountOffsets)
    receiver: MountOffsets = Field(default_factory=MountOffsets)
    motion_sensor: MountOffsets = Field(default_factory=MountOffsets)
    position_sensor: MountOffsets = Field(default_factory=MountOffsets)
    waterline: float = Field(0.0, description="downward offset of the waterline from the reference point (m)")
    motion_time_delay: float = Field(0.0, description="motion sensor latency (s)")
    position_time_delay: float = Field(0.0, description="position sensor latency (s)")

    @property
    def transducer_depth(self):
        """Depth below the waterline of the midpoint of the arrays"""
        return 0.5 * (self.transmitter.z + self.receiver.z) - self.waterline

    @classmethod
    def from_installation_record(cls, record):
        """
        Build from a decoded 7030 record.  Reson stores x starboard, y forward, z up in meters and angles in radians,
        time delays in milliseconds.
        """
        def mount(prefix, with_angles=True):
            vals = {'x': float(record.header[prefix + 'Y']), 'y': float(record.header[prefix + 'X']),
                    'z': -float(record.header[prefix + 'Z'])}
            if with_angles:
                vals.update({'roll': float(np.rad2deg(record.header[prefix + 'Roll'])),
                             'pitch': float(np.rad2deg(record.header[prefix + 'Pitch'])),
                             'heading': float(np.rad2deg(record.header[prefix + 'Heading']))})
            return MountOffsets(**vals)

        return cls(transmitter=mount('Transmit'), receiver=mount('Receive'), motion_sensor=mount('Motion'),
                   position_sensor=mount('Position', with_angles=False), waterline=-float(record.Waterline),
                   motion_time_delay=float(record.MotionTimeDelay) / 1000.0,
                   position_time_delay=float(record.PositionTimeDelay) / 1000.0)


class ProcessingOptions(BaseModel):
    """Knobs of the solver and mosaic builder, everything defaults to automatic / off"""

    pixel_size: Optional[float] = Field(None, gt=0, description="mosaic pixel size (m), None adapts it per ping")
    swath_width: Optional[float] = Field(None, gt=0, lt=90, description="half swath angle (deg), None derives it from the beams")
    backscatter_source: Optional[BackscatterSource] = Field(None, description="record to build the mosaic from, None uses the priority order")
    sound_speed: Optional[float] = Field(None, gt=0, description="corrected surface sound speed (m/s) used for ranges and Snell rescale")
    snell_factor: Optional[float] = Field(None, gt=0, description="steering angle rescale factor, overrides the sound speed ratio")
    zero_attitude_correction: bool = Field(False, description="solve as if roll and pitch were zero")
    zero_alongtrack_angle: bool = Field(False, description="solve as if every beam was steered straight across track")
    pixel_count: int = Field(DEFAULT_PIXEL_COUNT, ge=2, description="number of mosaic pixels")
    gap_interpolation: int = Field(1, ge=0, description="longest run of null pixels filled by interpolation")
    receive_beamwidth: float = Field(1.0, gt=0, description="across track beam width (deg) when no beam geometry is available")
    min_history_samples: int = Field(2, ge=1, description="history samples needed to interpolate attitude at beam return time")
    signal_threshold: Optional[float] = Field(None, description="signal strength below which beams are flagged automatically")
    default_sound_speed: float = Field(DEFAULT_SOUND_SPEED, gt=0, description="sound speed when no record supplies one (m/s)")
    max_record_size: int = Field(MAX_RECORD_SIZE, gt=68, description="largest declared record size accepted by the framer")
