"""
Beam quality flags.

The 7006 quality byte has meant different things over the life of the 7k protocol, so the raw value is rewritten
into a single processed layout before use:

    bits 0-3  sonar quality as recorded (bit 0 brightness, bit 1 colinearity, bit 2 amplitude, bit 3 phase)
    bit 4     amplitude detection
    bit 5     phase detection
    bit 6     flagged by the sonar (or automatically on signal strength)
    bit 7     flagged manually

Each epoch is a separate rule; the epochs are picked from the record protocol version and the record year.
"""

import enum

import numpy as np

AMPLITUDE = 16
PHASE = 32
FLAGGED_SONAR = 64
FLAGGED_MANUAL = 128

# two way travel time, seconds, below which an old style detection is treated as amplitude only
LEGACY_PHASE_RANGE = 0.007


class QualityEpoch(enum.Enum):
    LEGACY_V4 = 'legacy_v4'
    EARLY_V5 = 'early_v5'
    INTERIM_V5 = 'interim_v5'
    MODERN = 'modern'


class BeamFlag(enum.IntEnum):
    NULL = 0
    GOOD = 1
    FLAGGED_SONAR = 2
    FLAGGED_MANUAL = 3


def quality_epoch(version, year):
    """Pick the quality rule for a record of the given protocol version and year"""
    if version < 5:
        return QualityEpoch.LEGACY_V4
    if version == 5 and year < 2006:
        return QualityEpoch.EARLY_V5
    if version == 5 and year < 2008:
        return QualityEpoch.INTERIM_V5
    return QualityEpoch.MODERN


def _legacy_v4(raw, traveltime, signal, threshold):
    quality = raw.copy()
    low = raw < 16
    quality[low & (traveltime > LEGACY_PHASE_RANGE)] = 23
    quality[low & (traveltime > 0) & (traveltime <= LEGACY_PHASE_RANGE)] = 20
    quality[low & ~(traveltime > 0)] = 0
    return quality


def _early_v5(raw, traveltime, signal, threshold):
    quality = raw.copy()
    quality[raw == 8] = 47
    quality[raw == 4] = 31
    return quality


def _interim_v5(raw, traveltime, signal, threshold):
    quality = raw.copy()
    quality[raw == 4] = 47
    quality[raw == 2] = 31
    return quality


def _modern(raw, traveltime, signal, threshold):
    quality = raw & 15
    quality = np.where(quality & 8, quality + PHASE, np.where(quality & 4, quality + AMPLITUDE, quality))
    quality = np.where((raw & 3) < 3, quality + FLAGGED_SONAR, quality)
    if threshold is not None and signal is not None:
        weak = (np.asarray(signal) < threshold) & ((quality & FLAGGED_SONAR) == 0)
        quality = np.where(weak, quality + FLAGGED_SONAR, quality)
    return quality


epoch_rules = {QualityEpoch.LEGACY_V4: _legacy_v4,
               QualityEpoch.EARLY_V5: _early_v5,
               QualityEpoch.INTERIM_V5: _interim_v5,
               QualityEpoch.MODERN: _modern}


def recompute_quality(raw, version, year, traveltime=None, signal=None, threshold=None):
    """
    Rewrite raw sonar quality values into the processed quality layout

    Parameters
    ----------
    raw
        array of raw quality values, 7006 quality bytes or values built with detection_quality
    version
        record protocol version
    year
        record year
    traveltime
        two way travel time per beam in seconds, only used by the version 4 rule
    signal
        signal strength per beam, only used when a threshold is given
    threshold
        signal strength below which modern records are flagged automatically, None disables the auto flag

    Returns
    -------
    np.ndarray
        uint8 processed quality per beam
    """
    raw = np.asarray(raw).astype(np.int64)
    if traveltime is None:
        traveltime = np.zeros(raw.shape)
    rule = epoch_rules[quality_epoch(version, year)]
    return rule(raw, np.asarray(traveltime, dtype=np.float64), signal, threshold).astype(np.uint8)


def detection_quality(validity, magnitude, phase):
    """
    Build a 7006 style raw quality value from the validity bits (brightness, colinearity) and detection type of a
    7027 or 7017 detection
    """
    validity = np.asarray(validity).astype(np.int64) & 3
    return validity | np.where(magnitude, 4, 0) | np.where(phase, 8, 0)


def beam_flags(quality):
    """Reduce processed quality to the BeamFlag of each beam"""
    quality = np.asarray(quality).astype(np.int64)
    flags = np.full(quality.shape, BeamFlag.GOOD, dtype=np.uint8)
    flags[(quality & FLAGGED_MANUAL) != 0] = BeamFlag.FLAGGED_MANUAL
    flags[(quality & FLAGGED_SONAR) != 0] = BeamFlag.FLAGGED_SONAR
    flags[(quality & 15) == 0] = BeamFlag.NULL
    return flags
