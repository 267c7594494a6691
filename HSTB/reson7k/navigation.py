"""
Navigation and attitude history, the time series the bathymetry solver interpolates into.

Samples are appended in time order from the sensor records of the stream, angles are stored in degrees.  Queries
return (value, extrapolated) where extrapolated marks times outside the recorded span (the end value is held), or
None when the channel has no samples yet.
"""

import logging

import numpy as np

from HSTB.reson7k import s7k

logger = logging.getLogger(__name__)


class TimeSeries:
    """
    Append only time series of one quantity, interpolated linearly.  Angular series (heading) are unwrapped before
    interpolating and returned in [0, 360).
    """

    def __init__(self, name, angular=False):
        self.name = name
        self.angular = angular
        self._times = []
        self._values = []
        self._arrays = None

    def __len__(self):
        return len(self._times)

    @property
    def last_time(self):
        return self._times[-1] if self._times else None

    def append(self, time, value):
        """Add a sample, returns False (and drops the sample) when it is not newer than the last one"""
        time = float(time)
        if self._times and time <= self._times[-1]:
            logger.debug(f'{self.name}: dropped sample at {time}, history already at {self._times[-1]}')
            return False
        self._times.append(time)
        self._values.append(value)
        self._arrays = None
        return True

    def arrays(self):
        if self._arrays is None:
            values = np.asarray(self._values, dtype=np.float64)
            if self.angular:
                values = np.rad2deg(np.unwrap(np.deg2rad(values)))
            self._arrays = (np.asarray(self._times, dtype=np.float64), values)
        return self._arrays

    def interpolate(self, time):
        if not self._times:
            return None
        times, values = self.arrays()
        time = np.asarray(time, dtype=np.float64)
        extrapolated = (time < times[0]) | (time > times[-1])
        if values.ndim == 1:
            result = np.interp(time, times, values)
        else:
            result = np.stack([np.interp(time, times, values[:, i]) for i in range(values.shape[1])], axis=-1)
        if self.angular:
            result = np.mod(result, 360.0)
        return result, extrapolated


class NavigationHistory:
    """
    The navigation and attitude history of one stream.

    position is (latitude, longitude, height) in degrees and meters, heading/roll/pitch in degrees, heave, sensor depth
    and altitude in meters, speed in m/s, sound velocity in m/s.
    """
    channels = ('position', 'heading', 'roll', 'pitch', 'heave', 'sensor_depth', 'altitude', 'speed', 'sound_velocity')

    def __init__(self):
        self.series = {name: TimeSeries(name, angular=(name == 'heading')) for name in self.channels}

    def __getitem__(self, channel):
        return self.series[channel]

    def __len__(self):
        return sum(len(series) for series in self.series.values())

    def add(self, channel, time, value):
        return self.series[channel].append(time, value)

    def count(self, channel):
        return len(self.series[channel])

    def interpolate(self, channel, time):
        """
        Interpolate a channel at time (scalar or array).

        Returns
        -------
        tuple or None
            (value, extrapolated), None when the channel is empty
        """
        return self.series[channel].interpolate(time)

    def ingest(self, record, utctime):
        """
        Append the samples carried by a decoded sensor record, returns True when the record is a navigation or
        attitude record.
        """
        if isinstance(record, s7k.Data1003):
            if record.is_geographic:
                self.add('position', utctime, (record.latitude, record.longitude, float(record.Height)))
        elif isinstance(record, s7k.Data1006):
            self.add('altitude', utctime, float(record.Altitude))
        elif isinstance(record, s7k.Data1008):
            if int(record.DepthDescriptor) == 0:  # vehicle depth rather than water depth
                self.add('sensor_depth', utctime, float(record.Depth))
        elif isinstance(record, s7k.Data1012):
            self.add('roll', utctime, float(np.rad2deg(record.Roll)))
            self.add('pitch', utctime, float(np.rad2deg(record.Pitch)))
            self.add('heave', utctime, float(record.Heave))
        elif isinstance(record, s7k.Data1013):
            self.add('heading', utctime, float(np.rad2deg(record.Heading)))
        elif isinstance(record, s7k.Data1015):
            self.add('position', utctime, (float(np.rad2deg(record.Latitude)), float(np.rad2deg(record.Longitude)),
                                           float(record.VesselHeight)))
            self.add('speed', utctime, float(record.SpeedOverGround))
            self.add('heading', utctime, float(np.rad2deg(record.Heading)))
        elif isinstance(record, s7k.Data1016):
            for sampletime, sample in zip(record.datatimes, record.data):
                self.add('roll', sampletime, float(np.rad2deg(sample['Roll'])))
                self.add('pitch', sampletime, float(np.rad2deg(sample['Pitch'])))
                self.add('heave', sampletime, float(sample['Heave']))
                self.add('heading', sampletime, float(np.rad2deg(sample['Heading'])))
        elif isinstance(record, s7k.Data7610):
            self.add('sound_velocity', utctime, float(record.SoundVelocity))
        else:
            return False
        return True
