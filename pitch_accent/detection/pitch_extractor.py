"""Frame-based fundamental frequency estimation using normalized autocorrelation."""

from __future__ import annotations

from typing import Dict, Optional, Tuple

import numpy as np

from ..logging_config import get_logger
from ..core.settings import PitchExtractorConfig
from ..pitch_types import PitchDataPoint, PitchSeries

logger = get_logger(__name__)

# Denominators at or below this are treated as zero energy
_ENERGY_EPSILON = 1e-12

# Lags scoring within this fraction of the best correlation count as equally good
_PEAK_TOLERANCE = 0.01


class PitchExtractor:
    """Estimate pitch, confidence and energy of single audio frames.

    The frame is Hann windowed, then the normalized autocorrelation

        r(p) / sqrt(E(x[0:N-p]) * E(x[p:N]))

    is evaluated for every candidate period between the configured frequency
    limits, plus one lag beyond each limit so that the range edges can be
    bracketed. Whole multiples of the period correlate almost as well as the
    period itself, so the shortest lag within 1% of the best correlation is
    taken and refined by parabolic interpolation. The result counts if its
    correlation exceeds the configured threshold. Correlations are computed
    in one pass with an FFT, the partial energies with a cumulative sum.

    The window, frame, energy-sum and score buffers are sized once for the
    configured frame length and reused; the FFT works on temporaries.
    """

    def __init__(self, config: Optional[PitchExtractorConfig] = None):
        """Initialize the extractor.

        Args:
            config: Extractor settings, or None for the defaults
        """
        self.config = config or PitchExtractorConfig()

        length = self.config.frame_length
        self._windows: Dict[int, np.ndarray] = {length: np.hanning(length)}
        self._frame = np.zeros(length, dtype=np.float64)
        self._energy_sums = np.zeros(length + 1, dtype=np.float64)
        self._periods = np.arange(
            max(1, self.config.min_period - 1), self.config.max_period + 2, dtype=np.int64
        )
        self._scores = np.zeros(len(self._periods), dtype=np.float64)

        logger.debug(
            f"PitchExtractor ready: {self.config.sample_rate}Hz, frame={length}, "
            f"periods {self.config.min_period}-{self.config.max_period}"
        )

    @property
    def sample_rate(self) -> int:
        return self.config.sample_rate

    @property
    def frame_length(self) -> int:
        return self.config.frame_length

    def _window(self, length: int) -> np.ndarray:
        window = self._windows.get(length)
        if window is None:
            window = np.hanning(length)
            self._windows[length] = window
            logger.debug(f"Initialized window for frame length {length}")
        return window

    def _scratch(self, length: int) -> Tuple[np.ndarray, np.ndarray]:
        # Frames longer than the configured length get their own buffers
        if length > len(self._frame):
            self._frame = np.zeros(length, dtype=np.float64)
            self._energy_sums = np.zeros(length + 1, dtype=np.float64)
        return self._frame[:length], self._energy_sums[:length + 1]

    def analyze(self, frame: np.ndarray, timestamp: float = 0.0) -> PitchDataPoint:
        """Analyze one frame of mono audio.

        Args:
            frame: Amplitudes in [-1, 1]
            timestamp: Time of the frame in seconds

        Returns:
            A PitchDataPoint; frequency and confidence are 0 when no reliable
            pitch was found
        """
        samples = np.asarray(frame, dtype=np.float64).reshape(-1)
        length = len(samples)
        if length == 0:
            return PitchDataPoint(timestamp, 0.0, 0.0, 0.0)

        energy = float(np.mean(np.abs(samples)))
        if not np.isfinite(energy):
            logger.warning(f"Non-finite samples in frame at {timestamp:.2f}s")
            return PitchDataPoint(timestamp, 0.0, 0.0, 0.0)
        energy = min(energy, 1.0)

        if energy < self.config.silence_level:
            return PitchDataPoint(timestamp, 0.0, 0.0, energy)

        if length < 2 * self.config.min_period:
            logger.debug(
                f"Frame too short for analysis: {length} < {2 * self.config.min_period}"
            )
            return PitchDataPoint(timestamp, 0.0, 0.0, energy)

        windowed, energy_sums = self._scratch(length)
        np.multiply(samples, self._window(length), out=windowed)

        rms = float(np.sqrt(np.mean(windowed * windowed)))
        if rms < self.config.noise_floor_rms:
            return PitchDataPoint(timestamp, 0.0, 0.0, energy)

        frequency, confidence = self._autocorrelate(windowed, energy_sums)
        point = PitchDataPoint(timestamp, frequency, confidence, energy)
        if frequency > 0:
            logger.debug(f"Analysis: {point}")
        return point

    def _autocorrelate(
        self, windowed: np.ndarray, energy_sums: np.ndarray
    ) -> Tuple[float, float]:
        length = len(windowed)

        # Candidate periods must stay below half the frame
        limit = (length - 1) // 2
        count = int(np.searchsorted(self._periods, limit, side="right"))
        if count == 0:
            return 0.0, 0.0
        periods = self._periods[:count]

        fft_size = 1 << int(2 * length - 1).bit_length()
        spectrum = np.fft.rfft(windowed, fft_size)
        correlation = np.fft.irfft(spectrum.real ** 2 + spectrum.imag ** 2, fft_size)

        energy_sums[0] = 0.0
        np.cumsum(windowed * windowed, out=energy_sums[1:])
        head_energy = energy_sums[length - periods]
        tail_energy = energy_sums[length] - energy_sums[periods]
        denominator = np.sqrt(np.maximum(head_energy * tail_energy, 0.0))

        normalized = self._scores[:count]
        normalized.fill(0.0)
        valid = denominator > _ENERGY_EPSILON
        normalized[valid] = correlation[periods[valid]] / denominator[valid]
        np.clip(normalized, -1.0, 1.0, out=normalized)

        peak = float(normalized.max())
        if peak <= self.config.correlation_threshold:
            return 0.0, 0.0

        # Shortest lag near the peak, then up to its own maximum
        best = int(np.argmax(normalized >= peak * (1.0 - _PEAK_TOLERANCE)))
        while best + 1 < count and normalized[best + 1] > normalized[best]:
            best += 1

        period = float(periods[best])
        if 0 < best < count - 1:
            before, here, after = normalized[best - 1], normalized[best], normalized[best + 1]
            curvature = before - 2.0 * here + after
            if curvature < 0:
                period += 0.5 * (before - after) / curvature

        sample_rate = self.config.sample_rate
        low, high = self.config.min_frequency, self.config.max_frequency
        if not sample_rate / high - 0.5 <= period <= sample_rate / low + 0.5:
            return 0.0, 0.0
        frequency = min(max(sample_rate / period, low), high)
        return frequency, float(normalized[best])

    def analyze_signal(
        self, samples: np.ndarray, interval: float = 0.1
    ) -> PitchSeries:
        """Analyze a whole recording frame by frame.

        One frame is analysed every `interval` seconds for as long as a full
        frame fits in the signal. Multi-channel input is mixed down to mono.

        Args:
            samples: Recording at the configured sample rate, shape (n,) or (n, channels)
            interval: Hop between analysed frames in seconds

        Returns:
            The resulting PitchSeries, timestamped by frame start
        """
        data = np.asarray(samples, dtype=np.float64)
        if data.ndim > 1:
            data = data.mean(axis=1)

        sample_rate = self.config.sample_rate
        hop = max(1, int(interval * sample_rate))
        frame_length = self.config.frame_length

        series = PitchSeries()
        for start in range(0, len(data) - frame_length + 1, hop):
            series.append(
                self.analyze(data[start:start + frame_length], start / sample_rate)
            )

        logger.info(
            f"Analyzed {len(data) / sample_rate:.1f}s of audio: {len(series)} points, "
            f"{series.voiced_fraction() * 100:.0f}% voiced"
        )
        return series
