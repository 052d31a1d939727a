"""Estimation of a speaker's comfortable pitch range."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional, Tuple

import numpy as np

from ..logging_config import get_logger
from ..core.settings import PitchExtractorConfig
from ..pitch_types import PitchDataPoint

logger = get_logger(__name__)


class VoiceType(Enum):
    """Broad voice categories with typical speaking ranges."""

    MALE_ADULT = "male_adult"
    FEMALE_ADULT = "female_adult"
    CHILD = "child"
    MALE_DEEP = "male_deep"
    FEMALE_LOW = "female_low"

    def default_range(self) -> Tuple[float, float]:
        """Typical (min, max) speaking pitch in Hz for this voice type."""
        return _DEFAULT_RANGES.get(self, (100.0, 300.0))


_DEFAULT_RANGES = {
    VoiceType.MALE_ADULT: (80.0, 250.0),
    VoiceType.FEMALE_ADULT: (120.0, 350.0),
    VoiceType.CHILD: (200.0, 500.0),
    VoiceType.MALE_DEEP: (60.0, 200.0),
    VoiceType.FEMALE_LOW: (100.0, 280.0),
}


def classify_voice(average_pitch: float, max_pitch: float) -> VoiceType:
    """Guess the voice type from the average and highest speaking pitch."""
    if average_pitch >= 300:
        return VoiceType.CHILD
    if average_pitch >= 200:
        return VoiceType.FEMALE_ADULT
    if average_pitch >= 150:
        return VoiceType.FEMALE_ADULT if max_pitch > 300 else VoiceType.MALE_ADULT
    if average_pitch < 130:
        return VoiceType.MALE_DEEP
    return VoiceType.MALE_ADULT


@dataclass(frozen=True)
class VoiceRange:
    """Result of a voice range calibration."""

    min_pitch: float  # Hz
    max_pitch: float  # Hz
    average_pitch: float  # Hz
    sample_count: int  # Samples kept after outlier removal
    quality: float  # Fraction of collected samples that were kept (0-1)
    voice_type: VoiceType

    def extractor_config(
        self, base: Optional[PitchExtractorConfig] = None
    ) -> PitchExtractorConfig:
        """Narrow a pitch extractor configuration to this speaker's range.

        Args:
            base: Configuration to start from, or None for the defaults

        Returns:
            A copy of `base` with min/max frequency set to this range

        Raises:
            ConfigurationError: If the range is too narrow for the frame length
        """
        base = base or PitchExtractorConfig()
        return dataclasses.replace(
            base, min_frequency=self.min_pitch, max_frequency=self.max_pitch
        )

    def __str__(self):
        return (
            f"Voice range: {self.min_pitch:.0f}-{self.max_pitch:.0f}Hz "
            f"({self.voice_type.value}, {self.sample_count} samples, "
            f"quality {self.quality * 100:.0f}%)"
        )


class VoiceRangeCalibrator:
    """Collects voiced pitch samples and derives a speaker's range."""

    def __init__(
        self,
        min_samples: int = 50,
        outlier_fraction: float = 0.1,
        range_margin: float = 0.15,
        floor_hz: float = 50.0,
        ceiling_hz: float = 800.0,
        confidence_threshold: float = 0.3,
    ):
        """Initialize the calibrator.

        Args:
            min_samples: Voiced samples needed before a range is reported
            outlier_fraction: Fraction trimmed from each end of the sorted samples
            range_margin: Fraction of the range added below and above
            floor_hz: Lowest frequency the widened range may reach
            ceiling_hz: Highest frequency the widened range may reach
            confidence_threshold: Minimum confidence of collected points
        """
        if not 0.0 <= outlier_fraction < 0.5:
            raise ValueError(f"outlier_fraction must be within [0, 0.5), got {outlier_fraction}")
        self.min_samples = min_samples
        self.outlier_fraction = outlier_fraction
        self.range_margin = range_margin
        self.floor_hz = floor_hz
        self.ceiling_hz = ceiling_hz
        self.confidence_threshold = confidence_threshold
        self._pitches: List[float] = []

    @property
    def sample_count(self) -> int:
        return len(self._pitches)

    def reset(self) -> None:
        self._pitches = []

    def add_point(self, point: PitchDataPoint) -> bool:
        """Collect a point if it carries a confident pitch.

        Returns:
            True if the point was collected
        """
        if not point.has_pitch(self.confidence_threshold):
            return False
        self._pitches.append(point.frequency)
        return True

    def add_series(self, points: Iterable[PitchDataPoint]) -> int:
        """Collect every confident point of a series; returns how many were kept."""
        return sum(1 for point in points if self.add_point(point))

    def analyze(self) -> Optional[VoiceRange]:
        """Derive the voice range from the collected samples.

        Returns:
            The voice range, or None when there are too few samples
        """
        collected = len(self._pitches)
        if collected < self.min_samples:
            logger.warning(
                f"Insufficient samples for voice calibration: {collected} < {self.min_samples}"
            )
            return None

        ordered = np.sort(np.asarray(self._pitches, dtype=np.float64))
        trim = int(round(collected * self.outlier_fraction))
        cleaned = ordered[trim:collected - trim]
        if len(cleaned) < max(2, self.min_samples // 2):
            logger.warning("Too many outliers removed during voice calibration")
            return None

        low = float(cleaned.min())
        high = float(cleaned.max())
        spread = high - low
        voice_range = VoiceRange(
            min_pitch=max(self.floor_hz, low - spread * self.range_margin),
            max_pitch=min(self.ceiling_hz, high + spread * self.range_margin),
            average_pitch=float(cleaned.mean()),
            sample_count=len(cleaned),
            quality=min(len(cleaned) / collected, 1.0),
            voice_type=classify_voice(float(cleaned.mean()), high),
        )
        logger.info(f"Calibration complete: {voice_range}")
        return voice_range
