"""Type definitions for the pitch_accent project."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Iterator, List, Optional, Sequence, Union, overload

import numpy as np


@dataclass(frozen=True)
class PitchDataPoint:
    """One analysis frame of a recording."""

    timestamp: float  # Seconds since the start of the recording
    frequency: float  # Pitch in Hz (0 = unvoiced or unreliable)
    confidence: float  # Peak normalized autocorrelation (0-1)
    energy: float  # Mean absolute amplitude (0-1)

    def has_pitch(self, confidence_threshold: float = 0.0) -> bool:
        return self.frequency > 0 and self.confidence >= confidence_threshold

    def __str__(self):
        return (
            f"PitchData[{self.timestamp:.2f}s]: {self.frequency:.1f}Hz "
            f"(conf:{self.confidence:.2f}, energy:{self.energy:.3f})"
        )


class PitchSeries(Sequence[PitchDataPoint]):
    """Ordered pitch points of one recording.

    Timestamps are strictly increasing; appending a point that does not move
    time forward raises ValueError.
    """

    def __init__(self, points: Optional[Iterable[PitchDataPoint]] = None):
        self._points: List[PitchDataPoint] = []
        for point in points or ():
            self.append(point)

    def append(self, point: PitchDataPoint) -> None:
        if self._points and point.timestamp <= self._points[-1].timestamp:
            raise ValueError(
                f"Timestamp {point.timestamp:.4f}s does not follow "
                f"{self._points[-1].timestamp:.4f}s"
            )
        self._points.append(point)

    @overload
    def __getitem__(self, index: int) -> PitchDataPoint: ...

    @overload
    def __getitem__(self, index: slice) -> "PitchSeries": ...

    def __getitem__(self, index: Union[int, slice]):
        if isinstance(index, slice):
            return PitchSeries(self._points[index])
        return self._points[index]

    def __len__(self) -> int:
        return len(self._points)

    def __iter__(self) -> Iterator[PitchDataPoint]:
        return iter(self._points)

    def __repr__(self):
        return f"PitchSeries({len(self._points)} points, {self.duration:.2f}s)"

    def timestamps(self) -> np.ndarray:
        return np.array([p.timestamp for p in self._points], dtype=np.float64)

    def frequencies(self) -> np.ndarray:
        return np.array([p.frequency for p in self._points], dtype=np.float64)

    def energies(self) -> np.ndarray:
        return np.array([p.energy for p in self._points], dtype=np.float64)

    @property
    def duration(self) -> float:
        if len(self._points) < 2:
            return 0.0
        return self._points[-1].timestamp - self._points[0].timestamp

    def voiced_fraction(self, confidence_threshold: float = 0.0) -> float:
        """Fraction of points that carry a pitch (0 for an empty series)."""
        if not self._points:
            return 0.0
        voiced = sum(1 for p in self._points if p.has_pitch(confidence_threshold))
        return voiced / len(self._points)


class SegmentKind(Enum):
    """Classification of a rhythm segment."""

    SPEECH = "speech"
    PAUSE = "pause"


@dataclass(frozen=True)
class Segment:
    """A contiguous span of speech or pause."""

    start: float  # Seconds
    duration: float  # Seconds
    average_energy: float
    average_pitch: float  # Hz, 0 when no frame in the span was voiced
    pitch_variation: float  # Standard deviation of voiced pitch in Hz
    kind: SegmentKind

    @property
    def end(self) -> float:
        return self.start + self.duration

    def __str__(self):
        return (
            f"{self.kind.value}: {self.start:.2f}s-{self.end:.2f}s ({self.duration:.2f}s) "
            f"Energy: {self.average_energy:.3f}, "
            f"Pitch: {self.average_pitch:.1f}Hz+-{self.pitch_variation:.1f}"
        )


@dataclass
class PitchStatistics:
    """Summary statistics of a pitch series."""

    total_points: int = 0
    voiced_points: int = 0
    silence_points: int = 0
    min_pitch: float = 0.0
    max_pitch: float = 0.0
    average_pitch: float = 0.0
    average_confidence: float = 0.0
    average_energy: float = 0.0
    speech_duration: float = 0.0  # Seconds covered by voiced frames

    @property
    def voiced_percentage(self) -> float:
        if self.total_points == 0:
            return 0.0
        return self.voiced_points / self.total_points * 100.0

    def __str__(self):
        return (
            f"PitchStats: {self.voiced_points}/{self.total_points} points "
            f"({self.voiced_percentage:.1f}% pitch), "
            f"Range: {self.min_pitch:.0f}-{self.max_pitch:.0f}Hz, "
            f"Avg: {self.average_pitch:.0f}Hz"
        )
