"""Energy based speech/pause segmentation and rhythm comparison."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

from ..logging_config import get_logger
from ..core.settings import RhythmWeights, SegmentationConfig
from ..pitch_types import PitchSeries, Segment, SegmentKind

logger = get_logger(__name__)

# Slack for durations built from accumulated float timestamps
_DURATION_EPSILON = 1e-9


def _clamp01(value: float) -> float:
    return min(max(value, 0.0), 1.0)


@dataclass
class RhythmAnalysis:
    """Segments of one recording and the rhythm metrics derived from them."""

    segments: List[Segment] = field(default_factory=list)
    total_speech_duration: float = 0.0
    total_pause_duration: float = 0.0
    pause_to_speech_ratio: float = 0.0
    average_segment_duration: float = 0.0
    regularity: float = 1.0

    @property
    def speech_segments(self) -> List[Segment]:
        return [s for s in self.segments if s.kind is SegmentKind.SPEECH]

    @property
    def pause_segments(self) -> List[Segment]:
        return [s for s in self.segments if s.kind is SegmentKind.PAUSE]

    def __str__(self):
        return (
            f"Rhythm: {len(self.speech_segments)} speech segments, "
            f"Speech: {self.total_speech_duration:.1f}s, "
            f"Pauses: {self.total_pause_duration:.1f}s, "
            f"Ratio: {self.pause_to_speech_ratio:.2f}, Regularity: {self.regularity:.2f}"
        )


def median_smooth(values: np.ndarray, window: int) -> np.ndarray:
    """Sliding median with edge padding; plateaus keep their edges.

    Args:
        values: Values to smooth
        window: Window size in samples

    Returns:
        A new array of the same length
    """
    values = np.asarray(values, dtype=np.float64)
    if window <= 1 or len(values) == 0:
        return values.copy()
    left = window // 2
    right = window - 1 - left
    padded = np.pad(values, (left, right), mode="edge")
    return np.median(sliding_window_view(padded, window), axis=1)


class RhythmSegmenter:
    """Split a pitch series into speech and pause segments.

    Frames whose smoothed energy reaches `silence_energy_threshold` are
    speech. Long phrases can additionally be split where the pitch jumps,
    which usually marks a phrase boundary.
    """

    def __init__(self, config: Optional[SegmentationConfig] = None):
        self.config = config or SegmentationConfig()

    def segment(self, series: PitchSeries) -> RhythmAnalysis:
        """Segment a pitch series and compute its rhythm metrics.

        Args:
            series: Pitch points of one recording

        Returns:
            The rhythm analysis; empty when the series is empty
        """
        if len(series) == 0:
            logger.warning("No pitch data provided for segmentation")
            return RhythmAnalysis()

        timestamps = series.timestamps()
        energies = series.energies()
        frequencies = series.frequencies()
        voiced = np.array(
            [p.has_pitch(self.config.confidence_threshold) for p in series], dtype=bool
        )
        frame_interval = float(np.median(np.diff(timestamps))) if len(timestamps) > 1 else 0.0

        smoothed = median_smooth(energies, self.config.smoothing_window)
        loud = smoothed >= self.config.silence_energy_threshold

        frames = _Frames(timestamps, energies, frequencies, voiced, frame_interval)

        speech: List[Segment] = []
        for lo, hi in _runs(loud):
            start = frames.time_at(lo)
            duration = frames.time_at(hi) - start
            if duration + _DURATION_EPSILON < self.config.min_segment_duration:
                logger.debug(f"Dropping short segment at {start:.2f}s ({duration:.2f}s)")
                continue
            if (
                self.config.split_at_pitch_resets
                and duration > self.config.max_phrase_duration
            ):
                for sub_lo, sub_hi in self._split_at_resets(frames, lo, hi):
                    speech.append(frames.segment(sub_lo, sub_hi, SegmentKind.SPEECH))
            else:
                speech.append(frames.segment(lo, hi, SegmentKind.SPEECH))

        segments: List[Segment] = []
        for index, current in enumerate(speech):
            if index > 0:
                previous = speech[index - 1]
                gap = current.start - previous.end
                if gap + _DURATION_EPSILON >= self.config.min_pause_duration:
                    segments.append(
                        frames.pause(previous.end, current.start)
                    )
            segments.append(current)

        analysis = _analysis_from_segments(segments)
        logger.info(str(analysis))
        return analysis

    def _split_at_resets(
        self, frames: "_Frames", lo: int, hi: int
    ) -> List[Tuple[int, int]]:
        threshold = self.config.pitch_reset_threshold
        boundaries = [lo]
        for k in range(lo + 1, hi):
            if frames.voiced[k] and frames.voiced[k - 1]:
                if abs(frames.frequencies[k] - frames.frequencies[k - 1]) >= threshold:
                    boundaries.append(k)
        boundaries.append(hi)

        pieces: List[Tuple[int, int]] = []
        pending: Optional[int] = None
        for piece_lo, piece_hi in zip(boundaries, boundaries[1:]):
            if pending is not None:
                piece_lo = pending
                pending = None
            duration = frames.time_at(piece_hi) - frames.time_at(piece_lo)
            if duration + _DURATION_EPSILON >= self.config.min_segment_duration:
                pieces.append((piece_lo, piece_hi))
            elif pieces:
                # Too short on its own: extend the previous piece
                pieces[-1] = (pieces[-1][0], piece_hi)
            else:
                pending = piece_lo

        if pending is not None:
            # Every piece so far was too short; keep the phrase whole
            pieces.append((pending, hi))

        if len(pieces) > 1:
            logger.debug(
                f"Split phrase at {frames.time_at(lo):.2f}s into {len(pieces)} pieces"
            )
        return pieces

    def compare(self, reference: RhythmAnalysis, user: RhythmAnalysis) -> float:
        """Compare two rhythm analyses using the configured weights."""
        return compare_rhythm(reference, user, self.config.weights)


@dataclass
class _Frames:
    timestamps: np.ndarray
    energies: np.ndarray
    frequencies: np.ndarray
    voiced: np.ndarray
    frame_interval: float

    def time_at(self, index: int) -> float:
        """Start time of frame `index`; one past the last frame ends the recording."""
        if index < len(self.timestamps):
            return float(self.timestamps[index])
        return float(self.timestamps[-1]) + self.frame_interval

    def segment(self, lo: int, hi: int, kind: SegmentKind) -> Segment:
        start = self.time_at(lo)
        pitches = self.frequencies[lo:hi][self.voiced[lo:hi]]
        return Segment(
            start=start,
            duration=self.time_at(hi) - start,
            average_energy=float(np.mean(self.energies[lo:hi])) if hi > lo else 0.0,
            average_pitch=float(np.mean(pitches)) if len(pitches) else 0.0,
            pitch_variation=float(np.std(pitches)) if len(pitches) > 1 else 0.0,
            kind=kind,
        )

    def pause(self, start: float, end: float) -> Segment:
        lo = int(np.searchsorted(self.timestamps, start - _DURATION_EPSILON))
        hi = int(np.searchsorted(self.timestamps, end - _DURATION_EPSILON))
        segment = self.segment(lo, hi, SegmentKind.PAUSE)
        return Segment(
            start=start,
            duration=end - start,
            average_energy=segment.average_energy,
            average_pitch=segment.average_pitch,
            pitch_variation=segment.pitch_variation,
            kind=SegmentKind.PAUSE,
        )


def _runs(mask: np.ndarray) -> List[Tuple[int, int]]:
    """Half-open index ranges of consecutive True values."""
    padded = np.concatenate(([False], mask, [False])).astype(np.int8)
    edges = np.diff(padded)
    starts = np.flatnonzero(edges == 1)
    ends = np.flatnonzero(edges == -1)
    return list(zip(starts.tolist(), ends.tolist()))


def _regularity(durations: List[float]) -> float:
    if len(durations) < 2:
        return 1.0
    values = np.asarray(durations, dtype=np.float64)
    mean = float(values.mean())
    coefficient = float(values.std()) / mean if mean > 0 else 0.0
    return _clamp01(1.0 - coefficient)


def _analysis_from_segments(segments: List[Segment]) -> RhythmAnalysis:
    speech = [s.duration for s in segments if s.kind is SegmentKind.SPEECH]
    pauses = [s.duration for s in segments if s.kind is SegmentKind.PAUSE]
    total_speech = float(sum(speech))
    total_pause = float(sum(pauses))
    return RhythmAnalysis(
        segments=segments,
        total_speech_duration=total_speech,
        total_pause_duration=total_pause,
        pause_to_speech_ratio=total_pause / total_speech if total_speech > 0 else 0.0,
        average_segment_duration=total_speech / len(speech) if speech else 0.0,
        regularity=_regularity(speech),
    )


def _duration_shares(analysis: RhythmAnalysis) -> np.ndarray:
    durations = np.array([s.duration for s in analysis.speech_segments], dtype=np.float64)
    total = durations.sum()
    if total <= 0:
        return np.zeros(0)
    return durations / total


def _resample_shares(shares: np.ndarray, length: int) -> np.ndarray:
    if len(shares) == length:
        return shares
    positions = np.linspace(0.0, 1.0, len(shares))
    resampled = np.interp(np.linspace(0.0, 1.0, length), positions, shares)
    return resampled / resampled.sum()


def _duration_pattern_similarity(reference: RhythmAnalysis, user: RhythmAnalysis) -> float:
    ref_shares = _duration_shares(reference)
    user_shares = _duration_shares(user)
    if len(ref_shares) == 0 or len(user_shares) == 0:
        return 0.0
    length = max(len(ref_shares), len(user_shares))
    ref_shares = _resample_shares(ref_shares, length)
    user_shares = _resample_shares(user_shares, length)
    return _clamp01(1.0 - 0.5 * float(np.abs(ref_shares - user_shares).sum()))


def _pause_similarity(reference: RhythmAnalysis, user: RhythmAnalysis) -> float:
    ref_ratio = reference.pause_to_speech_ratio
    user_ratio = user.pause_to_speech_ratio
    largest = max(ref_ratio, user_ratio)
    if largest == 0:
        return 1.0
    return _clamp01(1.0 - abs(ref_ratio - user_ratio) / largest)


def compare_rhythm(
    reference: RhythmAnalysis,
    user: RhythmAnalysis,
    weights: Optional[RhythmWeights] = None,
) -> float:
    """Score how similar two rhythms are.

    Combines the similarity of relative speech segment durations, of the
    pause-to-speech ratios and of the rhythm regularity.

    Args:
        reference: Rhythm of the reference recording
        user: Rhythm of the user recording
        weights: Component weights, or None for the defaults

    Returns:
        Similarity in [0, 1]; 0 when either recording has no speech segments
    """
    weights = weights or RhythmWeights()
    if not reference.speech_segments or not user.speech_segments:
        logger.warning("No speech segments to compare rhythm")
        return 0.0

    durations = _duration_pattern_similarity(reference, user)
    pauses = _pause_similarity(reference, user)
    regularity = 1.0 - abs(reference.regularity - user.regularity)

    similarity = _clamp01(
        weights.duration_pattern * durations
        + weights.pause_ratio * pauses
        + weights.regularity * regularity
    )
    logger.debug(
        f"Rhythm comparison: Segments={durations:.3f}, Pauses={pauses:.3f}, "
        f"Regularity={regularity:.3f}, Overall={similarity:.3f}"
    )
    return similarity
