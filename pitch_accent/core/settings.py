"""Immutable configuration values for the analysis engine.

Every config validates itself on construction and raises ConfigurationError
for values that would make the engine produce meaningless results. Values are
never clamped or renormalized later at analysis time.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field

from .errors import ConfigurationError

WEIGHT_TOLERANCE = 1e-6


def _require_positive(name: str, value: float) -> None:
    if not (math.isfinite(value) and value > 0):
        raise ConfigurationError(f"{name} must be positive, got {value}")


def _require_fraction(name: str, value: float) -> None:
    if not (math.isfinite(value) and 0.0 <= value <= 1.0):
        raise ConfigurationError(f"{name} must be within [0, 1], got {value}")


def _require_weights(owner: str, **weights: float) -> None:
    for name, value in weights.items():
        if not math.isfinite(value) or value < 0:
            raise ConfigurationError(
                f"{owner}.{name} must be a non-negative number, got {value}"
            )
    total = math.fsum(weights.values())
    if abs(total - 1.0) > WEIGHT_TOLERANCE:
        raise ConfigurationError(f"{owner} weights must sum to 1.0, got {total:.6f}")


@dataclass(frozen=True)
class PitchExtractorConfig:
    """Settings of the autocorrelation pitch extractor."""

    sample_rate: int = 44100
    frame_length: int = 4096
    min_frequency: float = 80.0
    max_frequency: float = 800.0
    correlation_threshold: float = 0.3
    noise_floor_rms: float = 0.001
    silence_level: float = 0.0001

    def __post_init__(self):
        if self.sample_rate <= 0:
            raise ConfigurationError(
                f"sample_rate must be positive, got {self.sample_rate}"
            )
        if self.frame_length <= 0 or self.frame_length & (self.frame_length - 1):
            raise ConfigurationError(
                f"frame_length must be a power of two, got {self.frame_length}"
            )
        _require_positive("min_frequency", self.min_frequency)
        _require_positive("max_frequency", self.max_frequency)
        if self.min_frequency >= self.max_frequency:
            raise ConfigurationError(
                f"min_frequency ({self.min_frequency}) must be below "
                f"max_frequency ({self.max_frequency})"
            )
        if not self.min_period < self.max_period < self.frame_length / 2:
            raise ConfigurationError(
                f"Period range {self.min_period}-{self.max_period} samples does not fit "
                f"a {self.frame_length} sample frame at {self.sample_rate} Hz"
            )
        _require_fraction("correlation_threshold", self.correlation_threshold)
        if self.noise_floor_rms < 0 or self.silence_level < 0:
            raise ConfigurationError("noise_floor_rms and silence_level must be >= 0")

    @property
    def min_period(self) -> int:
        """Shortest candidate period in samples (highest frequency)."""
        return math.ceil(self.sample_rate / self.max_frequency)

    @property
    def max_period(self) -> int:
        """Longest candidate period in samples (lowest frequency)."""
        return math.floor(self.sample_rate / self.min_frequency)


@dataclass(frozen=True)
class NoiseGateConfig:
    """Settings of the adaptive noise gate. Times are in seconds."""

    calibration_duration: float = 3.0
    ambient_percentile: float = 0.7
    threshold_multiplier: float = 3.0
    attack_time: float = 0.05
    release_time: float = 0.2
    ambient_update_interval: float = 0.5
    ambient_adapt_rate: float = 0.1
    min_calibration_samples: int = 5
    fallback_threshold: float = 0.02
    min_threshold: float = 0.001
    hysteresis_ratio: float = 1.1
    frame_interval: float = 0.1

    def __post_init__(self):
        if not math.isfinite(self.calibration_duration) or self.calibration_duration < 0:
            raise ConfigurationError(
                f"calibration_duration must be >= 0, got {self.calibration_duration}"
            )
        if not 0.0 < self.ambient_percentile <= 1.0:
            raise ConfigurationError(
                f"ambient_percentile must be within (0, 1], got {self.ambient_percentile}"
            )
        _require_positive("threshold_multiplier", self.threshold_multiplier)
        _require_positive("attack_time", self.attack_time)
        _require_positive("release_time", self.release_time)
        _require_positive("ambient_update_interval", self.ambient_update_interval)
        _require_fraction("ambient_adapt_rate", self.ambient_adapt_rate)
        if self.min_calibration_samples < 1:
            raise ConfigurationError("min_calibration_samples must be at least 1")
        _require_positive("fallback_threshold", self.fallback_threshold)
        if self.min_threshold < 0:
            raise ConfigurationError("min_threshold must be >= 0")
        if self.hysteresis_ratio < 1.0:
            raise ConfigurationError(
                f"hysteresis_ratio must be >= 1, got {self.hysteresis_ratio}"
            )
        _require_positive("frame_interval", self.frame_interval)


@dataclass(frozen=True)
class NormalizerConfig:
    """Settings of the pitch curve normalizer."""

    confidence_floor: float = 0.3
    use_semitones: bool = True
    reference_frequency: float = 440.0
    flat_epsilon: float = 1e-3

    def __post_init__(self):
        _require_fraction("confidence_floor", self.confidence_floor)
        _require_positive("reference_frequency", self.reference_frequency)
        _require_positive("flat_epsilon", self.flat_epsilon)


@dataclass(frozen=True)
class DTWWeights:
    """Weights of the four DTW sub-scores. They must sum to 1."""

    alignment: float = 0.2
    pitch_contour: float = 0.4
    pitch_direction: float = 0.25
    pitch_range: float = 0.15

    def __post_init__(self):
        _require_weights(
            "DTWWeights",
            alignment=self.alignment,
            pitch_contour=self.pitch_contour,
            pitch_direction=self.pitch_direction,
            pitch_range=self.pitch_range,
        )


@dataclass(frozen=True)
class DTWConfig:
    """Settings of the DTW curve comparator."""

    pitch_tolerance: float = 1.0
    step_penalty: float = 0.3
    pitch_strictness: float = 2.0
    direction_epsilon: float = 0.05
    flat_epsilon: float = 1e-3
    weights: DTWWeights = field(default_factory=DTWWeights)

    def __post_init__(self):
        _require_positive("pitch_tolerance", self.pitch_tolerance)
        if not math.isfinite(self.step_penalty) or self.step_penalty < 0:
            raise ConfigurationError(
                f"step_penalty must be >= 0, got {self.step_penalty}"
            )
        _require_positive("pitch_strictness", self.pitch_strictness)
        if self.direction_epsilon < 0 or self.flat_epsilon < 0:
            raise ConfigurationError("direction_epsilon and flat_epsilon must be >= 0")
        if not isinstance(self.weights, DTWWeights):
            raise ConfigurationError("weights must be a DTWWeights instance")


@dataclass(frozen=True)
class RhythmWeights:
    """Weights of the rhythm similarity components. They must sum to 1."""

    duration_pattern: float = 0.5
    pause_ratio: float = 0.3
    regularity: float = 0.2

    def __post_init__(self):
        _require_weights(
            "RhythmWeights",
            duration_pattern=self.duration_pattern,
            pause_ratio=self.pause_ratio,
            regularity=self.regularity,
        )


@dataclass(frozen=True)
class SegmentationConfig:
    """Settings of the rhythm segmenter. Durations are in seconds."""

    silence_energy_threshold: float = 0.01
    min_segment_duration: float = 0.1
    min_pause_duration: float = 0.05
    max_phrase_duration: float = 3.0
    smoothing_window: int = 3
    split_at_pitch_resets: bool = True
    pitch_reset_threshold: float = 50.0  # Hz
    confidence_threshold: float = 0.0
    weights: RhythmWeights = field(default_factory=RhythmWeights)

    def __post_init__(self):
        if self.silence_energy_threshold < 0:
            raise ConfigurationError("silence_energy_threshold must be >= 0")
        if self.min_segment_duration < 0 or self.min_pause_duration < 0:
            raise ConfigurationError("minimum durations must be >= 0")
        _require_positive("max_phrase_duration", self.max_phrase_duration)
        if self.max_phrase_duration < self.min_segment_duration:
            raise ConfigurationError(
                "max_phrase_duration must not be shorter than min_segment_duration"
            )
        if self.smoothing_window < 1:
            raise ConfigurationError(
                f"smoothing_window must be at least 1, got {self.smoothing_window}"
            )
        _require_positive("pitch_reset_threshold", self.pitch_reset_threshold)
        _require_fraction("confidence_threshold", self.confidence_threshold)
        if not isinstance(self.weights, RhythmWeights):
            raise ConfigurationError("weights must be a RhythmWeights instance")


@dataclass(frozen=True)
class ScoringConfig:
    """Weights of the combined pitch/rhythm score."""

    pitch_weight: float = 0.6
    rhythm_weight: float = 0.4

    def __post_init__(self):
        _require_weights(
            "ScoringConfig",
            pitch_weight=self.pitch_weight,
            rhythm_weight=self.rhythm_weight,
        )


@dataclass(frozen=True)
class TrackingConfig:
    """Settings of a live pitch tracking session."""

    analysis_interval: float = 0.1
    buffer_seconds: float = 2.0
    use_noise_gate: bool = True

    def __post_init__(self):
        _require_positive("analysis_interval", self.analysis_interval)
        _require_positive("buffer_seconds", self.buffer_seconds)
