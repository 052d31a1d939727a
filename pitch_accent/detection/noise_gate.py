"""Adaptive noise gate separating speech frames from ambient noise."""

from __future__ import annotations

import math
from enum import Enum
from typing import List, Optional

import numpy as np

from ..logging_config import get_logger
from ..core.settings import NoiseGateConfig

logger = get_logger(__name__)

# Tolerance when comparing accumulated frame time against the calibration length
_TIME_EPSILON = 1e-9


class GateState(Enum):
    """Lifecycle phase of the noise gate."""

    CALIBRATING = "calibrating"
    ACTIVE = "active"


def _lerp(current: float, target: float, t: float) -> float:
    if t >= 1.0:
        return target
    return current + (target - current) * max(t, 0.0)


class NoiseGate:
    """Energy gate that learns the ambient level before letting speech through.

    The gate starts in the CALIBRATING phase and records the energy of every
    frame without passing anything. Once `calibration_duration` seconds of
    frames have been seen, the ambient level is estimated from the quietest
    `ambient_percentile` of them and the threshold is set above it.

    In the ACTIVE phase a frame louder than the threshold opens the gate. The
    gate level follows the frame energy, rising with the attack time constant
    (never above the current energy) and falling with the release time
    constant. An open gate passes every frame whose energy reaches the closing
    level, `threshold / hysteresis_ratio`, and closes once the released gate
    level drops below it. A closed gate passes nothing until the next opening frame.
    The ambient estimate slowly tracks quiet frames while the gate is closed,
    never speech.

    Time is logical: it advances by the difference between consecutive
    timestamps, or by `frame_interval` per call when no timestamp is given.
    """

    def __init__(self, config: Optional[NoiseGateConfig] = None):
        """Initialize the noise gate and start calibrating.

        Args:
            config: Gate settings, or None for the defaults
        """
        self.config = config or NoiseGateConfig()

        self._state = GateState.CALIBRATING
        self._calibration_samples: List[float] = []
        self._calibration_elapsed = 0.0
        self._ambient_level = 0.0
        self._threshold = self.config.fallback_threshold
        self._gate_level = self.config.fallback_threshold
        self._is_open = False
        self._is_calibrated = False
        self._last_timestamp: Optional[float] = None
        self._since_ambient_update = 0.0

        self.start_calibration()

    @property
    def state(self) -> GateState:
        return self._state

    @property
    def ambient_level(self) -> float:
        return self._ambient_level

    @property
    def threshold(self) -> float:
        return self._threshold

    @property
    def gate_level(self) -> float:
        return self._gate_level

    @property
    def is_open(self) -> bool:
        return self._is_open

    @property
    def is_calibrated(self) -> bool:
        """True when the threshold was derived from enough calibration frames."""
        return self._is_calibrated

    @property
    def calibration_progress(self) -> float:
        """Fraction of the calibration period already observed (0-1)."""
        if self._state is GateState.ACTIVE:
            return 1.0
        if self.config.calibration_duration <= 0:
            return 1.0
        return min(self._calibration_elapsed / self.config.calibration_duration, 1.0)

    def start_calibration(self) -> None:
        """Discard all learned state and begin a new calibration period."""
        self._state = GateState.CALIBRATING
        self._calibration_samples = []
        self._calibration_elapsed = 0.0
        self._is_open = False
        self._is_calibrated = False
        self._last_timestamp = None
        self._since_ambient_update = 0.0
        logger.info(
            f"Noise gate calibrating for {self.config.calibration_duration:.1f}s"
        )

    def recalibrate(self) -> None:
        """Start over, e.g. after the environment changed."""
        logger.info("Noise gate recalibration requested")
        self.start_calibration()

    def is_ready(self) -> bool:
        """Check whether calibration has finished and frames can pass."""
        return self._state is GateState.ACTIVE

    def _advance(self, timestamp: Optional[float]) -> float:
        if timestamp is None:
            return self.config.frame_interval
        if self._last_timestamp is None:
            dt = self.config.frame_interval
        else:
            dt = max(timestamp - self._last_timestamp, 0.0)
        self._last_timestamp = timestamp
        return dt

    def should_pass(self, energy: float, timestamp: Optional[float] = None) -> bool:
        """Decide whether a frame with the given energy carries speech.

        Args:
            energy: Frame energy (mean absolute amplitude)
            timestamp: Frame time in seconds, or None to advance by frame_interval

        Returns:
            True if the frame should be analysed, always False while calibrating
        """
        dt = self._advance(timestamp)
        if not math.isfinite(energy):
            energy = 0.0

        if self._state is GateState.CALIBRATING:
            self._calibration_samples.append(energy)
            self._calibration_elapsed += dt
            if self._calibration_elapsed + _TIME_EPSILON >= self.config.calibration_duration:
                self.finish_calibration()
            return False

        return self._update_active(energy, dt)

    def finish_calibration(self) -> None:
        """End calibration now and derive the threshold from what was recorded."""
        samples = self._calibration_samples
        if len(samples) < self.config.min_calibration_samples:
            self._ambient_level = float(np.mean(samples)) if samples else 0.0
            self._threshold = self.config.fallback_threshold
            self._is_calibrated = False
            logger.warning(
                f"Only {len(samples)} calibration samples "
                f"(need {self.config.min_calibration_samples}); "
                f"using fallback threshold {self._threshold:.4f}"
            )
        else:
            ordered = np.sort(np.asarray(samples, dtype=np.float64))
            keep = max(1, int(len(ordered) * self.config.ambient_percentile))
            self._ambient_level = float(np.mean(ordered[:keep]))
            self._threshold = self._threshold_for(self._ambient_level)
            self._is_calibrated = True
            logger.info(
                f"Noise gate calibrated from {len(samples)} samples: "
                f"ambient={self._ambient_level:.4f}, threshold={self._threshold:.4f}"
            )

        self._gate_level = self._threshold
        self._is_open = False
        self._since_ambient_update = 0.0
        self._calibration_samples = []
        self._state = GateState.ACTIVE

    def _threshold_for(self, ambient: float) -> float:
        return max(ambient * self.config.threshold_multiplier, self.config.min_threshold)

    def _update_active(self, energy: float, dt: float) -> bool:
        if energy > self._gate_level:
            # Attack: follow the energy up, but never above it
            target = _lerp(self._gate_level, energy, dt / self.config.attack_time)
            self._gate_level = min(energy, target)
        else:
            # Release: decay towards the energy
            self._gate_level = _lerp(self._gate_level, energy, dt / self.config.release_time)

        closing_level = self._threshold / self.config.hysteresis_ratio
        if energy > self._threshold:
            if not self._is_open:
                logger.debug(f"Gate opened at energy {energy:.4f}")
            self._is_open = True
        elif self._is_open and self._gate_level < closing_level:
            self._is_open = False
            logger.debug(f"Gate closed at energy {energy:.4f}")

        if not self._is_open and energy < self._threshold:
            self._adapt_ambient(energy, dt)

        return self._is_open and energy >= closing_level

    def _adapt_ambient(self, energy: float, dt: float) -> None:
        self._since_ambient_update += dt
        if self._since_ambient_update + _TIME_EPSILON < self.config.ambient_update_interval:
            return
        self._since_ambient_update = 0.0

        rate = self.config.ambient_adapt_rate
        self._ambient_level = self._ambient_level * (1.0 - rate) + energy * rate
        if self._is_calibrated:
            self._threshold = self._threshold_for(self._ambient_level)
        logger.debug(
            f"Ambient level adapted to {self._ambient_level:.4f}, "
            f"threshold={self._threshold:.4f}"
        )
