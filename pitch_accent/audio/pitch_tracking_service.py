"""Pitch tracking service that integrates audio input, buffering and analysis."""

from __future__ import annotations

import dataclasses
import threading
import time
from typing import Callable, Iterator, List, Optional

import numpy as np

from ..logging_config import get_logger
from ..core.interfaces import IAudioInput
from ..core.settings import NoiseGateConfig, PitchExtractorConfig, TrackingConfig
from ..detection.noise_gate import NoiseGate
from ..detection.pitch_extractor import PitchExtractor
from ..pitch_types import PitchDataPoint, PitchSeries
from .ring_buffer import RingBuffer

logger = get_logger(__name__)


def _extractor_for_rate(
    config: Optional[PitchExtractorConfig], sample_rate: int
) -> PitchExtractor:
    config = config or PitchExtractorConfig()
    if config.sample_rate != sample_rate:
        config = dataclasses.replace(config, sample_rate=int(sample_rate))
    return PitchExtractor(config)


def _gated(point: PitchDataPoint) -> PitchDataPoint:
    return PitchDataPoint(point.timestamp, 0.0, 0.0, point.energy)


class PitchTrackingService:
    """Turns a live audio source into a stream of pitch points.

    The audio source pushes samples into a ring buffer from its own thread.
    The consumer pulls points from `iter_points`, which analyses the newest
    frame once per analysis interval. Frames rejected by the noise gate keep
    their energy but carry no pitch.
    """

    def __init__(
        self,
        audio_input: IAudioInput,
        extractor_config: Optional[PitchExtractorConfig] = None,
        gate_config: Optional[NoiseGateConfig] = None,
        tracking_config: Optional[TrackingConfig] = None,
        record: bool = False,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the pitch tracking service.

        Args:
            audio_input: Source of mono audio samples
            extractor_config: Pitch extractor settings; the sample rate is
                replaced by the rate the audio source actually delivers
            gate_config: Noise gate settings, or None for the defaults
            tracking_config: Analysis interval and buffer length, or None for the defaults
            record: Keep a copy of all captured audio for later saving
            clock: Monotonic clock in seconds
            sleep: Function used to wait for the next analysis tick
        """
        self._audio_input = audio_input
        self._extractor_config = extractor_config
        self.tracking_config = tracking_config or TrackingConfig()
        self._gate = NoiseGate(gate_config)
        self._record = record
        self._clock = clock
        self._sleep = sleep

        self._extractor = _extractor_for_rate(extractor_config, audio_input.sample_rate)
        self._buffer = self._make_buffer()
        self._buffer_lock = threading.Lock()
        self._frame = np.zeros(self._extractor.frame_length, dtype=np.float32)

        self._series = PitchSeries()
        self._recording: List[np.ndarray] = []
        self._recording_lock = threading.Lock()
        self._running = False
        self._tick = 0
        self._start_time = 0.0

    def _make_buffer(self) -> RingBuffer:
        sample_rate = self._extractor.sample_rate
        capacity = max(
            self._extractor.frame_length,
            int(np.ceil(self.tracking_config.buffer_seconds * sample_rate)),
        )
        return RingBuffer(capacity)

    @property
    def sample_rate(self) -> int:
        return self._extractor.sample_rate

    @property
    def noise_gate(self) -> NoiseGate:
        return self._gate

    @property
    def buffer(self) -> RingBuffer:
        return self._buffer

    @property
    def series(self) -> PitchSeries:
        """All points produced since the last reset."""
        return self._series

    def is_running(self) -> bool:
        return self._running

    def start(self) -> bool:
        """Start a new capture session.

        Points, buffered and recorded audio of any earlier session are
        discarded and the noise gate recalibrates, as with reset().

        Returns:
            True if the audio source is running
        """
        if self._running:
            logger.warning("Pitch tracking already running")
            return True

        self.reset()
        if not self._audio_input.start(self._on_audio):
            logger.error("Audio input failed to start")
            return False

        # The source may have settled on a different sample rate
        actual_rate = self._audio_input.sample_rate
        if actual_rate != self._extractor.sample_rate:
            logger.info(f"Updating pitch extractor sample rate to {actual_rate} Hz")
            self._extractor = _extractor_for_rate(self._extractor_config, actual_rate)
            # Audio delivered while starting was already at the new rate
            with self._buffer_lock:
                captured = self._buffer.last_samples(self._buffer.size)
                self._buffer = self._make_buffer()
                self._buffer.push(captured)

        self._running = True
        self._start_time = self._clock()
        self._tick = 0
        logger.info("Pitch tracking started")
        return True

    def stop(self) -> None:
        """Stop capturing audio. State is kept until reset() or the next start()."""
        if not self._running:
            return
        self._audio_input.stop()
        self._running = False
        logger.info(f"Pitch tracking stopped after {len(self._series)} points")

    def reset(self) -> None:
        """Clear buffered audio and results and recalibrate the noise gate."""
        self._buffer.clear()
        self._gate.start_calibration()
        self._series = PitchSeries()
        with self._recording_lock:
            self._recording = []
        self._tick = 0
        self._start_time = self._clock()
        logger.debug("Pitch tracking state reset")

    def _on_audio(self, samples: np.ndarray, _timestamp: float) -> None:
        with self._buffer_lock:
            self._buffer.push(samples)
        if self._record:
            with self._recording_lock:
                self._recording.append(np.array(samples, dtype=np.float32, copy=True))

    def process_frame(self, timestamp: float) -> PitchDataPoint:
        """Analyze the newest frame in the buffer.

        Args:
            timestamp: Time assigned to the resulting point

        Returns:
            The pitch point, with frequency and confidence zeroed when gated
        """
        self._buffer.copy_last(self._frame)
        point = self._extractor.analyze(self._frame, timestamp)

        if self.tracking_config.use_noise_gate and not self._gate.should_pass(
            point.energy, timestamp
        ):
            point = _gated(point)

        logger.debug(str(point))
        return point

    def iter_points(self, max_points: Optional[int] = None) -> Iterator[PitchDataPoint]:
        """Yield one pitch point per analysis interval while running.

        Args:
            max_points: Stop after this many points, or None to run until stop()

        Yields:
            Pitch points with timestamps tick * analysis_interval
        """
        interval = self.tracking_config.analysis_interval
        produced = 0
        while self._running and (max_points is None or produced < max_points):
            self._tick += 1
            due = self._start_time + self._tick * interval
            delay = due - self._clock()
            if delay > 0:
                self._sleep(delay)
            if not self._running:
                break

            point = self.process_frame(self._tick * interval)
            self._series.append(point)
            produced += 1
            yield point

    def recorded_audio(self) -> np.ndarray:
        """All audio captured since the last reset (empty unless recording)."""
        with self._recording_lock:
            if not self._recording:
                return np.zeros(0, dtype=np.float32)
            return np.concatenate(self._recording)


def analyze_recording(
    samples: np.ndarray,
    sample_rate: int,
    interval: float = 0.1,
    extractor_config: Optional[PitchExtractorConfig] = None,
    gate_config: Optional[NoiseGateConfig] = None,
    use_noise_gate: bool = False,
) -> PitchSeries:
    """Analyze a complete recording offline.

    Args:
        samples: Mono recording
        sample_rate: Sample rate of the recording in Hz
        interval: Hop between analysed frames in seconds
        extractor_config: Pitch extractor settings; the sample rate is replaced
        gate_config: Noise gate settings used when use_noise_gate is set
        use_noise_gate: Calibrate a noise gate on the start of the recording
            and zero the pitch of frames it rejects

    Returns:
        The pitch series of the recording
    """
    extractor = _extractor_for_rate(extractor_config, sample_rate)
    series = extractor.analyze_signal(samples, interval)
    if not use_noise_gate:
        return series

    gate = NoiseGate(gate_config)
    gated = PitchSeries()
    for point in series:
        passed = gate.should_pass(point.energy, point.timestamp)
        gated.append(point if passed else _gated(point))
    return gated
