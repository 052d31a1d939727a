"""Live microphone input using the sounddevice library."""

from __future__ import annotations
import time
from typing import Any, Callable, ClassVar, Dict, List, Optional

import numpy as np
import sounddevice as sd

from ..logging_config import get_logger
from ..core.interfaces import IAudioInput

logger = get_logger(__name__)

# Common supported sample rates to try, in order of preference
COMMON_SAMPLE_RATES = [44100, 48000, 22050, 16000, 8000]


def list_input_devices() -> List[Dict[str, Any]]:
    """List the audio devices that can record.

    Returns:
        One dict per input device with its id, name, channel count and default rate
    """
    try:
        devices = sd.query_devices()
    except sd.PortAudioError as e:
        logger.error(f"Error querying audio devices: {e}", exc_info=True)
        raise

    inputs = []
    for device_id, device in enumerate(devices):
        if device["max_input_channels"] > 0:
            inputs.append(
                {
                    "id": device_id,
                    "name": device["name"],
                    "channels": device["max_input_channels"],
                    "default_samplerate": device["default_samplerate"],
                }
            )
    return inputs


class SoundDeviceInput(IAudioInput):
    """Microphone input through PortAudio (sounddevice)."""

    SAMPLE_RATE: ClassVar[int] = 44100  # Hz
    FRAMES_PER_BUFFER: ClassVar[int] = 1024
    CHANNELS: ClassVar[int] = 1  # Mono audio

    def __init__(
        self,
        device_id: Optional[int] = None,
        sample_rate: Optional[int] = None,
        frames_per_buffer: Optional[int] = None,
        channels: Optional[int] = None,
    ) -> None:
        """Open and probe an input device.

        Args:
            device_id: PortAudio device index, or None for the system default
            sample_rate: Preferred sample rate in Hz (44100 if None)
            frames_per_buffer: Block size delivered to the callback (1024 if None)
            channels: Channels to open; only the first one is used (1 if None)

        Raises:
            RuntimeError: If no device accepts any of the common sample rates
        """
        self._device_id = device_id
        self._sample_rate = sample_rate or self.SAMPLE_RATE
        self._frames_per_buffer = frames_per_buffer or self.FRAMES_PER_BUFFER
        self._channels = channels or self.CHANNELS

        self._stream: Optional[sd.InputStream] = None
        self._callback: Optional[Callable[[np.ndarray, float], None]] = None
        self._running = False

        self._init_audio_device()

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    @property
    def device_id(self) -> Optional[int]:
        return self._device_id

    def is_running(self) -> bool:
        return self._running

    def _rates_to_try(self) -> List[int]:
        rates = [rate for rate in COMMON_SAMPLE_RATES if rate != self._sample_rate]
        rates.insert(0, self._sample_rate)
        return rates

    def _init_audio_device(self) -> None:
        """Find a sample rate the input device accepts."""
        for device in (self._device_id, None):
            for rate in self._rates_to_try():
                try:
                    sd.check_input_settings(
                        device=device, samplerate=rate, channels=self._channels
                    )
                except (sd.PortAudioError, ValueError) as e:
                    logger.debug(f"Device {device} rejects {rate} Hz: {e}")
                    continue

                self._device_id = device
                self._sample_rate = rate
                logger.info(f"Audio device initialized: ID={device}, Rate={rate}Hz")
                return

            if device is None:
                break
            logger.warning(f"Input device {device} unusable; trying the system default")

        raise RuntimeError(
            "Could not initialize audio device with any supported sample rate"
        )

    def _audio_callback(
        self,
        indata: np.ndarray,
        _frames: int,
        _time_info: dict,
        status: sd.CallbackFlags,
    ) -> None:
        # Runs on the PortAudio thread; must not block
        if status:
            logger.warning(f"Audio callback status: {status}")

        if self._callback:
            # Take the first channel of multi-channel input
            audio_data = indata[:, 0] if indata.ndim > 1 else indata
            self._callback(audio_data.copy(), time.monotonic())

    def start(self, callback: Callable[[np.ndarray, float], None]) -> bool:
        """Open an input stream, falling back through the common sample rates.

        The rate that finally works becomes `sample_rate`.

        Args:
            callback: Receives mono float32 blocks and their monotonic arrival time

        Returns:
            True if a stream was opened, False if every rate failed
        """
        if self._running:
            logger.warning("Audio input already running")
            return True

        self._callback = callback
        for rate in self._rates_to_try():
            try:
                logger.info(f"Trying to start audio input with sample rate: {rate} Hz")
                self._stream = sd.InputStream(
                    device=self._device_id,
                    samplerate=rate,
                    blocksize=self._frames_per_buffer,
                    channels=self._channels,
                    dtype="float32",
                    callback=self._audio_callback,
                )
                self._stream.start()
            except (sd.PortAudioError, ValueError) as e:
                logger.warning(f"Input stream at {rate} Hz failed to open: {e}")
                if self._stream is not None:
                    self._stream.close()
                    self._stream = None
                continue

            self._sample_rate = rate
            self._running = True
            logger.info(f"Audio input started with sample rate {rate} Hz")
            return True

        logger.error("Could not start audio input with any sample rate")
        return False

    def stop(self) -> None:
        """Stop capturing audio."""
        if not self._running:
            return

        try:
            if self._stream:
                self._stream.stop()
                self._stream.close()
                self._stream = None
            logger.info("Audio input stopped")
        except sd.PortAudioError as e:
            logger.error(f"Error stopping audio input: {e}", exc_info=True)
            raise
        finally:
            self._running = False
