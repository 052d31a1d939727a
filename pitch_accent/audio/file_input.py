"""Audio source that streams a WAV file as if it were a microphone."""

from __future__ import annotations

import threading
import time
from typing import Callable, Optional

import numpy as np
import soundfile as sf

from ..logging_config import get_logger
from ..core.interfaces import IAudioInput

logger = get_logger(__name__)


class FileAudioInput(IAudioInput):
    """Provides audio data by reading from a WAV file on a background thread."""

    def __init__(
        self,
        file_path: str,
        chunk_size: int = 1024,
        loop: bool = False,
        gain: float = 1.0,
        realtime: bool = True,
    ):
        """Initialize the file audio input.

        Args:
            file_path: Audio file to stream
            chunk_size: Number of frames delivered per callback
            loop: Start over at the end of the file instead of stopping
            gain: Factor applied to every sample
            realtime: Sleep between chunks to simulate real-time playback
        """
        self._file_path = str(file_path)
        self._chunk_size = int(chunk_size)
        self._loop = loop
        self._gain = gain
        self._realtime = realtime
        self._callback: Optional[Callable[[np.ndarray, float], None]] = None
        self._running = False
        self._thread: Optional[threading.Thread] = None
        self._finished = threading.Event()

        with sf.SoundFile(self._file_path) as f:
            self._sample_rate = f.samplerate
            self._channels = f.channels

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    @property
    def channels(self) -> int:
        return self._channels

    def is_running(self) -> bool:
        """Returns True if the file is currently streaming."""
        return self._running

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the file has been streamed completely.

        Returns:
            True if streaming finished within the timeout
        """
        return self._finished.wait(timeout)

    def start(self, callback: Callable[[np.ndarray, float], None]) -> bool:
        if self._running:
            logger.warning("File audio input already running")
            return True

        self._callback = callback
        self._running = True
        self._finished.clear()
        self._thread = threading.Thread(target=self._stream_data, daemon=True)
        self._thread.start()
        logger.info(f"Streaming {self._file_path} ({self._sample_rate}Hz)")
        return True

    def stop(self) -> None:
        self._running = False
        if self._thread and self._thread is not threading.current_thread():
            self._thread.join()
        self._thread = None

    def _stream_data(self) -> None:
        position = 0
        try:
            with sf.SoundFile(self._file_path) as f:
                while self._running:
                    data = f.read(self._chunk_size, dtype="float32", always_2d=True)
                    if len(data) == 0:
                        if self._loop:
                            f.seek(0)
                            continue
                        break

                    # Mono mixdown
                    samples = data.mean(axis=1)
                    if self._gain != 1.0:
                        samples *= self._gain

                    if self._callback:
                        self._callback(samples, position / self._sample_rate)
                    position += len(samples)

                    if self._realtime:
                        time.sleep(len(samples) / self._sample_rate)
        except Exception as e:
            logger.error(f"Error streaming WAV file {self._file_path}: {e}", exc_info=True)
        finally:
            self._running = False
            self._finished.set()
            logger.debug(f"Finished streaming {self._file_path} after {position} frames")
