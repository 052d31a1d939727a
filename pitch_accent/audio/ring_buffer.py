"""Fixed-capacity circular store for the most recent audio samples."""

from __future__ import annotations

import threading

import numpy as np

from ..core.errors import ConfigurationError
from ..logging_config import get_logger

logger = get_logger(__name__)


class RingBuffer:
    """Circular float32 sample buffer.

    One thread may push while another reads; all access goes through an
    internal lock. Reads only ever return samples that were actually written.
    """

    def __init__(self, capacity: int):
        """Initialize the ring buffer.

        Args:
            capacity: Number of samples kept before the oldest are overwritten

        Raises:
            ConfigurationError: If capacity is not positive
        """
        if int(capacity) <= 0:
            raise ConfigurationError(f"RingBuffer capacity must be positive, got {capacity}")

        self._capacity = int(capacity)
        self._data = np.zeros(self._capacity, dtype=np.float32)
        self._write_pos = 0  # Always within [0, capacity)
        self._size = 0
        self._total_written = 0
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def size(self) -> int:
        """Number of valid samples currently stored."""
        with self._lock:
            return self._size

    @property
    def is_full(self) -> bool:
        with self._lock:
            return self._size == self._capacity

    @property
    def has_data(self) -> bool:
        with self._lock:
            return self._size > 0

    @property
    def fill_ratio(self) -> float:
        with self._lock:
            return self._size / self._capacity

    @property
    def total_written(self) -> int:
        """Number of samples pushed since construction or the last clear."""
        with self._lock:
            return self._total_written

    def push(self, samples: np.ndarray) -> None:
        """Append samples, overwriting the oldest ones once full.

        Args:
            samples: 1-D array of amplitudes
        """
        samples = np.asarray(samples, dtype=np.float32).reshape(-1)
        count = len(samples)
        if count == 0:
            return

        with self._lock:
            self._total_written += count

            # Only the newest `capacity` samples can survive
            if count >= self._capacity:
                self._data[:] = samples[-self._capacity:]
                self._write_pos = 0
                self._size = self._capacity
                return

            first = min(count, self._capacity - self._write_pos)
            self._data[self._write_pos:self._write_pos + first] = samples[:first]
            remaining = count - first
            if remaining:
                self._data[:remaining] = samples[first:]
            self._write_pos = (self._write_pos + count) % self._capacity
            self._size = min(self._size + count, self._capacity)

    def _clamp_request(self, count: int) -> int:
        if count <= 0 or count > self._capacity:
            return self._capacity
        return count

    def _read_locked(self, out: np.ndarray) -> int:
        """Fill the tail of `out` with the newest samples. Lock must be held."""
        available = min(len(out), self._size)
        if available == 0:
            return 0

        start = (self._write_pos - available) % self._capacity
        end = start + available
        if end <= self._capacity:
            out[len(out) - available:] = self._data[start:end]
        else:
            head = self._capacity - start
            out[len(out) - available:len(out) - available + head] = self._data[start:]
            out[len(out) - available + head:] = self._data[:end - self._capacity]
        return available

    def last_samples(self, count: int, zero_pad: bool = False) -> np.ndarray:
        """Get the most recent samples in chronological order.

        Args:
            count: Number of samples requested (clamped to the capacity)
            zero_pad: Left-pad with zeros up to `count` when fewer were written

        Returns:
            A new float32 array
        """
        count = self._clamp_request(int(count))
        with self._lock:
            available = min(count, self._size)
            out = np.zeros(count if zero_pad else available, dtype=np.float32)
            self._read_locked(out)
        return out

    def last_seconds(
        self, duration: float, sample_rate: int, zero_pad: bool = False
    ) -> np.ndarray:
        """Get the most recent `duration` seconds of audio.

        Args:
            duration: Length of the requested window in seconds
            sample_rate: Sample rate of the stored audio in Hz
            zero_pad: Left-pad with zeros when less audio is available

        Returns:
            A new float32 array with up to round(duration * sample_rate) samples
        """
        return self.last_samples(int(round(duration * sample_rate)), zero_pad=zero_pad)

    def copy_last(self, out: np.ndarray) -> int:
        """Copy the newest samples into a caller-provided array without allocating.

        The newest samples are right-aligned in `out`; any leading slots that
        could not be filled are zeroed.

        Args:
            out: Destination array; its length is the requested sample count

        Returns:
            Number of real samples copied
        """
        if len(out) > self._capacity:
            out[:len(out) - self._capacity] = 0.0
            out = out[len(out) - self._capacity:]
        with self._lock:
            copied = self._read_locked(out)
        out[:len(out) - copied] = 0.0
        return copied

    def clear(self) -> None:
        """Reset to empty without reallocating storage."""
        with self._lock:
            self._data.fill(0.0)
            self._write_pos = 0
            self._size = 0
            self._total_written = 0
        logger.debug("Ring buffer cleared")

    def __len__(self) -> int:
        return self.size

    def __repr__(self):
        return f"RingBuffer(capacity={self._capacity}, size={self.size})"


def buffer_for_duration(seconds: float, sample_rate: int) -> RingBuffer:
    """Create a ring buffer large enough to hold `seconds` of audio."""
    return RingBuffer(int(np.ceil(seconds * sample_rate)))
