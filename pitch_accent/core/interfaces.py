"""Defines the collaborator interfaces of the pitch_accent engine."""

from __future__ import annotations
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Tuple

import numpy as np


class IAudioInput(ABC):
    """Interface for audio sources feeding the pitch tracker."""

    @abstractmethod
    def start(self, callback: Callable[[np.ndarray, float], None]) -> bool:
        """Start capturing audio.

        The callback receives mono float32 samples and a timestamp; it may be
        called from a separate thread.
        """
        pass

    @abstractmethod
    def stop(self) -> None:
        """Stop capturing audio."""
        pass

    @abstractmethod
    def is_running(self) -> bool:
        """Check if audio is running."""
        pass

    @property
    @abstractmethod
    def sample_rate(self) -> int:
        """The sample rate of the delivered audio in Hz."""
        pass


class IRecordingStore(ABC):
    """Interface for persisting recordings by name."""

    @abstractmethod
    def save(self, name: str, samples: np.ndarray, sample_rate: int) -> Path:
        """Store mono samples and return where they were written."""
        pass

    @abstractmethod
    def load(self, name: str) -> Tuple[np.ndarray, int]:
        """Load a recording as (samples, sample_rate)."""
        pass

    @abstractmethod
    def exists(self, name: str) -> bool:
        """Check if a recording with this name exists."""
        pass
