"""Core components for the pitch_accent engine."""

# Import interfaces and errors for easier access
from .errors import ConfigurationError
from .interfaces import (
    IAudioInput,
    IRecordingStore,
)

__all__ = ["ConfigurationError", "IAudioInput", "IRecordingStore"]
