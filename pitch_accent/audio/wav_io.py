"""16-bit PCM WAV persistence for recordings."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Tuple, Union

import numpy as np
import soundfile as sf

from ..logging_config import get_logger
from ..core.interfaces import IRecordingStore

logger = get_logger(__name__)

INT16_SCALE = 32767.0

PathLike = Union[str, Path]


@dataclass
class AudioFileInfo:
    """Header information of an audio file."""

    path: Path
    sample_rate: int
    channels: int
    frames: int
    subtype: str

    @property
    def duration(self) -> float:
        return self.frames / self.sample_rate if self.sample_rate else 0.0


def float_to_int16(samples: np.ndarray) -> np.ndarray:
    """Convert float amplitudes to 16-bit integers.

    NaN becomes silence and infinities full scale. Values are clipped to
    [-1, 1], scaled by 32767 and truncated toward zero, so the conversion is
    symmetric and identical on every platform.
    """
    finite = np.nan_to_num(np.asarray(samples, dtype=np.float64), nan=0.0, posinf=1.0, neginf=-1.0)
    clipped = np.clip(finite, -1.0, 1.0)
    return (clipped * INT16_SCALE).astype(np.int16)


def int16_to_float(samples: np.ndarray) -> np.ndarray:
    """Convert 16-bit integers back to float32 amplitudes in [-1, 1]."""
    scaled = np.asarray(samples, dtype=np.float64) / INT16_SCALE
    return np.clip(scaled, -1.0, 1.0).astype(np.float32)


def save_wav(path: PathLike, samples: np.ndarray, sample_rate: int) -> Path:
    """Write mono samples as a 16-bit PCM WAV file.

    Args:
        path: Destination file; parent directories are created
        samples: Float amplitudes in [-1, 1]
        sample_rate: Sample rate in Hz

    Returns:
        The path that was written
    """
    path = Path(path)
    data = np.asarray(samples)
    if data.ndim > 1:
        data = data.mean(axis=1)

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        sf.write(str(path), float_to_int16(data), int(sample_rate), subtype="PCM_16")
    except Exception as e:
        logger.error(f"Error saving WAV file {path}: {e}", exc_info=True)
        raise

    logger.info(
        f"Saved {len(data) / sample_rate:.2f}s of audio to {path} ({sample_rate}Hz)"
    )
    return path


def load_wav(path: PathLike) -> Tuple[np.ndarray, int]:
    """Read an audio file as mono float32 samples.

    Multi-channel files are mixed down by averaging the channels.

    Args:
        path: File to read

    Returns:
        Tuple of (samples, sample_rate)
    """
    path = Path(path)
    try:
        data, sample_rate = sf.read(str(path), dtype="int16", always_2d=True)
    except Exception as e:
        logger.error(f"Error loading WAV file {path}: {e}", exc_info=True)
        raise

    samples = int16_to_float(data.astype(np.float64).mean(axis=1))
    logger.debug(
        f"Loaded {path}: {len(samples)} samples, {data.shape[1]} channels, {sample_rate}Hz"
    )
    return samples, int(sample_rate)


def wav_info(path: PathLike) -> AudioFileInfo:
    """Read the header of an audio file without loading its samples."""
    path = Path(path)
    try:
        info = sf.info(str(path))
    except Exception as e:
        logger.error(f"Error reading WAV header {path}: {e}", exc_info=True)
        raise
    return AudioFileInfo(
        path=path,
        sample_rate=int(info.samplerate),
        channels=int(info.channels),
        frames=int(info.frames),
        subtype=str(info.subtype),
    )


class WavRecordingStore(IRecordingStore):
    """Stores named recordings as WAV files in one directory."""

    def __init__(self, directory: PathLike):
        self.directory = Path(directory)

    def path_for(self, name: str) -> Path:
        filename = name if name.lower().endswith(".wav") else f"{name}.wav"
        return self.directory / filename

    def save(self, name: str, samples: np.ndarray, sample_rate: int) -> Path:
        return save_wav(self.path_for(name), samples, sample_rate)

    def load(self, name: str) -> Tuple[np.ndarray, int]:
        return load_wav(self.path_for(name))

    def exists(self, name: str) -> bool:
        return self.path_for(name).is_file()
