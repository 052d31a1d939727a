"""Utility functions for working with pitch values and pitch series."""

import numpy as np

from .logging_config import get_logger
from .pitch_types import PitchDataPoint, PitchSeries, PitchStatistics

logger = get_logger(__name__)

NOTE_NAMES_SHARPS = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]
NOTE_NAMES_FLATS = ["C", "Db", "D", "Eb", "E", "F", "Gb", "G", "Ab", "A", "Bb", "B"]


def frequency_to_semitones(freq: float, reference: float = 440.0) -> float:
    """Convert a frequency to semitones relative to a reference.

    Args:
        freq: Frequency in Hz, must be positive
        reference: Reference frequency in Hz (A4 = 440 Hz by default)

    Returns:
        12 * log2(freq / reference)

    Raises:
        ValueError: If either frequency is not positive
    """
    if freq <= 0 or reference <= 0:
        raise ValueError(f"Frequencies must be positive, got {freq} and {reference}")
    return 12.0 * float(np.log2(freq / reference))


def semitones_to_frequency(semitones: float, reference: float = 440.0) -> float:
    """Inverse of frequency_to_semitones."""
    return reference * float(2.0 ** (semitones / 12.0))


def get_note_name(freq: float, use_flats: bool = False) -> str:
    """Convert frequency to note name using Scientific Pitch Notation (SPN).

    Args:
        freq: Frequency in Hz
        use_flats: If True, use flat notes (e.g., 'Bb') instead of sharps (e.g., 'A#')

    Returns:
        Note name with octave in SPN (e.g., 'A4', 'C#4', 'Bb3'), or '---' for
        frequencies without a pitch

    Note:
        - Middle C is C4 (261.63 Hz)
        - A4 is 440 Hz
        - Octave numbers change between B and C (e.g., B3 -> C4)
    """
    if freq <= 0:
        return "---"

    # A4 is MIDI note 69
    midi_number = 69 + int(round(12 * np.log2(freq / 440.0)))
    octave = (midi_number // 12) - 1
    note_idx = midi_number % 12

    names = NOTE_NAMES_FLATS if use_flats else NOTE_NAMES_SHARPS
    return f"{names[note_idx]}{octave}"


def smooth_pitch_series(series: PitchSeries, window: int = 3) -> PitchSeries:
    """Moving average over the voiced neighbours of each voiced point.

    Unvoiced points are kept unchanged and never contribute to the average,
    so a pitch curve is not dragged towards zero at its edges.

    Args:
        series: The series to smooth
        window: Window size in points

    Returns:
        A new PitchSeries with the same timestamps
    """
    if window <= 1 or len(series) == 0:
        return PitchSeries(series)

    half = window // 2
    frequencies = series.frequencies()
    voiced = frequencies > 0
    smoothed = PitchSeries()
    for i, point in enumerate(series):
        if not voiced[i]:
            smoothed.append(point)
            continue
        lo = max(0, i - half)
        hi = min(len(series), i + half + 1)
        neighbours = frequencies[lo:hi][voiced[lo:hi]]
        smoothed.append(
            PitchDataPoint(
                timestamp=point.timestamp,
                frequency=float(np.mean(neighbours)),
                confidence=point.confidence,
                energy=point.energy,
            )
        )
    return smoothed


def calculate_statistics(
    series: PitchSeries, confidence_threshold: float = 0.0
) -> PitchStatistics:
    """Summarize a pitch series.

    Args:
        series: The series to summarize
        confidence_threshold: Minimum confidence for a point to count as voiced

    Returns:
        PitchStatistics; all zeros for an empty series
    """
    stats = PitchStatistics(total_points=len(series))
    if len(series) == 0:
        return stats

    voiced = [p for p in series if p.has_pitch(confidence_threshold)]
    stats.voiced_points = len(voiced)
    stats.silence_points = len(series) - len(voiced)
    stats.average_energy = float(np.mean(series.energies()))

    if voiced:
        pitches = np.array([p.frequency for p in voiced])
        stats.min_pitch = float(pitches.min())
        stats.max_pitch = float(pitches.max())
        stats.average_pitch = float(pitches.mean())
        stats.average_confidence = float(np.mean([p.confidence for p in voiced]))

        timestamps = series.timestamps()
        interval = float(np.median(np.diff(timestamps))) if len(timestamps) > 1 else 0.0
        stats.speech_duration = len(voiced) * interval

    logger.debug(str(stats))
    return stats
