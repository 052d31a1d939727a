import unittest

import numpy as np

from pitch_accent.pitch_types import PitchDataPoint, PitchSeries
from pitch_accent.pitch_utils import (
    calculate_statistics,
    frequency_to_semitones,
    get_note_name,
    semitones_to_frequency,
    smooth_pitch_series,
)


class TestScientificPitchNotation(unittest.TestCase):
    def test_middle_c(self):
        # Middle C (C4) should be ~261.63 Hz
        self.assertEqual(get_note_name(261.63), "C4")

    def test_octave_transitions(self):
        self.assertEqual(get_note_name(246.94), "B3")
        self.assertEqual(get_note_name(261.63), "C4")

    def test_speaking_range(self):
        self.assertEqual(get_note_name(110.0), "A2")
        self.assertEqual(get_note_name(220.0), "A3")

    def test_sharps_and_flats(self):
        self.assertEqual(get_note_name(277.18), "C#4")
        self.assertEqual(get_note_name(277.18, use_flats=True), "Db4")
        self.assertEqual(get_note_name(233.08, use_flats=True), "Bb3")

    def test_no_pitch(self):
        self.assertEqual(get_note_name(0.0), "---")


class TestSemitones(unittest.TestCase):
    def test_octave_is_twelve_semitones(self):
        self.assertAlmostEqual(frequency_to_semitones(880.0), 12.0)
        self.assertAlmostEqual(frequency_to_semitones(110.0, reference=220.0), -12.0)

    def test_inverse(self):
        self.assertAlmostEqual(semitones_to_frequency(frequency_to_semitones(187.0)), 187.0)

    def test_rejects_non_positive(self):
        with self.assertRaises(ValueError):
            frequency_to_semitones(0.0)


class TestSeriesHelpers(unittest.TestCase):
    def make_series(self, frequencies):
        return PitchSeries(
            PitchDataPoint(i * 0.1, f, 0.9 if f else 0.0, 0.1)
            for i, f in enumerate(frequencies)
        )

    def test_smoothing_ignores_unvoiced_neighbours(self):
        smoothed = smooth_pitch_series(self.make_series([0, 100, 200, 0]), window=3)
        self.assertEqual([p.frequency for p in smoothed], [0.0, 150.0, 150.0, 0.0])
        np.testing.assert_allclose(smoothed.timestamps(), [0.0, 0.1, 0.2, 0.3])

    def test_statistics(self):
        stats = calculate_statistics(self.make_series([0, 100, 200, 300, 0]))
        self.assertEqual(stats.total_points, 5)
        self.assertEqual(stats.voiced_points, 3)
        self.assertEqual(stats.silence_points, 2)
        self.assertEqual(stats.min_pitch, 100.0)
        self.assertEqual(stats.max_pitch, 300.0)
        self.assertAlmostEqual(stats.average_pitch, 200.0)
        self.assertAlmostEqual(stats.speech_duration, 0.3)
        self.assertAlmostEqual(stats.voiced_percentage, 60.0)

    def test_statistics_empty(self):
        stats = calculate_statistics(PitchSeries())
        self.assertEqual(stats.total_points, 0)
        self.assertEqual(stats.voiced_percentage, 0.0)


if __name__ == "__main__":
    unittest.main()
