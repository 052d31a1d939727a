import unittest

import numpy as np
import pytest

from pitch_accent.core.errors import ConfigurationError
from pitch_accent.core.settings import PitchExtractorConfig
from pitch_accent.detection.pitch_extractor import PitchExtractor

SAMPLE_RATE = 44100
FRAME = 4096


def sine(frequency, amplitude=0.5, length=FRAME, sample_rate=SAMPLE_RATE):
    t = np.arange(length) / sample_rate
    return (amplitude * np.sin(2 * np.pi * frequency * t)).astype(np.float32)


@pytest.mark.parametrize("frequency", [80.0, 100.0, 150.0, 220.0, 330.0, 440.0, 600.0, 750.0, 800.0])
def test_detects_known_frequency(frequency):
    extractor = PitchExtractor()
    point = extractor.analyze(sine(frequency), timestamp=1.5)

    assert point.timestamp == 1.5
    assert point.frequency == pytest.approx(frequency, rel=0.02)
    assert point.confidence > extractor.config.correlation_threshold
    assert point.has_pitch(0.3)


@pytest.mark.parametrize("frequency", np.arange(770.0, 801.0, 2.5))
def test_no_octave_drop_near_upper_limit(frequency):
    point = PitchExtractor().analyze(sine(frequency))
    assert point.frequency == pytest.approx(frequency, rel=0.02)


@pytest.mark.parametrize("frequency", [80.0, 81.0, 83.0, 85.0, 90.0])
def test_lowest_frequencies_resolved(frequency):
    point = PitchExtractor().analyze(sine(frequency))
    assert point.frequency == pytest.approx(frequency, rel=0.02)


@pytest.mark.parametrize("amplitude", [0.05, 0.3, 0.9])
def test_frequency_independent_of_amplitude(amplitude):
    point = PitchExtractor().analyze(sine(220.0, amplitude=amplitude))
    assert point.frequency == pytest.approx(220.0, rel=0.02)


class TestPitchExtractor(unittest.TestCase):
    def setUp(self):
        self.extractor = PitchExtractor()

    def test_silence_has_no_pitch(self):
        point = self.extractor.analyze(np.zeros(FRAME, dtype=np.float32))
        self.assertEqual(point.frequency, 0.0)
        self.assertEqual(point.confidence, 0.0)
        self.assertEqual(point.energy, 0.0)
        self.assertFalse(point.has_pitch())

    def test_quiet_noise_below_floor(self):
        rng = np.random.default_rng(1)
        noise = (rng.standard_normal(FRAME) * 0.0003).astype(np.float32)
        point = self.extractor.analyze(noise)
        self.assertEqual(point.frequency, 0.0)
        self.assertEqual(point.confidence, 0.0)
        self.assertGreater(point.energy, 0.0)

    def test_white_noise_is_not_confidently_pitched(self):
        rng = np.random.default_rng(7)
        noise = (rng.standard_normal(FRAME) * 0.2).astype(np.float32)
        point = self.extractor.analyze(noise)
        self.assertLess(point.confidence, 0.5)

    def test_energy_is_mean_absolute_amplitude(self):
        frame = np.full(FRAME, 0.25, dtype=np.float32)
        frame[::2] = -0.25
        point = self.extractor.analyze(frame)
        self.assertAlmostEqual(point.energy, 0.25, places=5)

    def test_energy_is_clamped(self):
        point = self.extractor.analyze(np.full(FRAME, 3.0))
        self.assertEqual(point.energy, 1.0)

    def test_short_frame_has_no_pitch(self):
        min_period = self.extractor.config.min_period
        point = self.extractor.analyze(sine(440.0, length=2 * min_period - 1))
        self.assertEqual(point.frequency, 0.0)
        self.assertGreater(point.energy, 0.0)

    def test_empty_frame(self):
        point = self.extractor.analyze(np.zeros(0), timestamp=2.0)
        self.assertEqual(point.timestamp, 2.0)
        self.assertEqual(point.energy, 0.0)

    def test_frame_of_other_length(self):
        point = self.extractor.analyze(sine(300.0, length=2048))
        self.assertAlmostEqual(point.frequency, 300.0, delta=6.0)

    def test_buffers_reused_between_frames(self):
        buffers = (self.extractor._frame, self.extractor._energy_sums, self.extractor._scores)
        for frequency in (150.0, 400.0, 700.0):
            self.extractor.analyze(sine(frequency))
            self.extractor.analyze(sine(frequency, length=2048))
        self.assertIs(self.extractor._frame, buffers[0])
        self.assertIs(self.extractor._energy_sums, buffers[1])
        self.assertIs(self.extractor._scores, buffers[2])

    def test_analyze_signal_hops_every_interval(self):
        signal = np.concatenate([np.zeros(SAMPLE_RATE // 2), sine(200.0, length=SAMPLE_RATE)])
        series = self.extractor.analyze_signal(signal, interval=0.1)

        hop = int(0.1 * SAMPLE_RATE)
        expected = (len(signal) - FRAME) // hop + 1
        self.assertEqual(len(series), expected)
        self.assertEqual(series[0].timestamp, 0.0)
        self.assertAlmostEqual(series[1].timestamp, hop / SAMPLE_RATE)
        self.assertFalse(series[0].has_pitch())
        self.assertAlmostEqual(series[-1].frequency, 200.0, delta=4.0)

    def test_analyze_signal_mixes_down_stereo(self):
        mono = sine(250.0, length=FRAME * 2)
        stereo = np.stack([mono, mono], axis=1)
        series = self.extractor.analyze_signal(stereo, interval=0.05)
        self.assertTrue(all(p.has_pitch() for p in series))

    def test_analyze_signal_shorter_than_frame(self):
        series = self.extractor.analyze_signal(sine(200.0, length=FRAME - 1))
        self.assertEqual(len(series), 0)


class TestPitchExtractorConfig(unittest.TestCase):
    def test_defaults_are_valid(self):
        config = PitchExtractorConfig()
        self.assertEqual(config.min_period, 56)
        self.assertEqual(config.max_period, 551)

    def test_inverted_range(self):
        with self.assertRaises(ConfigurationError):
            PitchExtractorConfig(min_frequency=500, max_frequency=200)

    def test_frame_not_power_of_two(self):
        with self.assertRaises(ConfigurationError):
            PitchExtractorConfig(frame_length=3000)

    def test_period_range_does_not_fit_frame(self):
        with self.assertRaises(ConfigurationError):
            PitchExtractorConfig(frame_length=512, min_frequency=80)

    def test_non_positive_sample_rate(self):
        with self.assertRaises(ConfigurationError):
            PitchExtractorConfig(sample_rate=0)

    def test_threshold_out_of_range(self):
        with self.assertRaises(ConfigurationError):
            PitchExtractorConfig(correlation_threshold=1.5)


if __name__ == "__main__":
    unittest.main()
