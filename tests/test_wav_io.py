import os
import struct
import tempfile
import unittest

import numpy as np
import soundfile as sf

from pitch_accent.audio.wav_io import (
    WavRecordingStore,
    float_to_int16,
    int16_to_float,
    load_wav,
    save_wav,
    wav_info,
)


class TestInt16Conversion(unittest.TestCase):
    def test_scaling_truncates_toward_zero(self):
        samples = np.array([0.0, 1.0, -1.0, 0.5, -0.5, 0.99999])
        np.testing.assert_array_equal(
            float_to_int16(samples), [0, 32767, -32767, 16383, -16383, 32766]
        )

    def test_clipping(self):
        np.testing.assert_array_equal(float_to_int16(np.array([2.0, -3.0])), [32767, -32767])

    def test_non_finite_values(self):
        samples = np.array([np.nan, np.inf, -np.inf, 0.5])
        np.testing.assert_array_equal(float_to_int16(samples), [0, 32767, -32767, 16383])

    def test_symmetric(self):
        samples = np.linspace(0.0, 1.0, 101)
        np.testing.assert_array_equal(float_to_int16(samples), -float_to_int16(-samples))

    def test_back_to_float(self):
        restored = int16_to_float(np.array([32767, -32767, -32768, 0], dtype=np.int16))
        np.testing.assert_allclose(restored, [1.0, -1.0, -1.0, 0.0])
        self.assertEqual(restored.dtype, np.float32)


class TestWavFiles(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = self._tmp.name

    def tearDown(self):
        self._tmp.cleanup()

    def test_round_trip(self):
        t = np.arange(8000) / 8000
        samples = (0.5 * np.sin(2 * np.pi * 220 * t)).astype(np.float32)
        path = save_wav(os.path.join(self.tmp, "nested", "tone.wav"), samples, 8000)

        loaded, rate = load_wav(path)
        self.assertEqual(rate, 8000)
        self.assertEqual(len(loaded), len(samples))
        np.testing.assert_allclose(loaded, samples, atol=1.0 / 32767 * 1.01)

    def test_non_finite_samples_saved_as_silence_or_full_scale(self):
        samples = np.array([0.25, np.nan, np.inf, -np.inf], dtype=np.float32)
        path = save_wav(os.path.join(self.tmp, "glitch.wav"), samples, 8000)
        data, _ = sf.read(str(path), dtype="int16")
        np.testing.assert_array_equal(data, [8191, 0, 32767, -32767])

    def test_file_is_16_bit_pcm_mono(self):
        path = save_wav(os.path.join(self.tmp, "a.wav"), np.zeros(100), 44100)
        info = wav_info(path)
        self.assertEqual(info.channels, 1)
        self.assertEqual(info.sample_rate, 44100)
        self.assertEqual(info.frames, 100)
        self.assertEqual(info.subtype, "PCM_16")
        self.assertAlmostEqual(info.duration, 100 / 44100)

        with open(path, "rb") as f:
            header = f.read(44)
        self.assertEqual(header[:4], b"RIFF")
        self.assertEqual(header[8:12], b"WAVE")
        self.assertEqual(struct.unpack("<H", header[34:36])[0], 16)

    def test_stereo_file_is_mixed_down(self):
        path = os.path.join(self.tmp, "stereo.wav")
        left = np.full(50, 0.5)
        right = np.full(50, -0.25)
        sf.write(path, np.stack([left, right], axis=1), 16000, subtype="PCM_16")

        loaded, rate = load_wav(path)
        self.assertEqual(loaded.ndim, 1)
        np.testing.assert_allclose(loaded, np.full(50, 0.125), atol=1e-4)

    def test_missing_file_raises(self):
        with self.assertRaises(Exception):
            load_wav(os.path.join(self.tmp, "missing.wav"))

    def test_recording_store(self):
        store = WavRecordingStore(self.tmp)
        self.assertFalse(store.exists("take1"))
        path = store.save("take1", np.full(10, 0.1), 22050)
        self.assertTrue(store.exists("take1"))
        self.assertEqual(path.name, "take1.wav")
        samples, rate = store.load("take1.wav")
        self.assertEqual(rate, 22050)
        self.assertEqual(len(samples), 10)


if __name__ == "__main__":
    unittest.main()
