import json
import os
import tempfile
import unittest

import numpy as np
from click.testing import CliRunner

from pitch_accent.audio.wav_io import save_wav
from pitch_accent.cli.main import main
from pitch_accent.core.config import ConfigManager
from pitch_accent.core.errors import ConfigurationError

SAMPLE_RATE = 8000


def glide(start_hz, end_hz, seconds=1.0, pad=0.3, amplitude=0.5):
    """A pitch glide surrounded by silence."""
    n = int(seconds * SAMPLE_RATE)
    frequency = np.linspace(start_hz, end_hz, n)
    phase = 2 * np.pi * np.cumsum(frequency) / SAMPLE_RATE
    silence = np.zeros(int(pad * SAMPLE_RATE))
    return np.concatenate([silence, amplitude * np.sin(phase), silence])


class TestCli(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = self._tmp.name
        self.config_dir = os.path.join(self.tmp, "config")
        ConfigManager(self.config_dir).update_config("pitch_extractor", {"frame_length": 1024})
        self.runner = CliRunner()

    def tearDown(self):
        self._tmp.cleanup()

    def invoke(self, *args):
        return self.runner.invoke(
            main, ["--config-dir", self.config_dir, "--log-level", "ERROR", *args]
        )

    def wav(self, name, samples):
        return str(save_wav(os.path.join(self.tmp, name), samples, SAMPLE_RATE))

    def test_analyze_json(self):
        path = self.wav("glide.wav", glide(150.0, 250.0))
        result = self.invoke("analyze", path, "--json")
        self.assertEqual(result.exit_code, 0, result.output)

        points = json.loads(result.output)
        self.assertGreater(len(points), 5)
        voiced = [p["frequency"] for p in points if p["frequency"] > 0]
        self.assertTrue(voiced)
        self.assertTrue(all(130.0 < f < 270.0 for f in voiced))
        self.assertEqual(points[0]["frequency"], 0.0)

    def test_analyze_text(self):
        path = self.wav("glide.wav", glide(200.0, 200.0))
        result = self.invoke("analyze", path, "--smooth", "3")
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("G3", result.output)
        self.assertIn("PitchStats:", result.output)

    def test_score_identical_recordings(self):
        path = self.wav("ref.wav", glide(150.0, 250.0))
        result = self.invoke("score", path, path, "--json")
        self.assertEqual(result.exit_code, 0, result.output)

        scores = json.loads(result.output)
        self.assertGreater(scores["pitch_score"], 95.0)
        self.assertGreater(scores["rhythm_score"], 95.0)
        self.assertGreater(scores["overall_score"], 95.0)

    def test_score_text_output(self):
        reference = self.wav("ref.wav", glide(150.0, 250.0))
        user = self.wav("user.wav", glide(200.0, 330.0))
        result = self.invoke("score", reference, user)
        self.assertEqual(result.exit_code, 0, result.output)
        for label in ("Pitch score:", "Rhythm score:", "Overall score:"):
            self.assertIn(label, result.output)

    def test_score_silent_user_warns(self):
        reference = self.wav("ref.wav", glide(150.0, 250.0))
        user = self.wav("silent.wav", np.zeros(SAMPLE_RATE))
        result = self.invoke("score", reference, user)
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("no speech detected", result.output)
        self.assertIn("Overall score:   0.0", result.output)

    def test_calibrate_voice(self):
        path = self.wav("voice.wav", glide(120.0, 220.0, seconds=2.0))
        result = self.invoke("calibrate-voice", path, "--min-samples", "5")
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("Voice range:", result.output)

        result = self.invoke("calibrate-voice", path, "--min-samples", "500")
        self.assertEqual(result.exit_code, 1)
        self.assertIn("Not enough voiced audio", result.output)

    def test_config_show_and_reset(self):
        result = self.invoke("config", "show", "pitch_extractor")
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertEqual(json.loads(result.output)["pitch_extractor"]["frame_length"], 1024)

        result = self.invoke("config", "reset", "pitch_extractor")
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertEqual(
            ConfigManager(self.config_dir).get_config("pitch_extractor")["frame_length"], 4096
        )

    def test_config_unknown_section(self):
        self.assertEqual(self.invoke("config", "show", "nope").exit_code, 2)
        self.assertEqual(self.invoke("config", "reset", "nope").exit_code, 1)

    def test_invalid_configuration_is_reported(self):
        ConfigManager(self.config_dir).update_config("pitch_extractor", {"frame_length": 1000})
        path = self.wav("glide.wav", glide(150.0, 250.0))
        result = self.invoke("analyze", path)
        self.assertIsInstance(result.exception, ConfigurationError)


if __name__ == "__main__":
    unittest.main()
