import json
import os
import tempfile
import unittest

import numpy as np

from pitch_accent.audio.file_input import FileAudioInput
from pitch_accent.audio.wav_io import WavRecordingStore, save_wav
from pitch_accent.core.config import ConfigManager
from pitch_accent.core.errors import ConfigurationError
from pitch_accent.core.factory import ComponentFactory, build_config
from pitch_accent.core.settings import PitchExtractorConfig, ScoringConfig
from pitch_accent.logging_config import get_logger
from pitch_accent.scoring.scorer import ProsodyScorer


class TestConfigManager(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.config_dir = self._tmp.name

    def tearDown(self):
        self._tmp.cleanup()

    def test_defaults_written_on_first_use(self):
        manager = ConfigManager(self.config_dir)
        for section in manager.sections:
            self.assertTrue(os.path.exists(os.path.join(self.config_dir, f"{section}.json")))
        self.assertEqual(manager.get_config("pitch_extractor")["frame_length"], 4096)

    def test_updates_persist(self):
        manager = ConfigManager(self.config_dir)
        self.assertTrue(manager.update_config("scoring", {"pitch_weight": 0.5, "rhythm_weight": 0.5}))

        reloaded = ConfigManager(self.config_dir)
        self.assertEqual(reloaded.get_config("scoring")["pitch_weight"], 0.5)

    def test_missing_keys_filled_from_defaults(self):
        with open(os.path.join(self.config_dir, "tracking.json"), "w") as f:
            json.dump({"analysis_interval": 0.05}, f)
        config = ConfigManager(self.config_dir).get_config("tracking")
        self.assertEqual(config["analysis_interval"], 0.05)
        self.assertEqual(config["buffer_seconds"], 2.0)

    def test_corrupt_file_falls_back_to_defaults(self):
        with open(os.path.join(self.config_dir, "scoring.json"), "w") as f:
            f.write("{not json")
        config = ConfigManager(self.config_dir).get_config("scoring")
        self.assertEqual(config["pitch_weight"], 0.6)

    def test_reset(self):
        manager = ConfigManager(self.config_dir)
        manager.update_config("dtw", {"step_penalty": 0.9})
        self.assertTrue(manager.reset_config("dtw"))
        self.assertEqual(manager.get_config("dtw")["step_penalty"], 0.3)

    def test_unknown_section(self):
        manager = ConfigManager(self.config_dir)
        self.assertFalse(manager.update_config("nope", {"a": 1}))
        self.assertFalse(manager.reset_config("nope"))
        self.assertEqual(manager.get_config("nope"), {})

    def test_get_config_returns_copy(self):
        manager = ConfigManager(self.config_dir)
        config = manager.get_config("dtw")
        config["weights"]["alignment"] = 1.0
        self.assertEqual(manager.get_config("dtw")["weights"]["alignment"], 0.2)


class TestComponentFactory(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.manager = ConfigManager(self._tmp.name)
        self.factory = ComponentFactory(self.manager)

    def tearDown(self):
        self._tmp.cleanup()

    def test_build_config_ignores_unknown_keys(self):
        config = build_config(ScoringConfig, {"pitch_weight": 0.5, "rhythm_weight": 0.5, "extra": 1})
        self.assertEqual(config.pitch_weight, 0.5)

    def test_build_config_validates(self):
        with self.assertRaises(ConfigurationError):
            build_config(PitchExtractorConfig, {"frame_length": 1000})

    def test_configs_follow_stored_values(self):
        self.manager.update_config("dtw", {"weights": {
            "alignment": 0.25, "pitch_contour": 0.25, "pitch_direction": 0.25, "pitch_range": 0.25,
        }})
        config = self.factory.dtw_config()
        self.assertEqual(config.weights.alignment, 0.25)

        self.assertEqual(self.factory.pitch_extractor_config(sample_rate=16000).sample_rate, 16000)

    def test_invalid_stored_value_raises(self):
        self.manager.update_config("segmentation", {"smoothing_window": 0})
        with self.assertRaises(ConfigurationError):
            self.factory.create_rhythm_segmenter()

    def test_create_scorer(self):
        self.assertIsInstance(self.factory.create_scorer(), ProsodyScorer)

    def test_unknown_audio_input(self):
        with self.assertRaises(ValueError):
            self.factory.create_audio_input("tape")

    def test_file_audio_input_and_store(self):
        path = save_wav(os.path.join(self._tmp.name, "clip.wav"), np.zeros(800), 8000)
        audio_input = self.factory.create_audio_input("file", file_path=str(path), realtime=False)
        self.assertIsInstance(audio_input, FileAudioInput)
        self.assertEqual(audio_input.sample_rate, 8000)

        store = self.factory.create_recording_store(self._tmp.name)
        self.assertIsInstance(store, WavRecordingStore)
        self.assertTrue(store.exists("clip"))


class TestLogging(unittest.TestCase):
    def test_module_loggers_propagate_to_their_section(self):
        logger = get_logger("pitch_accent.scoring.dtw")
        self.assertTrue(logger.propagate)
        self.assertFalse(get_logger("pitch_accent.scoring").propagate)

    def test_unknown_package_rejected(self):
        with self.assertRaises(ValueError):
            get_logger("somewhere.else")


if __name__ == "__main__":
    unittest.main()
