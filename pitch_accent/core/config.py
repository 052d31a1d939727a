"""Persistent JSON configuration for pitch_accent components."""

from typing import Any, Dict, List, Optional
import copy
import dataclasses
import json
from pathlib import Path

from ..logging_config import get_logger
from .settings import (
    DTWConfig,
    NoiseGateConfig,
    NormalizerConfig,
    PitchExtractorConfig,
    ScoringConfig,
    SegmentationConfig,
    TrackingConfig,
)

logger = get_logger(__name__)

DEFAULT_CONFIG_DIR = Path.home() / ".config" / "pitch_accent"


def default_configs() -> Dict[str, Dict[str, Any]]:
    """Default values of every section, taken from the settings dataclasses."""
    return {
        "pitch_extractor": dataclasses.asdict(PitchExtractorConfig()),
        "noise_gate": dataclasses.asdict(NoiseGateConfig()),
        "normalizer": dataclasses.asdict(NormalizerConfig()),
        "dtw": dataclasses.asdict(DTWConfig()),
        "segmentation": dataclasses.asdict(SegmentationConfig()),
        "scoring": dataclasses.asdict(ScoringConfig()),
        "tracking": dataclasses.asdict(TrackingConfig()),
        # Passed to the microphone input, not validated here
        "audio_input": {
            "sample_rate": 44100,
            "frames_per_buffer": 1024,
            "channels": 1,
        },
    }


def _fill_missing(config: Dict[str, Any], defaults: Dict[str, Any]) -> Dict[str, Any]:
    for key, value in defaults.items():
        if key not in config:
            config[key] = copy.deepcopy(value)
        elif isinstance(value, dict) and isinstance(config[key], dict):
            _fill_missing(config[key], value)
    return config


class ConfigManager:
    """Keeps one JSON file per configuration section.

    Missing files are created with the defaults. Keys missing from a stored
    file are filled in from the defaults, including inside nested weight
    tables. Values are validated only when a component is built from them
    (see ComponentFactory).
    """

    def __init__(self, config_dir: Optional[str] = None):
        """Initialize the configuration manager.

        Args:
            config_dir: Directory to store configuration files, or None to use
                ~/.config/pitch_accent
        """
        self.config_dir = Path(config_dir) if config_dir else DEFAULT_CONFIG_DIR
        self.config_dir.mkdir(parents=True, exist_ok=True)

        self.default_configs = default_configs()
        self.configs: Dict[str, Dict[str, Any]] = {
            name: self.load_config(name, defaults)
            for name, defaults in self.default_configs.items()
        }

    @property
    def sections(self) -> List[str]:
        return list(self.default_configs)

    def _path(self, name: str) -> Path:
        return self.config_dir / f"{name}.json"

    def load_config(self, name: str, default_config: Dict[str, Any]) -> Dict[str, Any]:
        """Load a section from its file, writing the defaults if there is none.

        Args:
            name: Section name
            default_config: Values used for a missing or unreadable file

        Returns:
            The section's values
        """
        path = self._path(name)
        if not path.exists():
            config = copy.deepcopy(default_config)
            self.save_config(name, config)
            return config

        try:
            stored = json.loads(path.read_text())
        except (OSError, ValueError) as e:
            logger.error(f"Error loading configuration from {path}: {e}")
            return copy.deepcopy(default_config)

        if not isinstance(stored, dict):
            logger.error(f"Configuration in {path} is not a JSON object; using defaults")
            return copy.deepcopy(default_config)

        logger.debug(f"Loaded configuration from {path}")
        return _fill_missing(stored, default_config)

    def save_config(self, name: str, config: Dict[str, Any]) -> bool:
        """Write a section to its file.

        Returns:
            True if saved successfully, False otherwise
        """
        path = self._path(name)
        try:
            path.write_text(json.dumps(config, indent=2))
        except (OSError, TypeError) as e:
            logger.error(f"Error saving configuration to {path}: {e}")
            return False

        logger.debug(f"Saved configuration to {path}")
        return True

    def get_config(self, name: str) -> Dict[str, Any]:
        """Return a copy of a section (empty for unknown names)."""
        return copy.deepcopy(self.configs.get(name, {}))

    def update_config(self, name: str, updates: Dict[str, Any]) -> bool:
        """Apply updates to a section and save it.

        Args:
            name: Section name
            updates: Values to replace; nested tables are replaced as a whole

        Returns:
            True if updated and saved successfully, False otherwise
        """
        if name not in self.configs:
            logger.error(f"Unknown configuration section: {name}")
            return False

        self.configs[name].update(copy.deepcopy(updates))
        return self.save_config(name, self.configs[name])

    def reset_config(self, name: str) -> bool:
        """Restore a section to its defaults and save it.

        Returns:
            True if reset successfully, False otherwise
        """
        if name not in self.default_configs:
            logger.error(f"Unknown configuration section: {name}")
            return False

        self.configs[name] = copy.deepcopy(self.default_configs[name])
        logger.info(f"Reset configuration section {name}")
        return self.save_config(name, self.configs[name])
