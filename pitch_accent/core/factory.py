"""Factory for creating pitch_accent components from stored configuration."""

import dataclasses
from typing import Any, Callable, Dict, Optional, Type, TypeVar

from ..logging_config import get_logger
from ..detection.noise_gate import NoiseGate
from ..detection.pitch_extractor import PitchExtractor
from ..scoring.dtw import DTWComparator
from ..scoring.normalizer import CurveNormalizer
from ..scoring.rhythm import RhythmSegmenter
from ..scoring.scorer import ProsodyScorer
from .config import ConfigManager
from .interfaces import IAudioInput, IRecordingStore
from .settings import (
    DTWConfig,
    DTWWeights,
    NoiseGateConfig,
    NormalizerConfig,
    PitchExtractorConfig,
    RhythmWeights,
    ScoringConfig,
    SegmentationConfig,
    TrackingConfig,
)

logger = get_logger(__name__)

ConfigT = TypeVar("ConfigT")


def _sounddevice_input(**kwargs) -> IAudioInput:
    # Imported lazily so that machines without PortAudio can still score files
    from ..audio.sounddevice_input import SoundDeviceInput

    return SoundDeviceInput(**kwargs)


def _file_input(**kwargs) -> IAudioInput:
    from ..audio.file_input import FileAudioInput

    return FileAudioInput(**kwargs)


def build_config(cls: Type[ConfigT], values: Dict[str, Any]) -> ConfigT:
    """Create a config dataclass from a dict, ignoring unknown keys.

    Args:
        cls: The config dataclass
        values: Field values; keys that are not fields are logged and dropped

    Returns:
        The validated config instance

    Raises:
        ConfigurationError: If a value is invalid
    """
    names = {f.name for f in dataclasses.fields(cls)}
    unknown = sorted(set(values) - names)
    if unknown:
        logger.warning(f"Ignoring unknown {cls.__name__} settings: {', '.join(unknown)}")
    return cls(**{k: v for k, v in values.items() if k in names})


class ComponentFactory:
    """Factory for creating pitch_accent components."""

    def __init__(self, config_manager: Optional[ConfigManager] = None):
        """Initialize the component factory.

        Args:
            config_manager: Configuration manager, or None to create a default one
        """
        self.config_manager = config_manager or ConfigManager()

        # Register audio input implementations
        self.audio_input_classes: Dict[str, Callable[..., IAudioInput]] = {
            "sounddevice": _sounddevice_input,
            "file": _file_input,
        }

    def _section(self, name: str, overrides: Dict[str, Any]) -> Dict[str, Any]:
        config = self.config_manager.get_config(name)
        config.update(overrides)
        return config

    def pitch_extractor_config(self, **overrides) -> PitchExtractorConfig:
        return build_config(
            PitchExtractorConfig, self._section("pitch_extractor", overrides)
        )

    def noise_gate_config(self, **overrides) -> NoiseGateConfig:
        return build_config(NoiseGateConfig, self._section("noise_gate", overrides))

    def normalizer_config(self, **overrides) -> NormalizerConfig:
        return build_config(NormalizerConfig, self._section("normalizer", overrides))

    def dtw_config(self, **overrides) -> DTWConfig:
        values = self._section("dtw", overrides)
        weights = values.get("weights", {})
        if isinstance(weights, dict):
            values["weights"] = build_config(DTWWeights, weights)
        return build_config(DTWConfig, values)

    def segmentation_config(self, **overrides) -> SegmentationConfig:
        values = self._section("segmentation", overrides)
        weights = values.get("weights", {})
        if isinstance(weights, dict):
            values["weights"] = build_config(RhythmWeights, weights)
        return build_config(SegmentationConfig, values)

    def scoring_config(self, **overrides) -> ScoringConfig:
        return build_config(ScoringConfig, self._section("scoring", overrides))

    def tracking_config(self, **overrides) -> TrackingConfig:
        return build_config(TrackingConfig, self._section("tracking", overrides))

    def create_pitch_extractor(self, **overrides) -> PitchExtractor:
        return PitchExtractor(self.pitch_extractor_config(**overrides))

    def create_noise_gate(self, **overrides) -> NoiseGate:
        return NoiseGate(self.noise_gate_config(**overrides))

    def create_normalizer(self, **overrides) -> CurveNormalizer:
        return CurveNormalizer(self.normalizer_config(**overrides))

    def create_dtw_comparator(self, **overrides) -> DTWComparator:
        return DTWComparator(self.dtw_config(**overrides))

    def create_rhythm_segmenter(self, **overrides) -> RhythmSegmenter:
        return RhythmSegmenter(self.segmentation_config(**overrides))

    def create_scorer(self) -> ProsodyScorer:
        """Create a scorer with every part built from the stored configuration."""
        scorer = ProsodyScorer(
            config=self.scoring_config(),
            normalizer=self.create_normalizer(),
            comparator=self.create_dtw_comparator(),
            segmenter=self.create_rhythm_segmenter(),
        )
        logger.info("Created prosody scorer")
        return scorer

    def create_audio_input(
        self, implementation: str = "sounddevice", **kwargs
    ) -> IAudioInput:
        """Create an audio input.

        Args:
            implementation: "sounddevice" for a microphone, "file" for a WAV file
            **kwargs: Additional parameters to pass to the constructor

        Returns:
            Audio input instance

        Raises:
            ValueError: If the implementation is not registered
        """
        if implementation not in self.audio_input_classes:
            raise ValueError(f"Unknown audio input implementation: {implementation}")

        if implementation == "sounddevice":
            config = self.config_manager.get_config("audio_input")
            config.update(kwargs)
            kwargs = config

        instance = self.audio_input_classes[implementation](**kwargs)
        logger.info(f"Created audio input: {implementation}")
        return instance

    def create_recording_store(self, directory: str) -> IRecordingStore:
        from ..audio.wav_io import WavRecordingStore

        return WavRecordingStore(directory)

    def create_tracking_service(
        self, audio_input: Optional[IAudioInput] = None, **kwargs
    ):
        """Create a pitch tracking service.

        Args:
            audio_input: Audio source, or None to open the default microphone
            **kwargs: Additional parameters for PitchTrackingService

        Returns:
            PitchTrackingService instance
        """
        from ..audio.pitch_tracking_service import PitchTrackingService

        if audio_input is None:
            audio_input = self.create_audio_input()

        kwargs.setdefault("extractor_config", self.pitch_extractor_config())
        kwargs.setdefault("gate_config", self.noise_gate_config())
        kwargs.setdefault("tracking_config", self.tracking_config())

        service = PitchTrackingService(audio_input=audio_input, **kwargs)
        logger.info("Created pitch tracking service")
        return service
