"""Per-frame pitch extraction and noise gating."""

from .noise_gate import GateState, NoiseGate
from .pitch_extractor import PitchExtractor

__all__ = ["GateState", "NoiseGate", "PitchExtractor"]
