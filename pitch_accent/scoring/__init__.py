"""Curve normalization, DTW comparison and rhythm scoring."""

from .dtw import DTWComparator, DTWResult
from .normalizer import CurveNormalizer
from .rhythm import RhythmAnalysis, RhythmSegmenter, compare_rhythm
from .scorer import ProsodyScorer, ScoringResults

__all__ = [
    "CurveNormalizer",
    "DTWComparator",
    "DTWResult",
    "ProsodyScorer",
    "RhythmAnalysis",
    "RhythmSegmenter",
    "ScoringResults",
    "compare_rhythm",
]
