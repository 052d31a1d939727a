"""Combined pitch and rhythm scoring of a user recording against a reference."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from ..logging_config import get_logger
from ..core.settings import ScoringConfig
from ..pitch_types import PitchSeries
from .dtw import DTWComparator, DTWResult
from .normalizer import CurveNormalizer
from .rhythm import RhythmAnalysis, RhythmSegmenter

logger = get_logger(__name__)


@dataclass
class ScoringResults:
    """Scores of one comparison. All scores are in the range 0-100."""

    pitch_score: float = 0.0
    rhythm_score: float = 0.0
    overall_score: float = 0.0
    reference_points: int = 0
    user_points: int = 0
    dtw: DTWResult = field(default_factory=DTWResult)
    reference_rhythm: RhythmAnalysis = field(default_factory=RhythmAnalysis)
    user_rhythm: RhythmAnalysis = field(default_factory=RhythmAnalysis)

    def __str__(self):
        return (
            f"Scores: Pitch={self.pitch_score:.1f}, Rhythm={self.rhythm_score:.1f}, "
            f"Overall={self.overall_score:.1f} "
            f"(Reference={self.reference_points}, User={self.user_points} points)"
        )


class ProsodyScorer:
    """Score a user's pitch curve and rhythm against a reference recording."""

    def __init__(
        self,
        config: Optional[ScoringConfig] = None,
        normalizer: Optional[CurveNormalizer] = None,
        comparator: Optional[DTWComparator] = None,
        segmenter: Optional[RhythmSegmenter] = None,
    ):
        """Initialize the scorer.

        Args:
            config: Pitch/rhythm weights, or None for the defaults
            normalizer: Curve normalizer, or None to create a default one
            comparator: DTW comparator, or None to create a default one
            segmenter: Rhythm segmenter, or None to create a default one
        """
        self.config = config or ScoringConfig()
        self.normalizer = normalizer or CurveNormalizer()
        self.comparator = comparator or DTWComparator()
        self.segmenter = segmenter or RhythmSegmenter()

    def score(self, reference: PitchSeries, user: PitchSeries) -> ScoringResults:
        """Compare a user recording with a reference recording.

        Missing or insufficient data yields zero sub-scores instead of an error.

        Args:
            reference: Pitch series of the reference speaker
            user: Pitch series of the user

        Returns:
            The combined scoring results
        """
        dtw = self.comparator.compare_series(reference, user, self.normalizer)

        reference_rhythm = self.segmenter.segment(reference)
        user_rhythm = self.segmenter.segment(user)
        rhythm = self.segmenter.compare(reference_rhythm, user_rhythm)

        pitch_score = dtw.overall_score
        rhythm_score = rhythm * 100.0
        overall = (
            self.config.pitch_weight * pitch_score
            + self.config.rhythm_weight * rhythm_score
        )

        results = ScoringResults(
            pitch_score=pitch_score,
            rhythm_score=rhythm_score,
            overall_score=min(max(overall, 0.0), 100.0),
            reference_points=len(reference),
            user_points=len(user),
            dtw=dtw,
            reference_rhythm=reference_rhythm,
            user_rhythm=user_rhythm,
        )
        logger.info(str(results))
        return results
