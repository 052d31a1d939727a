"""Dynamic time warping comparison of normalized pitch curves."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import numpy as np

from ..logging_config import get_logger
from ..core.settings import DTWConfig
from ..pitch_types import PitchSeries
from .normalizer import CurveNormalizer

logger = get_logger(__name__)


@dataclass
class DTWResult:
    """Outcome of comparing two pitch curves."""

    alignment_score: float = 0.0  # 0-1, from the accumulated path cost
    pitch_similarity: float = 0.0  # 0-1, closeness of aligned values
    contour_similarity: float = 0.0  # 0-1, agreement of rise/fall/flat steps
    range_similarity: float = 0.0  # 0-1, ratio of pitch spreads
    overall_score: float = 0.0  # 0-100
    path: List[Tuple[int, int]] = field(default_factory=list)
    path_cost: float = 0.0
    valid: bool = False  # False when either curve had too little data

    @property
    def alignment_length(self) -> int:
        return len(self.path)

    def __str__(self):
        return (
            f"DTW Score: {self.overall_score:.1f} (Alignment: {self.alignment_score:.3f}, "
            f"Pitch: {self.pitch_similarity:.3f}, Contour: {self.contour_similarity:.3f}, "
            f"Range: {self.range_similarity:.3f}, Path: {self.alignment_length} steps)"
        )


def _clamp01(value: float) -> float:
    return min(max(value, 0.0), 1.0)


class DTWComparator:
    """Score how similar two pitch curves are, independent of speaking rate.

    Both curves are expected to be normalized already (see CurveNormalizer).
    The local and cumulative cost matrices are kept between calls and only
    grow when a longer pair of curves arrives.
    """

    def __init__(self, config: Optional[DTWConfig] = None):
        self.config = config or DTWConfig()
        self._matrix = np.empty((0, 0), dtype=np.float64)
        self._local = np.empty((0, 0), dtype=np.float64)

    @staticmethod
    def _grown(buffer: np.ndarray, rows: int, cols: int) -> np.ndarray:
        if buffer.shape[0] < rows or buffer.shape[1] < cols:
            buffer = np.empty(
                (max(rows, buffer.shape[0]), max(cols, buffer.shape[1])), dtype=np.float64
            )
        return buffer

    def _cost_matrix(self, rows: int, cols: int) -> np.ndarray:
        self._matrix = self._grown(self._matrix, rows, cols)
        matrix = self._matrix[:rows, :cols]
        matrix.fill(np.inf)
        return matrix

    def _local_costs(self, ref: np.ndarray, usr: np.ndarray) -> np.ndarray:
        self._local = self._grown(self._local, len(ref), len(usr))
        local = self._local[:len(ref), :len(usr)]
        np.subtract.outer(ref, usr, out=local)
        np.abs(local, out=local)
        local /= self.config.pitch_tolerance
        return local

    def compare(self, reference: np.ndarray, user: np.ndarray) -> DTWResult:
        """Align two normalized curves and score their similarity.

        Args:
            reference: Normalized reference curve
            user: Normalized user curve

        Returns:
            A DTWResult; an all-zero, invalid result when either curve has
            fewer than two values
        """
        ref = np.asarray(reference, dtype=np.float64).reshape(-1)
        usr = np.asarray(user, dtype=np.float64).reshape(-1)
        if len(ref) < 2 or len(usr) < 2:
            logger.warning(
                f"Insufficient pitch data for DTW analysis ({len(ref)} vs {len(usr)} points)"
            )
            return DTWResult()

        cost_matrix = self._accumulate(ref, usr)
        n, m = len(ref), len(usr)
        path_cost = float(cost_matrix[n, m])
        path = self._backtrack(cost_matrix, n, m)

        alignment = 1.0 - _clamp01(path_cost / (max(n, m) * self.config.pitch_tolerance))
        pitch = self._pitch_similarity(ref, usr, path)
        contour = self._contour_similarity(ref, usr, path)
        spread = self._range_similarity(ref, usr)

        weights = self.config.weights
        overall = 100.0 * (
            weights.alignment * alignment
            + weights.pitch_contour * pitch
            + weights.pitch_direction * contour
            + weights.pitch_range * spread
        )

        result = DTWResult(
            alignment_score=alignment,
            pitch_similarity=pitch,
            contour_similarity=contour,
            range_similarity=spread,
            overall_score=min(max(overall, 0.0), 100.0),
            path=path,
            path_cost=path_cost,
            valid=True,
        )
        logger.debug(str(result))
        return result

    def compare_series(
        self,
        reference: PitchSeries,
        user: PitchSeries,
        normalizer: Optional[CurveNormalizer] = None,
    ) -> DTWResult:
        """Normalize two pitch series and compare them.

        Args:
            reference: Pitch series of the reference speaker
            user: Pitch series of the user
            normalizer: Normalizer to use, or None for a default one

        Returns:
            The comparison result
        """
        normalizer = normalizer or CurveNormalizer()
        ref_curve = normalizer.normalize(reference)
        user_curve = normalizer.normalize(user)
        if ref_curve is None or user_curve is None:
            logger.warning("Insufficient pitch data for DTW analysis")
            return DTWResult()
        return self.compare(ref_curve, user_curve)

    def _accumulate(self, ref: np.ndarray, usr: np.ndarray) -> np.ndarray:
        n, m = len(ref), len(usr)
        penalty = self.config.step_penalty
        local = self._local_costs(ref, usr)

        matrix = self._cost_matrix(n + 1, m + 1)
        matrix[0, 0] = 0.0
        for i in range(1, n + 1):
            row = matrix[i]
            prev = matrix[i - 1]
            costs = local[i - 1]
            for j in range(1, m + 1):
                row[j] = costs[j - 1] + min(
                    prev[j - 1], row[j - 1] + penalty, prev[j] + penalty
                )
        return matrix

    def _backtrack(self, matrix: np.ndarray, n: int, m: int) -> List[Tuple[int, int]]:
        penalty = self.config.step_penalty
        path: List[Tuple[int, int]] = []
        i, j = n, m
        while i > 0 and j > 0:
            path.append((i - 1, j - 1))
            diagonal = matrix[i - 1, j - 1]
            up = matrix[i - 1, j] + penalty
            left = matrix[i, j - 1] + penalty
            if diagonal <= up and diagonal <= left:
                i -= 1
                j -= 1
            elif up <= left:
                i -= 1
            else:
                j -= 1
        path.reverse()
        return path

    def _pitch_similarity(
        self, ref: np.ndarray, usr: np.ndarray, path: List[Tuple[int, int]]
    ) -> float:
        if not path:
            return 0.0
        indices = np.asarray(path)
        mean_difference = float(np.mean(np.abs(ref[indices[:, 0]] - usr[indices[:, 1]])))
        return math.exp(-self.config.pitch_strictness * mean_difference)

    def _direction(self, delta: float) -> int:
        epsilon = self.config.direction_epsilon
        if delta > epsilon:
            return 1
        if delta < -epsilon:
            return -1
        return 0

    def _contour_similarity(
        self, ref: np.ndarray, usr: np.ndarray, path: List[Tuple[int, int]]
    ) -> float:
        if len(path) < 2:
            return 0.0
        agreements = 0
        for (i_prev, j_prev), (i_curr, j_curr) in zip(path, path[1:]):
            if self._direction(ref[i_curr] - ref[i_prev]) == self._direction(
                usr[j_curr] - usr[j_prev]
            ):
                agreements += 1
        return agreements / (len(path) - 1)

    def _range_similarity(self, ref: np.ndarray, usr: np.ndarray) -> float:
        ref_range = float(ref.max() - ref.min())
        usr_range = float(usr.max() - usr.min())
        flat = self.config.flat_epsilon
        if ref_range <= flat and usr_range <= flat:
            return 1.0
        if ref_range <= flat or usr_range <= flat:
            return 0.0
        return min(ref_range, usr_range) / max(ref_range, usr_range)
