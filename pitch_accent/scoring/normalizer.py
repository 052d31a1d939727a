"""Speaker independent normalization of pitch curves."""

from __future__ import annotations

from typing import Optional

import numpy as np

from ..logging_config import get_logger
from ..core.settings import NormalizerConfig
from ..pitch_types import PitchSeries

logger = get_logger(__name__)


class CurveNormalizer:
    """Turn a pitch series into a zero-mean, unit-variance curve.

    Unvoiced and low-confidence points are dropped, the remaining frequencies
    are optionally converted to semitones and then z-scored, so that a low
    and a high voice speaking the same melody produce the same curve.
    """

    def __init__(self, config: Optional[NormalizerConfig] = None):
        self.config = config or NormalizerConfig()

    def normalize(self, series: PitchSeries) -> Optional[np.ndarray]:
        """Normalize the voiced part of a pitch series.

        Args:
            series: Pitch points of one recording

        Returns:
            The normalized curve, or None when fewer than two usable points remain
        """
        floor = self.config.confidence_floor
        frequencies = np.array(
            [p.frequency for p in series if p.has_pitch(floor)], dtype=np.float64
        )
        return self.normalize_frequencies(frequencies)

    def normalize_frequencies(self, frequencies: np.ndarray) -> Optional[np.ndarray]:
        """Normalize an array of frequencies in Hz.

        Non-positive and non-finite values are ignored. A curve whose spread is
        below `flat_epsilon` is returned mean-centred without scaling.

        Args:
            frequencies: Frequencies in Hz

        Returns:
            The normalized curve, or None when fewer than two usable values remain
        """
        values = np.asarray(frequencies, dtype=np.float64).reshape(-1)
        values = values[np.isfinite(values) & (values > 0)]
        if len(values) < 2:
            logger.debug(f"Not enough voiced points to normalize: {len(values)}")
            return None

        if self.config.use_semitones:
            values = 12.0 * np.log2(values / self.config.reference_frequency)

        centred = values - values.mean()
        spread = float(centred.std())
        if spread < self.config.flat_epsilon:
            logger.debug("Flat pitch curve, returning centred values")
            return centred
        return centred / spread
