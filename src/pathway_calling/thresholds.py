"""
Threshold resolution for dual-threshold pathway classification.

Thresholds are given either as absolute enrichment-score values or as a
percentile of the score distribution across samples.
"""

import math
import numbers
import logging
from dataclasses import dataclass
from typing import Any, Dict

import pandas as pd

from .base import UP_COLUMN, DOWN_COLUMN
from .errors import InvalidThreshold, MissingScore

logger = logging.getLogger(__name__)

DEFAULT_PERCENT_THRESH = 25


def _is_real(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        return False
    return not math.isnan(value)


def check_threshold_order(up_low, up_high, dn_low, dn_high) -> None:
    """
    Validate four thresholds for type and low/high ordering.

    Raises:
        InvalidThreshold: If a value is not a real number or a pair is inverted
    """
    named = {
        "up_thresh.low": up_low,
        "up_thresh.high": up_high,
        "dn_thresh.low": dn_low,
        "dn_thresh.high": dn_high,
    }
    for name, value in named.items():
        if not _is_real(value):
            raise InvalidThreshold(f"Threshold {name} must be a number, got {value!r}")

    if up_low > up_high:
        raise InvalidThreshold(
            f"The low threshold for the up-regulated gene-set (up_thresh.low={up_low}) "
            f"is higher than the high threshold (up_thresh.high={up_high})"
        )
    if dn_low > dn_high:
        raise InvalidThreshold(
            f"The low threshold for the down-regulated gene-set (dn_thresh.low={dn_low}) "
            f"is higher than the high threshold (dn_thresh.high={dn_high})"
        )


@dataclass(frozen=True)
class ThresholdSet:
    """Four score boundaries used by the dual-threshold decision rule."""

    up_low: float
    up_high: float
    dn_low: float
    dn_high: float

    def __post_init__(self):
        check_threshold_order(self.up_low, self.up_high, self.dn_low, self.dn_high)

    def to_dict(self) -> Dict[str, float]:
        return {
            "up_low": float(self.up_low),
            "up_high": float(self.up_high),
            "dn_low": float(self.dn_low),
            "dn_high": float(self.dn_high),
        }


class ThresholdResolver:
    """Builds validated ThresholdSets from absolute values or percentiles."""

    @staticmethod
    def from_absolute(up_low, up_high, dn_low, dn_high) -> ThresholdSet:
        """
        Use the given score thresholds unchanged.

        Args:
            up_low: Score at or below which a sample is inconsistent with the up-set
            up_high: Score at or above which a sample is consistent with the up-set
            dn_low: Score at or below which a sample is consistent with the down-set
            dn_high: Score at or above which a sample is inconsistent with the down-set

        Returns:
            Validated ThresholdSet
        """
        return ThresholdSet(up_low, up_high, dn_low, dn_high)

    @staticmethod
    def from_percentile(
        scores: pd.DataFrame, percent_thresh=DEFAULT_PERCENT_THRESH
    ) -> ThresholdSet:
        """
        Derive thresholds from the p-th and (1-p)-th score quantiles.

        Quantiles use linear interpolation between order statistics and are
        computed separately for the up and down score distributions.
        ``percent_thresh`` must not exceed 50, since the low quantile would
        then lie above the high one.

        Args:
            scores: Score pair table with ``Up`` and ``Down`` columns
            percent_thresh: Percentile in [0, 50]

        Returns:
            Validated ThresholdSet
        """
        if not _is_real(percent_thresh):
            raise InvalidThreshold(
                f"Percentile threshold must be a number, got {percent_thresh!r}"
            )
        p = percent_thresh / 100
        if p < 0 or p > 1:
            raise InvalidThreshold(
                f"Percentile threshold must be between 0 and 100, got {percent_thresh}"
            )
        if p > 0.5:
            raise InvalidThreshold(
                f"Percentile threshold must not exceed 50, got {percent_thresh}"
            )

        missing = [c for c in (UP_COLUMN, DOWN_COLUMN) if c not in scores.columns]
        if missing:
            raise MissingScore(f"Score table missing columns: {missing}")
        if scores.empty:
            raise MissingScore("Score table contains no samples")
        incomplete = scores.index[scores[[UP_COLUMN, DOWN_COLUMN]].isna().any(axis=1)]
        if len(incomplete) > 0:
            raise MissingScore(
                f"Samples missing up or down scores: {list(incomplete)}"
            )

        up_q = scores[UP_COLUMN].quantile([p, 1 - p], interpolation="linear")
        dn_q = scores[DOWN_COLUMN].quantile([p, 1 - p], interpolation="linear")
        thresholds = ThresholdSet(
            up_low=float(up_q.iloc[0]),
            up_high=float(up_q.iloc[1]),
            dn_low=float(dn_q.iloc[0]),
            dn_high=float(dn_q.iloc[1]),
        )
        logger.info(
            f"Percentile thresholds ({percent_thresh}%): {thresholds.to_dict()}"
        )
        return thresholds
