"""
Dual-threshold sample classifier.

A sample is Active when it scores high on the up-regulated gene-set and low
on the down-regulated gene-set, Inactive in the opposite case, and Uncertain
otherwise. Boundaries are inclusive.
"""

import logging
from typing import Optional, Union

import numpy as np
import pandas as pd

from .base import (
    ACTIVE,
    INACTIVE,
    UNCERTAIN,
    CLASS_LABELS,
    UP_COLUMN,
    DOWN_COLUMN,
    ClassificationResult,
    ClassificationSummary,
)
from .errors import InvalidInput, MissingScore
from .thresholds import ThresholdSet

logger = logging.getLogger(__name__)


def build_score_table(up_scores: pd.Series, down_scores: pd.Series) -> pd.DataFrame:
    """
    Align up and down scores on sample identity.

    Raises:
        MissingScore: If a sample is present on only one side
    """
    only_up = up_scores.index.difference(down_scores.index)
    only_down = down_scores.index.difference(up_scores.index)
    if len(only_up) or len(only_down):
        raise MissingScore(
            f"Samples without a down-regulated score: {list(only_up)}; "
            f"samples without an up-regulated score: {list(only_down)}"
        )
    return pd.DataFrame(
        {
            UP_COLUMN: up_scores.astype(float),
            DOWN_COLUMN: down_scores.reindex(up_scores.index).astype(float),
        },
        index=up_scores.index,
    )


class SampleClassifier:
    """Assigns Active / Inactive / Uncertain labels from score pairs."""

    def __init__(self, report_summary: bool = True):
        self.report_summary = report_summary

    def classify(
        self,
        scores: Union[pd.DataFrame, pd.Series],
        thresholds: ThresholdSet,
        down_scores: Optional[pd.Series] = None,
    ) -> ClassificationResult:
        """
        Classify every sample of a score pair table.

        Args:
            scores: Score pair table with ``Up`` and ``Down`` columns, or the up
                scores as a Series when ``down_scores`` is given
            thresholds: Validated ThresholdSet
            down_scores: Down scores when ``scores`` is a Series

        Returns:
            ClassificationResult with one label per sample
        """
        if down_scores is not None:
            scores = build_score_table(scores, down_scores)
        table = self._check_scores(scores)

        up = table[UP_COLUMN].to_numpy()
        dn = table[DOWN_COLUMN].to_numpy()
        active = (up >= thresholds.up_high) & (dn <= thresholds.dn_low)
        inactive = (up <= thresholds.up_low) & (dn >= thresholds.dn_high)
        classes = np.select([active, inactive], [ACTIVE, INACTIVE], default=UNCERTAIN)

        labels = pd.Series(
            pd.Categorical(classes, categories=CLASS_LABELS),
            index=table.index,
            name="class",
        )
        summary = self.summarize(labels)
        if self.report_summary:
            logger.info("\n" + summary.format())

        return ClassificationResult(
            labels=labels,
            thresholds=thresholds,
            summary=summary,
        )

    @staticmethod
    def summarize(labels: pd.Series) -> ClassificationSummary:
        counts = labels.value_counts()
        return ClassificationSummary(
            counts={label: int(counts.get(label, 0)) for label in CLASS_LABELS},
            total=int(len(labels)),
        )

    def _check_scores(self, scores: pd.DataFrame) -> pd.DataFrame:
        missing = [c for c in (UP_COLUMN, DOWN_COLUMN) if c not in scores.columns]
        if missing:
            raise MissingScore(f"Score table missing columns: {missing}")

        table = scores[[UP_COLUMN, DOWN_COLUMN]]
        duplicated = table.index[table.index.duplicated()].unique()
        if len(duplicated) > 0:
            raise InvalidInput(f"Duplicate sample identifiers in scores: {list(duplicated)}")
        incomplete = table.index[table.isna().any(axis=1)]
        if len(incomplete) > 0:
            raise MissingScore(f"Samples missing up or down scores: {list(incomplete)}")
        return table.astype(float)
