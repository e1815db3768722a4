"""
Base classes and interfaces for pathway activity classification.
"""

from abc import ABC, abstractmethod
from typing import Dict, Any, List, Tuple, TYPE_CHECKING
from dataclasses import dataclass, field
import pandas as pd

if TYPE_CHECKING:
    from .thresholds import ThresholdSet

ACTIVE = "Active"
INACTIVE = "Inactive"
UNCERTAIN = "Uncertain"

CLASS_LABELS = [ACTIVE, INACTIVE, UNCERTAIN]
DEFINITE_LABELS = [ACTIVE, INACTIVE]

UP_COLUMN = "Up"
DOWN_COLUMN = "Down"


@dataclass
class ClassificationSummary:
    """Per-class sample counts of a classification run."""

    counts: Dict[str, int]
    total: int

    @property
    def classified(self) -> int:
        return self.counts.get(ACTIVE, 0) + self.counts.get(INACTIVE, 0)

    def format(self) -> str:
        """Render the summary as a short text table."""
        lines = [
            "Summary of sample classification based on pathway activity:",
            "-" * 62,
            "Number of samples in each pathway activity class:",
        ]
        for label in CLASS_LABELS:
            lines.append(f"  {label:<10} {self.counts.get(label, 0)}")
        lines.append(f"Total number of samples: {self.total}")
        lines.append(f"Total number of samples classified: {self.classified}")
        return "\n".join(lines)


@dataclass
class ClassificationResult:
    """Container for classification results."""

    labels: pd.Series
    thresholds: "ThresholdSet"
    summary: ClassificationSummary
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dataframe(self) -> pd.DataFrame:
        """Convert results to a DataFrame with ``sample`` and ``class`` columns."""
        return pd.DataFrame(
            {"sample": self.labels.index.astype(str), "class": self.labels.values}
        )


class ScoreProvider(ABC):
    """Abstract base class for per-sample gene-set enrichment scorers."""

    def __init__(self, config: Dict[str, Any]):
        self.config = config

    @abstractmethod
    def score(
        self,
        expr: pd.DataFrame,
        up_genes: List[str],
        down_genes: List[str],
    ) -> Tuple[pd.Series, pd.Series]:
        """
        Compute enrichment scores for the up- and down-regulated gene sets.

        Args:
            expr: Expression matrix (genes x samples)
            up_genes: Up-regulated gene identifiers
            down_genes: Down-regulated gene identifiers

        Returns:
            Tuple of (up_scores, down_scores), each indexed by the matrix columns
        """
        pass

    def get_model_info(self) -> Dict[str, Any]:
        return {"method": self.__class__.__name__, "config": self.config}


class BasePreprocessor(ABC):
    """Abstract base class for input preprocessing."""

    def __init__(self, config: Dict[str, Any]):
        self.config = config

    @abstractmethod
    def preprocess(self, data: pd.DataFrame) -> pd.DataFrame:
        """
        Validate and normalise an input table.

        Args:
            data: Raw input table

        Returns:
            Validated copy of the input
        """
        pass
