"""
Evaluation and visualization tools for pathway activity classification.
"""

import logging
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Dict, Any, Optional, Union

import numpy as np
import pandas as pd
import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import seaborn as sns
from sklearn.metrics import confusion_matrix

from .base import (
    ACTIVE,
    INACTIVE,
    CLASS_LABELS,
    DEFINITE_LABELS,
    UP_COLUMN,
    DOWN_COLUMN,
    ClassificationResult,
)
from .errors import SchemaError

logger = logging.getLogger(__name__)

SAMPLE_COLUMN = "sample"
CLASS_COLUMN = "class"


@dataclass
class AccuracyStatistics:
    """Binary classification statistics with Active as the positive class."""

    sensitivity: float
    specificity: float
    precision: float
    false_positive_rate: float
    false_negative_rate: float
    classified_fraction: float

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


@dataclass
class AccuracyEvaluation:
    """Confusion matrix together with statistics and sample counts."""

    pathway: str
    confusion_matrix: pd.DataFrame
    statistics: AccuracyStatistics
    counts: Dict[str, int]


def _check_unique_samples(table: pd.DataFrame, name: str) -> None:
    duplicated = table.loc[table[SAMPLE_COLUMN].duplicated(), SAMPLE_COLUMN]
    if not duplicated.empty:
        raise SchemaError(
            f"{name} table has duplicate sample identifiers: "
            f"{sorted(duplicated.unique())}"
        )


def _ratio(numerator: int, denominator: int) -> float:
    if denominator == 0:
        return float("nan")
    return numerator / denominator


def read_table(path: Union[str, Path]) -> pd.DataFrame:
    """Read a CSV or tab-separated table, choosing the separator by suffix."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Table not found: {path}")
    sep = "\t" if path.suffix.lower() in (".tsv", ".txt") else ","
    return pd.read_csv(path, sep=sep)


class AccuracyEvaluator:
    """
    Accuracy assessment of predicted pathway activity classes.

    Provides methods for:
    - Joining predictions with ground truth
    - Confusion matrix construction
    - Sensitivity / specificity / precision statistics
    - Score distribution plots and markdown reports
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = config or {}
        self.visualization_config = self.config.get("visualization", {})

    def calculate_accuracy(
        self,
        predictions: Union[pd.DataFrame, ClassificationResult],
        truth: Union[pd.DataFrame, str, Path],
        pathway: str,
        show_stats: bool = False,
    ) -> pd.DataFrame:
        """
        Build the confusion matrix of predictions against ground truth.

        Args:
            predictions: Table with ``sample`` and ``class`` columns
            truth: Table (or path to one) with ``sample`` and a column named ``pathway``
            pathway: Name of the pathway column holding true labels
            show_stats: Log evaluation statistics

        Returns:
            Confusion matrix, rows = true class, columns = predicted class
        """
        evaluation = self.evaluate(predictions, truth, pathway)
        if show_stats:
            logger.info("\n" + self.format_statistics(evaluation))
        return evaluation.confusion_matrix

    def evaluate(
        self,
        predictions: Union[pd.DataFrame, ClassificationResult],
        truth: Union[pd.DataFrame, str, Path],
        pathway: str,
    ) -> AccuracyEvaluation:
        """Confusion matrix plus statistics and sample counts."""
        if isinstance(predictions, ClassificationResult):
            predictions = predictions.to_dataframe()
        if isinstance(truth, (str, Path)):
            truth = read_table(truth)

        pred_df = self._check_predictions(predictions)
        truth_df = self._select_pathway(truth, pathway)

        joined = pred_df.merge(truth_df, on=SAMPLE_COLUMN, how="inner")
        definite = joined[joined["truth"].isin(DEFINITE_LABELS)]

        if definite.empty:
            logger.warning(
                f"No samples with a definite {pathway} label matched the predictions"
            )
            matrix = np.zeros((len(CLASS_LABELS), len(CLASS_LABELS)), dtype=int)
        else:
            matrix = confusion_matrix(
                definite["truth"].astype(str),
                definite[CLASS_COLUMN],
                labels=CLASS_LABELS,
            )
        cm = pd.DataFrame(
            matrix[: len(DEFINITE_LABELS)],
            index=pd.Index(DEFINITE_LABELS, name="true"),
            columns=pd.Index(CLASS_LABELS, name="predicted"),
        )

        n_classified = int(pred_df[CLASS_COLUMN].isin(DEFINITE_LABELS).sum())
        counts = {
            "n_predictions": int(len(pred_df)),
            "n_truth": int(len(truth_df)),
            "n_matched": int(len(joined)),
            "n_unmatched_predictions": int(
                (~pred_df[SAMPLE_COLUMN].isin(truth_df[SAMPLE_COLUMN])).sum()
            ),
            "n_unmatched_truth": int(
                (~truth_df[SAMPLE_COLUMN].isin(pred_df[SAMPLE_COLUMN])).sum()
            ),
            "n_definite_truth": int(len(definite)),
            "n_classified": n_classified,
        }
        statistics = self.calculate_statistics(
            cm, counts["n_predictions"], n_classified
        )
        return AccuracyEvaluation(
            pathway=pathway, confusion_matrix=cm, statistics=statistics, counts=counts
        )

    @staticmethod
    def calculate_statistics(
        cm: pd.DataFrame, n_samples: int, n_classified: int
    ) -> AccuracyStatistics:
        """Derive binary statistics from a confusion matrix; zero denominators give NaN."""
        tp = int(cm.loc[ACTIVE, ACTIVE])
        fn = int(cm.loc[ACTIVE, INACTIVE])
        fp = int(cm.loc[INACTIVE, ACTIVE])
        tn = int(cm.loc[INACTIVE, INACTIVE])
        return AccuracyStatistics(
            sensitivity=_ratio(tp, tp + fn),
            specificity=_ratio(tn, tn + fp),
            precision=_ratio(tp, tp + fp),
            false_positive_rate=_ratio(fp, fp + tn),
            false_negative_rate=_ratio(fn, fn + tp),
            classified_fraction=_ratio(n_classified, n_samples),
        )

    @staticmethod
    def format_statistics(evaluation: AccuracyEvaluation) -> str:
        stats = evaluation.statistics
        counts = evaluation.counts
        lines = [
            f"Accuracy of pathway activity classification ({evaluation.pathway}):",
            "-" * 62,
            evaluation.confusion_matrix.to_string(),
            "",
            f"Sensitivity (true positive rate): {stats.sensitivity:.4f}",
            f"Specificity (true negative rate): {stats.specificity:.4f}",
            f"Precision: {stats.precision:.4f}",
            f"False positive rate: {stats.false_positive_rate:.4f}",
            f"False negative rate: {stats.false_negative_rate:.4f}",
            f"Fraction of samples classified: {stats.classified_fraction:.4f} "
            f"({counts['n_classified']}/{counts['n_predictions']})",
        ]
        if counts["n_unmatched_predictions"] or counts["n_unmatched_truth"]:
            lines.append(
                f"Samples without ground truth: {counts['n_unmatched_predictions']}; "
                f"ground truth samples without prediction: {counts['n_unmatched_truth']}"
            )
        return "\n".join(lines)

    def _check_predictions(self, predictions: pd.DataFrame) -> pd.DataFrame:
        missing = [
            c for c in (SAMPLE_COLUMN, CLASS_COLUMN) if c not in predictions.columns
        ]
        if missing:
            raise SchemaError(f"Predictions table missing required columns: {missing}")

        pred_df = pd.DataFrame(
            {
                SAMPLE_COLUMN: predictions[SAMPLE_COLUMN].astype(str),
                CLASS_COLUMN: predictions[CLASS_COLUMN].astype(str),
            }
        )
        _check_unique_samples(pred_df, "Predictions")
        invalid = set(pred_df[CLASS_COLUMN]) - set(CLASS_LABELS)
        if invalid:
            raise SchemaError(
                f"Predictions contain unknown classes {sorted(invalid)}; "
                f"expected {CLASS_LABELS}"
            )
        return pred_df

    def _select_pathway(self, truth: pd.DataFrame, pathway: str) -> pd.DataFrame:
        if SAMPLE_COLUMN not in truth.columns:
            raise SchemaError(
                f"Ground truth table missing required column: '{SAMPLE_COLUMN}'"
            )

        pathway_columns = {
            str(name): name for name in truth.columns if name != SAMPLE_COLUMN
        }
        if pathway not in pathway_columns:
            raise SchemaError(
                f"Pathway '{pathway}' not found in ground truth table; "
                f"available: {sorted(pathway_columns)}"
            )

        truth_df = pd.DataFrame(
            {
                SAMPLE_COLUMN: truth[SAMPLE_COLUMN].astype(str),
                "truth": truth[pathway_columns[pathway]],
            }
        )
        _check_unique_samples(truth_df, "Ground truth")
        return truth_df

    def plot_score_distribution(
        self, scores: pd.DataFrame, output_path: Union[str, Path]
    ) -> Path:
        """
        Plot density of up- and down-regulated gene-set scores across samples.

        Args:
            scores: Score pair table with ``Up`` and ``Down`` columns
            output_path: Image file to write

        Returns:
            Path to saved plot
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        figure_size = self.visualization_config.get("figure_size", [10, 4])
        dpi = self.visualization_config.get("dpi", 300)

        fig, axes = plt.subplots(ncols=2, figsize=tuple(figure_size), sharey=True)
        titles = {
            UP_COLUMN: "Up-regulated Gene Signature",
            DOWN_COLUMN: "Down-regulated Gene Signature",
        }
        for ax, column in zip(axes, (UP_COLUMN, DOWN_COLUMN)):
            values = scores[column].astype(float)
            if values.nunique() > 1:
                sns.kdeplot(x=values, fill=True, color="#69b3a2", alpha=0.8, ax=ax)
            else:
                ax.axvline(values.iloc[0], color="#69b3a2")
            ax.set_title(titles[column])
            ax.set_xlabel("Enrichment Score")
            ax.set_ylabel("Density")
            ax.set_xticks(np.round(np.arange(-1.0, 1.01, 0.4), 1))

        plt.tight_layout()
        plt.savefig(output_path, dpi=dpi, bbox_inches="tight")
        plt.close(fig)
        return output_path

    def generate_report(
        self,
        evaluation: AccuracyEvaluation,
        output_path: Union[str, Path],
        classification: Optional[ClassificationResult] = None,
    ) -> Path:
        """Generate a markdown evaluation report."""
        output_path = Path(output_path)

        with open(output_path, "w") as f:
            f.write(f"# Pathway Activity Evaluation Report: {evaluation.pathway}\n\n")

            if classification is not None:
                f.write("## Classification Summary\n")
                for label in CLASS_LABELS:
                    f.write(
                        f"- **{label}**: {classification.summary.counts.get(label, 0)}\n"
                    )
                f.write(f"- **total**: {classification.summary.total}\n")
                f.write(f"- **classified**: {classification.summary.classified}\n")
                for key, value in classification.thresholds.to_dict().items():
                    f.write(f"- **{key}**: {value:.4f}\n")
                f.write("\n")

            f.write("## Confusion Matrix\n\n")
            cm = evaluation.confusion_matrix
            f.write("| true \\ predicted | " + " | ".join(cm.columns) + " |\n")
            f.write("|---" * (len(cm.columns) + 1) + "|\n")
            for label, row in cm.iterrows():
                f.write(f"| {label} | " + " | ".join(str(v) for v in row) + " |\n")
            f.write("\n")

            f.write("## Statistics\n")
            for key, value in evaluation.statistics.to_dict().items():
                f.write(f"- **{key}**: {value:.4f}\n")
            f.write("\n")

            f.write("## Sample Counts\n")
            for key, value in evaluation.counts.items():
                f.write(f"- **{key}**: {value}\n")

        return output_path
