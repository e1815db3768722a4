"""
Complete pipeline for pathway activity classification.
"""

import pandas as pd
from pathlib import Path
from typing import Dict, Any, Optional, Union
import yaml
import logging
from .base import ClassificationResult, ScoreProvider, UP_COLUMN, DOWN_COLUMN
from .classifier import SampleClassifier, build_score_table
from .data_processor import ExpressionDataProcessor, SignatureProcessor
from .evaluator import AccuracyEvaluation, AccuracyEvaluator, read_table
from .gsva_method import GSVAScorer
from .thresholds import ThresholdResolver, ThresholdSet
from .config_loader import (
    load_pathway_calling_config,
    validate_pathway_calling_config,
    get_default_pathway_calling_config,
)


class PathwayClassificationPipeline:
    """
    Complete pipeline for pathway activity classification.

    Handles the full workflow from an expression matrix and gene signature
    to classified samples, with optional accuracy evaluation.
    """

    def __init__(
        self,
        config_path: Optional[Union[str, Path]] = None,
        config: Optional[Dict[str, Any]] = None,
        score_provider: Optional[ScoreProvider] = None,
    ):
        """
        Initialize the classification pipeline.

        Args:
            config_path: Path to YAML configuration file
            config: Configuration dictionary (overrides config_path if provided)
            score_provider: Enrichment scorer (defaults to GSVAScorer)
        """
        self.logger = logging.getLogger(__name__)

        if config is not None:
            self.config = config
        elif config_path is not None:
            self.config = load_pathway_calling_config(config_path)
        else:
            self.config = get_default_pathway_calling_config()

        validation_errors = validate_pathway_calling_config(self.config)
        if validation_errors:
            raise ValueError(f"Configuration validation failed: {validation_errors}")

        # Initialize components
        self.expression_processor = ExpressionDataProcessor()
        self.signature_processor = SignatureProcessor()
        self.score_provider = score_provider or self._create_score_provider()
        self.classifier = SampleClassifier()
        self.evaluator = AccuracyEvaluator(self.config.get("evaluation", {}))

    def _create_score_provider(self) -> ScoreProvider:
        """Create score provider based on configuration."""
        scoring = self.config.get("scoring", {})
        method = scoring.get("method", "gsva")

        if method == "gsva":
            return GSVAScorer(scoring)
        else:
            raise ValueError(f"Unsupported scoring method: {method}")

    def load_expression(self, data_path: Union[str, Path]) -> pd.DataFrame:
        """Load an expression matrix with gene symbols in the first column."""
        self.logger.info(f"Loading expression data from {data_path}")
        expr = read_table(data_path)
        expr = expr.set_index(expr.columns[0])
        expr.index.name = None
        self.logger.info(
            f"Loaded expression matrix: {expr.shape[0]} genes x {expr.shape[1]} samples"
        )
        return expr

    def load_signature(self, signature_path: Union[str, Path]) -> pd.DataFrame:
        """Load a gene signature table (``gene``, ``expression``)."""
        sig = read_table(signature_path)
        self.logger.info(f"Loaded signature with {len(sig)} genes from {signature_path}")
        return sig

    def load_ground_truth(self, truth_path: Union[str, Path]) -> pd.DataFrame:
        truth = read_table(truth_path)
        self.logger.info(f"Loaded ground truth for {len(truth)} samples from {truth_path}")
        return truth

    def score(self, expr: pd.DataFrame, signature: pd.DataFrame) -> pd.DataFrame:
        """
        Compute the score pair table for an expression matrix.

        Args:
            expr: Expression matrix (genes x samples)
            signature: Gene signature table

        Returns:
            DataFrame indexed by sample with ``Up`` and ``Down`` columns
        """
        up_genes, down_genes = self.signature_processor.split(signature)
        expr = self.expression_processor.preprocess(expr)
        SignatureProcessor.report_overlap(expr, up_genes, down_genes)

        up_scores, down_scores = self.score_provider.score(expr, up_genes, down_genes)
        return build_score_table(up_scores, down_scores)

    def classify_absolute(
        self,
        expr: pd.DataFrame,
        signature: pd.DataFrame,
        up_low,
        up_high,
        dn_low,
        dn_high,
    ) -> ClassificationResult:
        """Classify samples using absolute score thresholds."""
        # Fail on bad thresholds before the expensive scoring step
        thresholds = ThresholdResolver.from_absolute(up_low, up_high, dn_low, dn_high)
        scores = self.score(expr, signature)
        return self._classify_scores(scores, thresholds, mode="absolute")

    def classify_percentile(
        self,
        expr: pd.DataFrame,
        signature: pd.DataFrame,
        percent_thresh=None,
    ) -> ClassificationResult:
        """Classify samples using percentile thresholds of the score distributions."""
        if percent_thresh is None:
            percent_thresh = self.config["classification"].get("percent_thresh", 25)
        scores = self.score(expr, signature)
        thresholds = ThresholdResolver.from_percentile(scores, percent_thresh)
        result = self._classify_scores(scores, thresholds, mode="percentile")
        result.metadata["percent_thresh"] = percent_thresh
        return result

    def classify(self, expr: pd.DataFrame, signature: pd.DataFrame) -> ClassificationResult:
        """Classify samples with the thresholds mode given in the configuration."""
        classification = self.config["classification"]
        if classification["mode"] == "absolute":
            absolute = classification["absolute"]
            return self.classify_absolute(
                expr,
                signature,
                absolute["up_low"],
                absolute["up_high"],
                absolute["dn_low"],
                absolute["dn_high"],
            )
        return self.classify_percentile(expr, signature)

    def _classify_scores(
        self, scores: pd.DataFrame, thresholds: ThresholdSet, mode: str
    ) -> ClassificationResult:
        result = self.classifier.classify(scores, thresholds)
        result.metadata.update(
            {
                "mode": mode,
                "scores": scores,
                "score_provider": self.score_provider.get_model_info(),
            }
        )
        return result

    def evaluate(
        self,
        result: ClassificationResult,
        truth: Union[pd.DataFrame, str, Path],
        pathway: str,
        show_stats: Optional[bool] = None,
    ) -> AccuracyEvaluation:
        """
        Evaluate classification results against ground truth.

        Args:
            result: ClassificationResult object
            truth: Ground truth table or path to one
            pathway: Pathway column in the ground truth
            show_stats: Log statistics (defaults to evaluation.show_stats)

        Returns:
            AccuracyEvaluation with confusion matrix and statistics
        """
        if show_stats is None:
            show_stats = self.config.get("evaluation", {}).get("show_stats", True)

        self.logger.info(f"Evaluating classification against {pathway} ground truth")
        evaluation = self.evaluator.evaluate(result, truth, pathway)
        if show_stats:
            self.logger.info("\n" + self.evaluator.format_statistics(evaluation))
        return evaluation

    def run_full_pipeline(
        self,
        expression_path: Union[str, Path],
        signature_path: Union[str, Path],
        output_dir: Union[str, Path],
        ground_truth_path: Optional[Union[str, Path]] = None,
        pathway: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Run the complete classification pipeline.

        Args:
            expression_path: Path to expression matrix
            signature_path: Path to gene signature
            output_dir: Output directory for results
            ground_truth_path: Optional ground truth table
            pathway: Pathway column to evaluate against

        Returns:
            Dictionary containing all results
        """
        self.logger.info("Running full pathway classification pipeline")
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

        expr = self.load_expression(expression_path)
        signature = self.load_signature(signature_path)

        result = self.classify(expr, signature)
        scores = result.metadata["scores"]

        result.to_dataframe().to_csv(output_dir / "predictions.csv", index=False)

        output_config = self.config.get("output", {})
        if output_config.get("save_scores", True):
            scores.rename_axis("sample").to_csv(output_dir / "scores.csv")
        if output_config.get("save_plots", True):
            self.evaluator.plot_score_distribution(
                scores[[UP_COLUMN, DOWN_COLUMN]], output_dir / "score_distribution.png"
            )

        with open(output_dir / "config.yaml", "w") as f:
            yaml.dump(self.config, f, default_flow_style=False)

        results = {
            "classification_result": result,
            "config": self.config,
        }

        if ground_truth_path is not None:
            if not pathway:
                raise ValueError("A pathway name is required to evaluate ground truth")
            truth = self.load_ground_truth(ground_truth_path)
            evaluation = self.evaluate(result, truth, pathway)
            evaluation.confusion_matrix.to_csv(output_dir / "confusion_matrix.csv")
            if self.config.get("evaluation", {}).get("generate_report", True):
                self.evaluator.generate_report(
                    evaluation, output_dir / "evaluation_report.md", result
                )
            results["evaluation"] = evaluation

        self.logger.info("Full pipeline completed")
        return results
