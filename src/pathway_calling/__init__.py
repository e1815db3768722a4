"""
Pathway Calling Module

This module classifies transcriptomic samples by pathway activity using
enrichment scores of the up-regulated and down-regulated halves of a gene
signature, and evaluates the calls against ground truth.

Key Features:
- GSVA-style enrichment scoring for count and continuous expression data
- Absolute or percentile score thresholds
- Dual-threshold Active / Inactive / Uncertain classification
- Confusion matrix and sensitivity / specificity statistics
- Configurable YAML-driven pipeline with reports and score plots
"""

from .base import ClassificationResult, ClassificationSummary, ScoreProvider
from .errors import (
    PathwayCallingError,
    InvalidInput,
    InvalidSignature,
    InvalidThreshold,
    MissingScore,
    SchemaError,
)
from .thresholds import ThresholdResolver, ThresholdSet
from .classifier import SampleClassifier
from .data_processor import ExpressionDataProcessor, SignatureProcessor
from .gsva_method import GSVAScorer
from .evaluator import AccuracyEvaluator, AccuracyEvaluation, AccuracyStatistics
from .pipeline import PathwayClassificationPipeline
from .config_loader import (
    load_pathway_calling_config,
    validate_pathway_calling_config,
    get_default_pathway_calling_config,
)

__version__ = "1.0.0"
__all__ = [
    "ClassificationResult",
    "ClassificationSummary",
    "ScoreProvider",
    "PathwayCallingError",
    "InvalidInput",
    "InvalidSignature",
    "InvalidThreshold",
    "MissingScore",
    "SchemaError",
    "ThresholdResolver",
    "ThresholdSet",
    "SampleClassifier",
    "ExpressionDataProcessor",
    "SignatureProcessor",
    "GSVAScorer",
    "AccuracyEvaluator",
    "AccuracyEvaluation",
    "AccuracyStatistics",
    "PathwayClassificationPipeline",
    "load_pathway_calling_config",
    "validate_pathway_calling_config",
    "get_default_pathway_calling_config",
]
