"""
Input validation for expression matrices and gene signatures.
"""

import logging
from typing import Dict, Any, List, Optional, Tuple

import numpy as np
import pandas as pd

from .base import BasePreprocessor
from .errors import InvalidInput, InvalidSignature

logger = logging.getLogger(__name__)

GENE_COLUMN = "gene"
POLARITY_COLUMN = "expression"
UP_POLARITY = 1
DOWN_POLARITY = -1


class ExpressionDataProcessor(BasePreprocessor):
    """
    Validator for expression matrices (genes x samples).

    Handles:
    - Type and numeric-content checks
    - Missing value detection
    - Duplicate gene and sample identifiers (rejected)
    - Count vs continuous regime detection
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        super().__init__(config or {})

    def preprocess(self, data: pd.DataFrame) -> pd.DataFrame:
        """
        Validate an expression matrix and return a float copy.

        Args:
            data: Expression matrix with gene symbols as index and sample IDs as columns

        Returns:
            Validated matrix as float64
        """
        if not isinstance(data, pd.DataFrame):
            raise InvalidInput(
                f"Expression data must be a pandas DataFrame, got {type(data).__name__}"
            )
        if data.shape[0] == 0 or data.shape[1] == 0:
            raise InvalidInput(f"Expression matrix is empty (shape {data.shape})")

        non_numeric = [
            col
            for col, dtype in data.dtypes.items()
            if not pd.api.types.is_numeric_dtype(dtype)
            or pd.api.types.is_bool_dtype(dtype)
        ]
        if non_numeric:
            raise InvalidInput(
                f"Expression matrix contains non-numerical data in samples: {non_numeric[:10]}"
            )

        values = data.to_numpy(dtype=float)
        if not np.isfinite(values).all():
            raise InvalidInput("Expression matrix contains missing or infinite values")

        self._check_unique(data.index, "gene")
        self._check_unique(data.columns, "sample")

        return pd.DataFrame(values, index=data.index, columns=data.columns)

    @staticmethod
    def _check_unique(labels: pd.Index, kind: str) -> None:
        duplicated = labels[labels.duplicated()].unique()
        if len(duplicated) > 0:
            raise InvalidInput(
                f"Expression matrix has duplicate {kind} identifiers: {list(duplicated)[:10]}"
            )

    @staticmethod
    def is_count_data(data: pd.DataFrame) -> bool:
        """True when every value is a non-negative integer (raw read counts)."""
        values = data.to_numpy(dtype=float)
        return bool(np.all(np.mod(values, 1) == 0) and np.all(values >= 0))


class SignatureProcessor(BasePreprocessor):
    """
    Validator for gene signatures.

    A signature has a ``gene`` column and an ``expression`` column holding
    +1 for up-regulated and -1 for down-regulated genes.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        super().__init__(config or {})

    def preprocess(self, data: pd.DataFrame) -> pd.DataFrame:
        if not isinstance(data, pd.DataFrame):
            raise InvalidSignature(
                f"Signature must be a pandas DataFrame, got {type(data).__name__}"
            )

        missing = [c for c in (GENE_COLUMN, POLARITY_COLUMN) if c not in data.columns]
        if missing:
            raise InvalidSignature(f"Signature missing required columns: {missing}")

        sig = data[[GENE_COLUMN, POLARITY_COLUMN]].copy()
        if sig[GENE_COLUMN].isna().any():
            raise InvalidSignature("Signature contains missing gene identifiers")

        invalid = sig.loc[~sig[POLARITY_COLUMN].isin([UP_POLARITY, DOWN_POLARITY])]
        if len(invalid) > 0:
            raise InvalidSignature(
                f"Invalid polarity values {invalid[POLARITY_COLUMN].unique().tolist()}; "
                f"expected {UP_POLARITY} (up) or {DOWN_POLARITY} (down)"
            )
        sig[POLARITY_COLUMN] = sig[POLARITY_COLUMN].astype(int)
        sig[GENE_COLUMN] = sig[GENE_COLUMN].astype(str)

        sig = sig.drop_duplicates()
        conflicting = sig.loc[sig[GENE_COLUMN].duplicated(), GENE_COLUMN].unique()
        if len(conflicting) > 0:
            raise InvalidSignature(
                f"Genes listed as both up- and down-regulated: {list(conflicting)}"
            )

        for polarity, name in ((UP_POLARITY, "up"), (DOWN_POLARITY, "down")):
            if not (sig[POLARITY_COLUMN] == polarity).any():
                raise InvalidSignature(f"Signature has no {name}-regulated genes")

        return sig.reset_index(drop=True)

    def split(self, data: pd.DataFrame) -> Tuple[List[str], List[str]]:
        """Return (up_genes, down_genes) of a validated signature."""
        sig = self.preprocess(data)
        up = sig.loc[sig[POLARITY_COLUMN] == UP_POLARITY, GENE_COLUMN].tolist()
        down = sig.loc[sig[POLARITY_COLUMN] == DOWN_POLARITY, GENE_COLUMN].tolist()
        return up, down

    @staticmethod
    def report_overlap(
        expr: pd.DataFrame, up_genes: List[str], down_genes: List[str]
    ) -> Dict[str, int]:
        """Log signature genes absent from the expression matrix."""
        genes = set(expr.index.astype(str))
        overlap = {}
        for name, gene_set in (("up", up_genes), ("down", down_genes)):
            absent = [g for g in gene_set if g not in genes]
            overlap[name] = len(gene_set) - len(absent)
            if absent:
                logger.warning(
                    f"{len(absent)}/{len(gene_set)} {name}-regulated genes not in "
                    f"expression matrix: {absent[:10]}"
                )
        return overlap
