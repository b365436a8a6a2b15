"""
Column filtering by missingness ratio.
"""

import logging
from typing import Iterable, List

import pandas as pd

from wle_report.exceptions import SchemaError

logger = logging.getLogger(__name__)


def missingness_profile(table: pd.DataFrame) -> pd.Series:
    """Fraction of missing values per column."""
    if len(table) == 0:
        return pd.Series(0.0, index=table.columns)
    return table.isnull().mean()


def filter_features(table: pd.DataFrame,
                    missingness_threshold: float,
                    label_column: str = "classe",
                    identifier_column: str = "X") -> pd.DataFrame:
    """
    Keep columns whose missing fraction is strictly below ``missingness_threshold``.

    Dropped columns are removed entirely, never imputed. The identifier
    column is always removed.

    Args:
        table: Input table (not modified)
        missingness_threshold: Cutoff in [0, 1]
        label_column: Column that must survive filtering
        identifier_column: Row-sequence column to drop

    Returns:
        New table with the retained columns in their original order
    """
    if not 0.0 <= missingness_threshold <= 1.0:
        raise ValueError(f"missingness_threshold must be in [0, 1], got {missingness_threshold}")
    if label_column not in table.columns:
        raise SchemaError(f"Label column '{label_column}' not found", column=label_column)

    profile = missingness_profile(table)
    keep = profile[profile < missingness_threshold].index.tolist()

    if label_column not in keep:
        raise SchemaError(
            f"Label column '{label_column}' would be dropped: missing ratio "
            f"{profile[label_column]:.2%} >= threshold {missingness_threshold:.2%}",
            column=label_column,
        )

    keep = [col for col in keep if col != identifier_column]
    dropped = [col for col in table.columns if col not in keep]

    logger.info(f"Dropped {len(dropped)} of {len(table.columns)} columns "
                f"(threshold {missingness_threshold:.0%}); {len(keep)} retained")
    if identifier_column in table.columns:
        logger.info(f"Removed identifier column '{identifier_column}'")

    return table[keep].copy()


def align_columns(table: pd.DataFrame,
                  reference_columns: Iterable[str],
                  label_column: str = "classe") -> pd.DataFrame:
    """Restrict a scoring table to the feature columns retained on training data."""
    features: List[str] = [col for col in reference_columns if col != label_column]
    missing = [col for col in features if col not in table.columns]
    if missing:
        raise SchemaError(f"Scoring table lacks retained feature columns: {missing}",
                          column=missing[0])
    return table[features].copy()
