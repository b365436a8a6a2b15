"""
Stratified train/holdout partitioning.
"""

import logging
import math
from dataclasses import dataclass
from typing import Tuple

import numpy as np
import pandas as pd

from wle_report.exceptions import InvariantError, SchemaError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Partition:
    """Positional row indices of the training and holdout sets, both sorted."""
    train_index: np.ndarray
    holdout_index: np.ndarray

    def apply(self, table: pd.DataFrame) -> Tuple[pd.DataFrame, pd.DataFrame]:
        return table.iloc[self.train_index].copy(), table.iloc[self.holdout_index].copy()


def stratified_partition(table: pd.DataFrame,
                         train_fraction: float,
                         seed: int,
                         label_column: str = "classe") -> Partition:
    """
    Draw ``ceil(train_fraction * n)`` rows of every label class into train.

    Classes are visited in sorted order and each one is shuffled with the same
    seeded generator, so a given seed and row order always give the same split.
    """
    if not 0.0 < train_fraction < 1.0:
        raise ValueError(f"train_fraction must be in (0, 1), got {train_fraction}")
    if label_column not in table.columns:
        raise SchemaError(f"Label column '{label_column}' not found", column=label_column)

    if len(table) == 0:
        raise InvariantError("Cannot partition an empty table")

    labels = table[label_column].to_numpy()
    rng = np.random.default_rng(seed)

    train_parts = []
    holdout_parts = []
    for label in sorted(pd.unique(labels)):
        positions = np.flatnonzero(labels == label)
        # round() guards against float noise such as 0.7 * 10 = 7.000000000000001
        n_train = math.ceil(round(train_fraction * len(positions), 9))
        if n_train >= len(positions):
            raise InvariantError(
                f"Label '{label}' has {len(positions)} rows; too few for a non-empty "
                f"holdout at train_fraction={train_fraction}",
                label=label,
            )
        shuffled = rng.permutation(positions)
        train_parts.append(shuffled[:n_train])
        holdout_parts.append(shuffled[n_train:])
        logger.debug(f"Label {label}: {n_train} train / {len(positions) - n_train} holdout")

    train_index = np.sort(np.concatenate(train_parts))
    holdout_index = np.sort(np.concatenate(holdout_parts))
    logger.info(f"Partitioned {len(table)} rows: {len(train_index)} train / "
                f"{len(holdout_index)} holdout (seed={seed})")
    return Partition(train_index=train_index, holdout_index=holdout_index)


def partition(table: pd.DataFrame,
              train_fraction: float,
              seed: int,
              label_column: str = "classe") -> Tuple[pd.DataFrame, pd.DataFrame]:
    """Stratified split into ``(train_table, holdout_table)``."""
    return stratified_partition(table, train_fraction, seed, label_column).apply(table)
