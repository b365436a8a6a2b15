"""
Confusion matrix and accuracy of a fitted predictor on labeled rows.
"""

import logging
from typing import Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from sklearn.metrics import confusion_matrix

from wle_report.exceptions import SchemaError
from wle_report.pipeline.model_selection import Predictor

logger = logging.getLogger(__name__)


def accuracy_from_confusion(matrix: pd.DataFrame) -> float:
    """Diagonal sum over total count."""
    total = matrix.to_numpy().sum()
    if total == 0:
        raise ValueError("Confusion matrix is empty")
    return float(np.trace(matrix.to_numpy()) / total)


def evaluate(predictor: Predictor,
             table: pd.DataFrame,
             label_column: str = 'classe',
             labels: Optional[Sequence] = None) -> Tuple[pd.DataFrame, float]:
    """
    Predict ``table`` with the predictor's stored transform and tabulate the result.

    Args:
        predictor: Fitted predictor; its statistics are never refit here
        table: Labeled rows
        label_column: Name of the label column
        labels: Label domain for the matrix axes (defaults to predictor classes
            plus any label observed in ``table``). Predicted labels outside it
            are appended so every row is counted.

    Returns:
        ``(confusion_matrix, accuracy)`` with true labels on the rows and
        predicted labels on the columns
    """
    if label_column not in table.columns:
        raise SchemaError(f"Label column '{label_column}' not found", column=label_column)
    if len(table) == 0:
        raise ValueError("Cannot evaluate on an empty table")

    y_true = table[label_column].to_numpy()
    y_pred = predictor.predict(table)

    if labels is None:
        labels = sorted(set(predictor.classes) | set(y_true.tolist()))
    labels = list(labels)
    unknown = sorted(set(y_true.tolist()) - set(labels), key=str)
    if unknown:
        raise SchemaError(f"Labels {unknown} are outside the label domain {labels}",
                          column=label_column)

    extra = sorted(set(y_pred.tolist()) - set(labels), key=str)
    if extra:
        logger.warning(f"Predicted labels {extra} are outside the label domain {labels}")
        labels = labels + extra

    matrix = pd.DataFrame(
        confusion_matrix(y_true, y_pred, labels=labels),
        index=pd.Index(labels, name='true'),
        columns=pd.Index(labels, name='predicted'),
    )
    if matrix.to_numpy().sum() != len(table):
        raise ValueError(f"Confusion matrix counts {matrix.to_numpy().sum()} rows, table has {len(table)}")
    accuracy = accuracy_from_confusion(matrix)
    logger.info(f"Evaluated {len(table)} rows: accuracy {accuracy:.4f}")
    return matrix, accuracy
