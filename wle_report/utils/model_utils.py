"""
Model utilities for summarizing and plotting multiclass evaluation results.
"""

import numpy as np
import pandas as pd
from pathlib import Path
from typing import Dict, Optional, Sequence, Union
from sklearn.metrics import classification_report
import logging

logger = logging.getLogger(__name__)

class ModelEvaluator:
    """Summaries derived from a confusion matrix (rows: true, columns: predicted)."""

    def per_class_error(self, matrix: pd.DataFrame) -> Dict[str, float]:
        """
        Fraction of each true class that was misclassified (1 - recall).

        Classes with no rows get NaN.
        """
        counts = matrix.to_numpy()
        row_totals = counts.sum(axis=1)
        errors = {}
        for i, label in enumerate(matrix.index):
            if row_totals[i] == 0:
                errors[str(label)] = float('nan')
            else:
                errors[str(label)] = float(1 - counts[i, i] / row_totals[i])
        return errors

    def calculate_metrics(self, matrix: pd.DataFrame, prefix: str = '') -> Dict[str, float]:
        """
        Calculate accuracy, error rate and per-class errors from a confusion matrix.

        Args:
            matrix: Square confusion matrix
            prefix: Prepended to every metric name (e.g. 'holdout_')

        Returns:
            Dictionary of metrics
        """
        counts = matrix.to_numpy()
        total = int(counts.sum())
        accuracy = float(np.trace(counts) / total) if total else float('nan')

        metrics = {
            f'{prefix}accuracy': accuracy,
            f'{prefix}error_rate': 1 - accuracy,
            f'{prefix}n_rows': total,
        }
        for label, error in self.per_class_error(matrix).items():
            metrics[f'{prefix}error_{label}'] = error
        return metrics

    def generate_classification_report(self,
                                       y_true: Sequence,
                                       y_pred: Sequence,
                                       labels: Optional[Sequence] = None) -> str:
        """Generate detailed classification report."""
        return classification_report(y_true, y_pred, labels=labels, zero_division=0)

    def plot_confusion_matrix(self,
                              matrix: pd.DataFrame,
                              output_path: Union[str, Path],
                              title: str = 'Confusion matrix') -> Path:
        """Save a heatmap of row-normalized counts, annotated with raw counts."""
        import matplotlib
        matplotlib.use('Agg')
        import matplotlib.pyplot as plt

        counts = matrix.to_numpy()
        row_totals = counts.sum(axis=1, keepdims=True)
        normalized = np.divide(counts, row_totals, out=np.zeros(counts.shape, dtype=float),
                               where=row_totals > 0)

        fig, ax = plt.subplots(figsize=(6, 5))
        image = ax.imshow(normalized, cmap='Blues', vmin=0, vmax=1)
        ax.set_xticks(range(len(matrix.columns)))
        ax.set_xticklabels([str(c) for c in matrix.columns])
        ax.set_yticks(range(len(matrix.index)))
        ax.set_yticklabels([str(i) for i in matrix.index])
        ax.set_xlabel('Predicted')
        ax.set_ylabel('True')
        ax.set_title(title)
        for i in range(counts.shape[0]):
            for j in range(counts.shape[1]):
                ax.text(j, i, str(counts[i, j]), ha='center', va='center',
                        color='white' if normalized[i, j] > 0.5 else 'black')
        fig.colorbar(image, ax=ax)
        fig.tight_layout()

        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(output_path, dpi=150)
        plt.close(fig)
        logger.info(f"Confusion matrix plot saved to {output_path}")
        return output_path
