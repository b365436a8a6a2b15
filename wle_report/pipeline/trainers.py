"""
Classifier trainers plugged into the model selector.

A trainer turns a standardized feature matrix, labels and one hyperparameter
configuration into a fitted estimator exposing ``predict``.
"""

import logging
import warnings
from abc import ABC, abstractmethod
from typing import Any, Dict, List

import numpy as np
from sklearn.exceptions import ConvergenceWarning
from sklearn.neural_network import MLPClassifier

from wle_report.exceptions import TrialFailure

logger = logging.getLogger(__name__)


class ClassifierTrainer(ABC):
    """Train a classifier given data and one hyperparameter configuration."""

    max_hidden_units: int = 11

    def validate_config(self, config: Dict[str, Any], n_classes: int) -> List[str]:
        """Return the reasons ``config`` is outside the model family's bounds."""
        problems = []
        hidden_units = config.get('hidden_units')
        if hidden_units is None:
            problems.append("missing 'hidden_units'")
        elif hidden_units < n_classes:
            problems.append(f"hidden_units={hidden_units} < {n_classes} label classes")
        elif hidden_units > self.max_hidden_units:
            problems.append(f"hidden_units={hidden_units} > trainer limit {self.max_hidden_units}")
        return problems

    @abstractmethod
    def fit(self, X: np.ndarray, y: np.ndarray, config: Dict[str, Any], random_state: int):
        """Fit and return a model; raise TrialFailure if training does not converge."""


class MLPTrainer(ClassifierTrainer):
    """Single-hidden-layer network with weight decay, trained with L-BFGS."""

    def __init__(self,
                 max_iter: int = 1000,
                 max_hidden_units: int = 11,
                 strict_convergence: bool = True):
        """
        Args:
            max_iter: Maximum L-BFGS iterations per fit
            max_hidden_units: Largest hidden layer this trainer accepts
            strict_convergence: Treat a fit that does not converge within
                ``max_iter`` as a failed trial
        """
        self.max_iter = max_iter
        self.max_hidden_units = max_hidden_units
        self.strict_convergence = strict_convergence

    def build_model(self, config: Dict[str, Any], random_state: int) -> MLPClassifier:
        return MLPClassifier(
            hidden_layer_sizes=(int(config['hidden_units']),),
            alpha=float(config.get('decay', 0.0)),
            activation='logistic',
            solver='lbfgs',
            max_iter=self.max_iter,
            random_state=random_state,
        )

    def fit(self, X: np.ndarray, y: np.ndarray, config: Dict[str, Any], random_state: int) -> MLPClassifier:
        model = self.build_model(config, random_state)
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter('always', ConvergenceWarning)
            try:
                model.fit(X, y)
            except (FloatingPointError, ValueError) as e:
                raise TrialFailure(f"Training failed for {config}: {e}") from e

        if not np.isfinite(model.loss_):
            raise TrialFailure(f"Non-finite loss for {config}")

        if any(issubclass(w.category, ConvergenceWarning) for w in caught):
            if self.strict_convergence:
                raise TrialFailure(f"Did not converge within {self.max_iter} iterations for {config}")
            logger.debug(f"Reached max_iter={self.max_iter} for {config}")

        return model
