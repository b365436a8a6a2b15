"""
Hyperparameter grid search with repeated stratified k-fold cross-validation.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Mapping, NamedTuple, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
from joblib import Parallel, delayed
from sklearn.metrics import accuracy_score
from sklearn.model_selection import ParameterGrid, RepeatedStratifiedKFold
from tqdm import tqdm

from wle_report.exceptions import (
    InvalidGridError, InvariantError, NoViableModelError, SchemaError, TrialFailure,
)
from wle_report.pipeline.preprocessing import FeatureStandardizer
from wle_report.pipeline.trainers import ClassifierTrainer, MLPTrainer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HyperparameterGrid:
    """Ordered hyperparameter configurations; the order decides ties."""
    configurations: Tuple[Dict[str, Any], ...]

    @classmethod
    def from_dict(cls, param_grid: Mapping[str, Sequence[Any]]) -> "HyperparameterGrid":
        """Cartesian product of candidate lists (names sorted, last name varies fastest)."""
        return cls(tuple(ParameterGrid({k: list(v) for k, v in param_grid.items()})))

    @classmethod
    def coerce(cls, grid: Union["HyperparameterGrid", Mapping, Sequence[Mapping]]) -> "HyperparameterGrid":
        if isinstance(grid, cls):
            return grid
        if isinstance(grid, Mapping):
            return cls.from_dict(grid)
        return cls(tuple(dict(c) for c in grid))

    def __iter__(self) -> Iterator[Dict[str, Any]]:
        return iter(self.configurations)

    def __len__(self) -> int:
        return len(self.configurations)


class Predictor:
    """Fitted standardizer plus fitted classifier. Read-only once built."""

    def __init__(self, standardizer: FeatureStandardizer, model, config: Dict[str, Any]):
        self._standardizer = standardizer
        self._model = model
        self._config = dict(config)

    @property
    def config(self) -> Dict[str, Any]:
        return dict(self._config)

    @property
    def classes(self) -> List[Any]:
        return list(self._model.classes_)

    @property
    def feature_columns(self) -> List[str]:
        return list(self._standardizer.feature_names_in)

    @property
    def label_column(self) -> str:
        return self._standardizer.label_column

    def transform(self, table: pd.DataFrame) -> np.ndarray:
        """Standardize ``table`` with the statistics stored at training time."""
        return self._standardizer.transform(table)

    def predict(self, table: pd.DataFrame) -> np.ndarray:
        return self._model.predict(self.transform(table))


class SelectionResult(NamedTuple):
    predictor: Predictor
    best_config: Dict[str, Any]
    cv_results: pd.DataFrame


def trial_seed(seed: int, trial_index: int) -> int:
    """Seed for one trial, independent of the order trials are executed in."""
    return int(np.random.SeedSequence([seed, trial_index]).generate_state(1)[0])


def _run_trial(trainer: ClassifierTrainer,
               X: np.ndarray,
               y: np.ndarray,
               train_idx: np.ndarray,
               val_idx: np.ndarray,
               config: Dict[str, Any],
               random_state: int) -> float:
    """Validation accuracy of one fold, or NaN if training did not converge."""
    try:
        model = trainer.fit(X[train_idx], y[train_idx], config, random_state)
    except TrialFailure as e:
        logger.warning(f"Trial failed: {e}")
        return float('nan')
    return float(accuracy_score(y[val_idx], model.predict(X[val_idx])))


def validate_grid(grid: HyperparameterGrid, trainer: ClassifierTrainer, n_classes: int):
    """Reject the whole grid if any configuration is outside the trainer's bounds."""
    offending = []
    messages = []
    for config in grid:
        problems = trainer.validate_config(config, n_classes)
        if problems:
            offending.append(config)
            messages.append(f"{config}: {', '.join(problems)}")
    if offending:
        raise InvalidGridError(
            f"{len(offending)} of {len(grid)} configurations are invalid: " + "; ".join(messages),
            offending=offending,
        )


def select_model(train_table: pd.DataFrame,
                 grid: Union[HyperparameterGrid, Mapping, Sequence[Mapping]],
                 trainer: Optional[ClassifierTrainer] = None,
                 folds: int = 10,
                 repeats: int = 3,
                 label_column: str = 'classe',
                 seed: int = 42,
                 n_jobs: int = 1,
                 show_progress: bool = True) -> SelectionResult:
    """
    Pick the configuration with the best mean cross-validated accuracy.

    Args:
        train_table: Training rows, features plus label column
        grid: Configurations to evaluate, in tie-breaking order
        trainer: Classifier trainer (defaults to ``MLPTrainer()``)
        folds: Folds per repeat
        repeats: Number of independent fold assignments
        label_column: Name of the label column
        seed: Seed for fold assignments and per-trial model initialization
        n_jobs: Parallel workers for the trials (joblib semantics)
        show_progress: Display a progress bar over the trials

    Returns:
        ``SelectionResult(predictor, best_config, cv_results)``
    """
    start_time = time.time()
    trainer = trainer or MLPTrainer()
    grid = HyperparameterGrid.coerce(grid)
    if len(grid) == 0:
        raise InvalidGridError("Hyperparameter grid is empty")
    if label_column not in train_table.columns:
        raise SchemaError(f"Label column '{label_column}' not found", column=label_column)

    y = train_table[label_column].to_numpy()
    class_counts = pd.Series(y).value_counts()
    validate_grid(grid, trainer, n_classes=len(class_counts))

    smallest = class_counts.idxmin()
    if class_counts[smallest] < folds:
        raise InvariantError(
            f"Label '{smallest}' has {class_counts[smallest]} training rows, fewer than {folds} folds",
            label=smallest,
        )

    standardizer = FeatureStandardizer(label_column=label_column).fit(train_table)
    X = standardizer.transform(train_table)

    splitter = RepeatedStratifiedKFold(n_splits=folds, n_repeats=repeats, random_state=seed)
    splits = list(splitter.split(X, y))
    n_splits = len(splits)

    logger.info(f"Grid search: {len(grid)} configurations x {repeats} repeats x {folds} folds "
                f"= {len(grid) * n_splits} trials on {X.shape[0]} rows, {X.shape[1]} features")

    trials = [
        (config, train_idx, val_idx, trial_seed(seed, config_idx * n_splits + split_idx))
        for config_idx, config in enumerate(grid)
        for split_idx, (train_idx, val_idx) in enumerate(splits)
    ]
    scores = Parallel(n_jobs=n_jobs)(
        delayed(_run_trial)(trainer, X, y, train_idx, val_idx, config, random_state)
        for config, train_idx, val_idx, random_state in tqdm(
            trials, desc="CV trials", disable=not show_progress)
    )
    scores = np.asarray(scores, dtype=float).reshape(len(grid), n_splits)

    rows = []
    for config, config_scores in zip(grid, scores):
        succeeded = config_scores[~np.isnan(config_scores)]
        rows.append({
            **config,
            'mean_accuracy': float(succeeded.mean()) if len(succeeded) else float('nan'),
            'std_accuracy': float(succeeded.std()) if len(succeeded) else float('nan'),
            'n_trials': n_splits,
            'n_failed': int(n_splits - len(succeeded)),
        })
    cv_results = pd.DataFrame(rows)

    best_idx = None
    for idx, row in cv_results.iterrows():
        if row['n_failed'] == row['n_trials']:
            logger.warning(f"Every trial failed for {grid.configurations[idx]}; excluded from selection")
            continue
        if best_idx is None or row['mean_accuracy'] > cv_results.loc[best_idx, 'mean_accuracy']:
            best_idx = idx

    if best_idx is None:
        raise NoViableModelError(f"All {len(grid)} configurations failed every trial")

    cv_results['selected'] = cv_results.index == best_idx
    best_config = dict(grid.configurations[best_idx])
    logger.info(f"Selected {best_config} with mean CV accuracy "
                f"{cv_results.loc[best_idx, 'mean_accuracy']:.4f}")

    try:
        model = trainer.fit(X, y, best_config, random_state=seed)
    except TrialFailure as e:
        raise NoViableModelError(f"Final fit failed for {best_config}: {e}") from e

    elapsed_time = time.time() - start_time
    logger.info(f"Model selection completed in {elapsed_time:.2f} seconds")
    return SelectionResult(Predictor(standardizer, model, best_config), best_config, cv_results)
