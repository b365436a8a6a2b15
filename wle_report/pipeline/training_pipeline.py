"""
Main Report Pipeline
"""

from __future__ import annotations

import argparse
import logging
import shutil
import tempfile
import time
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import numpy as np
import pandas as pd
import yaml

from wle_report.pipeline.evaluation import evaluate
from wle_report.pipeline.filtering import align_columns, filter_features, missingness_profile
from wle_report.pipeline.loader import DEFAULT_NA_VALUES, load_dataset
from wle_report.pipeline.model_selection import Predictor, SelectionResult, select_model
from wle_report.pipeline.partitioning import partition
from wle_report.pipeline.preprocessing import DataValidator
from wle_report.pipeline.trainers import ClassifierTrainer, MLPTrainer
from wle_report.utils.experiment_tracking import ExperimentTracker
from wle_report.utils.model_utils import ModelEvaluator

logger = logging.getLogger(__name__)


def load_config(config_path: Union[str, Path]) -> Dict[str, Any]:
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def convert_numpy_types(obj):
    """Convert numpy types to native Python types for YAML serialization."""
    if isinstance(obj, dict):
        return {str(k): convert_numpy_types(v) for k, v in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [convert_numpy_types(v) for v in obj]
    elif hasattr(obj, 'item'):  # numpy scalar
        return obj.item()
    elif hasattr(obj, 'tolist'):  # numpy array
        return obj.tolist()
    return obj


# =====================
# WLEReportPipeline
# =====================
class WLEReportPipeline:
    """Load, clean, split, select a model and evaluate it in- and out-of-sample."""

    def __init__(self, config: Dict[str, Any]):
        self.config = config
        data_cfg = config.get("data", {})
        self.label_column: str = data_cfg.get("label_column", "classe")
        self.identifier_column: str = data_cfg.get("identifier_column", "X")
        self.seed: int = int(config.get("random_seed", 42))

        self.predictor: Optional[Predictor] = None
        self.experiment_tracker = ExperimentTracker(config.get("mlflow", {}))
        self.evaluator = ModelEvaluator()

    # ---------- Data ----------
    def load_data(self) -> pd.DataFrame:
        data_cfg = self.config.get("data", {})
        df = load_dataset(
            data_cfg["training_url"],
            data_cfg.get("training_path", "data/raw/pml-training.csv"),
            na_values=data_cfg.get("na_values", DEFAULT_NA_VALUES),
            timeout=data_cfg.get("timeout_sec", 60),
        )
        if self.label_column in df.columns:
            logger.info(f"Label distribution:\n{df[self.label_column].value_counts().sort_index().to_string()}")
        return df

    def load_scoring_data(self) -> Optional[pd.DataFrame]:
        data_cfg = self.config.get("data", {})
        if not data_cfg.get("testing_url"):
            return None
        return load_dataset(
            data_cfg["testing_url"],
            data_cfg.get("testing_path", "data/raw/pml-testing.csv"),
            na_values=data_cfg.get("na_values", DEFAULT_NA_VALUES),
            timeout=data_cfg.get("timeout_sec", 60),
        )

    def validate_data(self, df: pd.DataFrame):
        logger.info("Validating label column...")
        validator = DataValidator()
        validator.setup_label_rules(self.label_column, self.config.get("data", {}).get("label_domain"))
        validator.require_valid(df)
        logger.info("Data validation passed")

    def clean_data(self, df: pd.DataFrame) -> pd.DataFrame:
        threshold = float(self.config.get("filtering", {}).get("missingness_threshold", 0.1))
        return filter_features(df, threshold, self.label_column, self.identifier_column)

    def split_data(self, df: pd.DataFrame) -> Tuple[pd.DataFrame, pd.DataFrame]:
        train_fraction = float(self.config.get("partitioning", {}).get("train_fraction", 0.7))
        return partition(df, train_fraction, self.seed, self.label_column)

    # ---------- Training ----------
    def build_trainer(self) -> ClassifierTrainer:
        model_cfg = self.config.get("model", {})
        name = model_cfg.get("trainer", "mlp")
        if name == "mlp":
            return MLPTrainer(
                max_iter=int(model_cfg.get("max_iter", 1000)),
                max_hidden_units=int(model_cfg.get("max_hidden_units", 11)),
                strict_convergence=bool(model_cfg.get("strict_convergence", True)),
            )
        raise ValueError(f"Unknown trainer: {name}")

    def train_model(self, train: pd.DataFrame) -> SelectionResult:
        logger.info("Starting model selection...")
        ms_cfg = self.config.get("model_selection", {})
        result = select_model(
            train,
            ms_cfg.get("grid", {"hidden_units": [5, 7, 9, 11], "decay": [0.0, 0.1, 0.5]}),
            trainer=self.build_trainer(),
            folds=int(ms_cfg.get("folds", 10)),
            repeats=int(ms_cfg.get("repeats", 3)),
            label_column=self.label_column,
            seed=self.seed,
            n_jobs=int(ms_cfg.get("n_jobs", 1)),
            show_progress=bool(ms_cfg.get("show_progress", True)),
        )
        self.predictor = result.predictor
        return result

    # ---------- Evaluation ----------
    def evaluate_model(self, table: pd.DataFrame, name: str) -> Tuple[pd.DataFrame, Dict[str, float]]:
        if self.predictor is None:
            raise ValueError("Model not trained yet")
        labels = self.config.get("data", {}).get("label_domain")
        matrix, accuracy = evaluate(self.predictor, table, self.label_column, labels=labels)
        metrics = self.evaluator.calculate_metrics(matrix, prefix=f"{name}_")
        logger.info(f"{name} accuracy: {accuracy:.4f} (error {1 - accuracy:.4f})")
        return matrix, metrics

    def score_unlabeled(self, scoring: pd.DataFrame) -> pd.DataFrame:
        """Predict labels for rows without a label column, using the predictor's feature columns."""
        if self.predictor is None:
            raise ValueError("Model not trained yet")
        features = align_columns(scoring, self.predictor.feature_columns, self.predictor.label_column)
        predictions = pd.DataFrame({self.label_column: self.predictor.predict(features)})
        if "problem_id" in scoring.columns:
            predictions.insert(0, "problem_id", scoring["problem_id"].to_numpy())
        logger.info(f"Scored {len(predictions)} unlabeled rows")
        return predictions

    # ---------- Artifacts ----------
    def save_artifacts(self,
                       output_dir: Union[str, Path],
                       metrics: Dict[str, Any],
                       cv_results: pd.DataFrame,
                       matrices: Dict[str, pd.DataFrame],
                       classification_report: str,
                       predictions: Optional[pd.DataFrame] = None):
        out = Path(output_dir)
        out.parent.mkdir(parents=True, exist_ok=True)
        logger.info(f"Saving report artifacts to {out}")

        # Written to a staging directory first; out only ever holds a complete report
        staging = Path(tempfile.mkdtemp(prefix=f".{out.name}.", dir=out.parent))
        try:
            self._write_artifacts(staging, metrics, cv_results, matrices, classification_report, predictions)
        except Exception:
            shutil.rmtree(staging, ignore_errors=True)
            raise

        if out.exists():
            for path in staging.iterdir():
                path.replace(out / path.name)
            staging.rmdir()
        else:
            staging.replace(out)
        logger.info("Artifacts saved successfully")

    def _write_artifacts(self,
                         out: Path,
                         metrics: Dict[str, Any],
                         cv_results: pd.DataFrame,
                         matrices: Dict[str, pd.DataFrame],
                         classification_report: str,
                         predictions: Optional[pd.DataFrame]):
        (out / "metrics.yaml").write_text(yaml.dump(convert_numpy_types(metrics)), encoding="utf-8")
        (out / "report_config.yaml").write_text(yaml.dump(convert_numpy_types(self.config)), encoding="utf-8")
        (out / "classification_report.txt").write_text(classification_report, encoding="utf-8")
        cv_results.to_csv(out / "cv_results.csv", index=False)

        for name, matrix in matrices.items():
            matrix.to_csv(out / f"confusion_matrix_{name}.csv")

        if self.config.get("report", {}).get("plot_confusion_matrix", True) and "holdout" in matrices:
            self.evaluator.plot_confusion_matrix(
                matrices["holdout"], out / "confusion_matrix_holdout.png",
                title="Out-of-sample confusion matrix",
            )

        if predictions is not None:
            predictions.to_csv(out / "test_predictions.csv", index=False)

    # ---------- Orchestration ----------
    def run_pipeline(self, output_dir: Union[str, Path]) -> Dict[str, Any]:
        logger.info("Starting WLE report pipeline...")
        start_time = time.time()

        with self.experiment_tracker.start_run(self.config.get("mlflow", {}).get("run_name")):
            self.experiment_tracker.log_params(self.config)

            raw = self.load_data()
            self.validate_data(raw)
            profile = missingness_profile(raw)
            cleaned = self.clean_data(raw)
            train, holdout = self.split_data(cleaned)

            selection = self.train_model(train)
            train_matrix, train_metrics = self.evaluate_model(train, "train")
            holdout_matrix, holdout_metrics = self.evaluate_model(holdout, "holdout")

            report = self.evaluator.generate_classification_report(
                holdout[self.label_column].to_numpy(),
                self.predictor.predict(holdout),
                labels=self.config.get("data", {}).get("label_domain"),
            )

            predictions = None
            if self.config.get("report", {}).get("score_testing_set", False):
                scoring = self.load_scoring_data()
                if scoring is not None:
                    predictions = self.score_unlabeled(scoring)

            selected = selection.cv_results[selection.cv_results["selected"]].iloc[0]
            metrics: Dict[str, Any] = {
                "n_rows": len(raw),
                "n_columns_raw": raw.shape[1],
                "n_columns_retained": cleaned.shape[1],
                "n_columns_dropped_missing": int((profile >= float(
                    self.config.get("filtering", {}).get("missingness_threshold", 0.1))).sum()),
                "n_train": len(train),
                "n_holdout": len(holdout),
                "best_config": selection.best_config,
                "cv_mean_accuracy": float(selected["mean_accuracy"]),
                "cv_std_accuracy": float(selected["std_accuracy"]),
                **train_metrics,
                **holdout_metrics,
            }

            self.experiment_tracker.log_metrics({
                k: float(v) for k, v in metrics.items()
                if isinstance(v, (int, float, np.number)) and not isinstance(v, bool) and np.isfinite(v)
            })
            self.experiment_tracker.log_params(selection.best_config, prefix="best")
            self.experiment_tracker.log_dict(convert_numpy_types(selection.best_config), "best_config.yaml")

            self.save_artifacts(
                output_dir, metrics, selection.cv_results,
                {"train": train_matrix, "holdout": holdout_matrix},
                report, predictions,
            )
            self.experiment_tracker.log_artifacts(str(output_dir))

        elapsed_time = time.time() - start_time
        logger.info(f"Pipeline completed in {elapsed_time:.2f} seconds")
        logger.info(f"In-sample accuracy: {metrics['train_accuracy']:.4f}")
        logger.info(f"Out-of-sample accuracy: {metrics['holdout_accuracy']:.4f}")
        return metrics


# =====================
# CLI entrypoint
# =====================

def main():
    logging.basicConfig(level=logging.INFO)

    parser = argparse.ArgumentParser(description="Weight Lifting Exercise classification report")
    parser.add_argument("--config", type=str, default="config/report_config.yaml", help="Path to report configuration file")
    parser.add_argument("--output", type=str, default="./reports", help="Output directory for report artifacts")
    parser.add_argument("--n-jobs", type=int, default=None, help="Parallel workers for cross-validation trials")
    parser.add_argument("--no-mlflow", action="store_true", help="Disable MLflow tracking")
    args = parser.parse_args()

    config = load_config(args.config)
    if args.n_jobs is not None:
        config.setdefault("model_selection", {})["n_jobs"] = args.n_jobs
    if args.no_mlflow:
        config.setdefault("mlflow", {})["enabled"] = False

    pipeline = WLEReportPipeline(config)
    pipeline.run_pipeline(args.output)

    print("Report completed! Artifacts in:", args.output)


if __name__ == "__main__":
    main()
