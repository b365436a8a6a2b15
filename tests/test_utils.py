"""
Test suite for experiment tracking and data generation utilities.
"""

import pytest
import pandas as pd
import numpy as np
from unittest.mock import MagicMock, patch

from wle_report.data_generation import SensorDataGenerator
from wle_report.utils.experiment_tracking import ExperimentTracker

MLFLOW_CONFIG = {
    'tracking_uri': 'file:./test_mlruns',
    'experiment_name': 'test_experiment',
}


class TestExperimentTracker:
    """Test experiment tracking functionality."""

    @patch('mlflow.create_experiment')
    @patch('mlflow.get_experiment_by_name')
    @patch('mlflow.set_experiment')
    @patch('mlflow.set_tracking_uri')
    def test_init(self, mock_set_uri, mock_set_exp, mock_get_exp, mock_create_exp):
        """Test ExperimentTracker initialization."""
        mock_create_exp.return_value = "test_exp_id"

        tracker = ExperimentTracker(MLFLOW_CONFIG)

        assert tracker.tracking_uri == 'file:./test_mlruns'
        assert tracker.experiment_name == 'test_experiment'
        mock_set_uri.assert_called_once_with('file:./test_mlruns')
        mock_set_exp.assert_called_once_with(experiment_id="test_exp_id")

    @patch('mlflow.create_experiment')
    @patch('mlflow.get_experiment_by_name')
    @patch('mlflow.set_experiment')
    @patch('mlflow.set_tracking_uri')
    def test_existing_experiment_reused(self, mock_set_uri, mock_set_exp, mock_get_exp, mock_create_exp):
        """An existing, active experiment is reused."""
        mock_create_exp.side_effect = Exception("exists")
        mock_get_exp.return_value = MagicMock(experiment_id="42", lifecycle_stage="active")

        ExperimentTracker(MLFLOW_CONFIG)

        mock_set_exp.assert_called_once_with(experiment_id="42")

    @patch('mlflow.set_tracking_uri')
    @patch('mlflow.start_run')
    @patch('mlflow.log_metric')
    def test_disabled_tracker_is_silent(self, mock_log_metric, mock_start_run, mock_set_uri):
        """Nothing reaches MLflow when tracking is disabled."""
        tracker = ExperimentTracker({'enabled': False})

        with tracker.start_run("run"):
            tracker.log_metrics({'accuracy': 0.9})
            tracker.log_params({'a': 1})

        mock_set_uri.assert_not_called()
        mock_start_run.assert_not_called()
        mock_log_metric.assert_not_called()

    @patch('mlflow.create_experiment', return_value="1")
    @patch('mlflow.set_experiment')
    @patch('mlflow.set_tracking_uri')
    @patch('mlflow.start_run')
    def test_start_run(self, mock_start_run, *_):
        """Test starting MLflow run."""
        tracker = ExperimentTracker(MLFLOW_CONFIG)
        tracker.start_run("test_run")

        mock_start_run.assert_called_once_with(run_name="test_run")

    @patch('mlflow.create_experiment', return_value="1")
    @patch('mlflow.set_experiment')
    @patch('mlflow.set_tracking_uri')
    @patch('mlflow.log_param')
    def test_log_params(self, mock_log_param, *_):
        """Test logging parameters."""
        tracker = ExperimentTracker(MLFLOW_CONFIG)
        tracker.log_params({'hidden_units': 5, 'decay': 0.1}, prefix='best')

        assert mock_log_param.call_count == 2
        mock_log_param.assert_any_call('best.hidden_units', '5')
        mock_log_param.assert_any_call('best.decay', '0.1')

    @patch('mlflow.create_experiment', return_value="1")
    @patch('mlflow.set_experiment')
    @patch('mlflow.set_tracking_uri')
    @patch('mlflow.log_metric')
    def test_log_metrics_failure_is_warning(self, mock_log_metric, *_):
        """A failing metric call does not abort logging."""
        mock_log_metric.side_effect = [Exception("boom"), None]
        tracker = ExperimentTracker(MLFLOW_CONFIG)

        tracker.log_metrics({'train_accuracy': 0.99, 'holdout_accuracy': 0.95})

        assert mock_log_metric.call_count == 2

    @patch('mlflow.create_experiment', return_value="1")
    @patch('mlflow.set_experiment')
    @patch('mlflow.set_tracking_uri')
    @patch('mlflow.log_dict')
    def test_log_dict(self, mock_log_dict, *_):
        tracker = ExperimentTracker(MLFLOW_CONFIG)
        tracker.log_dict({'hidden_units': 7, 'decay': 0.1}, 'best_config.yaml')

        mock_log_dict.assert_called_once_with({'hidden_units': 7, 'decay': 0.1}, 'best_config.yaml')

    def test_flatten_dict(self):
        """Test dictionary flattening."""
        tracker = ExperimentTracker({'enabled': False})
        nested_dict = {
            'model_selection': {
                'folds': 10,
                'grid': {'hidden_units': [5, 7]},
            }
        }

        flattened = tracker._flatten_dict(nested_dict)

        assert flattened['model_selection.folds'] == '10'
        assert flattened['model_selection.grid.hidden_units'] == '[5, 7]'


class TestSensorDataGenerator:
    """Synthetic WLE tables."""

    def test_shape_and_order(self):
        df = SensorDataGenerator(seed=1).generate_dataset(rows_per_class=10, n_features=4)

        assert df.shape == (50, 6)
        assert df.columns[0] == 'X'
        assert df.columns[-1] == 'classe'
        assert df['classe'].is_monotonic_increasing
        assert df['X'].tolist() == list(range(1, 51))

    def test_sparse_column_exact_rate(self):
        df = SensorDataGenerator(seed=1).generate_dataset(
            rows_per_class=20, n_features=8, sparse_columns={'max_roll_belt': 0.95})

        assert df['max_roll_belt'].isnull().sum() == 95

    def test_seed_reproducible(self):
        first = SensorDataGenerator(seed=5).generate_dataset(rows_per_class=5)
        second = SensorDataGenerator(seed=5).generate_dataset(rows_per_class=5)

        pd.testing.assert_frame_equal(first, second)

    def test_scoring_set(self):
        df = SensorDataGenerator(seed=1).generate_scoring_set(n_rows=20, n_features=8)

        assert 'classe' not in df.columns
        assert df['problem_id'].tolist() == list(range(1, 21))


if __name__ == "__main__":
    pytest.main([__file__])
