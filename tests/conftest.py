"""Test configuration and fixtures."""

import pytest
import pandas as pd
import numpy as np
import tempfile
from pathlib import Path

from wle_report.data_generation import SensorDataGenerator


@pytest.fixture
def sensor_data():
    """100 label-sorted rows, 5 labels x 20, 8 sensors, one 95%-missing column, X identifier."""
    generator = SensorDataGenerator(seed=42)
    return generator.generate_dataset(
        rows_per_class=20,
        n_features=8,
        sparse_columns={'max_roll_belt': 0.95},
    )


@pytest.fixture
def cleaned_data(sensor_data):
    """Sensor data with the sparse and identifier columns removed."""
    return sensor_data.drop(columns=['X', 'max_roll_belt'])


@pytest.fixture
def temp_directory():
    """Create temporary directory for testing."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def sample_config(temp_directory):
    """Small, fast configuration pointing at local files."""
    return {
        'random_seed': 7,
        'data': {
            'training_url': 'https://example.invalid/pml-training.csv',
            'training_path': str(temp_directory / 'data' / 'pml-training.csv'),
            'testing_url': 'https://example.invalid/pml-testing.csv',
            'testing_path': str(temp_directory / 'data' / 'pml-testing.csv'),
            'na_values': ['', 'NA'],
            'label_column': 'classe',
            'label_domain': ['A', 'B', 'C', 'D', 'E'],
            'identifier_column': 'X',
        },
        'filtering': {'missingness_threshold': 0.1},
        'partitioning': {'train_fraction': 0.8},
        'model_selection': {
            'folds': 2,
            'repeats': 2,
            'n_jobs': 1,
            'show_progress': False,
            'grid': {'hidden_units': [5, 6], 'decay': [0.1]},
        },
        'model': {'trainer': 'mlp', 'max_iter': 2000, 'max_hidden_units': 11},
        'report': {'score_testing_set': True, 'plot_confusion_matrix': True},
        'mlflow': {'enabled': False},
    }


@pytest.fixture
def local_data_files(sample_config):
    """Write synthetic training and scoring CSVs where the config expects them."""
    generator = SensorDataGenerator(seed=3)
    train = generator.generate_dataset(
        rows_per_class=20,
        n_features=8,
        sparse_columns={'max_roll_belt': 0.95},
        include_user_name=True,
    )
    scoring = generator.generate_scoring_set(n_rows=20, n_features=8, include_user_name=True)
    scoring['max_roll_belt'] = np.nan

    train_path = Path(sample_config['data']['training_path'])
    train_path.parent.mkdir(parents=True, exist_ok=True)
    train.to_csv(train_path, index=False, na_rep='NA')
    scoring.to_csv(sample_config['data']['testing_path'], index=False, na_rep='NA')
    return train, scoring
