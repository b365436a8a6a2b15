"""
Synthetic Weight Lifting Exercise Data Generator

Generates tables shaped like the WLE sensor dataset: a row-sequence identifier
column ``X``, numeric sensor readings whose means depend on the exercise class,
optional mostly-missing summary columns, and the ``classe`` label. Rows are
sorted by label, as in the source data, so ``X`` tracks the label order.
"""

import argparse
import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import numpy as np
import pandas as pd
import yaml

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

DEFAULT_LABELS = ('A', 'B', 'C', 'D', 'E')

SENSOR_NAMES = [
    'roll_belt', 'pitch_belt', 'yaw_belt', 'total_accel_belt',
    'gyros_arm_x', 'accel_arm_y', 'magnet_arm_z', 'roll_dumbbell',
    'pitch_dumbbell', 'accel_dumbbell_x', 'magnet_dumbbell_y', 'roll_forearm',
    'pitch_forearm', 'accel_forearm_z', 'magnet_forearm_x', 'gyros_belt_y',
]

USER_NAMES = ['adelmo', 'carlitos', 'charles', 'eurico', 'jeremy', 'pedro']


class SensorDataGenerator:
    """Generate synthetic labeled and unlabeled sensor tables."""

    def __init__(self, seed: int = 42, separation: float = 2.0):
        """
        Args:
            seed: Seed for this generator's random stream
            separation: Distance between class means in units of noise std
        """
        self.seed = seed
        self.separation = separation
        self.rng = np.random.default_rng(seed)

    def feature_names(self, n_features: int) -> List[str]:
        names = SENSOR_NAMES[:n_features]
        names += [f'sensor_{i}' for i in range(len(names), n_features)]
        return names

    def _class_means(self, n_labels: int, n_features: int) -> np.ndarray:
        # Fixed per-generator offsets so every table from one generator shares them
        offsets = np.random.default_rng(self.seed).normal(0, 1, size=(n_labels, n_features))
        return offsets * self.separation

    def _sensor_block(self, label_idx: np.ndarray, n_labels: int, n_features: int) -> np.ndarray:
        means = self._class_means(n_labels, n_features)
        return means[label_idx] + self.rng.normal(0, 1, size=(len(label_idx), n_features))

    def generate_dataset(self,
                         rows_per_class: int = 20,
                         n_features: int = 8,
                         labels: Sequence[str] = DEFAULT_LABELS,
                         sparse_columns: Optional[Dict[str, float]] = None,
                         include_user_name: bool = False) -> pd.DataFrame:
        """
        Generate a labeled, label-sorted table.

        Args:
            rows_per_class: Rows for each label
            n_features: Informative numeric sensor columns
            labels: Label domain
            sparse_columns: Column name -> exact fraction of missing values
            include_user_name: Add a categorical ``user_name`` column

        Returns:
            DataFrame with columns ``X``, [``user_name``], sensors, sparse columns, ``classe``
        """
        labels = list(labels)
        n_rows = rows_per_class * len(labels)
        label_idx = np.repeat(np.arange(len(labels)), rows_per_class)

        df = pd.DataFrame({'X': np.arange(1, n_rows + 1)})
        if include_user_name:
            df['user_name'] = self.rng.choice(USER_NAMES, size=n_rows)

        block = self._sensor_block(label_idx, len(labels), n_features)
        for j, name in enumerate(self.feature_names(n_features)):
            df[name] = block[:, j].round(4)

        for name, missing_rate in (sparse_columns or {}).items():
            values = self.rng.normal(0, 1, size=n_rows).round(4)
            n_missing = int(round(missing_rate * n_rows))
            missing_idx = self.rng.choice(n_rows, size=n_missing, replace=False)
            column = pd.Series(values, dtype=float)
            column.iloc[missing_idx] = np.nan
            df[name] = column

        df['classe'] = np.array(labels)[label_idx]
        logger.info(f"Generated {n_rows} rows with {n_features} sensor columns "
                    f"and {len(sparse_columns or {})} sparse columns")
        return df

    def generate_scoring_set(self,
                             n_rows: int = 20,
                             n_features: int = 8,
                             labels: Sequence[str] = DEFAULT_LABELS,
                             include_user_name: bool = False) -> pd.DataFrame:
        """Unlabeled rows with a ``problem_id`` column in place of ``classe``."""
        labels = list(labels)
        label_idx = self.rng.integers(0, len(labels), size=n_rows)

        df = pd.DataFrame({'X': np.arange(1, n_rows + 1)})
        if include_user_name:
            df['user_name'] = self.rng.choice(USER_NAMES, size=n_rows)
        block = self._sensor_block(label_idx, len(labels), n_features)
        for j, name in enumerate(self.feature_names(n_features)):
            df[name] = block[:, j].round(4)
        df['problem_id'] = np.arange(1, n_rows + 1)
        return df


def main():
    """Main function to generate synthetic WLE data files."""
    parser = argparse.ArgumentParser(description='Generate synthetic weight lifting sensor data')
    parser.add_argument('--rows_per_class', type=int, default=200, help='Rows per exercise class')
    parser.add_argument('--n_features', type=int, default=12, help='Informative sensor columns')
    parser.add_argument('--sparse_columns', type=int, default=4, help='Mostly-missing columns to add')
    parser.add_argument('--seed', type=int, default=42, help='Random seed')
    parser.add_argument('--output_dir', type=str, default='./data/raw', help='Output directory')

    args = parser.parse_args()

    output_dir = Path(args.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    generator = SensorDataGenerator(seed=args.seed)
    sparse = {f'max_sensor_{i}': 0.98 for i in range(args.sparse_columns)}
    train = generator.generate_dataset(
        rows_per_class=args.rows_per_class,
        n_features=args.n_features,
        sparse_columns=sparse,
        include_user_name=True,
    )
    scoring = generator.generate_scoring_set(n_features=args.n_features, include_user_name=True)
    for name in sparse:
        scoring[name] = np.nan

    train_path = output_dir / 'pml-training.csv'
    scoring_path = output_dir / 'pml-testing.csv'
    train.to_csv(train_path, index=False, na_rep='NA')
    scoring.to_csv(scoring_path, index=False, na_rep='NA')
    logger.info(f"Data saved to {train_path} and {scoring_path}")

    summary = {
        'total_records': len(train),
        'class_counts': {str(k): int(v) for k, v in train['classe'].value_counts().sort_index().items()},
        'features': list(train.columns),
        'missing_values': {k: int(v) for k, v in train.isnull().sum().items() if v},
        'seed': generator.seed,
    }
    summary_path = output_dir / 'data_summary.yaml'
    with open(summary_path, 'w') as f:
        yaml.dump(summary, f, default_flow_style=False)

    logger.info(f"Summary saved to {summary_path}")


if __name__ == "__main__":
    main()
