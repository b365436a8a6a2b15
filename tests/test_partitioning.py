"""
Tests for the stratified train/holdout partition.
"""

import math

import pytest
import pandas as pd
import numpy as np

from wle_report.exceptions import InvariantError
from wle_report.pipeline.partitioning import partition, stratified_partition


class TestStratifiedPartition:
    """Determinism, stratification and coverage."""

    def test_same_seed_same_split(self, cleaned_data):
        first = stratified_partition(cleaned_data, 0.8, seed=11, label_column='classe')
        second = stratified_partition(cleaned_data, 0.8, seed=11, label_column='classe')

        np.testing.assert_array_equal(first.train_index, second.train_index)
        np.testing.assert_array_equal(first.holdout_index, second.holdout_index)

    def test_different_seed_different_split(self, cleaned_data):
        first = stratified_partition(cleaned_data, 0.8, seed=1, label_column='classe')
        second = stratified_partition(cleaned_data, 0.8, seed=2, label_column='classe')

        assert not np.array_equal(first.train_index, second.train_index)

    def test_disjoint_and_covering(self, cleaned_data):
        split = stratified_partition(cleaned_data, 0.7, seed=3, label_column='classe')

        train, holdout = set(split.train_index), set(split.holdout_index)
        assert train.isdisjoint(holdout)
        assert train | holdout == set(range(len(cleaned_data)))

    @pytest.mark.parametrize('fraction', [0.5, 0.6, 0.75, 0.8, 0.9])
    def test_per_label_proportion(self, fraction):
        counts = {'A': 31, 'B': 17, 'C': 14, 'D': 12, 'E': 23}
        df = pd.DataFrame({
            'value': np.arange(sum(counts.values())),
            'classe': [label for label, n in counts.items() for _ in range(n)],
        })

        train, holdout = partition(df, fraction, seed=5, label_column='classe')

        for label, n in counts.items():
            n_train = (train['classe'] == label).sum()
            assert abs(n_train - fraction * n) <= 1
            assert (holdout['classe'] == label).sum() == n - n_train

    def test_sensor_scenario_counts(self, cleaned_data):
        train, holdout = partition(cleaned_data, 0.8, seed=42, label_column='classe')

        assert len(train) == 80
        assert len(holdout) == 20
        assert train['classe'].value_counts().to_dict() == {l: 16 for l in 'ABCDE'}
        assert holdout['classe'].value_counts().to_dict() == {l: 4 for l in 'ABCDE'}

    def test_rows_keep_input_order(self, cleaned_data):
        train, holdout = partition(cleaned_data, 0.8, seed=42, label_column='classe')

        assert train.index.is_monotonic_increasing
        assert holdout.index.is_monotonic_increasing

    def test_ceil_rounding(self):
        df = pd.DataFrame({'value': range(7), 'classe': ['A'] * 7})

        split = stratified_partition(df, 0.5, seed=0, label_column='classe')

        assert len(split.train_index) == math.ceil(3.5)

    def test_class_too_small_for_holdout(self):
        df = pd.DataFrame({'value': range(6), 'classe': ['A'] * 5 + ['B']})

        with pytest.raises(InvariantError) as exc_info:
            partition(df, 0.8, seed=0, label_column='classe')
        assert exc_info.value.label == 'B'

    def test_invalid_fraction(self, cleaned_data):
        with pytest.raises(ValueError):
            partition(cleaned_data, 1.0, seed=0, label_column='classe')
