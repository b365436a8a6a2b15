"""
WLE Report - Weight Lifting Exercise classification

A reproducible analysis of the Weight Lifting Exercises sensor dataset:
missing-value column filtering, a stratified train/holdout split, grid search
of a single-hidden-layer neural network with repeated cross-validation, and
in-sample/out-of-sample confusion matrices.
"""

__version__ = "1.0.0"

from .data_generation import SensorDataGenerator
from .pipeline import (
    load_dataset,
    filter_features,
    partition,
    select_model,
    evaluate,
    WLEReportPipeline,
)

__all__ = [
    'SensorDataGenerator',
    'load_dataset',
    'filter_features',
    'partition',
    'select_model',
    'evaluate',
    'WLEReportPipeline',
]
