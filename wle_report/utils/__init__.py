"""Utility modules for the report pipeline."""

from .experiment_tracking import ExperimentTracker
from .model_utils import ModelEvaluator

__all__ = [
    'ExperimentTracker',
    'ModelEvaluator',
]
