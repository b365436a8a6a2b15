"""Pipeline stages: loading, filtering, partitioning, model selection, evaluation."""

from .loader import load_dataset, fetch_dataset, parse_dataset
from .filtering import missingness_profile, filter_features, align_columns
from .partitioning import Partition, stratified_partition, partition
from .preprocessing import DataValidator, FeatureStandardizer
from .trainers import ClassifierTrainer, MLPTrainer
from .model_selection import HyperparameterGrid, Predictor, SelectionResult, select_model
from .evaluation import evaluate, accuracy_from_confusion
from .training_pipeline import WLEReportPipeline, load_config

__all__ = [
    'load_dataset',
    'fetch_dataset',
    'parse_dataset',
    'missingness_profile',
    'filter_features',
    'align_columns',
    'Partition',
    'stratified_partition',
    'partition',
    'DataValidator',
    'FeatureStandardizer',
    'ClassifierTrainer',
    'MLPTrainer',
    'HyperparameterGrid',
    'Predictor',
    'SelectionResult',
    'select_model',
    'evaluate',
    'accuracy_from_confusion',
    'WLEReportPipeline',
    'load_config',
]
