"""
Label validation and feature standardization.
"""

import pandas as pd
import numpy as np
import logging
import time
from typing import Dict, List, Optional, Sequence
from sklearn.base import BaseEstimator, TransformerMixin
from sklearn.impute import SimpleImputer
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import OneHotEncoder, StandardScaler

from wle_report.exceptions import SchemaError

logger = logging.getLogger(__name__)

class DataValidator:
    """Validate the label column before training and evaluation."""

    def __init__(self):
        self.validation_rules = {}

    def add_rule(self, feature: str, rule_type: str, **kwargs):
        """Add validation rule for a feature."""
        if feature not in self.validation_rules:
            self.validation_rules[feature] = []

        self.validation_rules[feature].append({
            'type': rule_type,
            'params': kwargs
        })

    def validate(self, df: pd.DataFrame) -> Dict[str, List[str]]:
        """Validate dataframe against rules. A feature without its column is a violation."""
        violations = {}

        for feature, rules in self.validation_rules.items():
            if feature not in df.columns:
                violations[feature] = ["column not found"]
                continue

            feature_violations = []

            for rule in rules:
                if rule['type'] == 'categorical':
                    allowed_values = rule['params'].get('allowed_values', [])
                    present = df[feature].dropna()
                    invalid = present[~present.isin(allowed_values)]

                    if len(invalid) > 0:
                        values = sorted(invalid.astype(str).unique().tolist())
                        feature_violations.append(
                            f"{len(invalid)} values outside {list(allowed_values)}: {values}"
                        )

                elif rule['type'] == 'missing_rate':
                    max_missing_rate = rule['params'].get('max_rate', 0.1)
                    missing_rate = df[feature].isnull().mean() if len(df) else 0.0

                    if missing_rate > max_missing_rate:
                        feature_violations.append(f"Missing rate {missing_rate:.2%} exceeds {max_missing_rate:.2%}")

                else:
                    raise ValueError(f"Unknown rule type: {rule['type']}")

            if feature_violations:
                violations[feature] = feature_violations

        return violations

    def setup_label_rules(self, label_column: str, label_domain: Optional[Sequence[str]] = None):
        """Every row carries exactly one label, drawn from the domain when one is given."""
        self.add_rule(label_column, 'missing_rate', max_rate=0.0)
        if label_domain:
            self.add_rule(label_column, 'categorical', allowed_values=list(label_domain))

    def require_valid(self, df: pd.DataFrame):
        """Raise SchemaError on the first violated feature."""
        violations = self.validate(df)
        if violations:
            feature, messages = next(iter(violations.items()))
            raise SchemaError(f"Column '{feature}' failed validation: {'; '.join(messages)}",
                              column=feature)

class FeatureStandardizer(BaseEstimator, TransformerMixin):
    """
    Turn feature columns into a standardized numeric matrix.

    Numeric columns get median imputation followed by centering and scaling to
    unit variance. Other columns get most-frequent imputation and one-hot
    encoding. All statistics come from the table passed to ``fit``;
    ``transform`` only reads them.
    """

    def __init__(self, label_column: str = 'classe'):
        """
        Initialize standardizer.

        Args:
            label_column: Column excluded from the features
        """
        self.label_column = label_column
        self.numeric_features_ = []
        self.categorical_features_ = []
        self.numeric_pipeline_ = None
        self.categorical_pipeline_ = None

    def fit(self, X: pd.DataFrame, y=None):
        """Fit imputation, scaling and encoding statistics."""
        start_time = time.time()
        logger.info("Fitting feature standardizer...")

        features = X.drop(columns=[self.label_column], errors='ignore')
        self.numeric_features_ = features.select_dtypes(include=[np.number]).columns.tolist()
        self.categorical_features_ = [c for c in features.columns if c not in self.numeric_features_]

        if self.numeric_features_:
            self.numeric_pipeline_ = Pipeline([
                ('impute', SimpleImputer(strategy='median', keep_empty_features=True)),
                ('scale', StandardScaler()),
            ])
            self.numeric_pipeline_.fit(features[self.numeric_features_])

        if self.categorical_features_:
            self.categorical_pipeline_ = Pipeline([
                ('impute', SimpleImputer(strategy='most_frequent')),
                ('encode', OneHotEncoder(handle_unknown='ignore', sparse_output=False)),
            ])
            self.categorical_pipeline_.fit(self._categorical_frame(features))

        elapsed_time = time.time() - start_time
        logger.info(f"Fitted standardizer for {len(self.numeric_features_)} numeric "
                    f"and {len(self.categorical_features_)} categorical features in {elapsed_time:.2f} seconds")
        return self

    def transform(self, X: pd.DataFrame) -> np.ndarray:
        """Apply the stored statistics; the input frame is not modified."""
        if self.numeric_pipeline_ is None and self.categorical_pipeline_ is None:
            raise ValueError("FeatureStandardizer is not fitted")

        missing = [c for c in self.feature_names_in if c not in X.columns]
        if missing:
            raise SchemaError(f"Missing feature columns: {missing}", column=missing[0])

        blocks = []
        if self.numeric_pipeline_ is not None:
            numeric = X[self.numeric_features_].apply(pd.to_numeric, errors='coerce')
            blocks.append(self.numeric_pipeline_.transform(numeric))
        if self.categorical_pipeline_ is not None:
            blocks.append(self.categorical_pipeline_.transform(self._categorical_frame(X)))

        return np.hstack(blocks).astype(float)

    @property
    def feature_names_in(self) -> List[str]:
        return self.numeric_features_ + self.categorical_features_

    def get_feature_names_out(self, input_features=None) -> List[str]:
        names = list(self.numeric_features_)
        if self.categorical_pipeline_ is not None:
            encoder = self.categorical_pipeline_.named_steps['encode']
            names.extend(encoder.get_feature_names_out(self.categorical_features_).tolist())
        return names

    def _categorical_frame(self, X: pd.DataFrame) -> pd.DataFrame:
        # Values compared as strings; None -> np.nan so SimpleImputer sees it as missing
        frame = X[self.categorical_features_].astype(object)
        mask = frame.isnull()
        frame = frame.astype(str).astype(object)
        frame[mask] = np.nan
        return frame
