"""
Error taxonomy for the WLE report pipeline.

Every error except ``TrialFailure`` aborts the run. ``TrialFailure`` is
raised by trainers and recovered inside the model selector.
"""

from typing import Any, Dict, List, Optional


class PipelineError(Exception):
    """Base class for all pipeline errors."""


class DatasetIOError(PipelineError, OSError):
    """Raised when the dataset cannot be fetched or read."""

    def __init__(self, message: str, source: Optional[str] = None):
        super().__init__(message)
        self.source = source


class ParseError(PipelineError):
    """Raised when the tabular file is malformed."""

    def __init__(self, message: str, line_number: Optional[int] = None):
        super().__init__(message)
        self.line_number = line_number


class SchemaError(PipelineError):
    """Raised when a required column is missing or would be dropped."""

    def __init__(self, message: str, column: Optional[str] = None):
        super().__init__(message)
        self.column = column


class InvariantError(PipelineError):
    """Raised when a stratified partition is infeasible for a label class."""

    def __init__(self, message: str, label: Any = None):
        super().__init__(message)
        self.label = label


class InvalidGridError(PipelineError):
    """Raised when hyperparameter configurations violate the model-family bounds."""

    def __init__(self, message: str, offending: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.offending = offending or []


class TrialFailure(PipelineError):
    """A single cross-validation trial did not converge."""


class NoViableModelError(PipelineError):
    """Raised when no configuration produced a successful trial."""
