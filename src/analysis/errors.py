"""
Analysis Errors
"""

from typing import Iterable, Optional


class AnalysisError(Exception):
    """Base class for failures that stop an analysis stage"""


class MissingObjectError(AnalysisError):
    """A required table or column is absent; the workflow cannot proceed"""

    def __init__(self, object_name: str, missing_columns: Optional[Iterable[str]] = None):
        self.object_name = object_name
        self.missing_columns = sorted(missing_columns or [])
        if self.missing_columns:
            message = f"Table '{object_name}' is missing columns: {', '.join(self.missing_columns)}"
        else:
            message = f"Required table '{object_name}' does not exist"
        super().__init__(message)


class InvalidParameterError(AnalysisError, ValueError):
    """A parameterized query was called with unusable arguments"""


class DataQualityError(AnalysisError):
    """Cleaned data does not satisfy the invariants aggregations rely on"""
