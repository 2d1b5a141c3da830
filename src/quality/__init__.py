"""
Data Quality Module
"""
from .validators import DataValidator, ValidationResult, create_projects_validator
from .anomaly_detector import AnomalyDetector, AnomalyReport, AnomalyResult

__all__ = [
    "DataValidator",
    "ValidationResult",
    "create_projects_validator",
    "AnomalyDetector",
    "AnomalyReport",
    "AnomalyResult",
]
