"""
Data Transformation Module
"""
from .cleaners import CleaningStats, ProjectCleaner, clean_projects

__all__ = [
    "CleaningStats",
    "ProjectCleaner",
    "clean_projects",
]
