"""
Database Module
"""
from .connection import (
    check_database_health,
    close_database,
    create_db_engine,
    get_db,
    get_engine,
    init_database,
)
from .models import Base, Project, ProjectState, SnapshotBase

__all__ = [
    "check_database_health",
    "close_database",
    "create_db_engine",
    "get_db",
    "get_engine",
    "init_database",
    "Base",
    "Project",
    "ProjectState",
    "SnapshotBase",
]
