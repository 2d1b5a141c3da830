"""
Database Models - Campaign Analysis Schema

The base relation holds one row per crowdfunding campaign and is populated
by an external import. Snapshot tables are derived from it by the analysis
workflow:

Base Table:
- Project: campaign records (``projects``)

Snapshot Tables:
- ProjectKPISnapshot: single-row KPI summary (``project_kpis``)
- AnomalySnapshot: campaigns over the outlier thresholds (``anomalies``)

Snapshot tables live on their own metadata so that creating the base schema
never creates an empty snapshot; their existence means they were built.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, Float, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for externally populated tables"""
    pass


class SnapshotBase(DeclarativeBase):
    """Base class for tables materialized by the workflow"""
    pass


# =============================================================================
# ENUMERATIONS
# =============================================================================

class ProjectState(str, Enum):
    """Campaign outcome enumeration"""
    SUCCESSFUL = "successful"
    FAILED = "failed"
    CANCELED = "canceled"
    LIVE = "live"
    SUSPENDED = "suspended"
    UNDEFINED = "undefined"


# Column order of the base relation, as delivered by the import
PROJECT_COLUMNS = (
    "id",
    "name",
    "category",
    "main_category",
    "country",
    "currency",
    "goal",
    "pledged",
    "backers",
    "state",
)


# =============================================================================
# BASE TABLE
# =============================================================================

class Project(Base):
    """
    Campaign Table

    Raw campaign records. Nullable columns reflect the raw import; the
    cleaning stage enforces non-null name/goal, positive goal and uppercase
    currency before any aggregation runs.
    """
    __tablename__ = "projects"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    name: Mapped[Optional[str]] = mapped_column(Text)
    category: Mapped[Optional[str]] = mapped_column(String(100))
    main_category: Mapped[Optional[str]] = mapped_column(String(100), index=True)
    country: Mapped[Optional[str]] = mapped_column(String(10), index=True)
    currency: Mapped[Optional[str]] = mapped_column(String(10))
    goal: Mapped[Optional[float]] = mapped_column(Float)
    pledged: Mapped[Optional[float]] = mapped_column(Float)
    backers: Mapped[Optional[int]] = mapped_column(Integer)
    state: Mapped[Optional[str]] = mapped_column(String(20), index=True)

    def __repr__(self) -> str:
        return f"<Project {self.id} {self.name!r} ({self.main_category}, {self.state})>"


# =============================================================================
# SNAPSHOT TABLES
# =============================================================================

class ProjectKPISnapshot(SnapshotBase):
    """
    KPI Summary Snapshot

    One row of headline figures computed over the cleaned base table.
    Not refreshed automatically; computed_at records when it was built.
    """
    __tablename__ = "project_kpis"

    snapshot_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    total_projects: Mapped[int] = mapped_column(Integer, nullable=False)
    overall_success_rate: Mapped[Optional[float]] = mapped_column(Float)
    avg_pledged_amount: Mapped[Optional[float]] = mapped_column(Float)
    avg_goal_amount: Mapped[Optional[float]] = mapped_column(Float)
    computed_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)


class AnomalySnapshot(SnapshotBase):
    """
    Anomaly Snapshot

    Copy of every campaign whose goal or pledged amount exceeded the outlier
    thresholds at build time.
    """
    __tablename__ = "anomalies"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    name: Mapped[Optional[str]] = mapped_column(Text)
    category: Mapped[Optional[str]] = mapped_column(String(100))
    main_category: Mapped[Optional[str]] = mapped_column(String(100))
    country: Mapped[Optional[str]] = mapped_column(String(10))
    currency: Mapped[Optional[str]] = mapped_column(String(10))
    goal: Mapped[Optional[float]] = mapped_column(Float)
    pledged: Mapped[Optional[float]] = mapped_column(Float)
    backers: Mapped[Optional[int]] = mapped_column(Integer)
    state: Mapped[Optional[str]] = mapped_column(String(20))
    computed_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
