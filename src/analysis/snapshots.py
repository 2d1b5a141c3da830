"""
KPI and Anomaly Snapshots

Two computation modes are offered for each derived result:

- on demand: ``compute_kpis`` / ``AnomalyDetector.detect`` query the live table
- snapshot: ``materialize_*`` builds the table only if it does not exist yet,
  ``refresh_*`` drops and rebuilds it, ``read_*`` returns its contents

Snapshots are stamped with ``computed_at`` and go stale when the base table
changes; nothing refreshes them implicitly.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Type

import structlog
from sqlalchemy import DateTime, func, inspect, insert, literal, select
from sqlalchemy.engine import Connection

from src.analysis.errors import MissingObjectError
from src.analysis.expressions import rounded, success_count, success_rate
from src.analysis.schemas import ProjectKPIs, SnapshotInfo
from src.config import get_settings
from src.database.models import (
    PROJECT_COLUMNS,
    AnomalySnapshot,
    Project,
    ProjectKPISnapshot,
    SnapshotBase,
)
from src.quality.anomaly_detector import AnomalyDetector

logger = structlog.get_logger(__name__)


def _kpi_select(success_state: str):
    total = func.count()
    return select(
        total.label("total_projects"),
        rounded(success_rate(success_count(success_state), total)).label("overall_success_rate"),
        rounded(func.avg(Project.pledged)).label("avg_pledged_amount"),
        rounded(func.avg(Project.goal)).label("avg_goal_amount"),
    )


def _exists(conn: Connection, model: Type[SnapshotBase]) -> bool:
    return inspect(conn).has_table(model.__tablename__)


def _info(conn: Connection, model: Type[SnapshotBase], created: bool) -> SnapshotInfo:
    row = conn.execute(
        select(func.count().label("row_count"), func.max(model.computed_at).label("computed_at"))
    ).one()
    return SnapshotInfo(
        name=model.__tablename__,
        row_count=row.row_count,
        computed_at=row.computed_at,
        created=created,
    )


def _drop(conn: Connection, model: Type[SnapshotBase]) -> None:
    model.__table__.drop(conn, checkfirst=True)
    logger.info("Snapshot dropped", snapshot=model.__tablename__)


# =============================================================================
# KPI SUMMARY
# =============================================================================

def compute_kpis(conn: Connection, success_state: Optional[str] = None) -> ProjectKPIs:
    """Headline KPIs computed from the live base table"""
    state = success_state or get_settings().analysis.success_state
    row = conn.execute(_kpi_select(state)).one()
    return ProjectKPIs.model_validate(dict(row._mapping))


def materialize_kpis(conn: Connection, success_state: Optional[str] = None) -> SnapshotInfo:
    """
    Build ``project_kpis`` unless it already exists.

    An existing snapshot is left untouched; use refresh_kpis to rebuild.
    """
    if _exists(conn, ProjectKPISnapshot):
        info = _info(conn, ProjectKPISnapshot, created=False)
        logger.info("Snapshot exists, skipping build", snapshot=info.name, computed_at=str(info.computed_at))
        return info

    state = success_state or get_settings().analysis.success_state
    computed_at = datetime.utcnow()
    kpis = _kpi_select(state).subquery()

    ProjectKPISnapshot.__table__.create(conn)
    conn.execute(
        insert(ProjectKPISnapshot).from_select(
            [
                "total_projects",
                "overall_success_rate",
                "avg_pledged_amount",
                "avg_goal_amount",
                "computed_at",
            ],
            select(
                kpis.c.total_projects,
                kpis.c.overall_success_rate,
                kpis.c.avg_pledged_amount,
                kpis.c.avg_goal_amount,
                literal(computed_at, DateTime),
            ),
        )
    )

    info = _info(conn, ProjectKPISnapshot, created=True)
    logger.info("Snapshot built", snapshot=info.name, rows=info.row_count)
    return info


def refresh_kpis(conn: Connection, success_state: Optional[str] = None) -> SnapshotInfo:
    """Drop and rebuild ``project_kpis`` from the current base table"""
    _drop(conn, ProjectKPISnapshot)
    return materialize_kpis(conn, success_state)


def read_kpis(conn: Connection) -> ProjectKPIs:
    """
    Stored KPI snapshot.

    Raises:
        MissingObjectError: If the snapshot was never built
    """
    if not _exists(conn, ProjectKPISnapshot):
        raise MissingObjectError(ProjectKPISnapshot.__tablename__)

    row = conn.execute(
        select(
            ProjectKPISnapshot.total_projects,
            ProjectKPISnapshot.overall_success_rate,
            ProjectKPISnapshot.avg_pledged_amount,
            ProjectKPISnapshot.avg_goal_amount,
            ProjectKPISnapshot.computed_at,
        )
        .order_by(ProjectKPISnapshot.snapshot_id.desc())
        .limit(1)
    ).one()
    return ProjectKPIs.model_validate(dict(row._mapping))


# =============================================================================
# ANOMALIES
# =============================================================================

def materialize_anomalies(conn: Connection, detector: Optional[AnomalyDetector] = None) -> SnapshotInfo:
    """
    Build ``anomalies`` unless it already exists.

    The table receives a copy of every base row matching the detector's
    predicate at build time, and nothing else.
    """
    if _exists(conn, AnomalySnapshot):
        info = _info(conn, AnomalySnapshot, created=False)
        logger.info("Snapshot exists, skipping build", snapshot=info.name, computed_at=str(info.computed_at))
        return info

    detector = detector or AnomalyDetector()
    computed_at = datetime.utcnow()
    source_columns = [getattr(Project, name) for name in PROJECT_COLUMNS]

    AnomalySnapshot.__table__.create(conn)
    conn.execute(
        insert(AnomalySnapshot).from_select(
            list(PROJECT_COLUMNS) + ["computed_at"],
            select(*source_columns, literal(computed_at, DateTime)).where(detector.condition()),
        )
    )

    info = _info(conn, AnomalySnapshot, created=True)
    logger.info(
        "Snapshot built",
        snapshot=info.name,
        rows=info.row_count,
        goal_threshold=detector.goal_threshold,
        pledged_threshold=detector.pledged_threshold,
    )
    return info


def refresh_anomalies(conn: Connection, detector: Optional[AnomalyDetector] = None) -> SnapshotInfo:
    """Drop and rebuild ``anomalies`` from the current base table"""
    _drop(conn, AnomalySnapshot)
    return materialize_anomalies(conn, detector)


def read_anomalies(conn: Connection) -> List[Dict[str, Any]]:
    """
    Stored anomaly rows, by id.

    Raises:
        MissingObjectError: If the snapshot was never built
    """
    if not _exists(conn, AnomalySnapshot):
        raise MissingObjectError(AnomalySnapshot.__tablename__)

    result = conn.execute(select(AnomalySnapshot.__table__).order_by(AnomalySnapshot.id))
    return [dict(row._mapping) for row in result]
