"""
Inspection Queries

Read-only diagnostics over the base table: shape, column listing, preview,
distinct outcome states, per-country counts and null counts. Every entry
point first checks that the base table and its expected columns exist.
"""

from typing import Any, Dict, List

import structlog
from sqlalchemy import case, func, inspect, select
from sqlalchemy.engine import Connection

from src.analysis.errors import MissingObjectError
from src.analysis.schemas import (
    ColumnInfo,
    CountryCount,
    NullCounts,
    TableOverview,
)
from src.database.models import PROJECT_COLUMNS, Project

logger = structlog.get_logger(__name__)


def require_projects_table(conn: Connection) -> List[ColumnInfo]:
    """
    Verify the base table exists with every expected column.

    Returns:
        The base table's columns as reported by the database

    Raises:
        MissingObjectError: If the table or any expected column is absent
    """
    table_name = Project.__tablename__
    inspector = inspect(conn)

    if not inspector.has_table(table_name):
        logger.error("Base table missing", table=table_name)
        raise MissingObjectError(table_name)

    columns = [
        ColumnInfo(name=col["name"], type=str(col["type"]), nullable=bool(col.get("nullable", True)))
        for col in inspector.get_columns(table_name)
    ]
    missing = set(PROJECT_COLUMNS) - {col.name for col in columns}
    if missing:
        logger.error("Base table columns missing", table=table_name, missing=sorted(missing))
        raise MissingObjectError(table_name, missing)

    return columns


def table_overview(conn: Connection) -> TableOverview:
    """Row count, column count and column listing of the base table"""
    columns = require_projects_table(conn)
    total_rows = conn.execute(select(func.count()).select_from(Project)).scalar_one()

    overview = TableOverview(
        table=Project.__tablename__,
        total_rows=total_rows,
        total_columns=len(columns),
        columns=columns,
    )
    logger.info("Table inspected", table=overview.table, rows=total_rows, columns=len(columns))
    return overview


def preview_rows(conn: Connection, limit: int = 10) -> List[Dict[str, Any]]:
    """First rows of the base table, in primary key order"""
    require_projects_table(conn)
    result = conn.execute(select(Project.__table__).order_by(Project.id).limit(limit))
    return [dict(row._mapping) for row in result]


def distinct_states(conn: Connection) -> List[str]:
    """Distinct outcome states present in the table"""
    require_projects_table(conn)
    result = conn.execute(select(Project.state).distinct().order_by(Project.state))
    return [state for state in result.scalars()]


def projects_per_country(conn: Connection) -> List[CountryCount]:
    """Project count per country, most projects first"""
    require_projects_table(conn)
    num_projects = func.count().label("num_projects")
    result = conn.execute(
        select(Project.country, num_projects)
        .group_by(Project.country)
        .order_by(num_projects.desc(), Project.country)
    )
    return [CountryCount(country=row.country, num_projects=row.num_projects) for row in result]


def null_counts(conn: Connection) -> NullCounts:
    """Null counts for id, name and category"""
    require_projects_table(conn)

    def nulls(column):
        return func.coalesce(func.sum(case((column.is_(None), 1), else_=0)), 0)

    row = conn.execute(
        select(
            nulls(Project.id).label("null_id"),
            nulls(Project.name).label("null_name"),
            nulls(Project.category).label("null_category"),
        )
    ).one()
    return NullCounts(null_id=row.null_id, null_name=row.null_name, null_category=row.null_category)
