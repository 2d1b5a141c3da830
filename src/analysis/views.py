"""
Saved View Definitions

Views are query definitions re-evaluated on every read. Each definition is
built from a SQLAlchemy select, compiled for the connected dialect and
installed with drop-and-create inside the caller's transaction, so readers
see either the old or the new definition.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import structlog
from sqlalchemy import Select, func, inspect, select, text
from sqlalchemy.engine import Connection

from src.analysis.errors import MissingObjectError
from src.analysis.expressions import rounded, success_count, success_rate
from src.config import get_settings
from src.config.settings import AnalysisSettings
from src.database.models import Project

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ViewDefinition:
    """Named view and the query it stores"""
    name: str
    description: str
    build: Callable[[AnalysisSettings], Select]


def _successful_projects(settings: AnalysisSettings) -> Select:
    return select(Project.__table__).where(Project.state == settings.success_state)


def _country_success_rate(settings: AnalysisSettings) -> Select:
    rate = rounded(success_rate(success_count(settings.success_state), func.count()))
    return (
        select(
            Project.country,
            rate.label("success_rate"),
            func.count().label("total_projects"),
        )
        .group_by(Project.country)
    )


def _high_value_success(settings: AnalysisSettings) -> Select:
    return (
        select(Project.name, Project.main_category, Project.pledged, Project.backers)
        .where(Project.state == settings.success_state)
        .where(Project.pledged > settings.high_value_pledged)
    )


VIEWS: Dict[str, ViewDefinition] = {
    view.name: view
    for view in (
        ViewDefinition("successful_projects", "All successful projects", _successful_projects),
        ViewDefinition("country_success_rate", "Success rate and project count per country", _country_success_rate),
        ViewDefinition("high_value_success", "Successful projects above the high-value pledge", _high_value_success),
    )
}

# Read order for views whose stored query is grouped
_READ_ORDER = {
    "successful_projects": "id",
    "country_success_rate": "success_rate DESC, country",
    "high_value_success": "pledged DESC, name",
}


def view_sql(conn: Connection, view: ViewDefinition, settings: AnalysisSettings) -> str:
    """Compile a view's query with inlined parameters for the connected dialect"""
    compiled = view.build(settings).compile(
        dialect=conn.dialect,
        compile_kwargs={"literal_binds": True},
    )
    return str(compiled)


def create_or_replace_view(
    conn: Connection,
    name: str,
    settings: Optional[AnalysisSettings] = None,
) -> None:
    """
    Install or redefine a view.

    Args:
        conn: Connection with an open transaction
        name: One of VIEWS

    Raises:
        KeyError: If the view name is unknown
    """
    view = VIEWS[name]
    settings = settings or get_settings().analysis
    preparer = conn.dialect.identifier_preparer
    quoted = preparer.quote(view.name)

    conn.execute(text(f"DROP VIEW IF EXISTS {quoted}"))
    conn.execute(text(f"CREATE VIEW {quoted} AS {view_sql(conn, view, settings)}"))
    logger.info("View created", view=view.name)


def create_views(conn: Connection, settings: Optional[AnalysisSettings] = None) -> List[str]:
    """Install every view; returns their names"""
    for name in VIEWS:
        create_or_replace_view(conn, name, settings)
    return list(VIEWS)


def drop_view(conn: Connection, name: str) -> None:
    quoted = conn.dialect.identifier_preparer.quote(VIEWS[name].name)
    conn.execute(text(f"DROP VIEW IF EXISTS {quoted}"))
    logger.info("View dropped", view=name)


def read_view(conn: Connection, name: str) -> List[Dict[str, Any]]:
    """
    Read the current contents of a view.

    Raises:
        KeyError: If the view name is unknown
        MissingObjectError: If the view has not been created
    """
    view = VIEWS[name]
    if view.name not in inspect(conn).get_view_names():
        raise MissingObjectError(view.name)

    quoted = conn.dialect.identifier_preparer.quote(view.name)
    result = conn.execute(text(f"SELECT * FROM {quoted} ORDER BY {_READ_ORDER[name]}"))
    return [dict(row._mapping) for row in result]
