"""
Parameterized Retrieval
"""

from typing import List

import structlog
from sqlalchemy import select
from sqlalchemy.engine import Connection

from src.analysis.errors import InvalidParameterError
from src.analysis.schemas import ProjectPledge
from src.database.models import Project

logger = structlog.get_logger(__name__)


def top_projects(conn: Connection, category: str, limit: int) -> List[ProjectPledge]:
    """
    Best-funded projects of one main category.

    Args:
        conn: Database connection
        category: Main category, compared for exact equality
        limit: Maximum number of rows; 0 returns an empty list

    Returns:
        Up to ``limit`` (name, pledged) rows, highest pledged first,
        ties broken by id. An unknown category yields an empty list.

    Raises:
        InvalidParameterError: If category is not a string or limit is not
            a non-negative integer
    """
    if not isinstance(category, str):
        logger.warning("top_projects rejected", reason="category must be a string", category=repr(category))
        raise InvalidParameterError(f"category must be a string, got {type(category).__name__}")
    if isinstance(limit, bool) or not isinstance(limit, int):
        logger.warning("top_projects rejected", reason="limit must be an integer", limit=repr(limit))
        raise InvalidParameterError(f"limit must be an integer, got {type(limit).__name__}")
    if limit < 0:
        logger.warning("top_projects rejected", reason="negative limit", limit=limit)
        raise InvalidParameterError(f"limit must be non-negative, got {limit}")

    if limit == 0:
        return []

    result = conn.execute(
        select(Project.name, Project.pledged)
        .where(Project.main_category == category)
        .order_by(Project.pledged.desc(), Project.id)
        .limit(limit)
    )
    rows = [ProjectPledge(name=row.name, pledged=row.pledged) for row in result]
    logger.debug("top_projects served", category=category, limit=limit, rows=len(rows))
    return rows
