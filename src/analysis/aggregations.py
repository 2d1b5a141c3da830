"""
Aggregation Queries

Grouped statistics over the cleaned campaign table. Each query is read-only
and returns its full result set. Ties in the primary ordering are broken by
the group key (or by id for row listings) so results are deterministic.
"""

from typing import List, Optional

import structlog
from sqlalchemy import func, select
from sqlalchemy.engine import Connection

from src.analysis.expressions import rounded, success_count, success_rate
from src.analysis.schemas import (
    CategoryCount,
    CategoryCountrySuccessRate,
    CategoryFundingSuccess,
    CategoryPledged,
    CategorySuccessRate,
    CountrySuccessRate,
    FundedProject,
)
from src.config import get_settings
from src.database.models import Project

logger = structlog.get_logger(__name__)


def _success_state(success_state: Optional[str]) -> str:
    return success_state or get_settings().analysis.success_state


def category_popularity(conn: Connection) -> List[CategoryCount]:
    """Number of projects per main category, most popular first"""
    total_projects = func.count().label("total_projects")
    result = conn.execute(
        select(Project.main_category, total_projects)
        .group_by(Project.main_category)
        .order_by(total_projects.desc(), Project.main_category)
    )
    return [CategoryCount.model_validate(dict(row._mapping)) for row in result]


def average_pledged_by_category(conn: Connection) -> List[CategoryPledged]:
    """Mean pledged per main category rounded to cents, highest first"""
    avg_pledged = rounded(func.avg(Project.pledged)).label("avg_pledged")
    result = conn.execute(
        select(Project.main_category, avg_pledged)
        .group_by(Project.main_category)
        .order_by(avg_pledged.desc(), Project.main_category)
    )
    return [CategoryPledged.model_validate(dict(row._mapping)) for row in result]


def success_rate_by_category(
    conn: Connection,
    success_state: Optional[str] = None,
) -> List[CategorySuccessRate]:
    """Percentage of successful projects per main category, highest first"""
    state = _success_state(success_state)
    rate = success_rate(success_count(state), func.count()).label("success_rate")
    result = conn.execute(
        select(Project.main_category, rate)
        .group_by(Project.main_category)
        .order_by(rate.desc(), Project.main_category)
    )
    return [CategorySuccessRate.model_validate(dict(row._mapping)) for row in result]


def top_funded_projects(conn: Connection, limit: Optional[int] = None) -> List[FundedProject]:
    """
    Projects with the largest pledged amounts.

    Equal pledged amounts are ordered by id so the cut at ``limit`` is stable.
    """
    limit = get_settings().analysis.top_funded_limit if limit is None else limit
    result = conn.execute(
        select(
            Project.id,
            Project.name,
            Project.main_category,
            Project.pledged,
            Project.currency,
        )
        .order_by(Project.pledged.desc(), Project.id)
        .limit(limit)
    )
    return [FundedProject.model_validate(dict(row._mapping)) for row in result]


def success_rate_by_country(
    conn: Connection,
    success_state: Optional[str] = None,
) -> List[CountrySuccessRate]:
    """Percentage of successful projects per country, highest first"""
    state = _success_state(success_state)
    rate = success_rate(success_count(state), func.count()).label("success_rate")
    result = conn.execute(
        select(Project.country, rate)
        .group_by(Project.country)
        .order_by(rate.desc(), Project.country)
    )
    return [CountrySuccessRate.model_validate(dict(row._mapping)) for row in result]


def high_funding_low_success(
    conn: Connection,
    max_success_rate: Optional[float] = None,
    success_state: Optional[str] = None,
) -> List[CategoryFundingSuccess]:
    """
    Categories whose success rate is strictly below ``max_success_rate``,
    best funded first.

    The threshold filters the grouped rate (HAVING), not individual rows.
    """
    settings = get_settings().analysis
    threshold = settings.low_success_rate if max_success_rate is None else max_success_rate
    state = _success_state(success_state)

    rate_expr = success_rate(success_count(state), func.count())
    avg_pledged = func.avg(Project.pledged).label("avg_pledged")
    result = conn.execute(
        select(Project.main_category, avg_pledged, rate_expr.label("success_rate"))
        .group_by(Project.main_category)
        .having(rate_expr < threshold)
        .order_by(avg_pledged.desc(), Project.main_category)
    )
    rows = [CategoryFundingSuccess.model_validate(dict(row._mapping)) for row in result]
    logger.debug("Low-success categories found", threshold=threshold, count=len(rows))
    return rows


def category_country_success(
    conn: Connection,
    success_state: Optional[str] = None,
) -> List[CategoryCountrySuccessRate]:
    """Success rate for every (country, main category) pair"""
    state = _success_state(success_state)
    rate = success_rate(success_count(state), func.count()).label("success_rate")
    result = conn.execute(
        select(Project.country, Project.main_category, rate)
        .group_by(Project.country, Project.main_category)
        .order_by(Project.country, rate.desc(), Project.main_category)
    )
    return [CategoryCountrySuccessRate.model_validate(dict(row._mapping)) for row in result]
