"""
Advanced Analytics

Window-function ranking and a CTE-staged success-rate rollup.
Both are read-only.
"""

from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.engine import Connection

from src.analysis.expressions import success_count, success_rate
from src.analysis.schemas import CategorySuccessRollup, RankedProject
from src.config import get_settings
from src.database.models import Project


def rank_within_category(conn: Connection) -> List[RankedProject]:
    """
    Every project with its RANK() by pledged inside its main category.

    Equal pledges share a rank and the following rank skips by the number
    of tied rows (1, 1, 3). Output is ordered by category, rank, then id.
    """
    rank_in_category = func.rank().over(
        partition_by=Project.main_category,
        order_by=Project.pledged.desc(),
    ).label("rank_in_category")

    ranked = select(
        Project.id,
        Project.name,
        Project.main_category,
        Project.pledged,
        rank_in_category,
    ).subquery()

    result = conn.execute(
        select(ranked).order_by(ranked.c.main_category, ranked.c.rank_in_category, ranked.c.id)
    )
    return [RankedProject.model_validate(dict(row._mapping)) for row in result]


def category_success_rollup(
    conn: Connection,
    success_state: Optional[str] = None,
) -> List[CategorySuccessRollup]:
    """
    Success rate per main category staged through a named intermediate.

    ``category_success`` holds per-category totals; the outer query derives
    the percentage from it. Numbers match success_rate_by_category exactly.
    """
    state = success_state or get_settings().analysis.success_state

    category_success = (
        select(
            Project.main_category,
            func.count().label("total"),
            success_count(state).label("success_count"),
        )
        .group_by(Project.main_category)
        .cte("category_success")
    )

    result = conn.execute(
        select(
            category_success.c.main_category,
            category_success.c.total,
            category_success.c.success_count,
            success_rate(category_success.c.success_count, category_success.c.total).label("success_rate"),
        ).order_by(category_success.c.main_category)
    )
    return [CategorySuccessRollup.model_validate(dict(row._mapping)) for row in result]
