"""
Shared SQL expressions for success-rate and rounded-average columns.

Every query computing a success percentage goes through success_rate() so
that grouped queries, views and the CTE rollup produce identical numbers.
"""

from sqlalchemy import Float, Numeric, case, cast, func, type_coerce
from sqlalchemy.sql.elements import ColumnElement

from src.database.models import Project


def success_count(success_state: str) -> ColumnElement:
    """Number of rows in the group whose state is the success state"""
    return func.coalesce(
        func.sum(case((Project.state == success_state, 1), else_=0)),
        0,
    )


def success_rate(successful: ColumnElement, total: ColumnElement) -> ColumnElement:
    """successful * 100 / total as a float percentage; NULL when total is 0"""
    return type_coerce(cast(successful, Float) * 100 / func.nullif(total, 0), Float)


def rounded(expression: ColumnElement, digits: int = 2) -> ColumnElement:
    # two-argument round() only accepts numeric on PostgreSQL
    return type_coerce(func.round(cast(expression, Numeric), digits), Float)
