"""
Polars DataFrame helpers for validation and console reports.
"""

from typing import Sequence

import polars as pl
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.engine import Connection

from src.database.models import Project

PROJECT_FRAME_SCHEMA = {
    "id": pl.Int64,
    "name": pl.Utf8,
    "category": pl.Utf8,
    "main_category": pl.Utf8,
    "country": pl.Utf8,
    "currency": pl.Utf8,
    "goal": pl.Float64,
    "pledged": pl.Float64,
    "backers": pl.Int64,
    "state": pl.Utf8,
}


def read_projects_frame(conn: Connection) -> pl.DataFrame:
    """Load the whole base table into a DataFrame with a fixed schema"""
    result = conn.execute(select(Project.__table__).order_by(Project.id))
    records = [
        {name: row._mapping[name] for name in PROJECT_FRAME_SCHEMA}
        for row in result
    ]
    return pl.DataFrame(records, schema=PROJECT_FRAME_SCHEMA)


def to_frame(rows: Sequence[BaseModel]) -> pl.DataFrame:
    """Render typed result rows as a DataFrame"""
    return pl.DataFrame([row.model_dump() for row in rows])
