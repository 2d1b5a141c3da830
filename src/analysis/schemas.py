"""
Analysis Result Models

Typed rows returned by the inspection, aggregation and retrieval queries.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel


class ColumnInfo(BaseModel):
    """Column of the base table"""
    name: str
    type: str
    nullable: bool


class TableOverview(BaseModel):
    """Row and column counts of the base table"""
    table: str
    total_rows: int
    total_columns: int
    columns: List[ColumnInfo]


class NullCounts(BaseModel):
    """Null counts for the identifying columns"""
    null_id: int
    null_name: int
    null_category: int


class CountryCount(BaseModel):
    country: Optional[str]
    num_projects: int


class CategoryCount(BaseModel):
    """Projects per main category"""
    main_category: Optional[str]
    total_projects: int


class CategoryPledged(BaseModel):
    """Average pledged per main category"""
    main_category: Optional[str]
    avg_pledged: Optional[float]


class CategorySuccessRate(BaseModel):
    """Success percentage per main category"""
    main_category: Optional[str]
    success_rate: float


class CountrySuccessRate(BaseModel):
    country: Optional[str]
    success_rate: float


class CategoryFundingSuccess(BaseModel):
    """Average pledged and success rate of a main category"""
    main_category: Optional[str]
    avg_pledged: Optional[float]
    success_rate: float


class CategoryCountrySuccessRate(BaseModel):
    country: Optional[str]
    main_category: Optional[str]
    success_rate: float


class FundedProject(BaseModel):
    """Row of the top-funded listing"""
    id: int
    name: Optional[str]
    main_category: Optional[str]
    pledged: Optional[float]
    currency: Optional[str]


class ProjectPledge(BaseModel):
    """Row returned by top_projects"""
    name: Optional[str]
    pledged: Optional[float]


class RankedProject(BaseModel):
    """Campaign annotated with its pledged rank inside its main category"""
    id: int
    name: Optional[str]
    main_category: Optional[str]
    pledged: Optional[float]
    rank_in_category: int


class CategorySuccessRollup(BaseModel):
    """Success rate staged through per-category totals"""
    main_category: Optional[str]
    total: int
    success_count: int
    success_rate: float


class ProjectKPIs(BaseModel):
    """Headline figures over the whole base table"""
    total_projects: int
    overall_success_rate: Optional[float]
    avg_pledged_amount: Optional[float]
    avg_goal_amount: Optional[float]
    computed_at: Optional[datetime] = None


class SnapshotInfo(BaseModel):
    """Outcome of materializing or reading a snapshot table"""
    name: str
    row_count: int
    computed_at: Optional[datetime]
    created: bool
