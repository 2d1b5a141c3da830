"""
Campaign Analysis Module
"""
from .advanced import category_success_rollup, rank_within_category
from .aggregations import (
    average_pledged_by_category,
    category_country_success,
    category_popularity,
    high_funding_low_success,
    success_rate_by_category,
    success_rate_by_country,
    top_funded_projects,
)
from .errors import AnalysisError, DataQualityError, InvalidParameterError, MissingObjectError
from .inspection import require_projects_table, table_overview
from .retrieval import top_projects
from .snapshots import (
    compute_kpis,
    materialize_anomalies,
    materialize_kpis,
    read_anomalies,
    read_kpis,
    refresh_anomalies,
    refresh_kpis,
)
from .views import VIEWS, create_views, read_view

__all__ = [
    "category_success_rollup",
    "rank_within_category",
    "average_pledged_by_category",
    "category_country_success",
    "category_popularity",
    "high_funding_low_success",
    "success_rate_by_category",
    "success_rate_by_country",
    "top_funded_projects",
    "AnalysisError",
    "DataQualityError",
    "InvalidParameterError",
    "MissingObjectError",
    "require_projects_table",
    "table_overview",
    "top_projects",
    "compute_kpis",
    "materialize_anomalies",
    "materialize_kpis",
    "read_anomalies",
    "read_kpis",
    "refresh_anomalies",
    "refresh_kpis",
    "VIEWS",
    "create_views",
    "read_view",
]
