"""
Unit Tests - Shared SQL Expressions Across Dialects
"""
from types import SimpleNamespace

from sqlalchemy import func, select
from sqlalchemy.dialects import postgresql

from src.analysis.aggregations import average_pledged_by_category
from src.analysis.expressions import rounded, success_count, success_rate
from src.analysis.snapshots import _kpi_select
from src.analysis.views import VIEWS, view_sql
from src.config.settings import AnalysisSettings
from src.database.models import Project


def _pg_sql(statement) -> str:
    return str(statement.compile(dialect=postgresql.dialect()))


class _RecordingConnection:
    """Connection stand-in that keeps executed statements"""

    def __init__(self, dialect):
        self.dialect = dialect
        self.statements = []

    def execute(self, statement):
        self.statements.append(statement)
        return []


class TestPostgresRendering:
    """Tests that rounded and percentage expressions are valid PostgreSQL"""

    def test_round_applies_to_numeric(self):
        """Test two-argument round receives a NUMERIC cast"""
        sql = _pg_sql(select(rounded(func.avg(Project.pledged))))

        assert "round(CAST(avg(projects.pledged) AS NUMERIC)" in sql

    def test_success_rate_guards_zero_total(self):
        """Test the divisor is wrapped in NULLIF"""
        sql = _pg_sql(select(success_rate(success_count("successful"), func.count())))

        assert "nullif(count(*)" in sql

    def test_average_pledged_query(self):
        """Test the average pledged aggregation rounds a NUMERIC value"""
        conn = _RecordingConnection(postgresql.dialect())

        assert average_pledged_by_category(conn) == []
        sql = _pg_sql(conn.statements[0])
        assert "round(CAST(avg(projects.pledged) AS NUMERIC)" in sql

    def test_kpi_query(self):
        """Test every rounded KPI goes through a NUMERIC cast"""
        sql = _pg_sql(_kpi_select("successful"))

        assert sql.count("round(CAST(") == 3
        assert "round(avg(" not in sql
        assert "nullif(count(*)" in sql

    def test_country_success_rate_view(self):
        """Test the view DDL body is valid on PostgreSQL"""
        conn = SimpleNamespace(dialect=postgresql.dialect())

        sql = view_sql(conn, VIEWS["country_success_rate"], AnalysisSettings())

        assert "round(CAST(" in sql
        assert "AS NUMERIC)" in sql
        assert "nullif(count(*), 0)" in sql
        assert "'successful'" in sql
