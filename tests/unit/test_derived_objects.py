"""
Unit Tests - Views and Snapshots
"""
import pytest
from sqlalchemy import delete, inspect, update

from src.analysis.errors import MissingObjectError
from src.analysis.snapshots import (
    compute_kpis,
    materialize_anomalies,
    materialize_kpis,
    read_anomalies,
    read_kpis,
    refresh_anomalies,
    refresh_kpis,
)
from src.analysis.views import VIEWS, create_or_replace_view, create_views, drop_view, read_view
from src.config.settings import AnalysisSettings
from src.database.models import Project
from src.quality.anomaly_detector import AnomalyDetector


class TestViews:
    """Tests for saved views"""

    def test_create_views(self, cleaned_engine):
        """Test every view is installed"""
        with cleaned_engine.begin() as conn:
            names = create_views(conn)
            installed = set(inspect(conn).get_view_names())

        assert names == list(VIEWS)
        assert set(VIEWS) <= installed

    def test_successful_projects(self, cleaned_engine):
        """Test the view holds exactly the successful rows"""
        with cleaned_engine.begin() as conn:
            create_views(conn)
            rows = read_view(conn, "successful_projects")

        assert [row["id"] for row in rows] == [1, 3, 4, 6]
        assert all(row["state"] == "successful" for row in rows)
        assert "backers" in rows[0]

    def test_country_success_rate(self, cleaned_engine):
        """Test per-country rate and project count"""
        with cleaned_engine.begin() as conn:
            create_views(conn)
            rows = read_view(conn, "country_success_rate")

        assert [(r["country"], r["success_rate"], r["total_projects"]) for r in rows] == [
            ("US", 75.0, 4),
            ("GB", 50.0, 2),
            ("CA", 0.0, 2),
        ]

    def test_high_value_success(self, cleaned_engine):
        """Test only successful projects above the pledge threshold"""
        with cleaned_engine.begin() as conn:
            create_views(conn)
            rows = read_view(conn, "high_value_success")

        assert [r["name"] for r in rows] == ["Zeta Music", "Delta Game", "Gamma Game"]
        assert set(rows[0]) == {"name", "main_category", "pledged", "backers"}

    def test_view_is_live(self, cleaned_engine):
        """Test views reflect base table changes on the next read"""
        with cleaned_engine.begin() as conn:
            create_views(conn)
            conn.execute(delete(Project).where(Project.id == 1))
            rows = read_view(conn, "successful_projects")

        assert [row["id"] for row in rows] == [3, 4, 6]

    def test_create_replaces_definition(self, cleaned_engine):
        """Test re-creating a view swaps in the new definition"""
        with cleaned_engine.begin() as conn:
            create_or_replace_view(conn, "successful_projects")
            create_or_replace_view(
                conn,
                "successful_projects",
                AnalysisSettings(success_state="failed"),
            )
            rows = read_view(conn, "successful_projects")

        assert [row["id"] for row in rows] == [2, 5, 12]

    def test_read_missing_view(self, cleaned_engine):
        """Test reading an uninstalled view raises"""
        with cleaned_engine.begin() as conn:
            with pytest.raises(MissingObjectError):
                read_view(conn, "high_value_success")

    def test_drop_view(self, cleaned_engine):
        """Test a dropped view can no longer be read"""
        with cleaned_engine.begin() as conn:
            create_views(conn)
            drop_view(conn, "country_success_rate")
            with pytest.raises(MissingObjectError):
                read_view(conn, "country_success_rate")

    def test_unknown_view(self, cleaned_engine):
        """Test unknown view names raise KeyError"""
        with cleaned_engine.begin() as conn:
            with pytest.raises(KeyError):
                create_or_replace_view(conn, "nope")


class TestKPISnapshot:
    """Tests for the KPI summary"""

    def test_compute_kpis(self, cleaned_engine):
        """Test headline figures over the cleaned table"""
        with cleaned_engine.begin() as conn:
            kpis = compute_kpis(conn)

        assert kpis.total_projects == 8
        assert kpis.overall_success_rate == 50.0
        assert kpis.avg_pledged_amount == 332100.0
        assert kpis.avg_goal_amount == 199250.0
        assert kpis.computed_at is None

    def test_materialize_and_read(self, cleaned_engine):
        """Test the stored snapshot matches the on-demand figures"""
        with cleaned_engine.begin() as conn:
            info = materialize_kpis(conn)
            stored = read_kpis(conn)
            live = compute_kpis(conn)

        assert info.created
        assert info.row_count == 1
        assert stored.computed_at is not None
        assert stored.model_dump(exclude={"computed_at"}) == live.model_dump(exclude={"computed_at"})

    def test_materialize_skips_existing(self, cleaned_engine):
        """Test an existing snapshot is not rebuilt and may go stale"""
        with cleaned_engine.begin() as conn:
            first = materialize_kpis(conn)
            conn.execute(delete(Project).where(Project.id == 12))
            second = materialize_kpis(conn)
            stored = read_kpis(conn)

        assert not second.created
        assert second.computed_at == first.computed_at
        assert stored.total_projects == 8

    def test_refresh_rebuilds(self, cleaned_engine):
        """Test refresh picks up base table changes"""
        with cleaned_engine.begin() as conn:
            materialize_kpis(conn)
            conn.execute(delete(Project).where(Project.id == 12))
            info = refresh_kpis(conn)
            stored = read_kpis(conn)

        assert info.created
        assert info.row_count == 1
        assert stored.total_projects == 7

    def test_read_missing_snapshot(self, cleaned_engine):
        """Test reading before building raises"""
        with cleaned_engine.begin() as conn:
            with pytest.raises(MissingObjectError) as exc_info:
                read_kpis(conn)

        assert exc_info.value.object_name == "project_kpis"

    def test_kpis_on_empty_table(self, schema_engine):
        """Test an empty table yields zero count and null averages"""
        with schema_engine.begin() as conn:
            kpis = compute_kpis(conn)

        assert kpis.total_projects == 0
        assert kpis.overall_success_rate is None
        assert kpis.avg_pledged_amount is None


class TestAnomalySnapshot:
    """Tests for the anomalies table"""

    def test_materialize_anomalies(self, cleaned_engine):
        """Test the table holds exactly the rows over either threshold"""
        with cleaned_engine.begin() as conn:
            info = materialize_anomalies(conn)
            rows = read_anomalies(conn)

        assert info.created
        assert info.row_count == 2
        assert [row["id"] for row in rows] == [5, 6]
        assert rows[0]["goal"] > 1_000_000
        assert rows[1]["pledged"] > 2_000_000
        assert rows[0]["computed_at"] is not None

    def test_snapshot_matches_detector(self, cleaned_engine):
        """Test stored ids equal the on-demand detection"""
        detector = AnomalyDetector()
        with cleaned_engine.begin() as conn:
            materialize_anomalies(conn, detector)
            stored = {row["id"] for row in read_anomalies(conn)}
            report = detector.detect(conn)

        assert stored == {a.project_id for a in report.anomalies}

    def test_materialize_skips_existing(self, cleaned_engine):
        """Test an existing table is left as built"""
        with cleaned_engine.begin() as conn:
            materialize_anomalies(conn)
            conn.execute(update(Project).where(Project.id == 1).values(goal=5_000_000.0))
            info = materialize_anomalies(conn)
            ids = [row["id"] for row in read_anomalies(conn)]

        assert not info.created
        assert ids == [5, 6]

    def test_refresh_anomalies(self, cleaned_engine):
        """Test refresh reflects the current base table"""
        with cleaned_engine.begin() as conn:
            materialize_anomalies(conn)
            conn.execute(update(Project).where(Project.id == 1).values(goal=5_000_000.0))
            info = refresh_anomalies(conn)
            ids = [row["id"] for row in read_anomalies(conn)]

        assert info.row_count == 3
        assert ids == [1, 5, 6]

    def test_custom_thresholds(self, cleaned_engine):
        """Test detector thresholds drive the snapshot"""
        detector = AnomalyDetector(goal_threshold=40_000, pledged_threshold=10_000_000)
        with cleaned_engine.begin() as conn:
            materialize_anomalies(conn, detector)
            ids = [row["id"] for row in read_anomalies(conn)]

        assert ids == [4, 5]

    def test_read_missing_snapshot(self, cleaned_engine):
        """Test reading before building raises"""
        with cleaned_engine.begin() as conn:
            with pytest.raises(MissingObjectError):
                read_anomalies(conn)
