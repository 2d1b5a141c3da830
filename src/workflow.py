"""
Campaign Analysis Workflow

Runs the analysis stages in dependency order against the base table:

1. Inspection       - shape, preview, states, countries, null counts
2. Cleaning         - in-place deletions and currency normalization
3. Validation       - invariants required by every later stage
4. Aggregation      - grouped statistics
5. Derived objects  - views and the KPI snapshot
6. Anomalies        - outlier snapshot
7. Advanced         - window ranking and CTE rollup

Each stage runs in its own transaction. Parameterized retrieval is served
on demand through ``AnalysisWorkflow.top_projects``.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

import structlog
from sqlalchemy import Engine

from src.analysis import advanced, aggregations, inspection, snapshots, views
from src.analysis.errors import DataQualityError
from src.analysis.frames import read_projects_frame
from src.analysis.retrieval import top_projects
from src.analysis.schemas import (
    CategorySuccessRollup,
    NullCounts,
    ProjectPledge,
    RankedProject,
    SnapshotInfo,
    TableOverview,
)
from src.config import Settings, get_settings
from src.database.connection import get_db
from src.quality.anomaly_detector import AnomalyDetector, AnomalyReport
from src.quality.validators import ValidationResult, ValidationStatus, create_projects_validator
from src.transformation.cleaners import CleaningStats, ProjectCleaner

logger = structlog.get_logger(__name__)


@dataclass
class InspectionResult:
    overview: TableOverview
    preview: List[Dict[str, Any]]
    states: List[Optional[str]]
    projects_per_country: list
    null_counts: NullCounts


@dataclass
class DerivedObjects:
    views: List[str]
    kpis: SnapshotInfo


@dataclass
class WorkflowReport:
    """Results of one workflow run"""
    started_at: datetime
    completed_at: Optional[datetime] = None
    inspection: Optional[InspectionResult] = None
    cleaning: Optional[CleaningStats] = None
    validation: Optional[ValidationResult] = None
    aggregations: Dict[str, list] = field(default_factory=dict)
    derived: Optional[DerivedObjects] = None
    anomalies: Optional[SnapshotInfo] = None
    anomaly_report: Optional[AnomalyReport] = None
    rankings: List[RankedProject] = field(default_factory=list)
    rollup: List[CategorySuccessRollup] = field(default_factory=list)

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.completed_at is None:
            return None
        return (self.completed_at - self.started_at).total_seconds()


class AnalysisWorkflow:
    """
    Sequential analysis over one campaign table.

    Example:
        workflow = AnalysisWorkflow(engine)
        report = workflow.run()
    """

    def __init__(self, engine: Engine, settings: Optional[Settings] = None):
        self.engine = engine
        self.settings = settings or get_settings()
        self.cleaner = ProjectCleaner()
        self.detector = AnomalyDetector(
            goal_threshold=self.settings.analysis.anomaly_goal_threshold,
            pledged_threshold=self.settings.analysis.anomaly_pledged_threshold,
        )

    # -------------------------------------------------------------------------
    # Stages
    # -------------------------------------------------------------------------

    def inspect(self) -> InspectionResult:
        """Read-only diagnostics; fails if the base table is unusable"""
        with get_db(self.engine) as conn:
            overview = inspection.table_overview(conn)
            return InspectionResult(
                overview=overview,
                preview=inspection.preview_rows(conn, self.settings.analysis.preview_limit),
                states=inspection.distinct_states(conn),
                projects_per_country=inspection.projects_per_country(conn),
                null_counts=inspection.null_counts(conn),
            )

    def clean(self) -> CleaningStats:
        with get_db(self.engine) as conn:
            inspection.require_projects_table(conn)
            return self.cleaner.clean(conn)

    def validate(self) -> ValidationResult:
        """
        Check the cleaned table.

        Raises:
            DataQualityError: If an ERROR-severity check fails
        """
        with get_db(self.engine) as conn:
            df = read_projects_frame(conn)

        result = create_projects_validator().validate(df)
        if result.status == ValidationStatus.FAILED:
            messages = "; ".join(check.message for check in result.failures())
            logger.error("Cleaned data violates invariants", failures=messages)
            raise DataQualityError(f"Cleaned data violates invariants: {messages}")
        return result

    def aggregate(self) -> Dict[str, list]:
        state = self.settings.analysis.success_state
        with get_db(self.engine) as conn:
            results = {
                "category_popularity": aggregations.category_popularity(conn),
                "average_pledged_by_category": aggregations.average_pledged_by_category(conn),
                "success_rate_by_category": aggregations.success_rate_by_category(conn, state),
                "top_funded_projects": aggregations.top_funded_projects(
                    conn, self.settings.analysis.top_funded_limit
                ),
                "success_rate_by_country": aggregations.success_rate_by_country(conn, state),
                "high_funding_low_success": aggregations.high_funding_low_success(
                    conn, self.settings.analysis.low_success_rate, state
                ),
                "category_country_success": aggregations.category_country_success(conn, state),
            }
        logger.info("Aggregations computed", queries=len(results))
        return results

    def build_derived_objects(self, refresh: bool = False) -> DerivedObjects:
        """Install views and build (or refresh) the KPI snapshot"""
        with get_db(self.engine) as conn:
            created = views.create_views(conn, self.settings.analysis)
            state = self.settings.analysis.success_state
            if refresh:
                kpis = snapshots.refresh_kpis(conn, state)
            else:
                kpis = snapshots.materialize_kpis(conn, state)
        return DerivedObjects(views=created, kpis=kpis)

    def extract_anomalies(self, refresh: bool = False) -> SnapshotInfo:
        with get_db(self.engine) as conn:
            if refresh:
                return snapshots.refresh_anomalies(conn, self.detector)
            return snapshots.materialize_anomalies(conn, self.detector)

    def detect_anomalies(self) -> AnomalyReport:
        with get_db(self.engine) as conn:
            return self.detector.detect(conn)

    def advanced_analytics(self) -> Dict[str, list]:
        with get_db(self.engine) as conn:
            return {
                "rankings": advanced.rank_within_category(conn),
                "rollup": advanced.category_success_rollup(conn, self.settings.analysis.success_state),
            }

    def top_projects(self, category: str, limit: int) -> List[ProjectPledge]:
        with get_db(self.engine) as conn:
            return top_projects(conn, category, limit)

    def refresh_snapshots(self) -> Dict[str, SnapshotInfo]:
        """Drop and rebuild both snapshots from the current table"""
        with get_db(self.engine) as conn:
            return {
                "project_kpis": snapshots.refresh_kpis(conn, self.settings.analysis.success_state),
                "anomalies": snapshots.refresh_anomalies(conn, self.detector),
            }

    # -------------------------------------------------------------------------
    # Full run
    # -------------------------------------------------------------------------

    def run(self, refresh_snapshots: bool = False) -> WorkflowReport:
        """
        Execute every stage in order.

        Args:
            refresh_snapshots: Rebuild snapshots even if they already exist

        Returns:
            WorkflowReport with each stage's output

        Raises:
            MissingObjectError: If the base table or a column is missing
            DataQualityError: If cleaning left invariant violations
        """
        report = WorkflowReport(started_at=datetime.utcnow())
        logger.info("Starting analysis workflow", refresh_snapshots=refresh_snapshots)

        try:
            report.inspection = self.inspect()
            report.cleaning = self.clean()
            report.validation = self.validate()
            report.aggregations = self.aggregate()
            report.derived = self.build_derived_objects(refresh=refresh_snapshots)
            report.anomalies = self.extract_anomalies(refresh=refresh_snapshots)
            report.anomaly_report = self.detect_anomalies()

            extras = self.advanced_analytics()
            report.rankings = extras["rankings"]
            report.rollup = extras["rollup"]
        except Exception as e:
            logger.error("Analysis workflow failed", error=str(e), error_type=type(e).__name__)
            raise

        report.completed_at = datetime.utcnow()
        logger.info(
            "Analysis workflow complete",
            duration_seconds=report.duration_seconds,
            rows_removed=report.cleaning.rows_removed,
            anomalies=report.anomalies.row_count,
        )
        return report
