"""
Anomaly Detection Module

Rule-based outlier detection for campaign records.
A campaign is anomalous when its goal or its pledged amount exceeds a fixed
threshold. The same predicate drives the on-demand report and the
``anomalies`` snapshot table.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional

import structlog
from sqlalchemy import or_, select
from sqlalchemy.engine import Connection
from sqlalchemy.sql.elements import ColumnElement

from src.config import get_settings
from src.database.models import Project

logger = structlog.get_logger(__name__)


class AnomalyType(str, Enum):
    """Types of anomalies detected"""
    GOAL_OUTLIER = "goal_outlier"
    PLEDGED_OUTLIER = "pledged_outlier"


class AnomalySeverity(str, Enum):
    """Severity levels for anomalies"""
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"


@dataclass
class AnomalyResult:
    """Single rule hit on one campaign"""
    project_id: int
    project_name: Optional[str]
    anomaly_type: AnomalyType
    severity: AnomalySeverity
    value: float
    threshold: float
    message: str

    @property
    def is_critical(self) -> bool:
        return self.severity in [AnomalySeverity.CRITICAL, AnomalySeverity.HIGH]


@dataclass
class AnomalyReport:
    """Complete anomaly detection report"""
    started_at: datetime
    completed_at: datetime
    rows_flagged: int
    anomalies: List[AnomalyResult] = field(default_factory=list)

    @property
    def anomalies_found(self) -> int:
        return len(self.anomalies)

    @property
    def critical_count(self) -> int:
        return sum(1 for a in self.anomalies if a.is_critical)


class AnomalyDetector:
    """
    Threshold detector for campaign goals and pledges.

    Example:
        detector = AnomalyDetector(goal_threshold=1_000_000)
        report = detector.detect(conn)
    """

    def __init__(
        self,
        goal_threshold: Optional[float] = None,
        pledged_threshold: Optional[float] = None,
    ):
        settings = get_settings().analysis
        self.goal_threshold = settings.anomaly_goal_threshold if goal_threshold is None else goal_threshold
        self.pledged_threshold = (
            settings.anomaly_pledged_threshold if pledged_threshold is None else pledged_threshold
        )

    def condition(self) -> ColumnElement:
        """Row predicate: goal or pledged above its threshold"""
        return or_(
            Project.goal > self.goal_threshold,
            Project.pledged > self.pledged_threshold,
        )

    @staticmethod
    def _severity(value: float, threshold: float) -> AnomalySeverity:
        if threshold > 0 and value > threshold * 10:
            return AnomalySeverity.CRITICAL
        if threshold > 0 and value > threshold * 2:
            return AnomalySeverity.HIGH
        return AnomalySeverity.MEDIUM

    def _check_row(self, row) -> List[AnomalyResult]:
        anomalies = []
        checks = (
            (AnomalyType.GOAL_OUTLIER, "goal", row.goal, self.goal_threshold),
            (AnomalyType.PLEDGED_OUTLIER, "pledged", row.pledged, self.pledged_threshold),
        )
        for anomaly_type, label, value, threshold in checks:
            if value is not None and value > threshold:
                anomalies.append(AnomalyResult(
                    project_id=row.id,
                    project_name=row.name,
                    anomaly_type=anomaly_type,
                    severity=self._severity(value, threshold),
                    value=float(value),
                    threshold=threshold,
                    message=f"{label} {value:,.2f} exceeds {threshold:,.2f}",
                ))
        return anomalies

    def detect(self, conn: Connection) -> AnomalyReport:
        """Scan the base table and report every rule hit"""
        started_at = datetime.utcnow()

        result = conn.execute(
            select(Project.id, Project.name, Project.goal, Project.pledged)
            .where(self.condition())
            .order_by(Project.id)
        )

        rows_flagged = 0
        anomalies: List[AnomalyResult] = []
        for row in result:
            rows_flagged += 1
            anomalies.extend(self._check_row(row))

        report = AnomalyReport(
            started_at=started_at,
            completed_at=datetime.utcnow(),
            rows_flagged=rows_flagged,
            anomalies=anomalies,
        )

        if report.critical_count:
            logger.warning(
                "Critical anomalies detected",
                rows_flagged=rows_flagged,
                critical=report.critical_count,
            )
        logger.info("Anomaly detection complete", rows_flagged=rows_flagged, anomalies=report.anomalies_found)
        return report
