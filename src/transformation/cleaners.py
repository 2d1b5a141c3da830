"""
Data Cleaning Module

In-place cleaning of the campaign table.
Handles:
- Removal of rows missing essential fields (name, goal)
- Removal of rows with non-positive goals
- Currency code normalization to uppercase

Rows are deleted permanently and never re-inserted; running the cleaner
against an already clean table changes nothing.
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

import structlog
from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.engine import Connection

from src.database.models import Project

logger = structlog.get_logger(__name__)


@dataclass
class CleaningStats:
    """Statistics from cleaning operations"""
    total_rows: int
    rows_after_cleaning: int
    missing_fields_removed: int
    non_positive_goals_removed: int
    format_corrections: int

    @property
    def rows_removed(self) -> int:
        return self.missing_fields_removed + self.non_positive_goals_removed

    @property
    def changed(self) -> bool:
        return self.rows_removed > 0 or self.format_corrections > 0


class ProjectCleaner:
    """
    Cleaner for the campaign base table.

    Rules run in registration order: both deletions precede the currency
    normalization, and all of them precede any aggregation.

    Example:
        cleaner = ProjectCleaner()
        stats = cleaner.clean(conn)
    """

    def __init__(self):
        self._cleaning_rules: Dict[str, Callable[[Connection], int]] = {}
        self._register_default_rules()

    def _register_default_rules(self) -> None:
        """Register default cleaning rules"""
        self._cleaning_rules = {
            "remove_missing_fields": self._remove_missing_fields,
            "remove_non_positive_goals": self._remove_non_positive_goals,
            "normalize_currency": self._normalize_currency,
        }

    @property
    def rules(self) -> List[str]:
        return list(self._cleaning_rules)

    def _remove_missing_fields(self, conn: Connection) -> int:
        """Delete rows with a null name or null goal"""
        result = conn.execute(
            delete(Project).where(or_(Project.name.is_(None), Project.goal.is_(None)))
        )
        return result.rowcount

    def _remove_non_positive_goals(self, conn: Connection) -> int:
        """Delete rows whose goal is zero or negative"""
        result = conn.execute(delete(Project).where(Project.goal <= 0))
        return result.rowcount

    def _normalize_currency(self, conn: Connection) -> int:
        """Uppercase currency codes, touching only rows that change"""
        result = conn.execute(
            update(Project)
            .where(Project.currency != func.upper(Project.currency))
            .values(currency=func.upper(Project.currency))
        )
        return result.rowcount

    def _count_rows(self, conn: Connection) -> int:
        return conn.execute(select(func.count()).select_from(Project)).scalar_one()

    def clean(self, conn: Connection, rules: Optional[List[str]] = None) -> CleaningStats:
        """
        Apply cleaning rules to the base table.

        Args:
            conn: Connection with an open transaction
            rules: Subset of rule names to apply (default: all, in order)

        Returns:
            CleaningStats describing what changed
        """
        selected = self.rules if rules is None else rules
        unknown = [name for name in selected if name not in self._cleaning_rules]
        if unknown:
            raise ValueError(f"Unknown cleaning rules: {unknown}")

        total_rows = self._count_rows(conn)
        affected: Dict[str, int] = {}

        # Registration order, not caller order
        for name in self.rules:
            if name in selected:
                affected[name] = self._cleaning_rules[name](conn)
                logger.debug("Cleaning rule applied", rule=name, rows=affected[name])

        stats = CleaningStats(
            total_rows=total_rows,
            rows_after_cleaning=self._count_rows(conn),
            missing_fields_removed=affected.get("remove_missing_fields", 0),
            non_positive_goals_removed=affected.get("remove_non_positive_goals", 0),
            format_corrections=affected.get("normalize_currency", 0),
        )

        logger.info(
            "Cleaning complete",
            total_rows=stats.total_rows,
            rows_after_cleaning=stats.rows_after_cleaning,
            rows_removed=stats.rows_removed,
            currency_normalized=stats.format_corrections,
        )
        return stats


def clean_projects(conn: Connection) -> CleaningStats:
    """
    Convenience function to run every cleaning rule.

    Args:
        conn: Connection with an open transaction

    Returns:
        CleaningStats
    """
    return ProjectCleaner().clean(conn)
