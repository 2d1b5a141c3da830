"""
Command Line Entry Point

Usage:
    kickstarter-analysis run [--refresh-snapshots]
    kickstarter-analysis inspect
    kickstarter-analysis top-projects "Film & Video" --limit 5
    kickstarter-analysis refresh-snapshots

The base table must already be loaded into the configured database.
"""

import argparse
import sys
from typing import Optional, Sequence

import polars as pl
import structlog

from src.analysis.errors import AnalysisError
from src.analysis.frames import to_frame
from src.config import get_settings
from src.config.logging import configure_logging
from src.database.connection import close_database, init_database
from src.workflow import AnalysisWorkflow, InspectionResult, WorkflowReport

logger = structlog.get_logger(__name__)


def _print_section(title: str, frame: pl.DataFrame) -> None:
    print(f"\n== {title} ({frame.height} rows)")
    print(frame)


def print_inspection(result: InspectionResult) -> None:
    overview = result.overview
    print(f"Table '{overview.table}': {overview.total_rows} rows, {overview.total_columns} columns")
    _print_section("Columns", to_frame(overview.columns))
    _print_section("Preview", pl.DataFrame(result.preview))
    print(f"\nDistinct states: {', '.join(str(s) for s in result.states)}")
    _print_section("Projects per country", to_frame(result.projects_per_country))
    print(f"\nNull counts: {result.null_counts.model_dump()}")


def print_report(report: WorkflowReport) -> None:
    print_inspection(report.inspection)

    cleaning = report.cleaning
    print(
        f"\nCleaning: {cleaning.total_rows} -> {cleaning.rows_after_cleaning} rows "
        f"({cleaning.rows_removed} removed, {cleaning.format_corrections} currencies normalized)"
    )
    validation = report.validation
    print(
        f"Validation: {validation.status.value} "
        f"({validation.passed_checks}/{validation.total_checks} checks, {validation.success_rate:.1f}%)"
    )

    for name, rows in report.aggregations.items():
        _print_section(name.replace("_", " ").capitalize(), to_frame(rows))

    derived = report.derived
    print(f"\nViews: {', '.join(derived.views)}")
    for info in (derived.kpis, report.anomalies):
        action = "built" if info.created else "kept (already existed)"
        print(f"Snapshot {info.name}: {info.row_count} rows, {action}, computed at {info.computed_at}")

    _print_section("Rank within category", to_frame(report.rankings))
    _print_section("Category success rollup", to_frame(report.rollup))
    print(f"\nCompleted in {report.duration_seconds:.2f}s")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kickstarter-analysis",
        description="Exploratory analysis and KPI extraction over crowdfunding campaigns",
    )
    parser.add_argument(
        "--database-url",
        default=None,
        help="SQLAlchemy URL of the database holding the projects table",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Override log level (DEBUG, INFO, WARNING, ERROR)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    run = subparsers.add_parser("run", help="Run the full analysis workflow")
    run.add_argument(
        "--refresh-snapshots",
        action="store_true",
        help="Rebuild project_kpis and anomalies even if they exist",
    )

    subparsers.add_parser("inspect", help="Print read-only diagnostics")

    top = subparsers.add_parser("top-projects", help="Best-funded projects of one main category")
    top.add_argument("category", help="Main category, matched exactly")
    top.add_argument("--limit", type=int, default=10, help="Maximum rows (default: 10)")

    subparsers.add_parser("refresh-snapshots", help="Drop and rebuild both snapshot tables")

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    settings = get_settings()
    engine = init_database(args.database_url)
    workflow = AnalysisWorkflow(engine, settings)

    try:
        if args.command == "run":
            print_report(workflow.run(refresh_snapshots=args.refresh_snapshots))
        elif args.command == "inspect":
            print_inspection(workflow.inspect())
        elif args.command == "top-projects":
            rows = workflow.top_projects(args.category, args.limit)
            _print_section(f"Top projects in {args.category}", to_frame(rows))
        elif args.command == "refresh-snapshots":
            for info in workflow.refresh_snapshots().values():
                print(f"Snapshot {info.name}: {info.row_count} rows, computed at {info.computed_at}")
    except AnalysisError as e:
        logger.error("Analysis aborted", command=args.command, error=str(e))
        print(f"error: {e}", file=sys.stderr)
        return 1
    finally:
        close_database()

    return 0


if __name__ == "__main__":
    sys.exit(main())
