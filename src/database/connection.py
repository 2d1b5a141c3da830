"""
Database Connection Management

Engine lifecycle and transactional connections with SQLAlchemy 2.0.
The workflow is a single sequential writer, so a synchronous engine is used;
atomicity of each stage comes from the database transaction.
"""

import os
import time
from contextlib import contextmanager
from typing import Generator, Optional

import structlog
from sqlalchemy import Engine, create_engine, event, text
from sqlalchemy.engine import Connection, make_url
from sqlalchemy.pool import StaticPool

from src.config import get_settings

logger = structlog.get_logger(__name__)

# Global engine
_engine: Optional[Engine] = None


def _enable_sqlite_transactional_ddl(engine: Engine) -> None:
    """
    Let SQLAlchemy own BEGIN on SQLite.

    pysqlite only opens transactions before DML, so DROP/CREATE VIEW and
    snapshot DDL would otherwise autocommit outside the stage transaction.
    """
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


def create_db_engine(url: str, echo: bool = False) -> Engine:
    """
    Create an engine for the given URL.

    SQLite files get their parent directory created; in-memory SQLite
    databases share one connection so every stage sees the same data.

    Args:
        url: SQLAlchemy database URL
        echo: Echo emitted SQL

    Returns:
        Engine: Configured engine
    """
    parsed = make_url(url)
    engine_config = {
        "echo": echo,
        "future": True,
    }

    if parsed.get_backend_name() == "sqlite":
        database = parsed.database
        if database and database != ":memory:":
            directory = os.path.dirname(os.path.abspath(database))
            os.makedirs(directory, exist_ok=True)
        else:
            engine_config.update({
                "poolclass": StaticPool,
                "connect_args": {"check_same_thread": False},
            })
    else:
        engine_config["pool_pre_ping"] = True

    engine = create_engine(url, **engine_config)

    if parsed.get_backend_name() == "sqlite":
        _enable_sqlite_transactional_ddl(engine)

    return engine


def init_database(url: Optional[str] = None) -> Engine:
    """
    Initialize the global database engine.

    Args:
        url: Optional URL overriding the configured one

    Returns:
        Engine: The initialized database engine
    """
    global _engine

    if _engine is not None:
        logger.warning("Database already initialized")
        return _engine

    settings = get_settings()
    _engine = create_db_engine(url or settings.database.get_url(), echo=settings.database.echo)

    # Verify connection
    try:
        with _engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        logger.info(
            "Database connection established",
            backend=_engine.dialect.name,
            database=_engine.url.database,
        )
    except Exception as e:
        logger.error("Failed to connect to database", error=str(e))
        _engine.dispose()
        _engine = None
        raise

    return _engine


def close_database() -> None:
    """Dispose of the global engine and its pooled connections."""
    global _engine

    if _engine is not None:
        _engine.dispose()
        _engine = None
        logger.info("Database connection pool closed")


def get_engine() -> Engine:
    """
    Get the database engine.

    Raises:
        RuntimeError: If database is not initialized
    """
    if _engine is None:
        raise RuntimeError("Database not initialized. Call init_database() first.")
    return _engine


@contextmanager
def get_db(engine: Optional[Engine] = None) -> Generator[Connection, None, None]:
    """
    Get a connection inside a transaction.

    Commits when the block exits normally, rolls back and re-raises otherwise.

    Example:
        with get_db() as conn:
            result = conn.execute(query)
    """
    engine = engine or get_engine()

    logger.debug("Opening database transaction")
    conn = engine.connect()
    trans = conn.begin()
    try:
        yield conn
        trans.commit()
        logger.debug("Database transaction committed")
    except Exception as e:
        logger.error("Database transaction error, rolling back", error=str(e), error_type=type(e).__name__)
        trans.rollback()
        raise
    finally:
        conn.close()


def check_database_health(engine: Optional[Engine] = None) -> dict:
    """
    Check database health status.

    Returns:
        dict: Health status with latency information
    """
    try:
        start = time.perf_counter()
        with get_db(engine) as conn:
            conn.execute(text("SELECT 1"))
        latency_ms = (time.perf_counter() - start) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(latency_ms, 2),
        }
    except Exception as e:
        return {
            "status": "unhealthy",
            "error": str(e),
        }
