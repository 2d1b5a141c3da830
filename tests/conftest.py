"""
Test Suite Configuration
"""
import pytest
from typing import Generator, List

from sqlalchemy import Engine, insert

from src.config import Settings
from src.database.connection import create_db_engine
from src.database.models import Base, Project
from src.transformation.cleaners import clean_projects


def _project(id, name, category, main_category, country, currency, goal, pledged, backers, state) -> dict:
    return {
        "id": id,
        "name": name,
        "category": category,
        "main_category": main_category,
        "country": country,
        "currency": currency,
        "goal": goal,
        "pledged": pledged,
        "backers": backers,
        "state": state,
    }


# Rows 7-10 violate the cleaning rules; the other eight survive cleaning.
SAMPLE_PROJECTS: List[dict] = [
    _project(1, "Alpha Film", "Documentary", "Film & Video", "US", "usd", 10000.0, 15000.0, 120, "successful"),
    _project(2, "Beta Film", "Shorts", "Film & Video", "GB", "gbp", 5000.0, 1000.0, 10, "failed"),
    _project(3, "Gamma Game", "Tabletop Games", "Games", "US", "USD", 20000.0, 60000.0, 800, "successful"),
    _project(4, "Delta Game", "Video Games", "Games", "US", "usd", 50000.0, 60000.0, 300, "successful"),
    _project(5, "Epsilon Game", "Video Games", "Games", "CA", "cad", 1500000.0, 20000.0, 40, "failed"),
    _project(6, "Zeta Music", "Rock", "Music", "GB", "GBP", 3000.0, 2500000.0, 9000, "successful"),
    _project(7, None, "Rock", "Music", "US", "usd", 1000.0, 50.0, 1, "failed"),
    _project(8, "Theta Art", "Painting", "Art", "US", "usd", 0.0, 100.0, 2, "failed"),
    _project(9, "Iota Art", "Painting", "Art", "US", "usd", -5.0, 0.0, 0, "failed"),
    _project(10, "Kappa Music", "Jazz", "Music", "US", "usd", None, 0.0, 0, "failed"),
    _project(11, "Lambda Music", "Jazz", "Music", "CA", "cad", 4000.0, 500.0, 5, "canceled"),
    _project(12, "Mu Music", "Jazz", "Music", "US", "usd", 2000.0, 300.0, 3, "failed"),
]

CLEAN_IDS = [1, 2, 3, 4, 5, 6, 11, 12]


def load_projects(engine: Engine, rows: List[dict]) -> None:
    with engine.begin() as conn:
        conn.execute(insert(Project), rows)


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """Create test settings"""
    return Settings(
        app_env="testing",
    )


@pytest.fixture
def empty_engine() -> Generator[Engine, None, None]:
    """In-memory database without any tables"""
    engine = create_db_engine("sqlite:///:memory:")
    yield engine
    engine.dispose()


@pytest.fixture
def schema_engine(empty_engine) -> Engine:
    """In-memory database with an empty projects table"""
    Base.metadata.create_all(empty_engine)
    return empty_engine


@pytest.fixture
def engine(schema_engine) -> Engine:
    """In-memory database seeded with raw sample campaigns"""
    load_projects(schema_engine, SAMPLE_PROJECTS)
    return schema_engine


@pytest.fixture
def cleaned_engine(engine) -> Engine:
    """Sample campaigns after the cleaning stage"""
    with engine.begin() as conn:
        clean_projects(conn)
    return engine


@pytest.fixture
def sample_projects() -> List[dict]:
    return [dict(row) for row in SAMPLE_PROJECTS]


@pytest.fixture
def clean_ids() -> List[int]:
    """Ids of the sample campaigns that survive cleaning"""
    return list(CLEAN_IDS)


@pytest.fixture
def small_engine(schema_engine) -> Engine:
    """Three campaigns over two categories"""
    rows = [
        _project(1, "x", "a1", "A", "US", "USD", 1.0, 100.0, 1, "successful"),
        _project(2, "y", "a2", "A", "US", "USD", 1.0, 50.0, 1, "failed"),
        _project(3, "z", "b1", "B", "US", "USD", 1.0, 10.0, 1, "successful"),
    ]
    load_projects(schema_engine, rows)
    return schema_engine


@pytest.fixture
def sqlite_url(tmp_path) -> str:
    """File-backed SQLite database seeded with the raw sample campaigns"""
    url = f"sqlite:///{(tmp_path / 'kickstarter.db').as_posix()}"
    file_engine = create_db_engine(url)
    Base.metadata.create_all(file_engine)
    load_projects(file_engine, SAMPLE_PROJECTS)
    file_engine.dispose()
    return url
