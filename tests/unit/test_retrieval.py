"""
Unit Tests - Parameterized Retrieval and Advanced Analytics
"""
import pytest

from src.analysis.advanced import category_success_rollup, rank_within_category
from src.analysis.aggregations import success_rate_by_category
from src.analysis.errors import InvalidParameterError
from src.analysis.retrieval import top_projects


class TestTopProjects:
    """Tests for top_projects"""

    def test_small_table(self, small_engine):
        """Test the best-funded row of a category"""
        with small_engine.begin() as conn:
            rows = top_projects(conn, "A", 1)

        assert [(r.name, r.pledged) for r in rows] == [("x", 100.0)]

    def test_ties_ordered_by_id(self, cleaned_engine):
        """Test equal pledges come back in id order"""
        with cleaned_engine.begin() as conn:
            rows = top_projects(conn, "Games", 2)

        assert [(r.name, r.pledged) for r in rows] == [
            ("Gamma Game", 60000.0),
            ("Delta Game", 60000.0),
        ]

    def test_limit_larger_than_category(self, cleaned_engine):
        """Test every row of the category is returned, highest first"""
        with cleaned_engine.begin() as conn:
            rows = top_projects(conn, "Games", 10)

        assert [r.name for r in rows] == ["Gamma Game", "Delta Game", "Epsilon Game"]

    def test_zero_limit(self, cleaned_engine):
        """Test a zero limit yields no rows"""
        with cleaned_engine.begin() as conn:
            assert top_projects(conn, "Games", 0) == []

    @pytest.mark.parametrize("category", ["Art", "games", ""])
    def test_unmatched_category(self, cleaned_engine, category):
        """Test unknown or differently-cased categories yield no rows"""
        with cleaned_engine.begin() as conn:
            assert top_projects(conn, category, 5) == []

    @pytest.mark.parametrize("limit", [-1, 2.5, "3", None, True])
    def test_invalid_limit(self, cleaned_engine, limit):
        """Test non-integer or negative limits are rejected"""
        with cleaned_engine.begin() as conn:
            with pytest.raises(InvalidParameterError):
                top_projects(conn, "Games", limit)

    @pytest.mark.parametrize("category", [None, 42, ["Games"]])
    def test_invalid_category(self, cleaned_engine, category):
        """Test non-string categories are rejected"""
        with cleaned_engine.begin() as conn:
            with pytest.raises(InvalidParameterError):
                top_projects(conn, category, 3)

    def test_invalid_parameter_is_value_error(self, cleaned_engine):
        """Test callers catching ValueError also see rejections"""
        with cleaned_engine.begin() as conn:
            with pytest.raises(ValueError):
                top_projects(conn, "Games", -5)


class TestRankWithinCategory:
    """Tests for the window-function ranking"""

    def test_ranks(self, cleaned_engine):
        """Test rank per category with shared ranks and gaps"""
        with cleaned_engine.begin() as conn:
            rows = rank_within_category(conn)

        assert [(r.main_category, r.id, r.rank_in_category) for r in rows] == [
            ("Film & Video", 1, 1),
            ("Film & Video", 2, 2),
            ("Games", 3, 1),
            ("Games", 4, 1),
            ("Games", 5, 3),
            ("Music", 6, 1),
            ("Music", 11, 2),
            ("Music", 12, 3),
        ]

    def test_every_project_ranked(self, cleaned_engine, clean_ids):
        """Test ranking covers every row exactly once"""
        with cleaned_engine.begin() as conn:
            rows = rank_within_category(conn)

        assert sorted(r.id for r in rows) == clean_ids
        assert min(r.rank_in_category for r in rows) == 1


class TestCategorySuccessRollup:
    """Tests for the CTE-staged success rollup"""

    def test_rollup_counts(self, cleaned_engine):
        """Test per-category totals and derived rate"""
        with cleaned_engine.begin() as conn:
            rows = category_success_rollup(conn)

        assert [(r.main_category, r.total, r.success_count) for r in rows] == [
            ("Film & Video", 2, 1),
            ("Games", 3, 2),
            ("Music", 3, 1),
        ]

    def test_matches_direct_query(self, cleaned_engine):
        """Test the staged rate equals the single-query rate"""
        with cleaned_engine.begin() as conn:
            staged = {r.main_category: r.success_rate for r in category_success_rollup(conn)}
            direct = {r.main_category: r.success_rate for r in success_rate_by_category(conn)}

        assert staged == direct

    def test_small_table(self, small_engine):
        """Test A is 50% and B is 100%"""
        with small_engine.begin() as conn:
            rows = category_success_rollup(conn)

        assert {r.main_category: r.success_rate for r in rows} == {"A": 50.0, "B": 100.0}
