"""
Unit tests for the filter engine.

Covers the acceptance scenarios for score, credit and exam criteria,
the zero-data boundary, monotonicity and sort orders.
"""

import pytest

from clepfinder.domain.filtering import (
    FilterCriteria,
    collation_key,
    filter_institutions,
    find_policy,
    institutions_accepting,
    search_institutions,
    sort_institutions,
)
from clepfinder.domain.models import SortOrder, UserExamScore


def names(institutions):
    return [i.name for i in institutions]


class TestExamScenarios:
    """Two institutions: A takes Biology 50 + Chemistry 55, B only Chemistry 50."""

    def test_biology_only_returns_a(self, institution_a, institution_b):
        result = filter_institutions(
            [institution_a, institution_b],
            FilterCriteria(exam_names=["Biology"]),
        )
        assert result == [institution_a]

    def test_user_score_for_selected_exam(self, institution_a, institution_b):
        criteria = FilterCriteria(
            exam_names=["Biology", "Chemistry"],
            user_exam_scores=[UserExamScore(exam="Biology", score=52)],
        )
        result = filter_institutions([institution_a, institution_b], criteria)

        assert result == [institution_a]

    def test_user_score_below_minimum(self, institution_a):
        criteria = FilterCriteria(
            exam_names=["Biology"],
            user_exam_scores=[UserExamScore(exam="Biology", score=45)],
        )
        assert filter_institutions([institution_a], criteria) == []

    def test_blank_scores_skip_the_check(self, institution_a, institution_b):
        criteria = FilterCriteria(
            exam_names=["Biology", "Chemistry"],
            user_exam_scores=[UserExamScore(exam="Biology", score=None)],
        )
        result = filter_institutions([institution_a, institution_b], criteria)

        assert result == [institution_a, institution_b]

    def test_scores_outside_selection_ignored(self, institution_b):
        criteria = FilterCriteria(
            exam_names=["Chemistry"],
            user_exam_scores=[UserExamScore(exam="Biology", score=80)],
        )
        assert filter_institutions([institution_b], criteria) == [institution_b]

    def test_scores_without_exam_names_impose_nothing(self, sample_institutions):
        criteria = FilterCriteria(user_exam_scores=[UserExamScore(exam="Biology", score=20)])
        assert filter_institutions(sample_institutions, criteria) == sample_institutions

    def test_empty_exam_names_treated_as_absent(self, sample_institutions):
        criteria = FilterCriteria(exam_names=[])
        assert filter_institutions(sample_institutions, criteria) == sample_institutions


class TestZeroDataBoundary:

    def test_kept_by_high_min_score(self, institution_without_data):
        result = filter_institutions([institution_without_data], FilterCriteria(min_score=80))
        assert result == [institution_without_data]

    def test_dropped_by_exam_filter(self, institution_without_data):
        criteria = FilterCriteria(min_score=80, exam_names=["Biology"])
        assert filter_institutions([institution_without_data], criteria) == []

    def test_kept_by_min_credits(self, institution_without_data):
        result = filter_institutions([institution_without_data], FilterCriteria(min_credits=6))
        assert result == [institution_without_data]


class TestThresholds:

    def test_min_score_is_a_floor_on_average(self, sample_institutions):
        result = filter_institutions(sample_institutions, FilterCriteria(min_score=55))
        # A averages 53, B 50, D 65; the zero-data institution always passes
        assert names(result) == ["Community College of Nowhere", "École Normale"]

    @pytest.mark.parametrize("low,high", [(50, 60), (20, 80), (53, 54)])
    def test_min_score_monotonic(self, sample_institutions, low, high):
        with_data = [i for i in sample_institutions if i.exams_accepted > 0]
        low_result = filter_institutions(with_data, FilterCriteria(min_score=low))
        high_result = filter_institutions(with_data, FilterCriteria(min_score=high))

        assert len(high_result) <= len(low_result)
        assert set(i.id for i in high_result) <= set(i.id for i in low_result)

    def test_min_credits_any_accepted_policy(self, sample_institutions):
        result = filter_institutions(sample_institutions, FilterCriteria(min_credits=4))
        # A: Biology 4; B lists no credits; D: Calculus 6
        assert names(result) == [
            "Alpha University",
            "Community College of Nowhere",
            "École Normale",
        ]

    def test_min_exams_accepted(self, sample_institutions):
        result = filter_institutions(sample_institutions, FilterCriteria(min_exams_accepted=2))
        assert names(result) == ["Alpha University", "École Normale"]

    def test_state(self, sample_institutions):
        result = filter_institutions(sample_institutions, FilterCriteria(state="CA"))
        assert names(result) == ["Alpha University", "Community College of Nowhere"]

    def test_no_criteria_keeps_order(self, sample_institutions):
        assert filter_institutions(sample_institutions) == sample_institutions

    def test_input_not_mutated(self, sample_institutions):
        original = list(sample_institutions)
        filter_institutions(sample_institutions, FilterCriteria(state="TX"))
        assert sample_institutions == original


class TestSorting:

    def test_name_collation_ignores_accents(self, sample_institutions):
        result = sort_institutions(sample_institutions, SortOrder.NAME)
        assert names(result) == [
            "Alpha University",
            "Beta College",
            "Community College of Nowhere",
            "École Normale",
        ]

    def test_collation_key(self):
        assert collation_key("École") == collation_key("ecole")

    def test_exams_accepted_descending_stable(self, sample_institutions):
        result = sort_institutions(sample_institutions, "exams_accepted")
        # A and D tie at 2 and keep their input order
        assert names(result) == [
            "Alpha University",
            "École Normale",
            "Beta College",
            "Community College of Nowhere",
        ]

    def test_avg_score_no_data_last(self, sample_institutions):
        result = sort_institutions(sample_institutions, SortOrder.AVG_SCORE)
        assert names(result) == [
            "Beta College",
            "Alpha University",
            "École Normale",
            "Community College of Nowhere",
        ]

    def test_unknown_order_rejected(self, sample_institutions):
        with pytest.raises(ValueError):
            sort_institutions(sample_institutions, "random")


class TestLookups:

    def test_search_matches_name_city_state(self, sample_institutions):
        assert names(search_institutions(sample_institutions, "alpha")) == ["Alpha University"]
        assert names(search_institutions(sample_institutions, "austin")) == ["Beta College"]
        assert names(search_institutions(sample_institutions, "ecole")) == ["École Normale"]
        assert len(search_institutions(sample_institutions, "ca")) >= 2

    def test_blank_query_returns_all(self, sample_institutions):
        assert search_institutions(sample_institutions, "  ") == sample_institutions

    def test_find_policy_any_spelling(self, institution_a):
        policy = find_policy(institution_a, "  biology ")
        assert policy.minimum_score == 50
        assert find_policy(institution_a, "Underwater Basket Weaving") is None

    def test_institutions_accepting(self, sample_institutions):
        result = institutions_accepting(sample_institutions, "calculus")
        assert names(result) == ["École Normale"]
