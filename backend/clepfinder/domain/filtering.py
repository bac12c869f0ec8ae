"""
Filter Engine for CLEP Finder

Composable predicates over a collection of institutions, plus an explicit
sort step. Filtering never reorders and never mutates its input.

Institutions with no accepted exams are treated as "insufficient data":
score and credit thresholds never exclude them, but an exam filter does.
"""

import unicodedata
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Sequence, Union

from clepfinder.domain.catalog import resolve_exam_name
from clepfinder.domain.models import ExamPolicy, Institution, SortOrder, UserExamScore


Number = Union[int, float]
Predicate = Callable[[Institution], bool]


@dataclass
class FilterCriteria:
    """
    Optional filter criteria; a None (or empty) criterion imposes nothing.

    Attributes:
        state: Exact match on institution state
        min_score: Minimum average score threshold
        min_credits: Minimum credits for at least one accepted exam
        exam_names: Institution must accept at least one of these
        user_exam_scores: Student scores, checked against exam_names
        min_exams_accepted: Minimum number of accepted exams
    """
    state: Optional[str] = None
    min_score: Optional[Number] = None
    min_credits: Optional[Number] = None
    exam_names: Optional[Sequence[str]] = None
    user_exam_scores: List[UserExamScore] = field(default_factory=list)
    min_exams_accepted: Optional[int] = None


# =============================================================================
# Predicates
# =============================================================================

def matches_state(institution: Institution, state: str) -> bool:
    return institution.state == state


def meets_min_score(institution: Institution, min_score: Number) -> bool:
    if institution.exams_accepted == 0:
        return True
    return institution.avg_score >= min_score


def meets_min_credits(institution: Institution, min_credits: Number) -> bool:
    if institution.exams_accepted == 0:
        return True
    return any(
        p.is_accepted
        and p.credits_awarded is not None
        and p.credits_awarded >= min_credits
        for p in institution.policies
    )


def accepts_any(institution: Institution, exam_names: Iterable[str]) -> bool:
    for exam_name in exam_names:
        policy = institution.policy_for(exam_name)
        if policy is not None and policy.is_accepted:
            return True
    return False


def satisfies_user_scores(
    institution: Institution,
    exam_names: Iterable[str],
    user_exam_scores: Iterable[UserExamScore],
) -> bool:
    """
    Every entered score for a selected exam must clear that exam's minimum.

    Scores left blank and scores for exams outside exam_names are ignored.
    """
    selected = set(exam_names)
    for entry in user_exam_scores:
        if entry.score is None or entry.exam not in selected:
            continue
        policy = institution.policy_for(entry.exam)
        if policy is None or not policy.is_accepted:
            return False
        if entry.score < policy.minimum_score:
            return False
    return True


def build_predicates(criteria: FilterCriteria) -> List[Predicate]:
    """Turn criteria into a list of predicates; absent criteria add none."""
    predicates: List[Predicate] = []

    if criteria.state:
        predicates.append(lambda i: matches_state(i, criteria.state))

    if criteria.min_score is not None:
        predicates.append(lambda i: meets_min_score(i, criteria.min_score))

    if criteria.min_credits is not None:
        predicates.append(lambda i: meets_min_credits(i, criteria.min_credits))

    if criteria.exam_names:
        exam_names = list(criteria.exam_names)
        predicates.append(lambda i: accepts_any(i, exam_names))
        if any(entry.score is not None for entry in criteria.user_exam_scores):
            predicates.append(
                lambda i: satisfies_user_scores(i, exam_names, criteria.user_exam_scores)
            )

    if criteria.min_exams_accepted is not None:
        predicates.append(lambda i: i.exams_accepted >= criteria.min_exams_accepted)

    return predicates


def filter_institutions(
    institutions: Sequence[Institution],
    criteria: Optional[FilterCriteria] = None,
) -> List[Institution]:
    """
    Apply every criterion; input order is preserved.

    Args:
        institutions: Institutions to filter (not mutated)
        criteria: Filter criteria, None for no restriction

    Returns:
        New list with the institutions that pass every predicate
    """
    predicates = build_predicates(criteria or FilterCriteria())
    return [i for i in institutions if all(p(i) for p in predicates)]


# =============================================================================
# Sorting
# =============================================================================

def collation_key(text: str) -> str:
    """Accent- and case-insensitive key ("École" sorts with "ecole")."""
    decomposed = unicodedata.normalize("NFKD", text or "")
    stripped = "".join(c for c in decomposed if not unicodedata.combining(c))
    return stripped.casefold()


def sort_institutions(
    institutions: Sequence[Institution],
    order: Union[SortOrder, str] = SortOrder.NAME,
) -> List[Institution]:
    """
    Return institutions sorted by the requested order.

    - name: ascending, accent- and case-insensitive
    - exams_accepted: descending
    - avg_score: ascending, institutions with no data last

    All orders are stable for equal keys.
    """
    order = SortOrder(order)

    if order == SortOrder.EXAMS_ACCEPTED:
        return sorted(institutions, key=lambda i: i.exams_accepted, reverse=True)

    if order == SortOrder.AVG_SCORE:
        return sorted(
            institutions,
            key=lambda i: (i.exams_accepted == 0, i.avg_score),
        )

    return sorted(institutions, key=lambda i: collation_key(i.name))


# =============================================================================
# Lookup helpers
# =============================================================================

def search_institutions(
    institutions: Sequence[Institution],
    query: Optional[str],
) -> List[Institution]:
    """Case-insensitive substring match on name, city or state."""
    if not query or not query.strip():
        return list(institutions)

    needle = collation_key(query.strip())
    return [
        i for i in institutions
        if needle in collation_key(i.name)
        or needle in collation_key(i.city)
        or needle in collation_key(i.state)
    ]


def find_policy(institution: Institution, exam_name: str) -> Optional[ExamPolicy]:
    """Policy for an exam by any spelling of its name, or None."""
    canonical = resolve_exam_name(exam_name)
    if canonical is None:
        return None
    return institution.policy_for(canonical)


def institutions_accepting(
    institutions: Sequence[Institution],
    exam_name: str,
) -> List[Institution]:
    canonical = resolve_exam_name(exam_name)
    if canonical is None:
        return []
    return [i for i in institutions if accepts_any(i, [canonical])]


def find_by_di_code(
    institutions: Sequence[Institution],
    di_code: int,
) -> Optional[Institution]:
    for institution in institutions:
        if institution.di_code == di_code:
            return institution
    return None


def find_by_id(
    institutions: Sequence[Institution],
    institution_id: int,
) -> Optional[Institution]:
    for institution in institutions:
        if institution.id == institution_id:
            return institution
    return None
