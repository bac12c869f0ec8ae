"""
Aggregation Engine for CLEP Finder

Derived statistics over exam policies:
- per institution: exams accepted, average minimum score
- per exam: acceptance counts and score/credit ranges across institutions
- per collection: digest numbers for the assistant context
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable, List, Optional, Sequence

if TYPE_CHECKING:
    from clepfinder.domain.models import ExamPolicy, Institution


def round_half_up(value: float, digits: int = 0) -> float:
    """Round .5 away from zero for positive values (Python's round() is banker's)."""
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def accepted_policies(policies: Iterable["ExamPolicy"]) -> List["ExamPolicy"]:
    return [p for p in policies if p.is_accepted]


def count_accepted(policies: Iterable["ExamPolicy"]) -> int:
    """Number of policies with a present, positive minimum score."""
    return len(accepted_policies(policies))


def average_minimum_score(policies: Iterable["ExamPolicy"]) -> int:
    """
    Rounded mean minimum score over accepted policies.

    Returns:
        The mean rounded half-up to an integer, or 0 when nothing is accepted
    """
    scores = [p.minimum_score for p in accepted_policies(policies)]
    if not scores:
        return 0
    return int(round_half_up(sum(scores) / len(scores)))


@dataclass(frozen=True)
class ExamStatistics:
    """Acceptance statistics for one exam across a collection."""
    exam_name: str
    universities_accepting: int
    average_minimum_score: int
    average_credits_awarded: float
    min_score: int
    max_score: int

    def to_dict(self) -> dict:
        return {
            "exam_name": self.exam_name,
            "universities_accepting": self.universities_accepting,
            "average_minimum_score": self.average_minimum_score,
            "average_credits_awarded": self.average_credits_awarded,
            "min_score": self.min_score,
            "max_score": self.max_score,
        }


def exam_statistics(
    institutions: Sequence["Institution"],
    exam_name: str
) -> Optional[ExamStatistics]:
    """
    Summarize how institutions treat a single exam.

    Credits are averaged only over accepting institutions that list credits.

    Returns:
        ExamStatistics, or None if no institution accepts the exam
    """
    scores: List[int] = []
    credits: List[float] = []

    for institution in institutions:
        policy = institution.policy_for(exam_name)
        if policy is None or not policy.is_accepted:
            continue
        scores.append(policy.minimum_score)
        if policy.credits_awarded is not None:
            credits.append(policy.credits_awarded)

    if not scores:
        return None

    average_credits = (
        round_half_up(sum(credits) / len(credits), 1) if credits else 0.0
    )

    return ExamStatistics(
        exam_name=exam_name,
        universities_accepting=len(scores),
        average_minimum_score=int(round_half_up(sum(scores) / len(scores))),
        average_credits_awarded=average_credits,
        min_score=min(scores),
        max_score=max(scores),
    )


@dataclass(frozen=True)
class CollectionSummary:
    """Headline numbers for a set of institutions."""
    total_institutions: int
    average_exams_accepted: int
    average_minimum_score: int

    def to_dict(self) -> dict:
        return {
            "total_institutions": self.total_institutions,
            "average_exams_accepted": self.average_exams_accepted,
            "average_minimum_score": self.average_minimum_score,
        }


def collection_summary(institutions: Sequence["Institution"]) -> CollectionSummary:
    """
    Compute collection-wide averages.

    The score average only counts institutions that accept at least one exam.
    """
    total = len(institutions)
    if total == 0:
        return CollectionSummary(0, 0, 0)

    avg_exams = int(round_half_up(sum(i.exams_accepted for i in institutions) / total))
    scored = [i.avg_score for i in institutions if i.avg_score > 0]
    avg_score = int(round_half_up(sum(scored) / len(scored))) if scored else 0

    return CollectionSummary(
        total_institutions=total,
        average_exams_accepted=avg_exams,
        average_minimum_score=avg_score,
    )
