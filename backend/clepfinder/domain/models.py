"""
Domain Models for CLEP Finder

Pure Python dataclasses with no framework dependencies.
These models define the canonical institution/exam-policy entities
produced by normalization and consumed by the filter engine.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Union

from clepfinder.domain.aggregation import average_minimum_score, count_accepted


Number = Union[int, float]


@dataclass(frozen=True)
class ExamPolicy:
    """
    One exam's acceptance terms at one institution.

    A policy is accepted only when minimum_score is present and positive;
    credits and course equivalent never make an exam accepted on their own.
    """
    exam_name: str
    minimum_score: Optional[int] = None
    credits_awarded: Optional[Number] = None
    course_equivalent: Optional[str] = None

    @property
    def is_accepted(self) -> bool:
        return self.minimum_score is not None and self.minimum_score > 0

    def to_dict(self) -> dict:
        return {
            "exam_name": self.exam_name,
            "minimum_score": self.minimum_score,
            "credits_awarded": self.credits_awarded,
            "course_equivalent": self.course_equivalent,
        }


@dataclass
class Institution:
    """
    One college/university with a fully populated policy list.

    exams_accepted and avg_score are derived from the current policies
    on every access.
    """
    id: int
    name: str = ""
    city: str = ""
    state: str = ""
    zip: str = ""
    di_code: int = 0
    enrollment: int = 0
    max_credits: int = 0
    transcription_fee: float = 0.0
    score_validity_years: int = 0
    can_use_for_failed_courses: bool = False
    can_enrolled_students_use_clep: bool = False
    url: str = ""
    msea_org_id: str = ""
    notes: str = ""
    policies: List[ExamPolicy] = field(default_factory=list)

    @property
    def exams_accepted(self) -> int:
        return count_accepted(self.policies)

    @property
    def avg_score(self) -> int:
        return average_minimum_score(self.policies)

    def policy_for(self, exam_name: str) -> Optional[ExamPolicy]:
        """Get the policy for an exam, or None if the exam is not in the list."""
        for policy in self.policies:
            if policy.exam_name == exam_name:
                return policy
        return None

    def to_dict(self, include_policies: bool = True) -> dict:
        """Convert to API response format."""
        data = {
            "id": self.id,
            "name": self.name,
            "city": self.city,
            "state": self.state,
            "zip": self.zip,
            "di_code": self.di_code,
            "enrollment": self.enrollment,
            "max_credits": self.max_credits,
            "transcription_fee": self.transcription_fee,
            "score_validity_years": self.score_validity_years,
            "can_use_for_failed_courses": self.can_use_for_failed_courses,
            "can_enrolled_students_use_clep": self.can_enrolled_students_use_clep,
            "url": self.url,
            "msea_org_id": self.msea_org_id,
            "notes": self.notes,
            "exams_accepted": self.exams_accepted,
            "avg_score": self.avg_score,
        }
        if include_policies:
            data["policies"] = [p.to_dict() for p in self.policies]
        return data


@dataclass(frozen=True)
class UserExamScore:
    """A score the student entered for one exam (None when left blank)."""
    exam: str
    score: Optional[Number] = None


@dataclass
class OverrideRecord:
    """
    Institution-supplied edit to one exam policy.

    Values are kept as entered (strings); an empty string means the
    field was never specified.
    """
    institution_key: int
    exam_name: str
    min_score: str = ""
    credits: str = ""
    course_code: str = ""
    last_updated: str = ""
    category: str = ""

    def to_dict(self) -> dict:
        return {
            "institution_key": self.institution_key,
            "exam_name": self.exam_name,
            "min_score": self.min_score,
            "credits": self.credits,
            "course_code": self.course_code,
            "last_updated": self.last_updated,
            "category": self.category,
        }


class VoteDirection(str, Enum):
    """Feedback vote on an institution's exam policy."""
    UP = "up"
    DOWN = "down"


class SortOrder(str, Enum):
    """Supported orderings for institution listings."""
    NAME = "name"
    EXAMS_ACCEPTED = "exams_accepted"
    AVG_SCORE = "avg_score"
