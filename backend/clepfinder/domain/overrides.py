"""
Override Merge for CLEP Finder

Institution-supplied edits are stored apart from the bulk-loaded policies
and merged at read time:
- apply_overrides: effective Institution with override values on top
- build_exam_rows: editable string rows for the data-management table
- diff_rows: field-level update actions between two versions of the rows
"""

import dataclasses
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence

from clepfinder.domain.aggregation import round_half_up
from clepfinder.domain.models import ExamPolicy, Institution, OverrideRecord
from clepfinder.domain.normalization import (
    normalize_course_equivalent,
    normalize_credits,
    normalize_score,
)


NEVER_UPDATED = "Never"
DEFAULT_CATEGORY = "General"

# Update field name -> OverrideRecord attribute
OVERRIDE_FIELDS: Dict[str, str] = {
    "minScore": "min_score",
    "credits": "credits",
    "courseCode": "course_code",
}

FIELD_LABELS: Dict[str, str] = {
    "minScore": "Minimum Score",
    "credits": "Credits",
    "courseCode": "Course Code",
}

NUMERIC_FIELDS = frozenset({"minScore", "credits"})


def resolve_field(name: Optional[str]) -> Optional[str]:
    """Accept either the update name (minScore) or attribute name (min_score)."""
    if not name:
        return None
    if name in OVERRIDE_FIELDS:
        return name
    for field_name, attribute in OVERRIDE_FIELDS.items():
        if attribute == name:
            return field_name
    return None


@dataclass(frozen=True)
class UpdateAction:
    """Set one field of one exam's override to a value."""
    exam: str
    field: str
    value: str

    @property
    def label(self) -> str:
        return FIELD_LABELS.get(self.field, self.field)

    def to_dict(self) -> dict:
        return {"exam": self.exam, "field": self.field, "value": self.value}


def format_value(value: Any) -> str:
    """Render a policy value for an editable cell ("" when absent)."""
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _index_overrides(overrides: Iterable[OverrideRecord]) -> Dict[str, OverrideRecord]:
    return {o.exam_name.casefold(): o for o in overrides}


# =============================================================================
# Effective policies
# =============================================================================

def merge_policy(policy: ExamPolicy, override: Optional[OverrideRecord]) -> ExamPolicy:
    """
    Lay one override over one bulk policy.

    Override fields that are empty or normalize to absent keep the bulk value.
    """
    if override is None:
        return policy

    score = normalize_score(override.min_score)
    credits = normalize_credits(override.credits)
    course = normalize_course_equivalent(override.course_code)

    return ExamPolicy(
        exam_name=policy.exam_name,
        minimum_score=score if score is not None else policy.minimum_score,
        credits_awarded=credits if credits is not None else policy.credits_awarded,
        course_equivalent=course if course is not None else policy.course_equivalent,
    )


def apply_overrides(
    institution: Institution,
    overrides: Iterable[OverrideRecord],
) -> Institution:
    """
    Build the effective institution for a set of overrides.

    The input institution is left untouched; exams_accepted and avg_score
    of the result reflect the merged policies.
    """
    by_exam = _index_overrides(overrides)
    if not by_exam:
        return institution

    policies = [
        merge_policy(policy, by_exam.get(policy.exam_name.casefold()))
        for policy in institution.policies
    ]
    return dataclasses.replace(institution, policies=policies)


# =============================================================================
# Editable rows
# =============================================================================

@dataclass
class ExamRow:
    exam_name: str
    min_score: str = ""
    credits: str = ""
    course_code: str = ""
    last_updated: str = NEVER_UPDATED
    category: str = DEFAULT_CATEGORY

    def to_dict(self) -> dict:
        return dataclasses.asdict(self)


def build_exam_rows(
    institution: Optional[Institution],
    overrides: Sequence[OverrideRecord],
) -> List[ExamRow]:
    """
    Editable rows for an institution, override values first.

    Without a bulk institution the rows come from the overrides alone.
    """
    if institution is None:
        return [
            ExamRow(
                exam_name=o.exam_name,
                min_score=o.min_score,
                credits=o.credits,
                course_code=o.course_code,
                last_updated=o.last_updated or NEVER_UPDATED,
                category=o.category or DEFAULT_CATEGORY,
            )
            for o in overrides
        ]

    by_exam = _index_overrides(overrides)
    rows = []
    for policy in institution.policies:
        stored = by_exam.get(policy.exam_name.casefold())
        rows.append(ExamRow(
            exam_name=policy.exam_name,
            min_score=(stored and stored.min_score) or format_value(policy.minimum_score),
            credits=(stored and stored.credits) or format_value(policy.credits_awarded),
            course_code=(stored and stored.course_code) or format_value(policy.course_equivalent),
            last_updated=(stored and stored.last_updated) or NEVER_UPDATED,
            category=(stored and stored.category) or DEFAULT_CATEGORY,
        ))
    return rows


@dataclass(frozen=True)
class RowStatistics:
    total_exams: int
    completed_exams: int
    completion_percentage: int
    average_min_score: int
    last_updated: str

    def to_dict(self) -> dict:
        return dataclasses.asdict(self)


def row_statistics(rows: Sequence[ExamRow]) -> RowStatistics:
    """Completion and recency figures for the institution dashboard."""
    total = len(rows)
    completed = [r for r in rows if r.min_score.strip()]
    percentage = int(round_half_up(len(completed) / total * 100)) if total else 0

    scores = [s for s in (normalize_score(r.min_score) for r in completed) if s is not None]
    average = int(round_half_up(sum(scores) / len(scores))) if scores else 0

    # ISO dates compare correctly as strings
    dates = [r.last_updated for r in rows if r.last_updated and r.last_updated != NEVER_UPDATED]
    last_updated = max(dates) if dates else NEVER_UPDATED

    return RowStatistics(
        total_exams=total,
        completed_exams=len(completed),
        completion_percentage=percentage,
        average_min_score=average,
        last_updated=last_updated,
    )


def diff_rows(
    original: Sequence[ExamRow],
    current: Sequence[ExamRow],
) -> List[UpdateAction]:
    """
    Field-level changes between two versions of the rows.

    Rows are matched by exam name; rows with no original are skipped.
    """
    originals = {row.exam_name.casefold(): row for row in original}
    actions: List[UpdateAction] = []

    for row in current:
        before = originals.get(row.exam_name.casefold())
        if before is None:
            continue
        for field_name, attribute in OVERRIDE_FIELDS.items():
            old = getattr(before, attribute).strip()
            new = getattr(row, attribute).strip()
            if old != new:
                actions.append(UpdateAction(exam=row.exam_name, field=field_name, value=new))

    return actions
