"""
PolicyRecord Store for CLEP Finder

Normalizes raw institution records into canonical Institution objects.

Two historical shapes are accepted:
- flat: human-readable labels ("School Name", "DI Code", ...), with three
  sibling fields per exam: "<Exam>", "<Exam>_credit_awarded",
  "<Exam>_class_equivalent"
- nested: snake_case fields (school_name, di_code, ...) with exams grouped
  under clep_exams[<Exam>] = {minimum_score, credits_awarded, course_equivalent}

Malformed values never raise: they normalize to "absent" (None) or the
field default, and every raw record yields exactly one Institution.
"""

import logging
import math
import re
from decimal import Decimal
from typing import Any, Iterable, List, Mapping, Optional, Union

from clepfinder.domain.catalog import EXAM_CATALOG
from clepfinder.domain.models import ExamPolicy, Institution

logger = logging.getLogger(__name__)

Number = Union[int, float]

_LEADING_FLOAT = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")

CREDITS_SUFFIX = "_credit_awarded"
CLASS_SUFFIX = "_class_equivalent"


# =============================================================================
# Value parsing
# =============================================================================

def parse_leading_float(text: str) -> Optional[float]:
    """Parse the numeric prefix of a string ("50 (min)" -> 50.0)."""
    match = _LEADING_FLOAT.match(text)
    if not match:
        return None
    try:
        value = float(match.group(1))
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def parse_leading_int(text: str) -> Optional[int]:
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else None


def _as_number(value: Any) -> Optional[float]:
    """Coerce a raw scalar to a finite float, or None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        value = float(value)
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    if isinstance(value, str):
        # "50/63" and escaped "50\/63" mean a range: keep the minimum
        first = value.replace("\\", "").split("/")[0]
        return parse_leading_float(first)
    return None


def _tidy(number: float) -> Number:
    """Return integral floats as int so 4.0 credits serializes as 4."""
    return int(number) if float(number).is_integer() else number


def normalize_positive(value: Any) -> Optional[Number]:
    """
    Normalize a score/credit value to a strictly positive number.

    None, "", 0, "0", negatives, NaN and non-numeric text are absent.
    """
    number = _as_number(value)
    if number is None or number <= 0:
        return None
    return _tidy(number)


def normalize_score(value: Any) -> Optional[int]:
    """Normalize a minimum score; fractional scores round up to the next integer."""
    number = normalize_positive(value)
    if number is None:
        return None
    return int(math.ceil(number))


def normalize_credits(value: Any) -> Optional[Number]:
    return normalize_positive(value)


def normalize_course_equivalent(value: Any) -> Optional[str]:
    """Free-text course equivalent; 0 and "0" mean no equivalent."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        number = float(value)
        if not math.isfinite(number) or number == 0:
            return None
        return str(_tidy(number))
    if isinstance(value, str):
        text = value.strip()
        if text in ("", "0"):
            return None
        return text
    return None


def parse_int(value: Any, default: int = 0) -> int:
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, (int, float, Decimal)):
        number = float(value)
        return int(number) if math.isfinite(number) else default
    if isinstance(value, str):
        parsed = parse_leading_int(value)
        return parsed if parsed is not None else default
    return default


def parse_float(value: Any, default: float = 0.0) -> float:
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, (int, float, Decimal)):
        number = float(value)
        return number if math.isfinite(number) else default
    if isinstance(value, str):
        parsed = parse_leading_float(value)
        return parsed if parsed is not None else default
    return default


def parse_flag(value: Any) -> bool:
    """Booleans are stored as 1/0 in the raw data."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value == 1
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes")
    return False


def parse_text(value: Any) -> str:
    if value is None or isinstance(value, bool):
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (int, float, Decimal)):
        return str(value)
    return ""


# =============================================================================
# Record normalization
# =============================================================================

def is_nested_record(raw: Mapping[str, Any]) -> bool:
    """Nested records use snake_case identity fields and a clep_exams map."""
    return "school_name" in raw or "clep_exams" in raw


def build_policy(
    exam_name: str,
    score: Any,
    credits: Any,
    course_equivalent: Any,
) -> ExamPolicy:
    return ExamPolicy(
        exam_name=exam_name,
        minimum_score=normalize_score(score),
        credits_awarded=normalize_credits(credits),
        course_equivalent=normalize_course_equivalent(course_equivalent),
    )


def _nested_policies(raw: Mapping[str, Any]) -> List[ExamPolicy]:
    exams = raw.get("clep_exams")
    if not isinstance(exams, Mapping):
        exams = {}

    policies = []
    for exam_name in EXAM_CATALOG:
        exam = exams.get(exam_name)
        if not isinstance(exam, Mapping):
            policies.append(ExamPolicy(exam_name=exam_name))
            continue
        policies.append(build_policy(
            exam_name,
            exam.get("minimum_score"),
            exam.get("credits_awarded"),
            exam.get("course_equivalent"),
        ))
    return policies


def _flat_policies(raw: Mapping[str, Any]) -> List[ExamPolicy]:
    return [
        build_policy(
            exam_name,
            raw.get(exam_name),
            raw.get(f"{exam_name}{CREDITS_SUFFIX}"),
            raw.get(f"{exam_name}{CLASS_SUFFIX}"),
        )
        for exam_name in EXAM_CATALOG
    ]


def normalize_record(raw: Any, record_id: int) -> Institution:
    """
    Transform one raw record (either shape) into an Institution.

    Args:
        raw: Raw record; anything that is not a mapping yields an
            Institution with empty fields and no accepted exams
        record_id: Surrogate id to assign

    Returns:
        Institution with exactly one policy per catalog exam, in catalog order
    """
    if not isinstance(raw, Mapping):
        logger.warning(f"Record {record_id} is not a mapping, loading as empty institution")
        raw = {}

    if is_nested_record(raw):
        return Institution(
            id=record_id,
            name=parse_text(raw.get("school_name")),
            city=parse_text(raw.get("city")),
            state=parse_text(raw.get("state")),
            zip=parse_text(raw.get("zip")),
            di_code=parse_int(raw.get("di_code")),
            enrollment=parse_int(raw.get("enrollment")),
            max_credits=parse_int(raw.get("max_credits")),
            transcription_fee=parse_float(raw.get("transcription_fee")),
            score_validity_years=parse_int(raw.get("score_validity_years")),
            can_use_for_failed_courses=parse_flag(raw.get("can_use_for_failed_courses")),
            can_enrolled_students_use_clep=parse_flag(raw.get("can_enrolled_students_use_clep")),
            url=parse_text(raw.get("url")),
            msea_org_id=parse_text(raw.get("msea_org_id")),
            notes=parse_text(raw.get("notes")),
            policies=_nested_policies(raw),
        )

    return Institution(
        id=record_id,
        name=parse_text(raw.get("School Name")),
        city=parse_text(raw.get("City")),
        state=parse_text(raw.get("State")),
        zip=parse_text(raw.get("Zip")),
        di_code=parse_int(raw.get("DI Code")),
        enrollment=parse_int(raw.get("Enrollment")),
        max_credits=parse_int(raw.get("Max Credits")),
        transcription_fee=parse_float(raw.get("Transcription Fee")),
        score_validity_years=parse_int(raw.get("Score Validity (years)")),
        can_use_for_failed_courses=parse_flag(raw.get("Can Use For Failed Courses")),
        can_enrolled_students_use_clep=parse_flag(raw.get("Can Enrolled Students Use CLEP")),
        url=parse_text(raw.get("url")),
        msea_org_id=parse_text(raw.get("MSEA Org ID")),
        notes=parse_text(raw.get("notes")),
        policies=_flat_policies(raw),
    )


def extract_records(payload: Any) -> List[Any]:
    """
    Pull the record list out of a raw payload.

    Accepts a list of records, a mapping with a "schools" list,
    or a single record.
    """
    if isinstance(payload, list):
        return payload
    if isinstance(payload, Mapping) and isinstance(payload.get("schools"), list):
        return payload["schools"]
    if payload is None:
        return []
    return [payload]


def normalize_records(records: Iterable[Any], start_id: int = 1) -> List[Institution]:
    """Normalize records in order, assigning sequential ids."""
    return [
        normalize_record(raw, record_id)
        for record_id, raw in enumerate(records, start=start_id)
    ]


def load_institutions(payload: Any) -> List[Institution]:
    """Normalize a whole raw payload (list, {"schools": [...]}, or one record)."""
    records = extract_records(payload)
    institutions = normalize_records(records)
    logger.info(f"Normalized {len(institutions)} institutions from {len(records)} raw records")
    return institutions
