"""
Test configuration and fixtures for CLEP Finder.

Provides shared fixtures for unit and integration tests: an in-memory
institution store, institution factories, sample raw records and a
TestClient wired to fakes through dependency overrides.
"""

import dataclasses
from datetime import date
from typing import Dict, List, Optional, Tuple
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from clepfinder.domain.catalog import EXAM_CATALOG
from clepfinder.domain.feedback import FeedbackLedgerRegistry
from clepfinder.domain.interfaces import Coordinates
from clepfinder.domain.models import ExamPolicy, Institution, OverrideRecord
from clepfinder.infrastructure.cache import InstitutionCache
from clepfinder.infrastructure.exceptions import DatabaseError


# =============================================================================
# Fakes
# =============================================================================

class FakeInstitutionStore:
    """In-memory InstitutionStore with switchable failures."""

    def __init__(self, institutions: Optional[List[Institution]] = None):
        self.institutions = list(institutions or [])
        self.overrides: Dict[Tuple[int, str], OverrideRecord] = {}
        self.fail_reads = False
        self.fail_writes = False
        self.fail_exams = set()
        self.list_calls = 0
        self.upserts: List[OverrideRecord] = []

    async def list_institutions(self) -> List[Institution]:
        self.list_calls += 1
        return list(self.institutions)

    async def list_policy_overrides(self, institution_key: int) -> List[OverrideRecord]:
        if self.fail_reads:
            raise DatabaseError("read failed", operation="list_policy_overrides")
        return [
            dataclasses.replace(record)
            for (key, _), record in sorted(self.overrides.items())
            if key == institution_key
        ]

    async def list_all_policy_overrides(self) -> List[OverrideRecord]:
        if self.fail_reads:
            raise DatabaseError("read failed", operation="list_all_policy_overrides")
        return [dataclasses.replace(record) for _, record in sorted(self.overrides.items())]

    async def upsert_policy_override(self, record: OverrideRecord) -> bool:
        if self.fail_writes or record.exam_name in self.fail_exams:
            raise DatabaseError("write failed", operation="upsert_policy_override")
        self.overrides[(record.institution_key, record.exam_name)] = dataclasses.replace(record)
        self.upserts.append(record)
        return True

    async def delete_overrides(self, institution_key: int) -> int:
        keys = [k for k in self.overrides if k[0] == institution_key]
        for key in keys:
            del self.overrides[key]
        return len(keys)


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def build_institution(
    id: int = 1,
    name: str = "Test University",
    state: str = "CA",
    di_code: int = 1000,
    exams: Optional[dict] = None,
    **kwargs,
) -> Institution:
    """
    Institution with one policy per catalog exam.

    exams maps exam name -> (minimum_score, credits_awarded, course_equivalent),
    trailing values optional.
    """
    exams = exams or {}
    policies = []
    for exam_name in EXAM_CATALOG:
        terms = exams.get(exam_name)
        if terms is None:
            policies.append(ExamPolicy(exam_name=exam_name))
            continue
        score, credits, course = (tuple(terms) + (None, None, None))[:3]
        policies.append(ExamPolicy(exam_name, score, credits, course))
    return Institution(id=id, name=name, state=state, di_code=di_code, policies=policies, **kwargs)


# =============================================================================
# Domain Fixtures
# =============================================================================

@pytest.fixture
def make_institution():
    """Factory for institutions with a full policy list."""
    return build_institution


@pytest.fixture
def institution_a():
    """Accepts Biology at 50 (4 credits) and Chemistry at 55."""
    return build_institution(
        id=1,
        name="Alpha University",
        city="Stanford",
        state="CA",
        zip="94305",
        di_code=1001,
        max_credits=30,
        exams={
            "Biology": (50, 4, "BIO 101"),
            "Chemistry": (55, 3),
        },
    )


@pytest.fixture
def institution_b():
    """Accepts only Chemistry at 50, no credits listed."""
    return build_institution(
        id=2,
        name="Beta College",
        city="Austin",
        state="TX",
        zip="73301",
        di_code=1002,
        exams={"Chemistry": (50,)},
    )


@pytest.fixture
def institution_without_data():
    """No accepted exams at all."""
    return build_institution(
        id=3,
        name="Community College of Nowhere",
        city="Fresno",
        state="CA",
        di_code=1003,
    )


@pytest.fixture
def institution_d():
    return build_institution(
        id=4,
        name="École Normale",
        city="New York",
        state="NY",
        zip="10001",
        di_code=1004,
        exams={
            "Biology": (70, 3),
            "Calculus": (60, 6, "MATH 150"),
        },
    )


@pytest.fixture
def sample_institutions(institution_a, institution_b, institution_without_data, institution_d):
    return [institution_a, institution_b, institution_without_data, institution_d]


# =============================================================================
# Raw Record Fixtures
# =============================================================================

@pytest.fixture
def raw_flat_record():
    """Record in the human-readable label shape."""
    return {
        "School Name": "Flat State University",
        "City": "Springfield",
        "State": "IL",
        "DI Code": "1234",
        "Zip": 62701,
        "Enrollment": "15000 students",
        "Max Credits": 30,
        "Transcription Fee": "25.50",
        "Score Validity (years)": "5",
        "Can Use For Failed Courses": 1,
        "Can Enrolled Students Use CLEP": 0,
        "url": "https://flat.example.edu",
        "MSEA Org ID": "ORG-1",
        "Biology": "50",
        "Biology_credit_awarded": "4",
        "Biology_class_equivalent": "BIO 101",
        "Chemistry": "50/63",
        "Chemistry_credit_awarded": "3",
        "Chemistry_class_equivalent": "0",
        "Calculus": "0",
        "Calculus_credit_awarded": "4",
        "College Algebra": "52.5",
        "Humanities": "50\\/60",
        "Spanish Language Level I": -5,
    }


@pytest.fixture
def raw_nested_record():
    """Record in the snake_case shape with exams under clep_exams."""
    return {
        "school_name": "Nested College",
        "city": "Portland",
        "state": "OR",
        "di_code": 4321,
        "zip": "97201",
        "enrollment": 8000,
        "max_credits": "45",
        "transcription_fee": 0,
        "score_validity_years": 3,
        "can_use_for_failed_courses": True,
        "can_enrolled_students_use_clep": 1,
        "clep_exams": {
            "Biology": {"minimum_score": 55, "credits_awarded": 3, "course_equivalent": "BIO 110"},
            "Calculus": {"minimum_score": "0", "credits_awarded": 4, "course_equivalent": None},
            "Not A Real Exam": {"minimum_score": 50},
        },
    }


# =============================================================================
# Mock Fixtures
# =============================================================================

@pytest.fixture
def fake_store(sample_institutions):
    return FakeInstitutionStore(sample_institutions)


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def frozen_today():
    return lambda: date(2024, 3, 15)


@pytest.fixture
def mock_language_model():
    """Mock for the LanguageModel collaborator."""
    mock = MagicMock()
    mock.extract_update_intent = AsyncMock(return_value=[])
    mock.answer_question = AsyncMock(return_value="Here is what I found.")
    return mock


@pytest.fixture
def mock_geocoder():
    mock = MagicMock()
    mock.geocode = AsyncMock(return_value=Coordinates(lat=37.43, lng=-122.17))
    return mock


# =============================================================================
# App Fixtures
# =============================================================================

@pytest.fixture
def app(fake_store, mock_geocoder):
    """FastAPI application with the backing store and collaborators faked."""
    from clepfinder.api import dependencies
    from clepfinder.infrastructure.db.dependencies import get_institution_store
    from clepfinder.main import app

    cache = InstitutionCache(ttl_seconds=300)
    registry = FeedbackLedgerRegistry()

    app.dependency_overrides[get_institution_store] = lambda: fake_store
    app.dependency_overrides[dependencies.get_institution_cache] = lambda: cache
    app.dependency_overrides[dependencies.get_feedback_registry] = lambda: registry
    app.dependency_overrides[dependencies.get_language_model] = lambda: None
    app.dependency_overrides[dependencies.get_geocoder] = lambda: mock_geocoder

    yield app

    app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    """Get synchronous test client."""
    return TestClient(app)


@pytest.fixture
def institution_headers():
    return {"Authorization": "Bearer institution:1001:registrar@alpha.edu"}
