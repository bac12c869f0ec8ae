"""
Unit tests for repositories and the SQLModel institution store.

AsyncSession is mocked; no database is required.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from sqlalchemy.exc import OperationalError

from clepfinder.domain.catalog import EXAM_CATALOG
from clepfinder.domain.models import OverrideRecord
from clepfinder.infrastructure.db.institution_store import (
    SQLModelInstitutionStore,
    row_to_override,
    university_to_record,
)
from clepfinder.infrastructure.db.models import ClepExamPolicy, InstitutionUpdate, University
from clepfinder.infrastructure.db.repositories import (
    InstitutionUpdateRepository,
    UniversityRepository,
)
from clepfinder.infrastructure.exceptions import DatabaseError


def make_session(scalar=None, rowcount=0):
    session = MagicMock()
    result = MagicMock()
    result.scalar_one_or_none.return_value = scalar
    result.rowcount = rowcount
    session.execute = AsyncMock(return_value=result)
    session.flush = AsyncMock()
    return session


def make_university(di_code=1001, **policies):
    university = University(name="Alpha University", city="Stanford", state="CA", di_code=di_code)
    university.policies = [
        ClepExamPolicy(exam_name=exam, minimum_score=score, credits_awarded=credits)
        for exam, (score, credits) in policies.items()
    ]
    return university


class TestUniversityRepository:

    @pytest.mark.asyncio
    async def test_save_new_institution(self, institution_a):
        session = make_session(scalar=None)
        repo = UniversityRepository(session)

        university = await repo.save_institution(institution_a)

        assert university.di_code == 1001
        assert university.name == "Alpha University"
        assert university.zip == "94305"
        # Exams without any data are not stored
        assert sorted(p.exam_name for p in university.policies) == ["Biology", "Chemistry"]
        session.add.assert_called_once_with(university)
        session.flush.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_save_updates_existing_rows_in_place(self, institution_a):
        existing = make_university(Biology=(45.0, 3.0), Calculus=(60.0, 4.0))
        biology_row = existing.policies[0]
        session = make_session(scalar=existing)

        university = await UniversityRepository(session).save_institution(institution_a)

        assert university is existing
        by_exam = {p.exam_name: p for p in university.policies}
        assert by_exam["Biology"] is biology_row
        assert by_exam["Biology"].minimum_score == 50
        assert "Calculus" not in by_exam


class TestInstitutionUpdateRepository:

    @pytest.mark.asyncio
    async def test_upsert_creates_row(self):
        session = make_session(scalar=None)
        repo = InstitutionUpdateRepository(session)

        row = await repo.upsert(1001, "Biology", "55", None, "BIO 101", "2024-03-15", None)

        assert row.institution_di_code == 1001
        assert row.min_score == "55"
        assert row.course_code == "BIO 101"
        session.add.assert_called_once_with(row)

    @pytest.mark.asyncio
    async def test_upsert_overwrites_existing(self):
        existing = InstitutionUpdate(institution_di_code=1001, exam_name="Biology", min_score="50")
        session = make_session(scalar=existing)

        row = await InstitutionUpdateRepository(session).upsert(
            1001, "Biology", "60", "4", None, "2024-03-15", "Science"
        )

        assert row is existing
        assert row.min_score == "60"
        assert row.category == "Science"

    @pytest.mark.asyncio
    async def test_delete_returns_rowcount(self):
        session = make_session(rowcount=3)
        assert await InstitutionUpdateRepository(session).delete_for_institution(1001) == 3


class TestSQLModelInstitutionStore:

    def test_university_to_record_round_trips(self):
        record = university_to_record(make_university(Biology=(50.0, 4.0)))

        assert record["school_name"] == "Alpha University"
        assert record["clep_exams"]["Biology"]["minimum_score"] == 50.0

    def test_row_to_override_nulls_become_empty(self):
        row = InstitutionUpdate(institution_di_code=1001, exam_name="Biology", credits="4")
        record = row_to_override(row)

        assert record == OverrideRecord(institution_key=1001, exam_name="Biology", credits="4")

    @pytest.mark.asyncio
    async def test_list_institutions_normalizes(self):
        store = SQLModelInstitutionStore(make_session())
        store._universities.list_with_policies = AsyncMock(return_value=[
            make_university(1001, Biology=(50.0, 4.0)),
            make_university(1002),
        ])

        institutions = await store.list_institutions()

        assert [i.id for i in institutions] == [1, 2]
        assert [p.exam_name for p in institutions[0].policies] == list(EXAM_CATALOG)
        assert institutions[0].policy_for("Biology").minimum_score == 50
        assert institutions[0].policy_for("Biology").credits_awarded == 4
        assert institutions[1].exams_accepted == 0

    @pytest.mark.asyncio
    async def test_read_failure_wrapped(self):
        store = SQLModelInstitutionStore(make_session())
        store._updates.list_for_institution = AsyncMock(
            side_effect=OperationalError("SELECT", {}, Exception("connection lost"))
        )

        with pytest.raises(DatabaseError) as exc_info:
            await store.list_policy_overrides(1001)
        assert exc_info.value.details["table"] == "institution_updates"

    @pytest.mark.asyncio
    async def test_list_all_overrides(self):
        store = SQLModelInstitutionStore(make_session())
        store._updates.list_all = AsyncMock(return_value=[
            InstitutionUpdate(institution_di_code=1001, exam_name="Biology", min_score="80"),
            InstitutionUpdate(institution_di_code=1002, exam_name="Chemistry", credits="3"),
        ])

        records = await store.list_all_policy_overrides()

        assert [(r.institution_key, r.exam_name) for r in records] == [
            (1001, "Biology"),
            (1002, "Chemistry"),
        ]
        assert records[0].min_score == "80"

    @pytest.mark.asyncio
    async def test_list_all_overrides_failure_wrapped(self):
        store = SQLModelInstitutionStore(make_session())
        store._updates.list_all = AsyncMock(
            side_effect=OperationalError("SELECT", {}, Exception("connection lost"))
        )

        with pytest.raises(DatabaseError) as exc_info:
            await store.list_all_policy_overrides()
        assert exc_info.value.details["operation"] == "list_all_policy_overrides"

    @pytest.mark.asyncio
    async def test_upsert_in_savepoint(self):
        session = make_session()
        store = SQLModelInstitutionStore(session)
        store._updates.upsert = AsyncMock()

        record = OverrideRecord(institution_key=1001, exam_name="Biology", min_score="55")
        assert await store.upsert_policy_override(record) is True

        session.begin_nested.assert_called_once()
        kwargs = store._updates.upsert.await_args.kwargs
        assert kwargs["min_score"] == "55"
        assert kwargs["credits"] is None

    @pytest.mark.asyncio
    async def test_upsert_failure_wrapped(self):
        store = SQLModelInstitutionStore(make_session())
        store._updates.upsert = AsyncMock(
            side_effect=OperationalError("INSERT", {}, Exception("deadlock"))
        )

        with pytest.raises(DatabaseError):
            await store.upsert_policy_override(
                OverrideRecord(institution_key=1001, exam_name="Biology")
            )
