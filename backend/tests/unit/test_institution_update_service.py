"""
Unit tests for InstitutionUpdateService.

Uses the in-memory FakeInstitutionStore from conftest.
"""

import pytest

from clepfinder.domain.models import OverrideRecord
from clepfinder.domain.overrides import ExamRow, UpdateAction
from clepfinder.infrastructure.exceptions import ValidationError
from clepfinder.infrastructure.services.institution_update_service import (
    BatchUpdateResult,
    InstitutionUpdateService,
)


@pytest.fixture
def service(fake_store, frozen_today):
    return InstitutionUpdateService(fake_store, today=frozen_today)


class TestUpsertOverride:

    @pytest.mark.asyncio
    async def test_partial_update_preserves_other_fields(self, service, fake_store):
        fake_store.overrides[(1001, "Biology")] = OverrideRecord(
            institution_key=1001,
            exam_name="Biology",
            min_score="50",
            course_code="BIO101",
            last_updated="2023-09-01",
        )

        assert await service.upsert_override(1001, "Biology", {"credits": "4"}) is True

        stored = fake_store.overrides[(1001, "Biology")]
        assert stored.min_score == "50"
        assert stored.course_code == "BIO101"
        assert stored.credits == "4"
        assert stored.last_updated == "2024-03-15"

    @pytest.mark.asyncio
    async def test_creates_missing_override(self, service, fake_store):
        assert await service.upsert_override(1001, "chemistry", {"minScore": "55"}) is True

        stored = fake_store.overrides[(1001, "Chemistry")]
        assert stored.min_score == "55"
        assert stored.credits == ""
        assert stored.course_code == ""
        assert stored.last_updated == "2024-03-15"

    @pytest.mark.asyncio
    async def test_unknown_exam_rejected_before_store(self, service, fake_store):
        with pytest.raises(ValidationError):
            await service.upsert_override(1001, "Underwater Basket Weaving", {"credits": "3"})
        assert fake_store.upserts == []

    @pytest.mark.asyncio
    async def test_unknown_field_rejected(self, service, fake_store):
        with pytest.raises(ValidationError) as exc_info:
            await service.upsert_override(1001, "Biology", {"color": "blue"})
        assert exc_info.value.details["field"] == "color"
        assert fake_store.upserts == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("fields", [
        {"min_score": "-5"},
        {"credits": "abc"},
        {"minScore": "0"},
        {"min_score": "55", "credits": "-1"},
    ])
    async def test_non_positive_numbers_rejected_before_store(self, service, fake_store, fields):
        with pytest.raises(ValidationError) as exc_info:
            await service.upsert_override(1001, "Biology", fields)
        assert exc_info.value.details["exam"] == "Biology"
        assert fake_store.upserts == []

    @pytest.mark.asyncio
    async def test_blank_number_clears_field(self, service, fake_store):
        await service.upsert_override(1001, "Biology", {"min_score": "55", "credits": "4"})

        assert await service.upsert_override(1001, "Biology", {"credits": " "}) is True
        stored = fake_store.overrides[(1001, "Biology")]
        assert stored.credits == ""
        assert stored.min_score == "55"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("key", [0, -1, None])
    async def test_missing_institution_key(self, service, key):
        with pytest.raises(ValidationError):
            await service.upsert_override(key, "Biology", {"credits": "3"})

    @pytest.mark.asyncio
    async def test_store_failure_returns_false(self, service, fake_store):
        fake_store.fail_writes = True
        assert await service.upsert_override(1001, "Biology", {"credits": "4"}) is False

    @pytest.mark.asyncio
    async def test_read_failure_during_upsert_returns_false(self, service, fake_store):
        fake_store.fail_reads = True
        assert await service.upsert_override(1001, "Biology", {"credits": "4"}) is False


class TestReadingOverrides:

    @pytest.mark.asyncio
    async def test_store_failure_gives_empty_list(self, service, fake_store):
        fake_store.fail_reads = True
        assert await service.get_overrides(1001) == []

    @pytest.mark.asyncio
    async def test_get_single_override(self, service):
        await service.upsert_override(1001, "Biology", {"minScore": "55"})

        record = await service.get_override(1001, "BIOLOGY")
        assert record.min_score == "55"
        assert await service.get_override(1001, "Chemistry") is None

    @pytest.mark.asyncio
    async def test_initialize_defaults_idempotent(self, service, fake_store):
        await service.initialize_defaults(1001)
        once = await service.get_overrides(1001)
        await service.initialize_defaults(1001)
        twice = await service.get_overrides(1001)

        assert once == twice
        assert fake_store.upserts == []

    @pytest.mark.asyncio
    async def test_initialize_defaults_never_overwrites(self, service, fake_store):
        await service.upsert_override(1001, "Biology", {"minScore": "55"})
        await service.initialize_defaults(1001)

        assert fake_store.overrides[(1001, "Biology")].min_score == "55"
        assert len(fake_store.upserts) == 1


class TestBatchUpdates:

    @pytest.mark.asyncio
    async def test_all_succeed(self, service):
        result = await service.apply_actions(1001, [
            UpdateAction("Biology", "minScore", "55"),
            UpdateAction("Biology", "credits", "4"),
        ])

        assert result.status == "success"
        assert result.summary == "Updated 2, failed 0"

    @pytest.mark.asyncio
    async def test_partial_success_keeps_going(self, service, fake_store):
        fake_store.fail_exams = {"Chemistry"}

        result = await service.apply_actions(1001, [
            UpdateAction("Biology", "minScore", "55"),
            UpdateAction("Chemistry", "minScore", "60"),
            UpdateAction("Calculus", "courseCode", "MATH 150"),
        ])

        assert result.updated == 2
        assert result.failed == 1
        assert result.status == "partial"
        assert result.errors[0].exam == "Chemistry"
        assert result.errors[0].kind == "store"
        assert (1001, "Calculus") in fake_store.overrides

    @pytest.mark.asyncio
    async def test_validation_failures_are_rejected(self, service):
        result = await service.apply_actions(1001, [
            UpdateAction("Not An Exam", "minScore", "55"),
            UpdateAction("Biology", "color", "blue"),
            UpdateAction("Biology", "minScore", "-3"),
        ])

        assert result.rejected == 3
        assert result.status == "rejected"
        assert all(e.kind == "validation" for e in result.errors)
        assert result.summary == "Updated 0, failed 0, rejected 3"

    @pytest.mark.asyncio
    async def test_store_failures_only(self, service, fake_store):
        fake_store.fail_writes = True
        result = await service.apply_actions(1001, [UpdateAction("Biology", "credits", "4")])

        assert result.status == "failed"

    def test_empty_batch_is_success(self):
        assert BatchUpdateResult().status == "success"

    def test_mixed_failures_are_partial(self):
        assert BatchUpdateResult(failed=1, rejected=1).status == "partial"

    @pytest.mark.asyncio
    async def test_save_changes_applies_diff(self, service, fake_store):
        original = [ExamRow("Biology", min_score="50", credits="4"), ExamRow("Chemistry")]
        current = [ExamRow("Biology", min_score="50", credits="5"), ExamRow("Chemistry")]

        result = await service.save_changes(1001, original, current)

        assert result.updated == 1
        stored = fake_store.overrides[(1001, "Biology")]
        assert stored.credits == "5"
        assert stored.min_score == ""

    @pytest.mark.asyncio
    async def test_save_without_changes(self, service, fake_store):
        rows = [ExamRow("Biology", min_score="50")]
        result = await service.save_changes(1001, rows, rows)

        assert result.total == 0
        assert fake_store.upserts == []

    @pytest.mark.asyncio
    async def test_clear_overrides(self, service, fake_store):
        await service.upsert_override(1001, "Biology", {"minScore": "55"})
        await service.upsert_override(1002, "Biology", {"minScore": "55"})

        assert await service.clear_overrides(1001) == 1
        assert list(fake_store.overrides) == [(1002, "Biology")]
