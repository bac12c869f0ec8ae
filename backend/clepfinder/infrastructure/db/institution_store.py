"""
SQLModel Institution Store for CLEP Finder

The single backing-store implementation. University rows are turned
back into nested raw records and run through the same normalizer as
file imports, so database and JSON loads can never disagree.
"""

import logging
from typing import Any, Dict, List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from clepfinder.domain.models import Institution, OverrideRecord
from clepfinder.domain.normalization import normalize_records
from clepfinder.infrastructure.db.models import InstitutionUpdate, University
from clepfinder.infrastructure.db.repositories import (
    InstitutionUpdateRepository,
    UniversityRepository,
)
from clepfinder.infrastructure.exceptions import DatabaseError


logger = logging.getLogger(__name__)


def university_to_record(university: University) -> Dict[str, Any]:
    """Nested-shape raw record for a university row."""
    return {
        "school_name": university.name,
        "city": university.city,
        "state": university.state,
        "zip": university.zip,
        "di_code": university.di_code,
        "enrollment": university.enrollment,
        "url": university.url,
        "max_credits": university.max_credits,
        "transcription_fee": university.transcription_fee,
        "score_validity_years": university.score_validity_years,
        "can_use_for_failed_courses": university.can_use_for_failed_courses,
        "can_enrolled_students_use_clep": university.can_enrolled_students_use_clep,
        "msea_org_id": university.msea_org_id,
        "notes": university.notes,
        "clep_exams": {
            policy.exam_name: {
                "minimum_score": policy.minimum_score,
                "credits_awarded": policy.credits_awarded,
                "course_equivalent": policy.course_equivalent,
            }
            for policy in university.policies
        },
    }


def row_to_override(row: InstitutionUpdate) -> OverrideRecord:
    return OverrideRecord(
        institution_key=row.institution_di_code,
        exam_name=row.exam_name,
        min_score=row.min_score or "",
        credits=row.credits or "",
        course_code=row.course_code or "",
        last_updated=row.last_updated or "",
        category=row.category or "",
    )


class SQLModelInstitutionStore:
    """
    InstitutionStore over the universities, clep_exam_policies and
    institution_updates tables.

    Every SQLAlchemy failure is re-raised as DatabaseError.
    """

    def __init__(self, session: AsyncSession):
        self._session = session
        self._universities = UniversityRepository(session)
        self._updates = InstitutionUpdateRepository(session)

    async def list_institutions(self) -> List[Institution]:
        try:
            universities = await self._universities.list_with_policies()
        except SQLAlchemyError as e:
            logger.error(f"Failed to load institutions: {e}")
            raise DatabaseError(
                "Failed to load institutions",
                operation="list_institutions",
                table="universities",
                original_error=e,
            )

        return normalize_records(university_to_record(u) for u in universities)

    async def list_policy_overrides(self, institution_key: int) -> List[OverrideRecord]:
        try:
            rows = await self._updates.list_for_institution(institution_key)
        except SQLAlchemyError as e:
            logger.error(f"Failed to load overrides for {institution_key}: {e}")
            raise DatabaseError(
                "Failed to load overrides",
                operation="list_policy_overrides",
                table="institution_updates",
                original_error=e,
            )

        return [row_to_override(row) for row in rows]

    async def list_all_policy_overrides(self) -> List[OverrideRecord]:
        try:
            rows = await self._updates.list_all()
        except SQLAlchemyError as e:
            logger.error(f"Failed to load overrides: {e}")
            raise DatabaseError(
                "Failed to load overrides",
                operation="list_all_policy_overrides",
                table="institution_updates",
                original_error=e,
            )

        return [row_to_override(row) for row in rows]

    async def upsert_policy_override(self, record: OverrideRecord) -> bool:
        """
        Write one override inside a savepoint.

        A failure rolls back only this override; the request session
        stays usable for sibling updates.
        """
        try:
            async with self._session.begin_nested():
                await self._updates.upsert(
                    di_code=record.institution_key,
                    exam_name=record.exam_name,
                    min_score=record.min_score or None,
                    credits=record.credits or None,
                    course_code=record.course_code or None,
                    last_updated=record.last_updated or None,
                    category=record.category or None,
                )
        except SQLAlchemyError as e:
            logger.error(
                f"Failed to upsert override {record.institution_key}/{record.exam_name}: {e}"
            )
            raise DatabaseError(
                "Failed to save override",
                operation="upsert_policy_override",
                table="institution_updates",
                original_error=e,
            )
        return True

    async def delete_overrides(self, institution_key: int) -> int:
        try:
            deleted = await self._updates.delete_for_institution(institution_key)
        except SQLAlchemyError as e:
            logger.error(f"Failed to delete overrides for {institution_key}: {e}")
            raise DatabaseError(
                "Failed to delete overrides",
                operation="delete_overrides",
                table="institution_updates",
                original_error=e,
            )

        logger.info(f"Deleted {deleted} overrides for institution {institution_key}")
        return deleted
