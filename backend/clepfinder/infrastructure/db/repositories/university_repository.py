"""
University Repository for CLEP Finder

Reads bulk institution data with policies eagerly loaded, and writes
normalized institutions for the seed script.
"""

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from clepfinder.domain.models import Institution
from clepfinder.infrastructure.db.models.university import ClepExamPolicy, University
from clepfinder.infrastructure.db.repositories.base_repository import BaseRepository


class UniversityRepository(BaseRepository[University]):
    """Repository for universities and their CLEP policies."""

    def __init__(self, session: AsyncSession):
        super().__init__(University, session)

    async def list_with_policies(self) -> List[University]:
        """All universities ordered by DI code, policies loaded."""
        stmt = (
            select(University)
            .options(selectinload(University.policies))
            .order_by(University.di_code)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_by_di_code(self, di_code: int) -> Optional[University]:
        stmt = (
            select(University)
            .where(University.di_code == di_code)
            .options(selectinload(University.policies))
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def save_institution(self, institution: Institution) -> University:
        """
        Insert or replace a university and its accepted-or-described policies.

        Existing rows are matched by DI code; their policies are replaced.
        """
        university = await self.get_by_di_code(institution.di_code)
        if university is None:
            university = University(di_code=institution.di_code)

        university.name = institution.name
        university.city = institution.city
        university.state = institution.state
        university.zip = institution.zip or None
        university.enrollment = institution.enrollment
        university.url = institution.url or None
        university.max_credits = institution.max_credits
        university.transcription_fee = institution.transcription_fee
        university.score_validity_years = institution.score_validity_years
        university.can_use_for_failed_courses = institution.can_use_for_failed_courses
        university.can_enrolled_students_use_clep = institution.can_enrolled_students_use_clep
        university.msea_org_id = institution.msea_org_id or None
        university.notes = institution.notes or None

        # Update rows in place so the (university, exam) constraint holds mid-flush
        existing = {p.exam_name: p for p in university.policies}
        policies = []
        for policy in institution.policies:
            # Exams with no data at all are synthesized on read
            if (
                policy.minimum_score is None
                and policy.credits_awarded is None
                and policy.course_equivalent is None
            ):
                continue
            row = existing.get(policy.exam_name) or ClepExamPolicy(exam_name=policy.exam_name)
            row.minimum_score = policy.minimum_score
            row.credits_awarded = policy.credits_awarded
            row.course_equivalent = policy.course_equivalent
            policies.append(row)
        university.policies = policies

        return await self.add(university)
