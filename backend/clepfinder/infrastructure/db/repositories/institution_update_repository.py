"""
Institution Update Repository for CLEP Finder

Data access for the institution_updates (override) table.
"""

from typing import List, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from clepfinder.infrastructure.db.models.institution_update import InstitutionUpdate
from clepfinder.infrastructure.db.repositories.base_repository import BaseRepository


class InstitutionUpdateRepository(BaseRepository[InstitutionUpdate]):
    """Repository for per-institution exam overrides."""

    def __init__(self, session: AsyncSession):
        super().__init__(InstitutionUpdate, session)

    async def list_for_institution(self, di_code: int) -> List[InstitutionUpdate]:
        stmt = (
            select(InstitutionUpdate)
            .where(InstitutionUpdate.institution_di_code == di_code)
            .order_by(InstitutionUpdate.exam_name)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_all(self) -> List[InstitutionUpdate]:
        stmt = select(InstitutionUpdate).order_by(
            InstitutionUpdate.institution_di_code,
            InstitutionUpdate.exam_name,
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_for_exam(self, di_code: int, exam_name: str) -> Optional[InstitutionUpdate]:
        stmt = select(InstitutionUpdate).where(
            InstitutionUpdate.institution_di_code == di_code,
            InstitutionUpdate.exam_name == exam_name,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def upsert(
        self,
        di_code: int,
        exam_name: str,
        min_score: Optional[str],
        credits: Optional[str],
        course_code: Optional[str],
        last_updated: Optional[str],
        category: Optional[str],
    ) -> InstitutionUpdate:
        """Insert the override for (di_code, exam_name) or overwrite its values."""
        row = await self.get_for_exam(di_code, exam_name)
        if row is None:
            row = InstitutionUpdate(institution_di_code=di_code, exam_name=exam_name)

        row.min_score = min_score
        row.credits = credits
        row.course_code = course_code
        row.last_updated = last_updated
        row.category = category

        return await self.add(row)

    async def delete_for_institution(self, di_code: int) -> int:
        """Delete every override for an institution. Returns the row count."""
        stmt = delete(InstitutionUpdate).where(
            InstitutionUpdate.institution_di_code == di_code
        )
        result = await self.session.execute(stmt)
        await self.session.flush()
        return result.rowcount or 0
