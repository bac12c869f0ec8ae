"""
Base Repository for CLEP Finder

Generic async repository with the operations every table needs.
Concrete repositories add table-specific queries on top.
"""

from typing import Generic, Type, TypeVar

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel


ModelType = TypeVar("ModelType", bound=SQLModel)


class BaseRepository(Generic[ModelType]):
    """
    Generic async repository bound to one SQLModel table.

    Args:
        model: The SQLModel class to operate on
        session: Async database session (owned by the caller)
    """

    def __init__(self, model: Type[ModelType], session: AsyncSession):
        self._model = model
        self._session = session

    @property
    def session(self) -> AsyncSession:
        return self._session

    async def add(self, db_obj: ModelType) -> ModelType:
        """Stage a new or modified row and flush it."""
        self._session.add(db_obj)
        await self._session.flush()
        return db_obj

    async def count(self) -> int:
        stmt = select(func.count()).select_from(self._model)
        result = await self._session.execute(stmt)
        return result.scalar_one()
