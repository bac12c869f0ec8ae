"""
Dependency Injection Providers for CLEP Finder

FastAPI dependencies for database sessions and the SQLModel-backed
institution store.
"""

from typing import Annotated, AsyncGenerator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from clepfinder.infrastructure.db.database import get_session
from clepfinder.infrastructure.db.institution_store import SQLModelInstitutionStore


SessionDep = Annotated[AsyncSession, Depends(get_session)]


async def get_institution_store(
    session: SessionDep,
) -> AsyncGenerator[SQLModelInstitutionStore, None]:
    """
    Backing store for the request.

    Usage:
        @router.get("/overrides")
        async def list_overrides(store: InstitutionStoreDep):
            ...
    """
    yield SQLModelInstitutionStore(session)


InstitutionStoreDep = Annotated[SQLModelInstitutionStore, Depends(get_institution_store)]
