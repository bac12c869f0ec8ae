"""
Repository Layer for CLEP Finder

Exports all repository classes for dependency injection.
"""

from clepfinder.infrastructure.db.repositories.base_repository import (
    BaseRepository,
)
from clepfinder.infrastructure.db.repositories.university_repository import (
    UniversityRepository,
)
from clepfinder.infrastructure.db.repositories.institution_update_repository import (
    InstitutionUpdateRepository,
)


__all__ = [
    "BaseRepository",
    "UniversityRepository",
    "InstitutionUpdateRepository",
]
