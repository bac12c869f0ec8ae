"""
SQLModel ORM Models for CLEP Finder

Import models here to register them with SQLModel.metadata
(Alembic autogenerate and create_tables rely on it).
"""

from clepfinder.infrastructure.db.models.base import TimestampMixin, UUIDMixin
from clepfinder.infrastructure.db.models.university import (
    ClepExamPolicy,
    University,
    UniversityBase,
)
from clepfinder.infrastructure.db.models.institution_update import InstitutionUpdate


__all__ = [
    "TimestampMixin",
    "UUIDMixin",
    "University",
    "UniversityBase",
    "ClepExamPolicy",
    "InstitutionUpdate",
]
