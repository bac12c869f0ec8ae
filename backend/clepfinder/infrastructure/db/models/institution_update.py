"""
InstitutionUpdate SQLModel for CLEP Finder

Institution-supplied overrides, keyed by (DI code, exam name).
Values are kept as entered; NULL means the field was never set.
"""

from typing import Optional

from sqlalchemy import Column, Integer, String, UniqueConstraint
from sqlmodel import Field

from clepfinder.infrastructure.db.models.base import TimestampMixin, UUIDMixin


class InstitutionUpdate(UUIDMixin, TimestampMixin, table=True):
    """institution_updates table."""

    __tablename__ = "institution_updates"
    __table_args__ = (
        UniqueConstraint(
            "institution_di_code", "exam_name", name="uq_update_institution_exam"
        ),
    )

    institution_di_code: int = Field(
        ...,
        sa_column=Column(Integer, nullable=False, index=True),
        description="DI code of the institution that made the edit"
    )
    exam_name: str = Field(
        ...,
        sa_column=Column(String(100), nullable=False),
    )
    min_score: Optional[str] = Field(default=None, max_length=20)
    credits: Optional[str] = Field(default=None, max_length=20)
    course_code: Optional[str] = Field(default=None, max_length=255)
    last_updated: Optional[str] = Field(
        default=None,
        max_length=20,
        description="ISO date of the last edit"
    )
    category: Optional[str] = Field(default=None, max_length=100)
