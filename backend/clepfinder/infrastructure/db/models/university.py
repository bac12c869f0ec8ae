"""
University SQLModels for CLEP Finder

Bulk-loaded institution records and their per-exam CLEP policies.
One University row per institution (unique DI code), one
ClepExamPolicy row per exam the raw data mentions.
"""

from typing import List, Optional, TYPE_CHECKING
from uuid import UUID

from sqlalchemy import Column, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

from clepfinder.infrastructure.db.models.base import TimestampMixin, UUIDMixin


class UniversityBase(SQLModel):
    """Descriptive institution fields, stored as normalized by the loader."""

    name: str = Field(default="", max_length=255, description="Institution name")
    city: str = Field(default="", max_length=100)
    state: str = Field(default="", max_length=50, index=True)
    di_code: int = Field(
        default=0,
        sa_column=Column(Integer, unique=True, index=True, nullable=False),
        description="College Board designated institution code"
    )
    zip: Optional[str] = Field(default=None, max_length=20)
    enrollment: int = Field(default=0)
    url: Optional[str] = Field(default=None, max_length=500)
    max_credits: int = Field(default=0)
    transcription_fee: float = Field(default=0.0)
    score_validity_years: int = Field(default=0)
    can_use_for_failed_courses: bool = Field(default=False)
    can_enrolled_students_use_clep: bool = Field(default=False)
    msea_org_id: Optional[str] = Field(default=None, max_length=50)
    notes: Optional[str] = Field(default=None, sa_column=Column(Text))


class University(UniversityBase, UUIDMixin, TimestampMixin, table=True):
    """universities table."""

    __tablename__ = "universities"

    policies: List["ClepExamPolicy"] = Relationship(
        back_populates="university",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"}
    )


class ClepExamPolicy(UUIDMixin, TimestampMixin, table=True):
    """
    clep_exam_policies table.

    Absent values are stored as NULL; zero never reaches this table.
    """

    __tablename__ = "clep_exam_policies"
    __table_args__ = (
        UniqueConstraint("university_id", "exam_name", name="uq_policy_university_exam"),
    )

    university_id: UUID = Field(
        ...,
        sa_column=Column(
            "university_id",
            ForeignKey("universities.id", ondelete="CASCADE"),
            nullable=False,
            index=True
        ),
        description="Owning university"
    )
    exam_name: str = Field(
        ...,
        sa_column=Column(String(100), nullable=False, index=True),
    )
    minimum_score: Optional[float] = Field(default=None)
    credits_awarded: Optional[float] = Field(default=None)
    course_equivalent: Optional[str] = Field(default=None, max_length=255)

    university: Optional[University] = Relationship(back_populates="policies")
