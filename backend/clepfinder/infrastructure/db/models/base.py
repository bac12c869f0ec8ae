"""
Shared Columns for CLEP Finder Tables

UUID primary keys and created/updated timestamps used by every table.
"""

from datetime import datetime
from uuid import UUID, uuid4

from sqlmodel import Field, SQLModel


class UUIDMixin(SQLModel):
    """UUID v4 primary key."""

    id: UUID = Field(
        default_factory=uuid4,
        primary_key=True,
        nullable=False,
        description="Unique identifier (UUID v4)"
    )


class TimestampMixin(SQLModel):
    """
    created_at / updated_at columns.

    Naive UTC for Supabase TIMESTAMP WITHOUT TIME ZONE compatibility.
    """

    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        nullable=False,
        description="Record creation timestamp (UTC)"
    )
    updated_at: datetime = Field(
        default_factory=datetime.utcnow,
        nullable=False,
        sa_column_kwargs={"onupdate": datetime.utcnow},
        description="Last update timestamp (UTC)"
    )
