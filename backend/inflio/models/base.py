"""
Base model configuration for all SQLModel classes.
Provides common fields and utilities.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Type
from uuid import UUID, uuid4

from sqlalchemy import DateTime
from sqlalchemy import Enum as SAEnum
from sqlmodel import Field, SQLModel


def utc_now() -> datetime:
    """Get current UTC timestamp."""
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes read back from SQLite."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def enum_type(enum_cls: Type[Enum]) -> SAEnum:
    """Column type storing enum values (not names) as plain strings."""
    return SAEnum(
        enum_cls,
        native_enum=False,
        length=32,
        values_callable=lambda x: [e.value for e in x],
    )


TZDateTime = DateTime(timezone=True)


class BaseUUIDModel(SQLModel):
    """
    Base model with UUID primary key and timestamps.

    All database models should inherit from this.
    """
    id: UUID = Field(
        default_factory=uuid4,
        primary_key=True,
        index=True,
        nullable=False
    )
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_type=TZDateTime,
        nullable=False,
    )
