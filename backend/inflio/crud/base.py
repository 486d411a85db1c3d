"""Shared helpers for CRUD classes."""

from typing import Any, Dict, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import flag_modified
from sqlmodel import SQLModel

ModelT = TypeVar("ModelT", bound=SQLModel)


async def save(session: AsyncSession, obj: ModelT) -> ModelT:
    """Add, commit and refresh a row."""
    session.add(obj)
    await session.commit()
    await session.refresh(obj)
    return obj


async def update_fields(
    session: AsyncSession, obj: ModelT, values: Dict[str, Any]
) -> ModelT:
    """
    Assign ``values`` onto ``obj`` and persist.

    JSON columns are flagged as modified so in-place edits of dicts and
    lists are written too.
    """
    for key, value in values.items():
        setattr(obj, key, value)
        if isinstance(value, (dict, list)):
            flag_modified(obj, key)
    return await save(session, obj)
