"""
Staging models: the review step between suggestion approval and publishing.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import JSON
from sqlmodel import Field

from inflio.models.base import BaseUUIDModel, TZDateTime, enum_type, utc_now
from inflio.models.enums import StagedContentType


class StagingSession(BaseUUIDModel, table=True):
    """
    Table: staging_sessions

    One live session per (user, project); ``selected_content`` is
    ``{"ids": [...], "items": [...]}``.
    """

    __tablename__ = "staging_sessions"

    user_id: str = Field(max_length=255, nullable=False, index=True)
    project_id: UUID = Field(foreign_key="projects.id", nullable=False, index=True)
    selected_content: Dict[str, Any] = Field(default_factory=dict, sa_type=JSON)
    expires_at: datetime = Field(sa_type=TZDateTime, nullable=False)
    updated_at: datetime = Field(
        default_factory=utc_now,
        sa_type=TZDateTime,
        nullable=False,
        sa_column_kwargs={"onupdate": utc_now},
    )


class StagedPost(BaseUUIDModel, table=True):
    """Table: staged_posts"""

    __tablename__ = "staged_posts"

    user_id: str = Field(max_length=255, nullable=False, index=True)
    project_id: UUID = Field(foreign_key="projects.id", nullable=False, index=True)
    suggestion_id: Optional[UUID] = Field(default=None, index=True)
    title: str = Field(default="", max_length=500)
    description: Optional[str] = Field(default=None)
    type: StagedContentType = Field(
        default=StagedContentType.IMAGE,
        sa_type=enum_type(StagedContentType),
        nullable=False,
    )
    platforms: List[str] = Field(default_factory=list, sa_type=JSON)
    platform_content: Dict[str, Any] = Field(default_factory=dict, sa_type=JSON)
    media_urls: List[str] = Field(default_factory=list, sa_type=JSON)
    thumbnail_url: Optional[str] = Field(default=None, max_length=1000)
    meta: Dict[str, Any] = Field(default_factory=dict, sa_type=JSON)
    status: str = Field(default="ready", max_length=32)
