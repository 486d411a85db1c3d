"""
Project model - the central entity for video repurposing workflows.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import JSON
from sqlmodel import Field, SQLModel

from inflio.models.base import BaseUUIDModel, TZDateTime, enum_type, utc_now
from inflio.models.enums import ProjectStatus


def empty_folders() -> Dict[str, list]:
    return {"clips": [], "blog": [], "social": [], "images": []}


class ProjectBase(SQLModel):
    """Shared project properties."""

    title: str = Field(max_length=255, nullable=False)
    description: Optional[str] = Field(default=None)
    video_url: Optional[str] = Field(default=None, max_length=1000)
    thumbnail_url: Optional[str] = Field(default=None, max_length=1000)
    status: ProjectStatus = Field(
        default=ProjectStatus.DRAFT,
        sa_type=enum_type(ProjectStatus),
        nullable=False,
    )
    tasks: List[Dict[str, Any]] = Field(default_factory=list, sa_type=JSON)
    folders: Dict[str, Any] = Field(default_factory=empty_folders, sa_type=JSON)
    video_metadata: Dict[str, Any] = Field(default_factory=dict, sa_type=JSON)
    transcription: Optional[Dict[str, Any]] = Field(default=None, sa_type=JSON)
    content_analysis: Optional[Dict[str, Any]] = Field(default=None, sa_type=JSON)
    tags: List[str] = Field(default_factory=list, sa_type=JSON)


class Project(ProjectBase, BaseUUIDModel, table=True):
    """
    Project database model.

    Table: projects

    ``tasks`` holds one entry per processing task:
    ``{id, type, status, progress, started_at, completed_at, error}``.
    """

    __tablename__ = "projects"

    user_id: str = Field(max_length=255, nullable=False, index=True)

    updated_at: datetime = Field(
        default_factory=utc_now,
        sa_type=TZDateTime,
        nullable=False,
        sa_column_kwargs={"onupdate": utc_now},
    )


class ProjectRead(ProjectBase):
    """Schema for reading project data."""

    id: UUID
    user_id: str
    created_at: datetime
    updated_at: datetime
