"""
Post suggestion models.

A suggestion bundles generated images with per-platform copy; a generation
job tracks one batch request producing several suggestions.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import JSON
from sqlmodel import Field, SQLModel

from inflio.models.base import BaseUUIDModel, TZDateTime, enum_type, utc_now
from inflio.models.enums import JobStatus, PostContentType, SuggestionStatus


class PostSuggestion(BaseUUIDModel, table=True):
    """
    Table: post_suggestions

    ``copy_variants`` maps platform -> ``{caption, hashtags, cta, title?,
    description?, is_edited?}``. ``images`` is a list of
    ``{id, url, position, prompt, model, status, error?}``.
    """

    __tablename__ = "post_suggestions"

    project_id: UUID = Field(foreign_key="projects.id", nullable=False, index=True)
    user_id: str = Field(max_length=255, nullable=False, index=True)
    content_type: PostContentType = Field(
        sa_type=enum_type(PostContentType), nullable=False
    )
    title: Optional[str] = Field(default=None, max_length=500)
    description: Optional[str] = Field(default=None)
    images: List[Dict[str, Any]] = Field(default_factory=list, sa_type=JSON)
    copy_variants: Dict[str, Dict[str, Any]] = Field(default_factory=dict, sa_type=JSON)
    eligible_platforms: List[str] = Field(default_factory=list, sa_type=JSON)
    platform_requirements: Dict[str, Any] = Field(default_factory=dict, sa_type=JSON)
    engagement_prediction: Optional[float] = Field(default=None)
    rating: Optional[int] = Field(default=None)
    persona_id: Optional[UUID] = Field(default=None)
    persona_used: bool = Field(default=False)
    status: SuggestionStatus = Field(
        default=SuggestionStatus.GENERATING,
        sa_type=enum_type(SuggestionStatus),
        nullable=False,
        index=True,
    )
    generation_prompt: Optional[str] = Field(default=None)
    generation_model: Optional[str] = Field(default=None, max_length=100)
    generation_params: Dict[str, Any] = Field(default_factory=dict, sa_type=JSON)
    feedback: Optional[str] = Field(default=None)
    error_message: Optional[str] = Field(default=None)
    approved_at: Optional[datetime] = Field(default=None, sa_type=TZDateTime)
    staged_at: Optional[datetime] = Field(default=None, sa_type=TZDateTime)
    updated_at: datetime = Field(
        default_factory=utc_now,
        sa_type=TZDateTime,
        nullable=False,
        sa_column_kwargs={"onupdate": utc_now},
    )


class PostGenerationJob(BaseUUIDModel, table=True):
    """Table: post_generation_jobs"""

    __tablename__ = "post_generation_jobs"

    project_id: UUID = Field(foreign_key="projects.id", nullable=False, index=True)
    user_id: str = Field(max_length=255, nullable=False)
    job_type: str = Field(default="batch_suggestions", max_length=50)
    status: JobStatus = Field(
        default=JobStatus.RUNNING, sa_type=enum_type(JobStatus), nullable=False
    )
    input_params: Dict[str, Any] = Field(default_factory=dict, sa_type=JSON)
    total_items: int = Field(default=0)
    completed_items: int = Field(default=0)
    output_data: Optional[Dict[str, Any]] = Field(default=None, sa_type=JSON)
    error_message: Optional[str] = Field(default=None)
    started_at: datetime = Field(default_factory=utc_now, sa_type=TZDateTime)
    completed_at: Optional[datetime] = Field(default=None, sa_type=TZDateTime)


class PostSuggestionRead(SQLModel):
    id: UUID
    project_id: UUID
    content_type: PostContentType
    title: Optional[str]
    description: Optional[str]
    images: List[Dict[str, Any]]
    copy_variants: Dict[str, Dict[str, Any]]
    eligible_platforms: List[str]
    engagement_prediction: Optional[float]
    rating: Optional[int]
    status: SuggestionStatus
    error_message: Optional[str]
    approved_at: Optional[datetime]
    created_at: datetime
