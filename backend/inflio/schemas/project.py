"""Project-related schemas."""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from inflio.models import ProjectRead, TaskStatus


class ProjectCreateRequest(BaseModel):
    """Request body for creating a new project."""

    title: str = Field(..., max_length=255, min_length=1)
    description: Optional[str] = Field(default=None, max_length=5000)
    video_url: Optional[str] = Field(default=None, max_length=1000)
    thumbnail_url: Optional[str] = Field(default=None, max_length=1000)
    tags: List[str] = Field(default_factory=list)
    video_metadata: Dict[str, Any] = Field(default_factory=dict)
    content_analysis: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Pre-computed analysis (keywords, topics, sentiment, keyPoints, mood)",
    )


class ProjectListResponse(BaseModel):
    """Paginated project list."""

    items: List[ProjectRead]
    total: int
    page: int
    page_size: int


class TaskUpdateRequest(BaseModel):
    """Manual task progress update."""

    progress: float = Field(..., ge=0, le=100)
    status: Optional[TaskStatus] = None
    error: Optional[str] = None


class ProcessingStartedResponse(BaseModel):
    project_id: UUID
    status: str
    tasks: List[Dict[str, Any]]
    started_at: datetime
