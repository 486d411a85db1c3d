"""Post suggestion and staging schemas."""

from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from inflio.models import Platform, PostContentType, PostSuggestionRead


class GeneratePostsRequest(BaseModel):
    """Request body for generating post suggestions."""

    project_id: UUID
    content_types: Optional[List[PostContentType]] = None
    platforms: Optional[List[Platform]] = None
    persona_id: Optional[UUID] = None
    creativity: float = Field(default=0.7, ge=0.0, le=1.0)


class GeneratePostsResponse(BaseModel):
    job_id: UUID
    suggestions: List[PostSuggestionRead]


class RegenerateRequest(BaseModel):
    feedback: Optional[str] = Field(default=None, max_length=2000)


class CopyUpdateRequest(BaseModel):
    """Fields left unset keep their current value."""

    caption: Optional[str] = None
    hashtags: Optional[List[str]] = None
    cta: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None


class StageRequest(BaseModel):
    suggestion_ids: List[UUID] = Field(..., min_length=1)


class StagingError(BaseModel):
    id: str
    error: str


class StageResponse(BaseModel):
    success: int
    failed: int
    errors: List[StagingError]
