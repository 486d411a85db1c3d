"""Social integration and post schemas."""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class AuthUrlResponse(BaseModel):
    url: str
    state: str


class SocialPostCreateRequest(BaseModel):
    """Create one post per selected integration."""

    integration_ids: List[UUID] = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    media_urls: List[str] = Field(default_factory=list)
    hashtags: List[str] = Field(default_factory=list)
    publish_date: Optional[datetime] = Field(
        default=None, description="Schedule time; omit to keep the post as a draft"
    )
    project_id: Optional[UUID] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class SocialPostUpdateRequest(BaseModel):
    content: Optional[str] = None
    media_urls: Optional[List[str]] = None
    hashtags: Optional[List[str]] = None
    publish_date: Optional[datetime] = None


class PublishSummary(BaseModel):
    processed: int
    published: int
    failed: int
