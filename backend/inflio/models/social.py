"""
Social models - connected platform accounts and the posts published through them.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import JSON, UniqueConstraint
from sqlmodel import Field, SQLModel

from inflio.models.base import BaseUUIDModel, TZDateTime, enum_type, utc_now
from inflio.models.enums import PostState


class SocialIntegration(BaseUUIDModel, table=True):
    """
    OAuth connection of one platform account.

    Table: social_integrations

    ``token`` and ``refresh_token`` are stored Fernet-encrypted.
    """

    __tablename__ = "social_integrations"
    __table_args__ = (
        UniqueConstraint("user_id", "platform", "internal_id", name="uq_integration_account"),
    )

    user_id: str = Field(max_length=255, nullable=False, index=True)
    platform: str = Field(max_length=32, nullable=False, index=True)
    internal_id: str = Field(max_length=255, nullable=False)
    name: Optional[str] = Field(default=None, max_length=255)
    picture: Optional[str] = Field(default=None, max_length=1000)
    provider_identifier: str = Field(max_length=255, nullable=False)
    token: str = Field(nullable=False)
    refresh_token: Optional[str] = Field(default=None)
    token_expiration: Optional[datetime] = Field(default=None, sa_type=TZDateTime)
    profile: Dict[str, Any] = Field(default_factory=dict, sa_type=JSON)
    disabled: bool = Field(default=False)
    refresh_needed: bool = Field(default=False)
    updated_at: datetime = Field(
        default_factory=utc_now,
        sa_type=TZDateTime,
        nullable=False,
        sa_column_kwargs={"onupdate": utc_now},
    )


class SocialIntegrationRead(SQLModel):
    """Integration as exposed to clients (tokens omitted)."""

    id: UUID
    platform: str
    internal_id: str
    name: Optional[str]
    picture: Optional[str]
    token_expiration: Optional[datetime]
    disabled: bool
    refresh_needed: bool
    created_at: datetime


class SocialPost(BaseUUIDModel, table=True):
    """Table: social_posts"""

    __tablename__ = "social_posts"

    user_id: str = Field(max_length=255, nullable=False, index=True)
    integration_id: UUID = Field(foreign_key="social_integrations.id", nullable=False)
    project_id: Optional[UUID] = Field(default=None, index=True)
    content: str = Field(default="")
    media_urls: List[str] = Field(default_factory=list, sa_type=JSON)
    hashtags: List[str] = Field(default_factory=list, sa_type=JSON)
    publish_date: Optional[datetime] = Field(default=None, sa_type=TZDateTime, index=True)
    state: PostState = Field(
        default=PostState.DRAFT,
        sa_type=enum_type(PostState),
        nullable=False,
        index=True,
    )
    error: Optional[str] = Field(default=None)
    platform_post_id: Optional[str] = Field(default=None, max_length=255)
    url: Optional[str] = Field(default=None, max_length=1000)
    analytics: Dict[str, Any] = Field(default_factory=dict, sa_type=JSON)
    meta: Dict[str, Any] = Field(default_factory=dict, sa_type=JSON)
    updated_at: datetime = Field(
        default_factory=utc_now,
        sa_type=TZDateTime,
        nullable=False,
        sa_column_kwargs={"onupdate": utc_now},
    )


class SocialPostRead(SQLModel):
    id: UUID
    integration_id: UUID
    project_id: Optional[UUID]
    content: str
    media_urls: List[str]
    hashtags: List[str]
    publish_date: Optional[datetime]
    state: PostState
    error: Optional[str]
    platform_post_id: Optional[str]
    url: Optional[str]
    created_at: datetime
