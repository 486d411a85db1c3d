"""Post suggestion and generation job CRUD operations."""

from typing import Any, List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from inflio.crud.base import save, update_fields
from inflio.models import (
    PostGenerationJob,
    PostSuggestion,
    SuggestionStatus,
)


class PostSuggestionCRUD:
    """CRUD operations for post suggestions."""

    async def create(self, session: AsyncSession, **values: Any) -> PostSuggestion:
        return await save(session, PostSuggestion(**values))

    async def get_by_id(
        self,
        session: AsyncSession,
        suggestion_id: UUID,
        user_id: Optional[str] = None,
    ) -> Optional[PostSuggestion]:
        stmt = select(PostSuggestion).where(PostSuggestion.id == suggestion_id)
        if user_id:
            stmt = stmt.where(PostSuggestion.user_id == user_id)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_many(
        self, session: AsyncSession, suggestion_ids: List[UUID], user_id: str
    ) -> List[PostSuggestion]:
        stmt = select(PostSuggestion).where(
            PostSuggestion.id.in_(suggestion_ids), PostSuggestion.user_id == user_id
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    async def list_by_project(
        self,
        session: AsyncSession,
        project_id: UUID,
        user_id: str,
        status: Optional[SuggestionStatus] = None,
    ) -> List[PostSuggestion]:
        stmt = select(PostSuggestion).where(
            PostSuggestion.project_id == project_id,
            PostSuggestion.user_id == user_id,
        )
        if status:
            stmt = stmt.where(PostSuggestion.status == status)
        stmt = stmt.order_by(PostSuggestion.created_at.desc())
        result = await session.execute(stmt)
        return list(result.scalars().all())

    async def update(
        self, session: AsyncSession, suggestion: PostSuggestion, **values: Any
    ) -> PostSuggestion:
        return await update_fields(session, suggestion, values)


class PostGenerationJobCRUD:
    """CRUD operations for generation jobs."""

    async def create(self, session: AsyncSession, **values: Any) -> PostGenerationJob:
        return await save(session, PostGenerationJob(**values))

    async def get_by_id(
        self, session: AsyncSession, job_id: UUID, user_id: Optional[str] = None
    ) -> Optional[PostGenerationJob]:
        stmt = select(PostGenerationJob).where(PostGenerationJob.id == job_id)
        if user_id:
            stmt = stmt.where(PostGenerationJob.user_id == user_id)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def update(
        self, session: AsyncSession, job: PostGenerationJob, **values: Any
    ) -> PostGenerationJob:
        return await update_fields(session, job, values)


post_suggestion_crud = PostSuggestionCRUD()
post_job_crud = PostGenerationJobCRUD()
