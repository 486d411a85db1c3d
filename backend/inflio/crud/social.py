"""Social integration and social post CRUD operations."""

from datetime import datetime
from typing import Any, List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from inflio.crud.base import save, update_fields
from inflio.models import PostState, SocialIntegration, SocialPost


class SocialCRUD:
    """CRUD operations for integrations and posts."""

    async def get_integration_by_account(
        self, session: AsyncSession, user_id: str, platform: str, internal_id: str
    ) -> Optional[SocialIntegration]:
        stmt = select(SocialIntegration).where(
            SocialIntegration.user_id == user_id,
            SocialIntegration.platform == platform,
            SocialIntegration.internal_id == internal_id,
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def upsert_integration(
        self,
        session: AsyncSession,
        user_id: str,
        platform: str,
        internal_id: str,
        **values: Any,
    ) -> SocialIntegration:
        """Insert or update the integration keyed by (user, platform, internal_id)."""
        integration = await self.get_integration_by_account(
            session, user_id, platform, internal_id
        )
        if integration is None:
            integration = SocialIntegration(
                user_id=user_id, platform=platform, internal_id=internal_id, **values
            )
            return await save(session, integration)
        return await update_fields(session, integration, values)

    async def get_integration(
        self,
        session: AsyncSession,
        integration_id: UUID,
        user_id: Optional[str] = None,
    ) -> Optional[SocialIntegration]:
        stmt = select(SocialIntegration).where(SocialIntegration.id == integration_id)
        if user_id:
            stmt = stmt.where(SocialIntegration.user_id == user_id)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_integrations(
        self, session: AsyncSession, user_id: str, include_disabled: bool = False
    ) -> List[SocialIntegration]:
        stmt = select(SocialIntegration).where(SocialIntegration.user_id == user_id)
        if not include_disabled:
            stmt = stmt.where(SocialIntegration.disabled == False)  # noqa: E712
        stmt = stmt.order_by(SocialIntegration.created_at)
        result = await session.execute(stmt)
        return list(result.scalars().all())

    async def update_integration(
        self, session: AsyncSession, integration: SocialIntegration, **values: Any
    ) -> SocialIntegration:
        return await update_fields(session, integration, values)

    async def delete_integration(
        self, session: AsyncSession, integration: SocialIntegration
    ) -> None:
        await session.delete(integration)
        await session.commit()

    async def create_post(self, session: AsyncSession, **values: Any) -> SocialPost:
        return await save(session, SocialPost(**values))

    async def get_post(
        self, session: AsyncSession, post_id: UUID, user_id: Optional[str] = None
    ) -> Optional[SocialPost]:
        stmt = select(SocialPost).where(SocialPost.id == post_id)
        if user_id:
            stmt = stmt.where(SocialPost.user_id == user_id)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_posts(
        self,
        session: AsyncSession,
        user_id: str,
        state: Optional[PostState] = None,
        project_id: Optional[UUID] = None,
    ) -> List[SocialPost]:
        stmt = select(SocialPost).where(SocialPost.user_id == user_id)
        if state:
            stmt = stmt.where(SocialPost.state == state)
        if project_id:
            stmt = stmt.where(SocialPost.project_id == project_id)
        stmt = stmt.order_by(SocialPost.publish_date.desc(), SocialPost.created_at.desc())
        result = await session.execute(stmt)
        return list(result.scalars().all())

    async def list_due_posts(
        self, session: AsyncSession, now: datetime, limit: int = 50
    ) -> List[SocialPost]:
        """Scheduled posts whose publish date has passed."""
        stmt = (
            select(SocialPost)
            .where(
                SocialPost.state == PostState.SCHEDULED,
                SocialPost.publish_date <= now,
            )
            .order_by(SocialPost.publish_date)
            .limit(limit)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    async def update_post(
        self, session: AsyncSession, post: SocialPost, **values: Any
    ) -> SocialPost:
        return await update_fields(session, post, values)

    async def delete_post(self, session: AsyncSession, post: SocialPost) -> None:
        await session.delete(post)
        await session.commit()


social_crud = SocialCRUD()
