"""Staging session and staged post CRUD operations."""

from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from inflio.crud.base import save
from inflio.models import StagedPost, StagingSession


class StagingCRUD:
    """CRUD operations for staging sessions and staged posts."""

    async def replace_session(
        self,
        session: AsyncSession,
        user_id: str,
        project_id: UUID,
        selected_content: Dict[str, Any],
        expires_at: datetime,
    ) -> StagingSession:
        """Delete the user's sessions for the project and insert a new one."""
        await session.execute(
            delete(StagingSession).where(
                StagingSession.user_id == user_id,
                StagingSession.project_id == project_id,
            )
        )
        staging_session = StagingSession(
            user_id=user_id,
            project_id=project_id,
            selected_content=selected_content,
            expires_at=expires_at,
        )
        return await save(session, staging_session)

    async def get_session(
        self, session: AsyncSession, user_id: str, project_id: UUID
    ) -> Optional[StagingSession]:
        stmt = (
            select(StagingSession)
            .where(
                StagingSession.user_id == user_id,
                StagingSession.project_id == project_id,
            )
            .order_by(StagingSession.created_at.desc())
            .limit(1)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def count_sessions(
        self, session: AsyncSession, user_id: str, project_id: UUID
    ) -> int:
        stmt = select(StagingSession.id).where(
            StagingSession.user_id == user_id,
            StagingSession.project_id == project_id,
        )
        result = await session.execute(stmt)
        return len(result.scalars().all())

    async def delete_expired(self, session: AsyncSession, now: datetime) -> int:
        result = await session.execute(
            delete(StagingSession).where(StagingSession.expires_at < now)
        )
        await session.commit()
        return result.rowcount or 0

    async def create_staged_post(self, session: AsyncSession, **values: Any) -> StagedPost:
        return await save(session, StagedPost(**values))


staging_crud = StagingCRUD()
