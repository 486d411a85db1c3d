"""Project CRUD operations."""

from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import delete as sa_delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from inflio.crud.base import save, update_fields
from inflio.models import (
    PostGenerationJob,
    PostSuggestion,
    Project,
    ProjectStatus,
    StagedPost,
    StagingSession,
)


class ProjectCRUD:
    """CRUD operations for projects."""

    async def create(
        self,
        session: AsyncSession,
        user_id: str,
        title: str,
        description: Optional[str] = None,
        video_url: Optional[str] = None,
        tasks: Optional[List[Dict[str, Any]]] = None,
        video_metadata: Optional[dict] = None,
    ) -> Project:
        """Create a new project."""
        project = Project(
            user_id=user_id,
            title=title,
            description=description,
            video_url=video_url,
            status=ProjectStatus.DRAFT,
            tasks=tasks or [],
            video_metadata=video_metadata or {},
        )
        return await save(session, project)

    async def get_by_id(
        self, session: AsyncSession, project_id: UUID, user_id: Optional[str] = None
    ) -> Optional[Project]:
        """Get project by ID with optional user filter."""
        stmt = select(Project).where(Project.id == project_id)
        if user_id:
            stmt = stmt.where(Project.user_id == user_id)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_by_user(
        self,
        session: AsyncSession,
        user_id: str,
        page: int = 1,
        page_size: int = 20,
        status: Optional[ProjectStatus] = None,
    ) -> Tuple[List[Project], int]:
        """List projects for a user with pagination and optional status filter."""
        base_filter = Project.user_id == user_id
        if status:
            base_filter = base_filter & (Project.status == status)

        count_stmt = select(func.count(Project.id)).where(base_filter)
        total_result = await session.execute(count_stmt)
        total = total_result.scalar() or 0

        offset = (page - 1) * page_size
        stmt = (
            select(Project)
            .where(base_filter)
            .order_by(Project.created_at.desc())
            .offset(offset)
            .limit(page_size)
        )
        result = await session.execute(stmt)
        items = list(result.scalars().all())

        return items, total

    async def update(
        self, session: AsyncSession, project: Project, **values: Any
    ) -> Project:
        return await update_fields(session, project, values)

    async def update_status(
        self,
        session: AsyncSession,
        project_id: UUID,
        status: ProjectStatus,
    ) -> Optional[Project]:
        """Update project status."""
        project = await session.get(Project, project_id)
        if project:
            project = await update_fields(session, project, {"status": status})
        return project

    async def delete(self, session: AsyncSession, project: Project) -> None:
        """Delete the project and the rows that reference it."""
        for model in (StagedPost, StagingSession, PostSuggestion, PostGenerationJob):
            await session.execute(sa_delete(model).where(model.project_id == project.id))
        await session.delete(project)
        await session.commit()


project_crud = ProjectCRUD()
