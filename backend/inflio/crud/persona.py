"""Persona and LoRA training job CRUD operations."""

from typing import Any, List, Optional
from uuid import UUID

from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from inflio.crud.base import save, update_fields
from inflio.models import LoraTrainingJob, Persona


class PersonaCRUD:
    """CRUD operations for personas."""

    async def create(self, session: AsyncSession, **values: Any) -> Persona:
        return await save(session, Persona(**values))

    async def get_by_id(
        self, session: AsyncSession, persona_id: UUID, user_id: Optional[str] = None
    ) -> Optional[Persona]:
        stmt = select(Persona).where(Persona.id == persona_id)
        if user_id:
            stmt = stmt.where(Persona.user_id == user_id)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_for_user(
        self, session: AsyncSession, user_id: str, project_id: Optional[UUID] = None
    ) -> List[Persona]:
        """Global personas plus, when given, the ones scoped to ``project_id``."""
        stmt = select(Persona).where(Persona.user_id == user_id)
        if project_id:
            stmt = stmt.where(
                or_(Persona.is_global == True, Persona.project_id == project_id)  # noqa: E712
            )
        stmt = stmt.order_by(Persona.created_at.desc())
        result = await session.execute(stmt)
        return list(result.scalars().all())

    async def update(self, session: AsyncSession, persona: Persona, **values: Any) -> Persona:
        return await update_fields(session, persona, values)

    async def delete(self, session: AsyncSession, persona: Persona) -> None:
        """Delete the persona together with its training jobs."""
        await session.execute(
            delete(LoraTrainingJob).where(LoraTrainingJob.persona_id == persona.id)
        )
        await session.delete(persona)
        await session.commit()

    async def create_training_job(
        self, session: AsyncSession, **values: Any
    ) -> LoraTrainingJob:
        return await save(session, LoraTrainingJob(**values))

    async def get_training_job(
        self, session: AsyncSession, job_id: UUID
    ) -> Optional[LoraTrainingJob]:
        return await session.get(LoraTrainingJob, job_id)

    async def get_latest_training_job(
        self, session: AsyncSession, persona_id: UUID
    ) -> Optional[LoraTrainingJob]:
        stmt = (
            select(LoraTrainingJob)
            .where(LoraTrainingJob.persona_id == persona_id)
            .order_by(LoraTrainingJob.started_at.desc())
            .limit(1)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def update_training_job(
        self, session: AsyncSession, job: LoraTrainingJob, **values: Any
    ) -> LoraTrainingJob:
        return await update_fields(session, job, values)


persona_crud = PersonaCRUD()
