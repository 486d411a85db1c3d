"""
Persona management and LoRA training.

Training is started from a request (job row in ``processing``) and finished
in a background task that opens its own database session.
"""

from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from inflio.crud.persona import persona_crud
from inflio.database import get_session_context
from inflio.errors import NotFoundError, ValidationError
from inflio.models import (
    LoraTrainingJob,
    Persona,
    PersonaStatus,
    TrainingStatus,
    utc_now,
)
from inflio.services.image_service import ImageService, image_service
from inflio.utils.logging import get_logger

logger = get_logger(__name__)

UPDATABLE_FIELDS = ("name", "description", "photos", "is_global", "project_id", "meta")


class PersonaService:
    """CRUD for personas plus the LoRA training lifecycle."""

    def __init__(self, images: ImageService = image_service):
        self.images = images

    async def list_personas(
        self, session: AsyncSession, user_id: str, project_id: Optional[UUID] = None
    ) -> List[Persona]:
        return await persona_crud.list_for_user(session, user_id, project_id)

    async def get_persona(
        self, session: AsyncSession, user_id: str, persona_id: UUID
    ) -> Persona:
        persona = await persona_crud.get_by_id(session, persona_id, user_id)
        if not persona:
            raise NotFoundError("Persona not found")
        return persona

    async def create_persona(
        self,
        session: AsyncSession,
        user_id: str,
        name: str,
        description: Optional[str] = None,
        photos: Optional[List[str]] = None,
        is_global: bool = True,
        project_id: Optional[UUID] = None,
    ) -> Persona:
        if not name or not name.strip():
            raise ValidationError("Persona name is required")
        persona = await persona_crud.create(
            session,
            user_id=user_id,
            name=name.strip(),
            description=description,
            photos=list(photos or []),
            is_global=is_global,
            project_id=None if is_global else project_id,
        )
        logger.info("Persona created", persona_id=str(persona.id))
        return persona

    async def update_persona(
        self, session: AsyncSession, user_id: str, persona_id: UUID, updates: Dict[str, Any]
    ) -> Persona:
        persona = await self.get_persona(session, user_id, persona_id)
        values = {k: v for k, v in updates.items() if k in UPDATABLE_FIELDS}
        return await persona_crud.update(session, persona, **values)

    async def delete_persona(
        self, session: AsyncSession, user_id: str, persona_id: UUID
    ) -> None:
        persona = await self.get_persona(session, user_id, persona_id)
        await persona_crud.delete(session, persona)
        logger.info("Persona deleted", persona_id=str(persona_id))

    async def start_lora_training(
        self,
        session: AsyncSession,
        user_id: str,
        persona_id: UUID,
        images_data_url: str,
        trigger_phrase: Optional[str] = None,
        learning_rate: float = 0.00009,
        steps: int = 2500,
        multiresolution_training: bool = True,
        subject_crop: bool = True,
        create_masks: bool = False,
    ) -> LoraTrainingJob:
        """
        Record a training job and mark the persona ``training``.

        The caller schedules :meth:`run_lora_training` with the returned
        job id.
        """
        persona = await persona_crud.get_by_id(session, persona_id, user_id)
        if not persona:
            raise NotFoundError("Persona not found")
        if not images_data_url:
            raise ValidationError("images_data_url is required")

        trigger = trigger_phrase or f"photo of {persona.name}"
        job = await persona_crud.create_training_job(
            session,
            user_id=user_id,
            persona_id=persona.id,
            images_data_url=images_data_url,
            trigger_phrase=trigger,
            learning_rate=learning_rate,
            steps=steps,
            multiresolution_training=multiresolution_training,
            subject_crop=subject_crop,
            create_masks=create_masks,
            status=TrainingStatus.PROCESSING,
        )
        await persona_crud.update(
            session, persona, status=PersonaStatus.TRAINING, trigger_phrase=trigger
        )
        logger.info("LoRA training queued", job_id=str(job.id), persona_id=str(persona.id))
        return job

    async def complete_training(
        self, session: AsyncSession, job: LoraTrainingJob
    ) -> LoraTrainingJob:
        """Run the trainer for ``job`` and store the outcome on job and persona."""
        persona = await persona_crud.get_by_id(session, job.persona_id)

        try:
            result = await self.images.train_lora(
                images_data_url=job.images_data_url,
                trigger_phrase=job.trigger_phrase,
                learning_rate=job.learning_rate,
                steps=job.steps,
                multiresolution_training=job.multiresolution_training,
                subject_crop=job.subject_crop,
                create_masks=job.create_masks,
            )
        except Exception as e:
            logger.error("LoRA training failed", job_id=str(job.id), error=str(e))
            job = await persona_crud.update_training_job(
                session,
                job,
                status=TrainingStatus.FAILED,
                error_message=str(e),
                completed_at=utc_now(),
            )
            if persona:
                await persona_crud.update(session, persona, status=PersonaStatus.FAILED)
            return job

        lora_url = result["diffusers_lora_file"]["url"]
        job = await persona_crud.update_training_job(
            session,
            job,
            status=TrainingStatus.COMPLETED,
            result=result,
            completed_at=utc_now(),
        )
        if persona:
            await persona_crud.update(
                session,
                persona,
                status=PersonaStatus.TRAINED,
                lora_model_url=lora_url,
            )
        logger.info("LoRA training completed", job_id=str(job.id))
        return job

    async def run_lora_training(self, job_id: UUID) -> None:
        """Background entry point; owns its session."""
        async with get_session_context() as session:
            job = await persona_crud.get_training_job(session, job_id)
            if not job:
                logger.warning("Training job disappeared", job_id=str(job_id))
                return
            await self.complete_training(session, job)

    async def get_training_job(
        self,
        session: AsyncSession,
        user_id: str,
        job_id: Optional[UUID] = None,
        persona_id: Optional[UUID] = None,
    ) -> LoraTrainingJob:
        """Look up a job by id, or the latest job of a persona."""
        job = None
        if job_id:
            job = await persona_crud.get_training_job(session, job_id)
        elif persona_id:
            job = await persona_crud.get_latest_training_job(session, persona_id)
        else:
            raise ValidationError("job_id or persona_id is required")

        if not job or job.user_id != user_id:
            raise NotFoundError("Training job not found")
        return job


persona_service = PersonaService()
