"""Persona endpoints."""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from inflio.auth import ClerkUser, get_current_user
from inflio.database import get_session
from inflio.models import PersonaRead
from inflio.schemas.persona import (
    PersonaCreateRequest,
    PersonaUpdateRequest,
    TrainLoraRequest,
    TrainLoraResponse,
)
from inflio.services.persona_service import persona_service
from inflio.utils.logging import get_logger

router = APIRouter()
logger = get_logger(__name__)


async def run_training_background(job_id: UUID):
    """Background task to train a persona LoRA."""
    try:
        await persona_service.run_lora_training(job_id)
    except Exception as e:
        logger.error("Training background task failed", job_id=str(job_id), error=str(e))


@router.get("", response_model=List[PersonaRead])
async def list_personas(
    project_id: Optional[UUID] = None,
    user: ClerkUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """Global personas plus the ones scoped to ``project_id``."""
    return await persona_service.list_personas(session, user.user_id, project_id)


@router.post("", response_model=PersonaRead, status_code=201)
async def create_persona(
    request: PersonaCreateRequest,
    user: ClerkUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    return await persona_service.create_persona(
        session,
        user.user_id,
        name=request.name,
        description=request.description,
        photos=request.photos,
        is_global=request.is_global,
        project_id=request.project_id,
    )


@router.post("/train-lora", response_model=TrainLoraResponse, status_code=202)
async def train_lora(
    request: TrainLoraRequest,
    background_tasks: BackgroundTasks,
    user: ClerkUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    job = await persona_service.start_lora_training(
        session,
        user.user_id,
        request.persona_id,
        images_data_url=request.images_data_url,
        trigger_phrase=request.trigger_phrase,
        learning_rate=request.learning_rate,
        steps=request.steps,
        multiresolution_training=request.multiresolution_training,
        subject_crop=request.subject_crop,
        create_masks=request.create_masks,
    )
    background_tasks.add_task(run_training_background, job.id)
    return TrainLoraResponse(
        success=True,
        job_id=job.id,
        message="LoRA training started. This may take 10-30 minutes.",
    )


@router.get("/train-lora")
async def get_training_status(
    job_id: Optional[UUID] = None,
    persona_id: Optional[UUID] = None,
    user: ClerkUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """Training job by id, or the latest job of a persona."""
    job = await persona_service.get_training_job(session, user.user_id, job_id, persona_id)
    return {
        "id": job.id,
        "persona_id": job.persona_id,
        "status": job.status.value,
        "trigger_phrase": job.trigger_phrase,
        "error_message": job.error_message,
        "started_at": job.started_at,
        "completed_at": job.completed_at,
    }


@router.get("/{persona_id}", response_model=PersonaRead)
async def get_persona(
    persona_id: UUID,
    user: ClerkUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    return await persona_service.get_persona(session, user.user_id, persona_id)


@router.patch("/{persona_id}", response_model=PersonaRead)
async def update_persona(
    persona_id: UUID,
    request: PersonaUpdateRequest,
    user: ClerkUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    return await persona_service.update_persona(
        session, user.user_id, persona_id, request.model_dump(exclude_unset=True)
    )


@router.delete("/{persona_id}", status_code=204)
async def delete_persona(
    persona_id: UUID,
    user: ClerkUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    await persona_service.delete_persona(session, user.user_id, persona_id)
