"""Post suggestion and staging endpoints."""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from inflio.auth import ClerkUser, get_current_user
from inflio.database import get_session
from inflio.models import Platform, PostSuggestionRead, SuggestionStatus
from inflio.schemas.posts import (
    CopyUpdateRequest,
    GeneratePostsRequest,
    GeneratePostsResponse,
    RegenerateRequest,
    StageRequest,
    StageResponse,
)
from inflio.services.posts_service import posts_service
from inflio.services.staging_service import staging_service

router = APIRouter()


@router.post("/posts/generate", response_model=GeneratePostsResponse)
async def generate_posts(
    request: GeneratePostsRequest,
    user: ClerkUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """Generate one suggestion per requested content type."""
    job, suggestions = await posts_service.generate_post_suggestions(
        session,
        user_id=user.user_id,
        project_id=request.project_id,
        content_types=[t.value for t in request.content_types] if request.content_types else None,
        platforms=[p.value for p in request.platforms] if request.platforms else None,
        persona_id=request.persona_id,
        creativity=request.creativity,
    )
    return GeneratePostsResponse(
        job_id=job.id,
        suggestions=[PostSuggestionRead.model_validate(s) for s in suggestions],
    )


@router.get("/posts/jobs/{job_id}")
async def get_generation_job(
    job_id: UUID,
    user: ClerkUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    job = await posts_service.get_job(session, user.user_id, job_id)
    return {
        "id": job.id,
        "status": job.status.value,
        "total_items": job.total_items,
        "completed_items": job.completed_items,
        "output_data": job.output_data,
        "error_message": job.error_message,
        "started_at": job.started_at,
        "completed_at": job.completed_at,
    }


@router.get("/projects/{project_id}/posts", response_model=List[PostSuggestionRead])
async def list_project_posts(
    project_id: UUID,
    status: Optional[SuggestionStatus] = None,
    user: ClerkUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    return await posts_service.list_suggestions(session, user.user_id, project_id, status)


@router.post("/posts/{suggestion_id}/regenerate", response_model=PostSuggestionRead)
async def regenerate_post(
    suggestion_id: UUID,
    request: RegenerateRequest,
    user: ClerkUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    return await posts_service.regenerate_suggestion(
        session, user.user_id, suggestion_id, request.feedback
    )


@router.patch("/posts/{suggestion_id}/copy/{platform}", response_model=PostSuggestionRead)
async def update_post_copy(
    suggestion_id: UUID,
    platform: Platform,
    request: CopyUpdateRequest,
    user: ClerkUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    return await posts_service.update_post_copy(
        session,
        user.user_id,
        suggestion_id,
        platform.value,
        request.model_dump(exclude_unset=True),
    )


@router.post("/posts/{suggestion_id}/approve", response_model=PostSuggestionRead)
async def approve_post(
    suggestion_id: UUID,
    user: ClerkUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    return await posts_service.approve_suggestion(session, user.user_id, suggestion_id)


@router.post("/posts/stage", response_model=StageResponse)
async def stage_posts(
    request: StageRequest,
    user: ClerkUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """Send ready suggestions to staging; incomplete ones are reported per id."""
    result = await staging_service.send_batch_to_staging(
        session, user.user_id, request.suggestion_ids
    )
    return result.to_dict()


@router.get("/projects/{project_id}/staging-session")
async def get_staging_session(
    project_id: UUID,
    user: ClerkUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    data = await staging_service.get_staging_session(session, user.user_id, project_id)
    return {"data": data}
