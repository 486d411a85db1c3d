"""Project management and processing endpoints."""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from inflio.auth import ClerkUser, get_current_user
from inflio.crud.project import project_crud
from inflio.database import get_session
from inflio.errors import NotFoundError
from inflio.models import ProjectRead, ProjectStatus, TaskType, utc_now
from inflio.schemas.project import (
    ProcessingStartedResponse,
    ProjectCreateRequest,
    ProjectListResponse,
    TaskUpdateRequest,
)
from inflio.services.processing_service import processing_service
from inflio.services.task_tracker import task_tracker
from inflio.utils.logging import get_logger

router = APIRouter()
logger = get_logger(__name__)


async def run_processing_background(project_id: UUID):
    """Background task to run transcription and clip generation."""
    try:
        await processing_service.run_processing(project_id)
    except Exception as e:
        logger.error("Processing background task failed", project_id=str(project_id), error=str(e))


async def _get_owned_project(session: AsyncSession, project_id: UUID, user_id: str):
    project = await project_crud.get_by_id(session, project_id, user_id)
    if not project:
        raise NotFoundError("Project not found")
    return project


@router.post("", response_model=ProjectRead, status_code=201)
async def create_project(
    request: ProjectCreateRequest,
    user: ClerkUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """Create a project from an uploaded video."""
    project = await project_crud.create(
        session=session,
        user_id=user.user_id,
        title=request.title,
        description=request.description,
        video_url=request.video_url,
        video_metadata=request.video_metadata,
    )
    values = {"tags": request.tags}
    if request.thumbnail_url:
        values["thumbnail_url"] = request.thumbnail_url
    if request.content_analysis:
        values["content_analysis"] = request.content_analysis
    project = await project_crud.update(session, project, **values)

    logger.info("Project created", project_id=str(project.id))
    return project


@router.get("", response_model=ProjectListResponse)
async def list_projects(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    status: Optional[ProjectStatus] = None,
    user: ClerkUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """List the current user's projects."""
    items, total = await project_crud.list_by_user(
        session=session, user_id=user.user_id, page=page, page_size=page_size, status=status
    )
    return ProjectListResponse(
        items=[ProjectRead.model_validate(p) for p in items],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/{project_id}", response_model=ProjectRead)
async def get_project(
    project_id: UUID,
    user: ClerkUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """Project with tasks, folders and transcription; poll this for progress."""
    return await _get_owned_project(session, project_id, user.user_id)


@router.delete("/{project_id}", status_code=204)
async def delete_project(
    project_id: UUID,
    user: ClerkUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    project = await _get_owned_project(session, project_id, user.user_id)
    await project_crud.delete(session, project)
    logger.info("Project deleted", project_id=str(project_id))


@router.post("/{project_id}/process", response_model=ProcessingStartedResponse, status_code=202)
async def start_processing(
    project_id: UUID,
    background_tasks: BackgroundTasks,
    user: ClerkUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """
    Start transcription and clip generation.

    Work runs in the background. Use WebSocket or polling to track progress.
    """
    project = await processing_service.start_processing(session, user.user_id, project_id)
    background_tasks.add_task(run_processing_background, project.id)
    return ProcessingStartedResponse(
        project_id=project.id,
        status=project.status.value,
        tasks=project.tasks,
        started_at=utc_now(),
    )


@router.get("/{project_id}/tasks")
async def get_tasks(
    project_id: UUID,
    user: ClerkUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    project = await _get_owned_project(session, project_id, user.user_id)
    return {"project_id": project.id, "status": project.status.value, "tasks": project.tasks}


@router.patch("/{project_id}/tasks/{task_type}")
async def update_task(
    project_id: UUID,
    task_type: TaskType,
    request: TaskUpdateRequest,
    user: ClerkUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """Report progress for one task (used by external workers)."""
    await _get_owned_project(session, project_id, user.user_id)
    updated = await task_tracker.update_task_progress(
        session, project_id, task_type, request.progress, request.status, error=request.error
    )
    if not updated:
        raise NotFoundError(f"Task {task_type.value} not found")
    project = await project_crud.get_by_id(session, project_id)
    return {"project_id": project.id, "status": project.status.value, "tasks": project.tasks}
