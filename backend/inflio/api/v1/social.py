"""
Social platform endpoints.

OAuth connect flow, connected integrations and post scheduling/publishing.
"""

from typing import List, Optional
from urllib.parse import urlencode
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from inflio.auth import ClerkUser, get_current_user
from inflio.config import settings
from inflio.database import get_session
from inflio.errors import AppError
from inflio.models import PostState, SocialIntegrationRead, SocialPostRead
from inflio.schemas.social import (
    AuthUrlResponse,
    PublishSummary,
    SocialPostCreateRequest,
    SocialPostUpdateRequest,
)
from inflio.services.encryption_service import encryption_service
from inflio.social.oauth_config import (
    PLATFORM_CONFIGS,
    generate_oauth_url,
    get_platform_config,
    validate_platform_config,
)
from inflio.social.oauth_service import oauth_service
from inflio.social.social_service import social_service
from inflio.utils.logging import get_logger

router = APIRouter()
logger = get_logger(__name__)


def _frontend_redirect(**params: str) -> RedirectResponse:
    return RedirectResponse(url=f"{settings.frontend_url}/social?{urlencode(params)}")


@router.get("/platforms")
async def list_platforms():
    """Supported platforms with their limits and whether OAuth is configured."""
    return [
        dict(config.to_public_dict(), configured=validate_platform_config(name))
        for name, config in PLATFORM_CONFIGS.items()
    ]


@router.get("/auth-url/{platform}", response_model=AuthUrlResponse)
async def get_auth_url(platform: str, user: ClerkUser = Depends(get_current_user)):
    """Authorization URL for connecting ``platform``."""
    get_platform_config(platform)
    if not validate_platform_config(platform):
        raise AppError(f"{platform} OAuth is not configured", "PLATFORM_NOT_CONFIGURED", 400)

    state = encryption_service.create_state({"user_id": user.user_id, "platform": platform})
    return AuthUrlResponse(url=generate_oauth_url(platform, state), state=state)


@router.get("/callback/{platform}")
async def oauth_callback(
    platform: str,
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None,
    session: AsyncSession = Depends(get_session),
):
    """OAuth redirect target; sends the user back to the frontend."""
    if error:
        logger.warning("OAuth denied by provider", platform=platform, error=error)
        return _frontend_redirect(error=error)
    if not code or not state:
        return _frontend_redirect(error="missing_code")

    payload = encryption_service.read_state(state)
    if not payload or payload.get("platform") != platform:
        logger.warning("Invalid OAuth state", platform=platform)
        return _frontend_redirect(error="invalid_state")

    try:
        await oauth_service.connect_integration(session, payload["user_id"], platform, code)
    except AppError as e:
        logger.error("OAuth connect failed", platform=platform, code=e.code, error=e.message)
        return _frontend_redirect(error=e.code.lower())

    return _frontend_redirect(connected=platform)


@router.get("/integrations", response_model=List[SocialIntegrationRead])
async def list_integrations(
    user: ClerkUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    return await social_service.list_integrations(session, user.user_id)


@router.delete("/integrations/{integration_id}", status_code=204)
async def disconnect_integration(
    integration_id: UUID,
    user: ClerkUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    await social_service.disconnect_integration(session, user.user_id, integration_id)


@router.post("/posts", response_model=List[SocialPostRead], status_code=201)
async def create_posts(
    request: SocialPostCreateRequest,
    user: ClerkUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """Create a draft, or a scheduled post when ``publish_date`` is set."""
    return await social_service.create_posts(
        session,
        user.user_id,
        integration_ids=request.integration_ids,
        content=request.content,
        media_urls=request.media_urls,
        hashtags=request.hashtags,
        publish_date=request.publish_date,
        project_id=request.project_id,
        metadata=request.metadata,
    )


@router.get("/posts", response_model=List[SocialPostRead])
async def list_posts(
    state: Optional[PostState] = None,
    project_id: Optional[UUID] = Query(default=None),
    user: ClerkUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    return await social_service.list_posts(session, user.user_id, state, project_id)


@router.patch("/posts/{post_id}", response_model=SocialPostRead)
async def update_post(
    post_id: UUID,
    request: SocialPostUpdateRequest,
    user: ClerkUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    return await social_service.update_post(
        session, user.user_id, post_id, request.model_dump(exclude_unset=True)
    )


@router.post("/posts/{post_id}/cancel", response_model=SocialPostRead)
async def cancel_post(
    post_id: UUID,
    user: ClerkUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    return await social_service.cancel_post(session, user.user_id, post_id)


@router.delete("/posts/{post_id}", status_code=204)
async def delete_post(
    post_id: UUID,
    user: ClerkUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    await social_service.delete_post(session, user.user_id, post_id)


@router.post("/posts/{post_id}/publish", response_model=SocialPostRead)
async def publish_post(
    post_id: UUID,
    user: ClerkUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """
    Publish now.

    A draft is scheduled for immediately first; the response carries the
    post in ``published`` or ``failed`` state.
    """
    post = await social_service.schedule_now(session, user.user_id, post_id)
    return await social_service.publish_post(session, post.id, user.user_id)


@router.post("/publish-scheduled", response_model=PublishSummary)
async def publish_scheduled(
    user: ClerkUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """Run the scheduled-publishing pass now (also run by the scheduler)."""
    logger.info("Manual scheduled publish triggered", user_id=user.user_id)
    return await social_service.publish_due_posts(session)
