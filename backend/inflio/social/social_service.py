"""
Social posting service.

Owns the social post lifecycle::

    draft -> scheduled -> publishing -> published
                     \\-> cancelled      \\-> failed

and publishes through the platform adapters using the integration's
(decrypted, refreshed when needed) access token.
"""

from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Dict, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from inflio.crud.social import social_crud
from inflio.errors import AppError, NotFoundError, ValidationError
from inflio.models import PostState, Project, SocialIntegration, SocialPost, ensure_utc, utc_now
from inflio.services.encryption_service import encryption_service
from inflio.social.oauth_config import PLATFORM_CONFIGS
from inflio.social.oauth_service import OAuthService, oauth_service
from inflio.social.publishers import (
    PublishOptions,
    PublishResult,
    publish_to_social_platform,
    sanitize,
)
from inflio.utils.logging import get_logger

logger = get_logger(__name__)

PublishFn = Callable[[str, str, PublishOptions], Awaitable[PublishResult]]

EDITABLE_STATES = {PostState.DRAFT, PostState.SCHEDULED, PostState.FAILED}
PUBLISHABLE_STATES = {PostState.SCHEDULED, PostState.PUBLISHING}

# Refresh a little before the provider's expiry
TOKEN_REFRESH_MARGIN = timedelta(minutes=5)

OPTIMAL_POSTING_TIMES: Dict[str, List[str]] = {
    "twitter": ["9:00 AM", "12:00 PM", "5:00 PM", "7:00 PM"],
    "linkedin": ["7:30 AM", "12:00 PM", "5:30 PM"],
    "instagram": ["11:00 AM", "2:00 PM", "5:00 PM", "8:00 PM"],
    "tiktok": ["6:00 AM", "3:00 PM", "7:00 PM", "11:00 PM"],
    "youtube": ["2:00 PM", "4:00 PM", "9:00 PM"],
    "facebook": ["9:00 AM", "3:00 PM", "7:00 PM"],
}


def get_optimal_posting_times(platform: str) -> List[str]:
    return OPTIMAL_POSTING_TIMES.get(platform, OPTIMAL_POSTING_TIMES["twitter"])


def calculate_content_mix(total_slots: int = 7) -> Dict[str, int]:
    """Weekly split: 40% educational, 30% entertaining, 20% promotional, 10% engagement."""
    return {
        "educational": int(total_slots * 0.4),
        "entertaining": int(total_slots * 0.3),
        "promotional": int(total_slots * 0.2),
        "engagement": int(total_slots * 0.1),
    }


def generate_social_content(
    project: Project, content_type: str, item: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """Draft post fields announcing a project video, one of its clips or a blog post."""
    hashtags = ["#" + "".join(tag.split()) for tag in project.tags or []]
    tag_line = " ".join(hashtags)
    content: Dict[str, Any] = {"project_id": project.id, "hashtags": hashtags}

    if content_type == "video":
        content["content"] = (
            f'🎬 New video alert! "{project.title}"\n\n'
            f"{project.description or 'Check it out!'}\n\n{tag_line}"
        )
        content["media_urls"] = [project.thumbnail_url] if project.thumbnail_url else []
    elif content_type == "clip" and item:
        content["content"] = (
            f"🎯 {item.get('title', '')}\n\n"
            f"{item.get('description') or 'Watch this highlight from our latest video!'}\n\n"
            f"{tag_line}"
        )
        content["media_urls"] = [item["thumbnail"]] if item.get("thumbnail") else []
    elif content_type == "blog" and item:
        content["content"] = (
            f"📝 New blog post: \"{item.get('title', '')}\"\n\n"
            f"{item.get('excerpt', '')}\n\nRead more 👇\n{tag_line}"
        )
        content["title"] = item.get("title")
        content["description"] = item.get("excerpt")
    return content


class SocialService:
    """Social integrations and post publishing."""

    def __init__(
        self,
        oauth: OAuthService = oauth_service,
        publish: PublishFn = publish_to_social_platform,
    ):
        self.oauth = oauth
        self.publish = publish

    async def list_integrations(
        self, session: AsyncSession, user_id: str
    ) -> List[SocialIntegration]:
        return await social_crud.list_integrations(session, user_id)

    async def disconnect_integration(
        self, session: AsyncSession, user_id: str, integration_id: UUID
    ) -> None:
        integration = await social_crud.get_integration(session, integration_id, user_id)
        if not integration:
            raise NotFoundError("Integration not found")
        await social_crud.delete_integration(session, integration)
        logger.info("Social integration removed", integration_id=str(integration_id))

    async def create_posts(
        self,
        session: AsyncSession,
        user_id: str,
        integration_ids: List[UUID],
        content: str,
        media_urls: Optional[List[str]] = None,
        hashtags: Optional[List[str]] = None,
        publish_date: Optional[datetime] = None,
        project_id: Optional[UUID] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> List[SocialPost]:
        """
        Create one post per integration.

        Posts with a publish date are ``scheduled``; the rest stay ``draft``.
        """
        if not integration_ids:
            raise ValidationError("Select at least one account")

        integrations = []
        for integration_id in integration_ids:
            integration = await social_crud.get_integration(session, integration_id, user_id)
            if not integration or integration.disabled:
                raise NotFoundError(f"Integration {integration_id} not found")
            limit = PLATFORM_CONFIGS[integration.platform].limits.text
            if len(content) > limit:
                raise ValidationError(
                    f"Content exceeds {integration.platform} limit of {limit} characters",
                    "CONTENT_TOO_LONG",
                )
            integrations.append(integration)

        state = PostState.SCHEDULED if publish_date else PostState.DRAFT
        posts = []
        for integration in integrations:
            post = await social_crud.create_post(
                session,
                user_id=user_id,
                integration_id=integration.id,
                project_id=project_id,
                content=content,
                media_urls=list(media_urls or []),
                hashtags=list(hashtags or []),
                publish_date=publish_date,
                state=state,
                meta=dict(metadata or {}),
            )
            posts.append(post)

        logger.info(
            "Social posts created",
            count=len(posts),
            state=state.value,
            publish_date=str(publish_date) if publish_date else None,
        )
        return posts

    async def list_posts(
        self,
        session: AsyncSession,
        user_id: str,
        state: Optional[PostState] = None,
        project_id: Optional[UUID] = None,
    ) -> List[SocialPost]:
        return await social_crud.list_posts(session, user_id, state, project_id)

    async def _get_owned_post(
        self, session: AsyncSession, user_id: str, post_id: UUID
    ) -> SocialPost:
        post = await social_crud.get_post(session, post_id, user_id)
        if not post:
            raise NotFoundError("Post not found")
        return post

    async def update_post(
        self, session: AsyncSession, user_id: str, post_id: UUID, updates: Dict[str, Any]
    ) -> SocialPost:
        """Edit content or schedule of a post that has not been published."""
        post = await self._get_owned_post(session, user_id, post_id)
        if post.state not in EDITABLE_STATES:
            raise AppError(
                f"Cannot edit a post in state {post.state.value}", "INVALID_STATE", 409
            )

        values = {
            key: value
            for key, value in updates.items()
            if key in ("content", "media_urls", "hashtags", "publish_date")
        }
        if "publish_date" in values:
            values["state"] = (
                PostState.SCHEDULED if values["publish_date"] else PostState.DRAFT
            )
            values["error"] = None
        return await social_crud.update_post(session, post, **values)

    async def cancel_post(
        self, session: AsyncSession, user_id: str, post_id: UUID
    ) -> SocialPost:
        post = await self._get_owned_post(session, user_id, post_id)
        if post.state not in EDITABLE_STATES:
            raise AppError(
                f"Cannot cancel a post in state {post.state.value}", "INVALID_STATE", 409
            )
        return await social_crud.update_post(session, post, state=PostState.CANCELLED)

    async def schedule_now(
        self, session: AsyncSession, user_id: str, post_id: UUID
    ) -> SocialPost:
        """Make a draft (or failed) post due immediately so it can be published."""
        post = await self._get_owned_post(session, user_id, post_id)
        if post.state in (PostState.DRAFT, PostState.FAILED):
            post = await social_crud.update_post(
                session,
                post,
                state=PostState.SCHEDULED,
                publish_date=utc_now(),
                error=None,
            )
        return post

    async def delete_post(self, session: AsyncSession, user_id: str, post_id: UUID) -> None:
        post = await self._get_owned_post(session, user_id, post_id)
        if post.state == PostState.PUBLISHING:
            raise AppError("Cannot delete a post while publishing", "INVALID_STATE", 409)
        await social_crud.delete_post(session, post)

    async def get_access_token(
        self, session: AsyncSession, integration: SocialIntegration
    ) -> str:
        """Decrypted access token, refreshed first when expired."""
        expiration = ensure_utc(integration.token_expiration)
        expired = expiration is not None and expiration <= utc_now() + TOKEN_REFRESH_MARGIN

        if expired and integration.refresh_token:
            refresh_token = encryption_service.decrypt(integration.refresh_token)
            try:
                token = await self.oauth.refresh_access_token(
                    integration.platform, refresh_token
                )
            except Exception:
                await social_crud.update_integration(
                    session, integration, refresh_needed=True
                )
                raise
            await social_crud.update_integration(
                session,
                integration,
                token=encryption_service.encrypt(token.access_token),
                refresh_token=encryption_service.encrypt(token.refresh_token),
                token_expiration=token.expiration(),
                refresh_needed=False,
            )
            logger.info("Access token refreshed", integration_id=str(integration.id))
            return token.access_token

        if expired:
            await social_crud.update_integration(session, integration, refresh_needed=True)
            raise AppError("Access token expired, reconnect the account", "TOKEN_EXPIRED", 401)

        return encryption_service.decrypt(integration.token)

    async def publish_post(
        self, session: AsyncSession, post_id: UUID, user_id: Optional[str] = None
    ) -> SocialPost:
        """
        Publish one post now.

        Only ``scheduled`` or ``publishing`` posts are eligible. The post ends
        up ``published`` with its platform id and URL, or ``failed`` with the
        error.
        """
        post = await social_crud.get_post(session, post_id, user_id)
        if not post:
            raise NotFoundError("Post not found")
        if post.state not in PUBLISHABLE_STATES:
            raise AppError(
                f"Post cannot be published from state {post.state.value}",
                "INVALID_STATE",
                409,
            )

        post = await social_crud.update_post(session, post, state=PostState.PUBLISHING)

        integration = await social_crud.get_integration(session, post.integration_id)
        if not integration or integration.disabled:
            return await self._mark_failed(session, post, "Integration not found")

        try:
            access_token = await self.get_access_token(session, integration)
            result = await self.publish(
                integration.platform,
                access_token,
                PublishOptions(
                    content=post.content,
                    media_urls=list(post.media_urls or []),
                    hashtags=list(post.hashtags or []),
                    metadata=dict(post.meta or {}),
                ),
            )
        except AppError as e:
            return await self._mark_failed(session, post, e.message)
        except Exception as e:
            logger.exception("Publishing raised", post_id=str(post.id), error=sanitize(str(e)))
            return await self._mark_failed(
                session, post, sanitize(str(e)) or type(e).__name__
            )

        if not result.success:
            return await self._mark_failed(session, post, result.error or "Publishing failed")

        analytics = dict(post.analytics or {})
        analytics["published_at"] = utc_now().isoformat()
        post = await social_crud.update_post(
            session,
            post,
            state=PostState.PUBLISHED,
            platform_post_id=result.platform_post_id,
            url=result.url,
            error=None,
            analytics=analytics,
        )
        logger.info(
            "Social post published",
            post_id=str(post.id),
            platform=integration.platform,
            platform_post_id=result.platform_post_id,
        )
        return post

    async def _mark_failed(
        self, session: AsyncSession, post: SocialPost, error: str
    ) -> SocialPost:
        logger.warning("Social post failed", post_id=str(post.id), error=error)
        return await social_crud.update_post(
            session, post, state=PostState.FAILED, error=error
        )

    async def publish_due_posts(
        self, session: AsyncSession, now: Optional[datetime] = None
    ) -> Dict[str, int]:
        """Publish every scheduled post whose publish date is not in the future."""
        now = now or utc_now()
        due = await social_crud.list_due_posts(session, now)

        summary = {"processed": 0, "published": 0, "failed": 0}
        for post_id in [post.id for post in due]:
            summary["processed"] += 1
            try:
                post = await self.publish_post(session, post_id)
            except AppError as e:
                logger.error("Scheduled publish skipped", post_id=str(post_id), error=e.message)
                summary["failed"] += 1
                continue
            except Exception as e:
                # One broken post must not stop the sweep
                logger.exception(
                    "Scheduled publish crashed", post_id=str(post_id), error=sanitize(str(e))
                )
                await session.rollback()
                summary["failed"] += 1
                continue
            if post.state == PostState.PUBLISHED:
                summary["published"] += 1
            else:
                summary["failed"] += 1

        if due:
            logger.info("Scheduled posts processed", **summary)
        return summary


social_service = SocialService()
