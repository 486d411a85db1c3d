"""
Staging: moves approved post suggestions into the review area.

Only suggestions with complete content (an image, plus caption, hashtags and
a call to action for every platform) can be staged.
"""

from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Dict, List, Optional, Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from inflio.config import settings
from inflio.crud.posts import post_suggestion_crud
from inflio.crud.staging import staging_crud
from inflio.models import (
    PostSuggestion,
    StagedContentType,
    StagedPost,
    StagingSession,
    SuggestionStatus,
    ensure_utc,
    utc_now,
)
from inflio.utils.logging import get_logger

logger = get_logger(__name__)

STAGEABLE_STATUSES = {SuggestionStatus.READY, SuggestionStatus.APPROVED}


@dataclass
class StagingResult:
    success: bool
    staged_id: Optional[UUID] = None
    error: Optional[str] = None


@dataclass
class BatchStagingResult:
    success: int = 0
    failed: int = 0
    errors: List[Dict[str, str]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"success": self.success, "failed": self.failed, "errors": self.errors}


def _platforms(suggestion: PostSuggestion, platforms: Optional[Sequence[str]]) -> List[str]:
    if platforms is not None:
        return list(platforms)
    return list(suggestion.eligible_platforms or [])


def _blank(value: Any) -> bool:
    return not value or not str(value).strip()


def is_post_ready_for_staging(
    suggestion: PostSuggestion, platforms: Optional[Sequence[str]] = None
) -> bool:
    return not get_missing_elements(suggestion, platforms)


def get_missing_elements(
    suggestion: PostSuggestion, platforms: Optional[Sequence[str]] = None
) -> List[str]:
    """Human-readable list of what keeps the suggestion out of staging."""
    platforms = _platforms(suggestion, platforms)
    missing = []

    if not platforms:
        missing.append("No platforms selected")

    images = suggestion.images or []
    if not images:
        missing.append("No images")
    elif not any(image.get("url") for image in images):
        missing.append("Images not generated yet")

    copy_variants = suggestion.copy_variants or {}
    if not copy_variants:
        missing.append("No captions")
        return missing

    for platform in platforms:
        copy = copy_variants.get(platform)
        if not copy:
            missing.append(f"Missing {platform} content")
            continue
        if _blank(copy.get("caption")):
            missing.append(f"{platform} caption")
        if not copy.get("hashtags"):
            missing.append(f"{platform} hashtags")
        if _blank(copy.get("cta")):
            missing.append(f"{platform} CTA")
    return missing


def map_content_type(content_type: str) -> StagedContentType:
    if content_type == "carousel":
        return StagedContentType.CAROUSEL
    if content_type in ("blog", "thread"):
        return StagedContentType.BLOG
    if content_type in ("reel", "video"):
        return StagedContentType.CLIP
    return StagedContentType.IMAGE


def build_platform_content(
    suggestion: PostSuggestion, platforms: Optional[Sequence[str]] = None
) -> Dict[str, Dict[str, Any]]:
    content = {}
    for platform in _platforms(suggestion, platforms):
        copy = (suggestion.copy_variants or {}).get(platform)
        if not copy:
            continue
        caption = copy.get("caption") or ""
        content[platform] = {
            "caption": caption,
            "hashtags": list(copy.get("hashtags") or []),
            "mentions": [],
            "title": copy.get("title") or suggestion.title,
            "description": copy.get("description") or suggestion.description,
            "cta": copy.get("cta"),
            "alt_text": f"{suggestion.title} - {suggestion.description}",
            "character_count": len(caption),
            "is_valid": True,
            "validation_errors": [],
        }
    return content


def session_item(suggestion: PostSuggestion) -> Dict[str, Any]:
    """Compact suggestion summary stored in a staging session."""
    images = suggestion.images or []
    return {
        "id": str(suggestion.id),
        "type": map_content_type(suggestion.content_type).value,
        "title": suggestion.title,
        "description": suggestion.description,
        "platforms": list(suggestion.eligible_platforms or []),
        "media_urls": [image["url"] for image in images if image.get("url")],
        "copy_variants": suggestion.copy_variants or {},
    }


class StagingService:
    """Staged posts and per-project staging sessions."""

    async def send_to_staging(
        self,
        session: AsyncSession,
        suggestion: PostSuggestion,
        user_id: str,
        platforms: Optional[Sequence[str]] = None,
    ) -> StagingResult:
        """
        Stage one suggestion.

        Only ``ready`` or ``approved`` suggestions can be staged, and
        incomplete ones are refused with the missing elements. A staged
        suggestion moves to ``staged``.
        """
        if suggestion.status not in STAGEABLE_STATUSES:
            return StagingResult(
                success=False,
                error=f"Post cannot be staged from status {suggestion.status.value}",
            )

        missing = get_missing_elements(suggestion, platforms)
        if missing:
            return StagingResult(
                success=False, error=f"Post is not ready. Missing: {', '.join(missing)}"
            )

        media_urls = [image["url"] for image in suggestion.images if image.get("url")]
        metadata: Dict[str, Any] = {
            "suggestion_id": str(suggestion.id),
            "project_id": str(suggestion.project_id),
            "content_type": suggestion.content_type.value,
            "generated_at": utc_now().isoformat(),
        }
        if suggestion.engagement_prediction is not None:
            metadata["analytics"] = {
                "estimated_reach": round(suggestion.engagement_prediction * 10000)
            }

        staged: StagedPost = await staging_crud.create_staged_post(
            session,
            user_id=user_id,
            project_id=suggestion.project_id,
            suggestion_id=suggestion.id,
            title=suggestion.title or "",
            description=suggestion.description,
            type=map_content_type(suggestion.content_type),
            platforms=_platforms(suggestion, platforms),
            platform_content=build_platform_content(suggestion, platforms),
            media_urls=media_urls,
            thumbnail_url=media_urls[0],
            meta=metadata,
            status="ready",
        )
        await post_suggestion_crud.update(
            session, suggestion, status=SuggestionStatus.STAGED, staged_at=utc_now()
        )
        logger.info("Suggestion staged", suggestion_id=str(suggestion.id), staged_id=str(staged.id))
        return StagingResult(success=True, staged_id=staged.id)

    async def send_batch_to_staging(
        self,
        session: AsyncSession,
        user_id: str,
        suggestion_ids: List[UUID],
    ) -> BatchStagingResult:
        result = BatchStagingResult()
        suggestions = {
            s.id: s for s in await post_suggestion_crud.get_many(session, suggestion_ids, user_id)
        }

        for suggestion_id in suggestion_ids:
            suggestion = suggestions.get(suggestion_id)
            if not suggestion:
                outcome = StagingResult(success=False, error="Suggestion not found")
            else:
                outcome = await self.send_to_staging(session, suggestion, user_id)

            if outcome.success:
                result.success += 1
            else:
                result.failed += 1
                result.errors.append({"id": str(suggestion_id), "error": outcome.error})

        logger.info("Batch staging finished", success=result.success, failed=result.failed)
        return result

    async def save_staging_session(
        self,
        session: AsyncSession,
        user_id: str,
        project_id: UUID,
        suggestions: Sequence[PostSuggestion],
    ) -> StagingSession:
        """Replace the user's session for the project; it expires after the TTL."""
        data = {
            "ids": [str(s.id) for s in suggestions],
            "items": [session_item(s) for s in suggestions],
        }
        expires_at = utc_now() + timedelta(hours=settings.staging_session_ttl_hours)
        return await staging_crud.replace_session(
            session, user_id, project_id, data, expires_at
        )

    async def get_staging_session(
        self, session: AsyncSession, user_id: str, project_id: UUID
    ) -> Optional[Dict[str, Any]]:
        """Selected content of the latest live session, or None."""
        staging_session = await staging_crud.get_session(session, user_id, project_id)
        if not staging_session:
            return None
        if ensure_utc(staging_session.expires_at) < utc_now():
            return None
        return staging_session.selected_content

    async def cleanup_expired_sessions(self, session: AsyncSession) -> int:
        deleted = await staging_crud.delete_expired(session, utc_now())
        if deleted:
            logger.info("Expired staging sessions removed", count=deleted)
        return deleted


staging_service = StagingService()
