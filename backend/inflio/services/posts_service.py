"""
Post suggestion generation.

Turns a processed project into ready-to-review social posts: a content
idea per content type, images, per-platform copy and the platforms the
result is eligible for. Works without provider keys by falling back to
template content.
"""

import random
from typing import Any, Dict, List, Optional, Sequence, Tuple
from uuid import UUID, uuid4

from sqlalchemy.ext.asyncio import AsyncSession

from inflio.crud.persona import persona_crud
from inflio.crud.posts import post_job_crud, post_suggestion_crud
from inflio.crud.project import project_crud
from inflio.errors import AIError, AppError, NotFoundError, ValidationError
from inflio.graph.pipeline import run_suggestion_pipeline
from inflio.models import (
    JobStatus,
    PersonaStatus,
    Platform,
    PostContentType,
    PostGenerationJob,
    PostSuggestion,
    Project,
    SuggestionStatus,
    utc_now,
)
from inflio.services.ai_error_handler import (
    FALLBACK_DEFAULT,
    AIErrorOptions,
    validate_ai_response,
    with_ai_error_handling,
)
from inflio.services.image_service import ASPECT_RATIO_DIMENSIONS, ImageService, image_service
from inflio.services.llm_service import LLMService, llm_service
from inflio.services.mock_posts import MockPostsGenerator, mock_posts_generator
from inflio.services.staging_service import StagingService, staging_service
from inflio.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_CONTENT_TYPES = [
    PostContentType.CAROUSEL,
    PostContentType.QUOTE,
    PostContentType.SINGLE,
    PostContentType.THREAD,
]
DEFAULT_PLATFORMS = [p.value for p in Platform]

CONTENT_TYPE_DESCRIPTIONS = {
    "carousel": "Multi-slide educational or storytelling post (3-8 slides)",
    "quote": "Powerful quote with speaker attribution and visual design",
    "single": "Single impactful image with hook or key message",
    "thread": "Text-based thread with 1-3 supporting visuals",
    "reel": "Short vertical video concept with a strong cover frame",
    "story": "Vertical story frame with one clear message",
}

IDEA_REQUIRED_FIELDS = ["title", "description", "key_message", "hook", "prompt"]

PLATFORM_COPY_LIMITS: Dict[str, Dict[str, int]] = {
    "instagram": {"caption": 2200, "hashtags": 30},
    "twitter": {"caption": 280, "hashtags": 5},
    "linkedin": {"caption": 3000, "hashtags": 5},
    "facebook": {"caption": 2200, "hashtags": 30},
    "youtube": {"title": 100, "description": 5000},
    "tiktok": {"caption": 2200, "hashtags": 100},
}

PLATFORM_REQUIREMENTS: Dict[str, Dict[str, Any]] = {
    "instagram": {
        "max_caption_length": 2200,
        "max_hashtags": 30,
        "max_images": 10,
        "image_sizes": ["1080x1350", "1080x1080"],
        "video_max_duration": 60,
    },
    "twitter": {
        "max_caption_length": 280,
        "max_hashtags": 5,
        "max_images": 4,
        "image_sizes": ["1920x1080", "1200x675"],
        "video_max_duration": 140,
    },
    "linkedin": {
        "max_caption_length": 3000,
        "max_hashtags": 5,
        "max_images": 9,
        "image_sizes": ["1200x628", "1080x1080"],
        "video_max_duration": 600,
    },
    "facebook": {
        "max_caption_length": 2200,
        "max_hashtags": 30,
        "max_images": 10,
        "image_sizes": ["1200x630", "1080x1080"],
        "video_max_duration": 240,
    },
    "youtube": {
        "max_title_length": 100,
        "max_description_length": 5000,
        "max_tags": 500,
        "thumbnail_size": "1280x720",
        "shorts_max_duration": 60,
    },
    "tiktok": {
        "max_caption_length": 2200,
        "max_hashtags": 100,
        "video_only": True,
        "max_duration": 180,
        "min_duration": 3,
    },
}

EDITABLE_COPY_FIELDS = ("caption", "hashtags", "cta", "title", "description")


def image_count_for(content_type: str) -> int:
    if content_type == PostContentType.CAROUSEL:
        return 5
    if content_type == PostContentType.THREAD:
        return 2
    return 1


def calculate_engagement_prediction(
    content_analysis: Optional[Dict[str, Any]],
    content_type: str,
    platforms: Sequence[str],
) -> float:
    """Heuristic engagement score in ``[0, 0.95]``."""
    analysis = content_analysis or {}
    score = 0.5

    if analysis.get("sentiment") == "positive":
        score += 0.1
    if len(analysis.get("keywords") or []) > 5:
        score += 0.05
    if len(analysis.get("topics") or []) > 3:
        score += 0.05

    if content_type == PostContentType.CAROUSEL:
        score += 0.15
    if content_type == PostContentType.QUOTE:
        score += 0.1

    if "instagram" in platforms and content_type == PostContentType.CAROUSEL:
        score += 0.1
    if "twitter" in platforms and content_type == PostContentType.THREAD:
        score += 0.1
    if "linkedin" in platforms and content_type == PostContentType.SINGLE:
        score += 0.05

    return max(0.0, min(score, 0.95))


def build_image_prompt(
    content_idea: Dict[str, Any],
    content_type: str,
    slide_number: int,
    total_slides: int,
    persona_id: Optional[Any] = None,
) -> str:
    prompt = content_idea.get("prompt") or ""

    if content_type == PostContentType.CAROUSEL:
        prompt += f" Slide {slide_number} of {total_slides}."
        if slide_number == 1:
            prompt += " Hook slide with compelling visual and minimal text."
        elif slide_number == total_slides:
            prompt += " Call-to-action slide with clear next steps."
        else:
            prompt += f" Content point {slide_number - 1}."

    if content_type == PostContentType.QUOTE:
        prompt += (
            " Large, readable quote text with speaker attribution."
            " Professional, shareable design."
        )

    if persona_id:
        prompt += " Feature the speaker prominently with professional lighting and composition."

    prompt += " High quality, professional, social media ready, vibrant colors, sharp details."
    return prompt


def determine_eligibility(
    content_type: str, image_count: int, copy_variants: Dict[str, Dict[str, Any]]
) -> List[str]:
    """Platforms whose caption and media limits the suggestion fits."""

    def caption_len(platform: str) -> int:
        return len((copy_variants.get(platform) or {}).get("caption") or "")

    eligible = []
    is_carousel = content_type == PostContentType.CAROUSEL

    if "instagram" in copy_variants and caption_len("instagram") <= 2200 and (
        not is_carousel or image_count <= 10
    ):
        eligible.append("instagram")
    if "twitter" in copy_variants and caption_len("twitter") <= 280 and image_count <= 4:
        eligible.append("twitter")
    if "linkedin" in copy_variants and caption_len("linkedin") <= 3000 and image_count <= 9:
        eligible.append("linkedin")
    if "facebook" in copy_variants and caption_len("facebook") <= 2200 and (
        not is_carousel or image_count <= 10
    ):
        eligible.append("facebook")
    # YouTube only takes a single image, as a thumbnail
    if content_type == PostContentType.SINGLE and "youtube" in copy_variants:
        eligible.append("youtube")
    # TikTok needs video; static images are never eligible
    return eligible


def get_platform_requirements() -> Dict[str, Dict[str, Any]]:
    return {platform: dict(values) for platform, values in PLATFORM_REQUIREMENTS.items()}


def _transcript_text(project: Project) -> Optional[str]:
    transcription = project.transcription or {}
    return transcription.get("text") or None


class PostsService:
    """Generates, edits and approves post suggestions."""

    def __init__(
        self,
        llm: LLMService = llm_service,
        images: ImageService = image_service,
        mock: MockPostsGenerator = mock_posts_generator,
        staging: StagingService = staging_service,
    ):
        self.llm = llm
        self.images = images
        self.mock = mock
        self.staging = staging

    @property
    def generation_model(self) -> str:
        return self.llm.model_name if self.llm.is_configured else "mock"

    async def generate_post_suggestions(
        self,
        session: AsyncSession,
        user_id: str,
        project_id: UUID,
        content_types: Optional[List[str]] = None,
        platforms: Optional[List[str]] = None,
        persona_id: Optional[UUID] = None,
        creativity: float = 0.7,
    ) -> Tuple[PostGenerationJob, List[PostSuggestion]]:
        """
        Generate one suggestion per content type under a tracked job.

        The job is ``completed`` with the suggestion ids, or ``failed`` with
        the error (which is re-raised).
        """
        project = await project_crud.get_by_id(session, project_id, user_id)
        if not project:
            raise NotFoundError("Project not found")

        content_types = [PostContentType(t) for t in (content_types or DEFAULT_CONTENT_TYPES)]
        platforms = [Platform(p).value for p in (platforms or DEFAULT_PLATFORMS)]

        job = await post_job_crud.create(
            session,
            project_id=project.id,
            user_id=user_id,
            status=JobStatus.RUNNING,
            input_params={
                "content_types": [t.value for t in content_types],
                "platforms": platforms,
                "persona_id": str(persona_id) if persona_id else None,
                "creativity": creativity,
            },
            total_items=len(content_types),
        )
        logger.info(
            "Post generation started",
            job_id=str(job.id),
            project_id=str(project.id),
            total=len(content_types),
        )

        suggestions: List[PostSuggestion] = []
        try:
            for content_type in content_types:
                suggestion = await self.generate_single_suggestion(
                    session,
                    project=project,
                    user_id=user_id,
                    content_type=content_type,
                    platforms=platforms,
                    persona_id=persona_id,
                    generation_params={"creativity": creativity},
                )
                suggestions.append(suggestion)
                job = await post_job_crud.update(
                    session, job, completed_items=len(suggestions)
                )
        except Exception as e:
            await post_job_crud.update(
                session,
                job,
                status=JobStatus.FAILED,
                error_message=str(e) or "Unknown error",
            )
            logger.error("Post generation failed", job_id=str(job.id), error=str(e))
            raise

        job = await post_job_crud.update(
            session,
            job,
            status=JobStatus.COMPLETED,
            completed_at=utc_now(),
            output_data={"suggestion_ids": [str(s.id) for s in suggestions]},
        )
        logger.info("Post generation completed", job_id=str(job.id), count=len(suggestions))
        return job, suggestions

    async def generate_single_suggestion(
        self,
        session: AsyncSession,
        project: Project,
        user_id: str,
        content_type: PostContentType,
        platforms: List[str],
        persona_id: Optional[UUID] = None,
        generation_params: Optional[Dict[str, Any]] = None,
    ) -> PostSuggestion:
        params = dict(generation_params or {})
        content_idea = await self.generate_content_idea(
            content_type=content_type,
            content_analysis=project.content_analysis,
            project_title=project.title,
            transcript=_transcript_text(project),
            creativity=params.get("creativity", 0.7),
        )
        engagement = calculate_engagement_prediction(
            project.content_analysis, content_type, platforms
        )

        suggestion = await post_suggestion_crud.create(
            session,
            project_id=project.id,
            user_id=user_id,
            content_type=content_type,
            title=content_idea.get("title"),
            description=content_idea.get("description"),
            persona_id=persona_id,
            persona_used=persona_id is not None,
            status=SuggestionStatus.GENERATING,
            generation_prompt=content_idea.get("prompt"),
            generation_model=self.generation_model,
            generation_params=params,
        )

        try:
            suggestion = await self._render_suggestion(
                session, suggestion, content_idea, platforms, engagement
            )
        except Exception as e:
            await post_suggestion_crud.update(
                session,
                suggestion,
                status=SuggestionStatus.FAILED,
                error_message=str(e) or "Unknown error",
            )
            logger.error(
                "Suggestion generation failed", suggestion_id=str(suggestion.id), error=str(e)
            )
            raise
        return suggestion

    async def _render_suggestion(
        self,
        session: AsyncSession,
        suggestion: PostSuggestion,
        content_idea: Dict[str, Any],
        platforms: List[str],
        engagement: Optional[float],
    ) -> PostSuggestion:
        """Run the media/copy pipeline and persist a ``ready`` suggestion."""
        lora_url = await self._persona_lora_url(session, suggestion.persona_id)
        state = await run_suggestion_pipeline(
            self,
            suggestion_id=str(suggestion.id),
            user_id=suggestion.user_id,
            content_type=suggestion.content_type.value,
            content_idea=content_idea,
            platforms=platforms,
            persona_id=str(suggestion.persona_id) if suggestion.persona_id else None,
            lora_url=lora_url,
        )

        values: Dict[str, Any] = {
            "images": state["images"],
            "copy_variants": state["copy_variants"],
            "eligible_platforms": state["eligible_platforms"],
            "platform_requirements": get_platform_requirements(),
            "rating": round(4 + random.random()),
            "status": SuggestionStatus.READY,
            "error_message": None,
        }
        if engagement is not None:
            values["engagement_prediction"] = engagement
        return await post_suggestion_crud.update(session, suggestion, **values)

    async def _persona_lora_url(
        self, session: AsyncSession, persona_id: Optional[UUID]
    ) -> Optional[str]:
        if not persona_id:
            return None
        persona = await persona_crud.get_by_id(session, persona_id)
        if persona and persona.status == PersonaStatus.TRAINED:
            return persona.lora_model_url
        return None

    async def generate_content_idea(
        self,
        content_type: str,
        content_analysis: Optional[Dict[str, Any]],
        project_title: str,
        transcript: Optional[str] = None,
        creativity: float = 0.7,
        feedback: Optional[str] = None,
    ) -> Dict[str, Any]:
        """LLM content idea; template idea when the LLM is unavailable."""
        content_type = PostContentType(content_type).value
        if not self.llm.is_configured:
            return self.mock.generate_mock_content_idea(content_type, project_title)

        analysis = content_analysis or {}
        system_prompt = (
            "You are a viral social media content strategist. "
            f"Create compelling {content_type} content ideas that maximize engagement."
        )
        user_prompt = (
            f'Create a {CONTENT_TYPE_DESCRIPTIONS[content_type]} for the video "{project_title}".\n\n'
            "Content Analysis:\n"
            f"- Topics: {', '.join(analysis.get('topics') or []) or 'N/A'}\n"
            f"- Keywords: {', '.join(analysis.get('keywords') or []) or 'N/A'}\n"
            f"- Key Points: {'; '.join(analysis.get('keyPoints') or []) or 'N/A'}\n"
            f"- Mood: {analysis.get('mood') or 'professional'}\n\n"
        )
        if transcript:
            user_prompt += f"Transcript excerpt: {transcript[:500]}...\n\n"
        if feedback:
            user_prompt += f"Revise the previous idea using this feedback: {feedback}\n\n"
        user_prompt += (
            "Return a JSON object with:\n"
            "{\n"
            '  "title": "Catchy title for the post",\n'
            '  "description": "Brief description of the content",\n'
            '  "visual_elements": ["element1", "element2", ...],\n'
            '  "key_message": "Core message to convey",\n'
            '  "hook": "Attention-grabbing opening",\n'
            '  "prompt": "Detailed prompt for image generation"\n'
            "}"
        )

        async def operation() -> Dict[str, Any]:
            idea = await self.llm.generate_json(
                system_prompt, user_prompt, temperature=creativity, max_tokens=1000
            )
            if not validate_ai_response(idea, IDEA_REQUIRED_FIELDS):
                raise AIError("Content idea is missing fields", retryable=False)
            return idea

        idea = await with_ai_error_handling(
            operation,
            AIErrorOptions(fallback_behavior=FALLBACK_DEFAULT, context="generate_content_idea"),
        )
        if not idea:
            logger.warning("Falling back to template idea", content_type=content_type)
            return self.mock.generate_mock_content_idea(content_type, project_title)
        return idea

    async def generate_post_images(
        self,
        content_type: str,
        content_idea: Dict[str, Any],
        persona_id: Optional[Any] = None,
        lora_url: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """
        Render the post's images in order.

        A failed render becomes a placeholder entry with status ``failed``
        so positions stay contiguous.
        """
        count = image_count_for(content_type)
        if not self.images.is_configured:
            return self.mock.generate_mock_images(count)

        aspect_ratio = "4:5" if content_type == PostContentType.CAROUSEL else "16:9"
        dimensions = ASPECT_RATIO_DIMENSIONS[aspect_ratio]
        model = self.images.model_name(lora_url)

        images = []
        for i in range(count):
            prompt = build_image_prompt(content_idea, content_type, i + 1, count, persona_id)
            image: Dict[str, Any] = {
                "id": str(uuid4()),
                "position": i,
                "prompt": prompt,
                "model": model,
                "dimensions": dimensions,
            }
            try:
                image["url"] = await self.images.generate_with_flux(
                    prompt, aspect_ratio=aspect_ratio, lora_url=lora_url
                )
                image["status"] = "generated"
            except Exception as e:
                logger.error("Image generation failed", position=i + 1, error=str(e))
                image["url"] = f"https://placehold.co/{dimensions}/png?text=Image+{i + 1}"
                image["status"] = "failed"
                image["error"] = str(e)
            images.append(image)
        return images

    async def generate_platform_copy(
        self,
        content_idea: Dict[str, Any],
        platforms: List[str],
        content_type: str,
    ) -> Dict[str, Dict[str, Any]]:
        """Copy per platform; a platform whose generation fails is left out."""
        copy_variants: Dict[str, Dict[str, Any]] = {}
        for platform in platforms:
            if not self.llm.is_configured:
                copy_variants[platform] = self.mock.generate_mock_platform_copy(
                    content_idea, platform
                )
                continue

            copy = await with_ai_error_handling(
                lambda p=platform: self._generate_copy(content_idea, p, content_type),
                AIErrorOptions(
                    fallback_behavior=FALLBACK_DEFAULT,
                    user_notification=False,
                    context=f"generate_{platform}_copy",
                ),
            )
            if copy:
                copy_variants[platform] = copy
            else:
                logger.warning("Platform copy skipped", platform=platform)
        return copy_variants

    async def _generate_copy(
        self, content_idea: Dict[str, Any], platform: str, content_type: str
    ) -> Dict[str, Any]:
        limits = PLATFORM_COPY_LIMITS[platform]
        wants_title = platform in ("youtube", "linkedin")

        system_prompt = (
            f"You are a {platform} content expert. Create engaging, platform-optimized copy."
        )
        user_prompt = (
            f"Create {platform} copy for this {content_type} post:\n"
            f"Title: {content_idea.get('title')}\n"
            f"Description: {content_idea.get('description')}\n"
            f"Key Message: {content_idea.get('key_message')}\n"
            f"Hook: {content_idea.get('hook')}\n\n"
            "Platform limits:\n"
            f"- Caption: {limits.get('caption', limits.get('description'))} characters\n"
            f"- Hashtags: {limits.get('hashtags', 0)} max\n\n"
            "Return JSON:\n"
            "{\n"
            '  "caption": "Engaging caption within character limit",\n'
            '  "hashtags": ["hashtag1", "hashtag2", ...],\n'
            '  "cta": "Call to action"'
        )
        if wants_title:
            user_prompt += ',\n  "title": "Post title",\n  "description": "Detailed description"'
        user_prompt += "\n}"

        copy = await self.llm.generate_json(system_prompt, user_prompt, max_tokens=800)
        copy.setdefault("caption", "")
        copy["hashtags"] = [str(tag).lstrip("#") for tag in copy.get("hashtags") or []]
        return copy

    def determine_eligibility(
        self, content_type: str, image_count: int, copy_variants: Dict[str, Dict[str, Any]]
    ) -> List[str]:
        return determine_eligibility(content_type, image_count, copy_variants)

    async def _get_owned_suggestion(
        self, session: AsyncSession, user_id: str, suggestion_id: UUID
    ) -> PostSuggestion:
        suggestion = await post_suggestion_crud.get_by_id(session, suggestion_id, user_id)
        if not suggestion:
            raise NotFoundError("Suggestion not found")
        return suggestion

    async def list_suggestions(
        self,
        session: AsyncSession,
        user_id: str,
        project_id: UUID,
        status: Optional[SuggestionStatus] = None,
    ) -> List[PostSuggestion]:
        return await post_suggestion_crud.list_by_project(session, project_id, user_id, status)

    async def get_job(
        self, session: AsyncSession, user_id: str, job_id: UUID
    ) -> PostGenerationJob:
        job = await post_job_crud.get_by_id(session, job_id, user_id)
        if not job:
            raise NotFoundError("Generation job not found")
        return job

    async def regenerate_suggestion(
        self,
        session: AsyncSession,
        user_id: str,
        suggestion_id: UUID,
        feedback: Optional[str] = None,
    ) -> PostSuggestion:
        """Regenerate idea, images and copy, steering the idea with ``feedback``."""
        suggestion = await self._get_owned_suggestion(session, user_id, suggestion_id)
        if suggestion.status in (SuggestionStatus.GENERATING, SuggestionStatus.STAGED):
            raise AppError(
                f"Cannot regenerate a suggestion in state {suggestion.status.value}",
                "INVALID_STATE",
                409,
            )
        project = await project_crud.get_by_id(session, suggestion.project_id, user_id)
        if not project:
            raise NotFoundError("Project not found")

        platforms = list(suggestion.copy_variants.keys()) or DEFAULT_PLATFORMS
        content_idea = await self.generate_content_idea(
            content_type=suggestion.content_type,
            content_analysis=project.content_analysis,
            project_title=project.title,
            transcript=_transcript_text(project),
            creativity=(suggestion.generation_params or {}).get("creativity", 0.7),
            feedback=feedback,
        )
        suggestion = await post_suggestion_crud.update(
            session,
            suggestion,
            feedback=feedback or suggestion.feedback,
            title=content_idea.get("title"),
            description=content_idea.get("description"),
            generation_prompt=content_idea.get("prompt"),
            status=SuggestionStatus.GENERATING,
            approved_at=None,
        )

        try:
            suggestion = await self._render_suggestion(
                session, suggestion, content_idea, platforms, None
            )
        except Exception as e:
            await post_suggestion_crud.update(
                session,
                suggestion,
                status=SuggestionStatus.FAILED,
                error_message=str(e) or "Unknown error",
            )
            raise
        logger.info("Suggestion regenerated", suggestion_id=str(suggestion.id))
        return suggestion

    async def update_post_copy(
        self,
        session: AsyncSession,
        user_id: str,
        suggestion_id: UUID,
        platform: str,
        updates: Dict[str, Any],
    ) -> PostSuggestion:
        """Edit one platform's copy; eligibility is recomputed."""
        suggestion = await self._get_owned_suggestion(session, user_id, suggestion_id)
        platform = Platform(platform).value
        copy_variants = {k: dict(v) for k, v in (suggestion.copy_variants or {}).items()}
        if platform not in copy_variants:
            raise ValidationError(f"Suggestion has no {platform} copy")

        copy = copy_variants[platform]
        for key in EDITABLE_COPY_FIELDS:
            if updates.get(key) is not None:
                copy[key] = updates[key]
        copy["is_edited"] = True

        eligible = determine_eligibility(
            suggestion.content_type, len(suggestion.images or []), copy_variants
        )
        return await post_suggestion_crud.update(
            session, suggestion, copy_variants=copy_variants, eligible_platforms=eligible
        )

    async def approve_suggestion(
        self, session: AsyncSession, user_id: str, suggestion_id: UUID
    ) -> PostSuggestion:
        """
        ``ready`` -> ``approved``; the suggestion is saved as the user's
        staging session for the project.
        """
        suggestion = await self._get_owned_suggestion(session, user_id, suggestion_id)
        if suggestion.status != SuggestionStatus.READY:
            raise AppError(
                f"Only ready suggestions can be approved (status: {suggestion.status.value})",
                "INVALID_STATE",
                409,
            )

        suggestion = await post_suggestion_crud.update(
            session, suggestion, status=SuggestionStatus.APPROVED, approved_at=utc_now()
        )
        await self.staging.save_staging_session(
            session,
            user_id=user_id,
            project_id=suggestion.project_id,
            suggestions=[suggestion],
        )
        logger.info("Suggestion approved", suggestion_id=str(suggestion.id))
        return suggestion


posts_service = PostsService()
