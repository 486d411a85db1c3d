"""
Video processing: transcription and clip generation for a project.

Both tasks run concurrently; a failing task is marked ``failed`` on its own
without cancelling the other. Providers (AssemblyAI, Klap) are used when
their keys are configured, otherwise template results are produced so the
downstream flow can be exercised.
"""

import asyncio
import re
from typing import Any, AsyncContextManager, Awaitable, Callable, Dict, List, Optional
from uuid import UUID

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from inflio.config import settings
from inflio.crud.project import project_crud
from inflio.database import get_session_context
from inflio.errors import AppError, NotFoundError, ValidationError
from inflio.models import Project, ProjectStatus, TaskStatus, TaskType
from inflio.services.ai_error_handler import (
    FALLBACK_SILENT,
    AIErrorOptions,
    with_ai_error_handling,
)
from inflio.services.llm_service import LLMService, llm_service
from inflio.services.retry import request_with_retry
from inflio.services.task_tracker import TaskTracker, initial_tasks, task_tracker
from inflio.utils.logging import get_logger

logger = get_logger(__name__)

PROCESSING_TASKS = [TaskType.TRANSCRIPTION, TaskType.CLIPS]

MOCK_SEGMENTS = [
    "Welcome to this video. Today we're going to explore some amazing content.",
    "First, let's talk about the main topic and why it's important.",
    "There are three key points we need to understand.",
    "The first point is about innovation and creativity in our approach.",
    "The second point focuses on implementation and best practices.",
    "And finally, the third point brings everything together with real-world examples.",
]
MOCK_CONFIDENCES = [0.98, 0.95, 0.97, 0.96, 0.94, 0.98]

SENTENCE_END = re.compile(r"[.!?]$")


def generate_mock_transcription(language: str = "en") -> Dict[str, Any]:
    segments = [
        {
            "id": f"seg-{i}",
            "text": text,
            "start": i * 5,
            "end": (i + 1) * 5,
            "confidence": MOCK_CONFIDENCES[i],
        }
        for i, text in enumerate(MOCK_SEGMENTS)
    ]
    return {
        "text": " ".join(s["text"] for s in segments),
        "segments": segments,
        "language": language,
        "duration": 30,
    }


def group_words(words: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Group word timings (milliseconds) into sentence segments (seconds).

    A segment closes at sentence punctuation, at a comma once it holds 15
    words, or at the last word.
    """
    segments: List[Dict[str, Any]] = []
    current: List[Dict[str, Any]] = []

    for index, word in enumerate(words):
        current.append(word)
        text = word.get("text", "")
        is_end = bool(SENTENCE_END.search(text))
        is_long = len(current) >= 15 and "," in text
        if is_end or is_long or index == len(words) - 1:
            segments.append(
                {
                    "id": f"seg-{len(segments)}",
                    "text": " ".join(w.get("text", "") for w in current).strip(),
                    "start": current[0].get("start", 0) / 1000,
                    "end": current[-1].get("end", 0) / 1000,
                    "confidence": sum(w.get("confidence", 0) for w in current) / len(current),
                }
            )
            current = []
    return segments


def clips_from_segments(segments: List[Dict[str, Any]], per_clip: int = 2) -> List[Dict[str, Any]]:
    """Template clips: consecutive transcript segments joined into short clips."""
    clips = []
    for i in range(0, len(segments), per_clip):
        group = segments[i : i + per_clip]
        text = " ".join(s["text"] for s in group)
        clips.append(
            {
                "id": f"clip-{len(clips)}",
                "title": " ".join(text.split()[:6]),
                "description": text,
                "start_time": group[0]["start"],
                "end_time": group[-1]["end"],
                "duration": group[-1]["end"] - group[0]["start"],
                "score": round(sum(s.get("confidence", 0) for s in group) / len(group), 2),
                "thumbnail": None,
                "export_url": None,
            }
        )
    return clips


class ProcessingService:
    """Starts project processing and runs the provider calls."""

    def __init__(
        self,
        tracker: TaskTracker = task_tracker,
        llm: LLMService = llm_service,
        session_factory: Callable[[], AsyncContextManager[AsyncSession]] = get_session_context,
        client: Optional[httpx.AsyncClient] = None,
        sleep: Callable[[float], Any] = asyncio.sleep,
    ):
        self.tracker = tracker
        self.llm = llm
        self.session_factory = session_factory
        self._client = client
        self.sleep = sleep
        # Task writes are read-modify-write on Project.tasks; one writer per project
        self._locks: Dict[UUID, asyncio.Lock] = {}

    def _http(self) -> httpx.AsyncClient:
        return self._client or httpx.AsyncClient(timeout=settings.http_timeout_seconds)

    def _lock(self, project_id: UUID) -> asyncio.Lock:
        if project_id not in self._locks:
            self._locks[project_id] = asyncio.Lock()
        return self._locks[project_id]

    async def start_processing(
        self, session: AsyncSession, user_id: str, project_id: UUID
    ) -> Project:
        """
        Reset the project's tasks to ``pending`` and mark it ``processing``.

        The caller schedules :meth:`run_processing` afterwards.
        """
        project = await project_crud.get_by_id(session, project_id, user_id)
        if not project:
            raise NotFoundError("Project not found")
        if not project.video_url:
            raise ValidationError("Project has no video to process")
        if project.status == ProjectStatus.PROCESSING and any(
            t.get("status") == TaskStatus.PROCESSING.value for t in project.tasks or []
        ):
            raise AppError("Project is already processing", "ALREADY_PROCESSING", 409)

        project = await project_crud.update(
            session,
            project,
            tasks=initial_tasks(PROCESSING_TASKS),
            status=ProjectStatus.PROCESSING,
        )
        logger.info("Processing started", project_id=str(project.id))
        return project

    async def run_processing(self, project_id: UUID) -> None:
        """Background entry point: run every task concurrently."""
        async with self.session_factory() as session:
            project = await project_crud.get_by_id(session, project_id)
            if not project:
                logger.warning("Processing target disappeared", project_id=str(project_id))
                return
            video_url = project.video_url

        transcription = asyncio.ensure_future(self.run_transcription(project_id, video_url))
        results = await asyncio.gather(
            transcription,
            self.run_clip_generation(project_id, video_url, transcription),
            return_exceptions=True,
        )
        self._locks.pop(project_id, None)
        failed = [r for r in results if isinstance(r, BaseException)]
        logger.info(
            "Processing finished",
            project_id=str(project_id),
            failed_tasks=len(failed),
        )

    async def _set_task(
        self,
        project_id: UUID,
        task_type: TaskType,
        progress: float,
        status: Optional[TaskStatus] = None,
        error: Optional[str] = None,
        **project_values: Any,
    ) -> None:
        async with self._lock(project_id), self.session_factory() as session:
            if project_values:
                project = await project_crud.get_by_id(session, project_id)
                if project:
                    if "folders" in project_values:
                        # Merge into the stored folders while holding the lock
                        project_values["folders"] = {
                            **(project.folders or {}),
                            **project_values["folders"],
                        }
                    await project_crud.update(session, project, **project_values)
            await self.tracker.update_task_progress(
                session, project_id, task_type, progress, status, error=error
            )

    async def run_transcription(self, project_id: UUID, video_url: str) -> Dict[str, Any]:
        await self._set_task(project_id, TaskType.TRANSCRIPTION, 10, TaskStatus.PROCESSING)
        try:
            transcription = await self.transcribe(video_url)
            await self._set_task(project_id, TaskType.TRANSCRIPTION, 70)
            analysis = await self.analyze_transcript(transcription)
        except Exception as e:
            logger.error("Transcription failed", project_id=str(project_id), error=str(e))
            await self._set_task(
                project_id, TaskType.TRANSCRIPTION, 0, TaskStatus.FAILED, error=str(e)
            )
            raise

        values: Dict[str, Any] = {"transcription": transcription}
        if analysis:
            values["content_analysis"] = analysis
        await self._set_task(
            project_id, TaskType.TRANSCRIPTION, 100, TaskStatus.COMPLETED, **values
        )
        return transcription

    async def run_clip_generation(
        self,
        project_id: UUID,
        video_url: str,
        transcription: Optional[Awaitable[Dict[str, Any]]] = None,
    ) -> List[Dict[str, Any]]:
        """
        Generate clips for the project.

        Without Klap, clips are cut from the segments of ``transcription``
        (the transcription task of the same run) once it finishes.
        """
        await self._set_task(project_id, TaskType.CLIPS, 10, TaskStatus.PROCESSING)
        try:
            segments = None
            if not settings.klap_api_key and transcription is not None:
                segments = await self._transcript_segments(project_id, transcription)
            clips = await self.generate_clips(video_url, segments)
        except Exception as e:
            logger.error("Clip generation failed", project_id=str(project_id), error=str(e))
            await self._set_task(project_id, TaskType.CLIPS, 0, TaskStatus.FAILED, error=str(e))
            raise

        await self._set_task(
            project_id, TaskType.CLIPS, 100, TaskStatus.COMPLETED, folders={"clips": clips}
        )
        return clips

    async def _transcript_segments(
        self, project_id: UUID, transcription: Awaitable[Dict[str, Any]]
    ) -> Optional[List[Dict[str, Any]]]:
        try:
            result = await asyncio.shield(transcription)
        except Exception as e:
            logger.warning(
                "No transcript for clips, using template segments",
                project_id=str(project_id),
                error=str(e),
            )
            return None
        return result.get("segments") or None

    async def transcribe(self, video_url: str, language: str = "en") -> Dict[str, Any]:
        if not settings.assemblyai_api_key:
            logger.info("AssemblyAI not configured, using template transcription")
            return generate_mock_transcription(language)

        headers = {"authorization": settings.assemblyai_api_key}
        base = settings.assemblyai_base_url
        client = self._http()
        try:
            response = await request_with_retry(
                client,
                "POST",
                f"{base}/transcript",
                headers=headers,
                json={"audio_url": video_url, "language_code": language},
            )
            if response.status_code >= 400:
                raise AppError(
                    f"Transcription request failed: {response.status_code}",
                    "TRANSCRIPTION_ERROR",
                    502,
                )
            transcript_id = response.json()["id"]

            for _ in range(settings.processing_max_polls):
                response = await request_with_retry(
                    client, "GET", f"{base}/transcript/{transcript_id}", headers=headers
                )
                data = response.json()
                if data.get("status") == "completed":
                    segments = group_words(data.get("words") or [])
                    return {
                        "text": data.get("text") or "",
                        "segments": segments,
                        "language": data.get("language_code") or language,
                        "duration": data.get("audio_duration")
                        or (segments[-1]["end"] if segments else 0),
                    }
                if data.get("status") == "error":
                    raise AppError(
                        data.get("error") or "Transcription failed", "TRANSCRIPTION_ERROR", 502
                    )
                await self.sleep(settings.processing_poll_interval_seconds)
        finally:
            if self._client is None:
                await client.aclose()

        raise AppError("Transcription timed out", "TRANSCRIPTION_TIMEOUT", 504)

    async def analyze_transcript(self, transcription: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Keywords, topics, sentiment and key points; None when unavailable."""
        text = transcription.get("text") or ""
        if len(text) <= 100 or not self.llm.is_configured:
            return None

        system_prompt = "You analyze video transcripts for social media repurposing."
        user_prompt = (
            f"Transcript:\n{text[:6000]}\n\n"
            "Return JSON with keys: keywords (array of strings), topics (array of "
            "strings), sentiment (positive, neutral or negative), keyPoints (array of "
            "strings), mood (string)."
        )
        return await with_ai_error_handling(
            lambda: self.llm.generate_json(system_prompt, user_prompt, temperature=0.3),
            AIErrorOptions(fallback_behavior=FALLBACK_SILENT, context="analyze_transcript"),
        )

    async def generate_clips(
        self, video_url: str, segments: Optional[List[Dict[str, Any]]] = None
    ) -> List[Dict[str, Any]]:
        if not settings.klap_api_key:
            logger.info("Klap not configured, deriving clips from transcript")
            return clips_from_segments(segments or generate_mock_transcription()["segments"])

        headers = {"Authorization": f"Bearer {settings.klap_api_key}"}
        base = settings.klap_api_url
        client = self._http()
        try:
            response = await request_with_retry(
                client,
                "POST",
                f"{base}/tasks/video-to-shorts",
                headers=headers,
                json={
                    "source_video_url": video_url,
                    "language": "en",
                    "max_duration": 30,
                    "max_clip_count": 10,
                    "editing_options": {"intro_title": False},
                },
            )
            if response.status_code >= 400:
                raise AppError(
                    f"Clip task request failed: {response.status_code}", "CLIPS_ERROR", 502
                )
            task_id = response.json()["id"]

            output_id = None
            for _ in range(settings.processing_max_polls):
                task = (
                    await request_with_retry(client, "GET", f"{base}/tasks/{task_id}", headers=headers)
                ).json()
                if task.get("status") == "ready":
                    output_id = task.get("output_id")
                    if not output_id:
                        raise AppError("Clip task is ready but has no output", "CLIPS_ERROR", 502)
                    break
                if task.get("status") == "error":
                    raise AppError(task.get("error") or "Clip task failed", "CLIPS_ERROR", 502)
                await self.sleep(settings.processing_poll_interval_seconds)
            if not output_id:
                raise AppError("Clip generation timed out", "CLIPS_TIMEOUT", 504)

            response = await request_with_retry(
                client, "GET", f"{base}/projects/{output_id}", headers=headers
            )
            items = response.json()
        finally:
            if self._client is None:
                await client.aclose()

        return [
            {
                "id": item.get("id"),
                "title": item.get("name") or f"Clip {i + 1}",
                "description": item.get("virality_score_explanation") or "",
                "start_time": item.get("start_time"),
                "end_time": item.get("end_time"),
                "duration": item.get("duration"),
                "score": (item.get("virality_score") or 0) / 100,
                "thumbnail": item.get("thumbnail"),
                "export_url": None,
                "folder_id": output_id,
            }
            for i, item in enumerate(items or [])
        ]


processing_service = ProcessingService()
