import asyncio

import httpx
import pytest

from inflio.config import settings
from inflio.crud.project import project_crud
from inflio.errors import AppError
from inflio.models import ProjectStatus
from inflio.services.processing_service import (
    ProcessingService,
    clips_from_segments,
    generate_mock_transcription,
    group_words,
)
from inflio.services.task_tracker import TaskTracker

from tests.factories import TEST_USER, make_project


async def _ignore(project_id, message):
    return None


def _service(**kwargs):
    return ProcessingService(tracker=TaskTracker(notify=_ignore), **kwargs)


@pytest.mark.unit
def test_words_are_grouped_into_sentences():
    words = [
        {"text": "Hello", "start": 0, "end": 400, "confidence": 1.0},
        {"text": "world.", "start": 400, "end": 900, "confidence": 0.8},
        {"text": "Next", "start": 1000, "end": 1300, "confidence": 0.9},
        {"text": "bit", "start": 1300, "end": 1600, "confidence": 0.9},
    ]

    segments = group_words(words)

    assert [s["text"] for s in segments] == ["Hello world.", "Next bit"]
    assert segments[0]["start"] == 0
    assert segments[0]["end"] == 0.9
    assert segments[0]["confidence"] == pytest.approx(0.9)
    assert segments[1]["id"] == "seg-1"


@pytest.mark.unit
def test_long_runs_split_at_commas():
    words = [{"text": f"w{i}", "start": i, "end": i + 1} for i in range(14)]
    words.append({"text": "pause,", "start": 14, "end": 15})
    words.append({"text": "done", "start": 15, "end": 16})

    segments = group_words(words)

    assert len(segments) == 2
    assert segments[0]["text"].endswith("pause,")


@pytest.mark.unit
def test_template_transcription_and_clips():
    transcription = generate_mock_transcription()
    assert transcription["duration"] == 30
    assert len(transcription["segments"]) == 6

    clips = clips_from_segments(transcription["segments"])
    assert len(clips) == 3
    assert clips[0]["start_time"] == 0
    assert clips[0]["end_time"] == 10
    assert clips[0]["score"] == pytest.approx(0.97, abs=0.01)


@pytest.mark.integration
def test_processing_requires_a_video(db):
    async def scenario():
        async with db() as session:
            project = await make_project(session, status=ProjectStatus.DRAFT)
            await _service().start_processing(session, TEST_USER, project.id)

    with pytest.raises(AppError) as exc_info:
        asyncio.run(scenario())
    assert exc_info.value.status_code == 400


@pytest.mark.integration
def test_processing_runs_both_tasks_to_ready(db):
    service = _service()

    async def scenario():
        async with db() as session:
            project = await make_project(
                session, status=ProjectStatus.DRAFT, video_url="https://cdn.test/talk.mp4"
            )
            started = await service.start_processing(session, TEST_USER, project.id)
            started_status = started.status

        await service.run_processing(project.id)

        async with db() as session:
            return started_status, await project_crud.get_by_id(session, project.id)

    started_status, project = asyncio.run(scenario())

    assert started_status == ProjectStatus.PROCESSING
    assert project.status == ProjectStatus.READY
    assert {t["status"] for t in project.tasks} == {"completed"}
    assert project.transcription["duration"] == 30
    assert len(project.folders["clips"]) == 3


@pytest.mark.unit
def test_klap_clips_are_polled_until_ready(monkeypatch, fake_sleep):
    monkeypatch.setattr(settings, "klap_api_key", "klap-key")
    statuses = iter(["processing", "ready"])

    def handler(request):
        path = request.url.path
        if request.method == "POST" and path.endswith("/tasks/video-to-shorts"):
            return httpx.Response(200, json={"id": "task-1"})
        if path.endswith("/tasks/task-1"):
            return httpx.Response(200, json={"status": next(statuses), "output_id": "out-1"})
        if path.endswith("/projects/out-1"):
            return httpx.Response(
                200,
                json=[{"id": "c1", "name": "Hook", "virality_score": 87, "duration": 24}],
            )
        return httpx.Response(404)

    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            service = _service(client=client, sleep=fake_sleep)
            return await service.generate_clips("https://cdn.test/talk.mp4")

    clips = asyncio.run(run())

    assert fake_sleep.delays == [settings.processing_poll_interval_seconds]
    assert clips[0]["title"] == "Hook"
    assert clips[0]["score"] == pytest.approx(0.87)
    assert clips[0]["folder_id"] == "out-1"


class RealTranscriptService(ProcessingService):
    """Returns a provider-shaped transcript instead of the template."""

    async def transcribe(self, video_url, language="en"):
        return {
            "text": "We raised prices. Churn went down.",
            "duration": 8,
            "language": language,
            "segments": [
                {"id": "seg-0", "text": "We raised prices.", "start": 0, "end": 3, "confidence": 0.9},
                {"id": "seg-1", "text": "Churn went down.", "start": 3, "end": 8, "confidence": 0.7},
            ],
        }


class BrokenClipsService(ProcessingService):
    async def generate_clips(self, video_url, segments=None):
        raise RuntimeError("clip provider down")


def _run_project(db, service, **project_values):
    async def scenario():
        async with db() as session:
            project = await make_project(
                session,
                status=ProjectStatus.DRAFT,
                video_url="https://cdn.test/talk.mp4",
                **project_values,
            )
            await service.start_processing(session, TEST_USER, project.id)

        await service.run_processing(project.id)

        async with db() as session:
            return await project_crud.get_by_id(session, project.id)

    return asyncio.run(scenario())


@pytest.mark.integration
def test_clips_are_cut_from_this_runs_transcript(db):
    service = RealTranscriptService(tracker=TaskTracker(notify=_ignore))

    project = _run_project(db, service, folders={"images": ["https://img/1.png"]})

    assert project.status == ProjectStatus.READY
    assert project.transcription["duration"] == 8
    [clip] = project.folders["clips"]
    assert clip["description"] == "We raised prices. Churn went down."
    assert (clip["start_time"], clip["end_time"]) == (0, 8)
    assert project.folders["images"] == ["https://img/1.png"]


@pytest.mark.integration
def test_failed_clip_task_leaves_project_processing(db):
    service = BrokenClipsService(tracker=TaskTracker(notify=_ignore))

    project = _run_project(db, service)

    tasks = {task["type"]: task for task in project.tasks}
    assert tasks["transcription"]["status"] == "completed"
    assert tasks["clips"]["status"] == "failed"
    assert tasks["clips"]["error"] == "clip provider down"
    assert project.status == ProjectStatus.PROCESSING
    assert project.transcription["duration"] == 30
    assert project.folders["clips"] == []
