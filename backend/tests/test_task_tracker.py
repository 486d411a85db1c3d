import asyncio
from uuid import uuid4

import pytest

from inflio.crud.project import project_crud
from inflio.models import ProjectStatus, TaskStatus, TaskType
from inflio.services.task_tracker import TaskTracker, initial_tasks

from tests.factories import make_project


class RecordingNotifier:
    def __init__(self):
        self.messages = []

    async def __call__(self, project_id, message):
        self.messages.append((project_id, message))


def _tracker():
    notifier = RecordingNotifier()
    return TaskTracker(notify=notifier), notifier


@pytest.mark.unit
def test_initial_tasks_are_pending():
    tasks = initial_tasks([TaskType.TRANSCRIPTION, TaskType.CLIPS])
    assert [t["type"] for t in tasks] == ["transcription", "clips"]
    assert all(t["status"] == "pending" and t["progress"] == 0 for t in tasks)


@pytest.mark.integration
def test_project_becomes_ready_when_every_task_completes(db):
    tracker, notifier = _tracker()

    async def scenario():
        async with db() as session:
            project = await make_project(
                session,
                status=ProjectStatus.PROCESSING,
                tasks=initial_tasks([TaskType.TRANSCRIPTION, TaskType.CLIPS]),
            )
            await tracker.update_task_progress(
                session, project.id, TaskType.TRANSCRIPTION, 10, TaskStatus.PROCESSING
            )
            await tracker.update_task_progress(
                session, project.id, TaskType.TRANSCRIPTION, 60, TaskStatus.COMPLETED
            )
            midway = (await project_crud.get_by_id(session, project.id)).status
            await tracker.update_task_progress(
                session, project.id, TaskType.CLIPS, 100, TaskStatus.COMPLETED
            )
            return midway, await project_crud.get_by_id(session, project.id)

    midway, project = asyncio.run(scenario())

    assert midway == ProjectStatus.PROCESSING
    assert project.status == ProjectStatus.READY
    transcription = project.tasks[0]
    assert transcription["progress"] == 100
    assert transcription["started_at"] is not None
    assert transcription["completed_at"] is not None

    assert len(notifier.messages) == 3
    project_id, last = notifier.messages[-1]
    assert project_id == str(project.id)
    assert last["type"] == "task_update"
    assert last["project_status"] == "ready"


@pytest.mark.integration
def test_failure_records_error_and_clamps_progress(db):
    tracker, _ = _tracker()

    async def scenario():
        async with db() as session:
            project = await make_project(
                session,
                status=ProjectStatus.PROCESSING,
                tasks=initial_tasks([TaskType.CLIPS]),
            )
            await tracker.update_task_progress(
                session, project.id, TaskType.CLIPS, 150, TaskStatus.FAILED
            )
            return await project_crud.get_by_id(session, project.id)

    project = asyncio.run(scenario())

    task = project.tasks[0]
    assert task["status"] == "failed"
    assert task["error"] == "Task failed"
    assert task["progress"] == 100
    assert project.status == ProjectStatus.PROCESSING


@pytest.mark.integration
def test_unknown_project_or_task_returns_false(db):
    tracker, notifier = _tracker()

    async def scenario():
        async with db() as session:
            project = await make_project(session, tasks=initial_tasks([TaskType.CLIPS]))
            missing_project = await tracker.update_task_progress(
                session, uuid4(), TaskType.CLIPS, 50
            )
            missing_task = await tracker.update_task_progress(
                session, project.id, TaskType.BLOG, 50
            )
            return missing_project, missing_task

    assert asyncio.run(scenario()) == (False, False)
    assert notifier.messages == []
