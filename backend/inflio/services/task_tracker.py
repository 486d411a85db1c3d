"""
Per-project processing task state.

Tasks live in ``Project.tasks`` as dicts::

    {"id", "type", "status", "progress", "started_at", "completed_at", "error"}

Every change is pushed to websocket subscribers of the project.
"""

from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional
from uuid import UUID, uuid4

from sqlalchemy.ext.asyncio import AsyncSession

from inflio.api.v1.websocket import ws_manager
from inflio.crud.project import project_crud
from inflio.models import ProjectStatus, TaskStatus, TaskType, utc_now
from inflio.utils.logging import get_logger

logger = get_logger(__name__)

Notifier = Callable[[str, Dict[str, Any]], Awaitable[None]]


def initial_tasks(task_types: Iterable[TaskType]) -> List[Dict[str, Any]]:
    return [
        {
            "id": str(uuid4()),
            "type": TaskType(task_type).value,
            "status": TaskStatus.PENDING.value,
            "progress": 0,
            "started_at": None,
            "completed_at": None,
            "error": None,
        }
        for task_type in task_types
    ]


class TaskTracker:
    """Applies task transitions and derives the project status."""

    def __init__(self, notify: Optional[Notifier] = None):
        self.notify = notify or ws_manager.send_to_project

    async def update_task_progress(
        self,
        session: AsyncSession,
        project_id: UUID,
        task_type: TaskType,
        progress: float,
        status: Optional[TaskStatus] = None,
        error: Optional[str] = None,
    ) -> bool:
        """
        Update one task.

        Returns False (and logs) when the project or task does not exist.
        """
        project = await project_crud.get_by_id(session, project_id)
        if not project:
            logger.warning("Task update for missing project", project_id=str(project_id))
            return False

        task_type = TaskType(task_type).value
        tasks = [dict(task) for task in project.tasks or []]
        index = next((i for i, t in enumerate(tasks) if t.get("type") == task_type), None)
        if index is None:
            logger.warning(
                "Task update for missing task", project_id=str(project_id), task_type=task_type
            )
            return False

        task = tasks[index]
        now = utc_now().isoformat()
        task["progress"] = max(0, min(100, progress))

        if status is not None:
            status = TaskStatus(status)
            task["status"] = status.value
            if status == TaskStatus.PROCESSING and not task.get("started_at"):
                task["started_at"] = now
            elif status == TaskStatus.COMPLETED:
                task["completed_at"] = now
                task["progress"] = 100
                task["error"] = None
            elif status == TaskStatus.FAILED:
                task["error"] = error or "Task failed"

        values: Dict[str, Any] = {"tasks": tasks}
        if tasks and all(t.get("status") == TaskStatus.COMPLETED.value for t in tasks):
            values["status"] = ProjectStatus.READY

        project = await project_crud.update(session, project, **values)
        logger.info(
            "Task progress updated",
            project_id=str(project_id),
            task_type=task_type,
            status=task["status"],
            progress=task["progress"],
        )

        await self.notify(
            str(project_id),
            {
                "type": "task_update",
                "task": task,
                "project_status": project.status.value,
            },
        )
        return True


task_tracker = TaskTracker()
