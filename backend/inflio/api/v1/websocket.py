"""
Project progress over WebSocket.

Subscribers of ``/ws/projects/{id}`` first get a ``task_snapshot`` with the
project's current tasks, then one ``task_update`` per transition pushed by
the task tracker.
"""
from typing import Any, Dict, Optional, Set
from uuid import UUID

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from inflio.crud.project import project_crud
from inflio.database import get_session_context
from inflio.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()


class ProjectChannels:
    """Open sockets grouped by project id."""

    def __init__(self):
        self.connections: Dict[str, Set[WebSocket]] = {}

    def count(self, project_id: str) -> int:
        return len(self.connections.get(project_id, ()))

    async def subscribe(self, project_id: str, websocket: WebSocket):
        await websocket.accept()
        self.connections.setdefault(project_id, set()).add(websocket)
        logger.info(
            "Progress subscriber joined",
            project_id=project_id,
            subscribers=self.count(project_id),
        )

    def unsubscribe(self, project_id: str, websocket: WebSocket):
        sockets = self.connections.get(project_id)
        if sockets is None:
            return
        sockets.discard(websocket)
        if not sockets:
            del self.connections[project_id]
        logger.info("Progress subscriber left", project_id=project_id)

    async def send_to_project(self, project_id: str, message: Dict[str, Any]):
        """Fan a message out to every subscriber; sockets that fail are dropped."""
        failed = []
        for websocket in list(self.connections.get(project_id, ())):
            try:
                await websocket.send_json(message)
            except Exception as e:
                logger.debug("Dropping dead websocket", project_id=project_id, error=str(e))
                failed.append(websocket)

        for websocket in failed:
            self.unsubscribe(project_id, websocket)


ws_manager = ProjectChannels()


async def load_snapshot(project_id: str) -> Optional[Dict[str, Any]]:
    try:
        key = UUID(project_id)
    except ValueError:
        return None
    async with get_session_context() as session:
        project = await project_crud.get_by_id(session, key)
        if project is None:
            return None
        return {
            "type": "task_snapshot",
            "project_status": project.status.value,
            "tasks": list(project.tasks or []),
        }


@router.websocket("/ws/projects/{project_id}")
async def project_websocket(websocket: WebSocket, project_id: str):
    """
    Task progress stream for one project.

    Unknown projects are closed with code 4404. Sending ``ping`` returns
    ``pong``.
    """
    snapshot = await load_snapshot(project_id)
    if snapshot is None:
        await websocket.close(code=4404)
        return

    await ws_manager.subscribe(project_id, websocket)
    try:
        await websocket.send_json(snapshot)
        while True:
            if await websocket.receive_text() == "ping":
                await websocket.send_text("pong")
    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.error("WebSocket error", project_id=project_id, error=str(e))
    finally:
        ws_manager.unsubscribe(project_id, websocket)
