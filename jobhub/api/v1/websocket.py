"""Push channel for a single job.

Clients connect to ``/api/v1/ws/jobs/{job_id}?token=<jwt>`` and receive
``message.created``, ``progress.created`` and ``job.status_changed``
events. Sending ``{"action": "ping"}`` answers with ``pong``. Missed
events are recovered with the ``since`` cursor on the REST endpoints.
"""

from __future__ import annotations

import json
import uuid

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from jobhub.api.deps import user_from_token
from jobhub.api.ws import manager
from jobhub.common.enums import UserRole
from jobhub.common.logging import get_logger
from jobhub.core.lifecycle.access import is_participant
from jobhub.core.lifecycle.schemas import Actor
from jobhub.db.models.job import Job
from jobhub.db.session import async_session_factory

logger = get_logger("api.v1.websocket")

router = APIRouter(tags=["WebSocket"])

CLOSE_UNAUTHENTICATED = 4001
CLOSE_FORBIDDEN = 4003


async def _authorize(token: str, job_id: uuid.UUID) -> tuple[Actor | None, int | None]:
    async with async_session_factory() as db:
        user = await user_from_token(db, token)
        if user is None:
            return None, CLOSE_UNAUTHENTICATED
        actor = Actor(id=user.id, role=UserRole(user.role))
        job = await db.get(Job, job_id)
        if job is None or job.is_deleted or not is_participant(job, actor):
            return None, CLOSE_FORBIDDEN
    return actor, None


@router.websocket("/ws/jobs/{job_id}")
async def job_websocket(websocket: WebSocket, job_id: uuid.UUID, token: str = Query(...)):
    actor, close_code = await _authorize(token, job_id)
    if actor is None:
        await websocket.close(code=close_code)
        return

    channel = str(job_id)
    conn_id = await manager.connect(channel, websocket)
    await manager.send_personal(channel, conn_id, "connected", {
        "job_id": channel,
        "user_id": str(actor.id),
        "role": actor.role.value,
    })

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                action = json.loads(raw).get("action")
            except (json.JSONDecodeError, AttributeError):
                await manager.send_personal(channel, conn_id, "error", {"message": "Invalid JSON"})
                continue

            if action == "ping":
                await manager.send_personal(channel, conn_id, "pong", {})
            else:
                await manager.send_personal(channel, conn_id, "error", {"message": f"Unknown action: {action}"})
    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.error("WebSocket error on job %s: %s", channel, e)
    finally:
        manager.disconnect(channel, conn_id)
