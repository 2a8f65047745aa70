"""Event bus for broadcasting job updates to WebSocket subscribers."""

from __future__ import annotations

from jobhub.common.logging import get_logger

logger = get_logger("events")


async def emit(job_id: str, event: str, data: dict) -> None:
    """Broadcast an event to every WebSocket connection watching a job.

    Delivery is best effort: a job with no subscribers is a no-op and a
    broken socket never fails the request that produced the event.
    """
    try:
        from jobhub.api.ws import manager
        await manager.broadcast(job_id, event, data)
    except Exception as e:
        logger.debug("Event emit failed (non-critical): %s", e)
