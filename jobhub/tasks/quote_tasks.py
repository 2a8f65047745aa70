import asyncio

from jobhub.common.logging import get_logger
from jobhub.tasks.celery_app import app

logger = get_logger("tasks.quotes")


def _run_async(coro):
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


async def sweep_expired_quotes(session_factory=None) -> int:
    from jobhub.core.lifecycle.service import JobLifecycleService

    if session_factory is None:
        from jobhub.db.session import async_session_factory as session_factory

    async with session_factory() as db:
        try:
            expired = await JobLifecycleService(db).expire_stale_quotes()
            await db.commit()
        except Exception as e:
            await db.rollback()
            logger.error("Quote expiry sweep failed: %s", e)
            raise

    if expired:
        logger.info("Expired %d stale quotes", expired)
    return expired


@app.task(name="jobhub.tasks.quote_tasks.expire_stale_quotes")
def expire_stale_quotes():
    """Celery Beat task: mark ACTIVE quotes past their deadline EXPIRED."""
    logger.info("Sweeping expired quotes")
    return _run_async(sweep_expired_quotes())
