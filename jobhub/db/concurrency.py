from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from jobhub.common.exceptions import ConflictError
from jobhub.common.logging import get_logger

logger = get_logger("db.concurrency")


async def flush_or_conflict(db: AsyncSession, *refresh: Any) -> None:
    """Flush pending changes, reporting a lost optimistic-version race as Conflict.

    Objects passed in ``refresh`` are reloaded afterwards so server-side
    values are available without lazy loads.
    """
    try:
        await db.flush()
    except StaleDataError as e:
        logger.info("Optimistic version check failed: %s", e)
        raise ConflictError() from e
    except IntegrityError as e:
        logger.info("Concurrent write rejected by constraint: %s", e.orig)
        raise ConflictError() from e

    for obj in refresh:
        await db.refresh(obj)
