"""Event status sync background job - keeps stored statuses in line with event dates."""
import asyncio
import logging
from datetime import datetime, timedelta, timezone
from functools import partial
from typing import Callable, List, Optional

from sqlalchemy.ext.asyncio import async_sessionmaker

from eventsphere.config import Settings, get_settings
from eventsphere.database import AsyncSessionLocal
from eventsphere.services.event_service import EventService
from eventsphere.tasks.scheduler import LifecycleScheduler, TaskName
from eventsphere.utils.event_lifecycle import StatusChange, utcnow


logger = logging.getLogger(__name__)


async def event_status_sync_job(
    session_factory: async_sessionmaker = AsyncSessionLocal,
    clock: Callable[[], datetime] = utcnow,
    timeout: Optional[float] = None,
) -> List[StatusChange]:
    """
    Re-derive the status of every non-terminal event and persist the changes.

    Nothing is written if the pass runs past its deadline.

    Returns:
        The status changes that were applied
    """
    timeout = timeout if timeout is not None else get_settings().RECONCILE_TIMEOUT_SECONDS
    logger.info("Starting event status sync job...")
    start_time = datetime.now(timezone.utc)

    async def reconcile() -> List[StatusChange]:
        async with session_factory() as session:
            return await EventService(session, clock=clock).reconcile_statuses()

    try:
        changes = await asyncio.wait_for(reconcile(), timeout)
    except asyncio.TimeoutError:
        logger.error("Event status sync aborted after %.1f seconds", timeout)
        raise
    except Exception as e:
        logger.error("Event status sync job failed: %s", str(e))
        raise

    duration = (datetime.now(timezone.utc) - start_time).total_seconds()
    if changes:
        logger.info(
            "Event status sync completed: %d events updated in %.2f seconds",
            len(changes), duration
        )
    else:
        logger.info("Event status sync completed: no status changes")
    return changes


def schedule_event_status_sync_job(
    scheduler: LifecycleScheduler,
    session_factory: async_sessionmaker = AsyncSessionLocal,
    settings: Optional[Settings] = None,
) -> bool:
    """Register the event status sync job with the scheduler."""
    settings = settings or get_settings()
    interval = settings.EVENT_STATUS_SYNC_INTERVAL_MINUTES
    return scheduler.schedule(
        TaskName.UPDATE_EVENT_STATUSES,
        timedelta(minutes=interval),
        partial(
            event_status_sync_job,
            session_factory=session_factory,
            timeout=settings.RECONCILE_TIMEOUT_SECONDS,
        ),
    )
