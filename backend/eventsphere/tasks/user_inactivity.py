"""User activity background job - deactivates users who stopped logging in."""
import logging
from datetime import datetime, timedelta
from functools import partial
from typing import Callable, Optional

from sqlalchemy import update
from sqlalchemy.ext.asyncio import async_sessionmaker

from eventsphere.config import Settings, get_settings
from eventsphere.database import AsyncSessionLocal
from eventsphere.models.user import User
from eventsphere.tasks.scheduler import LifecycleScheduler, TaskName
from eventsphere.utils.event_lifecycle import utcnow


logger = logging.getLogger(__name__)


async def user_inactivity_job(
    session_factory: async_sessionmaker = AsyncSessionLocal,
    clock: Callable[[], datetime] = utcnow,
    inactivity_days: Optional[int] = None,
) -> int:
    """
    Mark active users whose last login is older than the inactivity window
    as inactive. Users who never logged in are left alone.

    Returns:
        Number of users deactivated
    """
    if inactivity_days is None:
        inactivity_days = get_settings().USER_INACTIVITY_DAYS
    threshold = clock() - timedelta(days=inactivity_days)

    try:
        async with session_factory() as session:
            result = await session.execute(
                update(User)
                .where(
                    User.last_login < threshold,
                    User.is_active == True
                )
                .values(is_active=False)
            )
            await session.commit()
    except Exception as e:
        logger.error("User activity job failed: %s", str(e))
        raise

    deactivated = result.rowcount or 0
    if deactivated:
        logger.info("Marked %d users as inactive (no login for %d days)", deactivated, inactivity_days)
    else:
        logger.debug("No inactive users found")
    return deactivated


def schedule_user_inactivity_job(
    scheduler: LifecycleScheduler,
    session_factory: async_sessionmaker = AsyncSessionLocal,
    settings: Optional[Settings] = None,
) -> bool:
    """Register the user activity job with the scheduler."""
    settings = settings or get_settings()
    return scheduler.schedule(
        TaskName.UPDATE_USER_ACTIVITY,
        timedelta(hours=settings.USER_ACTIVITY_INTERVAL_HOURS),
        partial(
            user_inactivity_job,
            session_factory=session_factory,
            inactivity_days=settings.USER_INACTIVITY_DAYS,
        ),
    )
