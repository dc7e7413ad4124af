"""Daily report background job - logs a summary of platform activity."""
import logging
from datetime import datetime, timedelta
from functools import partial
from typing import Callable, Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import async_sessionmaker

from eventsphere.config import Settings, get_settings
from eventsphere.database import AsyncSessionLocal
from eventsphere.models.event import Event, EventStatus
from eventsphere.models.task import Task, TaskStatus
from eventsphere.models.user import User
from eventsphere.tasks.scheduler import LifecycleScheduler, TaskName
from eventsphere.utils.event_lifecycle import utcnow


logger = logging.getLogger(__name__)


async def daily_report_job(
    session_factory: async_sessionmaker = AsyncSessionLocal,
    clock: Callable[[], datetime] = utcnow,
) -> dict:
    """
    Count today's activity and log it.

    Returns:
        Report with the counts and the UTC date it covers
    """
    now = clock()
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    tomorrow = today + timedelta(days=1)

    async with session_factory() as session:
        async def count(column, *criteria) -> int:
            result = await session.execute(select(func.count(column)).where(*criteria))
            return result.scalar() or 0

        report = {
            "date": today.date().isoformat(),
            "total_users": await count(User.id),
            "active_users": await count(User.id, User.is_active == True),
            "new_users_today": await count(
                User.id, User.created_at >= today, User.created_at < tomorrow
            ),
            "active_events": await count(Event.id, Event.status == EventStatus.ACTIVE.value),
            "upcoming_events": await count(
                Event.id,
                Event.start_date > now,
                Event.status.in_((EventStatus.DRAFT.value, EventStatus.ACTIVE.value)),
            ),
            "events_created_today": await count(
                Event.id, Event.created_at >= today, Event.created_at < tomorrow
            ),
            "tasks_completed_today": await count(
                Task.id,
                Task.status == TaskStatus.DONE.value,
                Task.updated_at >= today,
                Task.updated_at < tomorrow,
            ),
        }

    logger.info(
        "Daily report for %s: users=%d active_users=%d new_users=%d active_events=%d "
        "upcoming_events=%d events_created=%d tasks_completed=%d",
        report["date"], report["total_users"], report["active_users"],
        report["new_users_today"], report["active_events"], report["upcoming_events"],
        report["events_created_today"], report["tasks_completed_today"]
    )
    return report


def schedule_daily_report_job(
    scheduler: LifecycleScheduler,
    session_factory: async_sessionmaker = AsyncSessionLocal,
    settings: Optional[Settings] = None,
) -> bool:
    """Register the daily report job with the scheduler."""
    settings = settings or get_settings()
    return scheduler.schedule(
        TaskName.DAILY_REPORT,
        timedelta(hours=settings.DAILY_REPORT_INTERVAL_HOURS),
        partial(daily_report_job, session_factory=session_factory),
    )
