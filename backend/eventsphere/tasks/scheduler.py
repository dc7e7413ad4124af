"""Lifecycle task scheduler using APScheduler.

``LifecycleScheduler`` is an owned registry of named periodic tasks. The host
process creates one instance, registers tasks, calls ``start()`` and awaits
``stop()`` on shutdown. Task names come from the closed ``TaskName`` set and
the first registration of a name wins.
"""
import asyncio
import enum
import logging
import threading
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Awaitable, Callable, Optional, Union

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.executors.asyncio import AsyncIOExecutor

from eventsphere.errors import NotFoundError


logger = logging.getLogger(__name__)

TaskFunction = Callable[[], Awaitable[Any]]


class TaskName(str, enum.Enum):
    """Identifiers of the tasks the scheduler knows how to run."""
    UPDATE_EVENT_STATUSES = "update_event_statuses"
    DAILY_REPORT = "daily_report"
    UPDATE_USER_ACTIVITY = "update_user_activity"


@dataclass
class ScheduledTask:
    name: TaskName
    period: timedelta
    func: TaskFunction


def create_apscheduler() -> AsyncIOScheduler:
    """Build the underlying APScheduler instance."""
    jobstores = {
        'default': MemoryJobStore()
    }
    executors = {
        'default': AsyncIOExecutor()
    }
    job_defaults = {
        'coalesce': True,  # Combine missed job runs into one
        'max_instances': 1,  # Only one instance of a job at a time
        'misfire_grace_time': 300  # 5 minutes grace period for misfired jobs
    }

    return AsyncIOScheduler(
        jobstores=jobstores,
        executors=executors,
        job_defaults=job_defaults,
        timezone='UTC'
    )


def _task_name(name: Union[TaskName, str]) -> Optional[TaskName]:
    try:
        return TaskName(name)
    except ValueError:
        return None


class LifecycleScheduler:
    """Registry of named periodic tasks with manual triggering."""

    def __init__(self, scheduler: Optional[AsyncIOScheduler] = None):
        self._scheduler = scheduler or create_apscheduler()
        self._tasks: dict[TaskName, ScheduledTask] = {}
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._scheduler.running

    def schedule(
        self,
        name: Union[TaskName, str],
        period: Union[timedelta, float],
        func: TaskFunction,
    ) -> bool:
        """
        Register ``func`` to run every ``period`` under ``name``.

        The task starts ticking as soon as the scheduler is running. A name
        that is already registered is left untouched.

        Returns:
            True if the task was registered, False if the name was taken

        Raises:
            ValueError: If ``name`` is not a known TaskName
        """
        task_name = TaskName(name)
        if not isinstance(period, timedelta):
            period = timedelta(seconds=period)

        with self._lock:
            if task_name in self._tasks:
                logger.warning("Task %s already exists, skipping", task_name.value)
                return False

            self._scheduler.add_job(
                self._run_tick,
                'interval',
                seconds=period.total_seconds(),
                args=[task_name],
                id=task_name.value,
                name=task_name.value.replace('_', ' ').title(),
                replace_existing=True,
            )
            self._tasks[task_name] = ScheduledTask(task_name, period, func)

        logger.info("Scheduled task: %s every %s", task_name.value, period)
        return True

    def start(self) -> None:
        """Start ticking every registered task."""
        if self._scheduler.running:
            logger.warning("Scheduled tasks already running")
            return

        self._scheduler.start()
        logger.info("Scheduler started with %d tasks", len(self._tasks))

    async def stop(self) -> None:
        """Stop and forget every task. Safe to call repeatedly."""
        with self._lock:
            if not self._tasks and not self._scheduler.running:
                logger.debug("Scheduled tasks not running")
                return

            spent = self._scheduler
            spent.remove_all_jobs()
            if spent.running:
                spent.shutdown(wait=False)
                # A shut down APScheduler cannot be restarted
                self._scheduler = create_apscheduler()
            stopped = len(self._tasks)
            self._tasks.clear()

        # AsyncIOScheduler queues its shutdown on the event loop
        await asyncio.sleep(0)
        logger.info("All scheduled tasks stopped (%d)", stopped)

    def status(self) -> dict:
        """Report whether the scheduler and each task are running."""
        tasks = {}
        for name in list(self._tasks):
            job = self._scheduler.get_job(name.value)
            next_run = getattr(job, "next_run_time", None) if job else None
            tasks[name.value] = {"running": self.running and next_run is not None}
        return {"running": self.running, "tasks": tasks}

    def list_jobs(self) -> list[dict]:
        """List registered tasks with their next run times."""
        jobs = []
        for name, task in list(self._tasks.items()):
            job = self._scheduler.get_job(name.value)
            next_run = getattr(job, "next_run_time", None) if job else None
            jobs.append({
                "id": name.value,
                "period_seconds": task.period.total_seconds(),
                "next_run_time": str(next_run) if next_run else None,
            })
        return jobs

    async def run_now(self, name: Union[TaskName, str]) -> Any:
        """
        Run a registered task immediately and wait for it.

        Errors raised by the task propagate to the caller.

        Raises:
            NotFoundError: If no task is registered under ``name``
        """
        task_name = _task_name(name)
        task = self._tasks.get(task_name) if task_name else None
        if task is None:
            raise NotFoundError("Task", getattr(name, "value", name))

        logger.info("Manually running task: %s", task.name.value)
        result = await task.func()
        logger.info("Task %s completed", task.name.value)
        return result

    async def _run_tick(self, name: TaskName) -> None:
        """Timer entry point; a failing tick is logged and the next one still runs."""
        task = self._tasks.get(name)
        if task is None:
            return
        try:
            await task.func()
        except Exception:
            logger.exception("Scheduled task %s failed", name.value)


def register_default_tasks(scheduler: LifecycleScheduler, session_factory=None, settings=None) -> None:
    """Register the built-in lifecycle tasks."""
    from eventsphere.config import get_settings
    from eventsphere.database import AsyncSessionLocal
    from eventsphere.tasks.daily_report import schedule_daily_report_job
    from eventsphere.tasks.event_status_sync import schedule_event_status_sync_job
    from eventsphere.tasks.user_inactivity import schedule_user_inactivity_job

    session_factory = session_factory or AsyncSessionLocal
    settings = settings or get_settings()

    schedule_event_status_sync_job(scheduler, session_factory, settings)
    schedule_daily_report_job(scheduler, session_factory, settings)
    schedule_user_inactivity_job(scheduler, session_factory, settings)
