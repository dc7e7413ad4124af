"""Background tasks and the lifecycle scheduler."""
from eventsphere.tasks.scheduler import (
    LifecycleScheduler,
    TaskName,
    register_default_tasks,
)
from eventsphere.tasks.event_status_sync import event_status_sync_job
from eventsphere.tasks.daily_report import daily_report_job
from eventsphere.tasks.user_inactivity import user_inactivity_job

__all__ = [
    "LifecycleScheduler",
    "TaskName",
    "register_default_tasks",
    "event_status_sync_job",
    "daily_report_job",
    "user_inactivity_job",
]
