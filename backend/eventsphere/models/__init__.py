"""SQLAlchemy models."""
from eventsphere.models.user import User, UserEventRole
from eventsphere.models.event import Event, EventMember, EventStatus, TERMINAL_STATUSES
from eventsphere.models.task import Task, TaskStatus, TaskPriority
from eventsphere.models.archive_link import ArchiveLink, ArchiveFileType, ArchiveAccessLevel

__all__ = [
    "User",
    "UserEventRole",
    "Event",
    "EventMember",
    "EventStatus",
    "TERMINAL_STATUSES",
    "Task",
    "TaskStatus",
    "TaskPriority",
    "ArchiveLink",
    "ArchiveFileType",
    "ArchiveAccessLevel",
]
