"""Pydantic schemas for admin operations."""
from datetime import datetime
from typing import Any, Dict, Optional
from pydantic import BaseModel


class UserDeleteResponse(BaseModel):
    """Outcome of deleting a user and stripping references to them."""
    message: str
    atomicity: str
    tasks_unassigned: int
    events_updated: int


class TaskState(BaseModel):
    running: bool


class SchedulerStatusResponse(BaseModel):
    """Scheduler and per-task running state."""
    running: bool
    tasks: Dict[str, TaskState]


class TaskRunResponse(BaseModel):
    """Result of a manually triggered task."""
    task: str
    message: str
    result: Optional[Any] = None


class TaskSummary(BaseModel):
    """A task with its event and assignee resolved."""
    id: int
    event_id: int
    event_title: str
    title: str
    status: str
    priority: str
    deadline: Optional[datetime] = None
    assigned_to: Optional[int] = None
    assignee_name: Optional[str] = None
    assignee_email: Optional[str] = None


class ArchiveLinkSummary(BaseModel):
    """An archive link with its event resolved."""
    id: int
    event_id: int
    event_title: str
    title: str
    drive_url: str
    file_type: str
    access_level: str
    is_public: bool
