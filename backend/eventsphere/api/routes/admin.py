"""Admin API routes for management listings, user removal and scheduler control."""
import logging
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from eventsphere.api.exceptions import from_domain_error
from eventsphere.api.utils.dependencies import (
    get_event_service,
    get_lifecycle_scheduler,
    get_transaction_coordinator,
)
from eventsphere.database import get_db
from eventsphere.dependencies import require_management_role, require_permission
from eventsphere.errors import EventSphereError
from eventsphere.models.archive_link import ArchiveLink
from eventsphere.models.event import Event
from eventsphere.models.task import Task
from eventsphere.models.user import User
from eventsphere.schemas.admin import (
    ArchiveLinkSummary,
    SchedulerStatusResponse,
    TaskRunResponse,
    TaskSummary,
    UserDeleteResponse,
)
from eventsphere.schemas.event import EventResponse
from eventsphere.services.event_service import EventService
from eventsphere.services.transaction_service import TransactionCoordinator
from eventsphere.tasks.scheduler import LifecycleScheduler
from eventsphere.utils.event_lifecycle import StatusChange
from eventsphere.utils.roles import Permission

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/admin", tags=["Admin"])


# ============== Management Listings ==============

@router.get("/events", response_model=List[EventResponse])
async def list_all_events(
    current_user: User = Depends(require_management_role),
    service: EventService = Depends(get_event_service)
):
    """List every event with its members."""
    now = service.clock()
    return [EventResponse.from_event(event, now) for event in await service.list_all_events()]


@router.get("/tasks", response_model=List[TaskSummary])
async def list_all_tasks(
    current_user: User = Depends(require_management_role),
    db: AsyncSession = Depends(get_db)
):
    """List every task with its event title and assignee."""
    result = await db.execute(
        select(Task, Event.title, User.name, User.email)
        .join(Event, Task.event_id == Event.id)
        .outerjoin(User, Task.assigned_to == User.id)
        .order_by(Task.created_at.desc(), Task.id.desc())
    )

    return [
        TaskSummary(
            id=task.id,
            event_id=task.event_id,
            event_title=event_title,
            title=task.title,
            status=task.status,
            priority=task.priority,
            deadline=task.deadline,
            assigned_to=task.assigned_to,
            assignee_name=assignee_name,
            assignee_email=assignee_email,
        )
        for task, event_title, assignee_name, assignee_email in result.all()
    ]


@router.get("/archives", response_model=List[ArchiveLinkSummary])
async def list_all_archives(
    current_user: User = Depends(require_management_role),
    db: AsyncSession = Depends(get_db)
):
    """List every archive link with its event title."""
    result = await db.execute(
        select(ArchiveLink, Event.title)
        .join(Event, ArchiveLink.event_id == Event.id)
        .order_by(ArchiveLink.created_at.desc(), ArchiveLink.id.desc())
    )

    return [
        ArchiveLinkSummary(
            id=link.id,
            event_id=link.event_id,
            event_title=event_title,
            title=link.title,
            drive_url=link.drive_url,
            file_type=link.file_type,
            access_level=link.access_level,
            is_public=link.is_public,
        )
        for link, event_title in result.all()
    ]


# ============== Users ==============

@router.delete("/users/{user_id}", response_model=UserDeleteResponse)
async def delete_user(
    user_id: int,
    current_user: User = Depends(require_permission(Permission.MANAGE_USERS)),
    coordinator: TransactionCoordinator = Depends(get_transaction_coordinator)
):
    """Delete a user; their tasks are unassigned and their memberships removed."""
    try:
        outcome = await coordinator.delete_user_cascade(user_id, deleted_by=current_user)
    except EventSphereError as e:
        raise from_domain_error(e)

    return UserDeleteResponse(
        message="User and related data deleted successfully",
        atomicity=outcome.atomicity.value,
        **outcome.value.to_dict()
    )


# ============== Scheduler ==============

@router.get("/scheduler/status", response_model=SchedulerStatusResponse)
async def get_scheduler_status(
    current_user: User = Depends(require_permission(Permission.SYSTEM_ADMIN)),
    scheduler: LifecycleScheduler = Depends(get_lifecycle_scheduler)
):
    """Get scheduler and task running state."""
    return scheduler.status()


@router.post("/scheduler/tasks/{name}/run", response_model=TaskRunResponse)
async def run_task(
    name: str,
    current_user: User = Depends(require_permission(Permission.SYSTEM_ADMIN)),
    scheduler: LifecycleScheduler = Depends(get_lifecycle_scheduler)
):
    """Run a scheduled task immediately."""
    logger.info("Task %s triggered manually by user %s", name, current_user.id)
    try:
        result = await scheduler.run_now(name)
    except EventSphereError as e:
        raise from_domain_error(e)

    if isinstance(result, list):
        result = [
            change._asdict() if isinstance(change, StatusChange) else change
            for change in result
        ]

    return TaskRunResponse(task=name, message=f"Task {name} completed successfully", result=result)
