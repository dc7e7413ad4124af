"""Event API routes for event lifecycle and membership management."""
import logging
from collections import Counter
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query

from eventsphere.api.exceptions import forbidden, from_domain_error, not_found
from eventsphere.api.utils.dependencies import (
    get_event_service,
    get_membership_service,
    get_transaction_coordinator,
)
from eventsphere.api.utils.pagination import calculate_pagination, clamp_page_size
from eventsphere.dependencies import require_management_role, require_permission
from eventsphere.errors import EventSphereError
from eventsphere.models.event import EventStatus
from eventsphere.models.user import User
from eventsphere.schemas.event import (
    EventCreate,
    EventDashboardResponse,
    EventDashboardStats,
    EventDatesUpdate,
    EventDeleteResponse,
    EventListResponse,
    EventResponse,
    EventStatusUpdate,
    MembershipRequest,
    MembershipResponse,
)
from eventsphere.services.event_service import EventService
from eventsphere.services.membership_service import MembershipService
from eventsphere.services.transaction_service import TransactionCoordinator
from eventsphere.utils.event_lifecycle import can_modify_dates, ensure_utc
from eventsphere.utils.roles import Permission, Role, is_admin, role_in_event, roles_for_user

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/events", tags=["Events"])


def _acting_role(user: User, event_id: int) -> Optional[str]:
    """Role used for date-lock checks: admin anywhere wins, otherwise the event role."""
    if is_admin(roles_for_user(user)):
        return Role.ADMIN.value
    return role_in_event(user, event_id)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    return ensure_utc(value).astimezone(timezone.utc) if value else None


# ============== Event Management ==============

@router.get("", response_model=EventListResponse)
async def list_events(
    page: int = Query(1, ge=1, description="Page number"),
    page_size: Optional[int] = Query(None, ge=1, description="Items per page"),
    status_filter: Optional[str] = Query(None, alias="status", description="Filter by stored status"),
    search: Optional[str] = Query(None, description="Search title, description and location"),
    start_date: Optional[datetime] = Query(None, description="Events starting on or after"),
    end_date: Optional[datetime] = Query(None, description="Events starting on or before"),
    my_events: bool = Query(False, description="Only events the caller belongs to"),
    current_user: User = Depends(require_permission(Permission.VIEW_EVENTS)),
    service: EventService = Depends(get_event_service)
):
    """List events with filtering and pagination."""
    page_size = clamp_page_size(page_size)
    events, total = await service.list_events(
        page=page,
        page_size=page_size,
        status=status_filter,
        search=search,
        start_from=_as_utc(start_date),
        start_to=_as_utc(end_date),
        member_id=current_user.id if my_events else None,
    )

    now = service.clock()
    _, total_pages = calculate_pagination(total, page, page_size)

    return EventListResponse(
        items=[EventResponse.from_event(event, now) for event in events],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=total_pages
    )


@router.post("", response_model=EventResponse, status_code=201)
async def create_event(
    data: EventCreate,
    current_user: User = Depends(require_permission(Permission.CREATE_EVENTS)),
    service: EventService = Depends(get_event_service)
):
    """Create an event; its initial status is derived from the dates unless draft is requested."""
    try:
        event = await service.create_event(
            title=data.title,
            description=data.description,
            start_date=data.start_date,
            end_date=data.end_date,
            location=data.location,
            max_participants=data.max_participants,
            status=data.status,
            created_by=current_user,
        )
    except EventSphereError as e:
        raise from_domain_error(e)

    return EventResponse.from_event(event, service.clock())


@router.get("/admin/dashboard", response_model=EventDashboardResponse)
async def get_event_dashboard(
    current_user: User = Depends(require_management_role),
    service: EventService = Depends(get_event_service)
):
    """Every event with status statistics, for management roles."""
    now = service.clock()
    items = [EventResponse.from_event(event, now) for event in await service.list_all_events()]

    return EventDashboardResponse(
        events=items,
        statistics=EventDashboardStats(
            total=len(items),
            status_counts=dict(Counter(item.status for item in items)),
            upcoming_events=sum(1 for item in items if item.is_upcoming),
            active_events=sum(1 for item in items if item.status == EventStatus.ACTIVE.value),
        )
    )


@router.get("/{event_id}", response_model=EventResponse)
async def get_event(
    event_id: int,
    current_user: User = Depends(require_permission(Permission.VIEW_EVENTS)),
    service: EventService = Depends(get_event_service)
):
    """Get a specific event by ID."""
    event = await service.get_event(event_id)
    if not event:
        raise not_found("Event", event_id)

    return EventResponse.from_event(event, service.clock())


@router.patch("/{event_id}/status", response_model=EventResponse)
async def update_event_status(
    event_id: int,
    data: EventStatusUpdate,
    current_user: User = Depends(require_permission(Permission.EDIT_EVENTS)),
    service: EventService = Depends(get_event_service)
):
    """Manually change an event's status."""
    try:
        event = await service.update_event_status(event_id, data.status, updated_by=current_user)
    except EventSphereError as e:
        raise from_domain_error(e)

    return EventResponse.from_event(event, service.clock())


@router.patch("/{event_id}/dates", response_model=EventResponse)
async def update_event_dates(
    event_id: int,
    data: EventDatesUpdate,
    current_user: User = Depends(require_permission(Permission.EDIT_EVENTS)),
    service: EventService = Depends(get_event_service)
):
    """Change an event's dates; the status is re-derived from the new dates."""
    event = await service.get_event(event_id)
    if not event:
        raise not_found("Event", event_id)

    if not can_modify_dates(event, service.clock(), _acting_role(current_user, event_id)):
        raise forbidden("You do not have permission to modify dates for this event")

    try:
        event = await service.update_event_dates(
            event_id,
            start_date=data.start_date,
            end_date=data.end_date,
            updated_by=current_user,
        )
    except EventSphereError as e:
        raise from_domain_error(e)

    return EventResponse.from_event(event, service.clock())


@router.delete("/{event_id}", response_model=EventDeleteResponse)
async def delete_event(
    event_id: int,
    current_user: User = Depends(require_permission(Permission.DELETE_EVENTS)),
    coordinator: TransactionCoordinator = Depends(get_transaction_coordinator)
):
    """Delete an event with its tasks, archive links and memberships."""
    try:
        outcome = await coordinator.delete_event_cascade(event_id, deleted_by=current_user)
    except EventSphereError as e:
        raise from_domain_error(e)

    return EventDeleteResponse(
        message="Event and all related data deleted successfully",
        atomicity=outcome.atomicity.value,
        **outcome.value.to_dict()
    )


# ============== Membership ==============

@router.post("/{event_id}/users", response_model=MembershipResponse)
async def add_user_to_event(
    event_id: int,
    data: MembershipRequest,
    current_user: User = Depends(require_permission(Permission.ASSIGN_USERS)),
    service: MembershipService = Depends(get_membership_service)
):
    """Add a user to an event, or change the role they hold in it."""
    try:
        outcome = await service.assign_user(event_id, data.user_id, data.role, assigned_by=current_user)
    except EventSphereError as e:
        raise from_domain_error(e)

    change = outcome.value
    return MembershipResponse(
        event_id=change.event_id,
        user_id=change.user_id,
        role=change.role,
        created=change.created,
        atomicity=outcome.atomicity.value,
    )


@router.delete("/{event_id}/users/{user_id}", response_model=MembershipResponse)
async def remove_user_from_event(
    event_id: int,
    user_id: int,
    current_user: User = Depends(require_permission(Permission.ASSIGN_USERS)),
    service: MembershipService = Depends(get_membership_service)
):
    """Remove a user from an event."""
    try:
        outcome = await service.remove_user(event_id, user_id, removed_by=current_user)
    except EventSphereError as e:
        raise from_domain_error(e)

    change = outcome.value
    return MembershipResponse(
        event_id=change.event_id,
        user_id=change.user_id,
        removed=change.removed,
        atomicity=outcome.atomicity.value,
    )
