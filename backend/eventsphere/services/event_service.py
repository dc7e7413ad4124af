"""Event service for managing events and their lifecycle status."""
import logging
from datetime import datetime
from typing import Any, Callable, List, Optional, Tuple

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from eventsphere.errors import NotFoundError
from eventsphere.models.event import Event, EventMember, EventStatus, TERMINAL_STATUSES
from eventsphere.utils.event_lifecycle import (
    StatusChange,
    determine_status,
    initial_status,
    reconcile_batch,
    utcnow,
    validate_event_dates,
    validate_status_transition,
)


logger = logging.getLogger(__name__)


class EventService:
    """Service for managing events; every date or status change goes through the lifecycle rules."""

    def __init__(self, session: AsyncSession, clock: Callable[[], datetime] = utcnow):
        """Initialize event service."""
        self.session = session
        self.clock = clock

    # ============== Retrieval ==============

    async def get_event(self, event_id: int) -> Optional[Event]:
        """Get an event by ID."""
        result = await self.session.execute(
            select(Event).where(Event.id == event_id)
        )
        return result.scalar_one_or_none()

    async def require_event(self, event_id: int) -> Event:
        """Get an event by ID or raise NotFoundError."""
        event = await self.get_event(event_id)
        if event is None:
            raise NotFoundError("Event", event_id)
        return event

    async def list_events(
        self,
        page: int = 1,
        page_size: int = 10,
        status: Optional[str] = None,
        search: Optional[str] = None,
        start_from: Optional[datetime] = None,
        start_to: Optional[datetime] = None,
        member_id: Optional[int] = None,
    ) -> Tuple[List[Event], int]:
        """
        List events with filtering and pagination, latest start first.

        Args:
            status: Stored status to match
            search: Case-insensitive substring of title, description or location
            start_from: Earliest start date
            start_to: Latest start date
            member_id: Only events this user holds a role in

        Returns:
            Tuple of (list of events, total count)
        """
        query = select(Event).order_by(Event.start_date.desc(), Event.id.desc())
        count_query = select(func.count(Event.id))

        filters = []
        if status:
            filters.append(Event.status == status)
        if search:
            filters.append(or_(
                Event.title.ilike(f"%{search}%"),
                Event.description.ilike(f"%{search}%"),
                Event.location.ilike(f"%{search}%"),
            ))
        if start_from:
            filters.append(Event.start_date >= start_from)
        if start_to:
            filters.append(Event.start_date <= start_to)
        if member_id is not None:
            filters.append(Event.users.any(EventMember.user_id == member_id))

        if filters:
            query = query.where(*filters)
            count_query = count_query.where(*filters)

        total = (await self.session.execute(count_query)).scalar() or 0

        offset = (page - 1) * page_size
        result = await self.session.execute(query.offset(offset).limit(page_size))
        return list(result.scalars().all()), total

    async def list_all_events(self) -> List[Event]:
        """Every event with its members, most recently created first."""
        result = await self.session.execute(
            select(Event).order_by(Event.created_at.desc(), Event.id.desc())
        )
        return list(result.scalars().all())

    async def get_non_terminal_events(self) -> List[Event]:
        """Events whose status is still derived from their dates."""
        result = await self.session.execute(
            select(Event).where(Event.status.not_in(TERMINAL_STATUSES))
        )
        return list(result.scalars().all())

    # ============== Mutations ==============

    async def create_event(
        self,
        title: str,
        description: str,
        start_date,
        end_date,
        location: Optional[str] = None,
        max_participants: int = 100,
        status: Optional[str] = None,
        created_by: Optional[Any] = None,
    ) -> Event:
        """
        Create a new event.

        Dates are validated first. The event starts as draft when requested,
        otherwise its status is derived from the dates.

        Raises:
            ValidationError: If the dates are rejected
        """
        now = self.clock()
        start, end = validate_event_dates(start_date, end_date, now)

        event = Event(
            title=title,
            description=description,
            location=location,
            start_date=start,
            end_date=end,
            max_participants=max_participants,
            status=initial_status(start, end, status, now).value,
        )
        self.session.add(event)
        await self.session.commit()
        await self.session.refresh(event)

        logger.info(
            "Event created: id=%s title=%r status=%s created_by=%s",
            event.id, event.title, event.status, getattr(created_by, "id", created_by)
        )
        return event

    async def update_event_status(
        self,
        event_id: int,
        new_status: str,
        updated_by: Optional[Any] = None,
    ) -> Event:
        """
        Manually move an event to another status.

        Raises:
            NotFoundError: If the event does not exist
            ValidationError: If the transition is not allowed
        """
        event = await self.require_event(event_id)
        new_status = new_status.value if isinstance(new_status, EventStatus) else new_status

        validate_status_transition(event.status, new_status, event, self.clock())

        old_status = event.status
        event.status = new_status
        await self.session.commit()
        await self.session.refresh(event)

        logger.info(
            "Event status updated: id=%s %s -> %s updated_by=%s",
            event.id, old_status, new_status, getattr(updated_by, "id", updated_by)
        )
        return event

    async def update_event_dates(
        self,
        event_id: int,
        start_date=None,
        end_date=None,
        updated_by: Optional[Any] = None,
    ) -> Event:
        """
        Change an event's dates and re-derive its status.

        Whether the caller may change the dates at all is decided by
        ``can_modify_dates`` before this is called.

        Raises:
            NotFoundError: If the event does not exist
            ValidationError: If the new dates are rejected
        """
        event = await self.require_event(event_id)
        now = self.clock()

        start, end = validate_event_dates(
            start_date if start_date is not None else event.start_date,
            end_date if end_date is not None else event.end_date,
            now,
        )
        event.start_date = start
        event.end_date = end
        event.status = determine_status(event, now).value

        await self.session.commit()
        await self.session.refresh(event)

        logger.info(
            "Event dates updated: id=%s start=%s end=%s status=%s updated_by=%s",
            event.id, start.isoformat(), end.isoformat(), event.status,
            getattr(updated_by, "id", updated_by)
        )
        return event

    # ============== Reconciliation ==============

    async def apply_status_changes(self, changes: List[StatusChange]) -> int:
        """
        Persist derived statuses.

        Each write is guarded by the old status, so an event that was changed
        in the meantime is left alone. Re-applying the same change is a no-op.

        Returns:
            Number of events updated
        """
        updated = 0
        for change in changes:
            result = await self.session.execute(
                update(Event)
                .where(Event.id == change.event_id, Event.status == change.old_status)
                .values(status=change.new_status.value)
            )
            updated += result.rowcount or 0
        await self.session.commit()
        return updated

    async def reconcile_statuses(self) -> List[StatusChange]:
        """
        Bring every non-terminal event's stored status in line with its dates.

        Returns:
            The changes that were detected and written
        """
        events = await self.get_non_terminal_events()
        changes = reconcile_batch(events, self.clock())
        if changes:
            updated = await self.apply_status_changes(changes)
            logger.info("Updated status for %d events", updated)
        return changes
