"""
Unit tests for EventService.

Tests event creation, manual status changes, date changes and the
reconciliation pass that keeps stored statuses in line with event dates.
"""

import pytest
from datetime import timedelta
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from eventsphere.errors import NotFoundError, ValidationError
from eventsphere.models.event import Event, EventStatus
from eventsphere.services.event_service import EventService
from eventsphere.utils.event_lifecycle import StatusChange, utcnow

from tests.conftest import make_event, utc_in


@pytest.mark.unit
@pytest.mark.asyncio
class TestEventServiceRetrieval:
    """Test event retrieval operations."""

    async def test_get_event_by_id(self, db_session: AsyncSession, upcoming_event: Event):
        service = EventService(db_session)

        retrieved = await service.get_event(upcoming_event.id)

        assert retrieved is not None
        assert retrieved.title == "Upcoming Summit"

    async def test_get_nonexistent_event(self, db_session: AsyncSession):
        """Test retrieving non-existent event returns None."""
        service = EventService(db_session)
        assert await service.get_event(99999) is None

    async def test_require_event_raises(self, db_session: AsyncSession):
        service = EventService(db_session)
        with pytest.raises(NotFoundError, match="Event with ID 99999 not found"):
            await service.require_event(99999)

    async def test_list_events_by_status(self, db_session: AsyncSession):
        service = EventService(db_session)
        await make_event(db_session, title="Draft One")
        await make_event(db_session, title="Live One", status="active",
                         start_date=utc_in(hours=-1), end_date=utc_in(hours=3))

        active, active_total = await service.list_events(status="active")
        everything, total = await service.list_events()

        assert [e.title for e in active] == ["Live One"]
        assert active_total == 1
        assert len(everything) == total == 2

    async def test_list_events_search_and_dates(self, db_session: AsyncSession):
        service = EventService(db_session)
        await make_event(db_session, title="Harbour Cleanup", location="North Pier")
        await make_event(db_session, title="Book Fair", description="Stalls on the pier",
                         start_date=utc_in(days=60), end_date=utc_in(days=61))
        await make_event(db_session, title="Board Meeting")

        by_text, _ = await service.list_events(search="PIER")
        in_window, _ = await service.list_events(start_from=utc_in(days=45), start_to=utc_in(days=90))

        assert {e.title for e in by_text} == {"Harbour Cleanup", "Book Fair"}
        assert [e.title for e in in_window] == ["Book Fair"]

    async def test_list_events_for_member(self, db_session: AsyncSession, volunteer_user, upcoming_event: Event):
        service = EventService(db_session)
        await make_event(db_session, title="Someone Else's")

        mine, total = await service.list_events(member_id=volunteer_user.id)

        assert [e.id for e in mine] == [upcoming_event.id]
        assert total == 1

    async def test_list_events_paginates_latest_first(self, db_session: AsyncSession):
        service = EventService(db_session)
        for day in range(1, 6):
            await make_event(db_session, title=f"Day {day}",
                             start_date=utc_in(days=day), end_date=utc_in(days=day, hours=2))

        first, total = await service.list_events(page=1, page_size=2)
        last, _ = await service.list_events(page=3, page_size=2)

        assert total == 5
        assert [e.title for e in first] == ["Day 5", "Day 4"]
        assert [e.title for e in last] == ["Day 1"]

    async def test_list_all_events(self, db_session: AsyncSession, upcoming_event: Event):
        service = EventService(db_session)
        await make_event(db_session, title="Later Addition")

        events = await service.list_all_events()

        assert len(events) == 2

    async def test_non_terminal_events_exclude_cancelled(self, db_session: AsyncSession):
        service = EventService(db_session)
        await make_event(db_session, title="Kept")
        await make_event(db_session, title="Done", status="completed")
        await make_event(db_session, title="Called Off", status="cancelled")

        events = await service.get_non_terminal_events()

        assert {e.title for e in events} == {"Kept", "Done"}


@pytest.mark.unit
@pytest.mark.asyncio
class TestEventServiceCreate:
    """Test event creation."""

    async def test_create_derives_status(self, db_session: AsyncSession):
        service = EventService(db_session)

        event = await service.create_event(
            title="Hack Night",
            description="Evening of hacking",
            start_date=utc_in(days=2),
            end_date=utc_in(days=2, hours=4),
        )

        assert event.id is not None
        assert event.status == EventStatus.ACTIVE.value
        assert event.max_participants == 100

    async def test_create_as_draft(self, db_session: AsyncSession):
        service = EventService(db_session)

        event = await service.create_event(
            title="Planning",
            description="Still being planned",
            start_date=utc_in(days=20),
            end_date=utc_in(days=21),
            status="draft",
        )

        assert event.status == "draft"

    async def test_create_accepts_iso_strings(self, db_session: AsyncSession):
        service = EventService(db_session)
        start = utc_in(days=3).replace(microsecond=0)

        event = await service.create_event(
            title="String Dates",
            description="Dates sent as text",
            start_date=start.isoformat().replace("+00:00", "Z"),
            end_date=(start + timedelta(hours=2)).isoformat(),
        )

        assert event.start_date.replace(tzinfo=None) == start.replace(tzinfo=None)

    async def test_create_rejects_bad_dates(self, db_session: AsyncSession):
        service = EventService(db_session)

        with pytest.raises(ValidationError, match="End date must be after start date"):
            await service.create_event(
                title="Backwards",
                description="Ends before it starts",
                start_date=utc_in(days=2),
                end_date=utc_in(days=1),
            )

        count = (await db_session.execute(select(func.count(Event.id)))).scalar()
        assert count == 0


@pytest.mark.unit
@pytest.mark.asyncio
class TestEventServiceStatus:
    """Test manual status changes."""

    async def test_activate_event_within_horizon(self, db_session: AsyncSession):
        service = EventService(db_session)
        event = await make_event(db_session, start_date=utc_in(days=2), end_date=utc_in(days=3))

        updated = await service.update_event_status(event.id, EventStatus.ACTIVE)

        assert updated.status == "active"

    async def test_illegal_transition_leaves_status(self, db_session: AsyncSession, upcoming_event: Event):
        service = EventService(db_session)

        with pytest.raises(ValidationError, match="Cannot change status from draft to completed"):
            await service.update_event_status(upcoming_event.id, "completed")

        await db_session.refresh(upcoming_event)
        assert upcoming_event.status == "draft"

    async def test_cancel_then_restore(self, db_session: AsyncSession, upcoming_event: Event):
        service = EventService(db_session)

        await service.update_event_status(upcoming_event.id, "cancelled")
        restored = await service.update_event_status(upcoming_event.id, "draft")

        assert restored.status == "draft"

    async def test_missing_event(self, db_session: AsyncSession):
        service = EventService(db_session)
        with pytest.raises(NotFoundError):
            await service.update_event_status(12345, "active")


@pytest.mark.unit
@pytest.mark.asyncio
class TestEventServiceDates:
    """Test date changes."""

    async def test_status_rederived_after_date_change(self, db_session: AsyncSession):
        service = EventService(db_session)
        event = await make_event(db_session, status="completed",
                                 start_date=utc_in(days=5), end_date=utc_in(days=6))

        updated = await service.update_event_dates(event.id, start_date=utc_in(days=10), end_date=utc_in(days=11))

        assert updated.status == "active"

    async def test_partial_update_keeps_other_date(self, db_session: AsyncSession, upcoming_event: Event):
        service = EventService(db_session)
        new_end = utc_in(days=33)

        updated = await service.update_event_dates(upcoming_event.id, end_date=new_end)

        assert updated.end_date.replace(tzinfo=None) == new_end.replace(tzinfo=None)
        assert updated.status == "draft"

    async def test_invalid_new_dates(self, db_session: AsyncSession, upcoming_event: Event):
        service = EventService(db_session)
        with pytest.raises(ValidationError, match="at least 15 minutes"):
            await service.update_event_dates(upcoming_event.id, end_date=upcoming_event.start_date + timedelta(minutes=5))


@pytest.mark.unit
@pytest.mark.asyncio
class TestEventServiceReconciliation:
    """Test the reconciliation pass."""

    async def test_reconcile_persists_changes(self, db_session: AsyncSession, session_factory):
        service = EventService(db_session)
        started = await make_event(db_session, title="Started", status="draft",
                                   start_date=utc_in(hours=-1), end_date=utc_in(hours=2))
        ended = await make_event(db_session, title="Ended", status="active",
                                 start_date=utc_in(days=-3), end_date=utc_in(days=-2))
        premature = await make_event(db_session, title="Premature", status="completed",
                                     start_date=utc_in(days=2), end_date=utc_in(days=3))
        cancelled = await make_event(db_session, title="Cancelled", status="cancelled",
                                     start_date=utc_in(days=-3), end_date=utc_in(days=-2))
        untouched = await make_event(db_session, title="Future Draft")

        changes = await service.reconcile_statuses()

        assert {c.event_id: c.new_status for c in changes} == {
            started.id: EventStatus.ACTIVE,
            ended.id: EventStatus.COMPLETED,
            premature.id: EventStatus.ACTIVE,
        }

        async with session_factory() as fresh:
            rows = dict((await fresh.execute(select(Event.id, Event.status))).all())
        assert rows[started.id] == "active"
        assert rows[ended.id] == "completed"
        assert rows[premature.id] == "active"
        assert rows[cancelled.id] == "cancelled"
        assert rows[untouched.id] == "draft"

    async def test_reconcile_is_idempotent(self, db_session: AsyncSession):
        service = EventService(db_session)
        await make_event(db_session, status="active",
                         start_date=utc_in(days=-3), end_date=utc_in(days=-2))

        first = await service.reconcile_statuses()
        second = await service.reconcile_statuses()

        assert len(first) == 1
        assert second == []

    async def test_stale_change_is_skipped(self, db_session: AsyncSession, upcoming_event: Event):
        """A change computed against an old status does not overwrite a newer one."""
        service = EventService(db_session)
        stale = StatusChange(upcoming_event.id, "active", EventStatus.COMPLETED)

        updated = await service.apply_status_changes([stale])

        assert updated == 0
        await db_session.refresh(upcoming_event)
        assert upcoming_event.status == "draft"

    async def test_injected_clock(self, db_session: AsyncSession, upcoming_event: Event):
        """Moving the clock past the end date completes the event."""
        service = EventService(db_session, clock=lambda: utcnow() + timedelta(days=40))

        changes = await service.reconcile_statuses()

        assert changes == [StatusChange(upcoming_event.id, "draft", EventStatus.COMPLETED)]
