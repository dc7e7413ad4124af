"""Event lifecycle rules: date validation, status derivation and transitions.

Everything here is pure. The current time is always passed in as ``now`` so
results are deterministic; callers obtain it from an injected clock
(``utcnow`` by default).
"""
import math
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from typing import Iterable, NamedTuple, Optional, Tuple, Union

from eventsphere.errors import ValidationError
from eventsphere.models.event import EventStatus, TERMINAL_STATUSES
from eventsphere.utils.roles import Role, MANAGEMENT_ROLES


START_GRACE = timedelta(hours=1)
MIN_DURATION = timedelta(minutes=15)
MAX_DURATION = timedelta(days=365)
ACTIVATION_HORIZON = timedelta(days=7)
DATE_LOCK_WINDOW = timedelta(hours=24)

VALID_TRANSITIONS = {
    EventStatus.DRAFT.value: frozenset({EventStatus.ACTIVE.value, EventStatus.CANCELLED.value}),
    EventStatus.ACTIVE.value: frozenset({EventStatus.COMPLETED.value, EventStatus.CANCELLED.value}),
    EventStatus.COMPLETED.value: frozenset({EventStatus.ACTIVE.value}),
    EventStatus.CANCELLED.value: frozenset({EventStatus.DRAFT.value, EventStatus.ACTIVE.value}),
}

Instant = Union[datetime, str]


class StatusChange(NamedTuple):
    """A derived status that differs from the stored one."""
    event_id: int
    old_status: str
    new_status: EventStatus


def utcnow() -> datetime:
    """Default clock."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes (e.g. read back from SQLite) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def parse_instant(value: Instant) -> datetime:
    """
    Coerce a datetime or ISO-8601 string into an aware datetime.

    Raises:
        ValidationError: If the value cannot be read as a date
    """
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, str):
        try:
            # fromisoformat() before 3.11 rejects the trailing "Z"
            return ensure_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))
        except ValueError:
            pass
    raise ValidationError("Invalid date format")


def _status_value(status) -> str:
    return status.value if isinstance(status, EventStatus) else status


def validate_event_dates(start: Instant, end: Instant, now: datetime) -> Tuple[datetime, datetime]:
    """
    Validate a proposed start/end pair.

    Rules are checked in order and the first failure is reported:
    start may be at most one hour in the past, end must follow start, and the
    duration must lie between 15 minutes and 365 days.

    Returns:
        The parsed (start, end) pair

    Raises:
        ValidationError: On the first violated rule
    """
    start = parse_instant(start)
    end = parse_instant(end)
    now = ensure_utc(now)

    if start < now - START_GRACE:
        raise ValidationError("Start date cannot be in the past")

    if end <= start:
        raise ValidationError("End date must be after start date")

    duration = end - start
    if duration > MAX_DURATION:
        raise ValidationError("Event duration cannot exceed 365 days")

    if duration < MIN_DURATION:
        raise ValidationError("Event must be at least 15 minutes long")

    return start, end


def determine_status(event, now: datetime) -> EventStatus:
    """
    Derive the status an event should have at ``now``.

    Cancelled is sticky. Completed is kept once the event has started and is
    corrected back to active if it was marked completed prematurely. Draft
    and active follow the dates; a draft stays draft until it starts.
    """
    current = _status_value(event.status)
    now = ensure_utc(now)
    start = ensure_utc(event.start_date)
    end = ensure_utc(event.end_date)

    if current == EventStatus.CANCELLED.value:
        return EventStatus.CANCELLED

    if current == EventStatus.COMPLETED.value:
        if now >= start:
            return EventStatus.COMPLETED
        return EventStatus.ACTIVE

    if now < start:
        return EventStatus.DRAFT if current == EventStatus.DRAFT.value else EventStatus.ACTIVE
    if now <= end:
        return EventStatus.ACTIVE
    return EventStatus.COMPLETED


def validate_status_transition(current, new, event, now: datetime) -> bool:
    """
    Check that a manual status change is allowed.

    Raises:
        ValidationError: If the edge is not in the transition table, or the
            event's dates rule out the target status
    """
    current = _status_value(current)
    new = _status_value(new)

    if new not in VALID_TRANSITIONS.get(current, ()):
        raise ValidationError(f"Cannot change status from {current} to {new}")

    now = ensure_utc(now)
    start = ensure_utc(event.start_date)
    end = ensure_utc(event.end_date)

    if new == EventStatus.ACTIVE.value:
        if start > now + ACTIVATION_HORIZON:
            raise ValidationError("Cannot activate event that starts more than 7 days in the future")
        if end < now:
            raise ValidationError("Cannot activate event that has already ended")

    if new == EventStatus.COMPLETED.value and now < start:
        raise ValidationError("Cannot complete event that has not started yet")

    return True


def can_modify_dates(event, now: datetime, actor_role: Optional[str]) -> bool:
    """
    Decide whether an actor may change an event's dates.

    Once the event has started only admins may; within 24 hours of the start
    only management roles may; otherwise anyone who can edit the event may.
    """
    actor_role = actor_role.value if isinstance(actor_role, Role) else actor_role
    now = ensure_utc(now)
    start = ensure_utc(event.start_date)

    if now >= start:
        return actor_role == Role.ADMIN.value

    if start - now < DATE_LOCK_WINDOW:
        return actor_role in MANAGEMENT_ROLES

    return True


def initial_status(start: datetime, end: datetime, requested, now: datetime) -> EventStatus:
    """Status for a newly created event: draft on request, otherwise date-derived."""
    if _status_value(requested) == EventStatus.DRAFT.value:
        return EventStatus.DRAFT

    proposed = SimpleNamespace(status=EventStatus.ACTIVE.value, start_date=start, end_date=end)
    return determine_status(proposed, now)


def reconcile_batch(events: Iterable, now: datetime) -> list[StatusChange]:
    """
    Report events whose derived status differs from the stored one.

    Terminal events are skipped. Inputs are not modified; persisting the
    returned changes is the caller's job.
    """
    changes = []
    for event in events:
        stored = _status_value(event.status)
        if stored in TERMINAL_STATUSES:
            continue
        derived = determine_status(event, now)
        if derived.value != stored:
            changes.append(StatusChange(event.id, stored, derived))
    return changes


class EventTiming(NamedTuple):
    """Read-time view of where an event sits relative to ``now``."""
    status: EventStatus
    is_upcoming: bool
    days_until_start: int
    duration_hours: int


def describe_event(event, now: datetime) -> EventTiming:
    """
    Derive the status and timing fields shown to clients.

    Day and hour counts round up, so an event starting in 2 hours is 1 day
    away and a 90-minute event lasts 2 hours.
    """
    now = ensure_utc(now)
    start = ensure_utc(event.start_date)
    end = ensure_utc(event.end_date)

    return EventTiming(
        status=determine_status(event, now),
        is_upcoming=start > now,
        days_until_start=math.ceil((start - now) / timedelta(days=1)),
        duration_hours=math.ceil((end - start) / timedelta(hours=1)),
    )
