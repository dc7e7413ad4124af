"""Pydantic schemas for events and event membership."""
from datetime import datetime
from typing import Dict, Optional, List, Union
from pydantic import BaseModel, Field, field_validator

from eventsphere.config import get_settings
from eventsphere.models.event import EventStatus
from eventsphere.utils.event_lifecycle import describe_event
from eventsphere.utils.roles import Role


class EventCreate(BaseModel):
    """Schema for creating an event. Dates may be ISO-8601 strings."""
    title: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1, max_length=2000)
    location: Optional[str] = Field(None, max_length=255)
    start_date: Union[datetime, str]
    end_date: Union[datetime, str]
    max_participants: int = Field(100, ge=1)
    status: Optional[EventStatus] = None

    @field_validator("max_participants")
    @classmethod
    def cap_participants(cls, value: int) -> int:
        limit = get_settings().MAX_USERS_PER_EVENT
        if value > limit:
            raise ValueError(f"max_participants cannot exceed {limit}")
        return value


class EventStatusUpdate(BaseModel):
    """Schema for a manual status change."""
    status: EventStatus


class EventDatesUpdate(BaseModel):
    """Schema for changing an event's dates; omitted dates are kept."""
    start_date: Optional[Union[datetime, str]] = None
    end_date: Optional[Union[datetime, str]] = None


class EventMemberResponse(BaseModel):
    """A user's role within an event."""
    user_id: int
    role: str

    model_config = {
        "from_attributes": True
    }


class EventResponse(BaseModel):
    """Event response schema."""
    id: int
    title: str
    description: str
    location: Optional[str] = None
    start_date: datetime
    end_date: datetime
    status: str
    max_participants: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    users: List[EventMemberResponse] = []

    # Computed at read time
    is_upcoming: bool = False
    days_until_start: Optional[int] = None
    duration_hours: Optional[int] = None

    model_config = {
        "from_attributes": True
    }

    @classmethod
    def from_event(cls, event, now: datetime) -> "EventResponse":
        """Serialize an event with its status derived for ``now``. Nothing is persisted."""
        timing = describe_event(event, now)
        return cls.model_validate(event).model_copy(update={
            "status": timing.status.value,
            "is_upcoming": timing.is_upcoming,
            "days_until_start": timing.days_until_start,
            "duration_hours": timing.duration_hours,
        })


class EventListResponse(BaseModel):
    """Response for event list."""
    items: List[EventResponse]
    total: int
    page: int
    page_size: int
    total_pages: int


class EventDashboardStats(BaseModel):
    """Status breakdown shown on the management dashboard."""
    total: int
    status_counts: Dict[str, int]
    upcoming_events: int
    active_events: int


class EventDashboardResponse(BaseModel):
    """Every event plus status statistics."""
    events: List[EventResponse]
    statistics: EventDashboardStats


class EventDeleteResponse(BaseModel):
    """Outcome of deleting an event and its dependent data."""
    message: str
    atomicity: str
    tasks_deleted: int
    archive_links_deleted: int
    users_updated: int


class MembershipRequest(BaseModel):
    """Schema for adding a user to an event or changing their role."""
    user_id: int
    role: Role


class MembershipResponse(BaseModel):
    """Outcome of a membership change."""
    event_id: int
    user_id: int
    role: Optional[str] = None
    created: bool = False
    removed: bool = False
    atomicity: str
