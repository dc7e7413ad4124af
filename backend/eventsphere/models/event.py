"""Event and event membership models."""
import enum
from sqlalchemy import (
    Column, Integer, String, TIMESTAMP, ForeignKey, Text, UniqueConstraint
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from eventsphere.database import Base


class EventStatus(str, enum.Enum):
    """Lifecycle state of an event."""
    DRAFT = "draft"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# Statuses that date-based derivation never overwrites
TERMINAL_STATUSES = frozenset({EventStatus.CANCELLED.value})


class Event(Base):
    """
    An event whose status follows its calendar dates.

    Status is either a manual terminal value (cancelled) or is re-derived
    from start_date/end_date by the lifecycle engine. Members are stored in
    event_users and mirrored on the user side in user_events.
    """
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)

    title = Column(String(100), nullable=False)
    description = Column(Text, nullable=False)
    location = Column(String(200), nullable=True)

    start_date = Column(TIMESTAMP(timezone=True), nullable=False, index=True)
    end_date = Column(TIMESTAMP(timezone=True), nullable=False, index=True)

    status = Column(
        String(20),
        default=EventStatus.DRAFT.value,
        nullable=False,
        index=True
    )

    max_participants = Column(Integer, default=100, nullable=False)

    # Timestamps
    created_at = Column(
        TIMESTAMP(timezone=True),
        server_default=func.now()
    )
    updated_at = Column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        onupdate=func.now()
    )

    # Relationships
    users = relationship(
        "EventMember",
        back_populates="event",
        cascade="all, delete-orphan",
        lazy="selectin"
    )

    def __repr__(self):
        return (
            f"<Event(id={self.id}, title={self.title}, status={self.status}, "
            f"start_date={self.start_date}, end_date={self.end_date})>"
        )


class EventMember(Base):
    """
    Event-side record of a user's role in an event.

    Mirrors UserEventRole; the two rows are written and removed together.
    """
    __tablename__ = "event_users"

    id = Column(Integer, primary_key=True, index=True)

    event_id = Column(
        Integer,
        ForeignKey('events.id'),
        nullable=False,
        index=True
    )
    user_id = Column(
        Integer,
        ForeignKey('users.id'),
        nullable=False,
        index=True
    )
    role = Column(String(30), nullable=False)

    event = relationship("Event", back_populates="users")

    __table_args__ = (
        UniqueConstraint('event_id', 'user_id', name='uq_event_user'),
    )

    def __repr__(self):
        return f"<EventMember(event_id={self.event_id}, user_id={self.user_id}, role={self.role})>"
