"""Task model."""
import enum
from sqlalchemy import Column, Integer, String, Float, TIMESTAMP, ForeignKey, Text
from sqlalchemy.sql import func
from eventsphere.database import Base


class TaskStatus(str, enum.Enum):
    """Progress of a task."""
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    DONE = "done"
    CANCELLED = "cancelled"


class TaskPriority(str, enum.Enum):
    """Urgency of a task."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class Task(Base):
    """
    A unit of work belonging to an event.

    Tasks are removed only together with their event. Deleting the assignee
    clears ``assigned_to`` and keeps the task.
    """

    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, index=True)

    event_id = Column(Integer, ForeignKey('events.id'), nullable=False, index=True)
    assigned_to = Column(Integer, ForeignKey('users.id'), nullable=True, index=True)

    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)

    status = Column(String(20), default=TaskStatus.TODO.value, nullable=False, index=True)
    priority = Column(String(20), default=TaskPriority.MEDIUM.value, nullable=False)

    deadline = Column(TIMESTAMP(timezone=True), nullable=True)
    completed_at = Column(TIMESTAMP(timezone=True), nullable=True)
    estimated_hours = Column(Float, nullable=True)
    actual_hours = Column(Float, nullable=True)

    # Timestamps
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return (
            f"<Task(id={self.id}, event_id={self.event_id}, "
            f"assigned_to={self.assigned_to}, status={self.status})>"
        )
