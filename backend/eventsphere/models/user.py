"""User model and user-side event roles."""
from sqlalchemy import Column, Integer, String, Boolean, TIMESTAMP, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from eventsphere.database import Base


class User(Base):
    """
    A platform user.

    A user's authority is the set of roles recorded in ``events``; there is
    no global role column.
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)

    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)

    # Account status
    is_active = Column(Boolean, default=True, nullable=False)
    last_login = Column(TIMESTAMP(timezone=True), nullable=True)

    # Authentication bookkeeping (owned by the auth layer)
    login_attempts = Column(Integer, default=0, nullable=False)
    lock_until = Column(TIMESTAMP(timezone=True), nullable=True)

    # Timestamps
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now())

    events = relationship(
        "UserEventRole",
        back_populates="user",
        cascade="all, delete-orphan",
        lazy="selectin"
    )

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email}, active={self.is_active})>"


class UserEventRole(Base):
    """
    User-side record of a role held in an event.

    Mirrors EventMember; the two rows are written and removed together.
    """

    __tablename__ = "user_events"

    id = Column(Integer, primary_key=True, index=True)

    user_id = Column(
        Integer,
        ForeignKey('users.id'),
        nullable=False,
        index=True
    )
    event_id = Column(
        Integer,
        ForeignKey('events.id'),
        nullable=False,
        index=True
    )
    role = Column(String(30), nullable=False)

    user = relationship("User", back_populates="events")

    __table_args__ = (
        UniqueConstraint('user_id', 'event_id', name='uq_user_event'),
    )

    def __repr__(self):
        return f"<UserEventRole(user_id={self.user_id}, event_id={self.event_id}, role={self.role})>"
