"""Event membership management - keeps both sides of the user/event relation in step."""
import logging
from dataclasses import dataclass
from typing import Any, Optional

from sqlalchemy import select, func, delete

from eventsphere.config import get_settings
from eventsphere.errors import NotFoundError, ValidationError
from eventsphere.models.event import Event, EventMember
from eventsphere.models.user import User, UserEventRole
from eventsphere.services.transaction_service import (
    AtomicResult,
    TransactionContext,
    TransactionCoordinator,
)
from eventsphere.utils.roles import Role


logger = logging.getLogger(__name__)


@dataclass
class MembershipChange:
    event_id: int
    user_id: int
    role: Optional[str]
    created: bool = False
    removed: bool = False


class MembershipService:
    """Service for adding, re-roling and removing event members."""

    def __init__(self, coordinator: TransactionCoordinator):
        """Initialize membership service."""
        self.coordinator = coordinator

    async def assign_user(
        self,
        event_id: int,
        user_id: int,
        role: str,
        assigned_by: Optional[Any] = None,
    ) -> AtomicResult[MembershipChange]:
        """
        Give a user a role in an event, or change the role they already hold.

        Both the event's member row and the user's role row are written in
        the same unit of work.

        Raises:
            ValidationError: Unknown role, or the event is full
            NotFoundError: Event or user does not exist
        """
        role = role.value if isinstance(role, Role) else role
        if role not in {r.value for r in Role}:
            raise ValidationError("Invalid role")

        async def work(ctx: TransactionContext) -> MembershipChange:
            session = ctx.session
            event, user = await self._load_pair(session, event_id, user_id)

            member = (await session.execute(
                select(EventMember).where(
                    EventMember.event_id == event_id,
                    EventMember.user_id == user_id
                )
            )).scalar_one_or_none()
            user_role = (await session.execute(
                select(UserEventRole).where(
                    UserEventRole.user_id == user_id,
                    UserEventRole.event_id == event_id
                )
            )).scalar_one_or_none()

            created = member is None
            if created:
                current = (await session.execute(
                    select(func.count(EventMember.id)).where(EventMember.event_id == event_id)
                )).scalar() or 0
                limit = min(event.max_participants, get_settings().MAX_USERS_PER_EVENT)
                if current >= limit:
                    raise ValidationError("Event has reached maximum participant limit")
                session.add(EventMember(event_id=event_id, user_id=user_id, role=role))
            else:
                member.role = role

            if user_role is None:
                session.add(UserEventRole(user_id=user_id, event_id=event_id, role=role))
            else:
                user_role.role = role
            await ctx.checkpoint()

            logger.info(
                "User %s %s event %s as %s (by %s)",
                user.id, "added to" if created else "re-assigned in", event.id, role,
                getattr(assigned_by, "id", assigned_by)
            )
            return MembershipChange(event_id=event_id, user_id=user_id, role=role, created=created)

        return await self.coordinator.run_atomic(work)

    async def remove_user(
        self,
        event_id: int,
        user_id: int,
        removed_by: Optional[Any] = None,
    ) -> AtomicResult[MembershipChange]:
        """
        Remove a user from an event on both sides of the relation.

        Removing someone who is not a member is not an error; ``removed`` is
        False in that case.

        Raises:
            NotFoundError: Event or user does not exist
        """
        async def work(ctx: TransactionContext) -> MembershipChange:
            session = ctx.session
            await self._load_pair(session, event_id, user_id)

            result = await session.execute(
                delete(EventMember).where(
                    EventMember.event_id == event_id,
                    EventMember.user_id == user_id
                )
            )
            await ctx.checkpoint()
            await session.execute(
                delete(UserEventRole).where(
                    UserEventRole.user_id == user_id,
                    UserEventRole.event_id == event_id
                )
            )
            await ctx.checkpoint()

            removed = (result.rowcount or 0) > 0
            if removed:
                logger.info(
                    "User %s removed from event %s (by %s)",
                    user_id, event_id, getattr(removed_by, "id", removed_by)
                )
            return MembershipChange(event_id=event_id, user_id=user_id, role=None, removed=removed)

        return await self.coordinator.run_atomic(work)

    @staticmethod
    async def _load_pair(session, event_id: int, user_id: int):
        event = await session.get(Event, event_id)
        if event is None:
            raise NotFoundError("Event", event_id)
        user = await session.get(User, user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        return event, user
