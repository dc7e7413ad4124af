"""Atomic multi-table operations that keep cross-entity references intact.

Deleting an event or a user touches several tables. ``TransactionCoordinator``
runs such units of work inside one database transaction when the store
supports it, and otherwise runs them step by step while reporting the outcome
as best effort so callers and logs can tell the two apart.
"""
import asyncio
import enum
import logging
from dataclasses import dataclass, asdict
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

from sqlalchemy import delete, distinct, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from eventsphere.config import get_settings
from eventsphere.database import detect_transaction_support
from eventsphere.errors import NotFoundError, TransactionAbortedError
from eventsphere.models.archive_link import ArchiveLink
from eventsphere.models.event import Event, EventMember
from eventsphere.models.task import Task
from eventsphere.models.user import User, UserEventRole


logger = logging.getLogger(__name__)

T = TypeVar("T")


class Atomicity(str, enum.Enum):
    """How strongly a unit of work was protected."""
    ATOMIC = "atomic"            # committed or rolled back as a whole
    BEST_EFFORT = "best_effort"  # steps committed one by one; may be partial


@dataclass
class TransactionContext:
    """Handle passed to a unit of work."""
    session: AsyncSession
    atomicity: Atomicity
    committed_steps: int = 0

    async def checkpoint(self) -> None:
        """
        Mark the end of one step.

        Inside a transaction this only flushes. Without one, the step is
        committed immediately, so a later failure cannot undo it.
        """
        if self.atomicity is Atomicity.BEST_EFFORT:
            await self.session.commit()
            self.committed_steps += 1
        else:
            await self.session.flush()


@dataclass
class AtomicResult(Generic[T]):
    """Value returned by a unit of work plus the guarantee it ran under."""
    value: T
    atomicity: Atomicity

    @property
    def is_atomic(self) -> bool:
        return self.atomicity is Atomicity.ATOMIC


@dataclass
class EventDeletionStats:
    tasks_deleted: int
    archive_links_deleted: int
    users_updated: int

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class UserDeletionStats:
    tasks_unassigned: int
    events_updated: int

    def to_dict(self) -> dict:
        return asdict(self)


async def _count(session: AsyncSession, column, *criteria) -> int:
    result = await session.execute(select(func.count(column)).where(*criteria))
    return result.scalar() or 0


class TransactionCoordinator:
    """Runs multi-table mutations atomically, or explicitly as best effort."""

    def __init__(
        self,
        session_factory: async_sessionmaker,
        transactional: Optional[bool] = None,
        isolation_level: Optional[str] = None,
        default_timeout: Optional[float] = None,
    ):
        """
        Initialize the coordinator.

        Args:
            session_factory: Factory for the sessions each unit of work runs in
            transactional: Force transaction support on or off; probed from
                the store when None
            isolation_level: Isolation level for transactions (defaults to
                TRANSACTION_ISOLATION_LEVEL)
            default_timeout: Deadline in seconds for each unit of work
                (defaults to CASCADE_TIMEOUT_SECONDS)
        """
        settings = get_settings()
        self.session_factory = session_factory
        self._transactional = transactional
        self.isolation_level = (
            isolation_level if isolation_level is not None else settings.TRANSACTION_ISOLATION_LEVEL
        )
        self.default_timeout = (
            default_timeout if default_timeout is not None else settings.CASCADE_TIMEOUT_SECONDS
        )

    async def supports_transactions(self) -> bool:
        """Probe the store once and remember the answer."""
        if self._transactional is None:
            self._transactional = await detect_transaction_support(self.session_factory.kw["bind"])
        return self._transactional

    async def run_atomic(
        self,
        work: Callable[[TransactionContext], Awaitable[T]],
        timeout: Optional[float] = None,
    ) -> AtomicResult[T]:
        """
        Execute ``work`` as a single unit.

        Args:
            work: Coroutine function receiving a TransactionContext
            timeout: Seconds before the unit is aborted (rolled back if a
                transaction is open)

        Returns:
            AtomicResult holding the work's return value and its atomicity

        Raises:
            NotFoundError, ValidationError: Propagated unchanged from ``work``
            TransactionAbortedError: On store errors or deadline expiry
        """
        timeout = timeout if timeout is not None else self.default_timeout

        if not await self.supports_transactions():
            return await self._run_best_effort(work, timeout)

        async with self.session_factory() as session:
            context = TransactionContext(session, Atomicity.ATOMIC)
            try:
                async with session.begin():
                    await self._apply_isolation(session)
                    value = await asyncio.wait_for(work(context), timeout)
            except asyncio.TimeoutError as e:
                logger.error("Transaction aborted: deadline of %.1fs exceeded", timeout)
                raise TransactionAbortedError(
                    f"Operation timed out after {timeout:.1f} seconds", Atomicity.ATOMIC.value
                ) from e
            except SQLAlchemyError as e:
                logger.error("Transaction aborted due to error: %s", e)
                raise TransactionAbortedError(
                    f"Transaction aborted: {e}", Atomicity.ATOMIC.value
                ) from e
            except Exception as e:
                logger.info("Transaction rolled back: %s", e)
                raise

        logger.info("Transaction committed successfully")
        return AtomicResult(value, Atomicity.ATOMIC)

    async def _apply_isolation(self, session: AsyncSession) -> None:
        """Pin the transaction's isolation level on its connection."""
        if not self.isolation_level:
            return
        # SQLite only offers serializable transactions
        if session.bind.dialect.name == "sqlite":
            return
        await session.connection(execution_options={"isolation_level": self.isolation_level})

    async def _run_best_effort(
        self,
        work: Callable[[TransactionContext], Awaitable[T]],
        timeout: float,
    ) -> AtomicResult[T]:
        logger.warning(
            "Database transactions not available. Executing without transaction "
            "(best effort, not atomic)."
        )
        async with self.session_factory() as session:
            context = TransactionContext(session, Atomicity.BEST_EFFORT)
            try:
                value = await asyncio.wait_for(work(context), timeout)
                await session.commit()
            except Exception as e:
                await session.rollback()
                if context.committed_steps:
                    logger.error(
                        "DATA CONSISTENCY RISK: best-effort operation failed partway; "
                        "%d committed steps remain: %s", context.committed_steps, e
                    )
                else:
                    logger.info("Best-effort operation failed before any step was committed: %s", e)
                if isinstance(e, asyncio.TimeoutError):
                    raise TransactionAbortedError(
                        f"Operation timed out after {timeout:.1f} seconds", Atomicity.BEST_EFFORT.value
                    ) from e
                if isinstance(e, SQLAlchemyError):
                    raise TransactionAbortedError(
                        f"Operation failed partway: {e}", Atomicity.BEST_EFFORT.value
                    ) from e
                raise

        return AtomicResult(value, Atomicity.BEST_EFFORT)

    # ============== Cascades ==============

    async def delete_event_cascade(
        self,
        event_id: int,
        deleted_by: Optional[Any] = None,
        timeout: Optional[float] = None,
    ) -> AtomicResult[EventDeletionStats]:
        """
        Delete an event together with everything that depends on it.

        Tasks and archive links of the event are deleted, the event is pulled
        out of every member's role set, then the event itself is removed.

        Raises:
            NotFoundError: If the event does not exist
        """
        async def work(ctx: TransactionContext) -> EventDeletionStats:
            session = ctx.session

            event = await session.get(Event, event_id)
            if event is None:
                raise NotFoundError("Event", event_id)
            title = event.title

            stats = EventDeletionStats(
                tasks_deleted=await _count(session, Task.id, Task.event_id == event_id),
                archive_links_deleted=await _count(session, ArchiveLink.id, ArchiveLink.event_id == event_id),
                users_updated=await _count(
                    session, distinct(UserEventRole.user_id), UserEventRole.event_id == event_id
                ),
            )

            await session.execute(delete(Task).where(Task.event_id == event_id))
            await ctx.checkpoint()

            await session.execute(delete(ArchiveLink).where(ArchiveLink.event_id == event_id))
            await ctx.checkpoint()

            await session.execute(delete(UserEventRole).where(UserEventRole.event_id == event_id))
            await ctx.checkpoint()

            await session.execute(delete(EventMember).where(EventMember.event_id == event_id))
            await session.execute(delete(Event).where(Event.id == event_id))
            await ctx.checkpoint()

            logger.info(
                "Event and related data deleted: event_id=%s title=%r deleted_by=%s "
                "tasks=%d archive_links=%d affected_users=%d",
                event_id, title, _actor(deleted_by),
                stats.tasks_deleted, stats.archive_links_deleted, stats.users_updated
            )
            return stats

        return await self.run_atomic(work, timeout=timeout)

    async def delete_user_cascade(
        self,
        user_id: int,
        deleted_by: Optional[Any] = None,
        timeout: Optional[float] = None,
    ) -> AtomicResult[UserDeletionStats]:
        """
        Delete a user and strip references to them.

        Assigned tasks are kept and unassigned so task history survives; the
        user is pulled out of every event's member set.

        Raises:
            NotFoundError: If the user does not exist
        """
        async def work(ctx: TransactionContext) -> UserDeletionStats:
            session = ctx.session

            user = await session.get(User, user_id)
            if user is None:
                raise NotFoundError("User", user_id)
            email = user.email

            stats = UserDeletionStats(
                tasks_unassigned=await _count(session, Task.id, Task.assigned_to == user_id),
                events_updated=await _count(
                    session, distinct(EventMember.event_id), EventMember.user_id == user_id
                ),
            )

            await session.execute(
                update(Task).where(Task.assigned_to == user_id).values(assigned_to=None)
            )
            await ctx.checkpoint()

            await session.execute(delete(EventMember).where(EventMember.user_id == user_id))
            await ctx.checkpoint()

            await session.execute(delete(UserEventRole).where(UserEventRole.user_id == user_id))
            await session.execute(delete(User).where(User.id == user_id))
            await ctx.checkpoint()

            logger.info(
                "User and related data cleaned up: user_id=%s email=%s deleted_by=%s "
                "tasks_unassigned=%d events_updated=%d",
                user_id, email, _actor(deleted_by),
                stats.tasks_unassigned, stats.events_updated
            )
            return stats

        return await self.run_atomic(work, timeout=timeout)


def _actor(deleted_by: Optional[Any]) -> Optional[Any]:
    """Reduce a user object (or raw id) to something loggable."""
    return getattr(deleted_by, "id", deleted_by)
