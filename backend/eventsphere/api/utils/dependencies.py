"""Common dependency injection utilities."""
from functools import lru_cache

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from eventsphere.database import AsyncSessionLocal, get_db
from eventsphere.services.event_service import EventService
from eventsphere.services.membership_service import MembershipService
from eventsphere.services.transaction_service import TransactionCoordinator
from eventsphere.tasks.scheduler import LifecycleScheduler


async def get_event_service(
    db: AsyncSession = Depends(get_db)
) -> EventService:
    """
    Get EventService instance.

    Args:
        db: Database session from dependency injection

    Returns:
        Initialized EventService
    """
    return EventService(db)


@lru_cache()
def _shared_coordinator() -> TransactionCoordinator:
    return TransactionCoordinator(AsyncSessionLocal)


async def get_transaction_coordinator() -> TransactionCoordinator:
    """
    Get the process-wide TransactionCoordinator.

    The coordinator opens its own sessions so each cascade gets a clean
    transaction, and probes the store for transaction support only once.
    """
    return _shared_coordinator()


async def get_membership_service(
    coordinator: TransactionCoordinator = Depends(get_transaction_coordinator)
) -> MembershipService:
    """Get MembershipService instance."""
    return MembershipService(coordinator)


async def get_lifecycle_scheduler(request: Request) -> LifecycleScheduler:
    """Get the scheduler owned by the running application."""
    return request.app.state.scheduler
