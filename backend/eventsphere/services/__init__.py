"""Service layer."""
from eventsphere.services.event_service import EventService
from eventsphere.services.membership_service import MembershipService
from eventsphere.services.transaction_service import (
    Atomicity,
    AtomicResult,
    TransactionContext,
    TransactionCoordinator,
)

__all__ = [
    "EventService",
    "MembershipService",
    "Atomicity",
    "AtomicResult",
    "TransactionContext",
    "TransactionCoordinator",
]
