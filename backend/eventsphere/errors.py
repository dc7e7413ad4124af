"""Domain exceptions raised by the lifecycle and integrity services."""
from typing import Optional, Union


class EventSphereError(Exception):
    """Base class for domain errors."""


class ValidationError(EventSphereError):
    """User-correctable input error (bad dates, illegal status transition)."""


class NotFoundError(EventSphereError):
    """
    A referenced event, user or scheduled task does not exist.

    Examples:
        raise NotFoundError("Event", 123)  # "Event with ID 123 not found"
        raise NotFoundError("User")        # "User not found"
    """

    def __init__(self, resource: str = "Resource", resource_id: Optional[Union[int, str]] = None):
        self.resource = resource
        self.resource_id = resource_id
        detail = f"{resource} not found"
        if resource_id is not None:
            detail = f"{resource} with ID {resource_id} not found"
        super().__init__(detail)


class TransactionAbortedError(EventSphereError):
    """
    A multi-statement unit of work failed partway.

    ``atomicity`` tells callers whether the store rolled everything back
    ("atomic") or whether earlier steps may have been kept ("best_effort").
    """

    def __init__(self, message: str, atomicity: str = "atomic"):
        self.atomicity = atomicity
        super().__init__(message)

    @property
    def may_be_partial(self) -> bool:
        """True when some writes may have been committed before the failure."""
        return self.atomicity == "best_effort"
