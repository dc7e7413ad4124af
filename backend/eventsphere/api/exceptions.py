"""Standard HTTP exceptions for common cases."""
from typing import Optional, Union
from fastapi import HTTPException, status

from eventsphere.errors import (
    EventSphereError,
    NotFoundError,
    TransactionAbortedError,
    ValidationError,
)


def not_found(resource: str = "Resource", resource_id: Optional[Union[int, str]] = None) -> HTTPException:
    """
    Return 404 Not Found exception.

    Args:
        resource: Name of the resource that wasn't found
        resource_id: Optional ID of the resource

    Returns:
        HTTPException with 404 status code

    Examples:
        raise not_found("Event", 123)  # "Event with ID 123 not found"
        raise not_found("User")         # "User not found"
    """
    detail = f"{resource} not found"
    if resource_id is not None:
        detail = f"{resource} with ID {resource_id} not found"
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=detail
    )


def forbidden(message: str = "Not authorized to perform this action") -> HTTPException:
    """
    Return 403 Forbidden exception.

    Examples:
        raise forbidden()  # Uses default message
        raise forbidden("Only administrators can modify dates of started events")
    """
    return HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail=message
    )


def unauthorized(message: str = "Not authenticated") -> HTTPException:
    """Return 401 Unauthorized exception."""
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=message
    )


def bad_request(message: str) -> HTTPException:
    """
    Return 400 Bad Request exception.

    Examples:
        raise bad_request("Invalid date format")
        raise bad_request("Cannot change status from draft to completed")
    """
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail=message
    )


def server_error(message: str = "Internal server error") -> HTTPException:
    """
    Return 500 Internal Server Error exception.

    Examples:
        raise server_error("Operation timed out after 30.0 seconds")
    """
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=message
    )


def from_domain_error(error: EventSphereError) -> HTTPException:
    """
    Translate a domain exception into the matching HTTP exception.

    Examples:
        except EventSphereError as e:
            raise from_domain_error(e)
    """
    if isinstance(error, NotFoundError):
        return not_found(error.resource, error.resource_id)
    if isinstance(error, ValidationError):
        return bad_request(str(error))
    if isinstance(error, TransactionAbortedError):
        return server_error(str(error))
    return server_error()
