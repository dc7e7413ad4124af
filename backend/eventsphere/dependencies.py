"""FastAPI dependencies for authentication and authorization."""
from typing import Callable, Optional, Union

from fastapi import Depends, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from eventsphere.api.exceptions import forbidden, unauthorized
from eventsphere.database import get_db
from eventsphere.models.user import User
from eventsphere.utils.roles import (
    Permission,
    has_management_role,
    has_permission,
    roles_for_user,
)


async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db)
) -> User:
    """
    Get the current authenticated user.

    The authentication layer in front of the API puts the verified user id
    on ``request.state.user_id``.

    Raises:
        HTTPException: If not authenticated or the user no longer exists
    """
    user_id: Optional[int] = getattr(request.state, "user_id", None)
    if user_id is None:
        raise unauthorized()

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if not user:
        raise unauthorized("Invalid or expired session")

    return user


async def get_current_active_user(
    current_user: User = Depends(get_current_user)
) -> User:
    """
    Get the current active user.

    Raises:
        HTTPException: If user is not active
    """
    if not current_user.is_active:
        raise forbidden("Inactive user")
    return current_user


def require_permission(permission: Union[Permission, str]) -> Callable:
    """
    Build a dependency that admits users holding ``permission`` through any
    of their event roles.

    Usage:
        @router.post("/events")
        async def create_event(user: User = Depends(require_permission(Permission.CREATE_EVENTS))):
            ...
    """
    async def checker(current_user: User = Depends(get_current_active_user)) -> User:
        if not has_permission(roles_for_user(current_user), permission):
            raise forbidden("Insufficient permissions")
        return current_user

    return checker


async def require_management_role(
    current_user: User = Depends(get_current_active_user)
) -> User:
    """Admit te_head, be_head and admin users."""
    if not has_management_role(roles_for_user(current_user)):
        raise forbidden("Management role required")
    return current_user
