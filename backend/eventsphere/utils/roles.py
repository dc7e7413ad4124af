"""Role hierarchy and permission table for event-scoped authorization.

Two independent schemes live here:

- a hierarchy level per role, used by ``has_required_role`` for coarse
  "at least this seniority" gates;
- an explicit permission set per role, used by ``has_permission`` for
  fine-grained endpoint gating.

Neither is derived from the other. Editing one table does not update the other.
"""
import enum
from typing import Iterable, Optional


class Role(str, enum.Enum):
    """Role a user holds within an event."""
    VOLUNTEER = "volunteer"
    TEAM_MEMBER = "team_member"
    EVENT_COORDINATOR = "event_coordinator"
    TE_HEAD = "te_head"
    BE_HEAD = "be_head"
    ADMIN = "admin"


class Permission(str, enum.Enum):
    """Fine-grained action a role may be granted."""
    # Basic permissions for all authenticated users
    VIEW_EVENTS = "view_events"
    VIEW_TASKS = "view_tasks"
    VIEW_ARCHIVE = "view_archive"

    # Event coordinator permissions
    CREATE_TASKS = "create_tasks"
    EDIT_OWN_TASKS = "edit_own_tasks"

    # Management permissions (te_head, be_head)
    EDIT_EVENTS = "edit_events"
    DELETE_EVENTS = "delete_events"
    EDIT_ALL_TASKS = "edit_all_tasks"
    DELETE_TASKS = "delete_tasks"
    MANAGE_ARCHIVE = "manage_archive"

    # Admin permissions
    CREATE_EVENTS = "create_events"
    MANAGE_USERS = "manage_users"
    ASSIGN_USERS = "assign_users"
    SYSTEM_ADMIN = "system_admin"


ROLE_HIERARCHY = {
    Role.VOLUNTEER.value: 0,
    Role.TEAM_MEMBER.value: 0,
    Role.EVENT_COORDINATOR.value: 1,
    Role.TE_HEAD.value: 2,
    Role.BE_HEAD.value: 2,
    Role.ADMIN.value: 3,
}

_VIEW = frozenset({
    Permission.VIEW_EVENTS.value,
    Permission.VIEW_TASKS.value,
    Permission.VIEW_ARCHIVE.value,
})

_MANAGEMENT = _VIEW | {
    Permission.CREATE_TASKS.value,
    Permission.EDIT_OWN_TASKS.value,
    Permission.EDIT_EVENTS.value,
    Permission.DELETE_EVENTS.value,
    Permission.EDIT_ALL_TASKS.value,
    Permission.DELETE_TASKS.value,
    Permission.MANAGE_ARCHIVE.value,
}

ROLE_PERMISSIONS = {
    Role.VOLUNTEER.value: _VIEW,
    Role.TEAM_MEMBER.value: _VIEW | {Permission.EDIT_OWN_TASKS.value},
    Role.EVENT_COORDINATOR.value: _VIEW | {
        Permission.CREATE_TASKS.value,
        Permission.EDIT_OWN_TASKS.value,
    },
    Role.TE_HEAD.value: _MANAGEMENT,
    Role.BE_HEAD.value: _MANAGEMENT,
    Role.ADMIN.value: _MANAGEMENT | {
        Permission.CREATE_EVENTS.value,
        Permission.MANAGE_USERS.value,
        Permission.ASSIGN_USERS.value,
        Permission.SYSTEM_ADMIN.value,
    },
}

MANAGEMENT_ROLES = frozenset({Role.TE_HEAD.value, Role.BE_HEAD.value, Role.ADMIN.value})


def _value(item) -> str:
    return item.value if isinstance(item, enum.Enum) else item


def role_level(role) -> int:
    """Return the hierarchy level of a role (unknown roles rank 0)."""
    return ROLE_HIERARCHY.get(_value(role), 0)


def has_required_role(roles: Optional[Iterable], required) -> bool:
    """Check whether any held role ranks at least as high as ``required``."""
    if not roles:
        return False
    required_level = role_level(required)
    return any(role_level(role) >= required_level for role in roles)


def has_permission(roles: Optional[Iterable], permission) -> bool:
    """Check whether any held role is explicitly granted ``permission``."""
    if not roles:
        return False
    wanted = _value(permission)
    return any(wanted in ROLE_PERMISSIONS.get(_value(role), ()) for role in roles)


def is_admin(roles: Optional[Iterable]) -> bool:
    """Check whether the admin role is held."""
    if not roles:
        return False
    return any(_value(role) == Role.ADMIN.value for role in roles)


def has_management_role(roles: Optional[Iterable]) -> bool:
    """Check whether te_head, be_head or admin is held."""
    if not roles:
        return False
    return any(_value(role) in MANAGEMENT_ROLES for role in roles)


def roles_for_user(user) -> set[str]:
    """Collect the role set a user holds across all of their events."""
    memberships = getattr(user, "events", None) or []
    return {membership.role for membership in memberships}


def role_in_event(user, event_id: int) -> Optional[str]:
    """Return the role a user holds in one event, or None."""
    for membership in getattr(user, "events", None) or []:
        if membership.event_id == event_id:
            return membership.role
    return None
