"""
System-wide user roles.

System roles live outside any organization and are stored as flags on the
mirrored user record (is_super_admin / is_super_user). Organization roles
are Clerk's own role keys on memberships and are not defined here.
"""

from enum import Enum
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from clerk_mirror.models.user import User


class SystemRoleType(str, Enum):
    """System role of a user, highest privilege first."""
    SUPER_ADMIN = "super_admin"
    SUPER_USER = "super_user"
    USER = "user"  # Regular user with no special system privileges


def is_super_admin(user: Optional["User"]) -> bool:
    if user is None:
        return False
    return user.is_super_admin is True


def is_super_user(user: Optional["User"]) -> bool:
    if user is None:
        return False
    return user.is_super_user is True


def has_system_admin_access(user: Optional["User"]) -> bool:
    """Super admins and super users both count as system admins."""
    return is_super_admin(user) or is_super_user(user)


def get_system_role(user: Optional["User"]) -> SystemRoleType:
    """Return the highest system role held by the user."""
    if is_super_admin(user):
        return SystemRoleType.SUPER_ADMIN
    if is_super_user(user):
        return SystemRoleType.SUPER_USER
    return SystemRoleType.USER
