"""SQLAlchemy models for the Clerk identity mirror."""

from clerk_mirror.models.user import User, PLACEHOLDER_FLAG
from clerk_mirror.models.organization import Organization
from clerk_mirror.models.organization_membership import (
    OrganizationMembership,
    ADMIN_ROLES,
    normalize_role,
)
from clerk_mirror.models.organization_invitation import (
    OrganizationInvitation,
    InvitationStatus,
)
from clerk_mirror.models.user_session import UserSession, SessionStatus
from clerk_mirror.models.permission import Permission
from clerk_mirror.models.role import Role
from clerk_mirror.models.webhook_event import WebhookEvent, WebhookEventStatus

__all__ = [
    "User",
    "PLACEHOLDER_FLAG",
    "Organization",
    "OrganizationMembership",
    "ADMIN_ROLES",
    "normalize_role",
    "OrganizationInvitation",
    "InvitationStatus",
    "UserSession",
    "SessionStatus",
    "Permission",
    "Role",
    "WebhookEvent",
    "WebhookEventStatus",
]
