"""
User sync from Clerk user.* events.

Field mapping (Clerk -> mirror):
- first_name / last_name        -> first_name / last_name, name
- primary email address         -> email, email_verified
- password_enabled              -> has_password
- external_id                   -> external_system_id
- metadata isSuperAdmin / isSuperUser booleans -> is_super_admin / is_super_user
"""

import logging
from typing import Any, Dict, Optional

from clerk_mirror.api.schemas.clerk_events import UserPayload
from clerk_mirror.models.organization_invitation import OrganizationInvitation
from clerk_mirror.models.organization_membership import OrganizationMembership
from clerk_mirror.models.user import User
from clerk_mirror.models.user_session import UserSession
from clerk_mirror.models.base import to_iso_timestamp
from clerk_mirror.services.clerk_sync.base import (
    ClerkSyncServiceBase,
    SyncResult,
    build_display_name,
    non_empty,
)
from clerk_mirror.services.clerk_sync.placeholders import clear_placeholder_flag

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("external_id", "name")


def _metadata_flag(payload: UserPayload, key: str) -> Optional[bool]:
    """Read a boolean system-role flag from private, then public, metadata."""
    for metadata in (payload.private_metadata, payload.public_metadata):
        value = (metadata or {}).get(key)
        if isinstance(value, bool):
            return value
    return None


class UserSyncService(ClerkSyncServiceBase):
    """Create, update and delete mirrored users."""

    def build_fields(self, payload: UserPayload) -> Dict[str, Any]:
        primary = payload.primary_email
        email = primary.email_address if primary else None

        return {
            "external_id": payload.id,
            "name": build_display_name(
                payload.first_name, payload.last_name, payload.username, email, payload.id
            ),
            "first_name": payload.first_name,
            "last_name": payload.last_name,
            "email": email,
            "username": payload.username,
            "image_url": payload.image_url,
            "profile_image_url": payload.profile_image_url,
            "created_at": to_iso_timestamp(payload.created_at),
            "updated_at": to_iso_timestamp(payload.updated_at),
            "last_sign_in_at": to_iso_timestamp(payload.last_sign_in_at),
            "email_verified": primary.is_verified if primary else None,
            "has_password": payload.password_enabled,
            "two_factor_enabled": payload.two_factor_enabled,
            "is_super_admin": _metadata_flag(payload, "isSuperAdmin"),
            "is_super_user": _metadata_flag(payload, "isSuperUser"),
            "public_metadata": non_empty(payload.public_metadata),
            "private_metadata": non_empty(payload.private_metadata),
            "external_system_id": payload.external_id,
        }

    def upsert_from_clerk(self, payload: UserPayload) -> SyncResult:
        """
        Create or update a user from a user.created / user.updated payload.

        Re-applying the same payload converges to the same row. A placeholder
        row for the same Clerk ID is completed and its flag cleared.
        """
        fields = self.build_fields(payload)
        existing = self.get_by_external_id(User, payload.id)

        was_placeholder = False
        if existing is not None:
            was_placeholder = clear_placeholder_flag(existing)

        user = self.insert_or_patch(User, existing, fields, REQUIRED_FIELDS)

        logger.info(
            "Created user from Clerk" if existing is None else "Updated user from Clerk",
            extra={
                "clerk_user_id": payload.id,
                "user_id": user.id,
                "was_placeholder": was_placeholder,
            },
        )
        return SyncResult.ok(user.id)

    def delete_from_clerk(self, external_id: str) -> SyncResult:
        """
        Hard-delete a user and the rows that reference it.

        Memberships and sessions are deleted, invitation creator references
        are cleared, then the user row itself is removed.
        """
        user = self.get_by_external_id(User, external_id)
        if user is None:
            logger.warning(
                "Cannot delete user, none for Clerk user ID",
                extra={"clerk_user_id": external_id},
            )
            return SyncResult.failed("user_not_found")

        memberships = self.session.query(OrganizationMembership).filter(
            OrganizationMembership.user_id == user.id
        ).all()
        for membership in memberships:
            self.session.delete(membership)

        sessions = self.session.query(UserSession).filter(
            UserSession.user_id == user.id
        ).all()
        for user_session in sessions:
            self.session.delete(user_session)

        invitations = self.session.query(OrganizationInvitation).filter(
            OrganizationInvitation.created_by_user_id == user.id
        ).all()
        for invitation in invitations:
            invitation.created_by_user_id = None

        self.session.flush()
        self.session.delete(user)
        self.session.flush()

        logger.info(
            "Deleted user from Clerk",
            extra={
                "clerk_user_id": external_id,
                "memberships_deleted": len(memberships),
                "sessions_deleted": len(sessions),
            },
        )
        return SyncResult.ok(user.id)

    def get_by_clerk_id(self, external_id: str) -> Optional[User]:
        return self.get_by_external_id(User, external_id)
