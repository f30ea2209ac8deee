"""
Organization sync from Clerk organization.* events.
"""

import logging
from typing import List

from clerk_mirror.api.schemas.clerk_events import OrganizationPayload
from clerk_mirror.models.base import to_iso_timestamp
from clerk_mirror.models.organization import Organization
from clerk_mirror.models.organization_invitation import OrganizationInvitation
from clerk_mirror.models.organization_membership import OrganizationMembership
from clerk_mirror.services.clerk_sync.base import ClerkSyncServiceBase, SyncResult, non_empty
from clerk_mirror.services.clerk_sync.placeholders import clear_placeholder_flag

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("external_id", "name")


class OrganizationSyncService(ClerkSyncServiceBase):
    """Create, update and delete mirrored organizations."""

    def upsert_from_clerk(self, payload: OrganizationPayload) -> SyncResult:
        """Create or update an organization; completes a placeholder with the same Clerk ID."""
        fields = {
            "external_id": payload.id,
            "name": payload.name,
            "slug": payload.slug or None,
            "image_url": payload.image_url or None,
            "logo_url": payload.logo_url or None,
            "created_by": payload.created_by or None,
            "created_at": to_iso_timestamp(payload.created_at),
            "updated_at": to_iso_timestamp(payload.updated_at),
            "public_metadata": non_empty(payload.public_metadata),
            "private_metadata": non_empty(payload.private_metadata),
        }

        existing = self.get_by_external_id(Organization, payload.id)
        was_placeholder = existing is not None and clear_placeholder_flag(existing)

        organization = self.insert_or_patch(Organization, existing, fields, REQUIRED_FIELDS)

        logger.info(
            "Created organization from Clerk" if existing is None
            else "Updated organization from Clerk",
            extra={
                "clerk_org_id": payload.id,
                "organization_id": organization.id,
                "was_placeholder": was_placeholder,
            },
        )
        return SyncResult.ok(organization.id)

    def delete_from_clerk(self, external_id: str) -> SyncResult:
        """
        Delete an organization after its memberships and invitations.

        Rows are removed one by one; a crash part-way leaves a state that
        re-running the same deletion finishes.
        """
        organization = self.get_by_external_id(Organization, external_id)
        if organization is None:
            logger.warning(
                "Cannot delete organization, not found",
                extra={"clerk_org_id": external_id},
            )
            return SyncResult.failed("organization_not_found")

        memberships: List[OrganizationMembership] = self.session.query(
            OrganizationMembership
        ).filter(
            OrganizationMembership.organization_id == organization.id
        ).all()
        for membership in memberships:
            self.session.delete(membership)
        self.session.flush()

        invitations = self.session.query(OrganizationInvitation).filter(
            OrganizationInvitation.organization_id == organization.id
        ).all()
        for invitation in invitations:
            self.session.delete(invitation)
        self.session.flush()

        self.session.delete(organization)
        self.session.flush()

        logger.info(
            "Deleted organization from Clerk",
            extra={
                "clerk_org_id": external_id,
                "memberships_deleted": len(memberships),
                "invitations_deleted": len(invitations),
            },
        )
        return SyncResult.ok(organization.id)
