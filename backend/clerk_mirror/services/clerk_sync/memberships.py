"""
Organization membership sync from Clerk organizationMembership.* events.

A membership joins one user to one organization; at most one row exists per
(user, organization) pair. Upserts look the row up by Clerk membership ID
first and fall back to the pair, so a membership first created locally
through add_member is adopted rather than duplicated.
"""

import logging
from typing import Optional, Tuple

from clerk_mirror.api.schemas.clerk_events import MembershipPayload
from clerk_mirror.models.base import to_iso_timestamp
from clerk_mirror.models.organization import Organization
from clerk_mirror.models.organization_membership import OrganizationMembership
from clerk_mirror.models.user import User
from clerk_mirror.services.clerk_sync.base import ClerkSyncServiceBase, SyncResult, non_empty
from clerk_mirror.services.clerk_sync.placeholders import PlaceholderService

logger = logging.getLogger(__name__)

COMPOSITE_ID_SEPARATOR = ":"
ORG_ID_PREFIX = "org_"
USER_ID_PREFIX = "user_"

REQUIRED_FIELDS = ("user_id", "organization_id", "role")


def parse_composite_membership_id(value: str) -> Optional[Tuple[str, str]]:
    """
    Split an "org_X:user_Y" membership reference.

    Returns:
        (org external id, user external id), or None if the value is not a
        well-formed composite reference
    """
    if not value or COMPOSITE_ID_SEPARATOR not in value:
        return None
    org_part, user_part = value.split(COMPOSITE_ID_SEPARATOR, 1)
    if not org_part.startswith(ORG_ID_PREFIX) or not user_part.startswith(USER_ID_PREFIX):
        return None
    if org_part == ORG_ID_PREFIX or user_part == USER_ID_PREFIX:
        return None
    return org_part, user_part


class MembershipSyncService(ClerkSyncServiceBase):
    """Create, update and delete mirrored organization memberships."""

    def __init__(self, session, placeholders: Optional[PlaceholderService] = None):
        super().__init__(session)
        self.placeholders = placeholders or PlaceholderService(session)

    def get_by_pair(self, user_id: str, organization_id: str) -> Optional[OrganizationMembership]:
        return self.session.query(OrganizationMembership).filter(
            OrganizationMembership.user_id == user_id,
            OrganizationMembership.organization_id == organization_id,
        ).first()

    def upsert_from_clerk(self, payload: MembershipPayload) -> SyncResult:
        """
        Create or update a membership from an organizationMembership payload.

        Missing users or organizations are synthesized as placeholders from
        the fragments embedded in the payload.
        """
        user_data = payload.public_user_data
        identifier = user_data.identifier or ""
        user = self.placeholders.ensure_user(
            user_data.user_id,
            first_name=user_data.first_name,
            last_name=user_data.last_name,
            email=identifier if "@" in identifier else None,
            image_url=user_data.image_url,
        )

        org_data = payload.organization
        organization = self.placeholders.ensure_organization(
            org_data.id,
            name=org_data.name,
            slug=org_data.slug,
            image_url=org_data.image_url,
            created_by=org_data.created_by,
        )

        existing = self.get_by_external_id(OrganizationMembership, payload.id)
        if existing is None:
            existing = self.get_by_pair(user.id, organization.id)

        fields = {
            "user_id": user.id,
            "organization_id": organization.id,
            "role": payload.role,
            "external_id": payload.id,
            "created_at": to_iso_timestamp(payload.created_at),
            "updated_at": to_iso_timestamp(payload.updated_at),
            "public_user_data": non_empty(user_data.model_dump(exclude_none=True)),
            "public_metadata": non_empty(payload.public_metadata),
            "private_metadata": non_empty(payload.private_metadata),
        }
        membership = self.insert_or_patch(OrganizationMembership, existing, fields, REQUIRED_FIELDS)

        logger.info(
            "Created membership from Clerk" if existing is None
            else "Updated membership from Clerk",
            extra={
                "clerk_membership_id": payload.id,
                "clerk_user_id": user_data.user_id,
                "clerk_org_id": org_data.id,
                "role": payload.role,
            },
        )
        return SyncResult.ok(membership.id)

    def delete_from_clerk(self, external_id: str) -> SyncResult:
        """
        Delete a membership by Clerk membership ID or "org_X:user_Y" reference.

        The direct ID is tried first. On a miss the value is parsed as a
        composite reference and both sides are resolved by Clerk ID.
        """
        membership = self.get_by_external_id(OrganizationMembership, external_id)
        if membership is not None:
            return self._delete(membership, external_id)

        parsed = parse_composite_membership_id(external_id)
        if parsed is None:
            logger.warning(
                "Membership not found and id is not a composite reference",
                extra={"clerk_membership_id": external_id},
            )
            return SyncResult.failed("membership_not_found")

        org_external_id, user_external_id = parsed
        organization = self.get_by_external_id(Organization, org_external_id)
        if organization is None:
            logger.warning(
                "Cannot delete membership: organization not found",
                extra={"clerk_membership_id": external_id, "clerk_org_id": org_external_id},
            )
            return SyncResult.failed("organization_not_found")

        user = self.get_by_external_id(User, user_external_id)
        if user is None:
            logger.warning(
                "Cannot delete membership: user not found",
                extra={"clerk_membership_id": external_id, "clerk_user_id": user_external_id},
            )
            return SyncResult.failed("user_not_found")

        membership = self.get_by_pair(user.id, organization.id)
        if membership is None:
            logger.warning(
                "Cannot delete membership: no membership for user and organization",
                extra={"clerk_membership_id": external_id},
            )
            return SyncResult.failed("membership_not_found")

        return self._delete(membership, external_id)

    def _delete(self, membership: OrganizationMembership, reference: str) -> SyncResult:
        membership_id = membership.id
        self.session.delete(membership)
        self.session.flush()
        logger.info(
            "Deleted membership from Clerk",
            extra={"clerk_membership_id": reference, "membership_id": membership_id},
        )
        return SyncResult.ok(membership_id)

    # =========================================================================
    # Local helpers (internal ids)
    # =========================================================================

    def add_member(self, user_id: str, organization_id: str, role: str) -> SyncResult:
        """Add a user to an organization, or update the role of an existing membership."""
        existing = self.get_by_pair(user_id, organization_id)
        membership = self.insert_or_patch(
            OrganizationMembership,
            existing,
            {"user_id": user_id, "organization_id": organization_id, "role": role},
            REQUIRED_FIELDS,
        )
        logger.info(
            "Added member" if existing is None else "Updated member role",
            extra={"user_id": user_id, "organization_id": organization_id, "role": role},
        )
        return SyncResult.ok(membership.id)

    def remove_member(self, user_id: str, organization_id: str) -> SyncResult:
        membership = self.get_by_pair(user_id, organization_id)
        if membership is None:
            return SyncResult.failed("membership_not_found")
        membership_id = membership.id
        self.session.delete(membership)
        self.session.flush()
        logger.info(
            "Removed member",
            extra={"user_id": user_id, "organization_id": organization_id},
        )
        return SyncResult.ok(membership_id)
