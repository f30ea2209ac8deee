"""
Placeholder records for out-of-order webhook delivery.

Clerk does not guarantee delivery order: an organizationMembership.created
event can arrive before the user.created or organization.created it refers
to. Instead of dropping the dependent write, a minimal placeholder row is
inserted from whatever fragment the current payload carries and flagged with
private_metadata["isPlaceholder"] = True. The later full upsert for the same
Clerk ID completes the row and clears the flag (see clear_placeholder_flag).

Placeholders are only synthesized for users and organizations.
"""

import logging
from typing import Optional

from clerk_mirror.models.organization import Organization
from clerk_mirror.models.user import PLACEHOLDER_FLAG, User
from clerk_mirror.services.clerk_sync.base import ClerkSyncServiceBase, build_display_name

logger = logging.getLogger(__name__)


def clear_placeholder_flag(record) -> bool:
    """
    Remove the placeholder flag from a record's private metadata.

    Returns:
        True if the record was a placeholder
    """
    metadata = record.private_metadata or {}
    if not metadata.get(PLACEHOLDER_FLAG):
        return False
    remaining = {key: value for key, value in metadata.items() if key != PLACEHOLDER_FLAG}
    # Assign a new dict so the JSON column change is tracked
    record.private_metadata = remaining or None
    return True


class PlaceholderService(ClerkSyncServiceBase):
    """Find-or-synthesize users and organizations referenced before they exist."""

    def ensure_user(
        self,
        external_id: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        email: Optional[str] = None,
        image_url: Optional[str] = None,
    ) -> User:
        """
        Return the user with this Clerk ID, inserting a placeholder if missing.

        Args:
            external_id: Clerk user ID
            first_name: Name fragment from the referencing payload
            last_name: Name fragment from the referencing payload
            email: Email address from the referencing payload, if any
            image_url: Avatar URL from the referencing payload, if any

        Returns:
            Existing or placeholder User
        """
        user = self.get_by_external_id(User, external_id)
        if user is not None:
            return user

        user = User(
            external_id=external_id,
            name=build_display_name(first_name, last_name, email, external_id),
            first_name=first_name or None,
            last_name=last_name or None,
            email=email or None,
            image_url=image_url or None,
            private_metadata={PLACEHOLDER_FLAG: True},
        )
        self.session.add(user)
        self.session.flush()

        logger.warning(
            "Created placeholder user",
            extra={"clerk_user_id": external_id, "user_id": user.id},
        )
        return user

    def ensure_organization(
        self,
        external_id: str,
        name: Optional[str] = None,
        slug: Optional[str] = None,
        image_url: Optional[str] = None,
        created_by: Optional[str] = None,
    ) -> Organization:
        """Return the organization with this Clerk ID, inserting a placeholder if missing."""
        organization = self.get_by_external_id(Organization, external_id)
        if organization is not None:
            return organization

        organization = Organization(
            external_id=external_id,
            name=name or external_id,
            slug=slug or None,
            image_url=image_url or None,
            created_by=created_by or None,
            private_metadata={PLACEHOLDER_FLAG: True},
        )
        self.session.add(organization)
        self.session.flush()

        logger.warning(
            "Created placeholder organization",
            extra={"clerk_org_id": external_id, "organization_id": organization.id},
        )
        return organization
