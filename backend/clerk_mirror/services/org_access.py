"""
Organization access checks and admin-only local edits.

Membership is read from the local mirror only. Admin means a membership
role of admin or owner, with or without Clerk's "org:" prefix.
"""

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from clerk_mirror.models.base import utc_now_iso
from clerk_mirror.models.organization import Organization
from clerk_mirror.models.organization_membership import OrganizationMembership
from clerk_mirror.models.user import User

logger = logging.getLogger(__name__)


class OrganizationNotFoundError(Exception):
    """Raised when an organization does not exist in the mirror."""


class OrganizationAccessDeniedError(Exception):
    """Raised when the caller lacks membership or admin rights."""


class MembershipNotFoundError(Exception):
    """Raised when a membership id does not exist in the mirror."""


class MembershipMismatchError(ValueError):
    """Raised when a membership is addressed through the wrong organization."""


class OrganizationAccessService:
    """Resolve a user's organizations and enforce membership / admin checks."""

    def __init__(self, session: Session):
        self.session = session

    def get_organization(self, organization_id: str) -> Organization:
        organization = self.session.query(Organization).filter(
            Organization.id == organization_id
        ).first()
        if organization is None:
            raise OrganizationNotFoundError(organization_id)
        return organization

    def get_membership(self, user: User, organization_id: str) -> Optional[OrganizationMembership]:
        return self.session.query(OrganizationMembership).filter(
            OrganizationMembership.user_id == user.id,
            OrganizationMembership.organization_id == organization_id,
        ).first()

    def require_membership(self, user: User, organization_id: str) -> OrganizationMembership:
        """
        Return the caller's membership in the organization.

        Raises:
            OrganizationNotFoundError: If the organization is not mirrored
            OrganizationAccessDeniedError: If the user is not a member
        """
        self.get_organization(organization_id)
        membership = self.get_membership(user, organization_id)
        if membership is None:
            logger.warning(
                "Organization access denied: not a member",
                extra={"user_id": user.id, "organization_id": organization_id},
            )
            raise OrganizationAccessDeniedError("User is not a member of this organization")
        return membership

    def require_admin(self, user: User, organization_id: str) -> OrganizationMembership:
        membership = self.require_membership(user, organization_id)
        if not membership.is_admin:
            logger.warning(
                "Organization access denied: admin required",
                extra={"user_id": user.id, "organization_id": organization_id, "role": membership.role},
            )
            raise OrganizationAccessDeniedError("This action requires admin permissions")
        return membership

    def list_user_organizations(self, user: User) -> List[Organization]:
        return self.session.query(Organization).join(
            OrganizationMembership,
            OrganizationMembership.organization_id == Organization.id,
        ).filter(
            OrganizationMembership.user_id == user.id
        ).order_by(Organization.name).all()

    def update_organization(self, user: User, organization_id: str, name: Optional[str]) -> Organization:
        """
        Rename an organization locally (org admins only).

        Only provided fields change. The next organization.updated webhook
        from Clerk overwrites local edits.
        """
        self.require_admin(user, organization_id)
        organization = self.get_organization(organization_id)
        if name is not None:
            organization.name = name
            organization.updated_at = utc_now_iso()
            self.session.commit()
            logger.info(
                "Organization updated locally",
                extra={"organization_id": organization_id, "user_id": user.id},
            )
        return organization

    def update_member_role(
        self,
        user: User,
        organization_id: str,
        membership_id: str,
        role: str,
    ) -> OrganizationMembership:
        """
        Change a member's role (org admins only).

        Raises:
            MembershipNotFoundError: If the membership does not exist
            MembershipMismatchError: If it belongs to another organization
        """
        self.require_admin(user, organization_id)
        membership = self.session.query(OrganizationMembership).filter(
            OrganizationMembership.id == membership_id
        ).first()
        if membership is None:
            raise MembershipNotFoundError(membership_id)
        if membership.organization_id != organization_id:
            logger.warning(
                "Role change rejected: membership belongs to another organization",
                extra={"membership_id": membership_id, "organization_id": organization_id},
            )
            raise MembershipMismatchError("Membership does not belong to this organization")

        membership.role = role
        membership.updated_at = utc_now_iso()
        self.session.commit()
        logger.info(
            "Member role updated locally",
            extra={"membership_id": membership_id, "role": role, "user_id": user.id},
        )
        return membership
