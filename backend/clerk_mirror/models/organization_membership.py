"""
OrganizationMembership model for the Clerk identity mirror.

Junction table linking users to organizations with the Clerk role string.
The relation is owned by neither side.

Invariants:
- at most one membership per (user_id, organization_id) pair
- external_id (Clerk's orgmem_... id) is optional; deletion events may only
  carry it, or a composite "org_X:user_Y" string instead
"""

from typing import TYPE_CHECKING

from sqlalchemy import Column, String, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from clerk_mirror.db_base import Base
from clerk_mirror.models.base import JSONType, generate_uuid

if TYPE_CHECKING:
    from clerk_mirror.models.user import User
    from clerk_mirror.models.organization import Organization

ADMIN_ROLES = frozenset({"admin", "owner"})


def normalize_role(role: str) -> str:
    """
    Strip Clerk's "org:" prefix from a role key.

    "org:admin" -> "admin", "member" -> "member"
    """
    if not role:
        return ""
    return role.split(":", 1)[1].lower() if role.startswith("org:") else role.lower()


class OrganizationMembership(Base):
    """Membership of a user in an organization, with a Clerk role."""

    __tablename__ = "organization_memberships"

    id = Column(
        String(255),
        primary_key=True,
        default=generate_uuid,
        comment="Internal UUID primary key"
    )

    user_id = Column(
        String(255),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="User ID (FK to users.id)"
    )

    organization_id = Column(
        String(255),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Organization ID (FK to organizations.id)"
    )

    role = Column(
        String(100),
        nullable=False,
        comment="Clerk role key as delivered (e.g., 'org:admin')"
    )

    external_id = Column(
        String(255),
        nullable=True,
        index=True,
        comment="Clerk membership ID"
    )

    created_at = Column(String(40), nullable=True)
    updated_at = Column(String(40), nullable=True)

    # Raw snapshots from the membership payload
    public_user_data = Column(JSONType, nullable=True)
    public_metadata = Column(JSONType, nullable=True)
    private_metadata = Column(JSONType, nullable=True)

    user = relationship("User", back_populates="memberships")
    organization = relationship("Organization", back_populates="memberships")

    __table_args__ = (
        UniqueConstraint(
            "user_id",
            "organization_id",
            name="uq_organization_memberships_user_org",
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<OrganizationMembership(id={self.id}, user_id={self.user_id}, "
            f"organization_id={self.organization_id}, role={self.role})>"
        )

    @property
    def is_admin(self) -> bool:
        return normalize_role(self.role) in ADMIN_ROLES
