"""
Organization model for the Clerk identity mirror.

Organization mirrors a Clerk organization. Like users, an organization can
be synthesized as a placeholder when a membership arrives before
organization.created; the placeholder is completed by the later upsert.

Deleting an organization deletes its memberships first, then the row
itself (see OrganizationSyncService.delete_from_clerk).
"""

from sqlalchemy import Column, String, Index
from sqlalchemy.orm import relationship

from clerk_mirror.db_base import Base
from clerk_mirror.models.base import JSONType, generate_uuid
from clerk_mirror.models.user import PLACEHOLDER_FLAG


class Organization(Base):
    """Local organization record synced from Clerk."""

    __tablename__ = "organizations"

    id = Column(
        String(255),
        primary_key=True,
        default=generate_uuid,
        comment="Internal UUID primary key"
    )

    external_id = Column(
        String(255),
        nullable=False,
        unique=True,
        index=True,
        comment="Clerk organization ID (org_...)"
    )

    name = Column(
        String(255),
        nullable=False,
        comment="Display name of the organization"
    )

    slug = Column(
        String(255),
        nullable=True,
        comment="URL-friendly identifier (e.g., 'acme-agency')"
    )

    image_url = Column(String(1024), nullable=True)
    logo_url = Column(String(1024), nullable=True)

    created_by = Column(
        String(255),
        nullable=True,
        comment="Clerk user ID of the user who created the organization"
    )

    created_at = Column(String(40), nullable=True)
    updated_at = Column(String(40), nullable=True)

    public_metadata = Column(JSONType, nullable=True)
    private_metadata = Column(JSONType, nullable=True)

    memberships = relationship(
        "OrganizationMembership",
        back_populates="organization",
        lazy="dynamic",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("ix_organizations_slug", "slug"),
    )

    def __repr__(self) -> str:
        return f"<Organization(id={self.id}, external_id={self.external_id}, name={self.name})>"

    @property
    def is_placeholder(self) -> bool:
        return bool((self.private_metadata or {}).get(PLACEHOLDER_FLAG))

    @property
    def member_count(self) -> int:
        """Get the number of memberships in this organization."""
        return self.memberships.count()
