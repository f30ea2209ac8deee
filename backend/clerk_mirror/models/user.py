"""
User model for the Clerk identity mirror.

User is a local copy of a Clerk user. Clerk stays the source of truth for
authentication; this table only stores what the webhooks deliver so the
application can join against users without calling Clerk.

CRITICAL:
- NO PASSWORDS are stored locally
- external_id is the Clerk user ID and the only stable join key to Clerk
- id is the internal key used by every foreign key in the mirror

A row may be a placeholder, synthesized from a membership or session event
that arrived before user.created. Placeholders carry
private_metadata["isPlaceholder"] = True until the real user event lands.
"""

from typing import TYPE_CHECKING

from sqlalchemy import Column, String, Boolean
from sqlalchemy.orm import relationship

from clerk_mirror.db_base import Base
from clerk_mirror.models.base import JSONType, generate_uuid

if TYPE_CHECKING:
    from clerk_mirror.models.organization_membership import OrganizationMembership

PLACEHOLDER_FLAG = "isPlaceholder"


class User(Base):
    """
    Local user record synced from Clerk.

    Sync mechanisms:
    - user.created / user.updated: full upsert by external_id
    - organizationMembership.* / session.*: placeholder when the user is unknown
    - user.deleted: hard delete
    """

    __tablename__ = "users"

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
        comment="Clerk user ID (user_...)"
    )

    name = Column(
        String(255),
        nullable=False,
        comment="Display name derived from Clerk name parts"
    )

    # Basic user information
    first_name = Column(String(255), nullable=True)
    last_name = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True, index=True, comment="Primary email address")
    username = Column(String(255), nullable=True)

    # Image URLs
    image_url = Column(String(1024), nullable=True)
    profile_image_url = Column(String(1024), nullable=True)

    # Clerk timestamps (ISO-8601, absent means unknown)
    created_at = Column(String(40), nullable=True)
    updated_at = Column(String(40), nullable=True)
    last_sign_in_at = Column(String(40), nullable=True)

    # Account status
    email_verified = Column(Boolean, nullable=True)
    has_password = Column(Boolean, nullable=True)
    two_factor_enabled = Column(Boolean, nullable=True)

    # System roles (outside any organization)
    is_super_admin = Column(Boolean, nullable=True)
    is_super_user = Column(Boolean, nullable=True)

    public_metadata = Column(JSONType, nullable=True, comment="Clerk public metadata")
    private_metadata = Column(JSONType, nullable=True, comment="Clerk private metadata")
    external_system_id = Column(
        String(255),
        nullable=True,
        comment="Clerk's external_id field (ID in a connected system)"
    )

    memberships = relationship(
        "OrganizationMembership",
        back_populates="user",
        lazy="dynamic",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, external_id={self.external_id}, email={self.email})>"

    @property
    def is_placeholder(self) -> bool:
        return bool((self.private_metadata or {}).get(PLACEHOLDER_FLAG))

    @property
    def display_name(self) -> str:
        """
        Return the best available display name.

        Priority: name > email > external_id
        """
        return self.name or self.email or self.external_id
