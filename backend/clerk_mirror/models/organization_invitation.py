"""
OrganizationInvitation model for the Clerk identity mirror.

Status is derived from the event type when the payload does not carry one:
organizationInvitation.accepted -> accepted, .revoked -> revoked,
anything else -> payload status or pending.
"""

from sqlalchemy import Column, String, Index, ForeignKey

from clerk_mirror.db_base import Base
from clerk_mirror.models.base import JSONType, generate_uuid


class InvitationStatus:
    PENDING = "pending"
    ACCEPTED = "accepted"
    REVOKED = "revoked"


class OrganizationInvitation(Base):
    """Invitation of an email address into an organization."""

    __tablename__ = "organization_invitations"

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
        comment="Clerk invitation ID (orginv_...)"
    )

    organization_id = Column(
        String(255),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    email = Column(String(255), nullable=False, index=True, comment="Recipient email")
    status = Column(String(50), nullable=False, default=InvitationStatus.PENDING)
    role = Column(String(100), nullable=False)

    created_at = Column(String(40), nullable=False)
    updated_at = Column(String(40), nullable=True)

    created_by_user_id = Column(
        String(255),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        comment="Internal ID of the inviting user, when it could be resolved"
    )
    org_external_id = Column(String(255), nullable=True, comment="Clerk organization ID")

    public_metadata = Column(JSONType, nullable=True)
    private_metadata = Column(JSONType, nullable=True)
    public_user_data = Column(JSONType, nullable=True)

    __table_args__ = (
        Index("ix_organization_invitations_org_status", "organization_id", "status"),
    )

    def __repr__(self) -> str:
        return (
            f"<OrganizationInvitation(id={self.id}, email={self.email}, "
            f"status={self.status})>"
        )
