"""
Permission model mirrored from Clerk's organization permissions.

A permission may first appear embedded in a role payload, in which case a
minimal row is created from the embedded data and completed later by the
permission.created / permission.updated event.
"""

from sqlalchemy import Column, String, Text

from clerk_mirror.db_base import Base
from clerk_mirror.models.base import JSONType, generate_uuid

DEFAULT_PERMISSION_TYPE = "system"


class Permission(Base):
    """Clerk permission, e.g. key 'org:billing:manage'."""

    __tablename__ = "permissions"

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
        comment="Clerk permission ID (perm_...)"
    )

    key = Column(String(255), nullable=False, index=True, comment="Stable permission key")
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    type = Column(String(50), nullable=False, default=DEFAULT_PERMISSION_TYPE)

    created_at = Column(String(40), nullable=False)
    updated_at = Column(String(40), nullable=True)

    public_metadata = Column(JSONType, nullable=True)
    private_metadata = Column(JSONType, nullable=True)

    def __repr__(self) -> str:
        return f"<Permission(id={self.id}, key={self.key})>"
