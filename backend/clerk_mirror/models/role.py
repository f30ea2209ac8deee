"""
Role model mirrored from Clerk's organization roles.

A role keeps its permissions as two parallel ordered lists: internal
permission ids and Clerk permission ids. The Clerk ids survive a permission
being deleted and recreated locally, so a role can be re-linked later.
"""

from typing import List

from sqlalchemy import Column, String, Text, Boolean

from clerk_mirror.db_base import Base
from clerk_mirror.models.base import JSONType, generate_uuid


class Role(Base):
    """Clerk organization role with its permission references."""

    __tablename__ = "roles"

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
        comment="Clerk role ID (role_...)"
    )

    key = Column(String(255), nullable=False, index=True, comment="Role key, e.g. 'org:admin'")
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    is_creator_eligible = Column(Boolean, nullable=True)

    created_at = Column(String(40), nullable=False)
    updated_at = Column(String(40), nullable=True)

    permission_ids = Column(
        JSONType,
        nullable=False,
        default=list,
        comment="Ordered internal permission IDs"
    )
    permission_external_ids = Column(
        JSONType,
        nullable=False,
        default=list,
        comment="Ordered Clerk permission IDs"
    )

    public_metadata = Column(JSONType, nullable=True)
    private_metadata = Column(JSONType, nullable=True)

    def __repr__(self) -> str:
        return f"<Role(id={self.id}, key={self.key})>"

    @property
    def permission_count(self) -> int:
        return len(self.permission_ids or [])

    def references_permission(self, permission_id: str) -> bool:
        ids: List[str] = self.permission_ids or []
        return permission_id in ids
