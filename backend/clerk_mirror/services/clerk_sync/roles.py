"""
Role sync from Clerk role.* events.

Each permission embedded in a role payload is upserted on its own before the
role is written. The role keeps the internal and Clerk ids of its
permissions side by side, in payload order without duplicates.
"""

import logging
from typing import List, Optional, Tuple

from clerk_mirror.api.schemas.clerk_events import RolePayload
from clerk_mirror.models.base import to_iso_timestamp, utc_now_iso
from clerk_mirror.models.permission import Permission
from clerk_mirror.models.role import Role
from clerk_mirror.services.clerk_sync.base import (
    ClerkSyncServiceBase,
    SyncResult,
    kept_timestamp,
    non_empty,
)
from clerk_mirror.services.clerk_sync.permissions import PermissionSyncService

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("external_id", "key", "name", "created_at")


class RoleSyncService(ClerkSyncServiceBase):
    """Create, update and delete mirrored roles."""

    def __init__(self, session, permissions: Optional[PermissionSyncService] = None):
        super().__init__(session)
        self.permissions = permissions or PermissionSyncService(session)

    def upsert_from_clerk(self, payload: RolePayload) -> SyncResult:
        permission_ids: Optional[List[str]] = None
        permission_external_ids: Optional[List[str]] = None

        # An absent list leaves the stored links alone; an empty list clears them
        if payload.permissions is not None:
            permission_ids, permission_external_ids = [], []
            for entry in payload.permissions:
                permission = self.permissions.upsert_embedded(entry)
                if permission is None or permission.id in permission_ids:
                    continue
                permission_ids.append(permission.id)
                permission_external_ids.append(permission.external_id)

        now = utc_now_iso()
        existing = self.get_by_external_id(Role, payload.id)
        fields = {
            "external_id": payload.id,
            "key": payload.key,
            "name": payload.name,
            "description": payload.description or None,
            "is_creator_eligible": payload.is_creator_eligible,
            "created_at": kept_timestamp(to_iso_timestamp(payload.created_at), existing, "created_at", now),
            "updated_at": kept_timestamp(to_iso_timestamp(payload.updated_at), existing, "updated_at", now),
            "permission_ids": permission_ids,
            "permission_external_ids": permission_external_ids,
            "public_metadata": non_empty(payload.public_metadata),
            "private_metadata": non_empty(payload.private_metadata),
        }
        if existing is None:
            fields["permission_ids"] = permission_ids or []
            fields["permission_external_ids"] = permission_external_ids or []

        role = self.insert_or_patch(Role, existing, fields, REQUIRED_FIELDS)

        logger.info(
            "Created role from Clerk" if existing is None else "Updated role from Clerk",
            extra={
                "clerk_role_id": payload.id,
                "key": payload.key,
                "permission_count": len(role.permission_ids or []),
            },
        )
        return SyncResult.ok(role.id)

    def delete_from_clerk(self, external_id: str) -> SyncResult:
        role = self.get_by_external_id(Role, external_id)
        if role is None:
            logger.warning("Cannot delete role: not found", extra={"clerk_role_id": external_id})
            return SyncResult.failed("role_not_found")

        role_id = role.id
        self.session.delete(role)
        self.session.flush()
        logger.info("Deleted role", extra={"clerk_role_id": external_id})
        return SyncResult.ok(role_id)

    def get_with_permissions(self, role_id: str) -> Optional[Tuple[Role, List[Permission]]]:
        """
        Load a role and its permissions in stored order.

        Permissions deleted since the role was written are dropped.
        """
        role = self.session.query(Role).filter(Role.id == role_id).first()
        if role is None:
            return None

        ids = list(role.permission_ids or [])
        if not ids:
            return role, []

        found = {
            permission.id: permission
            for permission in self.session.query(Permission).filter(Permission.id.in_(ids)).all()
        }
        return role, [found[permission_id] for permission_id in ids if permission_id in found]

    def get_by_key(self, key: str) -> Optional[Role]:
        return self.session.query(Role).filter(Role.key == key).first()

    def list_all(self) -> List[Role]:
        return self.session.query(Role).order_by(Role.key).all()
