"""
Permission sync from Clerk permission.* events and embedded role payloads.
"""

import logging
from typing import List, Optional, Union

from clerk_mirror.api.schemas.clerk_events import EmbeddedPermission, PermissionPayload
from clerk_mirror.models.base import to_iso_timestamp, utc_now_iso
from clerk_mirror.models.permission import DEFAULT_PERMISSION_TYPE, Permission
from clerk_mirror.services.clerk_sync.base import (
    ClerkSyncServiceBase,
    SyncResult,
    kept_timestamp,
    non_empty,
)

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("external_id", "key", "name", "type", "created_at")


class PermissionSyncService(ClerkSyncServiceBase):
    """Create, update and delete mirrored permissions."""

    def upsert_from_clerk(self, payload: PermissionPayload) -> SyncResult:
        now = utc_now_iso()
        existing = self.get_by_external_id(Permission, payload.id)
        fields = {
            "external_id": payload.id,
            "key": payload.key,
            "name": payload.name,
            "type": payload.type,
            "description": payload.description or None,
            "created_at": kept_timestamp(to_iso_timestamp(payload.created_at), existing, "created_at", now),
            "updated_at": kept_timestamp(to_iso_timestamp(payload.updated_at), existing, "updated_at", now),
            "public_metadata": non_empty(payload.public_metadata),
            "private_metadata": non_empty(payload.private_metadata),
        }
        permission = self.insert_or_patch(Permission, existing, fields, REQUIRED_FIELDS)

        logger.info(
            "Created permission from Clerk" if existing is None
            else "Updated permission from Clerk",
            extra={"clerk_permission_id": payload.id, "key": payload.key},
        )
        return SyncResult.ok(permission.id)

    def upsert_embedded(self, entry: Union[str, EmbeddedPermission]) -> Optional[Permission]:
        """
        Ensure a permission referenced from a role payload exists.

        String entries are references: they are resolved by Clerk ID, then by
        key, and never create rows. Object entries are upserted by Clerk ID;
        a new row falls back to the id for a missing key, the key for a
        missing name, and "system" for a missing type. Entries without an id
        are skipped.
        """
        if isinstance(entry, str):
            permission = self.get_by_external_id(Permission, entry)
            if permission is None:
                permission = self.get_by_key(entry)
            if permission is None:
                logger.warning("Role references unknown permission", extra={"permission": entry})
            return permission

        if not entry.id:
            logger.warning("Skipping embedded permission without id", extra={"key": entry.key})
            return None

        now = utc_now_iso()
        existing = self.get_by_external_id(Permission, entry.id)
        if existing is None:
            key = entry.key or entry.id
            fields = {
                "external_id": entry.id,
                "key": key,
                "name": entry.name or key,
                "type": entry.type or DEFAULT_PERMISSION_TYPE,
                "description": entry.description or None,
                "created_at": to_iso_timestamp(entry.created_at) or now,
                "updated_at": to_iso_timestamp(entry.updated_at) or now,
            }
        else:
            fields = {
                "key": entry.key or None,
                "name": entry.name or None,
                "type": entry.type or None,
                "description": entry.description or None,
                "updated_at": to_iso_timestamp(entry.updated_at),
            }
        permission = self.insert_or_patch(Permission, existing, fields)

        if existing is None:
            logger.info(
                "Created permission from role payload",
                extra={"clerk_permission_id": entry.id, "key": permission.key},
            )
        return permission

    def delete_from_clerk(self, external_id: str) -> SyncResult:
        permission = self.get_by_external_id(Permission, external_id)
        if permission is None:
            logger.warning(
                "Cannot delete permission: not found",
                extra={"clerk_permission_id": external_id},
            )
            return SyncResult.failed("permission_not_found")

        permission_id = permission.id
        self.session.delete(permission)
        self.session.flush()
        logger.info("Deleted permission", extra={"clerk_permission_id": external_id})
        return SyncResult.ok(permission_id)

    def get_by_id(self, permission_id: str) -> Optional[Permission]:
        return self.session.query(Permission).filter(Permission.id == permission_id).first()

    def get_by_key(self, key: str) -> Optional[Permission]:
        return self.session.query(Permission).filter(Permission.key == key).first()

    def list_all(self) -> List[Permission]:
        return self.session.query(Permission).order_by(Permission.key).all()
