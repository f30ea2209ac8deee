"""
Per-entity sync services applying Clerk webhook payloads to the mirror.
"""

from clerk_mirror.services.clerk_sync.base import SyncResult, merge_fields
from clerk_mirror.services.clerk_sync.placeholders import PlaceholderService
from clerk_mirror.services.clerk_sync.users import UserSyncService
from clerk_mirror.services.clerk_sync.organizations import OrganizationSyncService
from clerk_mirror.services.clerk_sync.memberships import MembershipSyncService
from clerk_mirror.services.clerk_sync.invitations import InvitationSyncService
from clerk_mirror.services.clerk_sync.sessions import SessionSyncService
from clerk_mirror.services.clerk_sync.permissions import PermissionSyncService
from clerk_mirror.services.clerk_sync.roles import RoleSyncService

__all__ = [
    "SyncResult",
    "merge_fields",
    "PlaceholderService",
    "UserSyncService",
    "OrganizationSyncService",
    "MembershipSyncService",
    "InvitationSyncService",
    "SessionSyncService",
    "PermissionSyncService",
    "RoleSyncService",
]
