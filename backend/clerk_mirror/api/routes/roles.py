"""
Role and permission API Routes - the mirrored Clerk authorization catalogue.

SECURITY:
- Requires authentication
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from clerk_mirror.api.schemas.mirror import (
    PermissionResponse,
    RoleResponse,
    RoleWithPermissionsResponse,
)
from clerk_mirror.auth.dependencies import get_current_user
from clerk_mirror.database.session import get_db_session
from clerk_mirror.models.user import User
from clerk_mirror.services.clerk_sync import PermissionSyncService, RoleSyncService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["roles"])


@router.get("/roles", response_model=List[RoleResponse])
async def list_roles(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db_session),
):
    return RoleSyncService(db).list_all()


@router.get("/roles/by-key/{key}", response_model=RoleResponse)
async def get_role_by_key(
    key: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db_session),
):
    role = RoleSyncService(db).get_by_key(key)
    if role is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Role not found")
    return role


@router.get("/roles/{role_id}", response_model=RoleWithPermissionsResponse)
async def get_role(
    role_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db_session),
):
    """
    A role with its permissions populated in stored order.

    Permissions deleted since the role was last synced are left out.
    """
    found = RoleSyncService(db).get_with_permissions(role_id)
    if found is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Role not found")

    role, permissions = found
    response = RoleWithPermissionsResponse.model_validate(role)
    response.permissions = [PermissionResponse.model_validate(p) for p in permissions]
    return response


@router.get("/permissions", response_model=List[PermissionResponse])
async def list_permissions(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db_session),
):
    return PermissionSyncService(db).list_all()


@router.get("/permissions/by-key/{key}", response_model=PermissionResponse)
async def get_permission_by_key(
    key: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db_session),
):
    permission = PermissionSyncService(db).get_by_key(key)
    if permission is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Permission not found")
    return permission


@router.get("/permissions/{permission_id}", response_model=PermissionResponse)
async def get_permission(
    permission_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db_session),
):
    permission = PermissionSyncService(db).get_by_id(permission_id)
    if permission is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Permission not found")
    return permission
