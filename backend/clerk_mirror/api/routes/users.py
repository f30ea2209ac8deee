"""
User API Routes - the current user and system role administration.

Provides endpoints for:
- Reading the mirrored record of the authenticated user, or any user by id
- Toggling system roles (super admin / super user) on another user

SECURITY:
- Requires authentication
- System role changes are restricted to super admins
- Changes are local to the mirror; they are not pushed back to Clerk
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from clerk_mirror.api.schemas.mirror import (
    SystemRoleUpdateRequest,
    SystemRoleUpdateResponse,
    UserResponse,
)
from clerk_mirror.auth.dependencies import get_current_user, require_super_admin
from clerk_mirror.constants.user_roles import get_system_role
from clerk_mirror.database.session import get_db_session
from clerk_mirror.models.base import utc_now_iso
from clerk_mirror.models.user import User

logger = logging.getLogger(__name__)

router = APIRouter(tags=["users"])


@router.get("/api/users/me", response_model=UserResponse)
async def get_me(user: User = Depends(get_current_user)):
    return user


@router.get("/api/users/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db_session),
):
    target = db.query(User).filter(User.id == user_id).first()
    if target is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return target


@router.patch("/api/admin/users/{user_id}/system-role", response_model=SystemRoleUpdateResponse)
async def update_user_system_role(
    user_id: str,
    body: SystemRoleUpdateRequest,
    admin: User = Depends(require_super_admin),
    db: Session = Depends(get_db_session),
):
    """
    Update a user's system role flags.

    Only flags present in the body are changed. An empty body is not an
    error: it returns success=false with reason "no_updates_provided".
    """
    target = db.query(User).filter(User.id == user_id).first()
    if target is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    updates = {key: value for key, value in body.model_dump().items() if value is not None}
    if not updates:
        return SystemRoleUpdateResponse(success=False, reason="no_updates_provided")

    for key, value in updates.items():
        setattr(target, key, value)
    target.updated_at = utc_now_iso()
    db.commit()

    logger.info(
        "System role updated",
        extra={
            "target_user_id": target.id,
            "executing_user_id": admin.id,
            "updates": updates,
        },
    )
    return SystemRoleUpdateResponse(success=True, system_role=get_system_role(target).value)
