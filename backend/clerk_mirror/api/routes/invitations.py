"""
Invitation API Routes - invitations addressed to an email.

SECURITY:
- Requires authentication
- Callers may look up their own email; system admins may look up any
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from clerk_mirror.api.schemas.mirror import InvitationResponse
from clerk_mirror.auth.dependencies import get_current_user
from clerk_mirror.constants.user_roles import has_system_admin_access
from clerk_mirror.database.session import get_db_session
from clerk_mirror.models.organization_invitation import OrganizationInvitation
from clerk_mirror.models.user import User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/invitations", tags=["invitations"])


@router.get("/by-email", response_model=List[InvitationResponse])
async def list_invitations_by_email(
    email: str = Query(..., min_length=1),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db_session),
):
    """Every invitation sent to an email address, newest first. Emails compare case-insensitively."""
    address = email.strip().lower()
    own = bool(user.email) and user.email.strip().lower() == address
    if not own and not has_system_admin_access(user):
        logger.warning(
            "Invitation lookup denied for another email",
            extra={"user_id": user.id},
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Cannot view invitations for another email address",
        )

    return db.query(OrganizationInvitation).filter(
        func.lower(OrganizationInvitation.email) == address
    ).order_by(OrganizationInvitation.created_at.desc()).all()
