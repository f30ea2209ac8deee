"""
Session API Routes - the current user's mirrored Clerk sessions.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from clerk_mirror.api.schemas.mirror import ActiveSessionCountResponse, SessionResponse
from clerk_mirror.auth.dependencies import get_current_user
from clerk_mirror.database.session import get_db_session
from clerk_mirror.models.user import User
from clerk_mirror.models.user_session import SessionStatus, UserSession

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/sessions", tags=["sessions"])


@router.get("/me", response_model=List[SessionResponse])
async def list_my_sessions(
    session_status: Optional[str] = Query(None, alias="status"),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db_session),
):
    """Sessions of the current user, most recently active first."""
    query = db.query(UserSession).filter(UserSession.user_id == user.id)
    if session_status:
        query = query.filter(UserSession.status == session_status)
    return query.order_by(
        UserSession.last_active_at.desc(),
        UserSession.created_at.desc(),
    ).all()


@router.get("/me/active-count", response_model=ActiveSessionCountResponse)
async def count_my_active_sessions(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db_session),
):
    count = db.query(UserSession).filter(
        UserSession.user_id == user.id,
        UserSession.status == SessionStatus.ACTIVE,
    ).count()
    return ActiveSessionCountResponse(active_sessions=count)
