"""
FastAPI dependencies for authenticated read endpoints.

Usage:
    @router.get("/me")
    async def me(user: User = Depends(get_current_user)):
        return {"id": user.id}

    @router.get("/admin-only")
    async def admin(user: User = Depends(require_system_admin)):
        ...
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from clerk_mirror.auth.clerk_verifier import ClerkJWTVerifier, ClerkVerificationError
from clerk_mirror.constants.user_roles import has_system_admin_access, is_super_admin
from clerk_mirror.database.session import get_db_session
from clerk_mirror.models.user import User

logger = logging.getLogger(__name__)

# HTTP Bearer security scheme
security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class AuthenticatedIdentity:
    """The verified caller: Clerk user ID (subject) plus raw claims."""

    subject: str
    session_id: Optional[str] = None
    claims: Dict[str, Any] = field(default_factory=dict)


def get_jwt_verifier(request: Request) -> ClerkJWTVerifier:
    verifier = getattr(request.app.state, "jwt_verifier", None)
    if verifier is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Authentication not configured",
        )
    return verifier


def require_identity(
    verifier: ClerkJWTVerifier = Depends(get_jwt_verifier),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> AuthenticatedIdentity:
    """Verify the bearer token and return the caller's identity (401 on failure)."""
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        claims = verifier.verify_token(credentials.credentials)
    except ClerkVerificationError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": e.error_code, "message": e.message},
            headers={"WWW-Authenticate": "Bearer"},
        )

    return AuthenticatedIdentity(subject=claims["sub"], session_id=claims.get("sid"), claims=claims)


def get_current_user(
    identity: AuthenticatedIdentity = Depends(require_identity),
    db: Session = Depends(get_db_session),
) -> User:
    """The mirrored user for the caller; 404 if Clerk has not synced it yet."""
    user = db.query(User).filter(User.external_id == identity.subject).first()
    if user is None:
        logger.warning("Authenticated user not mirrored", extra={"clerk_user_id": identity.subject})
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


def require_system_admin(user: User = Depends(get_current_user)) -> User:
    """Allow super admins and super users."""
    if not has_system_admin_access(user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="System admin access required",
        )
    return user


def require_super_admin(user: User = Depends(get_current_user)) -> User:
    if not is_super_admin(user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only Super Admins can manage system roles",
        )
    return user
