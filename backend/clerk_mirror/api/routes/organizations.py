"""
Organization API Routes - access to mirrored organizations.

Provides endpoints for:
- Listing the organizations the current user belongs to
- Organization details, the caller's role and the member list
- Pending invitations (members) and invitations by status (org admins)
- Renaming an organization and changing member roles (org admins)

SECURITY:
- Requires authentication
- Membership is read from the local mirror, never from Clerk directly
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from clerk_mirror.api.schemas.mirror import (
    InvitationResponse,
    MemberRoleUpdateRequest,
    MembershipResponse,
    OrganizationResponse,
    OrganizationRoleResponse,
    OrganizationUpdateRequest,
)
from clerk_mirror.auth.dependencies import get_current_user
from clerk_mirror.database.session import get_db_session
from clerk_mirror.models.organization_invitation import (
    InvitationStatus,
    OrganizationInvitation,
)
from clerk_mirror.models.organization_membership import OrganizationMembership
from clerk_mirror.models.user import User
from clerk_mirror.services.org_access import (
    MembershipMismatchError,
    MembershipNotFoundError,
    OrganizationAccessDeniedError,
    OrganizationAccessService,
    OrganizationNotFoundError,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/organizations", tags=["organizations"])


def _translate(error: Exception) -> HTTPException:
    if isinstance(error, OrganizationNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Organization not found")
    if isinstance(error, MembershipNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Membership not found")
    if isinstance(error, MembershipMismatchError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(error))
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(error))


def _invitations(db: Session, organization_id: str, invitation_status: Optional[str]):
    query = db.query(OrganizationInvitation).filter(
        OrganizationInvitation.organization_id == organization_id
    )
    if invitation_status:
        query = query.filter(OrganizationInvitation.status == invitation_status)
    return query.order_by(OrganizationInvitation.created_at.desc()).all()


@router.get("", response_model=List[OrganizationResponse])
async def list_my_organizations(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db_session),
):
    """Organizations the current user is a member of, by name."""
    return OrganizationAccessService(db).list_user_organizations(user)


@router.get("/{organization_id}", response_model=OrganizationResponse)
async def get_organization(
    organization_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db_session),
):
    access = OrganizationAccessService(db)
    try:
        access.require_membership(user, organization_id)
        return access.get_organization(organization_id)
    except (OrganizationNotFoundError, OrganizationAccessDeniedError) as e:
        raise _translate(e)


@router.get("/{organization_id}/role", response_model=OrganizationRoleResponse)
async def get_my_organization_role(
    organization_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db_session),
):
    """
    The caller's role in an organization.

    Non-members get {is_member: false, role: null} rather than a 403.
    """
    access = OrganizationAccessService(db)
    try:
        access.get_organization(organization_id)
    except OrganizationNotFoundError as e:
        raise _translate(e)

    membership = access.get_membership(user, organization_id)
    if membership is None:
        return OrganizationRoleResponse(is_member=False, role=None)
    return OrganizationRoleResponse(is_member=True, role=membership.role)


@router.get("/{organization_id}/members", response_model=List[MembershipResponse])
async def list_organization_members(
    organization_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db_session),
):
    try:
        OrganizationAccessService(db).require_membership(user, organization_id)
    except (OrganizationNotFoundError, OrganizationAccessDeniedError) as e:
        raise _translate(e)

    return db.query(OrganizationMembership).filter(
        OrganizationMembership.organization_id == organization_id
    ).order_by(OrganizationMembership.created_at).all()


@router.get("/{organization_id}/invitations/pending", response_model=List[InvitationResponse])
async def list_pending_invitations(
    organization_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db_session),
):
    try:
        OrganizationAccessService(db).require_membership(user, organization_id)
    except (OrganizationNotFoundError, OrganizationAccessDeniedError) as e:
        raise _translate(e)

    return _invitations(db, organization_id, InvitationStatus.PENDING)


@router.get("/{organization_id}/invitations", response_model=List[InvitationResponse])
async def list_invitations(
    organization_id: str,
    invitation_status: Optional[str] = Query(None, alias="status"),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db_session),
):
    """
    All invitations of an organization, optionally filtered by status.

    Restricted to organization admins (admin or owner role).
    """
    try:
        OrganizationAccessService(db).require_admin(user, organization_id)
    except (OrganizationNotFoundError, OrganizationAccessDeniedError) as e:
        raise _translate(e)

    return _invitations(db, organization_id, invitation_status)


@router.patch("/{organization_id}", response_model=OrganizationResponse)
async def update_organization(
    organization_id: str,
    request: OrganizationUpdateRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db_session),
):
    """Rename an organization. Org admins only."""
    try:
        return OrganizationAccessService(db).update_organization(user, organization_id, name=request.name)
    except (OrganizationNotFoundError, OrganizationAccessDeniedError) as e:
        raise _translate(e)


@router.patch("/{organization_id}/members/{membership_id}/role", response_model=MembershipResponse)
async def update_member_role(
    organization_id: str,
    membership_id: str,
    request: MemberRoleUpdateRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db_session),
):
    """
    Change the role of a member of this organization.

    Org admins only. A membership of another organization is a 400.
    """
    try:
        return OrganizationAccessService(db).update_member_role(
            user, organization_id, membership_id, request.role
        )
    except (
        OrganizationNotFoundError,
        OrganizationAccessDeniedError,
        MembershipNotFoundError,
        MembershipMismatchError,
    ) as e:
        raise _translate(e)
