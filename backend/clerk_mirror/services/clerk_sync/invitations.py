"""
Organization invitation sync from Clerk organizationInvitation.* events.

Invitations require their organization to exist locally; an invitation for
an unknown organization is skipped with reason "organization_not_found" and
picked up again on a later delivery.

Creator resolution, in order:
1. public_user_data.user_id embedded in the payload
2. the organization's recorded creator (created_by)
3. an active session whose IP matches the webhook's reported client IP
If none match the creator stays unset.
"""

import logging
from typing import Optional

from clerk_mirror.api.schemas.clerk_events import InvitationPayload
from clerk_mirror.models.base import to_iso_timestamp, utc_now_iso
from clerk_mirror.models.organization import Organization
from clerk_mirror.models.organization_invitation import InvitationStatus, OrganizationInvitation
from clerk_mirror.models.user import User
from clerk_mirror.models.user_session import SessionStatus, UserSession
from clerk_mirror.services.clerk_sync.base import (
    ClerkSyncServiceBase,
    SyncResult,
    kept_timestamp,
    non_empty,
)

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("external_id", "organization_id", "email", "status", "role", "created_at")

_STATUS_BY_EVENT = {
    "organizationInvitation.accepted": InvitationStatus.ACCEPTED,
    "organizationInvitation.revoked": InvitationStatus.REVOKED,
}


def invitation_status_for(event_type: str, payload_status: Optional[str]) -> str:
    """Status implied by the event type, else the payload's own status, else pending."""
    status = _STATUS_BY_EVENT.get(event_type)
    if status:
        return status
    return payload_status or InvitationStatus.PENDING


class InvitationSyncService(ClerkSyncServiceBase):
    """Create, update and delete mirrored organization invitations."""

    def upsert_from_clerk(
        self,
        payload: InvitationPayload,
        event_type: str,
        client_ip: Optional[str] = None,
    ) -> SyncResult:
        org_external_id = payload.organization_external_id
        organization = self.get_by_external_id(Organization, org_external_id)
        if organization is None:
            logger.warning(
                "Cannot handle invitation: organization not found",
                extra={"clerk_invitation_id": payload.id, "clerk_org_id": org_external_id},
            )
            return SyncResult.failed("organization_not_found")

        now = utc_now_iso()
        existing = self.get_by_external_id(OrganizationInvitation, payload.id)
        fields = {
            "external_id": payload.id,
            "organization_id": organization.id,
            "email": payload.email_address,
            "status": invitation_status_for(event_type, payload.status),
            "role": payload.role,
            "created_at": kept_timestamp(to_iso_timestamp(payload.created_at), existing, "created_at", now),
            "updated_at": kept_timestamp(to_iso_timestamp(payload.updated_at), existing, "updated_at", now),
            "created_by_user_id": self.resolve_creator(payload, organization, client_ip),
            "org_external_id": org_external_id,
            "public_metadata": non_empty(payload.public_metadata),
            "private_metadata": non_empty(payload.private_metadata),
            "public_user_data": (
                non_empty(payload.public_user_data.model_dump(exclude_none=True))
                if payload.public_user_data is not None else None
            ),
        }
        invitation = self.insert_or_patch(OrganizationInvitation, existing, fields, REQUIRED_FIELDS)

        logger.info(
            "Created invitation from Clerk" if existing is None
            else "Updated invitation from Clerk",
            extra={
                "clerk_invitation_id": payload.id,
                "event_type": event_type,
                "status": invitation.status,
            },
        )
        return SyncResult.ok(invitation.id)

    def resolve_creator(
        self,
        payload: InvitationPayload,
        organization: Organization,
        client_ip: Optional[str] = None,
    ) -> Optional[str]:
        """Return the internal id of the inviting user, or None if it cannot be determined."""
        embedded_user_id = payload.public_user_data.user_id if payload.public_user_data else None
        if embedded_user_id:
            user = self.get_by_external_id(User, embedded_user_id)
            if user is not None:
                return user.id

        if organization.created_by:
            user = self.get_by_external_id(User, organization.created_by)
            if user is not None:
                return user.id

        if client_ip:
            user_session = self.session.query(UserSession).filter(
                UserSession.ip_address == client_ip,
                UserSession.status == SessionStatus.ACTIVE,
            ).order_by(UserSession.last_active_at.desc()).first()
            if user_session is not None:
                logger.info(
                    "Resolved invitation creator from session IP",
                    extra={"clerk_invitation_id": payload.id, "session_id": user_session.id},
                )
                return user_session.user_id

        return None

    def delete_from_clerk(self, external_id: str) -> SyncResult:
        invitation = self.get_by_external_id(OrganizationInvitation, external_id)
        if invitation is None:
            logger.warning(
                "Cannot delete invitation: not found",
                extra={"clerk_invitation_id": external_id},
            )
            return SyncResult.failed("invitation_not_found")

        invitation_id = invitation.id
        self.session.delete(invitation)
        self.session.flush()
        logger.info("Deleted invitation", extra={"clerk_invitation_id": external_id})
        return SyncResult.ok(invitation_id)
