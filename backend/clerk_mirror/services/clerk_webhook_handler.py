"""
Clerk Webhook Handler for processing verified Clerk webhook events.

Handles the following event types:
- user.created, user.updated, user.deleted
- session.* (created, ended, revoked, removed, pending, ...)
- organization.created, organization.updated, organization.deleted
- organizationInvitation.created, organizationInvitation.accepted, organizationInvitation.revoked
- organizationMembership.created, organizationMembership.updated, organizationMembership.deleted
- permission.created, permission.updated, permission.deleted
- role.created, role.updated, role.deleted

Pipeline per event:
    audit "processing" -> classify -> decode payload -> sync service
    -> commit -> audit processed / failed / ignored -> WebhookOutcome

Unknown event types are acknowledged (202) so Clerk stops retrying them.
Malformed payloads and handler exceptions are failures (500), retried by Clerk.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from sqlalchemy.orm import Session

from clerk_mirror.api.schemas.clerk_events import (
    SESSION_EVENT_PREFIX,
    ClerkPayload,
    ClerkWebhookEvent,
    PayloadValidationError,
    decode_event_payload,
)
from clerk_mirror.models.webhook_event import WebhookEventStatus
from clerk_mirror.services.clerk_sync import (
    InvitationSyncService,
    MembershipSyncService,
    OrganizationSyncService,
    PermissionSyncService,
    PlaceholderService,
    RoleSyncService,
    SessionSyncService,
    SyncResult,
    UserSyncService,
)
from clerk_mirror.services.webhook_event_log import WebhookEventLog

logger = logging.getLogger(__name__)

STANDARD_SESSION_EVENTS = frozenset({
    "session.created",
    "session.ended",
    "session.revoked",
    "session.removed",
})

Handler = Callable[[ClerkPayload, ClerkWebhookEvent], SyncResult]


@dataclass(frozen=True)
class EventRoute:
    """Where a recognised event type is dispatched."""

    event_type: str
    name: str
    handler: Handler


@dataclass
class WebhookOutcome:
    """Result of handling one webhook: HTTP status, response body and audit status."""

    status_code: int
    body: Dict[str, Any]
    audit_status: str
    event_log_id: Optional[str] = None
    result: Optional[SyncResult] = field(default=None)


class ClerkWebhookHandler:
    """
    Handler for Clerk webhook events.

    Routes events to sync services and manages database transactions.
    The caller owns the session's lifecycle.
    """

    def __init__(self, session: Session, event_log: Optional[WebhookEventLog] = None):
        """
        Initialize handler with database session.

        Args:
            session: SQLAlchemy session for database operations
            event_log: Audit log writer; defaults to one on the same session
        """
        self.session = session
        self.event_log = event_log or WebhookEventLog(session)

        placeholders = PlaceholderService(session)
        permissions = PermissionSyncService(session)
        self.users = UserSyncService(session)
        self.organizations = OrganizationSyncService(session)
        self.memberships = MembershipSyncService(session, placeholders)
        self.invitations = InvitationSyncService(session)
        self.sessions = SessionSyncService(session, placeholders)
        self.permissions = permissions
        self.roles = RoleSyncService(session, permissions)

        self._handlers: Dict[str, Handler] = {
            # User events
            "user.created": self.handle_user_upsert,
            "user.updated": self.handle_user_upsert,
            "user.deleted": self.handle_user_deleted,
            # Organization events
            "organization.created": self.handle_organization_upsert,
            "organization.updated": self.handle_organization_upsert,
            "organization.deleted": self.handle_organization_deleted,
            # Invitation events
            "organizationInvitation.created": self.handle_invitation,
            "organizationInvitation.accepted": self.handle_invitation,
            "organizationInvitation.revoked": self.handle_invitation,
            # Membership events
            "organizationMembership.created": self.handle_membership_upsert,
            "organizationMembership.updated": self.handle_membership_upsert,
            "organizationMembership.deleted": self.handle_membership_deleted,
            # Permission events
            "permission.created": self.handle_permission_upsert,
            "permission.updated": self.handle_permission_upsert,
            "permission.deleted": self.handle_permission_deleted,
            # Role events
            "role.created": self.handle_role_upsert,
            "role.updated": self.handle_role_upsert,
            "role.deleted": self.handle_role_deleted,
        }

    # =========================================================================
    # Classification
    # =========================================================================

    def classify(self, event_type: str) -> Optional[EventRoute]:
        """
        Match an event type to its handler.

        Exact matches come first; any other session.* type shares the
        session handler. Returns None for types the mirror does not act on.
        """
        handler = self._handlers.get(event_type)
        if handler is not None:
            return EventRoute(event_type=event_type, name=handler.__name__, handler=handler)

        if event_type.startswith(SESSION_EVENT_PREFIX):
            if event_type not in STANDARD_SESSION_EVENTS:
                logger.info("Processing non-standard session event", extra={"event_type": event_type})
            return EventRoute(
                event_type=event_type,
                name=self.handle_session.__name__,
                handler=self.handle_session,
            )

        return None

    # =========================================================================
    # Pipeline
    # =========================================================================

    def handle_event(self, event: ClerkWebhookEvent, svix_id: Optional[str] = None) -> WebhookOutcome:
        """
        Run one verified event through audit, routing, decoding and sync.

        Args:
            event: Verified webhook envelope
            svix_id: Svix message id from the delivery headers

        Returns:
            WebhookOutcome carrying the HTTP status to answer with
        """
        event_type = event.type
        event_log_id = self.event_log.log_event(
            event_type=event_type,
            external_event_id=svix_id or f"{event_type}-{int(time.time() * 1000)}",
            object_id=event.object_id,
            object_type=event.object_type,
            payload=event.model_dump(mode="json", exclude_unset=True),
        )

        route = self.classify(event_type)
        if route is None:
            logger.warning(
                "Received unhandled Clerk webhook event",
                extra={"event_type": event_type, "svix_id": svix_id},
            )
            self.event_log.update_status(event_log_id, WebhookEventStatus.IGNORED)
            return WebhookOutcome(
                status_code=202,
                body={"status": "ignored", "eventType": event_type},
                audit_status=WebhookEventStatus.IGNORED,
                event_log_id=event_log_id,
            )

        try:
            payload = decode_event_payload(event_type, event.data)
            result = route.handler(payload, event)
            self.session.commit()
        except PayloadValidationError as e:
            self.session.rollback()
            logger.warning(
                "Invalid Clerk webhook payload",
                extra={"event_type": event_type, "svix_id": svix_id, "error": e.message},
            )
            return self._failed(event_type, event_log_id, "Invalid payload", e.message)
        except Exception as e:
            self.session.rollback()
            logger.error(
                f"Error handling {event_type}",
                extra={"error": str(e), "event_type": event_type, "svix_id": svix_id},
                exc_info=True,
            )
            return self._failed(event_type, event_log_id, "Processing error", str(e))

        if result.success:
            self.event_log.update_status(event_log_id, WebhookEventStatus.PROCESSED)
            logger.info(
                "Processed Clerk webhook",
                extra={"event_type": event_type, "svix_id": svix_id, "record_id": result.id},
            )
        else:
            # Reference-not-found is recoverable by a later delivery, not a failure
            self.event_log.update_status(
                event_log_id, WebhookEventStatus.PROCESSED, error_message=result.reason
            )
            logger.warning(
                "Clerk webhook skipped",
                extra={"event_type": event_type, "svix_id": svix_id, "reason": result.reason},
            )

        return WebhookOutcome(
            status_code=200,
            body={"status": "success", "eventType": event_type, "result": result.to_dict()},
            audit_status=WebhookEventStatus.PROCESSED,
            event_log_id=event_log_id,
            result=result,
        )

    def _failed(self, event_type: str, event_log_id: Optional[str], error: str, details: str) -> WebhookOutcome:
        self.event_log.update_status(event_log_id, WebhookEventStatus.FAILED, error_message=details)
        return WebhookOutcome(
            status_code=500,
            body={"error": error, "details": details, "eventType": event_type},
            audit_status=WebhookEventStatus.FAILED,
            event_log_id=event_log_id,
        )

    # =========================================================================
    # Event handlers
    # =========================================================================

    def handle_user_upsert(self, payload, event: ClerkWebhookEvent) -> SyncResult:
        return self.users.upsert_from_clerk(payload)

    def handle_user_deleted(self, payload, event: ClerkWebhookEvent) -> SyncResult:
        return self.users.delete_from_clerk(payload.id)

    def handle_session(self, payload, event: ClerkWebhookEvent) -> SyncResult:
        return self.sessions.upsert_from_clerk(
            payload,
            event.type,
            user_agent=event.user_agent,
            client_ip=event.client_ip,
        )

    def handle_organization_upsert(self, payload, event: ClerkWebhookEvent) -> SyncResult:
        return self.organizations.upsert_from_clerk(payload)

    def handle_organization_deleted(self, payload, event: ClerkWebhookEvent) -> SyncResult:
        return self.organizations.delete_from_clerk(payload.id)

    def handle_invitation(self, payload, event: ClerkWebhookEvent) -> SyncResult:
        return self.invitations.upsert_from_clerk(payload, event.type, client_ip=event.client_ip)

    def handle_membership_upsert(self, payload, event: ClerkWebhookEvent) -> SyncResult:
        return self.memberships.upsert_from_clerk(payload)

    def handle_membership_deleted(self, payload, event: ClerkWebhookEvent) -> SyncResult:
        return self.memberships.delete_from_clerk(payload.id)

    def handle_permission_upsert(self, payload, event: ClerkWebhookEvent) -> SyncResult:
        return self.permissions.upsert_from_clerk(payload)

    def handle_permission_deleted(self, payload, event: ClerkWebhookEvent) -> SyncResult:
        return self.permissions.delete_from_clerk(payload.id)

    def handle_role_upsert(self, payload, event: ClerkWebhookEvent) -> SyncResult:
        return self.roles.upsert_from_clerk(payload)

    def handle_role_deleted(self, payload, event: ClerkWebhookEvent) -> SyncResult:
        return self.roles.delete_from_clerk(payload.id)
