"""
Session sync from Clerk session.* events.

All session.* event types share one handler; only the derived status
differs:
- session.created  -> payload status, or active
- session.ended    -> ended
- session.revoked  -> revoked
- session.removed  -> removed
- session.pending  -> pending
Unknown session.* types behave like session.created.

The owning user may be missing locally (placeholder synthesized) or absent
from the payload entirely, which only works for sessions already mirrored.
"""

import logging
from typing import Any, Dict, Optional

from clerk_mirror.api.schemas.clerk_events import SessionPayload
from clerk_mirror.models.base import to_iso_timestamp, utc_now_iso
from clerk_mirror.models.user_session import SessionStatus, UserSession
from clerk_mirror.services.clerk_sync.base import ClerkSyncServiceBase, SyncResult, kept_timestamp
from clerk_mirror.services.clerk_sync.placeholders import PlaceholderService
from clerk_mirror.services.clerk_sync.user_agent import DeviceInfo, parse_user_agent

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("external_id", "user_id", "status")

_STATUS_BY_EVENT = {
    "session.ended": SessionStatus.ENDED,
    "session.revoked": SessionStatus.REVOKED,
    "session.removed": SessionStatus.REMOVED,
    "session.pending": SessionStatus.PENDING,
}


def session_status_for(event_type: str, payload_status: Optional[str]) -> str:
    status = _STATUS_BY_EVENT.get(event_type)
    if status:
        return status
    return payload_status or SessionStatus.ACTIVE


def resolve_device(
    payload: SessionPayload,
    user_agent: Optional[str] = None,
    client_ip: Optional[str] = None,
) -> Dict[str, Optional[str]]:
    """
    Collect device fields for a session.

    Structured Clerk fields (latest_activity, device, ip_address) take
    precedence; the User-Agent heuristic only fills what they leave empty.
    """
    activity = payload.latest_activity
    device = payload.device

    device_type = (activity.device_type if activity else None) or (device.type if device else None)
    browser_name = (activity.browser_name if activity else None) or (
        device.browser_name if device else None
    )
    ip_address = (activity.ip_address if activity else None) or payload.ip_address or client_ip

    if (not device_type or not browser_name) and user_agent:
        guessed: DeviceInfo = parse_user_agent(user_agent)
        device_type = device_type or guessed.device_type
        browser_name = browser_name or guessed.browser_name

    return {
        "device_type": device_type,
        "browser_name": browser_name,
        "ip_address": ip_address,
    }


class SessionSyncService(ClerkSyncServiceBase):
    """Create, update and end mirrored Clerk sessions."""

    def __init__(self, session, placeholders: Optional[PlaceholderService] = None):
        super().__init__(session)
        self.placeholders = placeholders or PlaceholderService(session)

    def upsert_from_clerk(
        self,
        payload: SessionPayload,
        event_type: str,
        user_agent: Optional[str] = None,
        client_ip: Optional[str] = None,
    ) -> SyncResult:
        existing = self.get_by_external_id(UserSession, payload.id)
        status = session_status_for(event_type, payload.status)
        user_external_id = payload.user_external_id

        if user_external_id is None:
            if existing is None:
                logger.warning(
                    "Cannot sync session: no user in payload and session unknown",
                    extra={"clerk_session_id": payload.id, "event_type": event_type},
                )
                return SyncResult.failed("user_not_found")
            if status in SessionStatus.TERMINAL:
                return self.end_from_clerk(payload.id, event_type)
            user_id = existing.user_id
        else:
            nested = payload.user
            email = None
            if nested is not None and nested.email_addresses:
                email = nested.email_addresses[0].email_address
            user = self.placeholders.ensure_user(
                user_external_id,
                first_name=nested.first_name if nested else None,
                last_name=nested.last_name if nested else None,
                email=email,
                image_url=nested.image_url if nested else None,
            )
            user_id = user.id

        now = utc_now_iso()
        terminal = status in SessionStatus.TERMINAL
        fields: Dict[str, Any] = {
            "external_id": payload.id,
            "user_id": user_id,
            "status": status,
            "created_at": kept_timestamp(to_iso_timestamp(payload.created_at), existing, "created_at", now),
            "last_active_at": kept_timestamp(
                to_iso_timestamp(payload.last_active_at), existing, "last_active_at", now
            ),
            "ended_at": self._ended_at(existing, now) if terminal else None,
            "client_id": payload.client_id or None,
        }
        fields.update(resolve_device(payload, user_agent, client_ip))

        # A reactivated session must lose its ended_at, so it is always assigned
        required = REQUIRED_FIELDS + ("ended_at",)
        user_session = self.insert_or_patch(UserSession, existing, fields, required)

        logger.info(
            "Created session from Clerk" if existing is None
            else "Updated session from Clerk",
            extra={
                "clerk_session_id": payload.id,
                "event_type": event_type,
                "status": status,
            },
        )
        return SyncResult.ok(user_session.id)

    @staticmethod
    def _ended_at(existing: Optional[UserSession], now: str) -> str:
        """Keep the first end time of a session that is already terminal."""
        if existing is not None and existing.status in SessionStatus.TERMINAL and existing.ended_at:
            return existing.ended_at
        return now

    def end_from_clerk(self, external_id: str, event_type: str) -> SyncResult:
        """Mark an existing session ended, revoked or removed."""
        user_session = self.get_by_external_id(UserSession, external_id)
        if user_session is None:
            logger.warning(
                "Cannot end session: not found",
                extra={"clerk_session_id": external_id, "event_type": event_type},
            )
            return SyncResult.failed("session_not_found")

        status = _STATUS_BY_EVENT.get(event_type, SessionStatus.ENDED)
        if status not in SessionStatus.TERMINAL:
            status = SessionStatus.ENDED

        user_session.ended_at = self._ended_at(user_session, utc_now_iso())
        user_session.status = status
        self.session.flush()

        logger.info(
            "Ended session from Clerk",
            extra={"clerk_session_id": external_id, "status": status},
        )
        return SyncResult.ok(user_session.id)
