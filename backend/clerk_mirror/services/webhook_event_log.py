"""
Audit log of inbound Clerk webhooks.

Each write commits on its own so the audit trail survives a rollback of the
domain write it describes. Audit failures are logged and swallowed: losing
an audit row must never fail the webhook itself.
"""

import logging
from typing import Any, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clerk_mirror.models.base import utc_now_iso
from clerk_mirror.models.webhook_event import WebhookEvent, WebhookEventStatus

logger = logging.getLogger(__name__)

DEFAULT_RECENT_LIMIT = 50
DEFAULT_FILTERED_LIMIT = 20
MAX_LIMIT = 500


def _clamp(limit: Optional[int], default: int) -> int:
    if limit is None:
        return default
    return max(1, min(int(limit), MAX_LIMIT))


class WebhookEventLog:
    """Write and query WebhookEvent audit rows."""

    def __init__(self, session: Session):
        self.session = session

    def log_event(
        self,
        event_type: str,
        external_event_id: Optional[str],
        object_id: Optional[str],
        object_type: Optional[str],
        payload: Any,
        timestamp: Optional[str] = None,
        status: str = WebhookEventStatus.PROCESSING,
    ) -> Optional[str]:
        """
        Record a received event.

        Returns:
            The audit row id, or None if the row could not be written
        """
        event = WebhookEvent(
            event_type=event_type,
            external_event_id=external_event_id,
            object_id=object_id,
            object_type=object_type,
            timestamp=timestamp or utc_now_iso(),
            payload=payload,
            status=status,
        )
        try:
            self.session.add(event)
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            logger.exception(
                "Failed to write webhook audit record",
                extra={"event_type": event_type, "svix_id": external_event_id},
            )
            return None
        return event.id

    def update_status(
        self,
        event_id: Optional[str],
        status: str,
        error_message: Optional[str] = None,
    ) -> bool:
        """Patch the status of an audit row; returns False if it could not be updated."""
        if not event_id:
            return False
        if status not in WebhookEventStatus.ALL:
            raise ValueError(f"Unknown webhook event status: {status}")

        try:
            event = self.session.query(WebhookEvent).filter(WebhookEvent.id == event_id).first()
            if event is None:
                logger.warning("Webhook audit record missing", extra={"webhook_event_id": event_id})
                return False
            event.status = status
            event.error_message = error_message
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            logger.exception(
                "Failed to update webhook audit record",
                extra={"webhook_event_id": event_id, "status": status},
            )
            return False
        return True

    # =========================================================================
    # Operator queries
    # =========================================================================

    def recent(self, limit: Optional[int] = DEFAULT_RECENT_LIMIT) -> List[WebhookEvent]:
        return self.session.query(WebhookEvent).order_by(
            WebhookEvent.timestamp.desc()
        ).limit(_clamp(limit, DEFAULT_RECENT_LIMIT)).all()

    def for_object(self, object_id: str, limit: Optional[int] = DEFAULT_FILTERED_LIMIT) -> List[WebhookEvent]:
        return self.session.query(WebhookEvent).filter(
            WebhookEvent.object_id == object_id
        ).order_by(
            WebhookEvent.timestamp.desc()
        ).limit(_clamp(limit, DEFAULT_FILTERED_LIMIT)).all()

    def by_type(self, event_type: str, limit: Optional[int] = DEFAULT_FILTERED_LIMIT) -> List[WebhookEvent]:
        return self.session.query(WebhookEvent).filter(
            WebhookEvent.event_type == event_type
        ).order_by(
            WebhookEvent.timestamp.desc()
        ).limit(_clamp(limit, DEFAULT_FILTERED_LIMIT)).all()
