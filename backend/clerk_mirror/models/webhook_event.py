"""
WebhookEvent model: audit trail of inbound Clerk webhooks.

Every signature-verified delivery gets a row with status "processing"
before dispatch. The row is then patched once to processed, failed or
ignored. Rows are never deleted by normal operation.
"""

from sqlalchemy import Column, String, Text, Index

from clerk_mirror.db_base import Base
from clerk_mirror.models.base import JSONType, generate_uuid


class WebhookEventStatus:
    PROCESSING = "processing"
    PROCESSED = "processed"
    FAILED = "failed"
    IGNORED = "ignored"

    ALL = frozenset({PROCESSING, PROCESSED, FAILED, IGNORED})


class WebhookEvent(Base):
    """
    Audit record of one Clerk webhook delivery.

    Svix may deliver the same event more than once; each delivery is logged
    so retries stay visible to operators.
    """

    __tablename__ = "webhook_events"

    id = Column(
        String(255),
        primary_key=True,
        default=generate_uuid,
        comment="Primary key (UUID)"
    )

    event_type = Column(
        String(255),
        nullable=False,
        comment="Clerk event type (e.g., user.created)"
    )

    external_event_id = Column(
        String(255),
        nullable=True,
        comment="Svix message ID (svix-id header)"
    )

    object_id = Column(
        String(255),
        nullable=True,
        comment="Clerk ID of the object the event is about"
    )

    object_type = Column(
        String(100),
        nullable=True,
        comment="Clerk object type (user, session, organization, ...)"
    )

    timestamp = Column(
        String(40),
        nullable=False,
        comment="ISO-8601 time the event was received"
    )

    payload = Column(JSONType, nullable=True, comment="Raw event envelope")

    status = Column(
        String(20),
        nullable=False,
        default=WebhookEventStatus.PROCESSING,
    )

    error_message = Column(Text, nullable=True)

    __table_args__ = (
        Index("idx_webhook_events_event_type", "event_type", "timestamp"),
        Index("idx_webhook_events_object_id", "object_id", "timestamp"),
        Index("idx_webhook_events_timestamp", "timestamp"),
        Index("idx_webhook_events_external_event_id", "external_event_id"),
    )

    def __repr__(self) -> str:
        return f"<WebhookEvent(id={self.id}, event_type={self.event_type}, status={self.status})>"
