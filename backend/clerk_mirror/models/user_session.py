"""
UserSession model: a Clerk session mirrored locally.

Status follows the session.* event that last touched the row:
session.created -> payload status or active, session.ended -> ended,
session.revoked -> revoked, session.removed -> removed, session.pending -> pending.

Device fields come from structured Clerk data when present, otherwise from
a best-effort parse of the user agent reported with the webhook.
"""

from sqlalchemy import Column, String, Index, ForeignKey

from clerk_mirror.db_base import Base
from clerk_mirror.models.base import generate_uuid


class SessionStatus:
    ACTIVE = "active"
    ENDED = "ended"
    REVOKED = "revoked"
    REMOVED = "removed"
    PENDING = "pending"

    TERMINAL = frozenset({ENDED, REVOKED, REMOVED})


class UserSession(Base):
    """Local record of a Clerk session."""

    __tablename__ = "sessions"

    id = Column(
        String(255),
        primary_key=True,
        default=generate_uuid,
        comment="Internal UUID primary key"
    )

    external_id = Column(
        String(255),
        nullable=False,
        unique=True,
        index=True,
        comment="Clerk session ID (sess_...)"
    )

    user_id = Column(
        String(255),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    status = Column(String(50), nullable=False, default=SessionStatus.ACTIVE)

    created_at = Column(String(40), nullable=False)
    last_active_at = Column(String(40), nullable=True)
    ended_at = Column(String(40), nullable=True)

    # Device / client info
    client_id = Column(String(255), nullable=True)
    device_type = Column(String(50), nullable=True, comment="mobile, desktop, ...")
    browser_name = Column(String(100), nullable=True)
    ip_address = Column(String(64), nullable=True)

    __table_args__ = (
        Index("ix_sessions_user_status", "user_id", "status"),
        Index("ix_sessions_ip_status", "ip_address", "status"),
    )

    def __repr__(self) -> str:
        return f"<UserSession(id={self.id}, external_id={self.external_id}, status={self.status})>"

    @property
    def is_active(self) -> bool:
        return self.status == SessionStatus.ACTIVE
