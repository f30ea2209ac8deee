"""
Tests for session sync and User-Agent device inference.
"""

from unittest.mock import patch

import pytest

from clerk_mirror.api.schemas.clerk_events import SessionPayload
from clerk_mirror.models import SessionStatus, User, UserSession
from clerk_mirror.services.clerk_sync import PlaceholderService, SessionSyncService
from clerk_mirror.services.clerk_sync.sessions import resolve_device, session_status_for
from clerk_mirror.services.clerk_sync.user_agent import parse_user_agent

SESSIONS = "clerk_mirror.services.clerk_sync.sessions"

CHROME_MAC = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
EDGE_WINDOWS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36 Edg/120.0.0.0"
)
SAFARI_IPHONE = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1"
)
FIREFOX_LINUX = "Mozilla/5.0 (X11; Linux x86_64; rv:121.0) Gecko/20100101 Firefox/121.0"


@pytest.fixture
def session_service(db_session):
    return SessionSyncService(db_session, PlaceholderService(db_session))


class TestParseUserAgent:
    """Tests for parse_user_agent."""

    @pytest.mark.parametrize("user_agent, device_type, browser", [
        (CHROME_MAC, "desktop", "Chrome"),
        (EDGE_WINDOWS, "desktop", "Edge"),
        (SAFARI_IPHONE, "mobile", "Safari"),
        (FIREFOX_LINUX, "desktop", "Firefox"),
    ])
    def test_known_agents(self, user_agent, device_type, browser):
        info = parse_user_agent(user_agent)

        assert info.device_type == device_type
        assert info.browser_name == browser

    def test_unknown_browser(self):
        """Unrecognised agents still get a device type."""
        info = parse_user_agent("curl/8.4.0")

        assert info.device_type == "desktop"
        assert info.browser_name is None

    @pytest.mark.parametrize("user_agent", [None, "", "   "])
    def test_empty(self, user_agent):
        info = parse_user_agent(user_agent)

        assert info.device_type is None
        assert info.browser_name is None


class TestResolveDevice:
    """Structured Clerk fields win over the User-Agent guess."""

    def test_structured_fields_win(self):
        payload = SessionPayload.model_validate({
            "id": "sess_1",
            "latest_activity": {"device_type": "tablet", "browser_name": "Arc", "ip_address": "10.1.1.1"},
        })

        device = resolve_device(payload, user_agent=CHROME_MAC, client_ip="10.9.9.9")

        assert device == {"device_type": "tablet", "browser_name": "Arc", "ip_address": "10.1.1.1"}

    def test_user_agent_fills_gaps(self):
        payload = SessionPayload.model_validate({"id": "sess_1", "device": {"type": "mobile"}})

        device = resolve_device(payload, user_agent=FIREFOX_LINUX, client_ip="10.9.9.9")

        assert device == {"device_type": "mobile", "browser_name": "Firefox", "ip_address": "10.9.9.9"}

    def test_nothing_known(self):
        payload = SessionPayload.model_validate({"id": "sess_1"})

        assert resolve_device(payload) == {"device_type": None, "browser_name": None, "ip_address": None}


class TestSessionStatus:
    """Tests for session_status_for."""

    @pytest.mark.parametrize("event_type, expected", [
        ("session.ended", "ended"),
        ("session.revoked", "revoked"),
        ("session.removed", "removed"),
        ("session.pending", "pending"),
    ])
    def test_event_type_sets_status(self, event_type, expected):
        assert session_status_for(event_type, "active") == expected

    def test_created_uses_payload_or_active(self):
        assert session_status_for("session.created", "abandoned") == "abandoned"
        assert session_status_for("session.created", None) == "active"
        assert session_status_for("session.touched", None) == "active"


class TestSessionSync:
    """Tests for SessionSyncService."""

    def test_creates_session_and_placeholder_user(self, session_service, db_session, sample_session_data):
        """A session for an unknown user synthesizes that user."""
        result = session_service.upsert_from_clerk(
            SessionPayload.model_validate(sample_session_data),
            "session.created",
            user_agent=SAFARI_IPHONE,
            client_ip="203.0.113.5",
        )

        user_session = db_session.query(UserSession).one()
        user = db_session.query(User).one()
        assert result.id == user_session.id
        assert user.external_id == "user_clerk_123"
        assert user.is_placeholder is True
        assert user_session.user_id == user.id
        assert user_session.status == SessionStatus.ACTIVE
        assert user_session.device_type == "mobile"
        assert user_session.browser_name == "Safari"
        assert user_session.ip_address == "203.0.113.5"
        assert user_session.client_id == "client_123"
        assert user_session.ended_at is None

    def test_status_transitions(self, session_service, db_session, sample_session_data):
        """session.ended on a known session marks it ended with a timestamp."""
        payload = SessionPayload.model_validate(sample_session_data)
        session_service.upsert_from_clerk(payload, "session.created")

        session_service.upsert_from_clerk(payload, "session.ended")

        user_session = db_session.query(UserSession).one()
        assert user_session.status == SessionStatus.ENDED
        assert user_session.ended_at is not None

    def test_removal_without_user_ends_known_session(self, session_service, db_session, sample_session_data):
        """A removal event without a user id still applies to a mirrored session."""
        session_service.upsert_from_clerk(SessionPayload.model_validate(sample_session_data), "session.created")

        result = session_service.upsert_from_clerk(
            SessionPayload.model_validate({"id": "sess_123"}), "session.removed"
        )

        assert result.success is True
        assert db_session.query(UserSession).one().status == SessionStatus.REMOVED

    def test_unknown_session_without_user(self, session_service, db_session):
        """Without a user id, an unknown session cannot be created."""
        result = session_service.upsert_from_clerk(
            SessionPayload.model_validate({"id": "sess_orphan"}), "session.created"
        )

        assert result.success is False
        assert result.reason == "user_not_found"
        assert db_session.query(UserSession).count() == 0

    def test_nested_user_fragment_names_placeholder(self, session_service, db_session):
        payload = SessionPayload.model_validate({
            "id": "sess_nested",
            "user": {
                "id": "user_nested",
                "first_name": "Ada",
                "last_name": "Lovelace",
                "email_addresses": [{"email_address": "ada@example.com"}],
            },
        })

        session_service.upsert_from_clerk(payload, "session.created")

        user = db_session.query(User).one()
        assert user.name == "Ada Lovelace"
        assert user.email == "ada@example.com"

    def test_end_from_clerk(self, session_service, db_session, sample_session_data):
        session_service.upsert_from_clerk(SessionPayload.model_validate(sample_session_data), "session.created")

        result = session_service.end_from_clerk("sess_123", "session.revoked")

        assert result.success is True
        assert db_session.query(UserSession).one().status == SessionStatus.REVOKED

    def test_end_missing_session(self, session_service):
        result = session_service.end_from_clerk("sess_missing", "session.ended")

        assert result.reason == "session_not_found"

    def test_repeated_end_keeps_first_end_time(self, session_service, db_session, sample_session_data):
        """Ending an already ended session does not move ended_at."""
        session_service.upsert_from_clerk(SessionPayload.model_validate(sample_session_data), "session.created")
        ending = SessionPayload.model_validate({"id": "sess_123"})

        with patch(f"{SESSIONS}.utc_now_iso", return_value="2024-01-01T00:00:00.000Z"):
            session_service.upsert_from_clerk(ending, "session.ended")
        with patch(f"{SESSIONS}.utc_now_iso", return_value="2024-01-02T00:00:00.000Z"):
            session_service.upsert_from_clerk(ending, "session.ended")

        assert db_session.query(UserSession).one().ended_at == "2024-01-01T00:00:00.000Z"
