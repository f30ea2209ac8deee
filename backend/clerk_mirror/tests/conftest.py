"""
Root test configuration and fixtures.

Provides:
- an in-memory SQLite database per test (StaticPool, schema from the models)
- a FastAPI TestClient over create_app() sharing that database
- Svix signing helpers for webhook deliveries
- RS256 key material and a token factory for authenticated routes
"""

import base64
import json
import time
from datetime import datetime, timezone
from typing import Generator
from unittest.mock import MagicMock

import jwt
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool
from svix.webhooks import Webhook

from clerk_mirror.api.schemas.clerk_events import ClerkWebhookEvent
from clerk_mirror.app import create_app
from clerk_mirror.auth.clerk_verifier import ClerkJWTVerifier
from clerk_mirror.config.settings import Settings
from clerk_mirror.database.session import build_session_factory
from clerk_mirror.db_base import Base
import clerk_mirror.models  # noqa: F401 - required to register all model metadata

TEST_ISSUER = "https://test.clerk.accounts.dev"
TEST_WEBHOOK_SECRET = "whsec_" + base64.b64encode(b"test_secret_key_12345").decode()


# =============================================================================
# Database
# =============================================================================

@pytest.fixture
def db_engine():
    """Fresh in-memory SQLite database for each test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)

    yield engine

    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return build_session_factory(db_engine)


@pytest.fixture
def db_session(session_factory) -> Generator[Session, None, None]:
    session = session_factory()
    yield session
    session.close()


# =============================================================================
# Webhook signing
# =============================================================================

@pytest.fixture
def webhook_secret():
    """Test webhook secret."""
    return TEST_WEBHOOK_SECRET


def sign_webhook(secret: str, body: str, msg_id: str = "msg_test_123", timestamp: datetime = None):
    """Return Svix delivery headers for a body signed with `secret`."""
    timestamp = timestamp or datetime.now(timezone.utc)
    signature = Webhook(secret).sign(msg_id, timestamp, body)
    return {
        "svix-id": msg_id,
        "svix-timestamp": str(int(timestamp.timestamp())),
        "svix-signature": signature,
        "content-type": "application/json",
    }


@pytest.fixture
def svix_headers():
    """The raw signing helper: (secret, body, msg_id, timestamp) -> headers."""
    return sign_webhook


@pytest.fixture
def signed_delivery(webhook_secret):
    """Factory: event dict -> (body, headers) signed with the test secret."""
    counter = {"n": 0}

    def _sign(event, msg_id=None):
        counter["n"] += 1
        body = json.dumps(event)
        headers = sign_webhook(webhook_secret, body, msg_id or f"msg_test_{counter['n']}")
        return body, headers

    return _sign


@pytest.fixture
def make_event():
    """Factory: build a verified envelope the way the route hands it to the handler."""
    def _make(event_type, data, client_ip=None, user_agent=None) -> ClerkWebhookEvent:
        raw = {"type": event_type, "data": data, "object": "event"}
        if client_ip or user_agent:
            raw["event_attributes"] = {
                "http_request": {"client_ip": client_ip, "user_agent": user_agent}
            }
        return ClerkWebhookEvent.model_validate(raw)

    return _make


# =============================================================================
# JWT
# =============================================================================

@pytest.fixture(scope="session")
def rsa_keypair():
    """Generate RSA keypair for testing."""
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption(),
    )
    return {
        "private_key": private_key,
        "public_key": private_key.public_key(),
        "private_pem": private_pem,
    }


@pytest.fixture
def jwks_client(rsa_keypair):
    """Stub PyJWKClient that always hands back the test public key."""
    client = MagicMock()
    client.get_signing_key_from_jwt.return_value = MagicMock(key=rsa_keypair["public_key"])
    return client


@pytest.fixture
def jwt_verifier(jwks_client):
    return ClerkJWTVerifier(issuer=TEST_ISSUER, jwks_client=jwks_client)


@pytest.fixture
def create_test_token(rsa_keypair):
    """Factory to create test JWTs."""
    def _create(sub="user_clerk_test123", claims=None, expired=False, private_pem=None):
        now = int(time.time())
        token_claims = {
            "sub": sub,
            "iss": TEST_ISSUER,
            "exp": now - 3600 if expired else now + 3600,
            "iat": now - 7200 if expired else now,
            "sid": "sess_test123",
            **(claims or {}),
        }
        return jwt.encode(
            token_claims,
            private_pem or rsa_keypair["private_pem"],
            algorithm="RS256",
            headers={"kid": "test-key"},
        )

    return _create


@pytest.fixture
def auth_headers(create_test_token):
    """Factory: Clerk user id -> Authorization header."""
    def _headers(sub):
        return {"Authorization": f"Bearer {create_test_token(sub=sub)}"}

    return _headers


# =============================================================================
# Application
# =============================================================================

@pytest.fixture
def settings(webhook_secret):
    return Settings(
        database_url=None,
        clerk_webhook_secret=webhook_secret,
        clerk_issuer_url=TEST_ISSUER,
    )


@pytest.fixture
def app(settings, session_factory, jwt_verifier):
    return create_app(settings=settings, session_factory=session_factory, jwt_verifier=jwt_verifier)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


# =============================================================================
# Sample Clerk payloads
# =============================================================================

@pytest.fixture
def sample_user_data():
    """Sample Clerk user data."""
    return {
        "id": "user_clerk_123",
        "object": "user",
        "email_addresses": [
            {
                "id": "email_1",
                "email_address": "test@example.com",
                "verification": {"status": "verified"},
            }
        ],
        "primary_email_address_id": "email_1",
        "first_name": "John",
        "last_name": "Doe",
        "username": "jdoe",
        "image_url": "https://example.com/avatar.jpg",
        "created_at": 1700000000000,
        "updated_at": 1700000000000,
        "public_metadata": {"plan": "free"},
        "private_metadata": {},
    }


@pytest.fixture
def sample_org_data():
    """Sample Clerk organization data."""
    return {
        "id": "org_clerk_123",
        "object": "organization",
        "name": "Test Organization",
        "slug": "test-org",
        "created_by": "user_clerk_123",
        "created_at": 1700000000000,
        "updated_at": 1700000000000,
        "public_metadata": {"tier": "growth"},
    }


@pytest.fixture
def sample_membership_data(sample_user_data, sample_org_data):
    """Sample Clerk membership data."""
    return {
        "id": "orgmem_123",
        "object": "organization_membership",
        "organization": {
            "id": sample_org_data["id"],
            "name": sample_org_data["name"],
            "slug": sample_org_data["slug"],
        },
        "public_user_data": {
            "user_id": sample_user_data["id"],
            "identifier": "test@example.com",
            "first_name": sample_user_data["first_name"],
            "last_name": sample_user_data["last_name"],
        },
        "role": "org:admin",
        "created_at": 1700000000000,
        "updated_at": 1700000000000,
    }


@pytest.fixture
def sample_invitation_data(sample_org_data):
    return {
        "id": "orginv_123",
        "object": "organization_invitation",
        "email_address": "invitee@example.com",
        "organization_id": sample_org_data["id"],
        "role": "org:member",
        "status": "pending",
        "created_at": 1700000000000,
        "updated_at": 1700000000000,
    }


@pytest.fixture
def sample_session_data(sample_user_data):
    return {
        "id": "sess_123",
        "object": "session",
        "user_id": sample_user_data["id"],
        "client_id": "client_123",
        "status": "active",
        "created_at": 1700000000000,
        "last_active_at": 1700000100000,
    }


@pytest.fixture
def sample_permission_data():
    return {
        "id": "perm_123",
        "object": "permission",
        "key": "org:reports:read",
        "name": "Read reports",
        "type": "user",
        "description": "View reports",
        "created_at": 1700000000000,
        "updated_at": 1700000000000,
    }


@pytest.fixture
def sample_role_data(sample_permission_data):
    return {
        "id": "role_123",
        "object": "role",
        "key": "org:analyst",
        "name": "Analyst",
        "description": "Reads reports",
        "is_creator_eligible": False,
        "permissions": [sample_permission_data],
        "created_at": 1700000000000,
        "updated_at": 1700000000000,
    }
