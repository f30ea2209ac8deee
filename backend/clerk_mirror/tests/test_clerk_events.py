"""
Tests for Clerk payload decoding.

Tests cover:
- Per-type payload models and the session.* prefix fallback
- Field-level validation messages
- Envelope helpers (object id, client IP, user agent)
- Property: payloads decode whenever required fields are present,
  whatever subset of optional fields is sent
"""

import pytest
from hypothesis import HealthCheck, given, settings, strategies as st

from clerk_mirror.api.schemas.clerk_events import (
    ClerkWebhookEvent,
    DeletedObjectPayload,
    EmbeddedPermission,
    InvitationPayload,
    MembershipPayload,
    PayloadValidationError,
    RolePayload,
    SessionPayload,
    UserPayload,
    decode_event_payload,
    payload_model_for,
)
from clerk_mirror.services.clerk_sync import UserSyncService


class TestPayloadModelLookup:
    """Tests for payload_model_for."""

    def test_known_types(self):
        """Each recognised type maps to its payload model."""
        assert payload_model_for("user.created") is UserPayload
        assert payload_model_for("organizationMembership.updated") is MembershipPayload
        assert payload_model_for("role.deleted") is DeletedObjectPayload

    def test_any_session_type_uses_session_payload(self):
        """Unlisted session.* types share the session model."""
        assert payload_model_for("session.created") is SessionPayload
        assert payload_model_for("session.touched") is SessionPayload

    def test_unknown_type(self):
        """Types the mirror does not handle have no model."""
        assert payload_model_for("email.created") is None


class TestDecodeEventPayload:
    """Tests for decode_event_payload."""

    def test_decodes_user(self, sample_user_data):
        """A full user payload decodes with its primary email resolved."""
        payload = decode_event_payload("user.created", sample_user_data)

        assert isinstance(payload, UserPayload)
        assert payload.primary_email.email_address == "test@example.com"
        assert payload.primary_email.is_verified is True

    def test_extra_fields_are_kept(self, sample_user_data):
        """Unknown fields survive decoding."""
        data = {**sample_user_data, "banned": False}

        payload = decode_event_payload("user.updated", data)

        assert payload.model_extra["banned"] is False

    def test_missing_id_is_rejected(self, sample_user_data):
        """The id is required for every payload."""
        data = {k: v for k, v in sample_user_data.items() if k != "id"}

        with pytest.raises(PayloadValidationError) as exc_info:
            decode_event_payload("user.created", data)

        assert exc_info.value.event_type == "user.created"
        assert exc_info.value.message == "Invalid user payload structure: id"

    @pytest.mark.parametrize("event_type", [
        "user.created",
        "user.deleted",
        "organization.created",
        "organizationInvitation.created",
        "organizationMembership.created",
        "permission.created",
        "role.created",
        "session.created",
    ])
    def test_empty_id_is_rejected(self, event_type):
        """An empty Clerk id is not an id."""
        data = {
            "id": "",
            "name": "n",
            "key": "k",
            "type": "user",
            "role": "org:member",
            "email_address": "a@example.com",
            "organization_id": "org_1",
            "organization": {"id": "org_1"},
            "public_user_data": {"user_id": "user_1"},
        }

        with pytest.raises(PayloadValidationError) as exc_info:
            decode_event_payload(event_type, data)

        assert exc_info.value.message.endswith(": id")

    def test_empty_nested_ids_are_rejected(self, sample_membership_data, sample_session_data):
        sample_membership_data["organization"]["id"] = ""
        sample_session_data["user_id"] = ""

        with pytest.raises(PayloadValidationError):
            decode_event_payload("organizationMembership.created", sample_membership_data)
        with pytest.raises(PayloadValidationError):
            decode_event_payload("session.created", sample_session_data)

    def test_wrong_type_is_rejected(self, sample_user_data):
        """Strict string fields do not coerce other types."""
        data = {**sample_user_data, "first_name": 42}

        with pytest.raises(PayloadValidationError) as exc_info:
            decode_event_payload("user.created", data)

        assert "first_name" in exc_info.value.message

    def test_non_object_data_is_rejected(self):
        """data must be an object."""
        with pytest.raises(PayloadValidationError):
            decode_event_payload("organization.created", "org_1")

    def test_unknown_type_is_rejected(self):
        """Decoding an unhandled type is an error."""
        with pytest.raises(PayloadValidationError):
            decode_event_payload("email.created", {"id": "x"})

    def test_membership_requires_user_id(self, sample_membership_data):
        """Membership payloads must name the member."""
        sample_membership_data["public_user_data"].pop("user_id")

        with pytest.raises(PayloadValidationError) as exc_info:
            decode_event_payload("organizationMembership.created", sample_membership_data)

        assert "public_user_data.user_id" in exc_info.value.message

    def test_invitation_accepts_embedded_organization(self, sample_invitation_data):
        """An invitation may carry its organization as an object instead of an id."""
        data = {k: v for k, v in sample_invitation_data.items() if k != "organization_id"}
        data["organization"] = {"id": "org_embedded"}

        payload = decode_event_payload("organizationInvitation.created", data)

        assert isinstance(payload, InvitationPayload)
        assert payload.organization_external_id == "org_embedded"

    def test_invitation_requires_some_organization(self, sample_invitation_data):
        """Without organization_id or organization the invitation is malformed."""
        data = {k: v for k, v in sample_invitation_data.items() if k != "organization_id"}

        with pytest.raises(PayloadValidationError):
            decode_event_payload("organizationInvitation.created", data)

    def test_session_user_can_be_nested_or_flat(self, sample_session_data):
        """Session payloads resolve the owner from user.id or user_id."""
        flat = decode_event_payload("session.created", sample_session_data)

        nested_data = {k: v for k, v in sample_session_data.items() if k != "user_id"}
        nested_data["user"] = {"id": "user_nested"}
        nested = decode_event_payload("session.created", nested_data)

        assert flat.user_external_id == "user_clerk_123"
        assert nested.user_external_id == "user_nested"

    def test_role_permissions_mix_strings_and_objects(self, sample_role_data):
        """Role permission entries may be references or objects."""
        sample_role_data["permissions"] = ["perm_ref", {"id": "perm_obj", "key": "k"}]

        payload = decode_event_payload("role.created", sample_role_data)

        assert isinstance(payload, RolePayload)
        assert payload.permissions[0] == "perm_ref"
        assert isinstance(payload.permissions[1], EmbeddedPermission)

    def test_deleted_payload_only_needs_id(self):
        """Deletion events decode from the id alone."""
        payload = decode_event_payload("user.deleted", {"id": "user_1", "deleted": True})

        assert payload.id == "user_1"


class TestEnvelope:
    """Tests for ClerkWebhookEvent helpers."""

    def test_object_id_and_type(self):
        event = ClerkWebhookEvent.model_validate({"type": "organization.created", "data": {"id": "org_1"}})

        assert event.object_id == "org_1"
        assert event.object_type == "organization"

    def test_object_id_missing_for_non_dict_data(self):
        """Non-object data has no object id."""
        event = ClerkWebhookEvent.model_validate({"type": "user.created", "data": ["x"]})

        assert event.object_id is None

    def test_request_metadata(self):
        """Client IP and user agent come from event_attributes.http_request."""
        event = ClerkWebhookEvent.model_validate({
            "type": "session.created",
            "data": {"id": "sess_1"},
            "event_attributes": {
                "http_request": {"client_ip": "10.0.0.1", "user_agent": "Mozilla/5.0"},
            },
        })

        assert event.client_ip == "10.0.0.1"
        assert event.user_agent == "Mozilla/5.0"

    def test_request_metadata_absent(self):
        event = ClerkWebhookEvent.model_validate({"type": "user.created", "data": {}})

        assert event.client_ip is None
        assert event.user_agent is None


# =============================================================================
# Property-based tests
# =============================================================================

REQUIRED_FIELDS_BY_TYPE = {
    "user.created": ["id"],
    "organization.created": ["id", "name"],
    "organizationInvitation.created": ["id", "email_address", "role", "organization_id"],
    "organizationMembership.created": ["id", "role", "organization", "public_user_data"],
    "permission.created": ["id", "key", "name", "type"],
    "role.created": ["id", "key", "name"],
    "session.created": ["id"],
}


@pytest.fixture
def payloads_by_type(
    sample_user_data,
    sample_org_data,
    sample_invitation_data,
    sample_membership_data,
    sample_permission_data,
    sample_role_data,
    sample_session_data,
):
    return {
        "user.created": sample_user_data,
        "organization.created": sample_org_data,
        "organizationInvitation.created": sample_invitation_data,
        "organizationMembership.created": sample_membership_data,
        "permission.created": sample_permission_data,
        "role.created": sample_role_data,
        "session.created": sample_session_data,
    }


class TestRequiredFieldProperty:
    """Decoding depends only on the presence of required fields."""

    @settings(suppress_health_check=[HealthCheck.function_scoped_fixture], max_examples=60)
    @given(event_type=st.sampled_from(sorted(REQUIRED_FIELDS_BY_TYPE)), data=st.data())
    def test_optional_fields_never_matter(self, payloads_by_type, event_type, data):
        """Any subset of optional fields decodes as long as required ones are present."""
        full = payloads_by_type[event_type]
        required = REQUIRED_FIELDS_BY_TYPE[event_type]
        optional = sorted(k for k in full if k not in required)
        kept = data.draw(st.sets(st.sampled_from(optional)) if optional else st.just(set()))

        payload = {k: v for k, v in full.items() if k in required or k in kept}

        decoded = decode_event_payload(event_type, payload)
        assert decoded.id == full["id"]

    @settings(suppress_health_check=[HealthCheck.function_scoped_fixture], max_examples=60)
    @given(event_type=st.sampled_from(sorted(REQUIRED_FIELDS_BY_TYPE)), data=st.data())
    def test_missing_required_field_always_fails(self, payloads_by_type, event_type, data):
        """Dropping any required field is a validation failure."""
        full = payloads_by_type[event_type]
        dropped = data.draw(st.sampled_from(REQUIRED_FIELDS_BY_TYPE[event_type]))

        payload = {k: v for k, v in full.items() if k != dropped}

        with pytest.raises(PayloadValidationError):
            decode_event_payload(event_type, payload)

    @given(
        first_name=st.one_of(st.none(), st.text(max_size=10)),
        last_name=st.one_of(st.none(), st.text(max_size=10)),
        username=st.one_of(st.none(), st.text(max_size=10)),
        user_id=st.text(alphabet="abcdefghijklmnopqrstuvwxyz0123456789", min_size=1, max_size=12),
    )
    def test_user_display_name_never_empty(self, first_name, last_name, username, user_id):
        """A decoded user always yields a non-empty name, falling back to the Clerk id."""
        payload = decode_event_payload("user.created", {
            "id": f"user_{user_id}",
            "first_name": first_name,
            "last_name": last_name,
            "username": username,
        })

        fields = UserSyncService(session=None).build_fields(payload)

        assert fields["name"]
        assert fields["external_id"] == f"user_{user_id}"
