"""
Pydantic models for Clerk webhook payloads.

Every recognised event type decodes its `data` object into exactly one
payload model before any write is attempted. Models declare only the
fields the mirror uses; unknown fields are kept (extra="allow") so the raw
payload stays available for auditing.

Usage:
    from clerk_mirror.api.schemas.clerk_events import decode_event_payload

    payload = decode_event_payload("user.created", event["data"])
"""

from typing import Annotated, Any, Dict, List, Optional, Type, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictStr,
    StringConstraints,
    ValidationError,
    model_validator,
)

# Clerk object IDs; an empty string would collide with "no id" lookups
ClerkId = Annotated[str, StringConstraints(strict=True, min_length=1)]


class PayloadValidationError(ValueError):
    """Raised when a recognised event carries a malformed payload."""

    def __init__(self, event_type: str, message: str, errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.event_type = event_type
        self.message = message
        self.errors = errors or []


class ClerkModel(BaseModel):
    """Base for Clerk payload models."""

    model_config = ConfigDict(extra="allow")


# =============================================================================
# Envelope
# =============================================================================


class HttpRequestInfo(ClerkModel):
    """Request metadata Clerk attaches to some events."""

    client_ip: Optional[str] = None
    user_agent: Optional[str] = None


class EventAttributes(ClerkModel):
    http_request: Optional[HttpRequestInfo] = None


class ClerkWebhookEvent(ClerkModel):
    """Envelope of a verified Clerk webhook: {type, data} plus delivery metadata."""

    type: StrictStr
    data: Any = None
    object: Optional[str] = None
    timestamp: Optional[Any] = None
    event_attributes: Optional[EventAttributes] = None

    @property
    def object_id(self) -> Optional[str]:
        if isinstance(self.data, dict):
            value = self.data.get("id")
            return value if isinstance(value, str) else None
        return None

    @property
    def object_type(self) -> str:
        return self.type.split(".", 1)[0]

    @property
    def client_ip(self) -> Optional[str]:
        request = self.event_attributes.http_request if self.event_attributes else None
        return request.client_ip if request else None

    @property
    def user_agent(self) -> Optional[str]:
        request = self.event_attributes.http_request if self.event_attributes else None
        return request.user_agent if request else None


# =============================================================================
# Shared nested models
# =============================================================================


class EmailAddress(ClerkModel):
    id: Optional[str] = None
    email_address: StrictStr
    verification: Optional[Dict[str, Any]] = None

    @property
    def is_verified(self) -> bool:
        return bool(self.verification) and self.verification.get("status") == "verified"


class OrganizationRef(ClerkModel):
    """Organization object embedded in membership and invitation payloads."""

    id: ClerkId
    name: Optional[str] = None
    slug: Optional[str] = None
    image_url: Optional[str] = None
    logo_url: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Any = None
    updated_at: Any = None


class PublicUserData(ClerkModel):
    """User fragment embedded in membership and invitation payloads."""

    user_id: Optional[StrictStr] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    identifier: Optional[str] = None
    image_url: Optional[str] = None
    profile_image_url: Optional[str] = None


class MemberUserData(PublicUserData):
    user_id: ClerkId


# =============================================================================
# Per-category payloads
# =============================================================================


class DeletedObjectPayload(ClerkModel):
    """Payload of a *.deleted event; only the id is guaranteed."""

    id: ClerkId
    deleted: Optional[bool] = None
    object: Optional[str] = None


class UserPayload(ClerkModel):
    """user.created / user.updated"""

    id: ClerkId
    first_name: Optional[StrictStr] = None
    last_name: Optional[StrictStr] = None
    username: Optional[str] = None
    email_addresses: Optional[List[EmailAddress]] = None
    primary_email_address_id: Optional[str] = None
    image_url: Optional[str] = None
    profile_image_url: Optional[str] = None
    created_at: Any = None
    updated_at: Any = None
    last_sign_in_at: Any = None
    password_enabled: Optional[bool] = None
    two_factor_enabled: Optional[bool] = None
    external_id: Optional[str] = None
    public_metadata: Optional[Dict[str, Any]] = None
    private_metadata: Optional[Dict[str, Any]] = None

    @property
    def primary_email(self) -> Optional[EmailAddress]:
        """The primary email address, or the first one when no primary is marked."""
        addresses = self.email_addresses or []
        for address in addresses:
            if address.id and address.id == self.primary_email_address_id:
                return address
        return addresses[0] if addresses else None


class SessionUser(ClerkModel):
    id: ClerkId
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    username: Optional[str] = None
    email_addresses: Optional[List[EmailAddress]] = None
    primary_email_address_id: Optional[str] = None
    image_url: Optional[str] = None


class SessionActivity(ClerkModel):
    """Clerk's latest_activity block on a session."""

    browser_name: Optional[str] = None
    browser_version: Optional[str] = None
    device_type: Optional[str] = None
    ip_address: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    is_mobile: Optional[bool] = None


class SessionDevice(ClerkModel):
    type: Optional[str] = None
    browser_name: Optional[str] = None


class SessionPayload(ClerkModel):
    """
    session.* events.

    The owning user may arrive as a nested object, a flat user_id, or not at
    all (removal events).
    """

    id: ClerkId
    status: Optional[StrictStr] = None
    user: Optional[SessionUser] = None
    user_id: Optional[ClerkId] = None
    client_id: Optional[str] = None
    created_at: Any = None
    updated_at: Any = None
    last_active_at: Any = None
    latest_activity: Optional[SessionActivity] = None
    device: Optional[SessionDevice] = None
    ip_address: Optional[str] = None

    @property
    def user_external_id(self) -> Optional[str]:
        if self.user is not None:
            return self.user.id
        return self.user_id


class OrganizationPayload(ClerkModel):
    """organization.created / organization.updated"""

    id: ClerkId
    name: StrictStr
    slug: Optional[str] = None
    image_url: Optional[str] = None
    logo_url: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Any = None
    updated_at: Any = None
    public_metadata: Optional[Dict[str, Any]] = None
    private_metadata: Optional[Dict[str, Any]] = None


class InvitationPayload(ClerkModel):
    """organizationInvitation.created / .accepted / .revoked"""

    id: ClerkId
    email_address: StrictStr
    role: StrictStr
    organization_id: Optional[StrictStr] = None
    organization: Optional[OrganizationRef] = None
    status: Optional[str] = None
    created_at: Any = None
    updated_at: Any = None
    public_metadata: Optional[Dict[str, Any]] = None
    private_metadata: Optional[Dict[str, Any]] = None
    public_user_data: Optional[PublicUserData] = None

    @model_validator(mode="after")
    def _require_organization(self) -> "InvitationPayload":
        if self.organization is None and not self.organization_id:
            raise ValueError("organization_id or organization.id is required")
        return self

    @property
    def organization_external_id(self) -> str:
        if self.organization is not None:
            return self.organization.id
        return self.organization_id


class MembershipPayload(ClerkModel):
    """organizationMembership.created / .updated"""

    id: ClerkId
    role: StrictStr
    organization: OrganizationRef
    public_user_data: MemberUserData
    created_at: Any = None
    updated_at: Any = None
    public_metadata: Optional[Dict[str, Any]] = None
    private_metadata: Optional[Dict[str, Any]] = None


class PermissionPayload(ClerkModel):
    """permission.created / permission.updated"""

    id: ClerkId
    key: StrictStr
    name: StrictStr
    type: StrictStr
    description: Optional[str] = None
    created_at: Any = None
    updated_at: Any = None
    public_metadata: Optional[Dict[str, Any]] = None
    private_metadata: Optional[Dict[str, Any]] = None


class EmbeddedPermission(ClerkModel):
    """Permission object embedded in a role payload; fields are best effort."""

    id: Optional[StrictStr] = None
    key: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    type: Optional[str] = None
    created_at: Any = None
    updated_at: Any = None


class RolePayload(ClerkModel):
    """role.created / role.updated"""

    id: ClerkId
    key: StrictStr
    name: StrictStr
    description: Optional[str] = None
    is_creator_eligible: Optional[StrictBool] = None
    permissions: Optional[List[Union[StrictStr, EmbeddedPermission]]] = Field(default=None)
    created_at: Any = None
    updated_at: Any = None
    public_metadata: Optional[Dict[str, Any]] = None
    private_metadata: Optional[Dict[str, Any]] = None


ClerkPayload = Union[
    DeletedObjectPayload,
    UserPayload,
    SessionPayload,
    OrganizationPayload,
    InvitationPayload,
    MembershipPayload,
    PermissionPayload,
    RolePayload,
]

SESSION_EVENT_PREFIX = "session."

PAYLOAD_MODELS: Dict[str, Type[ClerkModel]] = {
    "user.created": UserPayload,
    "user.updated": UserPayload,
    "user.deleted": DeletedObjectPayload,
    "organization.created": OrganizationPayload,
    "organization.updated": OrganizationPayload,
    "organization.deleted": DeletedObjectPayload,
    "organizationInvitation.created": InvitationPayload,
    "organizationInvitation.accepted": InvitationPayload,
    "organizationInvitation.revoked": InvitationPayload,
    "organizationMembership.created": MembershipPayload,
    "organizationMembership.updated": MembershipPayload,
    "organizationMembership.deleted": DeletedObjectPayload,
    "permission.created": PermissionPayload,
    "permission.updated": PermissionPayload,
    "permission.deleted": DeletedObjectPayload,
    "role.created": RolePayload,
    "role.updated": RolePayload,
    "role.deleted": DeletedObjectPayload,
}


def payload_model_for(event_type: str) -> Optional[Type[ClerkModel]]:
    """Return the payload model for an event type, or None if it is not handled."""
    if event_type.startswith(SESSION_EVENT_PREFIX):
        return SessionPayload
    return PAYLOAD_MODELS.get(event_type)


def decode_event_payload(event_type: str, data: Any) -> ClerkPayload:
    """
    Decode an event's data object into its typed payload.

    Args:
        event_type: Clerk event type string (e.g. "user.created")
        data: The event's data object as received

    Returns:
        The decoded payload model instance

    Raises:
        PayloadValidationError: If the type is not handled or the data is malformed
    """
    model = payload_model_for(event_type)
    if model is None:
        raise PayloadValidationError(event_type, f"No payload shape for event type {event_type}")

    try:
        return model.model_validate(data)
    except ValidationError as e:
        errors = e.errors(include_url=False, include_context=False, include_input=False)
        fields = ", ".join(
            ".".join(str(part) for part in error["loc"]) or "data" for error in errors
        )
        raise PayloadValidationError(
            event_type,
            f"Invalid {event_type.split('.', 1)[0]} payload structure: {fields}",
            errors,
        ) from e
