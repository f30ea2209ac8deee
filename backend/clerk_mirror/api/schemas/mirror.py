"""
Pydantic schemas for the mirror API.

Response models read straight from ORM rows (from_attributes=True).
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class UserResponse(BaseModel):
    """A mirrored Clerk user."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    external_id: str = Field(..., description="Clerk user ID")
    name: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    username: Optional[str] = None
    image_url: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    last_sign_in_at: Optional[str] = None
    email_verified: Optional[bool] = None
    two_factor_enabled: Optional[bool] = None
    is_super_admin: Optional[bool] = None
    is_super_user: Optional[bool] = None
    is_placeholder: bool = False
    public_metadata: Optional[Dict[str, Any]] = None


class SystemRoleUpdateRequest(BaseModel):
    """Only the flags that are provided are changed."""

    is_super_admin: Optional[bool] = None
    is_super_user: Optional[bool] = None


class SystemRoleUpdateResponse(BaseModel):
    success: bool
    reason: Optional[str] = None
    system_role: Optional[str] = None


class OrganizationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    external_id: str = Field(..., description="Clerk organization ID")
    name: str
    slug: Optional[str] = None
    image_url: Optional[str] = None
    logo_url: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    is_placeholder: bool = False
    public_metadata: Optional[Dict[str, Any]] = None


class OrganizationRoleResponse(BaseModel):
    """The caller's standing in an organization."""

    is_member: bool
    role: Optional[str] = None


class OrganizationUpdateRequest(BaseModel):
    """Only provided fields are changed."""

    name: Optional[str] = Field(None, min_length=1)


class MemberRoleUpdateRequest(BaseModel):
    role: str = Field(..., min_length=1, description="Clerk role key, e.g. org:admin")


class MembershipResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    organization_id: str
    role: str
    external_id: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    public_user_data: Optional[Dict[str, Any]] = None


class InvitationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    external_id: str
    organization_id: str
    email: str
    status: str
    role: str
    created_at: str
    updated_at: Optional[str] = None
    created_by_user_id: Optional[str] = None


class SessionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    external_id: str
    user_id: str
    status: str
    created_at: str
    last_active_at: Optional[str] = None
    ended_at: Optional[str] = None
    client_id: Optional[str] = None
    device_type: Optional[str] = None
    browser_name: Optional[str] = None
    ip_address: Optional[str] = None


class ActiveSessionCountResponse(BaseModel):
    active_sessions: int


class PermissionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    external_id: str
    key: str
    name: str
    description: Optional[str] = None
    type: str
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class RoleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    external_id: str
    key: str
    name: str
    description: Optional[str] = None
    is_creator_eligible: Optional[bool] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    permission_ids: List[str] = Field(default_factory=list)
    permission_external_ids: List[str] = Field(default_factory=list)


class RoleWithPermissionsResponse(RoleResponse):
    permissions: List[PermissionResponse] = Field(default_factory=list)
