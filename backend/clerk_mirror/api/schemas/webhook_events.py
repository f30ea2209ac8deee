"""
Pydantic schemas for the webhook audit log API.
"""

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class WebhookEventResponse(BaseModel):
    """One audited webhook delivery."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    event_type: str = Field(..., description="Clerk event type")
    external_event_id: Optional[str] = Field(None, description="Svix message ID")
    object_id: Optional[str] = None
    object_type: Optional[str] = None
    timestamp: str
    status: str = Field(..., description="processing, processed, failed or ignored")
    error_message: Optional[str] = None
    payload: Optional[Any] = None


class WebhookEventListResponse(BaseModel):
    events: List[WebhookEventResponse]
    count: int
