"""
Webhook audit log API.

Read-only views over the webhook_events table for operators.

SECURITY:
- Requires authentication
- Restricted to system admins (super admin or super user)
"""

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from clerk_mirror.api.schemas.webhook_events import (
    WebhookEventListResponse,
    WebhookEventResponse,
)
from clerk_mirror.auth.dependencies import require_system_admin
from clerk_mirror.database.session import get_db_session
from clerk_mirror.models.user import User
from clerk_mirror.services.webhook_event_log import (
    DEFAULT_FILTERED_LIMIT,
    DEFAULT_RECENT_LIMIT,
    MAX_LIMIT,
    WebhookEventLog,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/webhook-events", tags=["webhook-events"])


def _to_response(events) -> WebhookEventListResponse:
    return WebhookEventListResponse(
        events=[WebhookEventResponse.model_validate(e) for e in events],
        count=len(events),
    )


@router.get("/recent", response_model=WebhookEventListResponse)
async def recent_webhook_events(
    limit: int = Query(DEFAULT_RECENT_LIMIT, ge=1, le=MAX_LIMIT),
    admin: User = Depends(require_system_admin),
    db: Session = Depends(get_db_session),
):
    """Most recent webhook deliveries, newest first."""
    return _to_response(WebhookEventLog(db).recent(limit=limit))


@router.get("/by-object/{object_id}", response_model=WebhookEventListResponse)
async def webhook_events_for_object(
    object_id: str,
    limit: int = Query(DEFAULT_FILTERED_LIMIT, ge=1, le=MAX_LIMIT),
    admin: User = Depends(require_system_admin),
    db: Session = Depends(get_db_session),
):
    """Deliveries that touched one Clerk object (user_..., org_..., sess_...)."""
    return _to_response(WebhookEventLog(db).for_object(object_id, limit=limit))


@router.get("/by-type/{event_type}", response_model=WebhookEventListResponse)
async def webhook_events_by_type(
    event_type: str,
    limit: int = Query(DEFAULT_FILTERED_LIMIT, ge=1, le=MAX_LIMIT),
    admin: User = Depends(require_system_admin),
    db: Session = Depends(get_db_session),
):
    return _to_response(WebhookEventLog(db).by_type(event_type, limit=limit))
