"""
Clerk webhook endpoint for identity synchronization.

SECURITY: All webhooks MUST verify the Svix signature before processing.
Clerk uses Svix for webhook delivery and signature verification; the
signature check runs before any database access.

Documentation: https://clerk.com/docs/webhooks

Responses:
- 200: event processed (including recoverable "not found" skips)
- 202: event type not handled, acknowledged so Clerk stops retrying
- 400: missing Svix headers, missing secret, bad signature or unparseable body
- 500: malformed payload or handler failure, body {error, details, eventType}
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Header, Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.orm import Session
from svix.webhooks import Webhook, WebhookVerificationError

from clerk_mirror.api.schemas.clerk_events import ClerkWebhookEvent
from clerk_mirror.config.settings import Settings
from clerk_mirror.database.session import get_db_session
from clerk_mirror.services.clerk_webhook_handler import ClerkWebhookHandler

logger = logging.getLogger(__name__)

router = APIRouter(tags=["webhooks"])


class WebhookVerificationFailed(Exception):
    """Raised when a webhook delivery cannot be authenticated or parsed."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


def verify_clerk_webhook(
    payload: bytes,
    svix_id: Optional[str],
    svix_timestamp: Optional[str],
    svix_signature: Optional[str],
    webhook_secret: Optional[str],
) -> Dict[str, Any]:
    """
    Verify a Clerk webhook signature using Svix and return the parsed body.

    Clerk uses Svix for webhook delivery. The signature is verified using:
    - svix-id: Unique message identifier
    - svix-timestamp: Unix timestamp of the message (checked against Svix's tolerance)
    - svix-signature: Signature(s) to verify

    Args:
        payload: Raw request body bytes
        svix_id: Svix-Id header
        svix_timestamp: Svix-Timestamp header
        svix_signature: Svix-Signature header
        webhook_secret: Clerk webhook signing secret (whsec_...)

    Returns:
        The verified event as a dict

    Raises:
        WebhookVerificationFailed: On any missing input, bad signature or non-JSON body
    """
    if not svix_id or not svix_timestamp or not svix_signature:
        raise WebhookVerificationFailed("Missing required Svix headers")

    if not webhook_secret:
        logger.error("CLERK_WEBHOOK_SECRET is not configured")
        raise WebhookVerificationFailed("Webhook secret not configured")

    try:
        wh = Webhook(webhook_secret)
        event = wh.verify(
            payload,
            {
                "svix-id": svix_id,
                "svix-timestamp": svix_timestamp,
                "svix-signature": svix_signature,
            },
        )
    except WebhookVerificationError as e:
        raise WebhookVerificationFailed(f"Invalid webhook signature: {e}") from e
    except ValueError as e:
        # Malformed secret or a signed body that is not JSON
        raise WebhookVerificationFailed(f"Invalid webhook payload: {e}") from e

    if not isinstance(event, dict):
        raise WebhookVerificationFailed("Invalid webhook payload: expected a JSON object")
    return event


def _bad_request(message: str) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": message})


@router.post("/clerk-webhook")
async def handle_clerk_webhook(
    request: Request,
    svix_id: Optional[str] = Header(None, alias="svix-id"),
    svix_timestamp: Optional[str] = Header(None, alias="svix-timestamp"),
    svix_signature: Optional[str] = Header(None, alias="svix-signature"),
    db: Session = Depends(get_db_session),
):
    """
    Handle incoming Clerk webhooks.

    Security:
    - Verifies Svix signature using CLERK_WEBHOOK_SECRET
    - Rejects requests with invalid or missing signatures
    - Does not require JWT authentication (webhooks are server-to-server)
    """
    settings: Settings = request.app.state.settings
    body = await request.body()

    try:
        raw_event = verify_clerk_webhook(
            payload=body,
            svix_id=svix_id,
            svix_timestamp=svix_timestamp,
            svix_signature=svix_signature,
            webhook_secret=settings.clerk_webhook_secret,
        )
    except WebhookVerificationFailed as e:
        logger.warning(
            "Clerk webhook verification failed",
            extra={
                "svix_id": svix_id,
                "has_timestamp": bool(svix_timestamp),
                "has_signature": bool(svix_signature),
                "error": e.message,
            },
        )
        return _bad_request(e.message)

    try:
        event = ClerkWebhookEvent.model_validate(raw_event)
    except ValidationError:
        logger.warning("Clerk webhook envelope missing event type", extra={"svix_id": svix_id})
        return _bad_request("Invalid webhook payload")

    logger.info(
        "Received Clerk webhook",
        extra={"event_type": event.type, "svix_id": svix_id},
    )

    outcome = ClerkWebhookHandler(db).handle_event(event, svix_id=svix_id)
    return JSONResponse(status_code=outcome.status_code, content=outcome.body)


@router.get("/clerk-webhook/health")
async def clerk_webhook_health(request: Request):
    """
    Health check for the Clerk webhook endpoint.

    Does not require authentication.
    """
    settings: Settings = request.app.state.settings
    return {
        "status": "healthy",
        "webhook_secret_configured": settings.webhook_configured,
    }
