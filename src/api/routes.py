"""API endpoints: health, inbound webhook, guarded outbound fetch."""

import json
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.util import get_remote_address

from src import config
from src.api.models import FetchRequest, HealthStatus
from src.api.responses import handle_outcome, success_response
from src.exceptions import (
    BadRequestError,
    InternalServerError,
    UnauthorizedError,
    ValidationError,
)
from src.http.client import RequestClient
from src.utils.crypto import timing_safe_equal

logger = logging.getLogger(__name__)
router = APIRouter()

limiter = Limiter(key_func=get_remote_address)

WEBHOOK_SECRET_HEADER = "X-Webhook-Secret-Token"


@router.get("/health")
async def health() -> HealthStatus:
    return HealthStatus(
        timestamp=datetime.now(timezone.utc).isoformat(),
        version=config.VERSION,
    )


@router.post("/webhook")
async def webhook(request: Request) -> JSONResponse:
    """Authenticate and decode an inbound webhook delivery.

    Size is checked before the secret so oversized bodies are never read;
    the secret is compared in constant time before the body is parsed.
    """
    content_length = request.headers.get("content-length", "")
    if content_length.isdigit() and int(content_length) > config.MAX_REQUEST_SIZE:
        logger.warning("webhook_too_large", extra={"content_length": content_length})
        raise BadRequestError("Request body too large")

    if not config.WEBHOOK_SECRET:
        logger.error("webhook_secret_not_configured")
        raise InternalServerError("Server configuration error")

    secret = request.headers.get(WEBHOOK_SECRET_HEADER, "")
    if not timing_safe_equal(secret, config.WEBHOOK_SECRET):
        logger.warning("webhook_secret_invalid")
        raise UnauthorizedError("Invalid webhook secret")

    raw = await request.body()
    if len(raw) > config.MAX_REQUEST_SIZE:
        raise BadRequestError("Request body too large")

    try:
        payload = json.loads(raw)
    except ValueError:
        raise ValidationError("Invalid JSON body")
    if not isinstance(payload, dict):
        raise ValidationError("Invalid webhook payload")

    return success_response(
        {"received": True, "update_id": payload.get("update_id")},
        message="Webhook received",
    )


@router.post("/fetch")
@limiter.limit(config.PROXY_RATE_LIMIT)
async def fetch(request: Request, payload: FetchRequest) -> JSONResponse:
    """Run one outbound request through the guarded client."""
    async with RequestClient(default_headers={"User-Agent": config.USER_AGENT}) as client:
        if payload.json_body is not None:
            outcome = await client.post_json(
                payload.url, payload.json_body, payload.headers, method=payload.method
            )
        elif payload.form is not None:
            outcome = await client.submit_form(
                payload.url, payload.form, payload.headers, method=payload.method
            )
        else:
            outcome = await client.execute(
                payload.url,
                payload.method,
                override_headers=payload.headers,
                body=payload.body,
            )
    return handle_outcome(outcome)
