"""Public ingestion endpoints: token exchange, event tracking, webhooks.

None of these use the dashboard session; each authenticates with its own
credential (Basic key:secret, Bearer ingestion token, or HMAC signature).
"""

from __future__ import annotations

import json
import logging

from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import JSONResponse

from eventgate.config import settings
from eventgate.dependencies import get_db, get_ingestion_gate
from eventgate.models.ingestion import MessageResponse, TokenExchangeResponse
from eventgate.services import api_key as api_key_service
from eventgate.services import webhook as webhook_service
from eventgate.services.ingestion import IngestionGate

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/token-exchange", response_model=TokenExchangeResponse)
async def token_exchange(
    authorization: str = Header(None),
    conn=Depends(get_db),
):
    """Exchange ``Authorization: Basic base64(key:secret)`` for a short-lived token."""
    public_key, secret = api_key_service.parse_basic_credentials(authorization)
    result = await api_key_service.exchange_credentials(conn, public_key, secret)
    return TokenExchangeResponse(**result)


@router.post("/track", response_model=MessageResponse, status_code=202)
async def track_event(
    request: Request,
    gate: IngestionGate = Depends(get_ingestion_gate),
    conn=Depends(get_db),
):
    """Record one event authorized by a Bearer ingestion token."""
    body = await request.body()
    event = await gate.admit(conn, request.headers, body)
    logger.debug("Accepted event %s for project %s", event["id"], event["project_id"])
    return MessageResponse(message="Event accepted")


@router.post("/webhook", response_model=MessageResponse, status_code=202)
async def receive_webhook(request: Request):
    """Accept a webhook whose raw body is signed with the shared secret."""
    raw_body = await request.body()
    signature = request.headers.get(settings.WEBHOOK_SIGNATURE_HEADER)

    if not webhook_service.verify_signature(raw_body, signature, settings.WEBHOOK_SECRET_KEY):
        logger.error("HMAC signature verification failed for incoming webhook")
        return JSONResponse(status_code=403, content={"detail": "Unauthorized: Invalid signature"})

    try:
        payload = json.loads(raw_body)
    except (ValueError, UnicodeDecodeError):
        return JSONResponse(status_code=400, content={"detail": "Webhook body is not valid JSON"})

    event_type = payload.get("type") if isinstance(payload, dict) else None
    logger.info("Verified webhook received: %s", event_type)
    return MessageResponse(message="Webhook accepted")
