"""Request-time authorization pipeline for event ingestion.

Every tracked event passes through the stages below in order, and the
first rejection ends the request:

1. bearer token extraction                         -> Unauthorized
2. key lookup + token signature/expiry check       -> Unauthorized
3. Origin/Referer against the project allow-list   -> Forbidden
4. per-client fixed-window rate limit              -> TooManyRequests
5. payload validation ({name, metadata})           -> BadRequest
6. event persistence                               -> Accepted

Stages 1-3 fail closed: any unexpected error there is reported as
Unauthorized without details.
"""

from __future__ import annotations

import hashlib
import json
import logging
import uuid
from collections.abc import Mapping

import aiomysql
from pydantic import ValidationError

from eventgate.db import api_keys as db_api_keys
from eventgate.db import events as db_events
from eventgate.db import projects as db_projects
from eventgate.errors import (
    BadRequest,
    CredentialError,
    Forbidden,
    InternalError,
    TooManyRequests,
    Unauthorized,
)
from eventgate.models.ingestion import TrackEventRequest
from eventgate.services import token as token_service
from eventgate.services.rate_limit import RateLimiter

logger = logging.getLogger(__name__)

WILDCARD_DOMAIN = "*"
UNKNOWN_CLIENT = "unknown"
MAX_CLIENT_ID_LENGTH = 64


def extract_bearer_token(authorization: str | None) -> str:
    if not authorization or not authorization.startswith("Bearer "):
        raise Unauthorized("Unauthorized")
    token = authorization[len("Bearer ") :].strip()
    if not token:
        raise Unauthorized("Unauthorized")
    return token


def request_domain(headers: Mapping[str, str]) -> str:
    """Return the first non-empty of Origin and Referer, or ""."""
    return headers.get("origin") or headers.get("referer") or ""


def is_domain_allowed(domain: str, allowed_domains: list[str]) -> bool:
    allowed = {entry.strip() for entry in allowed_domains}
    return WILDCARD_DOMAIN in allowed or domain in allowed


def resolve_client_id(headers: Mapping[str, str]) -> str:
    """Identify the caller for rate limiting.

    First entry of X-Forwarded-For, then X-Real-IP, then ``"unknown"``.
    Values longer than ``MAX_CLIENT_ID_LENGTH`` are replaced by their
    SHA-256 hex digest so the key stays bounded and still distinct.
    """
    forwarded = headers.get("x-forwarded-for")
    client_id = ""
    if forwarded:
        client_id = forwarded.split(",")[0].strip()
    if not client_id:
        client_id = (headers.get("x-real-ip") or "").strip()
    if not client_id:
        return UNKNOWN_CLIENT
    if len(client_id) > MAX_CLIENT_ID_LENGTH:
        return hashlib.sha256(client_id.encode()).hexdigest()
    return client_id


def parse_event(body: bytes) -> TrackEventRequest:
    try:
        data = json.loads(body)
    except (ValueError, UnicodeDecodeError):
        raise BadRequest("Bad Request: Invalid event structure.")
    if not isinstance(data, dict):
        raise BadRequest("Bad Request: Invalid event structure.")
    try:
        return TrackEventRequest.model_validate(data)
    except ValidationError:
        raise BadRequest("Bad Request: Invalid event structure.")


class IngestionGate:
    """Authorizes and persists tracked events.

    The rate limiter is injected so a shared backend can replace the
    in-process one without touching this class.
    """

    def __init__(self, rate_limiter: RateLimiter):
        self.rate_limiter = rate_limiter

    async def authenticate(self, conn, headers: Mapping[str, str]) -> dict:
        """Run stages 1-3 and return the project the token belongs to."""
        try:
            ingestion_token = extract_bearer_token(headers.get("authorization"))

            api_key_id = token_service.peek_api_key_id(ingestion_token)
            if api_key_id is None:
                raise Unauthorized("Unauthorized: Invalid API Key")

            key_row = await db_api_keys.get_api_key_by_id(conn, api_key_id)
            if key_row is None or key_row["revoked"]:
                raise Unauthorized("Unauthorized: Invalid API Key")

            claims = token_service.decode_token(ingestion_token, key_row["secret_hash"])
            if claims is None or claims.project_id != key_row["project_id"]:
                raise Unauthorized("Unauthorized: Invalid API Key")

            project = await db_projects.get_project(conn, claims.project_id)
            if project is None:
                raise Unauthorized("Unauthorized: Invalid API Key")

            domain = request_domain(headers)
            if not is_domain_allowed(domain, project["allowed_domains"]):
                logger.warning(
                    "Forbidden access: domain %r not allowed for project %s",
                    domain,
                    project["id"],
                )
                raise Forbidden(f"Forbidden: Domain '{domain}' not authorized.")
        except CredentialError:
            raise
        except Exception:
            logger.warning("Ingestion token check failed unexpectedly", exc_info=True)
            raise Unauthorized("Unauthorized")

        return project

    async def admit(self, conn, headers: Mapping[str, str], body: bytes) -> dict:
        """Run the full pipeline for one tracked event.

        Returns:
            dict with keys: id, project_id, name.
        """
        project = await self.authenticate(conn, headers)

        client_id = resolve_client_id(headers)
        try:
            allowed = await self.rate_limiter.allow(client_id)
            retry_after = None if allowed else await self.rate_limiter.retry_after(client_id)
        except aiomysql.Error as exc:
            logger.exception("Rate limit check failed for client %s", client_id)
            raise InternalError("Rate limit check failed") from exc

        if not allowed:
            logger.warning("Rate limit exceeded for client %s", client_id)
            raise TooManyRequests(
                "Too Many Requests: Rate limit exceeded.", retry_after=retry_after
            )

        event = parse_event(body)

        event_id = str(uuid.uuid4())
        try:
            await db_events.create_event(
                conn,
                id=event_id,
                project_id=project["id"],
                name=event.name,
                metadata=event.metadata,
            )
        except aiomysql.Error as exc:
            logger.exception("Failed to store event for project %s", project["id"])
            raise InternalError("Failed to store event") from exc

        return {"id": event_id, "project_id": project["id"], "name": event.name}
