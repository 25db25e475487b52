"""Short-lived ingestion tokens.

A token is ``<payload>.<signature>`` where ``payload`` is the base64url
(unpadded) encoding of compact JSON ``{"p", "a", "iat", "exp"}`` and
``signature`` is the base64url HMAC-SHA256 of the encoded payload.

Tokens are signed with the referenced API key's stored secret hash, so
rotating a key changes the signing key and every token issued before the
rotation stops verifying. All timestamps are epoch milliseconds.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
import time
from typing import NamedTuple

from eventgate.config import settings


class TokenClaims(NamedTuple):
    project_id: str
    api_key_id: str


def _now_ms() -> int:
    return int(time.time() * 1000)


def _b64encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _b64decode(data: str) -> bytes:
    padded = data + "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(padded.encode("ascii"))


def _sign(payload_encoded: str, signing_secret: str) -> str:
    digest = hmac.new(
        signing_secret.encode("utf-8"),
        payload_encoded.encode("ascii"),
        hashlib.sha256,
    ).digest()
    return _b64encode(digest)


def _split(token: str) -> tuple[str, str] | None:
    parts = token.split(".")
    if len(parts) != 2 or not parts[0] or not parts[1]:
        return None
    return parts[0], parts[1]


def _load_payload(payload_encoded: str) -> dict | None:
    try:
        payload = json.loads(_b64decode(payload_encoded).decode("utf-8"))
    except (binascii.Error, UnicodeError, ValueError):
        return None
    if not isinstance(payload, dict):
        return None
    return payload


def encode_token(
    project_id: str,
    api_key_id: str,
    signing_secret: str,
    now: int | None = None,
    ttl_seconds: int | None = None,
) -> str:
    """Build a signed token for *api_key_id* in *project_id*."""
    issued_at = _now_ms() if now is None else now
    ttl = settings.TOKEN_TTL_SECONDS if ttl_seconds is None else ttl_seconds
    payload = {
        "p": project_id,
        "a": api_key_id,
        "iat": issued_at,
        "exp": issued_at + ttl * 1000,
    }
    payload_encoded = _b64encode(json.dumps(payload, separators=(",", ":")).encode("utf-8"))
    return f"{payload_encoded}.{_sign(payload_encoded, signing_secret)}"


def decode_token(token: str, signing_secret: str, now: int | None = None) -> TokenClaims | None:
    """Verify *token* against *signing_secret* and return its claims.

    Returns None when the token is malformed, the signature does not match,
    the token has expired, or a claim is missing. Never raises.
    """
    if not isinstance(token, str) or not isinstance(signing_secret, str):
        return None

    parts = _split(token)
    if parts is None:
        return None
    payload_encoded, signature_received = parts

    try:
        signature_expected = _sign(payload_encoded, signing_secret).encode("ascii")
        signature_bytes = signature_received.encode("utf-8")
    except UnicodeError:
        return None
    if not hmac.compare_digest(signature_expected, signature_bytes):
        return None

    payload = _load_payload(payload_encoded)
    if payload is None:
        return None

    expires_at = payload.get("exp")
    if not isinstance(expires_at, int) or isinstance(expires_at, bool):
        return None
    current = _now_ms() if now is None else now
    if expires_at < current:
        return None

    project_id = payload.get("p")
    api_key_id = payload.get("a")
    if not isinstance(project_id, str) or not isinstance(api_key_id, str):
        return None
    if not project_id or not api_key_id:
        return None

    return TokenClaims(project_id=project_id, api_key_id=api_key_id)


def peek_api_key_id(token: str) -> str | None:
    """Read the API key id from an UNVERIFIED token payload.

    Used only to find which key's secret hash to verify the token with.
    Returns None if the payload cannot be read.
    """
    if not isinstance(token, str):
        return None
    parts = _split(token)
    if parts is None:
        return None
    payload = _load_payload(parts[0])
    if payload is None:
        return None
    api_key_id = payload.get("a")
    if not isinstance(api_key_id, str) or not api_key_id:
        return None
    return api_key_id
