"""Inbound webhook signature verification.

Senders sign the exact bytes they transmit with HMAC-SHA256 over a shared
secret and send the hex digest in a header. The digest must be computed
over the raw request body before any JSON parsing, since re-encoding
changes whitespace and key order.
"""

from __future__ import annotations

import binascii
import hashlib
import hmac
import logging

logger = logging.getLogger(__name__)

_SIGNATURE_PREFIX = "sha256="


def _to_bytes(body: bytes | str) -> bytes:
    if isinstance(body, str):
        return body.encode("utf-8")
    return bytes(body)


def compute_signature(raw_body: bytes | str, shared_secret: str) -> str:
    """Return the hex HMAC-SHA256 of *raw_body* under *shared_secret*."""
    return hmac.new(
        shared_secret.encode("utf-8"), _to_bytes(raw_body), hashlib.sha256
    ).hexdigest()


def verify_signature(raw_body: bytes | str, signature_header: str | None, shared_secret: str | None) -> bool:
    """Check *signature_header* against the HMAC of *raw_body*.

    Fails closed: an empty secret or header, an undecodable hex digest or a
    length mismatch all return False. Never raises.
    """
    if not shared_secret or not signature_header:
        logger.warning("Webhook verification failed: missing secret or signature header")
        return False

    received = signature_header.strip()
    if received.lower().startswith(_SIGNATURE_PREFIX):
        received = received[len(_SIGNATURE_PREFIX) :]

    try:
        expected_bytes = bytes.fromhex(compute_signature(raw_body, shared_secret))
        received_bytes = bytes.fromhex(received)
    except (ValueError, TypeError, binascii.Error):
        return False

    if len(expected_bytes) != len(received_bytes):
        return False

    return hmac.compare_digest(expected_bytes, received_bytes)
