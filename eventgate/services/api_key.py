"""API key lifecycle service.

Handles creation, rotation, revocation, listing and token exchange for
project API keys. A key is a pair: a short public key used for lookup and
a long secret that is hashed with Argon2 before storage. The plaintext
secret is returned exactly once (on create or rotate) and never again.

State machine per key::

    ACTIVE --rotate--> ACTIVE (new key material, same id)
    ACTIVE --revoke--> REVOKED (terminal)
"""

from __future__ import annotations

import base64
import binascii
import logging
import uuid

import aiomysql

from eventgate.config import settings
from eventgate.db import api_keys as db_api_keys
from eventgate.errors import InternalError, NotFoundOrRevoked, Unauthorized
from eventgate.services import hashing, keygen
from eventgate.services import token as token_service

logger = logging.getLogger(__name__)

MASK_CHAR = "*"
SECRET_MASK_LENGTH = 28


def mask_key(key: str) -> str:
    """Replace all but the last 4 characters with ``*``, preserving length."""
    if len(key) <= 4:
        return key
    return MASK_CHAR * (len(key) - 4) + key[-4:]


def mask_secret(last4: str) -> str:
    """Display form of a secret whose plaintext is no longer available."""
    return MASK_CHAR * SECRET_MASK_LENGTH + last4


async def _new_material() -> tuple[str, str, str]:
    """Generate a public key and secret and hash the secret.

    Returns:
        (public_key, secret, secret_hash)
    """
    public_key = keygen.generate_public_key()
    secret = keygen.generate_secret()
    secret_hash = await hashing.hash_secret(secret)
    return public_key, secret, secret_hash


async def create_key(conn, project_id: str, name: str | None = None) -> dict:
    """Create a new API key for *project_id*.

    The secret is hashed before anything is written, so a hashing failure
    leaves no record behind.

    Returns:
        dict with keys: id, name, key, secret, created_at.
    """
    public_key, secret, secret_hash = await _new_material()
    key_id = str(uuid.uuid4())

    try:
        row = await db_api_keys.create_api_key(
            conn,
            id=key_id,
            project_id=project_id,
            name=name,
            public_key=public_key,
            secret_hash=secret_hash,
            last4=secret[-4:],
        )
    except aiomysql.Error as exc:
        logger.exception("Failed to store API key for project %s", project_id)
        raise InternalError("Failed to create API key") from exc

    logger.info("Created API key %s for project %s", key_id, project_id)
    return {
        "id": key_id,
        "name": row["name"] if row else name,
        "key": public_key,
        "secret": secret,
        "created_at": row["created_at"] if row else None,
    }


async def rotate_key(conn, project_id: str, api_key_id: str) -> dict:
    """Replace the key material of an active key, keeping its ID.

    Tokens signed with the previous secret hash stop verifying immediately.

    Returns:
        dict with keys: id, key, secret.

    Raises:
        NotFoundOrRevoked: If the key does not exist in the project or is
            already revoked.
    """
    existing = await db_api_keys.get_api_key_by_id(conn, api_key_id)
    if existing is None or existing["project_id"] != project_id or existing["revoked"]:
        raise NotFoundOrRevoked("API key not found or revoked")

    public_key, secret, secret_hash = await _new_material()

    try:
        updated = await db_api_keys.rotate_api_key(
            conn,
            api_key_id,
            public_key=public_key,
            secret_hash=secret_hash,
            last4=secret[-4:],
        )
    except aiomysql.Error as exc:
        logger.exception("Failed to rotate API key %s", api_key_id)
        raise InternalError("Failed to rotate API key") from exc

    # The key was revoked between the read and the conditional write.
    if not updated:
        raise NotFoundOrRevoked("API key not found or revoked")

    logger.info("Rotated API key %s for project %s", api_key_id, project_id)
    return {"id": api_key_id, "key": public_key, "secret": secret}


async def revoke_key(conn, project_id: str, api_key_id: str) -> None:
    """Revoke an API key. Revoking an already-revoked key is a no-op.

    Raises:
        NotFoundOrRevoked: If the key does not exist in the project.
    """
    existing = await db_api_keys.get_api_key_by_id(conn, api_key_id)
    if existing is None or existing["project_id"] != project_id:
        raise NotFoundOrRevoked("API key not found or revoked")

    try:
        await db_api_keys.revoke_api_key(conn, api_key_id)
    except aiomysql.Error as exc:
        logger.exception("Failed to revoke API key %s", api_key_id)
        raise InternalError("Failed to revoke API key") from exc

    logger.info("Revoked API key %s for project %s", api_key_id, project_id)


async def list_keys(conn, project_id: str) -> list[dict]:
    """List a project's keys with key material masked."""
    rows = await db_api_keys.list_api_keys(conn, project_id)
    return [
        {
            "id": row["id"],
            "name": row.get("name"),
            "key": mask_key(row["public_key"]),
            "secret": mask_secret(row["last4"]),
            "created_at": row["created_at"],
            "rotated_at": row.get("rotated_at"),
            "revoked": bool(row.get("revoked")),
        }
        for row in rows
    ]


def parse_basic_credentials(authorization: str | None) -> tuple[str, str]:
    """Extract (public_key, secret) from a ``Basic base64(key:secret)`` header.

    Raises:
        Unauthorized: If the header is missing, uses another scheme, or does
            not decode to ``key:secret``.
    """
    if not authorization or not authorization.startswith("Basic "):
        raise Unauthorized("Authorization header required")

    encoded = authorization[len("Basic ") :].strip()
    try:
        decoded = base64.b64decode(encoded, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        raise Unauthorized("Malformed credentials")

    public_key, sep, secret = decoded.partition(":")
    if not sep or not public_key or not secret:
        raise Unauthorized("Malformed credentials")
    return public_key, secret


async def exchange_credentials(conn, public_key: str, secret: str) -> dict:
    """Exchange a long-lived key/secret pair for a short-lived token.

    The token is signed with the key's stored secret hash.

    Returns:
        dict with keys: token, expires_in.

    Raises:
        Unauthorized: If the key is unknown, revoked, or the secret is wrong.
    """
    row = await db_api_keys.get_api_key_by_public_key(conn, public_key)
    if row is None or row["revoked"]:
        raise Unauthorized("Invalid API key")

    if not await hashing.verify_secret(secret, row["secret_hash"]):
        raise Unauthorized("Invalid API key")

    ingestion_token = token_service.encode_token(row["project_id"], row["id"], row["secret_hash"])
    return {
        "token": ingestion_token,
        "expires_in": settings.TOKEN_TTL_SECONDS,
    }
