"""Database layer for API key records.

All functions are async, take a connection (conn) as the first parameter,
and use parameterized queries with %s placeholders. Only secret hashes are
ever written; plaintext secrets never reach this module.
"""

from __future__ import annotations

from datetime import datetime, timezone

import aiomysql

_COLUMNS = """
    id, project_id, name, public_key, secret_hash, last4, revoked,
    revoked_at, rotated_at, created_at
"""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _normalize(row: dict | None) -> dict | None:
    if row is not None:
        row["revoked"] = bool(row.get("revoked"))
    return row


async def create_api_key(
    conn,
    id: str,
    project_id: str,
    name: str | None,
    public_key: str,
    secret_hash: str,
    last4: str,
) -> dict:
    """Insert a new API key record and return it."""
    async with conn.cursor(aiomysql.DictCursor) as cur:
        await cur.execute(
            """
            INSERT INTO api_keys (id, project_id, name, public_key, secret_hash, last4, created_at)
            VALUES (%s, %s, %s, %s, %s, %s, %s)
            """,
            (id, project_id, name, public_key, secret_hash, last4, _utcnow()),
        )
        await conn.commit()

    return await get_api_key_by_id(conn, id)  # type: ignore[return-value]


async def get_api_key_by_id(conn, key_id: str) -> dict | None:
    """Look up an API key by its primary key ID (revoked keys included)."""
    async with conn.cursor(aiomysql.DictCursor) as cur:
        await cur.execute(f"SELECT {_COLUMNS} FROM api_keys WHERE id = %s", (key_id,))
        return _normalize(await cur.fetchone())


async def get_api_key_by_public_key(conn, public_key: str) -> dict | None:
    """Look up an API key by its public key (revoked keys included)."""
    async with conn.cursor(aiomysql.DictCursor) as cur:
        await cur.execute(
            f"SELECT {_COLUMNS} FROM api_keys WHERE public_key = %s",
            (public_key,),
        )
        return _normalize(await cur.fetchone())


async def list_api_keys(conn, project_id: str) -> list:
    """List all API keys of a project, newest first."""
    async with conn.cursor(aiomysql.DictCursor) as cur:
        await cur.execute(
            f"""
            SELECT {_COLUMNS} FROM api_keys
            WHERE project_id = %s
            ORDER BY created_at DESC
            """,
            (project_id,),
        )
        rows = await cur.fetchall()
    return [_normalize(row) for row in rows]


async def rotate_api_key(
    conn,
    key_id: str,
    public_key: str,
    secret_hash: str,
    last4: str,
) -> bool:
    """Replace the key material of a non-revoked key.

    The ``revoked = 0`` condition makes this a compare-and-set, so a rotate
    racing a revoke can never bring the key back. Returns False if no
    active key with that ID exists.
    """
    async with conn.cursor(aiomysql.DictCursor) as cur:
        await cur.execute(
            """
            UPDATE api_keys
            SET public_key = %s, secret_hash = %s, last4 = %s, rotated_at = %s
            WHERE id = %s AND revoked = 0
            """,
            (public_key, secret_hash, last4, _utcnow(), key_id),
        )
        updated = cur.rowcount
        await conn.commit()
    return updated > 0


async def revoke_api_key(conn, key_id: str) -> None:
    """Mark an API key revoked. Revocation is terminal; repeating it is harmless."""
    async with conn.cursor(aiomysql.DictCursor) as cur:
        await cur.execute(
            """
            UPDATE api_keys
            SET revoked = 1, revoked_at = COALESCE(revoked_at, %s)
            WHERE id = %s
            """,
            (_utcnow(), key_id),
        )
        await conn.commit()
