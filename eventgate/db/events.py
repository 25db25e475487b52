"""Database layer for tracked events."""

from __future__ import annotations

import json
from datetime import datetime, timezone

import aiomysql


async def create_event(conn, id: str, project_id: str, name: str, metadata: dict) -> None:
    """Insert a tracked event. Metadata is stored as a JSON document."""
    async with conn.cursor(aiomysql.DictCursor) as cur:
        await cur.execute(
            """
            INSERT INTO events (id, project_id, name, metadata, created_at)
            VALUES (%s, %s, %s, %s, %s)
            """,
            (
                id,
                project_id,
                name,
                json.dumps(metadata),
                datetime.now(timezone.utc).replace(tzinfo=None),
            ),
        )
        await conn.commit()
