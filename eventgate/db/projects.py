"""Read-only project lookups needed by the credential core.

Project and organization CRUD lives elsewhere; this module only resolves
ownership and the ingestion domain allow-list.
"""

from __future__ import annotations

import json

import aiomysql


def _decode_domains(value) -> list[str]:
    if value is None:
        return []
    if isinstance(value, (bytes, str)):
        value = json.loads(value)
    return [str(domain).strip() for domain in value]


async def get_project(conn, project_id: str) -> dict | None:
    """Return the project with its owner's user ID and allowed domains."""
    async with conn.cursor(aiomysql.DictCursor) as cur:
        await cur.execute(
            """
            SELECT p.id, p.organization_id, p.name, p.allowed_domains, o.owner_id
            FROM projects p
            JOIN organizations o ON o.id = p.organization_id
            WHERE p.id = %s
            """,
            (project_id,),
        )
        row = await cur.fetchone()

    if row is not None:
        row["allowed_domains"] = _decode_domains(row.get("allowed_domains"))
    return row
