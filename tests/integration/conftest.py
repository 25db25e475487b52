"""API test fixtures.

The db modules are replaced by an in-memory store so the full HTTP flow
(key management -> token exchange -> ingestion) runs without MySQL.
"""

import base64
from datetime import datetime
from unittest.mock import patch

import pytest

from eventgate.services.session import create_session_token

OWNER_ID = "owner-1"
PROJECT_ID = "proj-1"
ALLOWED_ORIGIN = "https://shop.example.com"


class InMemoryStore:
    """Implements the functions of the db.api_keys/projects/events modules."""

    def __init__(self):
        self.api_keys: dict[str, dict] = {}
        self.projects: dict[str, dict] = {}
        self.events: list[dict] = []

    # --- projects -------------------------------------------------------
    async def get_project(self, conn, project_id):
        project = self.projects.get(project_id)
        return dict(project) if project else None

    # --- api keys -------------------------------------------------------
    async def create_api_key(self, conn, id, project_id, name, public_key, secret_hash, last4):
        self.api_keys[id] = {
            "id": id,
            "project_id": project_id,
            "name": name,
            "public_key": public_key,
            "secret_hash": secret_hash,
            "last4": last4,
            "revoked": False,
            "revoked_at": None,
            "rotated_at": None,
            "created_at": datetime.utcnow(),
        }
        return dict(self.api_keys[id])

    async def get_api_key_by_id(self, conn, key_id):
        row = self.api_keys.get(key_id)
        return dict(row) if row else None

    async def get_api_key_by_public_key(self, conn, public_key):
        for row in self.api_keys.values():
            if row["public_key"] == public_key:
                return dict(row)
        return None

    async def list_api_keys(self, conn, project_id):
        rows = [dict(r) for r in self.api_keys.values() if r["project_id"] == project_id]
        return sorted(rows, key=lambda r: r["created_at"], reverse=True)

    async def rotate_api_key(self, conn, key_id, public_key, secret_hash, last4):
        row = self.api_keys.get(key_id)
        if row is None or row["revoked"]:
            return False
        row.update(
            public_key=public_key,
            secret_hash=secret_hash,
            last4=last4,
            rotated_at=datetime.utcnow(),
        )
        return True

    async def revoke_api_key(self, conn, key_id):
        row = self.api_keys.get(key_id)
        if row is not None:
            row["revoked"] = True
            row["revoked_at"] = row["revoked_at"] or datetime.utcnow()

    # --- events ---------------------------------------------------------
    async def create_event(self, conn, id, project_id, name, metadata):
        self.events.append({"id": id, "project_id": project_id, "name": name, "metadata": metadata})


@pytest.fixture
def store():
    """In-memory store with one project owned by OWNER_ID."""
    store = InMemoryStore()
    store.projects[PROJECT_ID] = {
        "id": PROJECT_ID,
        "organization_id": "org-1",
        "name": "Shop",
        "owner_id": OWNER_ID,
        "allowed_domains": [ALLOWED_ORIGIN],
    }
    targets = [
        "eventgate.dependencies.db_projects",
        "eventgate.services.api_key.db_api_keys",
        "eventgate.services.ingestion.db_api_keys",
        "eventgate.services.ingestion.db_projects",
        "eventgate.services.ingestion.db_events",
    ]
    patchers = [patch(target, store) for target in targets]
    for p in patchers:
        p.start()
    yield store
    for p in reversed(patchers):
        p.stop()


@pytest.fixture
def owner_headers():
    return {"Authorization": f"Bearer {create_session_token(OWNER_ID)}"}


@pytest.fixture
def stranger_headers():
    return {"Authorization": f"Bearer {create_session_token('someone-else')}"}


def basic_auth(key: str, secret: str) -> dict:
    encoded = base64.b64encode(f"{key}:{secret}".encode()).decode()
    return {"Authorization": f"Basic {encoded}"}


def track_headers(token: str, origin: str = ALLOWED_ORIGIN, client_ip: str = "203.0.113.10") -> dict:
    return {
        "Authorization": f"Bearer {token}",
        "Origin": origin,
        "X-Forwarded-For": client_ip,
    }
