"""Unit test fixtures with mocked DB modules."""

from datetime import datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
from starlette.datastructures import Headers

FAKE_HASH = "$argon2id$v=19$m=1024,t=1,p=1$ZmFrZXNhbHQ$ZmFrZWhhc2g"


@pytest.fixture
def mock_db_api_keys():
    """Mock for eventgate.db.api_keys module functions."""
    mock = MagicMock()
    mock.create_api_key = AsyncMock()
    mock.get_api_key_by_id = AsyncMock()
    mock.get_api_key_by_public_key = AsyncMock()
    mock.list_api_keys = AsyncMock()
    mock.rotate_api_key = AsyncMock(return_value=True)
    mock.revoke_api_key = AsyncMock()
    return mock


@pytest.fixture
def mock_hashing():
    """Mock for eventgate.services.hashing."""
    mock = MagicMock()
    mock.hash_secret = AsyncMock(return_value=FAKE_HASH)
    mock.verify_secret = AsyncMock(return_value=True)
    return mock


def make_key_row(**overrides):
    """Helper to create an api_keys row dict for tests."""
    base = {
        "id": "key-1",
        "project_id": "proj-1",
        "name": "test-key",
        "public_key": "abcdef1234567890",
        "secret_hash": FAKE_HASH,
        "last4": "9f3c",
        "revoked": False,
        "revoked_at": None,
        "rotated_at": None,
        "created_at": datetime.utcnow(),
    }
    base.update(overrides)
    return base


def make_project(**overrides):
    """Helper to create a project dict as returned by db.projects.get_project."""
    base = {
        "id": "proj-1",
        "organization_id": "org-1",
        "name": "Test Project",
        "owner_id": "user-1",
        "allowed_domains": ["https://shop.example.com"],
    }
    base.update(overrides)
    return base


def make_headers(**values):
    """Build case-insensitive request headers; underscores become dashes."""
    return Headers({key.replace("_", "-"): value for key, value in values.items()})
