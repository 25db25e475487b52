from __future__ import annotations

from fastapi import APIRouter, Depends

from eventgate.dependencies import get_db, get_owned_project
from eventgate.models.api_key import (
    ApiKeyCreatedResponse,
    ApiKeyListResponse,
    ApiKeyRotatedResponse,
    CreateApiKeyRequest,
    MaskedApiKeyResponse,
    RevokeResponse,
)
from eventgate.services import api_key as api_key_service

router = APIRouter()


@router.post("", response_model=ApiKeyCreatedResponse, status_code=201)
async def create_api_key(
    body: CreateApiKeyRequest | None = None,
    project: dict = Depends(get_owned_project),
    conn=Depends(get_db),
):
    """Create a new API key. The plaintext secret is returned only once."""
    result = await api_key_service.create_key(
        conn, project_id=project["id"], name=body.name if body else None
    )
    return ApiKeyCreatedResponse(**result)


@router.get("", response_model=ApiKeyListResponse)
async def list_api_keys(
    project: dict = Depends(get_owned_project),
    conn=Depends(get_db),
):
    """List the project's API keys with key and secret masked."""
    keys = await api_key_service.list_keys(conn, project["id"])
    return ApiKeyListResponse(data=[MaskedApiKeyResponse(**k) for k in keys])


@router.put("/{api_key_id}/rotate", response_model=ApiKeyRotatedResponse)
async def rotate_api_key(
    api_key_id: str,
    project: dict = Depends(get_owned_project),
    conn=Depends(get_db),
):
    """Rotate an API key. Tokens issued under the old secret stop working."""
    result = await api_key_service.rotate_key(conn, project["id"], api_key_id)
    return ApiKeyRotatedResponse(**result)


@router.delete("/{api_key_id}/revoke", response_model=RevokeResponse)
async def revoke_api_key(
    api_key_id: str,
    project: dict = Depends(get_owned_project),
    conn=Depends(get_db),
):
    """Revoke an API key immediately and permanently."""
    await api_key_service.revoke_key(conn, project["id"], api_key_id)
    return RevokeResponse(success=True)
