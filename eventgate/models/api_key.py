from datetime import datetime

from pydantic import BaseModel, Field


class CreateApiKeyRequest(BaseModel):
    name: str | None = Field(default=None, max_length=255)


class ApiKeyCreatedResponse(BaseModel):
    id: str
    name: str | None = None
    key: str  # Plaintext public key
    secret: str  # Plaintext secret, shown only once
    created_at: datetime


class ApiKeyRotatedResponse(BaseModel):
    id: str
    key: str
    secret: str  # Plaintext secret, shown only once


class MaskedApiKeyResponse(BaseModel):
    id: str
    name: str | None = None
    key: str
    secret: str
    created_at: datetime
    rotated_at: datetime | None = None
    revoked: bool


class ApiKeyListResponse(BaseModel):
    data: list[MaskedApiKeyResponse]


class RevokeResponse(BaseModel):
    success: bool = True
