from typing import Any

from pydantic import BaseModel, Field, StrictStr


class TrackEventRequest(BaseModel):
    name: StrictStr = Field(min_length=1, max_length=255)
    metadata: dict[str, Any]


class TokenExchangeResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    expires_in: int


class MessageResponse(BaseModel):
    message: str
