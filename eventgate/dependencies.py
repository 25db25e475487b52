from __future__ import annotations

import logging

from fastapi import Depends, Header, HTTPException, Request

from eventgate.db import projects as db_projects
from eventgate.db.pool import get_connection
from eventgate.services.ingestion import IngestionGate
from eventgate.services.rate_limit import RateLimiter
from eventgate.services.session import decode_session_token

logger = logging.getLogger(__name__)


async def get_db():
    """Yield a database connection from the pool."""
    async with get_connection() as conn:
        yield conn


async def get_current_user(authorization: str = Header(None)) -> dict:
    """Resolve the dashboard caller from a Bearer session JWT.

    Raises:
        HTTPException 401: If no valid Bearer token is provided or the token
            is invalid/expired.
    """
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Missing or invalid authorization header")

    token = authorization[len("Bearer ") :]

    try:
        payload = decode_session_token(token)
    except Exception:
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid token payload")

    return {"id": user_id}


async def get_owned_project(
    project_id: str,
    user: dict = Depends(get_current_user),
    conn=Depends(get_db),
) -> dict:
    """Load the project in the path and require the caller to own it.

    Raises:
        HTTPException 403: If the project does not exist or belongs to
            someone else (the two cases are indistinguishable on purpose).
    """
    project = await db_projects.get_project(conn, project_id)
    if project is None or project["owner_id"] != user["id"]:
        raise HTTPException(status_code=403, detail="Forbidden")
    return project


def get_rate_limiter(request: Request) -> RateLimiter:
    """Return the application's ingestion rate limiter."""
    return request.app.state.rate_limiter


def get_ingestion_gate(rate_limiter: RateLimiter = Depends(get_rate_limiter)) -> IngestionGate:
    return IngestionGate(rate_limiter)
