"""Health check endpoint.

Verifies the application is running and the database pool is reachable.
"""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Request

from eventgate.db.pool import get_connection

router = APIRouter()


@router.get("/health")
async def health_check(request: Request):
    """Return service health, the rate limiter in use, and a timestamp.

    ``"degraded"`` (still HTTP 200) means the database did not answer a
    ``SELECT 1``, so load-balancer probes can tell the states apart.
    """
    db_ok = False
    try:
        async with get_connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute("SELECT 1")
                db_ok = True
    except Exception:  # nosec B110
        pass

    limiter = getattr(request.app.state, "rate_limiter", None)
    return {
        "status": "healthy" if db_ok else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "database": "connected" if db_ok else "unreachable",
        "rate_limiter": type(limiter).__name__ if limiter else None,
    }
