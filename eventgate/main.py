"""FastAPI application entry point.

Creates the app, configures middleware and error handling, builds the
ingestion rate limiter, and wires up routers.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from eventgate.api.health import router as health_router
from eventgate.api.ingest import router as ingest_router
from eventgate.api.keys import router as keys_router
from eventgate.config import settings
from eventgate.db.pool import close_pool, init_pool
from eventgate.errors import CredentialError, TooManyRequests
from eventgate.middleware.security import SecurityHeadersMiddleware
from eventgate.services.rate_limit import build_rate_limiter

_DEFAULT_SESSION_SECRET = "CHANGE-ME-IN-PRODUCTION"

logger = logging.getLogger(__name__)


def _validate_session_secret() -> None:
    """Validate the session JWT secret at startup.

    Raises RuntimeError in production (DEBUG=False) if the secret is still the
    default value, empty, or shorter than 16 characters.
    """
    secret = settings.SESSION_SECRET_KEY
    is_default = secret == _DEFAULT_SESSION_SECRET

    if is_default and settings.DEBUG:
        logger.warning(
            "SESSION_SECRET_KEY is set to the default value, acceptable for development only"
        )
        return

    if is_default:
        raise RuntimeError(
            "SESSION_SECRET_KEY is still the default value. "
            "Set a strong, unique secret before running in production."
        )

    if not secret or len(secret) < 16:
        raise RuntimeError("SESSION_SECRET_KEY must be at least 16 characters long.")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application startup and shutdown lifecycle."""
    logging.basicConfig(
        level=logging.DEBUG if settings.DEBUG else logging.INFO,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logging.getLogger("aiomysql").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    _validate_session_secret()
    if not settings.WEBHOOK_SECRET_KEY:
        logger.warning("WEBHOOK_SECRET_KEY is not set; all webhook calls will be rejected")

    await init_pool(settings)
    yield
    await close_pool()


app = FastAPI(
    title=settings.APP_NAME,
    lifespan=lifespan,
)

# In-process by default; RATE_LIMIT_BACKEND=mysql shares counters across instances.
app.state.rate_limiter = build_rate_limiter(settings)


@app.exception_handler(CredentialError)
async def credential_error_handler(request: Request, exc: CredentialError) -> JSONResponse:
    headers = None
    if isinstance(exc, TooManyRequests) and exc.retry_after is not None:
        headers = {"Retry-After": str(exc.retry_after)}
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=headers)


# ---------------------------------------------------------------------------
# Middleware (order matters: outermost middleware runs first)
# ---------------------------------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(SecurityHeadersMiddleware)

# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
app.include_router(health_router, tags=["health"])
app.include_router(
    keys_router, prefix="/api/projects/{project_id}/api-keys", tags=["api-keys"]
)
app.include_router(ingest_router, prefix="/api", tags=["ingestion"])
