"""Session JWTs identifying dashboard callers.

Sessions are issued by the upstream login layer; this service only needs
to decode them to learn which user is calling the key-management
endpoints. The session signing secret is service-wide and unrelated to
the per-key secret hashes used for ingestion tokens.
"""

from datetime import datetime, timedelta, timezone

import jwt

from eventgate.config import settings


def create_session_token(user_id: str, expires_minutes: int = 15) -> str:
    """Create a signed session JWT.

    Payload: {"sub": user_id, "exp": ..., "iat": ...}
    """
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "exp": now + timedelta(minutes=expires_minutes),
        "iat": now,
    }
    return jwt.encode(payload, settings.SESSION_SECRET_KEY, algorithm=settings.SESSION_ALGORITHM)


def decode_session_token(token: str) -> dict:
    """Decode and validate a session JWT.

    Raises jwt.ExpiredSignatureError or jwt.InvalidTokenError on failure.
    """
    return jwt.decode(token, settings.SESSION_SECRET_KEY, algorithms=[settings.SESSION_ALGORITHM])
