"""Typed exception hierarchy for credential and ingestion failures.

Services raise these; the application maps them to JSON error responses
with the matching HTTP status code. Messages must never carry secret
material.
"""

from __future__ import annotations


class CredentialError(Exception):
    """Base exception for all credential/ingestion errors."""

    status_code = 500

    def __init__(self, message: str, status_code: int | None = None):
        if status_code is not None:
            self.status_code = status_code
        self.detail = message
        super().__init__(message)


class BadRequest(CredentialError):
    """Malformed payload (400)."""

    status_code = 400


class Unauthorized(CredentialError):
    """Missing, invalid, expired or tampered credential or token (401)."""

    status_code = 401


class Forbidden(CredentialError):
    """Authenticated but not entitled: wrong owner or disallowed domain (403)."""

    status_code = 403


class NotFoundOrRevoked(CredentialError):
    """Operation on an API key that does not exist or is already revoked (404)."""

    status_code = 404


class TooManyRequests(CredentialError):
    """Rate limit exceeded (429)."""

    status_code = 429

    def __init__(self, message: str, retry_after: int | None = None):
        self.retry_after = retry_after
        super().__init__(message)


class InternalError(CredentialError):
    """Unexpected store failure (500)."""

    status_code = 500
