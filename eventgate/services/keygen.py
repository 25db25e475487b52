"""Random key material for API credentials.

Public keys are short, non-secret lookup identifiers. Secrets are the
long-lived credentials a client must keep private; only their hash is
ever stored.
"""

import secrets

PUBLIC_KEY_BYTES = 8
SECRET_BYTES = 32


def generate_public_key() -> str:
    """Return a 16-character hex public key."""
    return secrets.token_hex(PUBLIC_KEY_BYTES)


def generate_secret() -> str:
    """Return a 64-character hex secret (256 bits of entropy)."""
    return secrets.token_hex(SECRET_BYTES)
