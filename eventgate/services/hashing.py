"""Secret hashing service using Argon2id.

Long-lived API secrets are stored only as self-describing Argon2 hashes
(algorithm, parameters and salt are embedded in the hash string).
CPU-intensive hashing runs on a dedicated thread pool so the async event
loop is never blocked.
"""

import asyncio
from concurrent.futures import ThreadPoolExecutor

from argon2 import PasswordHasher
from argon2.exceptions import VerificationError

from eventgate.config import settings

ph = PasswordHasher(
    time_cost=settings.ARGON2_TIME_COST,
    memory_cost=settings.ARGON2_MEMORY_COST,
    parallelism=settings.ARGON2_PARALLELISM,
)

_hash_executor = ThreadPoolExecutor(max_workers=settings.HASH_WORKERS)


def _verify(secret: str, hash: str) -> bool:
    if not isinstance(hash, str) or not hash:
        return False
    try:
        return ph.verify(hash, secret)
    # InvalidHashError and non-ASCII hashes surface as ValueError
    except (VerificationError, ValueError, TypeError):
        return False


async def hash_secret(secret: str) -> str:
    """Hash a plaintext secret using Argon2id.

    Each call embeds a fresh random salt, so hashing the same secret twice
    yields different strings. Runs in a thread pool.
    """
    loop = asyncio.get_event_loop()
    return await loop.run_in_executor(_hash_executor, ph.hash, secret)


async def verify_secret(secret: str, hash: str) -> bool:
    """Verify a plaintext secret against an Argon2 hash.

    Returns True on match, False on mismatch or a malformed hash. Never
    raises.
    """
    loop = asyncio.get_event_loop()
    return await loop.run_in_executor(_hash_executor, _verify, secret, hash)
