"""Password hashing for protected links (bcrypt)."""

import asyncio
import logging

import bcrypt

logger = logging.getLogger(__name__)

BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")


def hash_password(password: str, rounds: int = 12) -> str:
    """Hash a password with a fresh salt."""
    if not password:
        raise ValueError("Password must not be empty")
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("ascii")


def check_password(password: str, stored_hash: str) -> bool:
    """Compare a submitted password against a stored bcrypt hash.

    Hashes in any other format (such as legacy unsalted digests) never verify.
    """
    if not password or not stored_hash:
        return False

    if not stored_hash.startswith(BCRYPT_PREFIXES):
        logger.warning("Stored password hash is not a bcrypt hash; refusing to verify")
        return False

    try:
        return bcrypt.checkpw(password.encode("utf-8"), stored_hash.encode("ascii"))
    except (ValueError, UnicodeEncodeError) as e:
        logger.warning(f"Malformed password hash: {e}")
        return False


async def verify_password(password: str, stored_hash: str) -> bool:
    """Async wrapper running bcrypt off the event loop."""
    return await asyncio.to_thread(check_password, password, stored_hash)
