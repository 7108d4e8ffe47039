"""
Password hashing and verification.

bcrypt does the work: every hash carries its own random salt and cost, and
``bcrypt.checkpw`` compares in constant time.
"""

import base64
import hashlib
import logging
from typing import Protocol

import bcrypt

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes of its input
BCRYPT_MAX_BYTES = 72


class PasswordHasher(Protocol):
    def hash(self, plaintext: str) -> str: ...
    def verify(self, plaintext: str, hashed: str) -> bool: ...


class BcryptPasswordHasher:
    """
    Salted one-way password hashing with bcrypt.

    Args:
        rounds: bcrypt cost factor (log2 of the iteration count)

    Example:
        >>> hasher = BcryptPasswordHasher(rounds=4)
        >>> hashed = hasher.hash("123987")
        >>> hasher.verify("123987", hashed)
        True
    """

    def __init__(self, rounds: int = 12):
        self.rounds = rounds

    def hash(self, plaintext: str) -> str:
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(_prepare(plaintext), salt).decode("ascii")

    # alias used by harnesses that seed users
    generate = hash

    def verify(self, plaintext: str, hashed: str) -> bool:
        """
        Check ``plaintext`` against a stored bcrypt hash.

        Returns:
            True iff the plaintext matches. A stored value that is not a
            bcrypt hash never matches.
        """
        if not plaintext or not hashed:
            return False

        try:
            return bcrypt.checkpw(_prepare(plaintext), hashed.encode("ascii"))
        except (ValueError, UnicodeEncodeError):
            logger.warning("Stored password hash is not a valid bcrypt hash")
            return False


def _prepare(plaintext: str) -> bytes:
    """Encode a plaintext, reducing overlong ones with SHA-256 instead of truncating."""
    raw = plaintext.encode("utf-8")
    if len(raw) > BCRYPT_MAX_BYTES:
        raw = base64.b64encode(hashlib.sha256(raw).digest())
    return raw


__all__ = [
    "PasswordHasher",
    "BcryptPasswordHasher",
]
