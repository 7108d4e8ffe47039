"""
Session Token Management
========================

Creates and verifies the signed session tokens carried in the session
cookie. A token is an HMAC-signed JWT whose payload is the whitelisted
projection of a user record plus the standard ``iat``, ``exp`` and ``jti``
claims; the server keeps no session store.

Logging out revokes a token's ``jti`` until the moment the token would have
expired anyway, so a copy of a cleared cookie is rejected too.
"""

import logging
import threading
import time
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol

import jwt
from jwt.exceptions import ExpiredSignatureError, InvalidTokenError

from ..config import SessionOptions
from ..errors import ConfigurationError

logger = logging.getLogger(__name__)

# claims added by the session manager, never part of the user projection
RESERVED_CLAIMS = ("iat", "exp", "jti")


class SessionManager(Protocol):
    expose: List[str]

    def issue(self, record: Mapping[str, Any]) -> str: ...
    def parse(self, token: Optional[str]) -> Optional[Dict[str, Any]]: ...
    def clear(self, token: Optional[str]) -> None: ...


def project(record: Mapping[str, Any], expose: Iterable[str]) -> Dict[str, Any]:
    """
    Restrict ``record`` to the ``expose`` fields, in whitelist order.

    Fields missing from the record are left out. ``password`` never passes,
    whatever the whitelist says.
    """
    return {
        name: record[name]
        for name in expose
        if name in record and name != "password"
    }


class JwtSessionManager:
    """
    Issue, verify and revoke session JWTs.

    Args:
        secret: HMAC secret used to sign tokens
        expose: Ordered whitelist of user fields carried in the token
        duration: Token lifetime in seconds
        algorithm: HS256, HS384 or HS512

    Example:
        >>> sessions = JwtSessionManager("test", ["id", "username"])
        >>> token = sessions.issue({"id": "1", "username": "abc", "password": "..."})
        >>> sessions.parse(token)
        {'id': '1', 'username': 'abc'}
    """

    def __init__(
        self,
        secret: str,
        expose: Iterable[str],
        duration: int = 24 * 60 * 60,
        algorithm: str = "HS256",
    ):
        if not secret:
            raise ConfigurationError("Session secret must not be empty")

        self.expose = [name for name in expose if name not in RESERVED_CLAIMS]
        self.duration = duration
        self.algorithm = algorithm
        self._secret = secret

        # jti -> exp (epoch seconds)
        self._revoked: Dict[str, float] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_options(cls, options: SessionOptions) -> "JwtSessionManager":
        return cls(
            secret=options.secret,
            expose=options.expose,
            duration=options.duration,
            algorithm=options.algorithm,
        )

    # =========================================================================
    # Token Creation
    # =========================================================================

    def issue(self, record: Mapping[str, Any]) -> str:
        """
        Create a session token for ``record``.

        Args:
            record: User record; only the ``expose`` fields are kept

        Returns:
            Encoded JWT string
        """
        payload: Dict[str, Any] = project(record, self.expose)

        now = datetime.now(timezone.utc)
        payload.update({
            "iat": now,
            "exp": now + timedelta(seconds=self.duration),
            "jti": uuid.uuid4().hex,
        })

        token = jwt.encode(payload, self._secret, algorithm=self.algorithm)

        logger.debug(
            "Issued session token",
            extra={"expires_in_seconds": self.duration},
        )
        return token

    # =========================================================================
    # Token Verification
    # =========================================================================

    def decode(self, token: Optional[str]) -> Optional[Dict[str, Any]]:
        """
        Verify ``token`` and return all of its claims.

        Returns:
            Decoded claims, or None if the token is missing, malformed,
            signed with another secret, expired or revoked.
        """
        if not token:
            return None

        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                options={"require": list(RESERVED_CLAIMS)},
            )
        except ExpiredSignatureError:
            logger.info("Rejected expired session token")
            return None
        except InvalidTokenError as e:
            logger.info(f"Rejected invalid session token: {type(e).__name__}")
            return None

        if self._is_revoked(claims["jti"]):
            logger.info("Rejected revoked session token")
            return None

        return claims

    def parse(self, token: Optional[str]) -> Optional[Dict[str, Any]]:
        """
        Verify ``token`` and return the user projection it carries.

        Returns:
            Whitelisted projection, or None when the token is not valid
        """
        claims = self.decode(token)
        if claims is None:
            return None
        return project(claims, self.expose)

    # =========================================================================
    # Revocation
    # =========================================================================

    def clear(self, token: Optional[str]) -> None:
        """
        Revoke ``token`` so it no longer parses.

        Tokens that are already invalid are ignored.
        """
        claims = self.decode(token)
        if claims is None:
            return

        with self._lock:
            self._prune()
            self._revoked[claims["jti"]] = float(claims["exp"])

        logger.debug("Revoked session token")

    def _is_revoked(self, jti: str) -> bool:
        with self._lock:
            return jti in self._revoked

    def _prune(self) -> None:
        # expired tokens fail signature checks on their own; drop them
        now = time.time()
        for jti in [jti for jti, exp in self._revoked.items() if exp <= now]:
            del self._revoked[jti]


__all__ = [
    "SessionManager",
    "JwtSessionManager",
    "project",
]
