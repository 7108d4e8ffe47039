"""
Credential session endpoint.

Answers the three questions the sessions route asks, independent of HTTP:
log a user in, say who the current session belongs to, and log it out.
The HTTP layer in ``routes`` only moves tokens in and out of cookies.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from pydantic import ValidationError as PydanticValidationError

from ..errors import AuthenticationError, ValidationError
from ..models import Credentials
from ..store import RecordStore
from .passwords import PasswordHasher
from .session import SessionManager, project

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid username or password"
NO_SESSION = "No valid session"


@dataclass
class LoginResult:
    token: str
    user: Dict[str, Any]


class CredentialSessionEndpoint:
    """
    Orchestrates the record store, password hasher and session manager.

    Args:
        store: Where user records live
        passwords: Verifies submitted passwords against stored hashes
        sessions: Issues, parses and clears session tokens
        table: Record type holding users
    """

    def __init__(
        self,
        store: RecordStore,
        passwords: PasswordHasher,
        sessions: SessionManager,
        table: str = "User",
    ):
        self.store = store
        self.passwords = passwords
        self.sessions = sessions
        self.table = table

        # verified against when the username is unknown, so both failures
        # cost one bcrypt check
        self._dummy_hash = passwords.hash("dummy-password-for-timing")

    def login(self, payload: Optional[Mapping[str, Any]]) -> LoginResult:
        """
        Verify credentials and issue a session token.

        Args:
            payload: Decoded request body, expected ``{username, password}``

        Returns:
            The new token and the whitelisted user projection

        Raises:
            ValidationError: If the body is not an object or a field is missing/blank
            AuthenticationError: If the username is unknown or the password wrong
        """
        credentials = _parse_credentials(payload)

        user = self.store.find(self.table, {"username": credentials.username})
        if user is None:
            self.passwords.verify(credentials.password, self._dummy_hash)
            logger.info("Login rejected: invalid credentials")
            raise AuthenticationError(INVALID_CREDENTIALS)

        stored_hash = user.get("password")
        if not isinstance(stored_hash, str) or not self.passwords.verify(credentials.password, stored_hash):
            logger.info("Login rejected: invalid credentials", extra={"user_id": user.get("id")})
            raise AuthenticationError(INVALID_CREDENTIALS)

        token = self.sessions.issue(user)
        logger.info("Login succeeded", extra={"user_id": user.get("id")})
        return LoginResult(token=token, user=project(user, self.sessions.expose))

    def whoami(self, token: Optional[str]) -> Dict[str, Any]:
        """
        Raises:
            AuthenticationError: If no valid session token was presented
        """
        user = self.sessions.parse(token)
        if user is None:
            raise AuthenticationError(NO_SESSION)
        return user

    def logout(self, token: Optional[str]) -> None:
        """
        Revoke the presented session token.

        Raises:
            AuthenticationError: If no valid session token was presented
        """
        user = self.sessions.parse(token)
        if user is None:
            raise AuthenticationError(NO_SESSION)

        self.sessions.clear(token)
        logger.info("Logout succeeded", extra={"user_id": user.get("id")})


def _parse_credentials(payload: Optional[Mapping[str, Any]]) -> Credentials:
    if not isinstance(payload, Mapping):
        raise ValidationError("Request body must be a JSON object with username and password")

    try:
        return Credentials.model_validate(payload)
    except PydanticValidationError as e:
        missing = sorted({str(err["loc"][0]) for err in e.errors() if err.get("loc")})
        raise ValidationError(
            f"Missing or blank field(s): {', '.join(missing)}",
            fields=missing,
        ) from e
