"""
Sessions route: login, who-am-i and logout on a single path.

    POST   <base_path>/   {username, password} -> 201 user, sets cookie
    GET    <base_path>/                        -> 200 user
    DELETE <base_path>/                        -> 204, clears cookie

``SessionsApi`` assembles the record store, password hasher and session
manager from a ``SessionsApiConfig`` (or takes ready-made ones) and
exposes the resulting router for mounting on any FastAPI application.
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Body, FastAPI, Request, Response, status

from ..config import SessionsApiConfig
from ..errors import register_exception_handlers
from ..models import ErrorResponse
from ..store import RecordStore, build_record_store
from .endpoint import CredentialSessionEndpoint
from .passwords import BcryptPasswordHasher, PasswordHasher
from .session import JwtSessionManager, SessionManager

logger = logging.getLogger(__name__)


# =============================================================================
# Router
# =============================================================================

def build_sessions_router(endpoint: CredentialSessionEndpoint, config: SessionsApiConfig) -> APIRouter:
    """
    Build the sessions router around ``endpoint``.

    The router is meant to be included with ``prefix=config.base_path``.
    """
    router = APIRouter(tags=["sessions"])

    # a router included without prefix cannot have an empty path
    path = "" if config.base_path else "/"
    cookie_name = config.cookie_name
    cookie_path = config.base_path or "/"

    def set_session_cookie(response: Response, token: str) -> None:
        response.set_cookie(
            key=cookie_name,
            value=token,
            max_age=config.session.duration,
            path=cookie_path,
            secure=config.session.cookie_secure,
            httponly=True,
            samesite="lax",
        )

    def clear_session_cookie(response: Response) -> None:
        response.delete_cookie(
            key=cookie_name,
            path=cookie_path,
            secure=config.session.cookie_secure,
            httponly=True,
            samesite="lax",
        )

    @router.post(
        path,
        status_code=status.HTTP_201_CREATED,
        responses={
            status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse, "description": "Malformed credentials"},
            status.HTTP_401_UNAUTHORIZED: {"description": "Invalid username or password"},
        },
    )
    def login(response: Response, payload: Any = Body(None)):
        """
        Sign in with ``{username, password}``.

        Returns the whitelisted user fields and sets the session cookie.
        """
        result = endpoint.login(payload)
        set_session_cookie(response, result.token)
        return result.user

    @router.get(path)
    def whoami(request: Request):
        """Return the user fields carried by the current session."""
        return endpoint.whoami(request.cookies.get(cookie_name))

    @router.delete(path, status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
    def logout(request: Request):
        """Sign out: revoke the session token and clear its cookie."""
        endpoint.logout(request.cookies.get(cookie_name))
        response = Response(status_code=status.HTTP_204_NO_CONTENT)
        clear_session_cookie(response)
        return response

    return router


# =============================================================================
# Assembly
# =============================================================================

class SessionsApi:
    """
    A configured credential session endpoint and its router.

    Collaborators not passed in are built from ``config``: the record store
    from ``config.database``, bcrypt with ``config.password.rounds`` and a
    JWT session manager from ``config.session``.

    Example:
        >>> api = SessionsApi(SessionsApiConfig(session={"secret": "test"}))
        >>> app = FastAPI()
        >>> api.mount(app)
    """

    def __init__(
        self,
        config: SessionsApiConfig,
        *,
        store: Optional[RecordStore] = None,
        passwords: Optional[PasswordHasher] = None,
        sessions: Optional[SessionManager] = None,
    ):
        self.config = config

        if store is None:
            store = build_record_store(config.database, unique_fields={config.table: ("username",)})
        if passwords is None:
            passwords = BcryptPasswordHasher(rounds=config.password.rounds)
        if sessions is None:
            sessions = JwtSessionManager.from_options(config.session)

        self.endpoint = CredentialSessionEndpoint(
            store=store,
            passwords=passwords,
            sessions=sessions,
            table=config.table,
        )
        self.router = build_sessions_router(self.endpoint, config)

    @property
    def store(self) -> RecordStore:
        return self.endpoint.store

    @property
    def passwords(self) -> PasswordHasher:
        return self.endpoint.passwords

    @property
    def sessions(self) -> SessionManager:
        return self.endpoint.sessions

    def mount(self, app: FastAPI) -> None:
        """
        Include the sessions router in ``app`` at the configured base path and
        install the error handlers that turn its failures into 400/401/500.
        """
        register_exception_handlers(app)
        app.include_router(self.router, prefix=self.config.base_path)
        app.state.sessions_api = self
        logger.info(
            "Mounted sessions route",
            extra={"base_path": self.config.base_path or "/", "table": self.config.table},
        )


def create_sessions_api(
    config: SessionsApiConfig,
    *,
    store: Optional[RecordStore] = None,
    passwords: Optional[PasswordHasher] = None,
    sessions: Optional[SessionManager] = None,
) -> SessionsApi:
    return SessionsApi(config, store=store, passwords=passwords, sessions=sessions)


__all__ = [
    "SessionsApi",
    "build_sessions_router",
    "create_sessions_api",
]
