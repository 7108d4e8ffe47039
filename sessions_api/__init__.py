"""
Sessions API

A preconfigured username/password session endpoint for FastAPI
applications: one route answering login (POST), who-am-i (GET) and
logout (DELETE), backed by a record store, bcrypt password hashing and
signed cookie sessions.

    >>> from fastapi import FastAPI
    >>> from sessions_api import SessionsApiConfig, create_sessions_api
    >>> app = FastAPI()
    >>> api = create_sessions_api(
    ...     SessionsApiConfig(session={"secret": "test", "expose": ["id", "username"]})
    ... )
    >>> api.mount(app)
"""

from .auth import (
    BcryptPasswordHasher,
    CredentialSessionEndpoint,
    JwtSessionManager,
    SessionsApi,
    create_sessions_api,
)
from .config import DatabaseOptions, PasswordOptions, SessionOptions, SessionsApiConfig
from .errors import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    SessionsApiError,
    ValidationError,
)
from .store import InMemoryRecordStore, SqlRecordStore, build_record_store

__version__ = "1.0.0"

__all__ = [
    "BcryptPasswordHasher",
    "CredentialSessionEndpoint",
    "JwtSessionManager",
    "SessionsApi",
    "create_sessions_api",
    "DatabaseOptions",
    "PasswordOptions",
    "SessionOptions",
    "SessionsApiConfig",
    "AuthenticationError",
    "ConflictError",
    "NotFoundError",
    "SessionsApiError",
    "ValidationError",
    "InMemoryRecordStore",
    "SqlRecordStore",
    "build_record_store",
]
