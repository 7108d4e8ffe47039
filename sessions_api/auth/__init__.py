"""
Authentication Package

Credential session handling for the sessions API.

Modules:
- passwords: Salted password hashing and constant-time verification (bcrypt)
- session: Signed session token issuance, parsing and revocation (PyJWT)
- endpoint: Login / who-am-i / logout logic over the three collaborators
- routes: The HTTP route and the ``SessionsApi`` assembly

The authentication flow:
1. Client POSTs username and password
2. The user record is looked up and the password verified against its hash
3. A session token with the whitelisted user fields is set as a cookie
4. Client presents the cookie on GET (who-am-i) and DELETE (logout)
"""

from .endpoint import CredentialSessionEndpoint, LoginResult
from .passwords import BcryptPasswordHasher, PasswordHasher
from .routes import SessionsApi, build_sessions_router, create_sessions_api
from .session import JwtSessionManager, SessionManager, project

__all__ = [
    "CredentialSessionEndpoint",
    "LoginResult",
    "BcryptPasswordHasher",
    "PasswordHasher",
    "SessionsApi",
    "build_sessions_router",
    "create_sessions_api",
    "JwtSessionManager",
    "SessionManager",
    "project",
]
