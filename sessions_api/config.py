"""
Configuration module for the Sessions API.

Two layers live here:

- ``SessionsApiConfig`` and its parts: the explicit, validated-once
  configuration passed by value into each collaborator's constructor
  (session manager, record store, password hasher, endpoint).
- ``Settings``: Pydantic Settings that load the same values from
  environment variables (or a .env file) for the standalone service.

Environment variables are loaded from .env file or system environment.
"""

from functools import lru_cache
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


SUPPORTED_ALGORITHMS = ("HS256", "HS384", "HS512")
DEFAULT_TABLE = "User"
DEFAULT_EXPOSE = ["id", "username"]


# =============================================================================
# Constructor-time configuration
# =============================================================================

class SessionOptions(BaseModel):
    """Options forwarded to the session manager."""

    secret: str = Field(..., min_length=1, description="Secret used to sign session tokens")
    expose: List[str] = Field(
        default_factory=lambda: list(DEFAULT_EXPOSE),
        description="Ordered whitelist of user fields carried in the token and responses",
    )
    duration: int = Field(
        default=24 * 60 * 60,
        description="Session lifetime in seconds",
        gt=0,
    )
    algorithm: str = Field(default="HS256", description="HMAC algorithm for signing")
    cookie_name: Optional[str] = Field(
        None,
        description="Cookie carrying the token (derived from the table name when unset)",
    )
    cookie_secure: bool = Field(default=False, description="Set the Secure flag on the cookie")

    @field_validator("expose")
    @classmethod
    def validate_expose(cls, v: List[str]) -> List[str]:
        """
        Validate the expose whitelist.

        Raises:
            ValueError: If the list is empty or would leak the password hash
        """
        fields = [name.strip() for name in v if name and name.strip()]
        if not fields:
            raise ValueError("session.expose must name at least one field")
        if "password" in fields:
            raise ValueError("session.expose must not include 'password'")
        # keep first occurrence, preserve order
        return list(dict.fromkeys(fields))

    @field_validator("algorithm")
    @classmethod
    def validate_algorithm(cls, v: str) -> str:
        if v not in SUPPORTED_ALGORITHMS:
            raise ValueError(
                f"Session algorithm must be one of {list(SUPPORTED_ALGORITHMS)}, got: {v}"
            )
        return v


class DatabaseOptions(BaseModel):
    """Options forwarded to the record store."""

    url: Optional[str] = Field(
        None,
        description="SQLAlchemy database URL; the in-memory store is used when unset",
    )
    echo: bool = Field(default=False, description="Log emitted SQL")


class PasswordOptions(BaseModel):
    rounds: int = Field(default=12, ge=4, le=31, description="bcrypt cost factor")


class SessionsApiConfig(BaseModel):
    """
    Complete configuration for one credential session endpoint.

    Example:
        >>> config = SessionsApiConfig(
        ...     session={"secret": "test", "expose": ["id", "username"]},
        ... )
        >>> config.table
        'User'
        >>> config.cookie_name
        'userSession'
    """

    session: SessionOptions
    database: DatabaseOptions = Field(default_factory=DatabaseOptions)
    password: PasswordOptions = Field(default_factory=PasswordOptions)
    table: str = Field(default=DEFAULT_TABLE, min_length=1, description="Record type holding users")
    base_path: str = Field(default="", description="Path the sessions route is mounted on")

    @field_validator("table", mode="before")
    @classmethod
    def default_table(cls, v: Optional[str]) -> str:
        if v is None or not str(v).strip():
            return DEFAULT_TABLE
        return str(v).strip()

    @field_validator("base_path")
    @classmethod
    def normalize_base_path(cls, v: str) -> str:
        v = v.strip().rstrip("/")
        if v and not v.startswith("/"):
            v = "/" + v
        return v

    @property
    def cookie_name(self) -> str:
        """Session cookie name, e.g. ``User`` -> ``userSession``."""
        if self.session.cookie_name:
            return self.session.cookie_name
        return f"{self.table[0].lower()}{self.table[1:]}Session"


# =============================================================================
# Environment settings
# =============================================================================

class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    """

    # =========================================================================
    # Session Configuration
    # =========================================================================

    SESSION_SECRET: str = Field(
        ...,
        description="Secret key for signing session tokens (must be cryptographically secure)",
        min_length=16,
    )

    SESSION_EXPOSE: str = Field(
        default=",".join(DEFAULT_EXPOSE),
        description="Comma-separated user fields exposed in tokens and responses",
    )

    SESSION_DURATION_SECONDS: int = Field(
        default=24 * 60 * 60,
        description="Session lifetime in seconds",
        ge=60,
    )

    SESSION_ALGORITHM: str = Field(default="HS256", description="Token signing algorithm")

    SESSION_COOKIE_NAME: Optional[str] = Field(None, description="Override the session cookie name")

    SESSION_COOKIE_SECURE: bool = Field(default=False, description="Only send the cookie over HTTPS")

    # =========================================================================
    # Storage / Hashing
    # =========================================================================

    DATABASE_URL: Optional[str] = Field(None, description="SQLAlchemy URL of the record store")

    TABLE: str = Field(default=DEFAULT_TABLE, description="Record type holding users")

    BCRYPT_ROUNDS: int = Field(default=12, ge=4, le=31)

    # =========================================================================
    # Server Configuration
    # =========================================================================

    BASE_PATH: str = Field(default="", description="Mount path of the sessions route")

    HOST: str = Field(default="0.0.0.0", description="Host to bind the server")

    PORT: int = Field(default=8080, description="Port to bind the server", ge=1, le=65535)

    LOG_LEVEL: str = Field(default="INFO", description="Logging level")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    @property
    def expose_list(self) -> List[str]:
        return [name.strip() for name in self.SESSION_EXPOSE.split(",") if name.strip()]

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Invalid LOG_LEVEL: {v}")
        return level

    def to_config(self) -> SessionsApiConfig:
        """
        Build the constructor-time configuration from these settings.

        Returns:
            Validated ``SessionsApiConfig``

        Raises:
            pydantic.ValidationError: If the combined values are invalid
        """
        return SessionsApiConfig(
            session=SessionOptions(
                secret=self.SESSION_SECRET,
                expose=self.expose_list,
                duration=self.SESSION_DURATION_SECONDS,
                algorithm=self.SESSION_ALGORITHM,
                cookie_name=self.SESSION_COOKIE_NAME,
                cookie_secure=self.SESSION_COOKIE_SECURE,
            ),
            database=DatabaseOptions(url=self.DATABASE_URL),
            password=PasswordOptions(rounds=self.BCRYPT_ROUNDS),
            table=self.TABLE,
            base_path=self.BASE_PATH,
        )


@lru_cache()
def get_settings() -> Settings:
    """
    Get or create a singleton Settings instance.

    Cached so that the environment is read only once per process.

    Raises:
        ValidationError: If required environment variables are missing
                        or invalid.
    """
    return Settings()


def validate_configuration(settings: Optional[Settings] = None) -> Dict[str, Any]:
    """
    Validate settings and return a status report.

    Returns:
        Dictionary with validation status and any warnings.

    Example:
        >>> status = validate_configuration()
        >>> if not status["valid"]:
        ...     print(status["errors"])
    """
    settings = settings or get_settings()
    errors = []
    warnings = []

    try:
        config = settings.to_config()
    except ValueError as e:
        errors.append(str(e))
        config = None

    if len(settings.SESSION_SECRET) < 32:
        warnings.append("SESSION_SECRET is shorter than recommended (32+ chars)")

    if not settings.SESSION_COOKIE_SECURE:
        warnings.append("SESSION_COOKIE_SECURE is off (cookie will be sent over plain HTTP)")

    if not settings.DATABASE_URL:
        warnings.append("DATABASE_URL is not set (records are kept in memory only)")

    if settings.BCRYPT_ROUNDS < 10:
        warnings.append("BCRYPT_ROUNDS below 10 is only suitable for tests")

    return {
        "valid": len(errors) == 0,
        "errors": errors,
        "warnings": warnings,
        "expose": settings.expose_list,
        "table": config.table if config else settings.TABLE,
        "cookie_name": config.cookie_name if config else None,
    }


if __name__ == "__main__":
    """
    Validate your .env configuration:
        python -m sessions_api.config
    """
    print("=" * 80)
    print("SESSIONS API CONFIGURATION")
    print("=" * 80)

    try:
        report = validate_configuration()
    except ValueError as e:
        print(f"\n✗ Configuration error: {e}")
        print("\nRequired variables:\n  - SESSION_SECRET")
    else:
        print(f"\n  Table:          {report['table']}")
        print(f"  Cookie:         {report['cookie_name']}")
        print(f"  Exposed fields: {', '.join(report['expose'])}")

        if report["valid"]:
            print("\n✓ All critical checks passed!")
        else:
            print("\n✗ Configuration errors found:")
            for error in report["errors"]:
                print(f"  - {error}")

        if report["warnings"]:
            print("\n⚠ Warnings:")
            for warning in report["warnings"]:
                print(f"  - {warning}")
