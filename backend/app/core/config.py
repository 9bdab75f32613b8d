"""Application configuration loaded from environment variables.

Settings for the database, HTTP surface, session credentials, magic link
delivery and the expired-token reaper. Uses pydantic-settings for
validation and .env file support.
"""

from datetime import timedelta

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Known insecure default password that must not be used in production
# Security: Runtime check in check_production_security() prevents use in production
_INSECURE_DEFAULT_PASSWORD = "magiclink_dev_password"  # nosec B105

# Minimum length for AUTH_SECRET in production (256 bits = 32 bytes)
_MIN_AUTH_SECRET_LENGTH = 32


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Database
    database_host: str = "localhost"
    database_port: int = 5432
    database_name: str = "magiclink"
    database_user: str = "magiclink_user"
    database_password: str = _INSECURE_DEFAULT_PASSWORD
    # Full SQLAlchemy URL; takes precedence over the individual fields above
    database_url_override: str = ""

    # CORS (Security)
    # Never set to ["*"]: the session cookie requires allow_credentials=True
    allowed_origins: list[str] = ["http://localhost:3000"]

    # Application
    environment: str = "development"
    log_level: str = "INFO"

    # Session credential
    auth_secret: SecretStr = SecretStr("")
    auth_issuer: str = "magiclink-auth"
    auth_audience: str = "magiclink-auth"
    auth_cookie_name: str = "auth_token"
    auth_cookie_domain: str = ""
    session_ttl_days: int = 7

    # Magic links
    magic_link_ttl_minutes: int = 15
    # Links are built as f"{magic_link_base_url}/verify?token=..."
    magic_link_base_url: str = "http://localhost:8000/api/v1/auth"

    # Email
    email_from: str = "noreply@example.com"
    resend_api_key: SecretStr = SecretStr("")
    email_timeout_seconds: float = 10.0

    # Expired token reaper
    reaper_enabled: bool = True
    reaper_interval_seconds: int = 60 * 60

    @property
    def database_url(self) -> str:
        """Async database URL for SQLAlchemy."""
        if self.database_url_override:
            return self.database_url_override
        return (
            f"postgresql+asyncpg://{self.database_user}:{self.database_password}"
            f"@{self.database_host}:{self.database_port}/{self.database_name}"
        )

    @property
    def magic_link_ttl(self) -> timedelta:
        """Magic link lifetime."""
        return timedelta(minutes=self.magic_link_ttl_minutes)

    @property
    def session_ttl(self) -> timedelta:
        """Session credential lifetime (also the cookie max-age)."""
        return timedelta(days=self.session_ttl_days)

    @property
    def auth_cookie_secure(self) -> bool:
        """Secure cookie flag: on everywhere except local development."""
        return self.environment != "development"

    @model_validator(mode="after")
    def check_production_security(self) -> "Settings":
        """Validate configuration invariants.

        Checks:
        - Token and session lifetimes must be positive (all environments)
        - CORS must not use wildcard origin (incompatible with credentials)
        - Database password must not be the default in production
        - AUTH_SECRET must be set and >= 32 chars in production
        """
        if self.magic_link_ttl_minutes <= 0:
            msg = (
                "MAGIC_LINK_TTL_MINUTES must be positive. "
                f"Got: {self.magic_link_ttl_minutes}"
            )
            raise ValueError(msg)
        if self.session_ttl_days <= 0:
            msg = f"SESSION_TTL_DAYS must be positive. Got: {self.session_ttl_days}"
            raise ValueError(msg)
        if self.reaper_interval_seconds <= 0:
            msg = (
                "REAPER_INTERVAL_SECONDS must be positive. "
                f"Got: {self.reaper_interval_seconds}"
            )
            raise ValueError(msg)

        if "*" in self.allowed_origins:
            msg = (
                "ALLOWED_ORIGINS must not contain '*' (wildcard). "
                "The session cookie requires credentials, which are "
                "incompatible with wildcard CORS origins."
            )
            raise ValueError(msg)

        if self.environment == "production":
            if (
                not self.database_url_override
                and self.database_password == _INSECURE_DEFAULT_PASSWORD
            ):
                msg = (
                    "Cannot use default database password in production. "
                    "Set DATABASE_PASSWORD environment variable to a secure value."
                )
                raise ValueError(msg)

            secret_value = self.auth_secret.get_secret_value()
            if not secret_value:
                msg = (
                    "AUTH_SECRET must be set in production. "
                    'Generate with: python -c "import secrets; '
                    'print(secrets.token_hex(32))"'
                )
                raise ValueError(msg)
            if len(secret_value) < _MIN_AUTH_SECRET_LENGTH:
                msg = (
                    f"AUTH_SECRET must be at least {_MIN_AUTH_SECRET_LENGTH} "
                    "characters for adequate security."
                )
                raise ValueError(msg)

        return self


settings = Settings()
