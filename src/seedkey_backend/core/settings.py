"""Application settings and configuration.

This module defines all configuration options for the SeedKey backend.
Settings are loaded from environment variables with sensible defaults.
"""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEV_JWT_SECRET = "dev-secret-key-not-for-production"

ACTION_REGISTRATION = "registration"
ACTION_LOGIN = "login"
ACTION_REAUTH = "reauth"


@dataclass(frozen=True)
class AuthConfig:
    """Immutable configuration threaded into the authentication core.

    Attributes:
        jwt_secret: Shared secret used to sign access and refresh tokens.
        allowed_domains: Domains a challenge may be bound to.
        current_domain: Domain used when a challenge request omits one.
        challenge_ttl_ms: Lifetime of an issued challenge in milliseconds.
        access_token_ttl: Access token lifetime in seconds.
        refresh_token_ttl: Refresh token lifetime in seconds.
        session_ttl: Server-side session lifetime in seconds.
        jwt_algorithm: HMAC algorithm used for token signatures.
    """

    jwt_secret: str
    allowed_domains: tuple[str, ...]
    current_domain: str
    challenge_ttl_ms: int = 5 * 60 * 1000
    access_token_ttl: int = 3600
    refresh_token_ttl: int = 30 * 24 * 60 * 60
    session_ttl: int = 30 * 24 * 60 * 60
    jwt_algorithm: str = "HS256"

    @classmethod
    def build(
        cls,
        jwt_secret: str,
        allowed_domains: list[str] | tuple[str, ...],
        current_domain: str | None = None,
        **overrides: int | str,
    ) -> AuthConfig:
        """Resolve a config, defaulting the current domain to the first allowed one."""
        domains = tuple(d.strip().lower() for d in allowed_domains if d.strip())
        if not domains:
            raise ValueError("At least one allowed domain is required")
        resolved_current = (current_domain or domains[0]).strip().lower()
        return cls(
            jwt_secret=jwt_secret,
            allowed_domains=domains,
            current_domain=resolved_current,
            **overrides,  # type: ignore[arg-type]
        )


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="SeedKey Auth Backend", alias="APP_NAME")
    app_version: str = Field(default="0.0.2", alias="APP_VERSION")
    environment: str = Field(default="development", alias="ENVIRONMENT")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Database configuration
    database_url: str = Field(default="sqlite:///./seedkey.db", alias="DATABASE_URL")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")
    auto_create_tables: bool = Field(default=False, alias="AUTO_CREATE_TABLES")

    # Token signing
    jwt_secret: str = Field(default=DEV_JWT_SECRET, alias="JWT_SECRET")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")

    # Challenge binding
    allowed_domains: str = Field(default="localhost", alias="ALLOWED_DOMAINS")
    current_domain: str | None = Field(default=None, alias="CURRENT_DOMAIN")
    challenge_ttl_ms: int = Field(default=5 * 60 * 1000, alias="CHALLENGE_TTL_MS")

    # Token and session lifetimes (seconds)
    access_token_ttl: int = Field(default=3600, alias="ACCESS_TOKEN_TTL")
    refresh_token_ttl: int = Field(default=30 * 24 * 60 * 60, alias="REFRESH_TOKEN_TTL")
    session_ttl: int = Field(default=30 * 24 * 60 * 60, alias="SESSION_TTL")

    # Expired challenge/session sweep
    cleanup_interval_seconds: float = Field(default=300.0, alias="CLEANUP_INTERVAL_SECONDS")

    # CORS configuration for web frontend access
    cors_origins: str = Field(default="*", alias="CORS_ORIGINS")

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @model_validator(mode="after")
    def _require_secret_in_production(self) -> Settings:
        if self.is_production and self.jwt_secret == DEV_JWT_SECRET:
            raise ValueError("JWT_SECRET must be set in production")
        return self

    @property
    def is_production(self) -> bool:
        """Return True when running with ENVIRONMENT=production."""
        return self.environment.strip().lower() == "production"

    @property
    def allowed_domain_list(self) -> list[str]:
        """Return ALLOWED_DOMAINS split on commas, empty entries removed."""
        return [d.strip() for d in self.allowed_domains.split(",") if d.strip()]

    @property
    def cors_origin_list(self) -> list[str]:
        """Return CORS_ORIGINS split on commas."""
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    def auth_config(self) -> AuthConfig:
        """Build the immutable config consumed by the authentication core."""
        return AuthConfig.build(
            jwt_secret=self.jwt_secret,
            allowed_domains=self.allowed_domain_list,
            current_domain=self.current_domain,
            challenge_ttl_ms=self.challenge_ttl_ms,
            access_token_ttl=self.access_token_ttl,
            refresh_token_ttl=self.refresh_token_ttl,
            session_ttl=self.session_ttl,
            jwt_algorithm=self.jwt_algorithm,
        )


settings = Settings()
