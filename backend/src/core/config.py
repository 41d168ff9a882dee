"""Application configuration using pydantic-settings."""
from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Documented insecure default for local development only. Rejected in production.
DEFAULT_SESSION_SECRET = "dev-insecure-secret-change-me"  # noqa: S105

SESSION_TTL_SECONDS = 60 * 60 * 24 * 7  # 7 days


def _split_csv(value: str) -> list[str]:
    """Parse a comma-separated string into a list of non-empty, stripped items."""
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Primary store
    database_url: str = Field(
        default="postgresql+asyncpg://localhost:5432/storefront",
        validation_alias="DATABASE_URL",
    )
    db_pool_size: int = Field(default=10, validation_alias="DB_POOL_SIZE")
    db_max_overflow: int = Field(default=5, validation_alias="DB_MAX_OVERFLOW")
    # Upper bound (seconds) on a single primary store round trip before falling back
    primary_store_timeout: float = Field(default=5.0, validation_alias="PRIMARY_STORE_TIMEOUT")

    # Volatile fallback store - disable to make primary store failures terminal
    fallback_enabled: bool = Field(default=True, validation_alias="FALLBACK_ENABLED")

    environment: str = Field(default="development", validation_alias="ENVIRONMENT")

    # Sessions
    session_secret: str = Field(
        default=DEFAULT_SESSION_SECRET,
        validation_alias="SESSION_SECRET",
    )
    session_cookie_name: str = Field(default="ps_session", validation_alias="SESSION_COOKIE_NAME")
    session_ttl_seconds: int = Field(
        default=SESSION_TTL_SECONDS,
        validation_alias="SESSION_TTL_SECONDS",
    )
    # Every path the session cookie may have been scoped to; logout clears all of them
    session_clear_paths_str: str = Field(
        default="/,/api,/auth",
        validation_alias="SESSION_CLEAR_PATHS",
    )

    # In-process TTL cache
    cache_default_ttl_seconds: float = Field(
        default=300, validation_alias="CACHE_DEFAULT_TTL_SECONDS",
    )
    cache_sweep_interval_seconds: float = Field(
        default=120, validation_alias="CACHE_SWEEP_INTERVAL_SECONDS",
    )
    cache_sweep_batch_size: int = Field(default=500, validation_alias="CACHE_SWEEP_BATCH_SIZE")
    products_cache_ttl_seconds: float = Field(
        default=180, validation_alias="PRODUCTS_CACHE_TTL_SECONDS",
    )

    # Seed admin account (skipped when either value is empty)
    bootstrap_admin_email: str = Field(default="", validation_alias="BOOTSTRAP_ADMIN_EMAIL")
    bootstrap_admin_password: str = Field(
        default="", validation_alias="BOOTSTRAP_ADMIN_PASSWORD",
    )

    # CORS - comma-separated list of allowed origins (stored as string, parsed via property)
    cors_origins_str: str = Field(
        default="http://localhost:3000",
        validation_alias="CORS_ORIGINS",
    )

    @model_validator(mode="after")
    def validate_session_secret(self) -> "Settings":
        """
        Prevent the insecure default session secret from being used in production.

        Anyone who knows the default secret can mint admin sessions, so a production
        deployment must provide its own SESSION_SECRET.
        """
        if self.is_production and self.session_secret == DEFAULT_SESSION_SECRET:
            raise ValueError(
                "SESSION_SECRET must be set in production. "
                "The built-in default is public and only suitable for local development.",
            )
        if not self.session_secret:
            raise ValueError("SESSION_SECRET cannot be empty")
        if self.session_ttl_seconds <= 0:
            raise ValueError("SESSION_TTL_SECONDS must be positive")
        return self

    @property
    def is_production(self) -> bool:
        """Whether this is a production-like environment (enables Secure cookies)."""
        return self.environment.strip().lower() in {"production", "prod", "staging"}

    @property
    def session_clear_paths(self) -> list[str]:
        """Parse comma-separated session cookie paths; always includes the root path."""
        paths = _split_csv(self.session_clear_paths_str)
        if "/" not in paths:
            paths.insert(0, "/")
        return paths

    @property
    def cors_origins(self) -> list[str]:
        """Parse comma-separated CORS origins string into a list."""
        return _split_csv(self.cors_origins_str)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
