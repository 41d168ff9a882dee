"""Tests for application configuration."""
from typing import Any

import pytest
from pydantic import ValidationError

from core.config import DEFAULT_SESSION_SECRET, Settings


def _settings(**kwargs: Any) -> Settings:
    return Settings(_env_file=None, **kwargs)


class TestSessionSecret:
    """Tests for session secret validation."""

    def test_default_secret_allowed_in_development(self) -> None:
        """Local development may use the documented default."""
        settings = _settings(ENVIRONMENT="development")
        assert settings.session_secret == DEFAULT_SESSION_SECRET
        assert settings.is_production is False

    @pytest.mark.parametrize("environment", ["production", "prod", "Staging"])
    def test_default_secret_rejected_in_production(self, environment: str) -> None:
        """Production-like environments must set their own secret."""
        with pytest.raises(ValidationError, match="SESSION_SECRET"):
            _settings(ENVIRONMENT=environment)

    def test_custom_secret_accepted_in_production(self) -> None:
        """A real secret makes production settings valid and cookies secure."""
        settings = _settings(ENVIRONMENT="production", SESSION_SECRET="a-real-secret")
        assert settings.is_production is True

    def test_empty_secret_rejected(self) -> None:
        """An empty secret is never valid."""
        with pytest.raises(ValidationError):
            _settings(SESSION_SECRET="")

    def test_non_positive_ttl_rejected(self) -> None:
        """Session lifetime must be positive."""
        with pytest.raises(ValidationError):
            _settings(SESSION_TTL_SECONDS=0)


class TestListParsing:
    """Tests for comma-separated settings."""

    def test_clear_paths_default(self) -> None:
        """Logout clears the root, /api and /auth paths by default."""
        assert _settings().session_clear_paths == ["/", "/api", "/auth"]

    def test_clear_paths_always_include_root(self) -> None:
        """The root path is added when missing."""
        assert _settings(SESSION_CLEAR_PATHS="/shop, /api").session_clear_paths == [
            "/", "/shop", "/api",
        ]

    def test_cors_origins_parsed(self) -> None:
        """Origins are split and stripped."""
        settings = _settings(CORS_ORIGINS=" http://localhost:3000 , https://shop.example.com ")
        assert settings.cors_origins == ["http://localhost:3000", "https://shop.example.com"]
