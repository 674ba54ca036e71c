"""Tests for client configuration."""
import pytest
from pydantic import ValidationError

from core.config import DEFAULT_API_URL, Settings


class TestApiUrl:
    """Tests for API base URL resolution."""

    def test_development_defaults_to_localhost(self) -> None:
        """Without an explicit URL, development uses the local API."""
        settings = Settings(_env_file=None, app_env="development")
        assert settings.api_url is None
        assert settings.base_url == DEFAULT_API_URL

    def test_production_requires_api_url(self) -> None:
        """Production refuses to start without an explicit API URL."""
        with pytest.raises(ValidationError, match="API_URL"):
            Settings(_env_file=None, app_env="production", api_url=None)

    def test_production_with_api_url(self) -> None:
        settings = Settings(
            _env_file=None, app_env="production", api_url="https://api.example.com/",
        )
        assert settings.base_url == "https://api.example.com"

    def test_reads_vite_prefixed_var(self) -> None:
        """The frontend's VITE_API_URL name is accepted."""
        settings = Settings(_env_file=None, VITE_API_URL="https://vite.example.com")
        assert settings.api_url == "https://vite.example.com"

    def test_reads_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("API_URL", "https://env.example.com")
        monkeypatch.setenv("MODE", "production")
        settings = Settings(_env_file=None)
        assert settings.app_env == "production"
        assert settings.base_url == "https://env.example.com"


class TestStorageConfig:
    """Tests for local persistence settings."""

    def test_redis_disabled_by_default(self) -> None:
        settings = Settings(_env_file=None)
        assert settings.redis_enabled is False
        assert settings.storage_prefix == "finance:"
