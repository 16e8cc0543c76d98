"""Tests for core configuration classes."""

from __future__ import annotations

import pytest

from fleetsync.core.config import ServerConfig, SyncConfig


class TestServerConfig:
    """Tests for ServerConfig class."""

    def test_init_basic(self) -> None:
        """Should initialize with required fields."""
        config = ServerConfig(server_url="https://api.example.com", token="test-token")
        assert config.server_url == "https://api.example.com"
        assert config.token == "test-token"
        assert config.timeout == 30.0
        assert config.verify_ssl is True

    def test_url_trailing_slash_removed(self) -> None:
        """Should strip trailing slash from server URL."""
        config = ServerConfig(server_url="https://api.example.com/", token="test-token")
        assert config.server_url == "https://api.example.com"

    def test_api_url(self) -> None:
        """Should append the versioned API prefix."""
        config = ServerConfig(server_url="http://localhost:8000/", token="test-token")
        assert config.api_url == "http://localhost:8000/api/v1"

    def test_is_secure(self) -> None:
        """Should detect HTTPS."""
        assert ServerConfig(server_url="https://a.example", token="t").is_secure is True
        assert ServerConfig(server_url="http://a.example", token="t").is_secure is False


class TestSyncConfig:
    """Tests for SyncConfig class."""

    def test_defaults(self) -> None:
        """Defaults should match the documented queue policy."""
        config = SyncConfig()
        assert config.max_retries == 3
        assert config.active_interval == 60.0
        assert config.idle_interval == 300.0
        assert config.max_empty_syncs_before_idle == 3

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"max_retries": 0},
            {"active_interval": 0},
            {"idle_interval": -1},
            {"active_interval": 120, "idle_interval": 60},
            {"max_empty_syncs_before_idle": 0},
        ],
    )
    def test_invalid_values_rejected(self, kwargs: dict[str, float]) -> None:
        """Out of range settings should raise ValueError."""
        with pytest.raises(ValueError):
            SyncConfig(**kwargs)  # type: ignore[arg-type]

    def test_equal_intervals_allowed(self) -> None:
        """An idle interval equal to the active one is valid."""
        config = SyncConfig(active_interval=30, idle_interval=30)
        assert config.idle_interval == 30
