"""Shared configuration classes for fleetsync.

This module defines the connection settings for the remote API and the
tuning knobs of the sync queue.
"""

from __future__ import annotations

from dataclasses import dataclass

API_PREFIX = "/api/v1"


@dataclass
class ServerConfig:
    """Configuration for connecting to the content backend.

    Attributes:
        server_url: Base URL of the server (e.g., "https://api.anyfleet.app").
        token: Bearer token for the signed-in user.
        timeout: Request timeout in seconds.
        verify_ssl: Whether to verify SSL certificates (default True).
    """

    server_url: str
    token: str
    timeout: float = 30.0
    verify_ssl: bool = True

    def __post_init__(self) -> None:
        """Normalize server URL."""
        self.server_url = self.server_url.rstrip("/")

    @property
    def api_url(self) -> str:
        """Get the versioned REST base URL."""
        return f"{self.server_url}{API_PREFIX}"

    @property
    def is_secure(self) -> bool:
        """Check if using HTTPS.

        Returns:
            True if server uses HTTPS.
        """
        return self.server_url.startswith("https://")


@dataclass
class SyncConfig:
    """Retry and scheduling settings for the sync queue.

    Attributes:
        max_retries: Attempts allowed per operation before it is failed.
        active_interval: Seconds between drains while work is flowing.
        idle_interval: Seconds between drains after the queue went quiet.
        max_empty_syncs_before_idle: Consecutive empty drains before
            switching to the idle interval.
    """

    max_retries: int = 3
    active_interval: float = 60.0
    idle_interval: float = 300.0
    max_empty_syncs_before_idle: int = 3

    def __post_init__(self) -> None:
        """Validate settings."""
        if self.max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        if self.active_interval <= 0 or self.idle_interval <= 0:
            raise ValueError("Sync intervals must be positive")
        if self.idle_interval < self.active_interval:
            raise ValueError("idle_interval must not be shorter than active_interval")
        if self.max_empty_syncs_before_idle < 1:
            raise ValueError("max_empty_syncs_before_idle must be at least 1")
