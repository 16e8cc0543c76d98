"""Configuration utilities for the fleetsync CLI.

This module provides shared configuration functions used across CLI commands.
The auth token is not stored here but in the OS keyring (see client/auth.py).
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from fleetsync.client.auth import load_token
from fleetsync.core.config import ServerConfig, SyncConfig


def get_config_dir() -> Path:
    """Get the configuration directory for fleetsync.

    Returns:
        Path to ~/.fleetsync.
    """
    return Path.home() / ".fleetsync"


def get_config_file() -> Path:
    """Get the path to the config file."""
    return get_config_dir() / "config.json"


def load_config() -> dict[str, Any]:
    """Load configuration from config file."""
    config_file = get_config_file()
    if config_file.exists():
        return dict(json.loads(config_file.read_text()))
    return {}


def save_config(config: dict[str, Any]) -> None:
    """Save configuration to config file."""
    config_file = get_config_file()
    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.write_text(json.dumps(config, indent=2))


def get_database_path() -> Path:
    """Get the local database path.

    Returns:
        Configured path, or library.db in the config directory.
    """
    config = load_config()
    if config.get("database_path"):
        return Path(config["database_path"]).expanduser().resolve()
    return get_config_dir() / "library.db"


def get_server_config() -> ServerConfig | None:
    """Build server settings from the config file and the keyring.

    Returns:
        None if the user has not logged in.
    """
    config = load_config()
    server_url = config.get("server_url")
    if not server_url:
        return None
    token = load_token(server_url)
    if not token:
        return None
    return ServerConfig(server_url=server_url, token=token)


def get_sync_config() -> SyncConfig:
    """Build sync settings, falling back to defaults for missing keys."""
    config = load_config()
    defaults = SyncConfig()
    return SyncConfig(
        max_retries=int(config.get("max_retries", defaults.max_retries)),
        active_interval=float(config.get("active_interval", defaults.active_interval)),
        idle_interval=float(config.get("idle_interval", defaults.idle_interval)),
        max_empty_syncs_before_idle=int(
            config.get("max_empty_syncs_before_idle", defaults.max_empty_syncs_before_idle)
        ),
    )
