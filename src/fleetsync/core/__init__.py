"""Core module - Shared configuration and enums."""

from fleetsync.core.config import API_PREFIX, ServerConfig, SyncConfig
from fleetsync.core.types import (
    CharterVisibility,
    ContentSyncStatus,
    ContentType,
    ContentVisibility,
    SyncOperationKind,
)

__all__ = [
    # Config
    "API_PREFIX",
    "ServerConfig",
    "SyncConfig",
    # Types
    "CharterVisibility",
    "ContentSyncStatus",
    "ContentType",
    "ContentVisibility",
    "SyncOperationKind",
]
