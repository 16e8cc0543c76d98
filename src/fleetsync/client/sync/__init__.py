"""Offline-tolerant sync of library content and charters.

Architecture:
    VisibilityService → OperationStore → SyncQueueEngine → HTTPClient
                                              ↑
                                       SyncCoordinator (timer)

Components:
- **VisibilityService**: Validates publish/unpublish actions and queues them
- **SyncQueueEngine**: Drains the persisted queue, classifies failures,
  retries and cancels operations
- **OperationHandlers**: Execute publish, unpublish and publish_update
- **SyncCoordinator**: Periodic drains with adaptive intervals
- **CharterSyncService**: Push and pull of charters

All public symbols are re-exported here.
"""

from fleetsync.client.sync.charters import CharterAPI, CharterSyncService
from fleetsync.client.sync.coordinator import SYNC_JOB_ID, SyncCoordinator
from fleetsync.client.sync.engine import SyncQueueEngine
from fleetsync.client.sync.handlers import ContentAPI, OperationHandlers
from fleetsync.client.sync.retry import (
    DEFAULT_MAX_RETRIES,
    NETWORK_EXCEPTIONS,
    describe_error,
    failed_on_conflict,
    is_retryable,
)
from fleetsync.client.sync.types import (
    InvalidPayloadError,
    QueueCounts,
    QueueStatus,
    StatusCallback,
    SyncError,
    SyncOperation,
    SyncSummary,
)
from fleetsync.client.sync.visibility import (
    ContentValidator,
    NotAuthenticatedError,
    PublishError,
    ValidationError,
    VisibilityService,
    encode_content_for_sync,
    generate_public_id,
)

__all__ = [
    # Engine
    "SyncQueueEngine",
    "OperationHandlers",
    "ContentAPI",
    # Scheduling
    "SYNC_JOB_ID",
    "SyncCoordinator",
    # Charters
    "CharterAPI",
    "CharterSyncService",
    # Retry policy
    "DEFAULT_MAX_RETRIES",
    "NETWORK_EXCEPTIONS",
    "describe_error",
    "failed_on_conflict",
    "is_retryable",
    # Publishing
    "ContentValidator",
    "NotAuthenticatedError",
    "PublishError",
    "ValidationError",
    "VisibilityService",
    "encode_content_for_sync",
    "generate_public_id",
    # Types
    "InvalidPayloadError",
    "QueueCounts",
    "QueueStatus",
    "StatusCallback",
    "SyncError",
    "SyncOperation",
    "SyncSummary",
]
