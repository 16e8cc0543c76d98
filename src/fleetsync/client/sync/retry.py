"""Error classification for the sync queue retry policy.

This module provides:
- is_retryable: Decide whether a failed operation may be attempted again
- describe_error: Short human-readable form stored as ``last_error``
- failed_on_conflict: Whether an operation last failed with a 409

Retryable:
- Transport failures (no connectivity, connection lost, timeout)
- 5xx server errors and malformed responses
- 409 conflict on anything but a publish
- Unknown errors (bounded by max_retries)

Terminal:
- 401, 403 and other 4xx client errors
- 409 conflict on publish (the public id must be regenerated)
- 404 on anything but unpublish (unpublish treats 404 as success before
  classification ever happens)
- Undecodable payloads
"""

from __future__ import annotations

import logging

from fleetsync.client.api import (
    APIError,
    AuthenticationError,
    ClientError,
    ConflictError,
    ForbiddenError,
    InvalidResponseError,
    NetworkError,
    NotFoundError,
    ServerError,
)
from fleetsync.client.sync.types import InvalidPayloadError, SyncOperation
from fleetsync.core.types import SyncOperationKind

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 3

# Transport-level exceptions that indicate connectivity issues
NETWORK_EXCEPTIONS: tuple[type[Exception], ...] = (
    NetworkError,
    ConnectionError,
    TimeoutError,
)

TERMINAL_EXCEPTIONS: tuple[type[Exception], ...] = (
    AuthenticationError,
    ForbiddenError,
    ClientError,
    InvalidPayloadError,
)


def is_retryable(error: Exception, kind: SyncOperationKind) -> bool:
    """Classify a handler failure.

    Args:
        error: The exception raised by the operation handler.
        kind: Kind of the failed operation.

    Returns:
        True if the operation may be attempted again on a later drain.
    """
    if isinstance(error, NETWORK_EXCEPTIONS):
        return True
    if isinstance(error, (ServerError, InvalidResponseError)):
        return True
    if isinstance(error, TERMINAL_EXCEPTIONS):
        return False
    if isinstance(error, NotFoundError):
        return False
    if isinstance(error, ConflictError):
        return kind != SyncOperationKind.PUBLISH
    if isinstance(error, APIError):
        logger.debug("Unclassified API error %r, treating as retryable", error)
        return True
    # Unknown errors: retry, bounded by max_retries
    return True


def describe_error(error: Exception) -> str:
    """Format an exception for the ``last_error`` column."""
    message = str(error) or error.__class__.__name__
    status = getattr(error, "status_code", None)
    if status is not None:
        return f"{error.__class__.__name__} ({status}): {message}"
    return f"{error.__class__.__name__}: {message}"


def failed_on_conflict(operation: SyncOperation) -> bool:
    """Check if the recorded failure of an operation is a 409 conflict."""
    error = operation.last_error or ""
    return error.startswith(f"{ConflictError.__name__} ")
