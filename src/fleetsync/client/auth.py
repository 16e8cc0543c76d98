"""Authentication state for publishing.

This module provides:
- AuthProvider: Protocol the visibility service checks before publishing
- StaticAuth: Auth state from a stored token and username
- Token storage in the OS keyring
"""

from __future__ import annotations

import contextlib
from dataclasses import dataclass
from typing import Protocol

import keyring
from keyring.errors import KeyringError

KEYRING_SERVICE = "fleetsync"


class AuthProvider(Protocol):
    """Protocol for the signed-in user's state."""

    @property
    def is_authenticated(self) -> bool: ...

    @property
    def username(self) -> str | None: ...


@dataclass
class StaticAuth:
    """Auth state that never changes during the process lifetime."""

    token: str | None = None
    user: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    @property
    def username(self) -> str | None:
        return self.user

    @classmethod
    def from_keyring(cls, server_url: str, username: str | None = None) -> StaticAuth:
        """Build auth state from the token stored for a server."""
        return cls(token=load_token(server_url), user=username)


def load_token(server_url: str) -> str | None:
    """Get the auth token stored for a server.

    Returns:
        The token, or None if none is stored or the keyring is unavailable.
    """
    try:
        return keyring.get_password(KEYRING_SERVICE, server_url)
    except KeyringError:
        return None


def store_token(server_url: str, token: str) -> None:
    """Store the auth token for a server.

    Raises:
        KeyringError: If no usable keyring backend is available.
    """
    keyring.set_password(KEYRING_SERVICE, server_url, token)


def delete_token(server_url: str) -> None:
    """Forget the auth token for a server (silently ignore if missing)."""
    with contextlib.suppress(KeyringError):
        keyring.delete_password(KEYRING_SERVICE, server_url)
