"""Tests for token storage and auth state."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

from keyring.errors import KeyringError, PasswordDeleteError

from fleetsync.client.auth import (
    KEYRING_SERVICE,
    StaticAuth,
    delete_token,
    load_token,
    store_token,
)


class TestStaticAuth:
    """Tests for StaticAuth."""

    def test_authenticated_with_token(self) -> None:
        """A token means the user is signed in."""
        auth = StaticAuth(token="t", user="skipper")
        assert auth.is_authenticated is True
        assert auth.username == "skipper"

    def test_not_authenticated_without_token(self) -> None:
        """No token (or an empty one) means signed out."""
        assert StaticAuth().is_authenticated is False
        assert StaticAuth(token="").is_authenticated is False

    def test_from_keyring(self) -> None:
        """Should read the token stored for the server."""
        with patch("fleetsync.client.auth.keyring") as mock_keyring:
            mock_keyring.get_password.return_value = "token123"
            auth = StaticAuth.from_keyring("http://test", "skipper")

        mock_keyring.get_password.assert_called_once_with(KEYRING_SERVICE, "http://test")
        assert auth.token == "token123"
        assert auth.username == "skipper"


class TestTokenStorage:
    """Tests for keyring helpers."""

    def test_store_token(self) -> None:
        """Tokens are keyed by server URL."""
        with patch("fleetsync.client.auth.keyring") as mock_keyring:
            store_token("http://test", "token123")

        mock_keyring.set_password.assert_called_once_with(
            KEYRING_SERVICE, "http://test", "token123"
        )

    def test_load_token_keyring_unavailable(self) -> None:
        """A broken keyring should read as no token."""
        with patch("fleetsync.client.auth.keyring") as mock_keyring:
            mock_keyring.get_password.side_effect = KeyringError("no backend")
            assert load_token("http://test") is None

    def test_delete_missing_token(self) -> None:
        """Deleting a token that is not stored should not raise."""
        fake = MagicMock()
        fake.delete_password.side_effect = PasswordDeleteError("not found")
        with patch("fleetsync.client.auth.keyring", fake):
            delete_token("http://test")

        fake.delete_password.assert_called_once_with(KEYRING_SERVICE, "http://test")
