"""HTTP client for the content backend API.

This module provides:
- HTTPClient: Typed calls to publish, unpublish and update content and
  to create, update and fetch charters
- APIError and subclasses: Classified failures (see retry.py for which of
  them are retried)
- Response dataclasses parsed from the JSON bodies
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

import httpx

from fleetsync.core.config import ServerConfig

logger = logging.getLogger(__name__)


class APIError(Exception):
    """Base exception for API errors."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(APIError):
    """Authentication required (401)."""


class ForbiddenError(APIError):
    """Access forbidden (403)."""


class NotFoundError(APIError):
    """Resource not found (404)."""


class ConflictError(APIError):
    """Resource already exists (409)."""


class ClientError(APIError):
    """Any other 4xx response."""


class ServerError(APIError):
    """5xx response."""


class InvalidResponseError(APIError):
    """Unexpected status code or malformed response body."""


class NetworkError(APIError):
    """Transport failure: no connectivity, connection lost or timeout."""


def _parse_datetime(value: str) -> datetime:
    return datetime.fromisoformat(value)


@dataclass
class PublishResponse:
    """Server response to a publish call."""

    id: str
    public_id: str
    published_at: datetime
    author_username: str | None
    can_fork: bool

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PublishResponse:
        """Create from API response dictionary."""
        return cls(
            id=str(data["id"]),
            public_id=data["public_id"],
            published_at=_parse_datetime(data["published_at"]),
            author_username=data.get("author_username"),
            can_fork=bool(data.get("can_fork", True)),
        )


@dataclass
class UpdateResponse:
    """Server response to an update of published content."""

    id: str
    public_id: str
    updated_at: datetime | None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> UpdateResponse:
        """Create from API response dictionary."""
        return cls(
            id=str(data["id"]),
            public_id=data["public_id"],
            updated_at=(
                _parse_datetime(data["updated_at"]) if data.get("updated_at") else None
            ),
        )


@dataclass
class CharterRequest:
    """Body of a charter create or update call."""

    name: str
    start_date: date
    end_date: date
    visibility: str
    boat_name: str | None = None
    location_text: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "boat_name": self.boat_name,
            "location_text": self.location_text,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "visibility": self.visibility,
        }


@dataclass
class RemoteCharter:
    """Charter as stored on the server."""

    id: str
    name: str
    start_date: date
    end_date: date
    visibility: str
    boat_name: str | None = None
    location_text: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RemoteCharter:
        """Create from API response dictionary."""
        return cls(
            id=str(data["id"]),
            name=data["name"],
            start_date=date.fromisoformat(data["start_date"][:10]),
            end_date=date.fromisoformat(data["end_date"][:10]),
            visibility=data.get("visibility", "private"),
            boat_name=data.get("boat_name"),
            location_text=data.get("location_text"),
        )


class HTTPClient:
    """HTTP client for the content backend API."""

    def __init__(
        self,
        config: ServerConfig,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            config: Server connection settings.
            transport: Optional httpx transport (tests).
        """
        self._config = config
        self._client = httpx.Client(
            base_url=config.api_url,
            timeout=config.timeout,
            verify=config.verify_ssl,
            headers={
                "Authorization": f"Bearer {config.token}",
                "Accept": "application/json",
            },
            transport=transport,
        )

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self) -> HTTPClient:
        """Context manager entry."""
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.close()

    def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """Send a request and classify the outcome.

        Raises:
            NetworkError: On transport failures, including timeouts.
            APIError: A subclass matching the status code.
        """
        try:
            response = self._client.request(method, path, **kwargs)
        except httpx.TransportError as e:
            logger.debug("%s %s failed: %s", method, path, e)
            raise NetworkError(f"Network error: {e}") from e
        return self._handle_response(response)

    def _handle_response(self, response: httpx.Response) -> httpx.Response:
        """Map error status codes to exceptions."""
        code = response.status_code
        if 200 <= code < 300:
            return response
        if code == 401:
            raise AuthenticationError("Authentication required", code)
        if code == 403:
            raise ForbiddenError("Access forbidden", code)
        if code == 404:
            raise NotFoundError("Resource not found", code)
        if code == 409:
            raise ConflictError("Resource already exists", code)
        if 400 <= code < 500:
            raise ClientError(f"Client error: {code}", code)
        if 500 <= code < 600:
            raise ServerError("Server error", code)
        raise InvalidResponseError(f"Unexpected status: {code}", code)

    def _json(self, response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise InvalidResponseError("Invalid response from server") from e

    # === Health check ===

    def health_check(self) -> bool:
        """Check if the server is reachable.

        Returns:
            True if server answers the health endpoint.
        """
        try:
            response = self._client.get(f"{self._config.server_url}/health")
            return response.status_code == 200
        except httpx.RequestError:
            return False

    # === Content operations ===

    def publish_content(
        self,
        *,
        title: str,
        description: str | None,
        content_type: str,
        content_data: dict[str, Any],
        tags: list[str],
        language: str,
        public_id: str,
        can_fork: bool = True,
        forked_from_id: str | None = None,
    ) -> PublishResponse:
        """Publish content.

        Raises:
            ConflictError: If the public id is already taken.
        """
        body: dict[str, Any] = {
            "title": title,
            "description": description,
            "content_type": content_type,
            "content_data": content_data,
            "tags": tags,
            "language": language,
            "public_id": public_id,
            "can_fork": can_fork,
        }
        if forked_from_id is not None:
            body["forked_from_id"] = forked_from_id
        response = self._request("POST", "/content/share", json=body)
        try:
            return PublishResponse.from_dict(self._json(response))
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidResponseError(f"Malformed publish response: {e}") from e

    def unpublish_content(self, public_id: str) -> None:
        """Remove published content.

        Raises:
            NotFoundError: If nothing is published under this id.
        """
        self._request("DELETE", f"/content/{public_id}")

    def update_published_content(
        self,
        public_id: str,
        *,
        title: str,
        description: str | None,
        content_type: str,
        content_data: dict[str, Any],
        tags: list[str],
        language: str,
    ) -> UpdateResponse:
        """Push edits of already published content."""
        response = self._request(
            "PUT",
            f"/content/{public_id}",
            json={
                "title": title,
                "description": description,
                "content_type": content_type,
                "content_data": content_data,
                "tags": tags,
                "language": language,
            },
        )
        try:
            return UpdateResponse.from_dict(self._json(response))
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidResponseError(f"Malformed update response: {e}") from e

    # === Charter operations ===

    def create_charter(self, request: CharterRequest) -> RemoteCharter:
        """Create a charter on the server."""
        response = self._request("POST", "/charters", json=request.to_dict())
        return self._parse_charter(response)

    def update_charter(self, charter_id: str, request: CharterRequest) -> RemoteCharter:
        """Update an existing server charter."""
        response = self._request("PUT", f"/charters/{charter_id}", json=request.to_dict())
        return self._parse_charter(response)

    def fetch_my_charters(self) -> list[RemoteCharter]:
        """List the signed-in user's charters."""
        data = self._json(self._request("GET", "/charters/mine"))
        items = data.get("items", []) if isinstance(data, dict) else data
        try:
            return [RemoteCharter.from_dict(c) for c in items]
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidResponseError(f"Malformed charter list: {e}") from e

    def _parse_charter(self, response: httpx.Response) -> RemoteCharter:
        try:
            return RemoteCharter.from_dict(self._json(response))
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidResponseError(f"Malformed charter response: {e}") from e
