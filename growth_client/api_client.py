"""
API Client

Thin JSON-over-HTTP client for the growth engine API.

GUARANTEES:
===========
1. Every transport, HTTP-status or decode failure raises ApiError
2. No retries here; callers decide how failures degrade
"""

from __future__ import annotations
from typing import Any, Dict, Optional
import logging

import httpx

from .config import ClientConfig

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Raised when a request does not produce a usable JSON response."""

    def __init__(self, message: str, status_code: Optional[int] = None, path: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.path = path

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404


class ApiClient:
    """
    Usage:
        with ApiClient(ClientConfig.from_env()) as api:
            events = api.get_json("/progression/events", {"userId": "u1"})
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        transport: Optional[httpx.BaseTransport] = None,
        http_client: Optional[httpx.Client] = None
    ):
        """
        `transport` swaps the network layer (e.g. httpx.MockTransport);
        `http_client` supplies a ready client such as FastAPI's TestClient.
        """
        self._config = config or ClientConfig()
        headers = {"Accept": "application/json", "User-Agent": "GrowthClient/1.0"}
        if self._config.auth_token:
            headers["Authorization"] = f"Bearer {self._config.auth_token}"

        if http_client is not None:
            http_client.headers.update(headers)
            self._client = http_client
        else:
            self._client = httpx.Client(
                base_url=self._config.base_url,
                timeout=self._config.timeout_seconds,
                headers=headers,
                transport=transport
            )

    def get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        clean = {k: v for k, v in (params or {}).items() if v is not None}
        return self._request("GET", path, params=clean)

    def post_json(self, path: str, body: Optional[Dict[str, Any]] = None) -> Any:
        return self._request("POST", path, json=body or {})

    def ping(self) -> None:
        """Raise ApiError unless the backend reports healthy."""
        self.get_json("/health")

    def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            response = self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            raise ApiError(f"{method} {path} timed out", path=path) from e
        except httpx.HTTPError as e:
            raise ApiError(f"{method} {path} failed: {e}", path=path) from e

        if response.status_code >= 400:
            raise ApiError(
                f"{method} {path} returned HTTP {response.status_code}",
                status_code=response.status_code,
                path=path
            )

        try:
            return response.json()
        except ValueError as e:
            raise ApiError(
                f"{method} {path} returned invalid JSON",
                status_code=response.status_code,
                path=path
            ) from e

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> ApiClient:
        return self

    def __exit__(self, *exc) -> None:
        self.close()
