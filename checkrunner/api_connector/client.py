"""httpx-based client for the web API.

``is_web_server_up`` never raises; ``fetch_topology`` returns a validated
ExecutionRequest or raises ApiOfflineError / ApiError / pydantic.ValidationError.
"""

from __future__ import annotations

import logging

import httpx

from ..inventory.models import ExecutionRequest

logger = logging.getLogger(__name__)

PING_PATH = "/api/ping"
TOPOLOGY_PATH = "/api/checks/topology"


class ApiOfflineError(Exception):
    """Raised when the web API is unreachable."""


class ApiError(Exception):
    """Raised when the web API returns an error."""

    def __init__(self, status_code: int, detail: str) -> None:
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"Web API error {status_code}: {detail}")


class ApiClient:
    """Synchronous httpx client for the web API."""

    def __init__(self, host: str, port: int, timeout: float = 30.0, ping_timeout: float = 2.0) -> None:
        self._base_url = f"http://{host}:{port}"
        self._timeout = timeout
        self._ping_timeout = ping_timeout

    @property
    def base_url(self) -> str:
        return self._base_url

    def _get(self, path: str, timeout: float | None = None) -> httpx.Response:
        """Perform a GET request to the web API."""
        try:
            with httpx.Client(timeout=timeout or self._timeout) as client:
                resp = client.get(f"{self._base_url}{path}")
        except httpx.ConnectError as e:
            raise ApiOfflineError(f"Web API at {self._base_url} is unreachable") from e
        except httpx.TimeoutException as e:
            raise ApiOfflineError(f"Web API request {path} timed out") from e
        except httpx.TransportError as e:
            raise ApiOfflineError(f"Web API request {path} failed: {e}") from e

        if resp.status_code >= 400:
            detail = resp.text
            try:
                detail = resp.json().get("detail", resp.text)
            except (ValueError, AttributeError):
                pass
            raise ApiError(resp.status_code, str(detail))
        return resp

    def is_web_server_up(self) -> bool:
        """GET /api/ping: True only on HTTP 200."""
        try:
            resp = self._get(PING_PATH, timeout=self._ping_timeout)
        except (ApiOfflineError, ApiError, httpx.HTTPError) as e:
            logger.debug("Web API ping failed: %s", e)
            return False
        return resp.status_code == 200

    def fetch_topology(self) -> ExecutionRequest:
        """GET /api/checks/topology"""
        resp = self._get(TOPOLOGY_PATH)
        return ExecutionRequest.model_validate(resp.json())
