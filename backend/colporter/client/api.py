# backend/colporter/client/api.py
"""
HTTP client for the colporter backend.

Every failure (HTTP error status or transport problem) is raised as ApiError
carrying a message suitable for showing to the operator.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0

_STATUS_MESSAGES = {
    400: "The request was rejected as invalid",
    401: "Your session has expired, please sign in again",
    403: "You do not have permission to do this",
    404: "The requested record was not found",
    409: "The record was changed by someone else",
    500: "The server failed to process the request",
}


class ApiError(Exception):
    """A failed backend call, with a human-readable message."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    @classmethod
    def from_response(cls, response: httpx.Response) -> "ApiError":
        message = None
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            message = body.get("error")
            detail = body.get("message")
            if message and detail and detail != message:
                message = f"{message}: {detail}"
        if not message:
            message = _STATUS_MESSAGES.get(response.status_code, f"Request failed ({response.status_code})")
        return cls(message, response.status_code)


class ApiClient:
    """
    Thin wrapper around httpx.Client with bearer-token auth.

    transport is injectable so tests can run against the Flask app directly
    (httpx.WSGITransport) without a live server.
    """

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        *,
        transport: Optional[httpx.BaseTransport] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.current_user: Optional[dict] = None
        self.permissions: list[str] = []
        self.program_id: Optional[int] = None
        self.client = httpx.Client(base_url=self.base_url, transport=transport, timeout=timeout)

    def _headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def request(self, method: str, path: str, **kwargs) -> Any:
        """Send a request and return the decoded JSON body, or raise ApiError."""
        try:
            response = self.client.request(method, path, headers=self._headers(), **kwargs)
        except httpx.TimeoutException as e:
            logger.warning("%s %s timed out: %s", method, path, e)
            raise ApiError("The server did not respond in time") from e
        except httpx.HTTPError as e:
            logger.warning("%s %s failed: %s", method, path, e)
            raise ApiError("Could not reach the server") from e

        if response.is_error:
            error = ApiError.from_response(response)
            logger.info("%s %s -> %s %s", method, path, response.status_code, error.message)
            raise error

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise ApiError("The server returned an unreadable response", response.status_code) from e

    def get(self, path: str, params: Optional[dict] = None) -> Any:
        return self.request("GET", path, params=params)

    def post(self, path: str, json: Optional[dict] = None) -> Any:
        return self.request("POST", path, json=json)

    def put(self, path: str, json: Optional[dict] = None) -> Any:
        return self.request("PUT", path, json=json)

    def patch(self, path: str, json: Optional[dict] = None) -> Any:
        return self.request("PATCH", path, json=json)

    def login(self, username: str, password: str) -> dict:
        """Authenticate and keep the token; returns the login payload."""
        data = self.post("/api/auth/login", json={"username": username, "password": password})
        self.token = data.get("token")
        self.current_user = data.get("user")
        self.permissions = list(data.get("permissions") or [])
        self.program_id = data.get("program_id")
        return data

    def logout(self) -> None:
        if not self.token:
            return
        self.post("/api/auth/logout")
        self.token = None
        self.current_user = None
        self.permissions = []
        self.program_id = None

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> "ApiClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
