"""Async HTTP client for the HRMS API.

Adds the bearer token, injects the stored ``organisation_id`` into every
non-auth call and turns error responses into :class:`ApiError` with a
human-readable message.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from hrms.client.auth_token import AuthToken
from hrms.client.config import client_settings

logger = logging.getLogger(__name__)

STATUS_MESSAGES = {
    400: "Bad request. Please check your input.",
    401: "Unauthorized. Please log in again.",
    403: "Access denied. You don't have permission to perform this action.",
    404: "Resource not found.",
    409: "Conflict. The resource already exists or is in use.",
    422: "Validation failed. Please check your input.",
    429: "Too many requests. Please try again later.",
    500: "Server error. Please try again later.",
}
SERVER_ERROR_MESSAGE = STATUS_MESSAGES[500]
NETWORK_ERROR_MESSAGE = "Network error. Please check your connection."
DEFAULT_ERROR_MESSAGE = "An unexpected error occurred."


class ApiError(Exception):
    """A failed API call. ``status_code`` is None for network failures."""

    def __init__(
        self,
        status_code: Optional[int],
        message: str,
        payload: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.payload = payload or {}

    @property
    def errors(self) -> dict[str, Any]:
        return self.payload.get("errors") or {}

    @property
    def server_message(self) -> Optional[str]:
        return self.payload.get("message") or None


def format_api_error(status_code: Optional[int], payload: Optional[dict[str, Any]] = None) -> str:
    """Server ``message`` first, then the generic text for the status."""
    if payload and payload.get("message"):
        return str(payload["message"])
    if status_code is None:
        return NETWORK_ERROR_MESSAGE
    if status_code in STATUS_MESSAGES:
        return STATUS_MESSAGES[status_code]
    if status_code >= 500:
        return SERVER_ERROR_MESSAGE
    return DEFAULT_ERROR_MESSAGE


def _is_auth_path(path: str) -> bool:
    return path.lstrip("/").startswith("auth/")


class HttpClient:
    """Shared ``httpx.AsyncClient`` wrapper; one per :class:`HrmsClient`."""

    def __init__(
        self,
        auth: AuthToken,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.auth = auth
        self.base_url = (base_url or client_settings.API_BASE_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else client_settings.TIMEOUT_SECONDS
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout),
                headers={"Accept": "application/json"},
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    def _headers(self) -> dict[str, str]:
        token = self.auth.token
        return {"Authorization": f"Bearer {token}"} if token else {}

    def _with_organisation(self, path: str, values: Optional[dict[str, Any]]) -> Optional[dict[str, Any]]:
        organisation_id = self.auth.organisation_id
        if _is_auth_path(path) or not organisation_id:
            return values
        values = dict(values or {})
        values.setdefault("organisation_id", organisation_id)
        return values

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Optional[dict[str, Any]] = None,
        params: Optional[dict[str, Any]] = None,
        data: Optional[dict[str, Any]] = None,
        files: Optional[dict[str, Any]] = None,
        with_organisation: bool = True,
        raw: bool = False,
    ) -> Any:
        """Send a request and return the decoded envelope (or the response if *raw*)."""
        method = method.upper()
        if with_organisation:
            if files is not None:
                data = self._with_organisation(path, data)
            elif method == "GET":
                params = self._with_organisation(path, params)
            else:
                json = self._with_organisation(path, json)

        client = await self._get_client()
        try:
            response = await client.request(
                method, path, json=json, params=params, data=data, files=files,
                headers=self._headers(),
            )
        except httpx.HTTPError as exc:
            logger.error("%s %s failed: %s", method, path, exc)
            raise ApiError(None, NETWORK_ERROR_MESSAGE) from exc

        if response.is_error:
            self._raise_for_status(method, path, response)
        if raw:
            return response
        return response.json() if response.content else None

    def _raise_for_status(self, method: str, path: str, response: httpx.Response) -> None:
        status_code = response.status_code
        try:
            payload = response.json()
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            payload = {}

        if status_code == 401:
            self.auth.clear()
        elif status_code == 403:
            logger.warning("Access denied: %s %s", method, path)
        elif status_code >= 500:
            logger.error("Server error occurred: %s %s -> %d", method, path, status_code)
        raise ApiError(status_code, format_api_error(status_code, payload), payload)

    # Convenience methods

    async def get(self, path: str, **kwargs: Any) -> Any:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, json: Optional[dict[str, Any]] = None, **kwargs: Any) -> Any:
        return await self.request("POST", path, json=json, **kwargs)

    async def put(self, path: str, json: Optional[dict[str, Any]] = None, **kwargs: Any) -> Any:
        return await self.request("PUT", path, json=json, **kwargs)

    async def patch(self, path: str, json: Optional[dict[str, Any]] = None, **kwargs: Any) -> Any:
        return await self.request("PATCH", path, json=json, **kwargs)
