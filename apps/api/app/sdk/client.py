"""Async HTTP client for the Storeforge API.

All per-user state (role tokens, selected store, language, session id and the
logged-out flag) lives on an explicit :class:`ApiSession` that callers own and
pass to :class:`ApiClient`.

Example:
    session = ApiSession(base_url="https://api.example.com")
    session.set_token("store_owner", token)
    async with ApiClient(session) as api:
        stores = await api.get("stores")
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Literal

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from app.core.security import generate_session_id

logger = logging.getLogger(__name__)

Role = Literal["store_owner", "customer"]

API_PREFIX = "/api/v1"

# 401/403 details that mean the token is unusable rather than a permission gap
AUTH_ERROR_MARKERS = (
    "Not authenticated",
    "Invalid token",
    "Token has expired",
    "Token expired",
    "Unauthorized",
    "Authentication failed",
)

# Reachable without a token, even after logout
PUBLIC_PREFIXES = ("storefront/", "health")
PUBLIC_FRAGMENTS = ("/published", "/storefront-url")


class ApiError(Exception):
    """Non-2xx response from the API."""

    def __init__(self, status: int, message: str, data: Any = None) -> None:
        super().__init__(message)
        self.status = status
        self.data = data


class AuthenticationError(ApiError):
    """The session's credentials were rejected or the session was logged out."""


@dataclass
class ApiSession:
    """Client-side session state."""

    base_url: str = "http://localhost:8000"
    tokens: dict[str, str] = field(default_factory=dict)
    active_role: Role | None = None
    store_id: str | None = None
    language: str = "en"
    session_id: str = field(default_factory=generate_session_id)
    logged_out: bool = False

    def set_token(self, role: Role, token: str) -> None:
        self.tokens[role] = token
        self.active_role = role
        self.logged_out = False

    def token(self) -> str | None:
        """Token for the active role, else the store owner's, else the customer's."""
        if self.logged_out:
            return None
        if self.active_role and self.active_role in self.tokens:
            return self.tokens[self.active_role]
        return self.tokens.get("store_owner") or self.tokens.get("customer")

    def logout(self) -> None:
        self.tokens.clear()
        self.active_role = None
        self.logged_out = True


def is_public_endpoint(endpoint: str) -> bool:
    path = endpoint.lstrip("/")
    return path.startswith(PUBLIC_PREFIXES) or any(f in path for f in PUBLIC_FRAGMENTS)


def error_message(status: int, data: Any) -> str:
    if isinstance(data, dict):
        for key in ("detail", "error", "message"):
            value = data.get(key)
            if isinstance(value, str) and value:
                return value
    return f"HTTP error! status: {status}"


def normalize_response(result: Any) -> Any:
    """Unwrap list envelopes into plain lists.

    ``{"success": true, "data": [...]}`` becomes the list; a single record
    (an object with ``id``) becomes a one-item list; otherwise the first list
    value inside ``data`` is used, falling back to ``[data]``. Paginated
    ``{"items": [...], "total": n}`` bodies become their items.
    """
    if not isinstance(result, dict):
        return result

    if result.get("success") and result.get("data") is not None:
        data = result["data"]
        if isinstance(data, list):
            return data
        if isinstance(data, dict):
            if data.get("id"):
                return [data]
            for value in data.values():
                if isinstance(value, list):
                    return value
        return [data]

    if isinstance(result.get("items"), list) and "total" in result:
        return result["items"]

    return result


class ApiClient:
    """Thin async wrapper over httpx that applies the session's headers."""

    def __init__(
        self,
        session: ApiSession,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 30.0,
    ) -> None:
        self.session = session
        self._http = httpx.AsyncClient(
            base_url=session.base_url,
            transport=transport,
            timeout=timeout,
        )

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    @staticmethod
    def build_url(endpoint: str) -> str:
        return f"{API_PREFIX}/{endpoint.lstrip('/')}"

    def headers(self, extra: dict[str, str] | None = None) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "X-Language": self.session.language,
            "X-Session-ID": self.session.session_id,
        }
        token = self.session.token()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        if self.session.store_id:
            headers["x-store-id"] = self.session.store_id
        headers.update(extra or {})
        return headers

    async def request(
        self,
        method: str,
        endpoint: str,
        json: Any = None,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        skip_transform: bool = False,
    ) -> Any:
        """Send a request and return the decoded body.

        GET bodies are passed through :func:`normalize_response` unless
        ``skip_transform`` is set.

        Raises:
            AuthenticationError: If the session is logged out, or the API
                rejected its credentials (the session is logged out too)
            ApiError: On any other non-2xx or non-JSON response
        """
        if self.session.logged_out and not is_public_endpoint(endpoint):
            raise AuthenticationError(401, "Session has been terminated. Please log in again.")

        response = await self._http.request(
            method,
            self.build_url(endpoint),
            json=json,
            params=params,
            headers=self.headers(headers),
        )

        if response.status_code == httpx.codes.NO_CONTENT:
            return None

        content_type = response.headers.get("content-type", "")
        if "application/json" not in content_type:
            raise ApiError(
                response.status_code,
                f"Unexpected response type: {content_type or 'none'}",
                response.text,
            )

        result = response.json()

        if response.is_error:
            message = error_message(response.status_code, result)
            if response.status_code in (401, 403) and any(m in message for m in AUTH_ERROR_MARKERS):
                logger.warning("Authentication failure on %s %s; logging out", method, endpoint)
                self.session.logout()
                raise AuthenticationError(response.status_code, message, result)
            raise ApiError(response.status_code, message, result)

        if skip_transform or method.upper() != "GET":
            return result
        return normalize_response(result)

    async def get(self, endpoint: str, **kwargs: Any) -> Any:
        return await self.request("GET", endpoint, **kwargs)

    async def post(self, endpoint: str, data: Any = None, **kwargs: Any) -> Any:
        return await self.request("POST", endpoint, json=data, **kwargs)

    async def put(self, endpoint: str, data: Any = None, **kwargs: Any) -> Any:
        return await self.request("PUT", endpoint, json=data, **kwargs)

    async def patch(self, endpoint: str, data: Any = None, **kwargs: Any) -> Any:
        return await self.request("PATCH", endpoint, json=data, **kwargs)

    async def delete(self, endpoint: str, **kwargs: Any) -> Any:
        return await self.request("DELETE", endpoint, **kwargs)


def _is_rate_limited(error: BaseException) -> bool:
    return isinstance(error, ApiError) and error.status == httpx.codes.TOO_MANY_REQUESTS


async def retry_api_call[T](
    call: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    base_delay: float = 1.0,
) -> T:
    """Run ``call``, retrying with exponential backoff while it is rate limited.

    Other errors propagate immediately; the last 429 is re-raised once
    ``max_attempts`` is exhausted.
    """
    async for attempt in AsyncRetrying(
        retry=retry_if_exception(_is_rate_limited),
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=base_delay, min=0, max=60),
        reraise=True,
    ):
        with attempt:
            return await call()
    raise AssertionError("unreachable")  # pragma: no cover
