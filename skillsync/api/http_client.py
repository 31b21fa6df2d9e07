"""
Async HTTP client for the skill sync API.

Provides a clean interface for making API requests with bearer
authentication, automatic token refresh and error mapping.
"""

import asyncio
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Self

import httpx
import structlog

from skillsync.config import SkillSyncConfig
from skillsync.exceptions import (
    APIError,
    AuthenticationError,
    NetworkError,
    NotFoundError,
    RateLimitError,
    ServerError,
    SessionExpiredError,
)

logger = structlog.get_logger(__name__)

SENSITIVE_KEYS = frozenset(
    {
        "accessToken",
        "refreshToken",
        "code",
        "salt",
        "encryptedMasterKey",
        "recoveryBlob",
        "encryptedData",
        "iv",
        "tag",
        "passphrase",
    }
)


def sanitize_for_log(data: dict[str, Any]) -> dict[str, Any]:
    """
    Remove sensitive fields from a dict before logging.

    Recursively sanitizes nested dictionaries and lists.

    Args:
        data: Dictionary that may contain sensitive values.

    Returns:
        Copy with sensitive values replaced by "***".
    """
    result = {}
    for key, value in data.items():
        if key in SENSITIVE_KEYS:
            result[key] = "***"
        elif isinstance(value, dict):
            result[key] = sanitize_for_log(value)
        elif isinstance(value, list):
            result[key] = [
                sanitize_for_log(item) if isinstance(item, dict) else item for item in value
            ]
        else:
            result[key] = value
    return result


@dataclass(frozen=True, slots=True)
class Session:
    """Immutable session tokens for atomic updates."""

    access_token: str
    refresh_token: str


SessionListener = Callable[[Session], None]


@contextmanager
def reading_response(endpoint: str) -> Iterator[None]:
    """
    Turn a missing or mistyped field in a successful response into an APIError.

    Raises:
        APIError: If the wrapped parsing fails on the response shape.
    """
    try:
        yield
    except (KeyError, TypeError, AttributeError) as e:
        msg = f"Unexpected response from API: {e!r}"
        raise APIError(msg, code=httpx.codes.OK, endpoint=endpoint) from e


def _parse_retry_after(value: str | None) -> float | None:
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


class AsyncHttpClient:
    """Async HTTP client for the skill sync API."""

    def __init__(
        self,
        config: SkillSyncConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        on_session_refreshed: SessionListener | None = None,
    ) -> None:
        """
        Args:
            config: Client configuration.
            transport: Optional transport for testing (mock transport).
            on_session_refreshed: Called with the new session after a token refresh,
                e.g. to persist it.
        """
        self._config = config
        self._transport = transport
        self._on_session_refreshed = on_session_refreshed

        self._session: Session | None = None
        self._client: httpx.AsyncClient | None = None

        self._client_lock = asyncio.Lock()
        self._refresh_lock = asyncio.Lock()

    async def __aenter__(self) -> Self:
        await self._ensure_client()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def _ensure_client(self) -> httpx.AsyncClient:
        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    base_url=self._config.api_url,
                    timeout=self._config.timeout,
                    transport=self._transport,
                    headers={
                        "Accept": "application/json",
                        "User-Agent": self._config.user_agent,
                    },
                )
        return self._client

    async def close(self) -> None:
        """Close the underlying HTTP client. Idempotent."""
        async with self._client_lock:
            if self._client is None:
                logger.debug("Client not open.")
                return
            await self._client.aclose()
            self._client = None

    async def set_session(self, access_token: str, refresh_token: str) -> None:
        """
        Set session tokens after authentication or when restoring saved credentials.

        Acquires ``_refresh_lock`` so this cannot race with
        ``_refresh_access_token`` writing ``self._session``.
        """
        async with self._refresh_lock:
            self._session = Session(access_token=access_token, refresh_token=refresh_token)

    async def clear_session(self) -> None:
        async with self._refresh_lock:
            self._session = None

    @property
    def session(self) -> Session | None:
        return self._session

    @property
    def is_authenticated(self) -> bool:
        """Check if we have session tokens."""
        return self._session is not None

    async def request(
        self,
        method: str,
        endpoint: str,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
        authenticated: bool = True,
        auto_refresh: bool = True,
    ) -> dict[str, Any]:
        """
        Make an API request.

        Args:
            method: HTTP method (GET, POST, etc.).
            endpoint: API endpoint (e.g., "/skills").
            json: JSON body for POST/PUT requests.
            params: Query parameters.
            authenticated: Whether to include the bearer token.
            auto_refresh: Whether to refresh the access token once on 401.

        Returns:
            Response JSON data.

        Raises:
            APIError: If the API returns an error status.
            AuthenticationError: On 401 that refreshing cannot fix.
            SessionExpiredError: If token refresh fails.
            NetworkError: If the server cannot be reached.
        """
        session = self._session  # Capture atomically for consistent reads
        headers = {}
        if authenticated and session is not None:
            headers["Authorization"] = f"Bearer {session.access_token}"

        client = await self._ensure_client()
        logger.debug(
            "API request",
            method=method,
            endpoint=endpoint,
            body=sanitize_for_log(json) if json else None,
        )
        try:
            response = await client.request(
                method=method,
                url=endpoint,
                json=json,
                params=params,
                headers=headers,
            )
        except httpx.TransportError as e:
            msg = f"Request to {endpoint} failed: {e.__class__.__name__}"
            raise NetworkError(msg, endpoint=endpoint) from e

        if (
            response.status_code == httpx.codes.UNAUTHORIZED
            and authenticated
            and auto_refresh
            and session is not None
        ):
            logger.debug("Token expired, attempting refresh")
            await self._refresh_access_token(stale_session=session)
            return await self.request(
                method,
                endpoint,
                json=json,
                params=params,
                authenticated=authenticated,
                auto_refresh=False,
            )

        data = self._parse_body(response, endpoint)
        if not response.is_success:
            self._raise_api_error(response, data, endpoint)
        return data

    @staticmethod
    def _parse_body(response: httpx.Response, endpoint: str) -> dict[str, Any]:
        if not response.content:
            return {}
        try:
            data = response.json()
        except ValueError as e:
            if not response.is_success:
                return {}
            raise APIError(
                "Invalid JSON response from API",
                code=response.status_code,
                endpoint=endpoint,
            ) from e
        if not isinstance(data, dict):
            raise APIError(
                "Unexpected JSON response from API",
                code=response.status_code,
                endpoint=endpoint,
            )
        return data

    async def _refresh_access_token(self, stale_session: Session) -> None:
        async with self._refresh_lock:
            if self._session is not stale_session:
                logger.debug("Token already refreshed by another coroutine")
                return

            if self._session is None:
                msg = "No session available"
                raise SessionExpiredError(msg)

            try:
                response = await self.request(
                    "POST",
                    "/auth/refresh",
                    json={"refreshToken": self._session.refresh_token},
                    authenticated=False,
                    auto_refresh=False,
                )
            except (APIError, AuthenticationError) as e:
                msg = f"Token refresh failed: {e.message}"
                raise SessionExpiredError(msg) from e

            try:
                with reading_response("/auth/refresh"):
                    self._session = Session(
                        access_token=response["accessToken"],
                        refresh_token=response.get("refreshToken", self._session.refresh_token),
                    )
            except APIError as e:
                msg = f"Token refresh failed: {e.message}"
                raise SessionExpiredError(msg) from e

            logger.debug("Token refreshed successfully")

            if self._on_session_refreshed is not None:
                self._on_session_refreshed(self._session)

    @staticmethod
    def _raise_api_error(response: httpx.Response, data: dict[str, Any], endpoint: str) -> None:
        status = response.status_code
        error_msg = data.get("error", response.reason_phrase or "Request failed")

        if status == httpx.codes.UNAUTHORIZED:
            raise AuthenticationError(error_msg, endpoint=endpoint)
        if status == httpx.codes.NOT_FOUND:
            raise NotFoundError(error_msg, endpoint=endpoint)
        if status == httpx.codes.TOO_MANY_REQUESTS:
            retry_after = _parse_retry_after(response.headers.get("Retry-After"))
            raise RateLimitError(error_msg, retry_after=retry_after)
        if status >= httpx.codes.INTERNAL_SERVER_ERROR:
            raise ServerError(error_msg, code=status, endpoint=endpoint)

        msg = f"{error_msg} (status={status})"
        raise APIError(msg, code=status, endpoint=endpoint)
