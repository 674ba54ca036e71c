"""
Authenticated API client with a single refresh-and-retry recovery cycle.

Every call goes through one httpx.AsyncClient whose cookie jar carries the
server-set session cookie. When a protected call (anything outside /auth/)
comes back 401, the client performs exactly one POST /auth/refresh and, if that
succeeds, repeats the original request exactly once. Whatever the retried
request returns is the final outcome.

Concurrent 401s share one in-flight refresh instead of each starting their own,
so a rotating refresh token is never spent twice.
"""
import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from types import TracebackType
from typing import Any

import httpx

from core.config import get_settings
from core.errors import (
    ApiError,
    ApiResult,
    RequestCancelledError,
    SessionExpiredError,
    error_message,
)

logger = logging.getLogger(__name__)

AUTH_PATH_PREFIX = "/auth/"
REFRESH_PATH = "/auth/refresh"
DEFAULT_TIMEOUT = 30.0
JSON_HEADERS = {"Content-Type": "application/json"}

SessionExpiredHook = Callable[[SessionExpiredError], Awaitable[None]]


@dataclass
class _Exchange:
    """Raw status and parsed body of one HTTP round trip."""

    status: int
    data: Any

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


def parse_body(text: str) -> Any:
    """
    Parse a response body.

    Empty bodies become None, JSON is decoded, and anything else is wrapped as
    {"message": text} so error messages from plain-text responses survive.
    """
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        return {"message": text}


def is_refreshable(path: str) -> bool:
    """Identity endpoints never trigger the refresh cycle."""
    return not path.startswith(AUTH_PATH_PREFIX)


def _discard(task: asyncio.Future) -> None:
    """Cancel a task whose result nobody will read, without leaking its exception."""
    task.cancel()
    task.add_done_callback(lambda t: t.cancelled() or t.exception())


class ApiClient:
    """Low-level request executor. Knows nothing about application semantics."""

    def __init__(
        self,
        base_url: str | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        on_session_expired: SessionExpiredHook | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.base_url = (base_url or get_settings().base_url).rstrip("/")
        # Invoked once per failed refresh; the client itself never touches the session marker
        self.on_session_expired = on_session_expired
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            transport=transport,
            timeout=timeout,
        )
        self._refresh_task: asyncio.Task | None = None

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    @property
    def cookies(self) -> httpx.Cookies:
        """Cookie jar shared by every call."""
        return self._client.cookies

    async def request(
        self,
        path: str,
        method: str = "GET",
        body: Any = None,
        headers: dict[str, str] | None = None,
        signal: asyncio.Event | None = None,
    ) -> Any:
        """
        Perform a JSON request and return the parsed body.

        Raises:
            ApiError: On HTTP or transport failure.
            SessionExpiredError: When a 401 could not be recovered by refreshing.
            RequestCancelledError: When `signal` fires before a result is available.
        """
        result = await self.send(path, method=method, body=body, headers=headers, signal=signal)
        return result.unwrap()

    async def send(
        self,
        path: str,
        method: str = "GET",
        body: Any = None,
        headers: dict[str, str] | None = None,
        signal: asyncio.Event | None = None,
    ) -> ApiResult:
        """
        Perform a JSON request and return its outcome as an ApiResult.

        API failures are captured in the result rather than raised. Cancellation
        is not a failure and still raises RequestCancelledError.
        """
        self._check_cancelled(path, signal)
        try:
            exchange = await self._until_cancelled(
                self._exchange(method, path, body, headers), path, signal,
            )
            if exchange.status == 401 and is_refreshable(path):
                # The refresh is shielded: a caller giving up must not abort a
                # refresh other callers may be waiting on
                refreshed = await self._until_cancelled(
                    asyncio.shield(self._shared_refresh()), path, signal,
                )
                if not refreshed.ok:
                    return refreshed
                self._check_cancelled(path, signal)
                exchange = await self._until_cancelled(
                    self._exchange(method, path, body, headers), path, signal,
                )
        except httpx.RequestError as e:
            logger.warning(
                "api_transport_failed",
                extra={"method": method, "path": path, "error": str(e)},
            )
            return ApiResult.failure(ApiError(str(e) or "Network request failed"))

        if not exchange.ok:
            message = error_message(exchange.data, f"Request failed with status {exchange.status}")
            return ApiResult.failure(ApiError(message, exchange.status, exchange.data))
        return ApiResult(data=exchange.data, status=exchange.status)

    async def upload(
        self,
        path: str,
        files: dict[str, Any],
        data: dict[str, Any] | None = None,
        signal: asyncio.Event | None = None,
    ) -> Any:
        """
        POST a multipart payload and return the parsed body.

        Shares the error classification of `request` but never refreshes and
        retries: resubmitting a file after a 401 is not safe, so a 401 here is a
        terminal failure. Content-Type is left to httpx so it can set the boundary.
        """
        self._check_cancelled(path, signal)
        try:
            response = await self._until_cancelled(
                self._client.post(path, files=files, data=data), path, signal,
            )
        except httpx.RequestError as e:
            logger.warning("api_upload_failed", extra={"path": path, "error": str(e)})
            raise ApiError(str(e) or "Upload failed") from e

        body = parse_body(response.text)
        if not response.is_success:
            message = error_message(body, f"Upload failed with status {response.status_code}")
            raise ApiError(message, response.status_code, body)
        return body

    async def _exchange(
        self,
        method: str,
        path: str,
        body: Any,
        headers: dict[str, str] | None,
    ) -> _Exchange:
        request_headers = {**JSON_HEADERS, **(headers or {})}
        content = json.dumps(body) if body is not None else None
        response = await self._client.request(
            method, path, content=content, headers=request_headers,
        )
        logger.debug(
            "api_request",
            extra={"method": method, "path": path, "status": response.status_code},
        )
        return _Exchange(response.status_code, parse_body(response.text))

    def _shared_refresh(self) -> asyncio.Task:
        """Return the in-flight refresh, starting one if none is running."""
        if self._refresh_task is None:
            task = asyncio.ensure_future(self._refresh())
            task.add_done_callback(self._refresh_finished)
            self._refresh_task = task
        return self._refresh_task

    def _refresh_finished(self, task: asyncio.Task) -> None:
        if self._refresh_task is task:
            self._refresh_task = None
        # Mark the exception retrieved even if every waiter gave up
        if not task.cancelled():
            task.exception()

    async def _refresh(self) -> ApiResult:
        logger.info("session_refresh_started")
        exchange = await self._exchange("POST", REFRESH_PATH, None, None)
        if exchange.ok:
            logger.info("session_refreshed")
            return ApiResult(data=exchange.data, status=exchange.status)

        error = SessionExpiredError(
            error_message(exchange.data, "Session expired"), exchange.status, exchange.data,
        )
        logger.warning("session_expired", extra={"status": exchange.status})
        if self.on_session_expired is not None:
            await self.on_session_expired(error)
        return ApiResult.failure(error)

    @staticmethod
    def _check_cancelled(path: str, signal: asyncio.Event | None) -> None:
        if signal is not None and signal.is_set():
            raise RequestCancelledError(path)

    @staticmethod
    async def _until_cancelled(
        awaitable: Awaitable[Any],
        path: str,
        signal: asyncio.Event | None,
    ) -> Any:
        """Await `awaitable`, abandoning it if `signal` fires first."""
        if signal is None:
            return await awaitable

        task = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(signal.wait())
        try:
            done, _ = await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            _discard(task)
            waiter.cancel()
            raise

        if task in done:
            waiter.cancel()
            return task.result()
        _discard(task)
        raise RequestCancelledError(path)
