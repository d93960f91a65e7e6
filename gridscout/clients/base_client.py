import json
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx
from loguru import logger
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from gridscout.config.settings import AppSettings
from gridscout.utils.misc_utils import truncate

# Define common HTTP status codes that warrant a retry
RETRYABLE_STATUS_CODES = {408, 429, 500, 502, 503, 504}


class GridError(Exception):
    """Base exception for GRID upstream errors."""

    pass


class UpstreamUnavailable(GridError):
    """Transport-level failure: non-2xx, empty body, unparseable body, network error."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class UpstreamTimeout(UpstreamUnavailable):
    """The request (or the whole run's deadline) timed out."""

    pass


class UpstreamNotFound(UpstreamUnavailable):
    """HTTP 404 from an upstream endpoint."""

    pass


class RateLimitError(UpstreamUnavailable):
    """Exception raised for rate limit errors (429)."""

    pass


class RetryableStatusError(UpstreamUnavailable):
    """5xx/408 response, retried before being surfaced as UpstreamUnavailable."""

    pass


class AuthenticationError(GridError):
    """Exception raised for authentication failures (401, 403)."""

    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.status_code = status_code


class UpstreamQueryError(GridError):
    """A well-formed GraphQL response carrying an ``errors`` array."""

    def __init__(self, where: str, messages: List[str]):
        self.where = where
        self.messages = messages
        super().__init__(f"{where}: {', '.join(messages) or 'unknown GraphQL error'}")

    def mentions_not_found(self) -> bool:
        text = " ".join(self.messages).lower()
        return "not found" in text or "does not exist" in text


@dataclass
class CallContext:
    """Deadline shared by every upstream call of one scout run.

    Each request's timeout is capped by the time remaining, and calls made after
    the deadline fail immediately with :class:`UpstreamTimeout`.
    """

    deadline: Optional[float] = None

    @classmethod
    def with_timeout(cls, seconds: Optional[float]) -> "CallContext":
        if seconds is None:
            return cls()
        return cls(deadline=time.monotonic() + seconds)

    def remaining(self) -> Optional[float]:
        if self.deadline is None:
            return None
        return self.deadline - time.monotonic()

    @property
    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0

    def check(self, where: str) -> None:
        if self.expired:
            raise UpstreamTimeout(f"{where}: deadline exceeded")


def decode_json(response: httpx.Response, where: str) -> Any:
    """Strict JSON decoding: empty or malformed bodies are transport failures."""
    text = response.text
    if not text or not text.strip():
        raise UpstreamUnavailable(f"{where}: EMPTY_BODY", response.status_code)
    try:
        return json.loads(text)
    except ValueError as e:
        raise UpstreamUnavailable(
            f"{where}: JSON_PARSE_FAILED:{e}", response.status_code
        ) from e


class BaseGridClient:
    """Shared HTTP plumbing for the GRID Central Data, Series State and File Download APIs."""

    service_name: str = "grid"

    def __init__(
        self,
        app_settings: AppSettings,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.settings = app_settings
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(app_settings.grid_request_timeout),
            follow_redirects=True,
        )
        self.retry_attempts = app_settings.grid_retry_attempts
        self.retry_wait_max = app_settings.grid_retry_wait_max

    def _auth_headers(self) -> Dict[str, str]:
        return {"x-api-key": self.settings.grid_api_key or ""}

    def _request_timeout(self, ctx: Optional[CallContext]) -> float:
        timeout = self.settings.grid_request_timeout
        remaining = ctx.remaining() if ctx else None
        if remaining is not None:
            timeout = max(0.001, min(timeout, remaining))
        return timeout

    async def _make_request(
        self,
        method: str,
        url: str,
        ctx: Optional[CallContext] = None,
        where: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, Any]] = None,
        json_data: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        """Makes an asynchronous HTTP request with retry logic.

        Returns the response for 2xx statuses; every other outcome is raised as a
        :class:`GridError` subclass.
        """
        where = where or f"{self.service_name} {method} {url}"
        request_headers = {**self._auth_headers(), **(headers or {})}

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.retry_attempts),
            wait=wait_exponential(multiplier=0.5, min=0, max=self.retry_wait_max),
            retry=retry_if_exception_type(
                (httpx.TransportError, RateLimitError, RetryableStatusError)
            ),
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    if ctx:
                        ctx.check(where)
                    return await self._send_once(
                        method,
                        url,
                        where,
                        headers=request_headers,
                        params=params,
                        json_data=json_data,
                        timeout=self._request_timeout(ctx),
                    )
        except httpx.TimeoutException as e:
            logger.warning(f"Timeout calling {where}: {e}")
            raise UpstreamTimeout(f"{where}: timeout") from e
        except httpx.TransportError as e:
            logger.error(f"Transport error calling {where}: {e}")
            raise UpstreamUnavailable(f"{where}: {type(e).__name__}: {e}") from e
        raise UpstreamUnavailable(f"{where}: no attempt was made")  # pragma: no cover

    async def _send_once(
        self,
        method: str,
        url: str,
        where: str,
        headers: Dict[str, str],
        params: Optional[Dict[str, Any]],
        json_data: Optional[Dict[str, Any]],
        timeout: float,
    ) -> httpx.Response:
        logger.debug(f"Making request to {where}", method=method, url=url, params=params)
        response = await self.client.request(
            method,
            url,
            headers=headers,
            params=params,
            json=json_data,
            timeout=timeout,
        )
        status = response.status_code

        if status in {401, 403}:
            logger.warning(f"Authentication error ({status}) at {where}. Check GRID_API_KEY entitlements.")
            # Don't retry auth errors, raise specific exception
            raise AuthenticationError(f"{where}: HTTP_{status}", status)

        if status == 429:
            retry_after = response.headers.get("Retry-After")
            logger.warning(f"Rate limit hit (429) at {where}. Retry-After: {retry_after}")
            raise RateLimitError(f"{where}: HTTP_429", status)

        if status == 404:
            raise UpstreamNotFound(f"{where}: HTTP_404", status)

        if status in RETRYABLE_STATUS_CODES:
            logger.warning(f"Retryable status {status} at {where}")
            raise RetryableStatusError(f"{where}: HTTP_{status}", status)

        if status >= 400:
            logger.error(f"HTTP error at {where}: {status} - {truncate(response.text, 100)}")
            raise UpstreamUnavailable(f"{where}: HTTP_{status}", status)

        logger.debug(f"Request successful: {status} for {where}")
        return response

    async def _graphql(
        self,
        url: str,
        query: str,
        variables: Optional[Dict[str, Any]] = None,
        ctx: Optional[CallContext] = None,
        where: str = "graphql",
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"query": query}
        if variables:
            payload["variables"] = variables
        response = await self._make_request(
            "POST",
            url,
            ctx=ctx,
            where=where,
            headers={"Content-Type": "application/json"},
            json_data=payload,
        )
        body = decode_json(response, where)
        if not isinstance(body, dict):
            raise UpstreamUnavailable(f"{where}: UNEXPECTED_BODY", response.status_code)

        errors = body.get("errors")
        if errors:
            messages = [
                str(err.get("message", err)) if isinstance(err, dict) else str(err)
                for err in errors
            ]
            logger.error(f"GraphQL error at {where}: {', '.join(messages)}")
            raise UpstreamQueryError(where, messages)

        return body.get("data") or {}

    async def close(self):
        """Closes the underlying HTTP client when this instance created it."""
        if self._owns_client:
            await self.client.aclose()
            logger.debug(f"Closed HTTP client for {self.service_name}")
