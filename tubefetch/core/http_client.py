"""
Async HTTP client wrapper with retry logic and typed transport errors.

Requests are retried on transient network errors and on 429/500/502/503/504
responses, waiting 2**attempt seconds plus jitter (capped at 30 s, with a
429 Retry-After used as a floor). Other 4xx responses are returned at once.

The metadata pipeline runs its own endpoint-level retries and calls with
``retries=0``. stream() never retries; the download loop resumes from the
last delivered byte instead.

Error surface:
- get_text()/get_json()/stream() raise TransportError for any 4xx/5xx
  final status and for network errors that outlive the retries.
  TransportError.retryable separates "server error, retry" from
  "client error, do not retry".

Outbound source address:
- ``local_address`` binds every connection to a given IP, used to pick a
  random address from a caller-supplied IPv6 block.
"""

import asyncio
import logging
import random
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import httpx

from ..config import get_settings
from ..exceptions import TransportError

logger = logging.getLogger(__name__)

# Maximum back-off wait time (seconds) between retries
_MAX_BACKOFF = 30.0

# HTTP status codes that trigger an automatic retry
_RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}

# All httpx exception types that represent transient network problems
_NETWORK_ERRORS = (
    httpx.TimeoutException,  # base for all timeout variants
    httpx.ConnectError,
    httpx.ReadError,
    httpx.WriteError,
    httpx.PoolTimeout,
    httpx.ConnectTimeout,
    httpx.ReadTimeout,
    httpx.CloseError,
    httpx.RemoteProtocolError,
)


def _status_error(response: httpx.Response) -> TransportError:
    return TransportError(
        f"Request to {response.request.url} failed: "
        f"{response.status_code} {response.reason_phrase}",
        status_code=response.status_code,
        url=str(response.request.url),
    )


class HTTPClient:
    """
    Async HTTP client with retry logic and configurable headers.
    Wraps httpx.AsyncClient.
    """

    def __init__(
        self,
        timeout: int | None = None,
        max_retries: int | None = None,
        headers: dict[str, str] | None = None,
        follow_redirects: bool = True,
        local_address: str | None = None,
    ):
        settings = get_settings()
        self._timeout = timeout or settings.request_timeout
        self._max_retries = settings.max_retries if max_retries is None else max_retries
        self._follow_redirects = follow_redirects
        self._local_address = local_address

        default_headers = {
            "User-Agent": settings.user_agent,
            "Accept-Language": "en-US,en;q=0.5",
        }
        if headers:
            default_headers.update(headers)

        self._default_headers = default_headers
        self._client: httpx.AsyncClient | None = None

    # ------------------------------------------------------------------
    # Client lifecycle
    # ------------------------------------------------------------------

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            transport = None
            if self._local_address:
                transport = httpx.AsyncHTTPTransport(
                    local_address=self._local_address, http2=True
                )
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(
                    self._timeout,
                    connect=10.0,
                    read=self._timeout,
                    write=10.0,
                    pool=10.0,
                ),
                follow_redirects=self._follow_redirects,
                headers=self._default_headers,
                http2=True,
                transport=transport,
                limits=httpx.Limits(
                    max_connections=50,
                    max_keepalive_connections=10,
                    keepalive_expiry=30.0,
                ),
            )
        return self._client

    async def close(self):
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    # ------------------------------------------------------------------
    # Core request with retry
    # ------------------------------------------------------------------

    async def request(
        self,
        method: str,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        params: dict[str, str] | None = None,
        retries: int | None = None,
        timeout: float | None = None,
    ) -> httpx.Response:
        """
        Send one request, retrying network errors and 429/5xx responses.

        The final response is returned whatever its status; the typed
        helpers below turn error statuses into TransportError. Network
        errors that outlive *retries* raise TransportError directly.
        """
        client = await self._get_client()
        max_retries = self._max_retries if retries is None else retries
        attempts = max_retries + 1
        attempt = 0

        while True:
            last = attempt == max_retries
            try:
                response = await client.request(
                    method,
                    url,
                    headers=headers,
                    params=params,
                    timeout=timeout or httpx.USE_CLIENT_DEFAULT,
                )
            except _NETWORK_ERRORS as exc:
                if last:
                    logger.error("%s on %s %s, giving up: %s", type(exc).__name__, method, url, exc)
                    raise TransportError(
                        f"{type(exc).__name__} on {method} {url}: {exc}", url=url
                    ) from exc
                reason, wait = type(exc).__name__, self._backoff(attempt)
            else:
                if response.status_code not in _RETRYABLE_STATUS_CODES or last:
                    return response
                reason, wait = f"HTTP {response.status_code}", self._backoff(attempt, response)

            logger.warning(
                "%s from %s %s (attempt %d/%d), retrying in %.1fs",
                reason,
                method,
                url,
                attempt + 1,
                attempts,
                wait,
            )
            await asyncio.sleep(wait)
            attempt += 1

    # ------------------------------------------------------------------
    # Back-off calculation
    # ------------------------------------------------------------------

    @staticmethod
    def _backoff(
        attempt: int,
        response: httpx.Response | None = None,
    ) -> float:
        """
        Compute wait time with exponential back-off + jitter, capped.

        If *response* is a 429 with a Retry-After header, that value is
        used as a floor.
        """
        base = min((2**attempt) + random.uniform(0, 1), _MAX_BACKOFF)

        if response is not None and response.status_code == 429:
            retry_after = response.headers.get("Retry-After")
            if retry_after:
                try:
                    ra = float(retry_after)
                    base = max(base, min(ra, _MAX_BACKOFF))
                except ValueError:
                    pass

        return base

    # ------------------------------------------------------------------
    # Convenience methods
    # ------------------------------------------------------------------

    async def get(self, url: str, **kwargs) -> httpx.Response:
        return await self.request("GET", url, **kwargs)

    async def get_text(self, url: str, **kwargs) -> str:
        """GET request returning response text; raises TransportError on 4xx/5xx."""
        response = await self.get(url, **kwargs)
        if response.is_error:
            raise _status_error(response)
        return response.text

    async def get_json(self, url: str, **kwargs) -> Any:
        """GET request returning parsed JSON."""
        response = await self.get(url, **kwargs)
        if response.is_error:
            raise _status_error(response)
        return response.json()

    @asynccontextmanager
    async def stream(
        self,
        url: str,
        *,
        headers: dict[str, str] | None = None,
    ) -> AsyncIterator[httpx.Response]:
        """
        Open a streaming GET. The body is read by the caller with
        ``response.aiter_bytes()``; no retries are attempted here since a
        partially consumed body cannot be replayed transparently.
        """
        client = await self._get_client()
        try:
            async with client.stream("GET", url, headers=headers) as response:
                if response.is_error:
                    await response.aread()
                    raise _status_error(response)
                yield response
        except _NETWORK_ERRORS as exc:
            raise TransportError(f"{type(exc).__name__} on GET {url}: {exc}", url=url) from exc

    # ------------------------------------------------------------------
    # Context manager
    # ------------------------------------------------------------------

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.close()
