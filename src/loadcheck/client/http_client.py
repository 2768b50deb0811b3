"""Instrumented HTTP client with auto-timing."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

import aiohttp

from loadcheck._internal.errors import TransportError

if TYPE_CHECKING:
    from loadcheck._internal.types import Headers


@dataclass(frozen=True)
class Response:
    """A fully read HTTP response.

    Attributes:
        url: The requested URL.
        status: HTTP status code.
        body: Raw response body.
        latency_ms: Time from send to last body byte in milliseconds.
    """

    url: str
    status: int
    body: bytes
    latency_ms: float

    @property
    def body_length(self) -> int:
        """Return the number of body bytes received."""
        return len(self.body)


class HttpClient:
    """Async HTTP client wrapping ``aiohttp.ClientSession``.

    Every request is timed and the body is read before returning, so the
    caller can check it and the connection goes back to the pool.
    Failures below the HTTP layer are raised as ``TransportError``.

    One client is shared by all virtual users of a run.

    Attributes:
        headers: Headers applied to every request.
    """

    def __init__(
        self,
        headers: Headers | None = None,
        timeout: float = 30.0,
    ) -> None:
        """Initialize the HTTP client.

        Args:
            headers: Default headers applied to every request.
            timeout: Total request timeout in seconds.
        """
        self.headers: Headers = dict(headers or {})
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session: aiohttp.ClientSession | None = None

    async def __aenter__(self) -> HttpClient:
        """Open the underlying aiohttp session."""
        self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object | None,
    ) -> None:
        """Close the underlying aiohttp session."""
        if self._session is not None:
            await self._session.close()
            self._session = None

    async def get(self, url: str) -> Response:
        """Send a GET request and read the whole body.

        Args:
            url: Absolute URL to request.

        Returns:
            The read response.

        Raises:
            TransportError: If the connection fails or times out.
            RuntimeError: If the client is used outside of an async context
                manager.
        """
        if self._session is None:
            msg = "HttpClient must be used as an async context manager"
            raise RuntimeError(msg)

        start = time.monotonic()
        try:
            async with self._session.get(url, headers=self.headers) as resp:
                status = resp.status
                body = await resp.read()
        except (aiohttp.ClientError, TimeoutError) as exc:
            msg = f"{type(exc).__name__}: {exc}"
            raise TransportError(msg, url=url) from exc

        latency_ms = (time.monotonic() - start) * 1000
        return Response(url=url, status=status, body=body, latency_ms=latency_ms)
