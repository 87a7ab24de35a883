"""HTTP clients that execute ``Api`` objects.

``UrllibClient`` blocks on ``urllib.request``; ``HttpxAsyncClient`` awaits an
``httpx.AsyncClient``. Both send exactly one request per ``execute`` call,
never follow redirects and never retry.
"""

from __future__ import annotations

import logging
from http.client import HTTPException
from typing import Any, Protocol, TypeVar
from urllib import request as urllib_request
from urllib.error import HTTPError, URLError

import httpx

from onedrive_api.errors import TransportFailure
from onedrive_api.graph.api import Api, Headers, RawRequest, RawResponse

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Client(Protocol):
    """Anything able to run an Api synchronously."""

    def execute(self, api: Api[T]) -> T: ...


class AsyncClient(Protocol):
    """Anything able to run an Api asynchronously."""

    async def execute(self, api: Api[T]) -> T: ...


class _NoRedirectHandler(urllib_request.HTTPRedirectHandler):
    """Surface 3xx responses instead of following them."""

    def redirect_request(self, req, fp, code, msg, headers, newurl):  # type: ignore[no-untyped-def]
        return None


def _transport_failure(raw: RawRequest, exc: Exception) -> TransportFailure:
    logger.error("[send] request failed without response; url:%s", raw.url)
    return TransportFailure(f"{raw.method} {raw.url} failed: {exc}")


class UrllibClient:
    """Blocking client built on ``urllib.request``."""

    def __init__(self, timeout: float | None = None) -> None:
        """Initialise the client.

        Args:
            timeout: Socket timeout in seconds, or None for the global default.
        """
        self._timeout = timeout
        self._opener = urllib_request.build_opener(_NoRedirectHandler())

    def send(self, raw: RawRequest) -> RawResponse:
        """Perform one HTTP exchange.

        Non-2xx statuses are returned as responses, not raised.

        Raises:
            TransportFailure: If no HTTP response was received.
        """
        req = urllib_request.Request(
            raw.url,
            data=raw.body,
            headers=raw.headers,
            method=raw.method,
        )
        logger.debug("[send] %s %s", raw.method, raw.url)
        kwargs: dict[str, Any] = {}
        if self._timeout is not None:
            kwargs["timeout"] = self._timeout
        try:
            with self._opener.open(req, **kwargs) as resp:
                return RawResponse(
                    status=resp.status,
                    headers=Headers(resp.headers.items()),
                    body=resp.read(),
                )
        except HTTPError as exc:
            # HTTPError is also the response object for error statuses.
            headers = exc.headers.items() if exc.headers is not None else ()
            try:
                body = exc.read() if exc.fp is not None else b""
            except (OSError, HTTPException) as read_exc:
                raise _transport_failure(raw, read_exc) from read_exc
            return RawResponse(status=exc.code, headers=Headers(headers), body=body)
        except (URLError, OSError, HTTPException) as exc:
            raise _transport_failure(raw, exc) from exc

    def execute(self, api: Api[T]) -> T:
        return api.parse(self.send(api.to_request()))


class HttpxAsyncClient:
    """Asynchronous client built on ``httpx.AsyncClient``."""

    def __init__(self, http_client: httpx.AsyncClient | None = None) -> None:
        """Initialise the client.

        Args:
            http_client: Client to send requests with. When omitted, one is
                created and closed by ``aclose``.
        """
        self._owned = http_client is None
        self._http = http_client or httpx.AsyncClient(follow_redirects=False, timeout=30.0)

    async def send(self, raw: RawRequest) -> RawResponse:
        logger.debug("[send] %s %s", raw.method, raw.url)
        try:
            resp = await self._http.request(
                raw.method,
                raw.url,
                headers=raw.headers,
                content=raw.body,
                follow_redirects=False,
            )
        except httpx.HTTPError as exc:
            logger.error("[send] request failed without response; url:%s", raw.url)
            raise TransportFailure(f"{raw.method} {raw.url} failed: {exc}") from exc
        return RawResponse(
            status=resp.status_code,
            headers=Headers(resp.headers.multi_items()),
            body=resp.content,
        )

    async def execute(self, api: Api[T]) -> T:
        return api.parse(await self.send(api.to_request()))

    async def aclose(self) -> None:
        if self._owned:
            await self._http.aclose()

    async def __aenter__(self) -> HttpxAsyncClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
