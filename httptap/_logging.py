from __future__ import annotations

import logging
import time
import typing

import httpx

_default_logger = logging.getLogger("httptap.interceptors")

SENSITIVE_HEADERS = frozenset(
    {"authorization", "proxy-authorization", "cookie", "set-cookie"}
)

_START_EXTENSION = "httptap.start"


def format_headers(headers: httpx.Headers) -> str:
    """Render headers one per line, masking credentials and cookies."""
    lines = []
    for name, value in headers.multi_items():
        if name.lower() in SENSITIVE_HEADERS:
            value = "[redacted]"
        lines.append(f"{name}: {value}")
    return "\n".join(lines)


def _log_request(log: logging.Logger, request: httpx.Request, via: str) -> None:
    log.info(
        "Sending request %s %s%s\n%s",
        request.method,
        request.url,
        via,
        format_headers(request.headers),
    )


def _log_response(
    log: logging.Logger, response: httpx.Response, elapsed: float | None
) -> None:
    if elapsed is None:
        log.info(
            "Received response for %s\n%s",
            response.request.url,
            format_headers(response.headers),
        )
        return
    log.info(
        "Received response for %s in %.1fms\n%s",
        response.request.url,
        elapsed * 1000,
        format_headers(response.headers),
    )


def _elapsed(request: httpx.Request) -> float | None:
    start = request.extensions.get(_START_EXTENSION)
    if isinstance(start, float):
        return time.perf_counter() - start
    return None


# ---------------------------------------------------------------------------
# Application-level interceptor (event hooks)
# ---------------------------------------------------------------------------


def logging_event_hooks(
    logger: logging.Logger | None = None,
) -> dict[str, list[typing.Callable[..., typing.Any]]]:
    """Create httpx event hooks that log each request and its final response.

    Hooks run in the client, above any transport stack, so they also log
    responses served from a cache.  Use :class:`LoggingTransport` below a
    cache transport to log only what actually reaches the network.

    >>> client = httpx.Client(event_hooks=logging_event_hooks(my_logger))
    """
    log = logger or _default_logger

    def on_request(request: httpx.Request) -> None:
        request.extensions[_START_EXTENSION] = time.perf_counter()
        _log_request(log, request, "")

    def on_response(response: httpx.Response) -> None:
        _log_response(log, response, _elapsed(response.request))

    return {"request": [on_request], "response": [on_response]}


def async_logging_event_hooks(
    logger: logging.Logger | None = None,
) -> dict[str, list[typing.Callable[..., typing.Any]]]:
    """Async variant of :func:`logging_event_hooks` for ``httpx.AsyncClient``."""
    log = logger or _default_logger

    async def on_request(request: httpx.Request) -> None:
        request.extensions[_START_EXTENSION] = time.perf_counter()
        _log_request(log, request, "")

    async def on_response(response: httpx.Response) -> None:
        _log_response(log, response, _elapsed(response.request))

    return {"request": [on_request], "response": [on_response]}


# ---------------------------------------------------------------------------
# Network-level interceptor (transport)
# ---------------------------------------------------------------------------


class LoggingTransport(httpx.BaseTransport):
    """Transport decorator that logs every request put on the wire."""

    def __init__(
        self,
        transport: httpx.BaseTransport | None = None,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self._transport = transport if transport is not None else httpx.HTTPTransport()
        self._logger = logger or _default_logger

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        _log_request(self._logger, request, f" via {type(self._transport).__name__}")
        start = time.perf_counter()
        response = self._transport.handle_request(request)
        response.request = request
        _log_response(self._logger, response, time.perf_counter() - start)
        return response

    def close(self) -> None:
        self._transport.close()


class AsyncLoggingTransport(httpx.AsyncBaseTransport):
    """Async variant of :class:`LoggingTransport`."""

    def __init__(
        self,
        transport: httpx.AsyncBaseTransport | None = None,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self._transport = (
            transport if transport is not None else httpx.AsyncHTTPTransport()
        )
        self._logger = logger or _default_logger

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        _log_request(self._logger, request, f" via {type(self._transport).__name__}")
        start = time.perf_counter()
        response = await self._transport.handle_async_request(request)
        response.request = request
        _log_response(self._logger, response, time.perf_counter() - start)
        return response

    async def aclose(self) -> None:
        await self._transport.aclose()
