from __future__ import annotations

import typing

import httpx

from ._progress import ListenerTypes
from ._taps import (
    AsyncProgressRequestStream,
    AsyncProgressResponseStream,
    ProgressRequestStream,
    ProgressResponseStream,
    declared_length,
)

PROGRESS_EXTENSION = "progress"


def _listeners_for(
    request: httpx.Request,
    upload: ListenerTypes | None,
    download: ListenerTypes | None,
) -> tuple[ListenerTypes | None, ListenerTypes | None]:
    overrides = request.extensions.get(PROGRESS_EXTENSION)
    if isinstance(overrides, typing.Mapping):
        upload = overrides.get("upload", upload)
        download = overrides.get("download", download)
    return upload, download


def _tapped_request(request: httpx.Request, stream: typing.Any) -> httpx.Request:
    return httpx.Request(
        request.method,
        request.url,
        headers=request.headers,
        stream=stream,
        extensions=request.extensions,
    )


class ProgressTransport(httpx.BaseTransport):
    """Transport decorator that taps request and response bodies.

    A fresh tap is built for every request body and every response body,
    so a listener shared across requests sees one complete session per
    body.  Listeners set here apply to every request; a per-request
    ``extensions={"progress": {"upload": ..., "download": ...}}`` entry
    overrides them.

    >>> transport = ProgressTransport(download=print)
    >>> with httpx.Client(transport=transport) as client:
    ...     client.get("https://example.org/")
    """

    def __init__(
        self,
        transport: httpx.BaseTransport | None = None,
        *,
        upload: ListenerTypes | None = None,
        download: ListenerTypes | None = None,
    ) -> None:
        self._transport = transport if transport is not None else httpx.HTTPTransport()
        self._upload = upload
        self._download = download

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        upload, download = _listeners_for(request, self._upload, self._download)
        if upload is not None:
            assert isinstance(request.stream, httpx.SyncByteStream)
            request = _tapped_request(
                request,
                ProgressRequestStream(
                    request.stream, upload, declared_length(request.headers)
                ),
            )

        response = self._transport.handle_request(request)
        if download is None:
            return response

        assert isinstance(response.stream, httpx.SyncByteStream)
        return httpx.Response(
            status_code=response.status_code,
            headers=response.headers,
            stream=ProgressResponseStream(
                response.stream, download, declared_length(response.headers)
            ),
            extensions=response.extensions,
            request=request,
        )

    def close(self) -> None:
        self._transport.close()


class AsyncProgressTransport(httpx.AsyncBaseTransport):
    """Async variant of :class:`ProgressTransport`."""

    def __init__(
        self,
        transport: httpx.AsyncBaseTransport | None = None,
        *,
        upload: ListenerTypes | None = None,
        download: ListenerTypes | None = None,
    ) -> None:
        self._transport = (
            transport if transport is not None else httpx.AsyncHTTPTransport()
        )
        self._upload = upload
        self._download = download

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        upload, download = _listeners_for(request, self._upload, self._download)
        if upload is not None:
            assert isinstance(request.stream, httpx.AsyncByteStream)
            request = _tapped_request(
                request,
                AsyncProgressRequestStream(
                    request.stream, upload, declared_length(request.headers)
                ),
            )

        response = await self._transport.handle_async_request(request)
        if download is None:
            return response

        assert isinstance(response.stream, httpx.AsyncByteStream)
        return httpx.Response(
            status_code=response.status_code,
            headers=response.headers,
            stream=AsyncProgressResponseStream(
                response.stream, download, declared_length(response.headers)
            ),
            extensions=response.extensions,
            request=request,
        )

    async def aclose(self) -> None:
        await self._transport.aclose()
