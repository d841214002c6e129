from __future__ import annotations

import logging
import os
import typing

import httpx

from ._progress import ListenerTypes
from ._taps import ProgressRequestStream, ProgressResponseStream, declared_length
from ._transports import _tapped_request

logger = logging.getLogger("httptap.transfer")


def download(
    client: httpx.Client,
    url: str | httpx.URL,
    path: str | os.PathLike[str],
    listener: ListenerTypes | None = None,
    *,
    chunk_size: int = 64 * 1024,
    **kwargs: typing.Any,
) -> httpx.Response:
    """Stream a GET response body to ``path``, reporting progress on the way.

    Progress counts the bytes received on the wire, which is what the
    ``Content-Length`` header declares.  Raises
    :class:`httpx.HTTPStatusError` before writing anything if the
    response is not successful.
    """
    with client.stream("GET", url, **kwargs) as response:
        response.raise_for_status()
        if listener is not None:
            response.stream = ProgressResponseStream(
                typing.cast(httpx.SyncByteStream, response.stream),
                listener,
                declared_length(response.headers),
            )
        with open(path, "wb") as f:
            for chunk in response.iter_bytes(chunk_size):
                f.write(chunk)
    logger.debug("Downloaded %s to %s", response.url, path)
    return response


class _UploadProgressAuth(httpx.Auth):
    """Tap the body of every request an auth flow sends.

    Auth flows that need the request body read it before anything goes
    out, so the tap is installed on each request the flow yields rather
    than on the request handed to it.
    """

    def __init__(self, auth: httpx.Auth, listener: ListenerTypes) -> None:
        self._auth = auth
        self._listener = listener
        self.requires_request_body = auth.requires_request_body
        self.requires_response_body = auth.requires_response_body

    def _tap(self, request: httpx.Request) -> httpx.Request:
        return _tapped_request(
            request,
            ProgressRequestStream(
                typing.cast(httpx.SyncByteStream, request.stream),
                self._listener,
                declared_length(request.headers),
            ),
        )

    def sync_auth_flow(
        self, request: httpx.Request
    ) -> typing.Generator[httpx.Request, httpx.Response, None]:
        flow = self._auth.sync_auth_flow(request)
        try:
            request = next(flow)
            while True:
                response = yield self._tap(request)
                try:
                    request = flow.send(response)
                except StopIteration:
                    return
        finally:
            flow.close()


def upload(
    client: httpx.Client,
    url: str | httpx.URL,
    path: str | os.PathLike[str],
    listener: ListenerTypes | None = None,
    *,
    field: str = "file",
    data: dict[str, typing.Any] | None = None,
    content_type: str = "application/octet-stream",
    method: str = "POST",
    auth: httpx.Auth | None = None,
    **kwargs: typing.Any,
) -> httpx.Response:
    """Send ``path`` as a multipart form upload, reporting progress.

    The listener sees the whole encoded multipart body, form fields and
    boundaries included, so its total matches the request's
    ``Content-Length``.  ``auth`` defaults to the client's own.  A request
    retried after a 401 is a new transfer and starts a new session.
    """
    filename = os.path.basename(os.fspath(path))
    if auth is None:
        auth = client.auth
    with open(path, "rb") as f:
        request = client.build_request(
            method,
            url,
            data=data,
            files={field: (filename, f, content_type)},
            **kwargs,
        )
        if listener is not None:
            auth = _UploadProgressAuth(auth or httpx.Auth(), listener)
        response = client.send(request, auth=auth)
    logger.debug("Uploaded %s to %s", path, response.url)
    return response
