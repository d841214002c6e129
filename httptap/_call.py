from __future__ import annotations

import logging
import threading
import typing
import weakref
from collections.abc import Iterator

import anyio
import httpx

from ._exceptions import CallCancelled

logger = logging.getLogger("httptap.call")


class _CancellableStream(httpx.SyncByteStream):
    def __init__(self, stream: httpx.SyncByteStream, call: Call) -> None:
        self._stream = stream
        self._call = call

    def __iter__(self) -> Iterator[bytes]:
        self._call._raise_if_cancelled()
        for chunk in self._stream:
            self._call._raise_if_cancelled()
            yield chunk

    def close(self) -> None:
        self._stream.close()


class Call:
    """A single request that can be cancelled from another thread.

    ``execute()`` sends the request and reads the whole body.  ``cancel()``
    may be called at any time from any thread; the executing thread
    notices at its next I/O boundary (before sending, after the headers
    arrive, or between body chunks) and raises :class:`CallCancelled`.
    Waiting for the response headers is bounded by the client's timeout,
    not by cancellation.

    >>> call = Call(client, client.build_request("GET", url))
    >>> threading.Timer(1.0, call.cancel).start()
    >>> call.execute()
    """

    def __init__(self, client: httpx.Client, request: httpx.Request) -> None:
        self.client = client
        self.request = request
        self._cancelled = threading.Event()
        self._lock = threading.Lock()
        self._executed = False

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def is_executed(self) -> bool:
        return self._executed

    def cancel(self) -> None:
        if not self._cancelled.is_set():
            logger.debug("Cancelling %s %s", self.request.method, self.request.url)
        self._cancelled.set()

    def _raise_if_cancelled(self) -> None:
        if self._cancelled.is_set():
            raise CallCancelled(request=self.request)

    def execute(self) -> httpx.Response:
        with self._lock:
            if self._executed:
                raise RuntimeError("Call has already been executed.")
            self._executed = True

        self._raise_if_cancelled()
        response = self.client.send(self.request, stream=True)
        try:
            response.stream = _CancellableStream(
                typing.cast(httpx.SyncByteStream, response.stream), self
            )
            response.read()
        finally:
            response.close()
        return response


class AsyncCall:
    """Async counterpart of :class:`Call`.

    Cancellation goes through an :class:`anyio.CancelScope`, so it also
    interrupts a pending wait for response headers.  ``cancel()`` must be
    called from the event loop running ``execute()``; from another thread
    use ``anyio.from_thread.run_sync(call.cancel)``.
    """

    def __init__(self, client: httpx.AsyncClient, request: httpx.Request) -> None:
        self.client = client
        self.request = request
        self._scope: anyio.CancelScope | None = None
        self._cancelled = False
        self._executed = False

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

    @property
    def is_executed(self) -> bool:
        return self._executed

    def cancel(self) -> None:
        if not self._cancelled:
            logger.debug("Cancelling %s %s", self.request.method, self.request.url)
        self._cancelled = True
        if self._scope is not None:
            self._scope.cancel()

    async def execute(self) -> httpx.Response:
        if self._executed:
            raise RuntimeError("Call has already been executed.")
        self._executed = True
        if self._cancelled:
            raise CallCancelled(request=self.request)

        response: httpx.Response | None = None
        with anyio.CancelScope() as scope:
            self._scope = scope
            response = await self.client.send(self.request)
        self._scope = None

        if scope.cancelled_caught or response is None:
            raise CallCancelled(request=self.request)
        return response


class Dispatcher:
    """Creates calls and keeps track of them so they can be cancelled together."""

    def __init__(self) -> None:
        self._calls: weakref.WeakSet[Call | AsyncCall] = weakref.WeakSet()
        self._lock = threading.Lock()

    def new_call(self, client: httpx.Client, request: httpx.Request) -> Call:
        call = Call(client, request)
        with self._lock:
            self._calls.add(call)
        return call

    def new_async_call(
        self, client: httpx.AsyncClient, request: httpx.Request
    ) -> AsyncCall:
        call = AsyncCall(client, request)
        with self._lock:
            self._calls.add(call)
        return call

    @property
    def calls(self) -> list[Call | AsyncCall]:
        with self._lock:
            return list(self._calls)

    def cancel_all(self) -> None:
        for call in self.calls:
            call.cancel()
