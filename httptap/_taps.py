"""
Byte-counting stream decorators.

A *tap* sits between a caller and a stream it does not own, passes every
byte through untouched, and reports cumulative progress to a listener.
Two directions share one :class:`~httptap.TransferSession`:

* read side: :class:`ProgressReader` for file-like sources and
  :class:`ProgressResponseStream` / :class:`AsyncProgressResponseStream`
  for httpx response bodies (downloads);
* write side: :class:`ProgressWriter` for file-like sinks and
  :class:`ProgressRequestStream` / :class:`AsyncProgressRequestStream`
  for httpx request bodies (uploads).

Each instance covers exactly one transfer.  Build a new one per body.
"""

from __future__ import annotations

import typing
from collections.abc import AsyncIterator, Callable, Iterator

import httpx

from ._exceptions import TransferStateError
from ._progress import UNKNOWN_LENGTH, ListenerTypes, TransferSession

TotalSizeTypes = typing.Union[int, None, Callable[[], typing.Optional[int]]]


def declared_length(headers: httpx.Headers) -> int:
    """Return the ``Content-Length`` of a message, or :data:`UNKNOWN_LENGTH`."""
    value = headers.get("content-length")
    if value is None:
        return UNKNOWN_LENGTH
    try:
        length = int(value.strip())
    except ValueError:
        return UNKNOWN_LENGTH
    return length if length >= 0 else UNKNOWN_LENGTH


def _byte_count(data: typing.Any) -> int:
    if isinstance(data, (bytes, bytearray)):
        return len(data)
    return memoryview(data).nbytes


# ---------------------------------------------------------------------------
# Read side
# ---------------------------------------------------------------------------


class ProgressReader:
    """Wrap a readable binary source and report each read.

    ``total_size`` is fixed when the reader is built; pass ``None`` or
    :data:`UNKNOWN_LENGTH` when the length is not known in advance.

    >>> with open("big.iso", "rb") as f:
    ...     reader = ProgressReader(f, listener, total_size=os.path.getsize("big.iso"))
    ...     while reader.read(65536):
    ...         pass
    """

    def __init__(
        self,
        source: typing.Any,
        listener: ListenerTypes,
        total_size: int | None = UNKNOWN_LENGTH,
    ) -> None:
        self._source = source
        self._session = TransferSession(
            listener, UNKNOWN_LENGTH if total_size is None else total_size
        )

    @property
    def session(self) -> TransferSession:
        return self._session

    def read(self, size: int = -1) -> bytes | None:
        try:
            data = self._source.read(size)
        except BaseException:
            self._session.fail()
            raise
        if data is None:
            return data
        if not self._session.is_closed:
            if not data and size != 0:
                self._session.complete()
            else:
                self._session.advance(len(data))
        return data

    def readinto(self, buffer: typing.Any) -> int:
        try:
            count = self._source.readinto(buffer)
        except BaseException:
            self._session.fail()
            raise
        if count is None:
            # Non-blocking source with nothing available yet.
            return count
        if not self._session.is_closed:
            if count == 0 and _byte_count(buffer) > 0:
                self._session.complete()
            else:
                self._session.advance(count)
        return count

    def close(self) -> None:
        self._source.close()

    def __enter__(self) -> ProgressReader:
        return self

    def __exit__(self, *args: typing.Any) -> None:
        self.close()

    def __getattr__(self, name: str) -> typing.Any:
        return getattr(self._source, name)


class ProgressResponseStream(httpx.SyncByteStream):
    """Download tap over a sync httpx response body.

    Every chunk the underlying stream yields counts as one read; running
    out of chunks is end-of-stream and produces the single ``done=True``
    notification.
    """

    def __init__(
        self,
        stream: httpx.SyncByteStream,
        listener: ListenerTypes,
        total_size: int = UNKNOWN_LENGTH,
    ) -> None:
        self._stream = stream
        self._session = TransferSession(listener, total_size)

    @property
    def session(self) -> TransferSession:
        return self._session

    def __iter__(self) -> Iterator[bytes]:
        iterator = iter(self._stream)
        while True:
            try:
                chunk = next(iterator)
            except StopIteration:
                self._session.complete()
                return
            except BaseException:
                self._session.fail()
                raise
            self._session.advance(len(chunk))
            yield chunk

    def close(self) -> None:
        self._stream.close()


class AsyncProgressResponseStream(httpx.AsyncByteStream):
    """Async variant of :class:`ProgressResponseStream`."""

    def __init__(
        self,
        stream: httpx.AsyncByteStream,
        listener: ListenerTypes,
        total_size: int = UNKNOWN_LENGTH,
    ) -> None:
        self._stream = stream
        self._session = TransferSession(listener, total_size)

    @property
    def session(self) -> TransferSession:
        return self._session

    async def __aiter__(self) -> AsyncIterator[bytes]:
        iterator = self._stream.__aiter__()
        while True:
            try:
                chunk = await iterator.__anext__()
            except StopAsyncIteration:
                self._session.complete()
                return
            except BaseException:
                self._session.fail()
                raise
            self._session.advance(len(chunk))
            yield chunk

    async def aclose(self) -> None:
        await self._stream.aclose()


# ---------------------------------------------------------------------------
# Write side
# ---------------------------------------------------------------------------


class _WriteProgress:
    """Shared write-side bookkeeping.

    The declared total is resolved on the first recorded write and cached.
    With a known total, ``done`` is reported by the write that reaches it.
    With an unknown total, only :meth:`finish` can report ``done``.
    """

    def __init__(self, listener: ListenerTypes, total_size: TotalSizeTypes) -> None:
        self._total_source = total_size
        self._resolved = False
        self.session = TransferSession(listener, UNKNOWN_LENGTH)

    def _resolve_total(self) -> None:
        if self._resolved:
            return
        self._resolved = True
        source = self._total_source
        total = source() if callable(source) else source
        self.session.total_size = (
            total if total is not None and total >= 0 else UNKNOWN_LENGTH
        )

    def record(self, count: int) -> None:
        self._resolve_total()
        session = self.session
        if session.is_closed:
            return
        written = session.bytes_transferred + count
        session.advance(
            count, done=session.length_known and written == session.total_size
        )

    def finish(self) -> None:
        self._resolve_total()
        self.session.complete()

    def fail(self) -> None:
        self.session.fail()


class ProgressWriter:
    """Wrap a writable binary sink and report each confirmed write.

    The delegate write happens first; progress is only reported once it
    returns.  Call :meth:`finish` after the last write (or use the writer
    as a context manager) to flush the sink and, when the total is
    unknown, to report completion.

    ``total_size`` may be an ``int``, ``None``/:data:`UNKNOWN_LENGTH`, or a
    zero-argument callable evaluated once on the first write.
    """

    def __init__(
        self,
        sink: typing.Any,
        listener: ListenerTypes,
        total_size: TotalSizeTypes = UNKNOWN_LENGTH,
    ) -> None:
        self._sink = sink
        self._progress = _WriteProgress(listener, total_size)
        self._finished = False

    @property
    def session(self) -> TransferSession:
        return self._progress.session

    def write(self, data: typing.Any) -> int:
        if self._finished:
            raise TransferStateError("write() called after finish().")
        try:
            result = self._sink.write(data)
        except BaseException:
            self._progress.fail()
            raise
        count = result if isinstance(result, int) else _byte_count(data)
        self._progress.record(count)
        return count

    def flush(self) -> None:
        flush = getattr(self._sink, "flush", None)
        if flush is None:
            return
        try:
            flush()
        except BaseException:
            self._progress.fail()
            raise

    def finish(self) -> None:
        """Flush the sink and report completion if it was not reported yet."""
        if self._finished:
            return
        self.flush()
        self._finished = True
        self._progress.finish()

    def __enter__(self) -> ProgressWriter:
        return self

    def __exit__(self, exc_type: typing.Any, *args: typing.Any) -> None:
        if exc_type is None:
            self.finish()
        else:
            self._progress.fail()

    def __getattr__(self, name: str) -> typing.Any:
        return getattr(self._sink, name)


class ProgressRequestStream(httpx.SyncByteStream):
    """Upload tap over a sync httpx request body.

    The transport pulls chunks from this stream and writes each one before
    asking for the next, so a chunk is reported as written when the next
    pull arrives (or the body ends).  If the transport stops pulling
    because the write failed, the pending chunk is never reported.
    """

    def __init__(
        self,
        stream: typing.Iterable[bytes],
        listener: ListenerTypes,
        total_size: TotalSizeTypes = UNKNOWN_LENGTH,
    ) -> None:
        self._stream = stream
        self._progress = _WriteProgress(listener, total_size)

    @property
    def session(self) -> TransferSession:
        return self._progress.session

    def __iter__(self) -> Iterator[bytes]:
        try:
            for chunk in self._stream:
                yield chunk
                self._progress.record(len(chunk))
        except BaseException:
            self._progress.fail()
            raise
        self._progress.finish()

    def close(self) -> None:
        close = getattr(self._stream, "close", None)
        if close is not None:
            close()


class AsyncProgressRequestStream(httpx.AsyncByteStream):
    """Async variant of :class:`ProgressRequestStream`."""

    def __init__(
        self,
        stream: typing.AsyncIterable[bytes],
        listener: ListenerTypes,
        total_size: TotalSizeTypes = UNKNOWN_LENGTH,
    ) -> None:
        self._stream = stream
        self._progress = _WriteProgress(listener, total_size)

    @property
    def session(self) -> TransferSession:
        return self._progress.session

    async def __aiter__(self) -> AsyncIterator[bytes]:
        try:
            async for chunk in self._stream:
                yield chunk
                self._progress.record(len(chunk))
        except BaseException:
            self._progress.fail()
            raise
        self._progress.finish()

    async def aclose(self) -> None:
        aclose = getattr(self._stream, "aclose", None)
        if aclose is not None:
            await aclose()
