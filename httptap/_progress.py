from __future__ import annotations

import typing

from ._exceptions import TransferStateError, UnknownLengthError

UNKNOWN_LENGTH = -1


@typing.runtime_checkable
class ProgressListener(typing.Protocol):
    """Receives transfer progress for a single request or response body.

    ``update`` is called synchronously from whatever drives the stream,
    once per chunk and once more with ``done=True`` when the transfer
    completes.  ``total_size`` is :data:`UNKNOWN_LENGTH` when the body
    length was not declared up front.
    """

    def update(self, bytes_transferred: int, total_size: int, done: bool) -> None:
        ...


ProgressCallback = typing.Callable[[int, int, bool], None]
ListenerTypes = typing.Union[ProgressListener, ProgressCallback]


def as_callback(listener: ListenerTypes) -> ProgressCallback:
    """Normalise a listener object or a plain callable to a callable."""
    update = getattr(listener, "update", None)
    if callable(update):
        return typing.cast(ProgressCallback, update)
    if callable(listener):
        return listener
    raise TypeError(
        "Progress listener must be callable or provide an update() method, "
        f"got {type(listener).__name__}"
    )


def percent_done(bytes_transferred: int, total_size: int) -> int:
    """Return progress as a whole percentage.

    Raises :class:`UnknownLengthError` when ``total_size`` is
    :data:`UNKNOWN_LENGTH`, since no meaningful percentage exists.
    """
    if total_size < 0:
        raise UnknownLengthError(
            "Cannot compute a percentage: the total size of this transfer is unknown."
        )
    if total_size == 0:
        return 100
    return (100 * bytes_transferred) // total_size


class TransferSession:
    """Progress counters for exactly one body transfer.

    Both tap directions report through this class so that the
    "once per chunk, done exactly once, silent after a failure" rules
    live in one place.  A session is never reused.
    """

    def __init__(self, listener: ListenerTypes, total_size: int = UNKNOWN_LENGTH) -> None:
        self._callback = as_callback(listener)
        self.total_size = total_size if total_size >= 0 else UNKNOWN_LENGTH
        self.bytes_transferred = 0
        self.done = False
        self.failed = False

    @property
    def is_closed(self) -> bool:
        return self.done or self.failed

    @property
    def length_known(self) -> bool:
        return self.total_size != UNKNOWN_LENGTH

    def advance(self, count: int, *, done: bool = False) -> None:
        """Record ``count`` more bytes and notify the listener."""
        if count < 0:
            raise ValueError(f"Byte count must not be negative, got {count}")
        if self.is_closed:
            raise TransferStateError("Transfer session has already ended.")
        self.bytes_transferred += count
        if done:
            self.done = True
        self._notify(done)

    def complete(self) -> None:
        """Report ``done=True`` unless it was already reported or the transfer failed."""
        if self.is_closed:
            return
        self.done = True
        self._notify(True)

    def fail(self) -> None:
        """Mark the transfer as aborted; the listener is not called again."""
        self.failed = True

    def _notify(self, done: bool) -> None:
        try:
            self._callback(self.bytes_transferred, self.total_size, done)
        except BaseException:
            self.failed = True
            raise

    def __repr__(self) -> str:
        state = "done" if self.done else "failed" if self.failed else "open"
        return (
            f"<TransferSession {self.bytes_transferred}/{self.total_size} bytes ({state})>"
        )
