from __future__ import annotations

import typing

import httpx

if typing.TYPE_CHECKING:
    from httpx import Request


class TapError(Exception):
    """Base class for errors raised by httptap itself."""


class UnknownLengthError(TapError, ValueError):
    """A percentage was requested for a transfer whose total size is unknown."""


class TransferStateError(TapError, RuntimeError):
    """A progress tap was used after its transfer session ended."""


class CallCancelled(httpx.TransportError):
    """The call was cancelled while it was being sent or read.

    Raised through the same path as any other transport failure, so code
    that already handles ``httpx.TransportError`` handles cancellation too.
    """

    def __init__(
        self, message: str = "Call cancelled", *, request: Request | None = None
    ) -> None:
        super().__init__(message, request=request)
