from __future__ import annotations

import httpx
import pytest

import httptap


def test_exception_hierarchy() -> None:
    assert issubclass(httptap.UnknownLengthError, httptap.TapError)
    assert issubclass(httptap.UnknownLengthError, ValueError)
    assert issubclass(httptap.TransferStateError, httptap.TapError)
    assert issubclass(httptap.TransferStateError, RuntimeError)
    assert issubclass(httptap.CallCancelled, httpx.TransportError)


def test_request_attribute() -> None:
    # Exception without request attribute
    exc = httptap.CallCancelled()
    assert str(exc) == "Call cancelled"
    with pytest.raises(RuntimeError):
        exc.request  # noqa: B018

    # Exception with request attribute
    request = httpx.Request("GET", "https://www.example.com")
    exc = httptap.CallCancelled(request=request)
    assert exc.request == request


def test_listener_errors_propagate_unchanged() -> None:
    class Boom(Exception):
        pass

    def listener(bytes_transferred: int, total_size: int, done: bool) -> None:
        raise Boom()

    transport = httptap.ProgressTransport(
        httpx.MockTransport(lambda request: httpx.Response(200, content=b"data")),
        download=listener,
    )
    with httpx.Client(transport=transport) as client:
        with pytest.raises(Boom):
            client.get("http://example.org/")
