from __future__ import annotations

import functools
import typing

import httpx
import orjson
import pydantic

T = typing.TypeVar("T")


@functools.lru_cache(maxsize=128)
def _adapter(type_: typing.Any) -> pydantic.TypeAdapter[typing.Any]:
    return pydantic.TypeAdapter(type_)


@typing.overload
def parse_json(response: httpx.Response) -> typing.Any: ...


@typing.overload
def parse_json(response: httpx.Response, type_: type[T]) -> T: ...


def parse_json(response: httpx.Response, type_: typing.Any = None) -> typing.Any:
    """Decode a JSON response body, optionally into a typed object.

    Without ``type_`` the raw body bytes go straight to :func:`orjson.loads`.
    With ``type_`` (a dataclass, pydantic model, ``TypedDict``, or any
    container of those) the bytes are validated by a cached
    :class:`pydantic.TypeAdapter`.

    Malformed or mismatched bodies raise :class:`httpx.DecodingError`
    carrying the originating request.

    >>> @dataclass
    ... class GistFile:
    ...     content: str
    >>> @dataclass
    ... class Gist:
    ...     files: dict[str, GistFile]
    >>> gist = parse_json(client.get(gist_url), Gist)
    """
    body = response.content
    try:
        if type_ is None:
            return orjson.loads(body)
        return _adapter(type_).validate_json(body)
    except (orjson.JSONDecodeError, pydantic.ValidationError) as exc:
        try:
            request = response.request
        except RuntimeError:
            request = None
        raise httpx.DecodingError(
            f"Could not decode JSON response body: {exc}", request=request
        ) from exc
