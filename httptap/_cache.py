from __future__ import annotations

import logging
import os
import typing
from pathlib import Path

import hishel
import httpx

logger = logging.getLogger("httptap.cache")

# Large enough that any stored response is acceptable, however stale.
_MAX_STALE_FOREVER = 2**31 - 1


def _controller() -> hishel.Controller:
    return hishel.Controller(
        cacheable_methods=["GET", "HEAD"],
        cacheable_status_codes=[200, 203, 300, 301, 308, 404, 410],
        allow_stale=True,
    )


def _cache_dir(directory: str | os.PathLike[str]) -> Path:
    path = Path(directory)
    path.mkdir(parents=True, exist_ok=True)
    return path


def cache_transport(
    directory: str | os.PathLike[str],
    *,
    transport: httpx.BaseTransport | None = None,
    ttl: float | None = None,
) -> hishel.CacheTransport:
    """Wrap ``transport`` with an RFC 9111 response cache stored on disk.

    Use one cache directory per client.  Two caches sharing a directory
    will overwrite each other's entries.

    >>> client = httpx.Client(transport=cache_transport("~/.cache/myapp"))
    """
    path = _cache_dir(directory)
    logger.debug("Using HTTP cache directory %s (ttl=%s)", path, ttl)
    return hishel.CacheTransport(
        transport=transport if transport is not None else httpx.HTTPTransport(),
        storage=hishel.FileStorage(base_path=path, ttl=ttl),
        controller=_controller(),
    )


def async_cache_transport(
    directory: str | os.PathLike[str],
    *,
    transport: httpx.AsyncBaseTransport | None = None,
    ttl: float | None = None,
) -> hishel.AsyncCacheTransport:
    """Async variant of :func:`cache_transport`."""
    path = _cache_dir(directory)
    logger.debug("Using HTTP cache directory %s (ttl=%s)", path, ttl)
    return hishel.AsyncCacheTransport(
        transport=transport if transport is not None else httpx.AsyncHTTPTransport(),
        storage=hishel.AsyncFileStorage(base_path=path, ttl=ttl),
        controller=_controller(),
    )


def max_stale(seconds: int) -> dict[str, str]:
    """Request headers that accept a cached response up to ``seconds`` stale."""
    return {"Cache-Control": f"max-stale={int(seconds)}"}


def force_network() -> dict[str, typing.Any]:
    """Request options that skip the cache and always hit the network.

    >>> client.get(url, **force_network())
    """
    return {
        "headers": {"Cache-Control": "no-cache"},
        "extensions": {"cache_disabled": True},
    }


def force_cache() -> dict[str, typing.Any]:
    """Request options that only accept a cached response.

    When nothing is stored the cache answers ``504 Gateway Timeout``
    without touching the network.
    """
    return {
        "headers": {"Cache-Control": f"only-if-cached, max-stale={_MAX_STALE_FOREVER}"},
        "extensions": {"force_cache": True},
    }


def cache_status(response: httpx.Response) -> str:
    """Describe where ``response`` came from.

    ``"cache"`` for a stored response, ``"conditional"`` for a stored
    response revalidated with the server, ``"network"`` otherwise.
    """
    if not response.extensions.get("from_cache"):
        return "network"
    metadata = response.extensions.get("cache_metadata")
    if response.extensions.get("revalidated") or (
        isinstance(metadata, typing.Mapping) and metadata.get("revalidated")
    ):
        return "conditional"
    return "cache"
