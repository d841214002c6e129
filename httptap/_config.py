from __future__ import annotations

import logging
import typing
from pathlib import Path

import httpx
from pydantic import Field, PositiveFloat
from pydantic_settings import BaseSettings, SettingsConfigDict

from ._cache import async_cache_transport, cache_transport
from ._logging import async_logging_event_hooks, logging_event_hooks
from ._progress import ListenerTypes
from ._transports import AsyncProgressTransport, ProgressTransport

DEFAULT_USER_AGENT = "httptap/0.1"


class TapSettings(BaseSettings):
    """Client settings, read from ``HTTPTAP_*`` environment variables."""

    model_config = SettingsConfigDict(env_prefix="HTTPTAP_", extra="ignore")

    connect_timeout: PositiveFloat = Field(
        default=10.0, description="Seconds allowed to establish a connection"
    )
    read_timeout: PositiveFloat = Field(
        default=30.0, description="Seconds allowed between received chunks"
    )
    write_timeout: PositiveFloat = Field(
        default=10.0, description="Seconds allowed between sent chunks"
    )
    pool_timeout: PositiveFloat = Field(
        default=10.0, description="Seconds allowed waiting for a pooled connection"
    )
    cache_dir: typing.Optional[Path] = Field(
        default=None, description="Directory for the on-disk response cache"
    )
    cache_ttl: typing.Optional[PositiveFloat] = Field(
        default=None, description="Seconds before a cached entry is evicted"
    )
    follow_redirects: bool = Field(default=True)
    user_agent: str = Field(default=DEFAULT_USER_AGENT)
    log_requests: bool = Field(
        default=False, description="Log every request and response at INFO"
    )

    def timeout(self) -> httpx.Timeout:
        return httpx.Timeout(
            connect=self.connect_timeout,
            read=self.read_timeout,
            write=self.write_timeout,
            pool=self.pool_timeout,
        )

    def _client_kwargs(self) -> dict[str, typing.Any]:
        return {
            "timeout": self.timeout(),
            "follow_redirects": self.follow_redirects,
            "headers": {"User-Agent": self.user_agent},
        }

    def build_client(
        self,
        *,
        upload: ListenerTypes | None = None,
        download: ListenerTypes | None = None,
        logger: logging.Logger | None = None,
        **kwargs: typing.Any,
    ) -> httpx.Client:
        """Create an :class:`httpx.Client` configured from these settings.

        The transport stack is, outermost first: progress taps, the disk
        cache (when ``cache_dir`` is set), then the network transport.
        Extra keyword arguments go to :class:`httpx.Client` unchanged.
        """
        transport: httpx.BaseTransport = kwargs.pop("transport", None) or (
            httpx.HTTPTransport()
        )
        if self.cache_dir is not None:
            transport = cache_transport(
                self.cache_dir, transport=transport, ttl=self.cache_ttl
            )
        if upload is not None or download is not None:
            transport = ProgressTransport(transport, upload=upload, download=download)

        options = self._client_kwargs()
        if self.log_requests or logger is not None:
            options["event_hooks"] = logging_event_hooks(logger)
        options.update(kwargs)
        return httpx.Client(transport=transport, **options)

    def build_async_client(
        self,
        *,
        upload: ListenerTypes | None = None,
        download: ListenerTypes | None = None,
        logger: logging.Logger | None = None,
        **kwargs: typing.Any,
    ) -> httpx.AsyncClient:
        """Async variant of :meth:`build_client`."""
        transport: httpx.AsyncBaseTransport = kwargs.pop("transport", None) or (
            httpx.AsyncHTTPTransport()
        )
        if self.cache_dir is not None:
            transport = async_cache_transport(
                self.cache_dir, transport=transport, ttl=self.cache_ttl
            )
        if upload is not None or download is not None:
            transport = AsyncProgressTransport(
                transport, upload=upload, download=download
            )

        options = self._client_kwargs()
        if self.log_requests or logger is not None:
            options["event_hooks"] = async_logging_event_hooks(logger)
        options.update(kwargs)
        return httpx.AsyncClient(transport=transport, **options)
