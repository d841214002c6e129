"""
Logging Interceptors
====================

Log requests and responses at two levels: once per call in the client,
and once per network round trip in the transport.
"""

import logging
import tempfile

import httpx

import httptap

URL = "https://publicobject.com/helloworld.txt"


def application_interceptor() -> None:
    """Event hooks see every call, including those served from a cache."""
    with httpx.Client(event_hooks=httptap.logging_event_hooks()) as client:
        client.get(URL)


def network_interceptor() -> None:
    """A transport below the cache only sees what reaches the network."""
    with tempfile.TemporaryDirectory() as cache_dir:
        transport = httptap.cache_transport(
            cache_dir, transport=httptap.LoggingTransport()
        )
        with httpx.Client(transport=transport) as client:
            client.get(URL)
            client.get(URL)


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(name)s: %(message)s")

    print("── Application interceptor ────────────────────────────────────")
    application_interceptor()
    print()

    print("── Network interceptor ────────────────────────────────────────")
    network_interceptor()


if __name__ == "__main__":
    main()
