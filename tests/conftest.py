import base64
import email.utils
import json
import os
import threading
import time
import typing

import pytest
import trustme
from uvicorn.config import Config
from uvicorn.server import Server

import httpx
from tests.concurrency import sleep


@pytest.fixture
def anyio_backend():
    return "asyncio"


ENVIRONMENT_VARIABLES = {
    "SSL_CERT_FILE",
    "SSL_CERT_DIR",
    "HTTP_PROXY",
    "HTTPS_PROXY",
    "ALL_PROXY",
    "NO_PROXY",
    "SSLKEYLOGFILE",
}


@pytest.fixture(scope="function", autouse=True)
def clean_environ():
    """Keeps os.environ clean for every test without having to mock os.environ"""
    original_environ = os.environ.copy()
    os.environ.clear()
    os.environ.update(
        {
            k: v
            for k, v in original_environ.items()
            if k not in ENVIRONMENT_VARIABLES
            and k.lower() not in ENVIRONMENT_VARIABLES
            and not k.startswith("HTTPTAP_")
        }
    )
    yield
    os.environ.clear()
    os.environ.update(original_environ)


Message = typing.Dict[str, typing.Any]
Receive = typing.Callable[[], typing.Awaitable[Message]]
Send = typing.Callable[
    [typing.Dict[str, typing.Any]], typing.Coroutine[None, None, None]
]
Scope = typing.Dict[str, typing.Any]

# 100 bytes delivered as 40 + 35 + 25.
CHUNKS = [b"a" * 40, b"b" * 35, b"c" * 25]


async def app(scope: Scope, receive: Receive, send: Send) -> None:
    assert scope["type"] == "http"
    path = scope["path"]
    if path.startswith("/slow_response"):
        await slow_response(scope, receive, send)
    elif path.startswith("/status"):
        await status_code(scope, receive, send)
    elif path.startswith("/echo_body"):
        await echo_body(scope, receive, send)
    elif path.startswith("/echo_headers"):
        await echo_headers(scope, receive, send)
    elif path.startswith("/bytes"):
        await fixed_bytes(scope, receive, send)
    elif path.startswith("/chunked"):
        await chunked(scope, receive, send)
    elif path.startswith("/drip"):
        await drip(scope, receive, send)
    elif path.startswith("/basic-auth"):
        await basic_auth(scope, receive, send)
    elif path.startswith("/cached"):
        await cached(scope, receive, send)
    elif path.startswith("/redirect_301"):
        await redirect_301(scope, receive, send)
    elif path.startswith("/json"):
        await hello_world_json(scope, receive, send)
    else:
        await hello_world(scope, receive, send)


async def _read_body(receive: Receive) -> bytes:
    body = b""
    more_body = True
    while more_body:
        message = await receive()
        body += message.get("body", b"")
        more_body = message.get("more_body", False)
    return body


async def hello_world(scope: Scope, receive: Receive, send: Send) -> None:
    await send(
        {
            "type": "http.response.start",
            "status": 200,
            "headers": [[b"content-type", b"text/plain"]],
        }
    )
    await send({"type": "http.response.body", "body": b"Hello, world!"})


async def hello_world_json(scope: Scope, receive: Receive, send: Send) -> None:
    await send(
        {
            "type": "http.response.start",
            "status": 200,
            "headers": [[b"content-type", b"application/json"]],
        }
    )
    await send({"type": "http.response.body", "body": b'{"Hello": "world!"}'})


async def slow_response(scope: Scope, receive: Receive, send: Send) -> None:
    await send(
        {
            "type": "http.response.start",
            "status": 200,
            "headers": [[b"content-type", b"text/plain"]],
        }
    )
    await sleep(1.0)  # Allow triggering a read timeout.
    await send({"type": "http.response.body", "body": b"Hello, world!"})


async def status_code(scope: Scope, receive: Receive, send: Send) -> None:
    status_code = int(scope["path"].replace("/status/", ""))
    await send(
        {
            "type": "http.response.start",
            "status": status_code,
            "headers": [[b"content-type", b"text/plain"]],
        }
    )
    await send({"type": "http.response.body", "body": b"Hello, world!"})


async def echo_body(scope: Scope, receive: Receive, send: Send) -> None:
    body = await _read_body(receive)
    await send(
        {
            "type": "http.response.start",
            "status": 200,
            "headers": [[b"content-type", b"application/octet-stream"]],
        }
    )
    await send({"type": "http.response.body", "body": body})


async def echo_headers(scope: Scope, receive: Receive, send: Send) -> None:
    body = {
        name.capitalize().decode(): value.decode()
        for name, value in scope.get("headers", [])
    }
    await send(
        {
            "type": "http.response.start",
            "status": 200,
            "headers": [
                [b"content-type", b"application/json"],
                [b"vary", b"Accept-Encoding"],
                [b"vary", b"Cookie"],
                [b"date", b"Tue, 05 Jul 2016 13:27:18 GMT"],
            ],
        }
    )
    await send({"type": "http.response.body", "body": json.dumps(body).encode()})


async def fixed_bytes(scope: Scope, receive: Receive, send: Send) -> None:
    body = b"".join(CHUNKS)
    await send(
        {
            "type": "http.response.start",
            "status": 200,
            "headers": [
                [b"content-type", b"application/octet-stream"],
                [b"content-length", str(len(body)).encode()],
            ],
        }
    )
    for index, chunk in enumerate(CHUNKS):
        await send(
            {
                "type": "http.response.body",
                "body": chunk,
                "more_body": index < len(CHUNKS) - 1,
            }
        )


async def chunked(scope: Scope, receive: Receive, send: Send) -> None:
    await send(
        {
            "type": "http.response.start",
            "status": 200,
            "headers": [[b"content-type", b"application/octet-stream"]],
        }
    )
    for chunk in CHUNKS:
        await send({"type": "http.response.body", "body": chunk, "more_body": True})
    await send({"type": "http.response.body", "body": b""})


async def drip(scope: Scope, receive: Receive, send: Send) -> None:
    await send(
        {
            "type": "http.response.start",
            "status": 200,
            "headers": [[b"content-type", b"application/octet-stream"]],
        }
    )
    for _ in range(20):
        await send({"type": "http.response.body", "body": b"*", "more_body": True})
        await sleep(0.1)
    await send({"type": "http.response.body", "body": b""})


async def basic_auth(scope: Scope, receive: Receive, send: Send) -> None:
    # /basic-auth/<user>/<password>
    _, _, user, password = scope["path"].split("/")
    expected = "Basic " + base64.b64encode(f"{user}:{password}".encode()).decode()
    headers = dict(scope.get("headers", []))
    if headers.get(b"authorization", b"").decode() == expected:
        status, body = 200, json.dumps({"authenticated": True, "user": user}).encode()
        response_headers = [[b"content-type", b"application/json"]]
    else:
        status, body = 401, b"Unauthorized"
        response_headers = [
            [b"content-type", b"text/plain"],
            [b"www-authenticate", b'Basic realm="OkHttp Secrets"'],
        ]
    await send(
        {"type": "http.response.start", "status": status, "headers": response_headers}
    )
    await send({"type": "http.response.body", "body": body})


_cached_hits = {"count": 0}


async def cached(scope: Scope, receive: Receive, send: Send) -> None:
    _cached_hits["count"] += 1
    body = f"generation {_cached_hits['count']}".encode()
    await send(
        {
            "type": "http.response.start",
            "status": 200,
            "headers": [
                [b"content-type", b"text/plain"],
                [b"date", email.utils.formatdate(usegmt=True).encode()],
                [b"cache-control", b"max-age=3600"],
                [b"content-length", str(len(body)).encode()],
            ],
        }
    )
    await send({"type": "http.response.body", "body": body})


async def redirect_301(scope: Scope, receive: Receive, send: Send) -> None:
    await send(
        {"type": "http.response.start", "status": 301, "headers": [[b"location", b"/"]]}
    )
    await send({"type": "http.response.body"})


@pytest.fixture(scope="session")
def cert_authority():
    return trustme.CA()


@pytest.fixture(scope="session")
def localhost_cert(cert_authority):
    return cert_authority.issue_cert("localhost")


@pytest.fixture(scope="session")
def cert_pem_file(localhost_cert):
    with localhost_cert.cert_chain_pems[0].tempfile() as tmp:
        yield tmp


@pytest.fixture(scope="session")
def cert_private_key_file(localhost_cert):
    with localhost_cert.private_key_pem.tempfile() as tmp:
        yield tmp


class TestServer(Server):
    __test__ = False

    @property
    def url(self) -> httpx.URL:
        protocol = "https" if self.config.is_ssl else "http"
        port = self.servers[0].sockets[0].getsockname()[1]
        return httpx.URL(f"{protocol}://{self.config.host}:{port}/")

    def install_signal_handlers(self) -> None:
        # Disable the default installation of handlers for signals such as
        # SIGTERM, because it can only be done in the main thread.
        pass


def serve_in_thread(server: TestServer) -> typing.Iterator[TestServer]:
    thread = threading.Thread(target=server.run, daemon=True)
    thread.start()
    try:
        deadline = time.monotonic() + 10
        while not server.started:
            if time.monotonic() > deadline or not thread.is_alive():
                raise RuntimeError("Server failed to start within 10 seconds")
            time.sleep(1e-3)
        yield server
    finally:
        server.should_exit = True
        thread.join(timeout=5)


@pytest.fixture(scope="session")
def server() -> typing.Iterator[TestServer]:
    config = Config(
        app=app,
        lifespan="off",
        loop="asyncio",
        date_header=False,
        host="127.0.0.1",
        port=0,
    )
    server = TestServer(config=config)
    yield from serve_in_thread(server)


@pytest.fixture(scope="session")
def https_server(
    cert_pem_file: str, cert_private_key_file: str
) -> typing.Iterator[TestServer]:
    config = Config(
        app=app,
        lifespan="off",
        loop="asyncio",
        date_header=False,
        ssl_certfile=cert_pem_file,
        ssl_keyfile=cert_private_key_file,
        host="localhost",
        port=0,
    )
    server = TestServer(config=config)
    yield from serve_in_thread(server)
