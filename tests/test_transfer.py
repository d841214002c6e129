import ssl

import httpx
import pytest

import httptap
from httptap import UNKNOWN_LENGTH


class Recorder:
    def __init__(self):
        self.calls = []

    def update(self, bytes_transferred, total_size, done):
        self.calls.append((bytes_transferred, total_size, done))


def test_download(server, tmp_path):
    recorder = Recorder()
    target = tmp_path / "bytes.bin"
    with httpx.Client() as client:
        response = httptap.download(
            client, server.url.copy_with(path="/bytes"), target, recorder
        )

    assert response.status_code == 200
    assert target.read_bytes() == b"a" * 40 + b"b" * 35 + b"c" * 25
    assert recorder.calls[-1] == (100, 100, True)
    assert [done for _, _, done in recorder.calls].count(True) == 1


def test_download_unknown_length(server, tmp_path):
    recorder = Recorder()
    target = tmp_path / "chunked.bin"
    with httpx.Client() as client:
        httptap.download(client, server.url.copy_with(path="/chunked"), target, recorder)

    assert target.stat().st_size == 100
    assert recorder.calls[-1] == (100, UNKNOWN_LENGTH, True)


def test_download_error_status(server, tmp_path):
    recorder = Recorder()
    target = tmp_path / "missing.bin"
    with httpx.Client() as client:
        with pytest.raises(httpx.HTTPStatusError):
            httptap.download(
                client, server.url.copy_with(path="/status/404"), target, recorder
            )

    assert not target.exists()
    assert recorder.calls == []


def test_download_without_listener(server, tmp_path):
    target = tmp_path / "plain.bin"
    with httpx.Client() as client:
        httptap.download(client, server.url.copy_with(path="/bytes"), target)
    assert target.stat().st_size == 100


def test_upload(server, tmp_path):
    source = tmp_path / "README.md"
    source.write_bytes(b"Markdown\n" * 500)
    recorder = Recorder()
    with httpx.Client() as client:
        response = httptap.upload(
            client,
            server.url.copy_with(path="/echo_body"),
            source,
            recorder,
            content_type="text/x-markdown",
        )

    body = response.content
    assert b'name="file"; filename="README.md"' in body
    assert b"Content-Type: text/x-markdown" in body
    assert b"Markdown\n" * 500 in body
    assert recorder.calls[-1] == (len(body), len(body), True)
    counts = [count for count, _, _ in recorder.calls]
    assert counts == sorted(counts)


def test_upload_with_form_fields(server, tmp_path):
    source = tmp_path / "data.bin"
    source.write_bytes(b"\x00\x01" * 10)
    with httpx.Client() as client:
        response = httptap.upload(
            client,
            server.url.copy_with(path="/echo_body"),
            source,
            field="attachment",
            data={"title": "Square Logo"},
        )

    assert b'name="title"' in response.content
    assert b'name="attachment"; filename="data.bin"' in response.content


def test_download_over_https(https_server, cert_authority, tmp_path):
    context = ssl.create_default_context()
    cert_authority.configure_trust(context)
    recorder = Recorder()
    target = tmp_path / "secure.bin"
    with httpx.Client(verify=context) as client:
        httptap.download(
            client, https_server.url.copy_with(path="/bytes"), target, recorder
        )

    assert target.stat().st_size == 100
    assert recorder.calls[-1] == (100, 100, True)


def test_upload_progress_follows_the_wire_with_authenticator(tmp_path):
    source = tmp_path / "notes.txt"
    source.write_bytes(b"x" * 1000)
    events = []

    def handler(request: httpx.Request) -> httpx.Response:
        for chunk in request.stream:
            events.append(("sent", len(chunk)))
        if "Authorization" not in request.headers:
            return httpx.Response(401, headers={"WWW-Authenticate": 'Basic realm="x"'})
        return httpx.Response(200)

    def listener(bytes_transferred, total_size, done):
        events.append(("progress", bytes_transferred, done))

    client = httpx.Client(
        transport=httpx.MockTransport(handler),
        auth=httptap.BasicAuthenticator("jesse", "password1"),
    )
    with client:
        response = httptap.upload(client, "http://example.org/upload", source, listener)

    assert response.status_code == 200
    assert [hop.status_code for hop in response.history] == [401]
    size = int(response.request.headers["Content-Length"])
    # Each attempt is its own transfer, reported after its bytes went out.
    assert events == [("sent", size), ("progress", size, True)] * 2
