from __future__ import annotations

import contextlib
import logging
import os
import sys
import time
import typing

import click
import httpx
import orjson
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    TextColumn,
    TimeRemainingColumn,
    TransferSpeedColumn,
)
from rich.syntax import Syntax
from rich.text import Text

from ._auth import BasicAuthenticator
from ._cache import cache_status
from ._config import TapSettings
from ._progress import UNKNOWN_LENGTH, percent_done
from ._transfer import download as download_to
from ._transfer import upload as upload_from


def _status_color(status_code: int) -> str:
    """Return a rich color name based on HTTP status category."""
    if status_code < 200:
        return "cyan"
    elif status_code < 300:
        return "green"
    elif status_code < 400:
        return "yellow"
    elif status_code < 500:
        return "red"
    else:
        return "bold red"


def is_binary_content(content: bytes) -> bool:
    return b"\0" in content


def is_binary_content_type(content_type: str) -> bool:
    text_types = (
        "text/",
        "application/json",
        "application/xml",
        "application/javascript",
        "application/ecmascript",
    )
    ct = content_type.lower().split(";")[0].strip()
    return not any(ct.startswith(t) for t in text_types) and ct != ""


def _pretty_json(text: str) -> str | None:
    try:
        data = orjson.loads(text)
    except orjson.JSONDecodeError:
        return None
    return orjson.dumps(data, option=orjson.OPT_INDENT_2).decode()


# ---------------------------------------------------------------------------
# Plain-text formatter (used with --no-color or when stdout is not a tty)
# ---------------------------------------------------------------------------


def format_response_plain(response: httpx.Response) -> str:
    status_line = (
        f"{response.http_version} {response.status_code} {response.reason_phrase}"
    ).rstrip()
    lines: list[str] = [status_line]

    headers = response.headers
    for key, value in headers.multi_items():
        lines.append(f"{key}: {value}")

    lines.append("")

    content = response.content
    if content:
        content_type = headers.get("content-type", "")
        if is_binary_content_type(content_type) or is_binary_content(content):
            lines.append(f"<{len(content)} bytes of binary data>")
        elif "application/json" in content_type:
            lines.append(_pretty_json(response.text) or response.text)
        else:
            lines.append(response.text)

    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Rich formatter
# ---------------------------------------------------------------------------


def print_response_rich(console: Console, response: httpx.Response) -> None:
    """Pretty-print a response using rich."""
    color = _status_color(response.status_code)

    status_line = Text()
    status_line.append(f"{response.http_version} ", style="bold dim")
    status_line.append(f"{response.status_code}", style=f"bold {color}")
    if response.reason_phrase:
        status_line.append(f" {response.reason_phrase}", style=color)
    console.print(status_line)

    headers = response.headers
    for key, value in headers.multi_items():
        header_text = Text()
        header_text.append(f"{key}", style="dim cyan")
        header_text.append(": ", style="dim")
        header_text.append(value)
        console.print(header_text)

    console.print()

    content = response.content
    if content:
        content_type = headers.get("content-type", "")
        if is_binary_content_type(content_type) or is_binary_content(content):
            console.print(f"[dim]<{len(content)} bytes of binary data>[/dim]")
        elif "application/json" in content_type:
            formatted = _pretty_json(response.text)
            if formatted is None:
                console.print(response.text)
            else:
                console.print(Syntax(formatted, "json", theme="monokai"))
        else:
            console.print(response.text)


# ---------------------------------------------------------------------------
# Progress listeners
# ---------------------------------------------------------------------------


class RichProgressListener:
    """Feeds transfer progress into a rich progress bar."""

    def __init__(self, progress: Progress, description: str) -> None:
        self._progress = progress
        self._task = progress.add_task(description, total=None)

    def update(self, bytes_transferred: int, total_size: int, done: bool) -> None:
        total = None if total_size == UNKNOWN_LENGTH else total_size
        if done and total is None:
            total = bytes_transferred
        self._progress.update(self._task, completed=bytes_transferred, total=total)


class PlainProgressListener:
    """Writes one line per whole-percent step to stderr."""

    def __init__(self, description: str) -> None:
        self._description = description
        self._last: int | None = None

    def update(self, bytes_transferred: int, total_size: int, done: bool) -> None:
        if total_size == UNKNOWN_LENGTH:
            if done:
                click.echo(
                    f"{self._description}: {bytes_transferred:,} bytes", err=True
                )
            return
        percent = percent_done(bytes_transferred, total_size)
        if percent != self._last or done:
            self._last = percent
            click.echo(f"{self._description}: {percent}% done", err=True)


def _progress_bar(console: Console) -> Progress:
    return Progress(
        TextColumn("[bold blue]{task.description}"),
        BarColumn(),
        DownloadColumn(),
        TransferSpeedColumn(),
        TimeRemainingColumn(),
        console=console,
        transient=False,
    )


# ---------------------------------------------------------------------------
# Header parsing helper (curl-style -H "Key: Value")
# ---------------------------------------------------------------------------


def parse_header(header: str) -> tuple[str, str]:
    """Parse a 'Key: Value' header string."""
    if ":" not in header:
        raise click.BadParameter(
            f"Invalid header format: '{header}'. Expected 'Key: Value'."
        )
    key, _, value = header.partition(":")
    return key.strip(), value.strip()


@contextlib.contextmanager
def _verbose_logging(
    verbose: bool, use_rich: bool
) -> typing.Iterator[logging.Logger | None]:
    """Send httptap's own log records to stderr for the duration of a command."""
    if not verbose:
        yield None
        return
    handler: logging.Handler = (
        RichHandler(console=Console(stderr=True), show_path=False)
        if use_rich
        else logging.StreamHandler(sys.stderr)
    )
    log = logging.getLogger("httptap")
    previous_level = log.level
    log.addHandler(handler)
    log.setLevel(logging.DEBUG)
    try:
        yield logging.getLogger("httptap.interceptors")
    finally:
        log.removeHandler(handler)
        log.setLevel(previous_level)


# ---------------------------------------------------------------------------
# CLI command
# ---------------------------------------------------------------------------


@click.command(help="Send an HTTP request and watch the bytes move.")
@click.argument("url")
@click.option("-m", "--method", default=None, help="HTTP method.")
@click.option(
    "-c", "--content", default=None, help="Content to send in the request body."
)
@click.option(
    "-j", "--json-data", "json_body", default=None, help="JSON data to send."
)
@click.option("-v", "--verbose", is_flag=True, default=False, help="Log requests.")
@click.option("--auth", nargs=2, default=None, help="Username and password.", type=str)
@click.option(
    "--download",
    default=None,
    type=click.Path(dir_okay=False, writable=True),
    help="Download the response body to a file.",
)
@click.option(
    "--upload",
    default=None,
    type=click.Path(exists=True, dir_okay=False, readable=True),
    help="Upload a file as multipart form data.",
)
@click.option("--field", default="file", help="Form field name for --upload.")
@click.option(
    "--cache-dir",
    default=None,
    type=click.Path(file_okay=False),
    help="Cache responses in this directory.",
)
@click.option(
    "--timeout", default=None, type=float, help="Timeout in seconds for all phases."
)
@click.option(
    "-H",
    "--header",
    "headers",
    multiple=True,
    help='Add a header, e.g. -H "Authorization: Bearer token".',
)
@click.option(
    "--timing", is_flag=True, default=False, help="Show request timing."
)
@click.option(
    "--no-color", is_flag=True, default=False, help="Disable colored output."
)
def main(
    url: str,
    method: str | None,
    content: str | None,
    json_body: str | None,
    verbose: bool,
    auth: tuple[str, str] | None,
    download: str | None,
    upload: str | None,
    field: str,
    cache_dir: str | None,
    timeout: float | None,
    headers: tuple[str, ...],
    timing: bool,
    no_color: bool,
) -> None:
    use_rich = not no_color and sys.stdout.isatty()
    console = Console(stderr=True) if use_rich else None
    with _verbose_logging(verbose, use_rich) as interceptor_logger:
        settings_overrides: dict[str, typing.Any] = {}
        if cache_dir is not None:
            settings_overrides["cache_dir"] = cache_dir
        if timeout is not None:
            settings_overrides.update(
                connect_timeout=timeout,
                read_timeout=timeout,
                write_timeout=timeout,
                pool_timeout=timeout,
            )
        settings = TapSettings(**settings_overrides)

        client_kwargs: dict[str, typing.Any] = {}
        if auth is not None:
            client_kwargs["auth"] = BasicAuthenticator(*auth)
        if headers:
            client_kwargs["headers"] = {
                "User-Agent": settings.user_agent,
                **dict(parse_header(h) for h in headers),
            }

        description = os.path.basename(download or upload or "") or url
        progress = _progress_bar(console) if console is not None else None

        def listener() -> RichProgressListener | PlainProgressListener:
            if progress is not None:
                return RichProgressListener(progress, description)
            return PlainProgressListener(description)

        try:
            with settings.build_client(
                logger=interceptor_logger, **client_kwargs
            ) as client:
                start_time = time.monotonic()
                if download is not None:
                    if progress is not None:
                        progress.start()
                    try:
                        response = download_to(client, url, download, listener())
                    finally:
                        if progress is not None:
                            progress.stop()
                elif upload is not None:
                    if progress is not None:
                        progress.start()
                    try:
                        response = upload_from(
                            client, url, upload, listener(), field=field,
                            method=method or "POST",
                        )
                    finally:
                        if progress is not None:
                            progress.stop()
                else:
                    kwargs: dict[str, typing.Any] = {}
                    if json_body is not None:
                        try:
                            kwargs["json"] = orjson.loads(json_body)
                        except orjson.JSONDecodeError as exc:
                            raise click.BadParameter(
                                f"Invalid JSON: {exc}", param_hint="--json-data"
                            ) from exc
                    if content is not None:
                        kwargs["content"] = content.encode("utf-8")
                    response = client.request(method or "GET", url, **kwargs)
                elapsed_ms = (time.monotonic() - start_time) * 1000

                if download is not None:
                    size = os.path.getsize(download)
                    click.echo(f"Downloaded {size:,} bytes to {download}", err=True)
                elif use_rich:
                    out = Console()
                    for hist_resp in response.history:
                        print_response_rich(out, hist_resp)
                        out.print()
                    print_response_rich(out, response)
                else:
                    for hist_resp in response.history:
                        click.echo(format_response_plain(hist_resp))
                        click.echo()
                    click.echo(format_response_plain(response))

                if timing:
                    click.echo(
                        f"Total: {elapsed_ms:.1f}ms ({cache_status(response)})", err=True
                    )

                if response.status_code >= 300:
                    sys.exit(1)

        except httpx.HTTPError as exc:
            if console is not None:
                console.print(f"[bold red]{type(exc).__name__}[/bold red]: {exc}")
            else:
                click.echo(f"{type(exc).__name__}: {exc}", err=True)
            sys.exit(1)
