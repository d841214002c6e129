from __future__ import annotations

import base64
import logging
import re
import typing
from collections.abc import Callable, Generator

import httpx

logger = logging.getLogger("httptap.auth")

_TOKEN = r"[!#$%&'*+\-.^_`|~0-9A-Za-z]+"
_SEPARATORS_RE = re.compile(r"[\s,]*")
_SCHEME_RE = re.compile(r"(" + _TOKEN + r")(?=[\s,]|$)")
_PARAM_RE = re.compile(
    r"(" + _TOKEN + r")\s*=\s*(\"(?:[^\"\\]|\\.)*\"|" + _TOKEN + r")\s*(?=,|$)"
)
_TOKEN68_RE = re.compile(r"\s*([A-Za-z0-9\-._~+/]+=*)\s*(?=,|$)")
_QUOTED_PAIR_RE = re.compile(r"\\(.)")


def basic_credentials(username: str, password: str, encoding: str = "latin-1") -> str:
    """Build a ``Basic`` credential suitable for an ``Authorization`` header."""
    userpass = f"{username}:{password}".encode(encoding)
    return "Basic " + base64.b64encode(userpass).decode("ascii")


class Challenge:
    """One authentication challenge from a ``WWW-Authenticate`` header."""

    __slots__ = ("scheme", "params")

    def __init__(self, scheme: str, params: dict[str, str] | None = None) -> None:
        self.scheme = scheme
        self.params: dict[str, str] = params or {}

    @property
    def realm(self) -> str | None:
        return self.params.get("realm")

    @property
    def charset(self) -> str:
        charset = self.params.get("charset", "")
        return "utf-8" if charset.lower() == "utf-8" else "latin-1"

    def __eq__(self, other: typing.Any) -> bool:
        return (
            isinstance(other, Challenge)
            and self.scheme.lower() == other.scheme.lower()
            and self.params == other.params
        )

    def __repr__(self) -> str:
        return f"Challenge(scheme={self.scheme!r}, params={self.params!r})"


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] == '"':
        return _QUOTED_PAIR_RE.sub(r"\1", value[1:-1])
    return value


def _parse_challenge_header(value: str) -> list[Challenge]:
    challenges: list[Challenge] = []
    current: Challenge | None = None
    pos = 0
    while True:
        pos = _SEPARATORS_RE.match(value, pos).end()  # type: ignore[union-attr]
        if pos >= len(value):
            break

        param = _PARAM_RE.match(value, pos)
        if param is not None and current is not None:
            name, raw = param.groups()
            current.params[name.lower()] = _unquote(raw)
            pos = param.end()
            continue

        scheme = _SCHEME_RE.match(value, pos)
        if scheme is None:
            # Malformed remainder; keep what parsed cleanly.
            break
        current = Challenge(scheme.group(1))
        challenges.append(current)
        pos = scheme.end()

        if pos < len(value) and value[pos] != ",":
            token68 = _TOKEN68_RE.match(value, pos)
            if token68 is not None:
                current.params["token68"] = token68.group(1)
                pos = token68.end()
    return challenges


def parse_challenges(response: httpx.Response) -> list[Challenge]:
    """Return the authentication challenges carried by ``response``.

    ``WWW-Authenticate`` for 401, ``Proxy-Authenticate`` for 407, and an
    empty list for every other status code.
    """
    if response.status_code == 401:
        header = "www-authenticate"
    elif response.status_code == 407:
        header = "proxy-authenticate"
    else:
        return []
    challenges: list[Challenge] = []
    for value in response.headers.get_list(header):
        challenges.extend(_parse_challenge_header(value))
    return challenges


class Authenticator(httpx.Auth):
    """Answer 401/407 challenges by asking a callback for credentials.

    The request is first sent as-is.  When the server answers 401 (or 407
    from a proxy), ``authenticate(response)`` is asked for a credential
    header value and the request is retried with it.  The authenticator
    gives up, returning the challenge response to the caller, when:

    * the callback returns ``None``;
    * the callback offers a credential that was already rejected;
    * ``max_attempts`` retries have been made.

    Subclasses may override :meth:`authenticate` instead of passing a
    callback.
    """

    requires_request_body = True

    def __init__(
        self,
        authenticate: Callable[[httpx.Response], str | None] | None = None,
        *,
        max_attempts: int = 3,
    ) -> None:
        self._authenticate = authenticate
        self.max_attempts = max_attempts

    def authenticate(self, response: httpx.Response) -> str | None:
        if self._authenticate is None:
            raise NotImplementedError(
                "Pass an authenticate callback or override Authenticator.authenticate()."
            )
        return self._authenticate(response)

    def auth_flow(
        self, request: httpx.Request
    ) -> Generator[httpx.Request, httpx.Response, None]:
        response = yield request
        rejected: set[str] = set()
        attempts = 0
        while response.status_code in (401, 407):
            header = "Authorization" if response.status_code == 401 else "Proxy-Authorization"
            previous = request.headers.get(header)
            if previous is not None:
                rejected.add(previous)
            if attempts >= self.max_attempts:
                logger.debug(
                    "Giving up on %s after %d attempts", request.url, attempts
                )
                return

            logger.debug(
                "Authenticating for response %s, challenges %s",
                response,
                parse_challenges(response),
            )
            credential = self.authenticate(response)
            if credential is None:
                logger.debug("No credentials available for %s", request.url)
                return
            if credential in rejected:
                logger.debug("Credentials already rejected for %s", request.url)
                return

            attempts += 1
            request.headers[header] = credential
            response = yield request


class BasicAuthenticator(Authenticator):
    """Answer ``Basic`` challenges (or bare 401s) with fixed credentials."""

    def __init__(self, username: str, password: str, *, max_attempts: int = 3) -> None:
        super().__init__(max_attempts=max_attempts)
        self._username = username
        self._password = password

    def authenticate(self, response: httpx.Response) -> str | None:
        challenges = parse_challenges(response)
        if not challenges:
            return basic_credentials(self._username, self._password)
        for challenge in challenges:
            if challenge.scheme.lower() == "basic":
                return basic_credentials(
                    self._username, self._password, challenge.charset
                )
        return None
