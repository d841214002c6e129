# ruff: noqa: I001
from .__version__ import __description__, __title__, __version__  # noqa: F401
from ._exceptions import (  # noqa: F401
    CallCancelled,
    TapError,
    TransferStateError,
    UnknownLengthError,
)
from ._progress import (  # noqa: F401
    UNKNOWN_LENGTH,
    ProgressListener,
    TransferSession,
    percent_done,
)
from ._taps import (  # noqa: F401
    AsyncProgressRequestStream,
    AsyncProgressResponseStream,
    ProgressReader,
    ProgressRequestStream,
    ProgressResponseStream,
    ProgressWriter,
    declared_length,
)
from ._transports import AsyncProgressTransport, ProgressTransport  # noqa: F401
from ._auth import (  # noqa: F401
    Authenticator,
    BasicAuthenticator,
    Challenge,
    basic_credentials,
    parse_challenges,
)
from ._cache import (  # noqa: F401
    async_cache_transport,
    cache_status,
    cache_transport,
    force_cache,
    force_network,
    max_stale,
)
from ._call import AsyncCall, Call, Dispatcher  # noqa: F401
from ._config import TapSettings  # noqa: F401
from ._headers import format_http_date, header_date, header_values  # noqa: F401
from ._json import parse_json  # noqa: F401
from ._logging import (  # noqa: F401
    AsyncLoggingTransport,
    LoggingTransport,
    async_logging_event_hooks,
    logging_event_hooks,
)
from ._transfer import download, upload  # noqa: F401

try:
    from .cli import main
except ImportError:

    def main() -> None:  # type: ignore[misc]
        import sys

        print(
            'The "httptap" command requires the CLI extra. '
            'Install it with: pip install "httptap[cli]"',
            file=sys.stderr,
        )
        sys.exit(1)


_EXCLUDED_FROM_ALL = {"cli", "main"}

__all__ = sorted(  # pyright: ignore[reportUnsupportedDunderAll]
    (
        member
        for member in list(vars().keys())
        if (
            not member.startswith("_")
            or member in ["__description__", "__title__", "__version__"]
        )
        and member not in _EXCLUDED_FROM_ALL
    ),
    key=str.casefold,
)
