from __future__ import annotations

import datetime
import email.utils
import typing

import httpx

# Headers whose grammar is a comma-separated list, so that one field line
# may carry several values.
LIST_HEADERS = frozenset(
    {
        "accept",
        "accept-charset",
        "accept-encoding",
        "accept-language",
        "allow",
        "cache-control",
        "connection",
        "content-encoding",
        "content-language",
        "if-match",
        "if-none-match",
        "pragma",
        "te",
        "trailer",
        "transfer-encoding",
        "upgrade",
        "vary",
        "via",
        "warning",
    }
)

HeadersTypes = typing.Union[
    httpx.Headers, typing.Mapping[str, str], typing.Sequence[typing.Tuple[str, str]]
]


def header_values(headers: HeadersTypes, name: str) -> list[str]:
    """Return every value of header ``name`` in the order received.

    Repeated field lines are kept separate.  For list-valued headers such
    as ``Vary`` or ``Accept`` each field line is also split on commas, so
    ``Vary: Accept-Encoding, Cookie`` gives two values.  Other headers
    (``Set-Cookie``, ``Date``) are never split.
    """
    headers = httpx.Headers(headers)
    split = name.lower() in LIST_HEADERS
    values = headers.get_list(name, split_commas=split)
    return [value for value in values if value]


def header_date(headers: HeadersTypes, name: str = "Date") -> datetime.datetime | None:
    """Parse an HTTP-date header into an aware UTC datetime.

    Accepts IMF-fixdate, RFC 850 and asctime forms.  Returns ``None``
    when the header is missing or not a valid date.
    """
    value = httpx.Headers(headers).get(name)
    if not value:
        return None
    try:
        parsed = email.utils.parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        return None
    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=datetime.timezone.utc)
    return parsed.astimezone(datetime.timezone.utc)


def format_http_date(value: datetime.datetime | float) -> str:
    """Format a datetime or POSIX timestamp as an IMF-fixdate string."""
    if isinstance(value, datetime.datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=datetime.timezone.utc)
        timestamp = value.timestamp()
    else:
        timestamp = float(value)
    return email.utils.formatdate(timestamp, usegmt=True)
