import datetime

import httpx

import httptap


def test_header_values_splits_list_headers():
    headers = httpx.Headers(
        [
            ("Vary", "Accept-Encoding, Cookie"),
            ("Vary", "User-Agent"),
        ]
    )
    assert httptap.header_values(headers, "vary") == [
        "Accept-Encoding",
        "Cookie",
        "User-Agent",
    ]


def test_header_values_keeps_set_cookie_intact():
    headers = [
        ("Set-Cookie", "a=1; Expires=Wed, 21 Oct 2015 07:28:00 GMT"),
        ("Set-Cookie", "b=2"),
    ]
    assert httptap.header_values(headers, "Set-Cookie") == [
        "a=1; Expires=Wed, 21 Oct 2015 07:28:00 GMT",
        "b=2",
    ]


def test_header_values_missing():
    assert httptap.header_values({"Server": "x"}, "Vary") == []


def test_header_values_drops_empty_elements():
    assert httptap.header_values({"Accept": "text/html, , */*"}, "Accept") == [
        "text/html",
        "*/*",
    ]


def test_header_date():
    headers = {"Date": "Tue, 05 Jul 2016 13:27:18 GMT"}
    assert httptap.header_date(headers) == datetime.datetime(
        2016, 7, 5, 13, 27, 18, tzinfo=datetime.timezone.utc
    )


def test_header_date_other_header():
    headers = {"Last-Modified": "Tue, 05 Jul 2016 13:27:18 GMT"}
    assert httptap.header_date(headers, "Last-Modified") is not None
    assert httptap.header_date(headers) is None


def test_header_date_invalid():
    assert httptap.header_date({"Date": "yesterday"}) is None


def test_format_http_date():
    assert httptap.format_http_date(1467869347) == "Thu, 07 Jul 2016 05:29:07 GMT"
    assert (
        httptap.format_http_date(
            datetime.datetime(2016, 7, 7, 5, 29, 7, tzinfo=datetime.timezone.utc)
        )
        == "Thu, 07 Jul 2016 05:29:07 GMT"
    )


def test_live_headers(server):
    with httpx.Client() as client:
        response = client.get(
            server.url.copy_with(path="/echo_headers"),
            headers={"Accept": "application/json; q=0.5, application/vnd.github.v3+json"},
        )

    assert httptap.header_values(response.headers, "Vary") == ["Accept-Encoding", "Cookie"]
    assert httptap.header_date(response.headers).year == 2016
    assert response.json()["Accept"].startswith("application/json")
