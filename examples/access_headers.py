"""
Accessing Headers
=================

Set request headers, and read single, repeated and date-valued
response headers.
"""

import httptap


def main() -> None:
    with httptap.TapSettings().build_client() as client:
        response = client.get(
            "https://api.github.com/repos/square/okhttp/issues",
            headers={
                "User-Agent": "OkHttp Headers.java",
                "Accept": "application/json; q=0.5, application/vnd.github.v3+json",
            },
        )
        response.raise_for_status()

    print("── Single values ──────────────────────────────────────────────")
    print(f"  Server: {response.headers.get('server')}")
    print(f"  Date:   {httptap.header_date(response.headers)}")
    print()

    print("── Repeated values ────────────────────────────────────────────")
    print(f"  Vary:   {httptap.header_values(response.headers, 'Vary')}")
    print()

    print("── Formatting dates ───────────────────────────────────────────")
    print(f"  {httptap.format_http_date(1467869347)}")


if __name__ == "__main__":
    main()
