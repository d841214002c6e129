"""
Synchronous GET
===============

Download a file, print its headers, and print its body as a string.
"""

import httpx

from httptap import TapSettings


def main() -> None:
    with TapSettings().build_client() as client:
        response = client.get("https://publicobject.com/helloworld.txt")
        response.raise_for_status()

        print("── Headers ────────────────────────────────────────────────────")
        for name, value in response.headers.multi_items():
            print(f"  {name}: {value}")
        print()

        print("── Body ───────────────────────────────────────────────────────")
        print(response.text)


if __name__ == "__main__":
    try:
        main()
    except httpx.HTTPError as exc:
        print(f"Unexpected failure: {exc!r}")
