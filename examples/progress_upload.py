"""
Upload Progress
===============

Report progress while a multipart request body is written.
"""

import os
import sys

import httptap
from httptap import UNKNOWN_LENGTH

URL = "https://httpbin.org/post"


def listener(bytes_written: int, content_length: int, done: bool) -> None:
    if content_length == UNKNOWN_LENGTH:
        print(f"{bytes_written} bytes{' (done)' if done else ''}")
    else:
        print(f"{httptap.percent_done(bytes_written, content_length)}% done")


def main() -> None:
    path = sys.argv[1] if len(sys.argv) > 1 else os.path.abspath(__file__)
    with httptap.TapSettings().build_client() as client:
        response = httptap.upload(
            client,
            URL,
            path,
            listener,
            field="photo",
            data={"hello": "android"},
        )
        response.raise_for_status()
        print(response.json()["files"].keys())


if __name__ == "__main__":
    main()
