"""
Download Progress
=================

Report progress while a response body is read.
"""

import os
import tempfile

import httptap
from httptap import UNKNOWN_LENGTH

URL = "https://publicobject.com/helloworld.txt"


class PrintingListener:
    def __init__(self) -> None:
        self.first_update = True

    def update(self, bytes_read: int, content_length: int, done: bool) -> None:
        if done:
            print("completed")
            return
        if self.first_update:
            self.first_update = False
            if content_length == UNKNOWN_LENGTH:
                print("content-length: unknown")
            else:
                print(f"content-length: {content_length}")

        print(bytes_read)
        if content_length != UNKNOWN_LENGTH:
            print(f"{httptap.percent_done(bytes_read, content_length)}% done")


def read_with_transport() -> None:
    """Every response read through the client is tapped."""
    settings = httptap.TapSettings()
    with settings.build_client(download=PrintingListener()) as client:
        response = client.get(URL)
        response.raise_for_status()
        print(f"  {len(response.content):,} bytes read")


def download_to_file() -> None:
    """Stream a body to disk with its own listener."""
    with httptap.TapSettings().build_client() as client:
        with tempfile.TemporaryDirectory() as directory:
            path = os.path.join(directory, "helloworld.txt")
            httptap.download(client, URL, path, PrintingListener())
            print(f"  {os.path.getsize(path):,} bytes written to {path}")


def main() -> None:
    print("── Through the transport ──────────────────────────────────────")
    read_with_transport()
    print()

    print("── Straight to a file ─────────────────────────────────────────")
    download_to_file()


if __name__ == "__main__":
    main()
