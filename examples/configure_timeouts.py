"""
Timeouts
========

Fail a call when its peer is unreachable or too slow.  Timeouts come
from TapSettings, which also reads HTTPTAP_*_TIMEOUT variables.
"""

import httpx

from httptap import TapSettings


def main() -> None:
    settings = TapSettings(connect_timeout=10, write_timeout=10, read_timeout=30)
    print("── Configured timeouts ────────────────────────────────────────")
    print(f"  {settings.timeout()}")
    print()

    print("── Slow response ──────────────────────────────────────────────")
    with settings.build_client() as client:
        response = client.get("http://httpbin.org/delay/2")
        print(f"  Response completed: {response.status_code}")
    print()

    print("── Per-request override ───────────────────────────────────────")
    with settings.build_client() as client:
        try:
            client.get("http://httpbin.org/delay/2", timeout=httpx.Timeout(10, read=1))
        except httpx.ReadTimeout as exc:
            print(f"  Timed out as expected: {exc!r}")


if __name__ == "__main__":
    main()
