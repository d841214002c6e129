"""
Response Caching
================

Cache responses on disk and see where each one came from.
"""

import tempfile

import httptap

URL = "http://publicobject.com/helloworld.txt"


def main() -> None:
    with tempfile.TemporaryDirectory() as cache_dir:
        settings = httptap.TapSettings(cache_dir=cache_dir)
        with settings.build_client() as client:
            print("── First request ──────────────────────────────────────────────")
            first = client.get(URL)
            print(f"  Served from: {httptap.cache_status(first)}")
            print()

            print("── Second request ─────────────────────────────────────────────")
            second = client.get(URL)
            print(f"  Served from: {httptap.cache_status(second)}")
            print(f"  Same body:   {first.text == second.text}")
            print()

            print("── Forcing the network ────────────────────────────────────────")
            forced = client.get(URL, **httptap.force_network())
            print(f"  Served from: {httptap.cache_status(forced)}")
            print()

            print("── Forcing the cache ──────────────────────────────────────────")
            cached = client.get(URL, **httptap.force_cache())
            if cached.status_code == 504:
                print("  Nothing cached for this URL")
            else:
                print(f"  Served from: {httptap.cache_status(cached)}")


if __name__ == "__main__":
    main()
