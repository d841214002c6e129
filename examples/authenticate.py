"""
Authentication
==============

Answer a 401 challenge with credentials, and give up when the server
keeps rejecting them.
"""

import logging

import httpx

import httptap

URL = "http://publicobject.com/secrets/hellosecret.txt"


def with_basic_authenticator() -> None:
    """Let BasicAuthenticator answer Basic challenges."""
    auth = httptap.BasicAuthenticator("jesse", "password1")
    with httptap.TapSettings().build_client(auth=auth) as client:
        response = client.get(URL)
        response.raise_for_status()
        print(response.text)


def with_callback() -> None:
    """Inspect each challenge yourself."""

    def authenticate(response: httpx.Response) -> "str | None":
        for challenge in httptap.parse_challenges(response):
            print(f"  Challenge: {challenge.scheme} realm={challenge.realm!r}")
            if challenge.scheme.lower() == "basic":
                return httptap.basic_credentials("jesse", "password1", challenge.charset)
        return None

    auth = httptap.Authenticator(authenticate, max_attempts=2)
    with httptap.TapSettings().build_client(auth=auth) as client:
        response = client.get(URL)
        print(f"  Status after authentication: {response.status_code}")


def main() -> None:
    logging.basicConfig(level=logging.WARNING)
    logging.getLogger("httptap.auth").setLevel(logging.DEBUG)

    print("── BasicAuthenticator ─────────────────────────────────────────")
    with_basic_authenticator()
    print()

    print("── Callback ───────────────────────────────────────────────────")
    with_callback()


if __name__ == "__main__":
    main()
