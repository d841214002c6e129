"""
Parsing a JSON Response
=======================

Decode a GitHub gist into plain data, or straight into dataclasses.
"""

import dataclasses
import typing

import httptap

URL = "https://api.github.com/gists/c2a7c39532239ff261be"


@dataclasses.dataclass
class GistFile:
    content: str


@dataclasses.dataclass
class Gist:
    files: typing.Dict[str, GistFile]


def main() -> None:
    with httptap.TapSettings().build_client() as client:
        response = client.get(URL)
        response.raise_for_status()

    print("── Untyped ────────────────────────────────────────────────────")
    data = httptap.parse_json(response)
    print(f"  Files: {sorted(data['files'])}")
    print()

    print("── Typed ──────────────────────────────────────────────────────")
    gist = httptap.parse_json(response, Gist)
    for name, gist_file in gist.files.items():
        print(name)
        print(gist_file.content)


if __name__ == "__main__":
    main()
