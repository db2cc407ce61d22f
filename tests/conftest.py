"""Shared fixtures: an in-memory release server and an echo-style protoc stub."""

from __future__ import annotations

import io
import zipfile
from pathlib import Path
from typing import Any

import httpx
import pytest

from base import ToolSpec, protoc_spec
from fetcher import HttpFetcher
from provision import Provisioner

# Prints each argument on its own line, exits with $STUB_EXIT.
STUB_TOOL = """#!/bin/sh
for arg in "$@"; do
  printf '%s\\n' "$arg"
done
exit "${STUB_EXIT:-0}"
"""


class ReleaseServer:
    """httpx MockTransport handler that records every request."""

    def __init__(
        self,
        body: bytes = b"",
        *,
        status: int = 200,
        error: type[httpx.TransportError] | None = None,
    ) -> None:
        self.body = body
        self.status = status
        self.error = error
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error("unreachable host", request=request)
        return httpx.Response(self.status, content=self.body)


def make_zip(entries: dict[str, str | bytes]) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        for name, data in entries.items():
            zf.writestr(name, data)
    return buf.getvalue()


@pytest.fixture
def spec() -> ToolSpec:
    return protoc_spec(system="Linux", machine="x86_64")


@pytest.fixture
def release_zip() -> bytes:
    return make_zip({
        "include/google/protobuf/any.proto": 'syntax = "proto3";\n',
        "bin/protoc": STUB_TOOL,
        "readme.txt": "stub\n",
    })


@pytest.fixture
def make_fetcher() -> Any:
    def _make(body: bytes = b"", **kwargs: Any) -> tuple[HttpFetcher, ReleaseServer]:
        server = ReleaseServer(body, **kwargs)
        client = httpx.Client(transport=httpx.MockTransport(server), follow_redirects=True)
        return HttpFetcher(client), server

    return _make


@pytest.fixture
def tmp_root(tmp_path: Path) -> Path:
    root = tmp_path / "tmp"
    root.mkdir()
    return root


@pytest.fixture
def make_provisioner(spec: ToolSpec, tmp_path: Path, tmp_root: Path) -> Any:
    def _make(fetcher: HttpFetcher) -> Provisioner:
        return Provisioner(spec, tmp_path / "cache", fetcher=fetcher, tmp_root=tmp_root)

    return _make


@pytest.fixture
def zip_of() -> Any:
    return make_zip
