"""Fakes and builders shared by the test-suite."""

from __future__ import annotations

import io
import os
import subprocess
import tarfile
from typing import Dict, List, Optional

import requests

CURRENT_VERSION = "2.9.8"
TARGET_VERSION = "2.9.9"
LATEST_LOCATION = "https://github.com/netbox-community/netbox/releases/tag/v2.9.10"


def build_release_archive(version: str, include_root: bool = True) -> bytes:
    """A minimal gzipped NetBox release tarball."""
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as tar:
        root = f"netbox-{version}" if include_root else "something-else"
        members = {
            f"{root}/upgrade.sh": b"#!/bin/sh\necho upgrading\n",
            f"{root}/netbox/netbox/settings.py": b"# settings\n",
            f"{root}/netbox/media/.gitkeep": b"",
        }
        for name, data in members.items():
            info = tarfile.TarInfo(name)
            info.size = len(data)
            info.mode = 0o755
            tar.addfile(info, io.BytesIO(data))
    return buffer.getvalue()


class FakeResponse:
    def __init__(self, body: bytes = b"", status_code: int = 200, headers: Optional[Dict[str, str]] = None):
        self.body = body
        self.status_code = status_code
        self.headers = headers or {}

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error")

    def iter_content(self, chunk_size=1):
        for start in range(0, len(self.body), chunk_size):
            yield self.body[start:start + chunk_size]


class FakeHttp:
    """Records requests and serves a release archive and a latest redirect."""

    def __init__(self):
        self.archives: Dict[str, bytes] = {TARGET_VERSION: build_release_archive(TARGET_VERSION)}
        self.location = LATEST_LOCATION
        self.get_calls: List[str] = []
        self.head_calls: List[str] = []
        self.fail_head = False

    def head(self, url, allow_redirects=True, timeout=None):
        self.head_calls.append(url)
        if self.fail_head:
            raise requests.ConnectionError("network unreachable")
        return FakeResponse(status_code=302, headers={"Location": self.location})

    def get(self, url, stream=False, timeout=None):
        self.get_calls.append(url)
        for version, body in self.archives.items():
            if url.endswith(f"v{version}.tar.gz"):
                return FakeResponse(body)
        return FakeResponse(status_code=404)


class FakeSubprocess:
    """Stands in for subprocess.run; pg_dump writes dump_output to its stdout."""

    def __init__(self):
        self.calls: List[List[str]] = []
        self.dump_output = b"-- PostgreSQL database dump\n"
        self.missing: List[str] = []
        self.returncodes: Dict[str, int] = {}

    def commands(self, name: str) -> List[List[str]]:
        return [cmd for cmd in self.calls if name in cmd or os.path.basename(cmd[0]) == name]

    def __call__(self, cmd, *args, **kwargs):
        cmd = list(cmd)
        self.calls.append(cmd)

        for name in self.missing:
            if name in cmd:
                raise FileNotFoundError(2, "No such file or directory", name)

        if "pg_dump" in cmd:
            kwargs["stdout"].write(self.dump_output)

        returncode = 0
        for name, code in self.returncodes.items():
            if name in cmd or os.path.basename(cmd[0]) == name:
                returncode = code

        empty = "" if kwargs.get("text") else b""
        stdout = "netbox.service - NetBox WSGI Service\n   Active: active (running)" if "status" in cmd else empty
        return subprocess.CompletedProcess(cmd, returncode, stdout=stdout, stderr=empty)


def answers(*values: str):
    """An input() replacement returning values in order and recording prompts."""
    remaining = list(values)
    prompts: List[str] = []

    def _input(prompt: str = "") -> str:
        prompts.append(prompt)
        if not remaining:
            raise AssertionError("prompted more often than expected")
        return remaining.pop(0)

    _input.prompts = prompts
    _input.remaining = remaining
    return _input
