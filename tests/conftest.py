"""Shared fixtures: a throw-away /opt/netbox tree and fakes for requests/subprocess."""

from __future__ import annotations

import copy
import os
import subprocess
from pathlib import Path
from typing import Dict

import pytest
import requests

from helpers import CURRENT_VERSION, FakeHttp, FakeSubprocess
from netbox_updates.modules.netbox import index as netbox_index


@pytest.fixture
def install_layout(tmp_path: Path) -> Dict[str, Path]:
    """/opt/netbox with a live 2.9.8 tree plus /etc/netbox config sources."""
    install_root = tmp_path / "opt" / "netbox"
    current_dir = install_root / f"netbox-{CURRENT_VERSION}"
    (current_dir / "netbox" / "media" / "image-attachments").mkdir(parents=True)
    (current_dir / "netbox" / "media" / "image-attachments" / "rack.png").write_bytes(b"png")
    (current_dir / "netbox" / "scripts").mkdir()
    (current_dir / "netbox" / "scripts" / "cleanup.py").write_text("# custom script\n")
    (current_dir / "local_requirements.txt").write_text("napalm\n")
    (current_dir / "upgrade.sh").write_text("#!/bin/sh\n")
    os.symlink(f"netbox-{CURRENT_VERSION}", install_root / "current")

    config_dir = tmp_path / "etc" / "netbox"
    config_dir.mkdir(parents=True)
    (config_dir / "configuration.py").write_text("ALLOWED_HOSTS = ['*']\n")
    (config_dir / "gunicorn.py").write_text("bind = '127.0.0.1:8001'\n")

    temp_dir = tmp_path / "tmp"
    temp_dir.mkdir()

    return {
        "install_root": install_root,
        "current_link": install_root / "current",
        "current_dir": current_dir,
        "backup_dir": install_root / "backup",
        "config_dir": config_dir,
        "temp_dir": temp_dir,
    }


@pytest.fixture
def module_config(install_layout: Dict[str, Path]) -> dict:
    config = copy.deepcopy(netbox_index.MODULE_CONFIG)
    directories = config["config"]["directories"]
    for key in ("install_root", "current_link", "backup_dir", "config_dir", "temp_dir"):
        directories[key] = str(install_layout[key])
    return config


@pytest.fixture
def fake_http(monkeypatch: pytest.MonkeyPatch) -> FakeHttp:
    fake = FakeHttp()
    monkeypatch.setattr(requests, "head", fake.head)
    monkeypatch.setattr(requests, "get", fake.get)
    return fake


@pytest.fixture
def fake_subprocess(monkeypatch: pytest.MonkeyPatch) -> FakeSubprocess:
    fake = FakeSubprocess()
    monkeypatch.setattr(subprocess, "run", fake)
    return fake


@pytest.fixture
def as_root(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(os, "geteuid", lambda: 0, raising=False)

