from __future__ import annotations

from pathlib import Path

import io
import tarfile

import pytest

from helpers import CURRENT_VERSION, TARGET_VERSION, answers, build_release_archive
from netbox_updates.modules.netbox.components import ReleaseManager
from netbox_updates.modules.netbox.errors import (
    DirectoryCollisionError,
    DownloadError,
    ExtractionError,
    InputValidationError,
    PromptClosedError,
)


@pytest.fixture
def release_manager(module_config: dict) -> ReleaseManager:
    return ReleaseManager(module_config)


def test_current_version_is_read_from_symlink_target(release_manager: ReleaseManager, install_layout) -> None:
    assert release_manager.get_current_version() == CURRENT_VERSION
    assert release_manager.get_current_directory() == install_layout["current_dir"].resolve()


def test_current_version_is_none_without_symlink(release_manager: ReleaseManager, install_layout) -> None:
    install_layout["current_link"].unlink()
    assert release_manager.get_current_version() is None
    assert release_manager.get_current_directory() is None


def test_latest_version_comes_from_redirect_location(release_manager: ReleaseManager, fake_http) -> None:
    assert release_manager.get_latest_version() == "2.9.10"
    assert fake_http.head_calls == ["https://github.com/netbox-community/netbox/releases/latest"]


def test_latest_version_is_none_when_unreachable(release_manager: ReleaseManager, fake_http) -> None:
    fake_http.fail_head = True
    assert release_manager.get_latest_version() is None


def test_latest_version_is_none_without_location(release_manager: ReleaseManager, fake_http) -> None:
    fake_http.location = ""
    assert release_manager.get_latest_version() is None


def test_prompt_repeats_until_a_valid_version_is_given(release_manager: ReleaseManager) -> None:
    fake_input = answers("foo", "2.9", "2.9.x", TARGET_VERSION)

    assert release_manager.prompt_target_version("2.9.10", fake_input) == TARGET_VERSION
    assert len(fake_input.prompts) == 4
    assert fake_input.remaining == []


@pytest.mark.parametrize("answer", ["latest", "LATEST", " Latest "])
def test_latest_alias_resolves_to_redirect_version(release_manager: ReleaseManager, answer: str) -> None:
    assert release_manager.prompt_target_version("2.9.10", answers(answer)) == "2.9.10"


def test_latest_alias_reprompts_when_latest_is_unknown(release_manager: ReleaseManager) -> None:
    fake_input = answers("latest", TARGET_VERSION)
    assert release_manager.prompt_target_version(None, fake_input) == TARGET_VERSION
    assert len(fake_input.prompts) == 2


@pytest.mark.parametrize("answer", ["", "  ", "v2.9.9"])
def test_blank_and_tag_style_answers_reprompt(release_manager: ReleaseManager, answer: str) -> None:
    fake_input = answers(answer, TARGET_VERSION)

    assert release_manager.prompt_target_version("2.9.10", fake_input) == TARGET_VERSION
    assert len(fake_input.prompts) == 2


def test_closed_stdin_at_prompt_is_fatal(release_manager: ReleaseManager) -> None:
    def closed(prompt=""):
        raise EOFError

    with pytest.raises(PromptClosedError) as excinfo:
        release_manager.prompt_target_version("2.9.10", closed)
    assert excinfo.value.exit_code == 1


def test_resolve_target_rejects_garbage(release_manager: ReleaseManager) -> None:
    with pytest.raises(InputValidationError):
        release_manager.resolve_target("2.9.9-beta", "2.9.10")


def test_download_writes_archive_to_temp_dir(release_manager: ReleaseManager, fake_http, install_layout) -> None:
    artifact = release_manager.download_release(TARGET_VERSION)

    assert artifact == install_layout["temp_dir"] / f"netbox-{TARGET_VERSION}.tar.gz"
    assert artifact.read_bytes() == fake_http.archives[TARGET_VERSION]
    assert fake_http.get_calls == [
        f"https://github.com/netbox-community/netbox/archive/v{TARGET_VERSION}.tar.gz"
    ]


def test_empty_download_is_fatal_and_removed(release_manager: ReleaseManager, fake_http) -> None:
    fake_http.archives[TARGET_VERSION] = b""

    with pytest.raises(DownloadError) as excinfo:
        release_manager.download_release(TARGET_VERSION)

    assert excinfo.value.exit_code == 1
    assert not release_manager.artifact_path(TARGET_VERSION).exists()


def test_http_error_is_a_download_error(release_manager: ReleaseManager, fake_http) -> None:
    with pytest.raises(DownloadError):
        release_manager.download_release("9.9.9")
    assert not release_manager.artifact_path("9.9.9").exists()


def test_existing_version_directory_is_a_collision(release_manager: ReleaseManager, install_layout) -> None:
    (install_layout["install_root"] / f"netbox-{TARGET_VERSION}").mkdir()

    with pytest.raises(DirectoryCollisionError) as excinfo:
        release_manager.ensure_target_available(TARGET_VERSION)
    assert excinfo.value.exit_code == 2


def test_extract_creates_version_directory(release_manager: ReleaseManager, tmp_path: Path, install_layout) -> None:
    artifact = tmp_path / "release.tar.gz"
    artifact.write_bytes(build_release_archive(TARGET_VERSION))

    target_dir = release_manager.extract_release(artifact, TARGET_VERSION)

    assert target_dir == install_layout["install_root"] / f"netbox-{TARGET_VERSION}"
    assert (target_dir / "upgrade.sh").is_file()


def test_extract_without_expected_directory_fails(release_manager: ReleaseManager, tmp_path: Path) -> None:
    artifact = tmp_path / "release.tar.gz"
    artifact.write_bytes(build_release_archive(TARGET_VERSION, include_root=False))

    with pytest.raises(ExtractionError) as excinfo:
        release_manager.extract_release(artifact, TARGET_VERSION)
    assert excinfo.value.exit_code == 3


def test_extract_of_corrupt_archive_fails(release_manager: ReleaseManager, tmp_path: Path) -> None:
    artifact = tmp_path / "release.tar.gz"
    artifact.write_bytes(b"<html>not a tarball</html>")

    with pytest.raises(ExtractionError):
        release_manager.extract_release(artifact, TARGET_VERSION)


@pytest.mark.skipif(not hasattr(tarfile, "data_filter"), reason="tarfile extraction filters unavailable")
def test_extract_refuses_members_outside_install_root(release_manager: ReleaseManager, tmp_path: Path,
                                                      install_layout) -> None:
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as tar:
        info = tarfile.TarInfo("../escaped.txt")
        info.size = 3
        tar.addfile(info, io.BytesIO(b"bad"))
    artifact = tmp_path / "release.tar.gz"
    artifact.write_bytes(buffer.getvalue())

    with pytest.raises(ExtractionError):
        release_manager.extract_release(artifact, TARGET_VERSION)
    assert not (install_layout["install_root"].parent / "escaped.txt").exists()
