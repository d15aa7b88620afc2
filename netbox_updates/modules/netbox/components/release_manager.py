"""
HOMESERVER Update Management System
Copyright (C) 2024 HOMESERVER LLC

This program is free software: you can redistribute it and/or modify
it under the terms of the GNU General Public License as published by
the Free Software Foundation, either version 3 of the License, or
(at your option) any later version.

This program is distributed in the hope that it will be useful,
but WITHOUT ANY WARRANTY; without even the implied warranty of
MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
GNU General Public License for more details.

You should have received a copy of the GNU General Public License
along with this program.  If not, see <https://www.gnu.org/licenses/>.
"""

"""
Release Manager Component

Finds the live and latest NetBox versions, asks which version to install,
then downloads and unpacks the release archive next to the live one.
"""

import os
import tarfile
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import requests

from netbox_updates.index import log_message
from netbox_updates.utils.index import parse_version_string, is_valid_version
from ..errors import (
    DownloadError,
    DirectoryCollisionError,
    ExtractionError,
    InputValidationError,
    PromptClosedError
)

DOWNLOAD_CHUNK_SIZE = 64 * 1024
LATEST_ALIAS = "latest"


class ReleaseManager:
    """Version discovery and release artifact handling."""

    def __init__(self, config: Dict[str, Any]):
        directories = config["config"]["directories"]
        installation = config["config"]["installation"]

        self.install_root = Path(directories["install_root"])
        self.current_link = Path(directories["current_link"])
        self.temp_dir = Path(directories.get("temp_dir", "/tmp"))

        self.latest_release_url = installation["latest_release_url"]
        self.download_url_template = installation["download_url_template"]
        self.version_dir_template = installation.get("version_dir_template", "netbox-{version}")
        self.request_timeout = installation.get("request_timeout", 30)

    def version_dir(self, version: str) -> Path:
        """Directory a given release lives in, e.g. /opt/netbox/netbox-2.9.9."""
        return self.install_root / self.version_dir_template.format(version=version)

    # --- Version discovery ---
    def get_current_directory(self) -> Optional[Path]:
        """Resolve the current symlink to the live version directory."""
        if not self.current_link.is_symlink():
            return None
        return self.current_link.resolve()

    def get_current_version(self) -> Optional[str]:
        """
        Read the live version from the current symlink target.
        Returns:
            str: Version string or None if the link is missing or unparsable
        """
        if not self.current_link.is_symlink():
            log_message(f"Current symlink not found at {self.current_link}", "DEBUG")
            return None

        target = os.readlink(self.current_link)
        version = parse_version_string(os.path.basename(target.rstrip("/")))
        if not version:
            log_message(f"Could not parse version from symlink target '{target}'", "WARNING")
        return version

    def get_latest_version(self) -> Optional[str]:
        """
        Resolve the latest release from the redirect of the releases/latest page.
        Returns:
            str: Latest version string or None
        """
        try:
            response = requests.head(self.latest_release_url, allow_redirects=False,
                                     timeout=self.request_timeout)
        except requests.RequestException as e:
            log_message(f"Failed to get latest version info: {e}", "WARNING")
            return None

        location = response.headers.get("Location", "")
        version = parse_version_string(location.rstrip("/").rsplit("/", 1)[-1])
        if not version:
            log_message(f"No release version in redirect location '{location}'", "WARNING")
        return version

    # --- Version selection ---
    def resolve_target(self, answer: Optional[str], latest_version: Optional[str]) -> str:
        """
        Turn a version answer into a concrete x.y.z version.

        Only a strict x.y.z version or the case-insensitive 'latest' alias
        is accepted.

        Raises:
            InputValidationError: If the answer is not a usable version
        """
        answer = (answer or "").strip()
        if answer.lower() == LATEST_ALIAS:
            if not latest_version:
                raise InputValidationError("Latest version is unknown, enter a version as x.y.z")
            return latest_version
        if not is_valid_version(answer):
            raise InputValidationError(f"'{answer}' is not a version in x.y.z format")
        return answer

    def prompt_target_version(self, latest_version: Optional[str],
                              input_func: Callable[[str], str] = input) -> str:
        """Ask for the target version until a valid one is given."""
        if latest_version:
            prompt = f"Enter the NetBox version to install [latest: {latest_version}]: "
        else:
            prompt = "Enter the NetBox version to install (x.y.z): "

        while True:
            try:
                return self.resolve_target(input_func(prompt), latest_version)
            except InputValidationError as e:
                log_message(str(e), "WARNING")
            except EOFError as e:
                raise PromptClosedError("No version given, standard input is closed") from e

    # --- Artifact handling ---
    def artifact_path(self, version: str) -> Path:
        return self.temp_dir / f"netbox-{version}.tar.gz"

    def download_release(self, version: str) -> Path:
        """
        Download the release archive for a version into the temp directory.

        Returns:
            Path: The downloaded archive

        Raises:
            DownloadError: On HTTP/connection failure or an empty download
        """
        url = self.download_url_template.format(version=version)
        artifact = self.artifact_path(version)
        log_message(f"Downloading from {url}...")

        try:
            with requests.get(url, stream=True, timeout=self.request_timeout) as response:
                response.raise_for_status()
                with open(artifact, "wb") as f:
                    for chunk in response.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
                        if chunk:
                            f.write(chunk)
        except (requests.RequestException, OSError) as e:
            self.remove_artifact(artifact)
            raise DownloadError(f"Failed to download {url}: {e}") from e

        if not artifact.is_file() or artifact.stat().st_size == 0:
            self.remove_artifact(artifact)
            raise DownloadError(f"Downloaded archive {artifact} is empty")

        log_message(f"Downloaded {artifact} ({artifact.stat().st_size} bytes)")
        return artifact

    def remove_artifact(self, artifact: Path) -> None:
        try:
            artifact.unlink()
            log_message(f"Removed temporary archive {artifact}", "DEBUG")
        except FileNotFoundError:
            pass
        except OSError as e:
            log_message(f"Failed to remove temporary archive {artifact}: {e}", "WARNING")

    def ensure_target_available(self, version: str) -> Path:
        """
        Refuse to touch a version directory that already exists.

        Raises:
            DirectoryCollisionError: If the target directory exists
        """
        target_dir = self.version_dir(version)
        if target_dir.exists() or target_dir.is_symlink():
            raise DirectoryCollisionError(f"{target_dir} already exists, refusing to overwrite it")
        return target_dir

    def extract_release(self, artifact: Path, version: str) -> Path:
        """
        Unpack the archive into the install root.

        Returns:
            Path: The new version directory

        Raises:
            ExtractionError: If the archive is unreadable or lacks the version directory
        """
        target_dir = self.version_dir(version)
        log_message(f"Extracting {artifact} into {self.install_root}...")

        try:
            with tarfile.open(artifact, "r:gz") as tar:
                if hasattr(tarfile, "data_filter"):
                    tar.extractall(self.install_root, filter="data")
                else:
                    tar.extractall(self.install_root)
        except (tarfile.TarError, OSError) as e:
            raise ExtractionError(f"Failed to extract {artifact}: {e}") from e

        if not target_dir.is_dir():
            raise ExtractionError(f"Extraction did not produce {target_dir}")

        log_message(f"✓ Extracted NetBox {version} to {target_dir}")
        return target_dir
