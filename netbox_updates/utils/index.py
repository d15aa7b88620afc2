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

import json
import logging
import re
from pathlib import Path
from typing import Optional

from packaging import version as packaging_version

VERSION_PATTERN = re.compile(r"(\d+\.\d+\.\d+)")
STRICT_VERSION_PATTERN = re.compile(r"^\d+\.\d+\.\d+$")

logger = logging.getLogger("netbox_updates")


def log_message(message, level="INFO"):
    """
    Log a message through the update system logger.
    Args:
        message (str): The message to log.
        level (str): Log level (e.g., 'INFO', 'ERROR').
    """
    if level == "ERROR":
        logger.error(message)
    elif level == "WARNING":
        logger.warning(message)
    elif level == "DEBUG":
        logger.debug(message)
    else:
        logger.info(message)


def get_module_version(module_path: str) -> str:
    """
    Get the schema version from a module's index.json file.

    Args:
        module_path (str): Path to the module directory

    Returns:
        str: The schema version from index.json, or "unknown" if not found
    """
    try:
        with open(Path(module_path) / "index.json", "r") as f:
            config = json.load(f)
        return config.get("metadata", {}).get("schema_version", "unknown")
    except (OSError, ValueError) as e:
        log_message(f"Failed to read module version from {module_path}: {e}", "ERROR")
        return "unknown"


def parse_version_string(text: str) -> Optional[str]:
    """
    Extract the first x.y.z version number found in a string.

    Works on symlink targets ("netbox-2.9.8") as well as release
    redirect locations (".../releases/tag/v2.9.9").

    Returns:
        str: The version, or None if the text holds no x.y.z triple
    """
    if not text:
        return None
    match = VERSION_PATTERN.search(text)
    if match:
        return match.group(1)
    return None


def is_valid_version(text: str) -> bool:
    """Check that text is exactly a dot-separated triple of integers."""
    return bool(text) and STRICT_VERSION_PATTERN.match(text) is not None


def compare_versions(version1: str, version2: str) -> int:
    """
    Compare two release version strings.

    Args:
        version1: First version string (e.g., "2.9.8")
        version2: Second version string (e.g., "2.9.9")

    Returns:
        int: -1 if version1 < version2, 0 if equal, 1 if version1 > version2
    """
    v1 = packaging_version.parse(version1)
    v2 = packaging_version.parse(version2)
    if v1 < v2:
        return -1
    if v1 > v2:
        return 1
    return 0
