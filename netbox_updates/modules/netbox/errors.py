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
NetBox upgrade failures.

Each fatal failure carries the exit code the CLI terminates with.
"""


class NetboxUpgradeError(Exception):
    """Base exception for NetBox upgrade failures."""
    exit_code = 1


class PrivilegeError(NetboxUpgradeError):
    """The upgrade was not started as root."""
    exit_code = 1


class DownloadError(NetboxUpgradeError):
    """The release archive could not be downloaded or is empty."""
    exit_code = 1


class DirectoryCollisionError(NetboxUpgradeError):
    """The directory for the target version already exists."""
    exit_code = 2


class ExtractionError(NetboxUpgradeError):
    """Extracting the archive did not produce the version directory."""
    exit_code = 3


class BackupError(NetboxUpgradeError):
    """The database dump is missing or empty."""
    exit_code = 4


class VersionDetectionError(NetboxUpgradeError):
    """The live version could not be read from the current symlink."""
    exit_code = 5


class InputValidationError(ValueError):
    """A version answer was rejected; the prompt asks again."""
    pass


class PromptClosedError(NetboxUpgradeError):
    """Standard input closed while asking for the target version."""
    exit_code = 1
