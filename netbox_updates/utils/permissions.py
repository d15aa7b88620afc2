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
Permission Management Utilities

Ownership and mode changes are delegated to chown/chmod so that
recursive application behaves exactly like the shell tools.
"""

import os
import subprocess
from typing import List, Optional, Union
from dataclasses import dataclass
from .index import log_message


@dataclass
class PermissionTarget:
    """Represents a file or directory with its desired permissions."""
    path: str
    owner: str
    group: str
    mode: Optional[Union[str, int]] = None  # Octal string like "755", int like 0o755, or None to keep modes
    recursive: bool = False

    def __post_init__(self):
        """Convert mode to integer if it's a string."""
        if isinstance(self.mode, str):
            self.mode = int(self.mode, 8)


class PermissionManager:
    """Applies ownership and modes for one service's files."""

    def __init__(self, module_name: str = "unknown"):
        self.module_name = module_name

    def set_permissions(self, targets: List[PermissionTarget]) -> bool:
        """
        Set permissions for multiple targets.

        Args:
            targets: List of PermissionTarget objects

        Returns:
            bool: True if every target was handled successfully
        """
        if not targets:
            log_message("No permission targets specified", "WARNING")
            return True

        success_count = 0
        for target in targets:
            if self._set_single_permission(target):
                success_count += 1
            else:
                log_message(f"Failed to set permissions for {target.path}", "WARNING")

        if success_count == len(targets):
            log_message(f"Set {self.module_name} permissions for all {len(targets)} targets")
            return True

        log_message(f"Set {self.module_name} permissions for {success_count}/{len(targets)} targets", "WARNING")
        return False

    def _set_single_permission(self, target: PermissionTarget) -> bool:
        if not os.path.exists(target.path):
            log_message(f"Skipping {target.path} - does not exist", "DEBUG")
            return True

        if not self._run(["chown"], f"{target.owner}:{target.group}", target):
            return False
        if target.mode is not None and not self._run(["chmod"], oct(target.mode)[2:], target):
            return False

        mode = oct(target.mode) if target.mode is not None else "mode unchanged"
        log_message(f"✓ Set permissions for {target.path} ({target.owner}:{target.group} {mode})")
        return True

    def _run(self, cmd: List[str], value: str, target: PermissionTarget) -> bool:
        cmd = list(cmd)
        if target.recursive and os.path.isdir(target.path):
            cmd.append("-R")
        cmd.extend([value, target.path])

        try:
            result = subprocess.run(cmd, capture_output=True, text=True, check=False)
        except OSError as e:
            log_message(f"Error running {cmd[0]} on {target.path}: {e}", "WARNING")
            return False

        if result.returncode != 0:
            log_message(f"{cmd[0]} failed for {target.path}: {result.stderr.strip()}", "WARNING")
            return False
        return True
