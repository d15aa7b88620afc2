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
File Operations Component

Prepares a freshly extracted NetBox tree: links the host configuration
from /etc/netbox into it, carries user data over from the live tree and
finally repoints the current symlink.

All operations here are best-effort. Problems are logged and reported
through the boolean return value, never raised.
"""

import os
import shutil
from pathlib import Path
from typing import Any, Dict, List

from netbox_updates.index import log_message
from netbox_updates.utils.permissions import PermissionManager, PermissionTarget


class FileOperations:
    """Filesystem work around a NetBox version switch."""

    def __init__(self, config: Dict[str, Any]):
        module_config = config["config"]
        directories = module_config["directories"]

        self.config_dir = Path(directories["config_dir"])
        self.current_link = Path(directories["current_link"])
        self.config_links: List[Dict[str, str]] = module_config.get("config_links", [])
        self.user_data: List[str] = module_config.get("user_data", [])
        self.permissions: Dict[str, Any] = module_config.get("permissions", {})
        self.permission_manager = PermissionManager(config["metadata"]["module_name"])

    def relink_configuration(self, target_dir: Path) -> bool:
        """
        Symlink host configuration files into the new version tree.
        Args:
            target_dir: Freshly extracted version directory
        Returns:
            bool: True if every configured link was created
        """
        log_message("Linking configuration files...")
        success = True

        for link in self.config_links:
            source = self.config_dir / link["source"]
            destination = target_dir / link["target"]

            if not source.exists():
                log_message(f"Config source {source} not found - skipping", "WARNING")
                continue

            try:
                if destination.is_symlink() or destination.exists():
                    destination.unlink()
                destination.parent.mkdir(parents=True, exist_ok=True)
                os.symlink(source, destination)
                log_message(f"✓ Linked {destination} → {source}")
            except OSError as e:
                log_message(f"Failed to link {destination}: {e}", "WARNING")
                success = False

        return success

    def copy_user_data(self, source_dir: Path, target_dir: Path) -> bool:
        """
        Copy uploaded media, custom scripts/reports and local requirements.
        Args:
            source_dir: Live version directory
            target_dir: Freshly extracted version directory
        Returns:
            bool: True if everything present in source_dir was copied
        """
        log_message(f"Copying user data from {source_dir}...")
        success = True

        for relative_path in self.user_data:
            source_path = source_dir / relative_path
            target_path = target_dir / relative_path

            if not source_path.exists():
                log_message(f"{relative_path} not found in {source_dir} - skipping", "DEBUG")
                continue

            try:
                if source_path.is_dir():
                    shutil.copytree(source_path, target_path, symlinks=True, dirs_exist_ok=True)
                else:
                    target_path.parent.mkdir(parents=True, exist_ok=True)
                    shutil.copy2(source_path, target_path)
                log_message(f"✓ Copied {relative_path}")
            except (OSError, shutil.Error) as e:
                log_message(f"Failed to copy {relative_path}: {e}", "WARNING")
                success = False

        return success

    def restore_permissions(self, target_dir: Path) -> bool:
        """Give the NetBox service account ownership of its writable paths."""
        owner = self.permissions.get("owner")
        if not owner:
            return True

        targets = [
            PermissionTarget(
                path=str(target_dir / relative_path),
                owner=owner,
                group=self.permissions.get("group", owner),
                mode=self.permissions.get("mode"),
                recursive=True
            )
            for relative_path in self.permissions.get("paths", [])
        ]
        return self.permission_manager.set_permissions(targets)

    def switch_current(self, target_dir: Path) -> bool:
        """
        Repoint the current symlink at target_dir.

        The new link is created beside the old one and renamed over it, so
        the current path never disappears.
        """
        link_target = os.path.relpath(target_dir, self.current_link.parent)
        staging_link = self.current_link.with_name(f".{self.current_link.name}.new")

        try:
            if staging_link.is_symlink() or staging_link.exists():
                staging_link.unlink()
            os.symlink(link_target, staging_link)
            os.replace(staging_link, self.current_link)
        except OSError as e:
            log_message(f"Failed to switch {self.current_link} to {link_target}: {e}", "ERROR")
            return False

        log_message(f"✓ {self.current_link} now points to {link_target}")
        return True
