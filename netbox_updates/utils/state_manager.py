#!/usr/bin/env python3
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
State Manager for Updates System

Timestamped database dumps taken right before a cutover. Every run writes
a new file; nothing is rotated or overwritten.

Usage:
    from netbox_updates.utils import StateManager

    state_manager = StateManager("/opt/netbox/backup")
    backup_file = state_manager.backup_database("netbox", label="netbox-2.9.8")

    if not state_manager.validate_backup(backup_file):
        ...
"""

import os
import re
import subprocess
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional
from dataclasses import dataclass, asdict
from .index import log_message

TIMESTAMP_FORMAT = "%Y%m%d%H%M"


class StateManagerError(Exception):
    """Custom exception for state manager operation failures."""
    pass


@dataclass
class DatabaseBackupInfo:
    """Information about one database dump on disk."""
    path: str
    label: str
    version: str
    timestamp: str
    size: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @property
    def created(self) -> Optional[datetime]:
        try:
            return datetime.strptime(self.timestamp, TIMESTAMP_FORMAT)
        except ValueError:
            return None


class StateManager:
    """
    Database dump storage for one service.

    The backup directory is created the first time a dump is written.
    """

    def __init__(self, backup_dir: str = "/opt/netbox/backup", suffix: str = ".psql"):
        self.backup_root = Path(backup_dir)
        self.suffix = suffix

    def _timestamp(self) -> str:
        return datetime.now().strftime(TIMESTAMP_FORMAT)

    def backup_file_for(self, label: str, timestamp: Optional[str] = None) -> Path:
        """Build the dump path for a label such as 'netbox-2.9.8'."""
        return self.backup_root / f"{label}-{timestamp or self._timestamp()}{self.suffix}"

    def backup_database(self, database: str, label: str, system_user: str = "postgres",
                        dump_command: Optional[List[str]] = None) -> Path:
        """
        Dump a PostgreSQL database to a new timestamped file.

        pg_dump runs as the database system account and its stdout is
        written by this process, so the dump file ends up owned by the
        caller.

        Args:
            database: Name of the database to dump
            label: File name prefix, usually '<service>-<version>'
            system_user: Account pg_dump runs as
            dump_command: Command prefix used to switch accounts

        Returns:
            Path: The dump file that was written

        Raises:
            StateManagerError: If pg_dump could not be started or a dump
                with the same name already exists
        """
        self.backup_root.mkdir(parents=True, exist_ok=True)
        backup_file = self.backup_file_for(label)

        if dump_command is None:
            dump_command = ["sudo", "-u", system_user]
        cmd = list(dump_command) + ["pg_dump", database]

        log_message(f"Dumping database '{database}' to {backup_file}...")
        try:
            with open(backup_file, "xb") as output:
                result = subprocess.run(cmd, stdout=output, stderr=subprocess.PIPE, check=False)
        except FileExistsError as e:
            raise StateManagerError(f"Backup {backup_file} already exists, refusing to overwrite it") from e
        except OSError as e:
            raise StateManagerError(f"Failed to run {' '.join(cmd)}: {e}") from e

        if result.returncode != 0:
            stderr = (result.stderr or b"").decode(errors="replace").strip()
            log_message(f"pg_dump exited with {result.returncode}: {stderr}", "WARNING")

        return backup_file

    def validate_backup(self, backup_file: Path) -> bool:
        """A dump is usable when it exists and is not empty."""
        backup_file = Path(backup_file)
        if not backup_file.is_file():
            log_message(f"Backup file not found: {backup_file}", "ERROR")
            return False
        if backup_file.stat().st_size == 0:
            log_message(f"Backup file is empty: {backup_file}", "ERROR")
            return False
        return True

    def list_backups(self, prefix: str) -> List[DatabaseBackupInfo]:
        """
        List dumps in the backup directory written for a prefix.

        Returns:
            list: DatabaseBackupInfo entries, newest first
        """
        if not self.backup_root.is_dir():
            return []

        pattern = re.compile(
            rf"^({re.escape(prefix)}-(\d+\.\d+\.\d+))-(\d{{12}}){re.escape(self.suffix)}$"
        )
        backups = []
        for entry in os.scandir(self.backup_root):
            match = pattern.match(entry.name)
            if not match or not entry.is_file():
                continue
            backups.append(DatabaseBackupInfo(
                path=entry.path,
                label=match.group(1),
                version=match.group(2),
                timestamp=match.group(3),
                size=entry.stat().st_size
            ))

        backups.sort(key=lambda info: (info.timestamp, info.version), reverse=True)
        return backups

    def latest_backup(self, prefix: str) -> Optional[DatabaseBackupInfo]:
        backups = self.list_backups(prefix)
        return backups[0] if backups else None
