"""
HOMESERVER Update Management System
Copyright (C) 2024 HOMESERVER LLC

Backup Manager Component

Takes the pre-cutover database dump through the shared state manager and
turns a missing or empty dump into a fatal BackupError.
"""

from pathlib import Path
from typing import Any, Dict, List

from netbox_updates.index import log_message
from netbox_updates.utils.state_manager import StateManager, StateManagerError, DatabaseBackupInfo
from ..errors import BackupError


class BackupManager:
    """Database backups for NetBox upgrades."""

    def __init__(self, config: Dict[str, Any]):
        module_config = config["config"]
        database = module_config.get("database", {})

        self.database_name = database.get("name", "netbox")
        self.system_user = database.get("system_user", "postgres")
        self.dump_command = database.get("dump_command")
        self.backup_prefix = database.get("backup_prefix", "netbox")

        self.state_manager = StateManager(module_config["directories"]["backup_dir"])

    def backup_database(self, current_version: str) -> Path:
        """
        Dump the database, labelled with the version being replaced.

        Returns:
            Path: The dump file, e.g. netbox-2.9.8-202101311200.psql

        Raises:
            BackupError: If the dump could not be written or is empty
        """
        log_message("[BACKUP] Creating database backup before cutover...")

        try:
            backup_file = self.state_manager.backup_database(
                self.database_name,
                label=f"{self.backup_prefix}-{current_version}",
                system_user=self.system_user,
                dump_command=self.dump_command
            )
        except (StateManagerError, OSError) as e:
            raise BackupError(f"Database backup failed: {e}") from e

        if not self.state_manager.validate_backup(backup_file):
            raise BackupError(f"Database backup {backup_file} is missing or empty")

        log_message(f"[BACKUP] ✓ Database backup written to {backup_file}")
        return backup_file

    def list_backups(self) -> List[DatabaseBackupInfo]:
        return self.state_manager.list_backups(self.backup_prefix)

    def latest_backup(self):
        return self.state_manager.latest_backup(self.backup_prefix)
