#!/usr/bin/env python3
"""
HOMESERVER Update Management System
Copyright (C) 2024 HOMESERVER LLC

HOMESERVER NetBox Update Module

Upgrades a NetBox installation laid out as side-by-side version
directories under /opt/netbox with a 'current' symlink selecting the live
one.

The upgrade is a fixed sequence of steps. Gated steps raise a
NetboxUpgradeError subclass that stops the run with that error's exit
code; best-effort steps only log. Nothing already done is rolled back.
"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from netbox_updates.index import log_message
from netbox_updates.utils.index import compare_versions
from netbox_updates.utils.moduleUtils import conditional_config_return

from .components import ReleaseManager, FileOperations, BackupManager, ServiceManager
from .errors import NetboxUpgradeError, PrivilegeError, VersionDetectionError, InputValidationError


# Load module configuration from index.json
def load_module_config(config_path=None):
    """
    Load configuration from the module's index.json file.
    Args:
        config_path: Alternative index.json location
    Returns:
        dict: Configuration data or default values if loading fails
    """
    try:
        if config_path is None:
            config_path = os.path.join(os.path.dirname(__file__), "index.json")
        with open(config_path, 'r') as f:
            return json.load(f)
    except (OSError, ValueError) as e:
        log_message(f"Failed to load module config: {e}", "WARNING")
        return {
            "metadata": {
                "schema_version": "1.0.0",
                "module_name": "netbox"
            },
            "config": {
                "directories": {
                    "install_root": "/opt/netbox",
                    "current_link": "/opt/netbox/current",
                    "backup_dir": "/opt/netbox/backup",
                    "config_dir": "/etc/netbox",
                    "temp_dir": "/tmp"
                },
                "installation": {
                    "latest_release_url": "https://github.com/netbox-community/netbox/releases/latest",
                    "download_url_template": "https://github.com/netbox-community/netbox/archive/v{version}.tar.gz",
                    "version_dir_template": "netbox-{version}",
                    "upgrade_script": "upgrade.sh",
                    "request_timeout": 30
                },
                "config_links": [
                    {"source": "configuration.py", "target": "netbox/netbox/configuration.py"},
                    {"source": "ldap_config.py", "target": "netbox/netbox/ldap_config.py"},
                    {"source": "gunicorn.py", "target": "gunicorn.py"}
                ],
                "user_data": ["netbox/media", "netbox/scripts", "netbox/reports", "local_requirements.txt"],
                "database": {"name": "netbox", "system_user": "postgres", "backup_prefix": "netbox"},
                "services": ["netbox", "netbox-rq"],
                "permissions": {"owner": "netbox", "group": "netbox", "paths": ["netbox/media"]}
            }
        }

# Global configuration
MODULE_CONFIG = load_module_config()


@dataclass
class UpgradeContext:
    """Values produced by the upgrade steps, in the order they appear."""
    current_version: Optional[str] = None
    current_dir: Optional[Path] = None
    latest_version: Optional[str] = None
    target_version: Optional[str] = None
    artifact: Optional[Path] = None
    target_dir: Optional[Path] = None
    backup_file: Optional[Path] = None
    upgrade_script_status: Optional[int] = None
    services_restarted: bool = False
    service_status: str = ""
    completed_steps: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


class NetboxUpgradeOrchestrator:
    """
    Runs the NetBox upgrade steps in order.

    Uses dedicated components for:
    - Releases: version discovery, prompt, download and extraction
    - Files: config links, user data, permissions and the cutover
    - Backups: the pre-cutover database dump
    - Services: upgrade.sh and systemd restarts
    """

    def __init__(self, config: Dict[str, Any] = None, requested_version: Optional[str] = None,
                 input_func: Optional[Callable[[str], str]] = None):
        self.config = config if config is not None else MODULE_CONFIG
        self.requested_version = requested_version
        self.input_func = input_func or input

        self.release_manager = ReleaseManager(self.config)
        self.file_operations = FileOperations(self.config)
        self.backup_manager = BackupManager(self.config)
        self.service_manager = ServiceManager(self.config)

        self.steps: List[Tuple[str, Callable[[UpgradeContext], None]]] = [
            ("check_privileges", self.check_privileges),
            ("discover_versions", self.discover_versions),
            ("select_version", self.select_version),
            ("download", self.download),
            ("check_target_directory", self.check_target_directory),
            ("extract", self.extract),
            ("relink_configuration", self.relink_configuration),
            ("copy_user_data", self.copy_user_data),
            ("backup_database", self.backup_database),
            ("cutover", self.cutover),
            ("run_upgrade_script", self.run_upgrade_script),
            ("restart_services", self.restart_services),
        ]

    def run(self, context: Optional[UpgradeContext] = None) -> UpgradeContext:
        """
        Execute every step, stopping at the first NetboxUpgradeError.

        The downloaded archive is removed whenever the run ends, whether or
        not it got as far as extracting it.
        """
        if context is None:
            context = UpgradeContext()

        try:
            for name, step in self.steps:
                log_message(f"Step: {name}", "DEBUG")
                step(context)
                context.completed_steps.append(name)
        finally:
            if context.artifact is not None:
                self.release_manager.remove_artifact(context.artifact)
                context.artifact = None

        return context

    def _warn(self, context: UpgradeContext, message: str) -> None:
        log_message(message, "WARNING")
        context.warnings.append(message)

    # --- Steps ---
    def check_privileges(self, context: UpgradeContext) -> None:
        if os.geteuid() != 0:
            raise PrivilegeError("This upgrade must be run as root")

    def discover_versions(self, context: UpgradeContext) -> None:
        context.current_version = self.release_manager.get_current_version()
        if not context.current_version:
            raise VersionDetectionError(
                f"Could not determine the current NetBox version from {self.release_manager.current_link}"
            )
        context.current_dir = self.release_manager.get_current_directory()
        log_message(f"Current NetBox version: {context.current_version}")

        context.latest_version = self.release_manager.get_latest_version()
        if context.latest_version:
            log_message(f"Latest available version: {context.latest_version}")
        else:
            self._warn(context, "Latest version could not be determined")

    def select_version(self, context: UpgradeContext) -> None:
        target = None
        if self.requested_version is not None:
            try:
                target = self.release_manager.resolve_target(self.requested_version, context.latest_version)
            except InputValidationError as e:
                log_message(f"Ignoring requested version: {e}", "WARNING")

        if target is None:
            target = self.release_manager.prompt_target_version(context.latest_version, self.input_func)

        context.target_version = target
        if compare_versions(target, context.current_version) < 0:
            self._warn(context, f"NetBox {target} is older than the installed {context.current_version}")
        log_message(f"Upgrading NetBox {context.current_version} → {target}")

    def download(self, context: UpgradeContext) -> None:
        context.artifact = self.release_manager.download_release(context.target_version)

    def check_target_directory(self, context: UpgradeContext) -> None:
        context.target_dir = self.release_manager.ensure_target_available(context.target_version)

    def extract(self, context: UpgradeContext) -> None:
        context.target_dir = self.release_manager.extract_release(context.artifact, context.target_version)
        self.release_manager.remove_artifact(context.artifact)
        context.artifact = None

    def relink_configuration(self, context: UpgradeContext) -> None:
        if not self.file_operations.relink_configuration(context.target_dir):
            self._warn(context, "Some configuration files could not be linked")

    def copy_user_data(self, context: UpgradeContext) -> None:
        if context.current_dir is None or not context.current_dir.is_dir():
            self._warn(context, "Live version directory not found, no user data copied")
            return
        if not self.file_operations.copy_user_data(context.current_dir, context.target_dir):
            self._warn(context, "Some user data could not be copied")
        if not self.file_operations.restore_permissions(context.target_dir):
            self._warn(context, "Some permissions could not be restored")

    def backup_database(self, context: UpgradeContext) -> None:
        context.backup_file = self.backup_manager.backup_database(context.current_version)

    def cutover(self, context: UpgradeContext) -> None:
        if not self.file_operations.switch_current(context.target_dir):
            self._warn(context, "Current symlink was not switched")

    def run_upgrade_script(self, context: UpgradeContext) -> None:
        context.upgrade_script_status = self.service_manager.run_upgrade_script(context.target_dir)

    def restart_services(self, context: UpgradeContext) -> None:
        context.services_restarted = self.service_manager.restart_services()
        if not context.services_restarted:
            self._warn(context, "Services did not restart cleanly")
        context.service_status = self.service_manager.service_status()


# --- Supplementary modes ---
def check_versions(orchestrator: NetboxUpgradeOrchestrator) -> Dict[str, Any]:
    """Report current/latest versions without changing anything."""
    release_manager = orchestrator.release_manager
    current_version = release_manager.get_current_version()
    latest_version = release_manager.get_latest_version()

    if not current_version:
        log_message(f"NetBox current symlink not usable at {release_manager.current_link}", "ERROR")
        return {"success": False, "error": "No current version", "exit_code": VersionDetectionError.exit_code}

    log_message(f"OK - Current version: {current_version}")
    update_available = False
    if latest_version:
        log_message(f"Latest available version: {latest_version}")
        update_available = compare_versions(latest_version, current_version) > 0
        if update_available:
            log_message("Update available - run without --check to upgrade")
        else:
            log_message("NetBox is up to date")
    else:
        log_message("Latest version could not be determined", "WARNING")

    latest_backup = orchestrator.backup_manager.latest_backup()
    if latest_backup:
        log_message(f"Last database backup: {latest_backup.path}")

    return {
        "success": True,
        "exit_code": 0,
        "version": current_version,
        "latest_version": latest_version,
        "update_available": update_available
    }


def list_backups(orchestrator: NetboxUpgradeOrchestrator) -> Dict[str, Any]:
    backups = orchestrator.backup_manager.list_backups()
    if not backups:
        log_message(f"No database backups in {orchestrator.backup_manager.state_manager.backup_root}")
    for backup in backups:
        created = backup.created.strftime("%Y-%m-%d %H:%M") if backup.created else backup.timestamp
        log_message(f"  {os.path.basename(backup.path)}  version {backup.version}  {created}  {backup.size} bytes")
    return {"success": True, "exit_code": 0, "backups": [backup.to_dict() for backup in backups]}


def verify_netbox_installation(orchestrator: NetboxUpgradeOrchestrator) -> Dict[str, Any]:
    """
    Verify that the live NetBox installation is usable.
    Returns:
        dict: Verification results with status and details
    """
    release_manager = orchestrator.release_manager
    service_manager = orchestrator.service_manager

    verification_results = {
        "current_link_exists": release_manager.current_link.is_symlink(),
        "current_dir_exists": False,
        "version_readable": False,
        "upgrade_script_exists": False,
        "services_active": False,
        "version": None
    }

    current_dir = release_manager.get_current_directory()
    if current_dir is not None and current_dir.is_dir():
        verification_results["current_dir_exists"] = True
        verification_results["upgrade_script_exists"] = (current_dir / service_manager.upgrade_script).is_file()

    version = release_manager.get_current_version()
    if version:
        verification_results["version_readable"] = True
        verification_results["version"] = version

    verification_results["services_active"] = all(
        service_manager.is_service_active(service) for service in service_manager.services
    )

    for check, result in verification_results.items():
        if check != "version":
            status = "✓" if result else "✗"
            log_message(f"NetBox verification - {check}: {status}")

    if verification_results["version"]:
        log_message(f"NetBox verification - version: {verification_results['version']}")

    return verification_results


def _option_value(args: List[str], flag: str) -> Optional[str]:
    if flag in args:
        index = args.index(flag)
        if index + 1 < len(args):
            return args[index + 1]
    return None


def main(args=None, config=None, input_func=None):
    """
    Main entry point for the NetBox update module.
    Args:
        args: List of arguments (supports '--target VERSION', '--check',
              '--config', '--list-backups', '--verify')
    Returns:
        dict: Status and results of the upgrade, including 'exit_code'
    """
    if args is None:
        args = []
    if config is None:
        config = MODULE_CONFIG

    orchestrator = NetboxUpgradeOrchestrator(
        config,
        requested_version=_option_value(args, "--target"),
        input_func=input_func
    )

    # --config mode: show current configuration
    if len(args) > 0 and args[0] == "--config":
        log_message("Current NetBox module configuration:")
        for dir_key, dir_path in config["config"]["directories"].items():
            log_message(f"  {dir_key}: {dir_path}")
        log_message(f"  services: {', '.join(orchestrator.service_manager.services)}")
        log_message(f"  database: {orchestrator.backup_manager.database_name}")
        return {"success": True, "exit_code": 0, "config": config}

    if len(args) > 0 and args[0] == "--check":
        return check_versions(orchestrator)

    if len(args) > 0 and args[0] == "--list-backups":
        return list_backups(orchestrator)

    if len(args) > 0 and args[0] == "--verify":
        log_message("Running NetBox verification...")
        verification = verify_netbox_installation(orchestrator)
        success = all([
            verification["current_link_exists"],
            verification["current_dir_exists"],
            verification["version_readable"]
        ])
        return {
            "success": success,
            "exit_code": 0 if success else 1,
            "verification": verification,
            "version": verification.get("version")
        }

    log_message("Starting NetBox upgrade...")
    context = UpgradeContext()
    try:
        orchestrator.run(context)
    except NetboxUpgradeError as e:
        log_message(f"✗ {e}", "ERROR")
        return conditional_config_return({
            "success": False,
            "error": str(e),
            "exit_code": e.exit_code,
            "completed_steps": context.completed_steps,
            "old_version": context.current_version,
            "target_version": context.target_version
        }, config)

    log_message(f"Successfully upgraded NetBox from {context.current_version} to {context.target_version}")
    if context.warnings:
        log_message(f"Upgrade finished with {len(context.warnings)} warning(s)", "WARNING")

    return conditional_config_return({
        "success": True,
        "updated": True,
        "exit_code": 0,
        "old_version": context.current_version,
        "new_version": context.target_version,
        "backup_file": str(context.backup_file),
        "upgrade_script_status": context.upgrade_script_status,
        "services_restarted": context.services_restarted,
        "warnings": context.warnings
    }, config)


if __name__ == "__main__":
    main()
