"""
HOMESERVER Update Management System
Copyright (C) 2024 HOMESERVER LLC

Service Manager Component

Runs NetBox's bundled upgrade.sh and restarts the systemd units. Results
are logged for the operator; none of them stop the upgrade.
"""

import subprocess
from pathlib import Path
from typing import Any, Dict, List, Optional

from netbox_updates.index import log_message


class ServiceManager:
    """Vendor upgrade script and systemd service handling."""

    def __init__(self, config: Dict[str, Any]):
        module_config = config["config"]
        self.services: List[str] = module_config.get("services", ["netbox", "netbox-rq"])
        self.upgrade_script = module_config["installation"].get("upgrade_script", "upgrade.sh")

    def run_upgrade_script(self, target_dir: Path) -> Optional[int]:
        """
        Run upgrade.sh from inside the new version directory.

        Output goes straight to the terminal since the script installs
        Python requirements and runs migrations.

        Returns:
            int: The script's exit status, or None if it could not be run
        """
        script = target_dir / self.upgrade_script
        if not script.is_file():
            log_message(f"Upgrade script {script} not found - skipping", "WARNING")
            return None

        log_message(f"Running {script}...")
        try:
            result = subprocess.run([str(script)], cwd=str(target_dir), check=False)
        except OSError as e:
            log_message(f"Failed to run {script}: {e}", "WARNING")
            return None

        if result.returncode != 0:
            log_message(f"{script} exited with status {result.returncode}", "WARNING")
        else:
            log_message(f"✓ {self.upgrade_script} completed")
        return result.returncode

    def systemctl(self, action: str, *extra: str) -> subprocess.CompletedProcess:
        """Execute a systemctl action for all NetBox services."""
        return subprocess.run(["systemctl", action, *extra, *self.services],
                              capture_output=True, text=True, check=False)

    def restart_services(self) -> bool:
        log_message(f"Restarting services: {', '.join(self.services)}...")
        try:
            result = self.systemctl("restart")
        except OSError as e:
            log_message(f"systemctl restart error: {e}", "WARNING")
            return False

        if result.returncode != 0:
            log_message(f"systemctl restart failed: {result.stderr.strip()}", "WARNING")
            return False
        return True

    def service_status(self) -> str:
        """Show systemctl status for the services and return its output."""
        try:
            result = self.systemctl("status", "--no-pager")
        except OSError as e:
            log_message(f"systemctl status error: {e}", "WARNING")
            return ""

        for line in result.stdout.splitlines():
            log_message(f"  {line}")
        return result.stdout

    def is_service_active(self, service: str) -> bool:
        try:
            result = subprocess.run(["systemctl", "is-active", "--quiet", service], check=False)
        except OSError:
            return False
        return result.returncode == 0
