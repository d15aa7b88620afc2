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

import os
import sys
import argparse
import logging
from . import run_update
from .utils.index import log_message
from .utils.moduleUtils import get_module_debug_mode

__all__ = ['log_message', 'setup_global_update_logging', 'build_module_args', 'main']

RED = "\033[1;31m"
YELLOW = "\033[1;33m"
RESET = "\033[0m"


class HighlightFormatter(logging.Formatter):
    """Colour warnings and errors when writing to a terminal."""

    def __init__(self, *args, use_color=False, **kwargs):
        super().__init__(*args, **kwargs)
        self.use_color = use_color

    def format(self, record):
        message = super().format(record)
        if not self.use_color:
            return message
        if record.levelno >= logging.ERROR:
            return f"{RED}{message}{RESET}"
        if record.levelno >= logging.WARNING:
            return f"{YELLOW}{message}{RESET}"
        return message


def setup_global_update_logging(debug: bool = False):
    """
    Log to stdout only; the shell wrapper owns file truncation/redirection.
    """
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.DEBUG if debug else logging.INFO)
    unified_format = HighlightFormatter('[%(asctime)s] [%(levelname)s] %(message)s',
                                        datefmt='%Y-%m-%d %H:%M:%S',
                                        use_color=sys.stdout.isatty())
    console_handler.setFormatter(unified_format)
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    for h in list(root_logger.handlers):
        root_logger.removeHandler(h)
    root_logger.addHandler(console_handler)
    logging.info("="*80)
    logging.info("NETBOX UPGRADE SESSION STARTED")
    logging.info(f"Command: {' '.join(sys.argv)}")
    logging.info(f"Working Directory: {os.getcwd()}")
    logging.debug(f"Python Version: {sys.version}")
    logging.info("="*80)


def build_module_args(args) -> list:
    """Translate parsed CLI flags into the netbox module's argument list."""
    if args.config:
        return ["--config"]
    if args.check:
        return ["--check"]
    if args.list_backups:
        return ["--list-backups"]
    if args.verify:
        return ["--verify"]
    if args.target:
        return ["--target", args.target]
    return []


def main(argv=None):
    """
    Main entry point for the NetBox upgrade orchestrator.
    Without flags the upgrade runs interactively and prompts for a version.
    """
    parser = argparse.ArgumentParser(description="NetBox Upgrade Orchestrator")
    parser.add_argument("--target", metavar="VERSION",
                        help="Upgrade to VERSION (x.y.z or 'latest') without prompting")
    parser.add_argument("--check", action="store_true",
                        help="Report current and latest versions, don't upgrade")
    parser.add_argument("--config", action="store_true",
                        help="Show the effective module configuration")
    parser.add_argument("--list-backups", action="store_true",
                        help="List database backups, newest first")
    parser.add_argument("--verify", action="store_true",
                        help="Verify the live installation")
    parser.add_argument("--debug", action="store_true",
                        help="Enable debug logging")

    args = parser.parse_args(argv)

    try:
        setup_global_update_logging(debug=args.debug or get_module_debug_mode())

        result = run_update("netbox", build_module_args(args))

        if not isinstance(result, dict):
            log_message("NetBox module returned no result", "ERROR")
            sys.exit(1)

        exit_code = result.get("exit_code", 0 if result.get("success") else 1)
        if exit_code == 0:
            log_message("NetBox upgrade orchestration completed successfully")
        sys.exit(exit_code)

    except KeyboardInterrupt:
        log_message("Upgrade interrupted by user", "WARNING")
        sys.exit(130)


if __name__ == "__main__":
    main()
