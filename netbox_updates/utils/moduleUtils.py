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
Common utilities for update modules.

Root configuration lives next to the orchestrator in index.json and
currently only carries the debug flag.
"""

import os
import json
from .index import log_message


def load_root_config():
    """
    Load the root index.json to check debug settings.

    Returns:
        dict: Root configuration, or {"debug": False} if loading fails
    """
    try:
        root_config_path = os.path.join(os.path.dirname(__file__), "..", "index.json")
        with open(root_config_path, 'r') as f:
            return json.load(f)
    except (OSError, ValueError) as e:
        log_message(f"Failed to load root config: {e}", "DEBUG")
        return {"debug": False}


def conditional_config_return(result_dict: dict, config_data: dict, debug_key: str = "debug") -> dict:
    """
    Add config to a module result only when the root debug flag is set.

    Args:
        result_dict: The result dictionary to potentially add config to
        config_data: The configuration data to add if debug is enabled
        debug_key: The key to check in root config (default: "debug")

    Returns:
        dict: Result dictionary with config added if debug is enabled
    """
    root_config = load_root_config()
    if root_config.get(debug_key, False):
        result_dict["config"] = config_data
    return result_dict


def get_module_debug_mode() -> bool:
    """Get the current debug mode from root configuration."""
    root_config = load_root_config()
    return root_config.get("debug", False)
