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
along with this program. If not, see <https://www.gnu.org/licenses/>.
"""

import importlib
import traceback

# Import shared utilities
from .utils.index import log_message, compare_versions

__version__ = "1.0.0"

# Re-export utilities for easy access by submodules
__all__ = [
    'log_message',
    'compare_versions',
    'run_update'
]


def run_update(module_path, args=None):
    """
    Run a single update module.

    Args:
        module_path (str): Import path to the module or module name
        args (list, optional): Arguments to pass to the module's main function

    Returns:
        Any: Result from the update function
    """
    result = None
    try:
        # Simple module names live in the modules subpackage
        if "." not in module_path:
            module_path = f"modules.{module_path}"

        mod = importlib.import_module(f".{module_path}", package=__name__)
        if hasattr(mod, 'main'):
            log_message(f"Running update: {module_path}", "DEBUG")
            result = mod.main(args)
            log_message(f"Completed update: {module_path}", "DEBUG")
        else:
            log_message(f"Module {module_path} has no main(args) function.", "ERROR")
    except Exception as e:
        log_message(f"Error running update for {module_path}: {e}", "ERROR")
        traceback.print_exc()

    return result
