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
Utilities for the updates orchestration system.

This module provides common utilities used by the update modules.
"""

from .index import log_message, get_module_version, parse_version_string, is_valid_version, compare_versions
from .state_manager import StateManager, StateManagerError, DatabaseBackupInfo
from .permissions import PermissionManager, PermissionTarget
from .moduleUtils import load_root_config, conditional_config_return, get_module_debug_mode

__all__ = [
    'log_message',
    'get_module_version',
    'parse_version_string',
    'is_valid_version',
    'compare_versions',
    'StateManager',
    'StateManagerError',
    'DatabaseBackupInfo',
    'PermissionManager',
    'PermissionTarget',
    'load_root_config',
    'conditional_config_return',
    'get_module_debug_mode'
]
