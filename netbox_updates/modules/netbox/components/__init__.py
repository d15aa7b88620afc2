"""
HOMESERVER NetBox Update Components
Copyright (C) 2024 HOMESERVER LLC

Component-based NetBox upgrade, one class per external collaborator.
"""

from .release_manager import ReleaseManager
from .file_operations import FileOperations
from .backup_manager import BackupManager
from .service_manager import ServiceManager

__all__ = [
    'ReleaseManager',
    'FileOperations',
    'BackupManager',
    'ServiceManager'
]
