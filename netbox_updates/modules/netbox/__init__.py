"""
HOMESERVER Update Management System
Copyright (C) 2024 HOMESERVER LLC

NetBox update module.
Implements a main(args) entrypoint for orchestrated updates.
"""

import os
from netbox_updates.utils.index import get_module_version
from .index import (
    main
)

__version__ = get_module_version(os.path.dirname(os.path.abspath(__file__)))

# This allows the module to be run directly
if __name__ == "__main__":
    import sys
    main(sys.argv[1:] if len(sys.argv) > 1 else [])
