"""
HOMESERVER Update Management System
Copyright (C) 2024 HOMESERVER LLC

Update modules, one package per managed service.
"""
