"""
Storage Layer.

This package handles all data persistence: the namespaced key/value store
that holds timesheet snapshots and the INI configuration file.
"""

from .config_manager import ConfigManager
from .kv_store import KeyValueStore

__all__ = ["ConfigManager", "KeyValueStore"]
