"""
OTA Sync Client - Models Package

Contains data models and enumerations used by the client.

Author: OTA Sync Project
"""

from .sync_state import SyncState
from .scan_result import MissingEntry, ScanResult, SyncReport
from .index_info import IndexInfo

__all__ = [
    'SyncState',
    'MissingEntry',
    'ScanResult',
    'SyncReport',
    'IndexInfo'
]
