"""
OTA Sync Client - Operations Package

This package contains the local scan and the sync orchestration.
"""

from .local_diff_scanner import LocalDiffScanner
from .sync_operations import SyncOperations

__all__ = ['LocalDiffScanner', 'SyncOperations']
