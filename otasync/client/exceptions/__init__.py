"""
OTA Sync Client - Exceptions Package

Contains all exception classes for the OTA Sync client.

Author: OTA Sync Project
"""

from .api_error import OtaSyncAPIError
from .server_error import OtaSyncServerError
from .archive_changed_error import OtaSyncArchiveChangedError

__all__ = [
    'OtaSyncAPIError',
    'OtaSyncServerError',
    'OtaSyncArchiveChangedError'
]
