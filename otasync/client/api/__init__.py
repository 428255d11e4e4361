"""
OTA Sync Client - API Package

This package contains the API communication class.
"""

from .otasync_api import OtaSyncAPI

__all__ = ['OtaSyncAPI']
