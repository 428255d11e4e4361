"""
OTA Sync Client - API Error Exception

Base exception class for all API-related errors.

Author: OTA Sync Project
"""


class OtaSyncAPIError(Exception):
    """Base exception for API errors."""
    pass
