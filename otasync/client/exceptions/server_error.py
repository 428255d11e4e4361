"""
OTA Sync Client - Server Error Exception

Exception raised for transport failures and unsuccessful server responses.

Author: OTA Sync Project
"""

from .api_error import OtaSyncAPIError


class OtaSyncServerError(OtaSyncAPIError):
    """Exception for server errors."""

    def __init__(self, message: str, status_code=None):
        super().__init__(message)
        self.status_code = status_code
