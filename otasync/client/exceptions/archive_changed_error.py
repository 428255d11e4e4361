"""
OTA Sync Client - Archive Changed Error Exception

Exception raised when the server's archive changed between the index
request and the diff request.

Author: OTA Sync Project
"""

from .server_error import OtaSyncServerError


class OtaSyncArchiveChangedError(OtaSyncServerError):
    """Exception raised when the index no longer matches the server archive."""
    pass
