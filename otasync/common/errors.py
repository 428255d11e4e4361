"""
OTA Sync Common - Protocol Errors

Exception types raised by the shared archive and bitmap codecs.
Both the server and the client let these propagate: a framing problem
always terminates the current request or sync.
"""


class OtaSyncProtocolError(Exception):
    """Base exception for malformed archive or bitmap data."""
    pass


class ArchiveFormatError(OtaSyncProtocolError):
    """Archive stream cannot be read, is truncated, or carries an unexpected payload."""
    pass


class BitmapFormatError(OtaSyncProtocolError):
    """Presence bitmap request body cannot be decoded."""
    pass


class BitmapBoundsError(OtaSyncProtocolError, IndexError):
    """A regular-file counter value falls outside the presence bitmap."""
    pass
