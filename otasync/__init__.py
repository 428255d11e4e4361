"""
OTA Sync - Content-addressed archive synchronization

Client and server for downloading a gzip-compressed tar image while only
transferring the files the client does not already have locally.
"""

__version__ = "1.0.0"
