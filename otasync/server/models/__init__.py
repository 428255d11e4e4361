"""
OTA Sync Server - Models Package

Internal data models used by the server.
"""

from otasync.server.models.archive_summary import ArchiveSummary

__all__ = ['ArchiveSummary']
