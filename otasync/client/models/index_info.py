"""
OTA Sync Client - Index Info Model

Dataclass holding what the server reports alongside a downloaded index.

Author: OTA Sync Project
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class IndexInfo:
    """Index response headers; None when the server did not send one"""
    fingerprint: Optional[str] = None  # Pins the diff request to the same archive
    regular_file_count: Optional[int] = None  # Counter values the index should assign
