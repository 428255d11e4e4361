"""
OTA Sync Client - Sync State Model

Contains the SyncState enum describing where a sync run is.

Author: OTA Sync Project
"""

from enum import Enum


class SyncState(Enum):
    """
    Enum representing the phases of a sync run.

    States:
    - REQUEST_INDEX: Downloading the hash index from the server
    - SCAN_LOCAL: Comparing the index against the reference directory
    - REQUEST_DIFF: Downloading the files the reference directory lacks
    - MERGE_DIFF: Assembling staged and downloaded entries into the output
    - FINALIZE: Closing the output archive and moving it into place
    - DONE: Output archive written
    - FAILED: Sync aborted; no valid output archive
    """
    REQUEST_INDEX = "request_index"
    SCAN_LOCAL = "scan_local"
    REQUEST_DIFF = "request_diff"
    MERGE_DIFF = "merge_diff"
    FINALIZE = "finalize"
    DONE = "done"
    FAILED = "failed"
