"""
OTA Sync Common - Wire Constants

Values both sides of the protocol must agree on.
"""

# Source URLs and output files carry this suffix
ARCHIVE_SUFFIX = ".tgz"

CONTENT_TYPE = "application/octet-stream"

# Index response: fingerprint of the source archive, echoed back on the diff request
FINGERPRINT_HEADER = "X-Archive-Fingerprint"

# Index response: number of regular files that take a counter value
REGULAR_FILE_COUNT_HEADER = "X-Regular-File-Count"

# gzip level used for the bitmap request body
BITMAP_COMPRESS_LEVEL = 9
