"""
OTA Sync Client - API Communication Module

Handles all communication with the OTA Sync server.
Both protocol requests stream their response body straight to a file.

Author: OTA Sync Project
"""

import logging
import requests
from pathlib import Path
from typing import Optional, Mapping

from otasync.common.protocol import CONTENT_TYPE, FINGERPRINT_HEADER, REGULAR_FILE_COUNT_HEADER
from otasync.client.exceptions import (
    OtaSyncServerError,
    OtaSyncArchiveChangedError
)
from otasync.client.models import IndexInfo

# Configure logging
logger = logging.getLogger(__name__)


DOWNLOAD_CHUNK_SIZE = 8192


class OtaSyncAPI:
    """
    API client for one archive on an OTA Sync server.

    Responsibilities:
    - Download the archive index (GET)
    - Request the missing files for a presence bitmap (POST)
    - Map transport failures and error statuses to exceptions
    """

    def __init__(self, source_url: str, timeout: int = 600, verify_ssl: bool = True):
        """
        Initialize API client.

        Args:
            source_url: Full archive URL (e.g., "http://localhost:8090/image-1234.tgz")
            timeout: Seconds allowed for connecting and for each read
            verify_ssl: Whether to verify SSL certificates
        """
        self.source_url = source_url
        self.timeout = timeout
        self.verify_ssl = verify_ssl
        # Use session for connection pooling between the index and diff requests
        self.session = requests.Session()
        logger.debug(f"Initialized API client for {self.source_url} (SSL verification: {self.verify_ssl})")

    def close(self):
        """
        Close the session and release resources.
        """
        if hasattr(self, 'session') and self.session:
            self.session.close()
            logger.debug("API client session closed")

    def __del__(self):
        """Cleanup on deletion."""
        self.close()

    def download_index(self, dest: Path) -> IndexInfo:
        """
        Download the archive index to a file.

        Args:
            dest: File to write the gzip-compressed index to

        Returns:
            IndexInfo with the archive fingerprint and regular-file count the
            server reported (None for headers it did not send)

        Raises:
            OtaSyncServerError: If the request fails
        """
        headers = self._stream_to_file("GET", dest)

        regular_file_count = None
        count_header = headers.get(REGULAR_FILE_COUNT_HEADER)
        if count_header is not None:
            if not count_header.isdigit():
                raise OtaSyncServerError(
                    f"Server sent an invalid {REGULAR_FILE_COUNT_HEADER} header: {count_header}"
                )
            regular_file_count = int(count_header)

        return IndexInfo(
            fingerprint=headers.get(FINGERPRINT_HEADER),
            regular_file_count=regular_file_count
        )

    def request_diff(self, compressed_bitmap: bytes, dest: Path,
                     fingerprint: Optional[str] = None) -> None:
        """
        Post the presence bitmap and download the missing files to a file.

        Args:
            compressed_bitmap: gzip-compressed presence bitmap
            dest: File to write the gzip-compressed diff archive to
            fingerprint: Fingerprint returned with the index, pins the request to that archive

        Raises:
            OtaSyncArchiveChangedError: If the server archive changed since the index
            OtaSyncServerError: If the request fails
        """
        headers = {"Content-Type": CONTENT_TYPE}
        if fingerprint:
            headers[FINGERPRINT_HEADER] = fingerprint

        self._stream_to_file("POST", dest, data=compressed_bitmap, headers=headers)

    def _stream_to_file(self, method: str, dest: Path, **kwargs) -> Mapping[str, str]:
        """
        Make a request and write the response body to dest in chunks.

        Args:
            method: HTTP method (GET or POST)
            dest: File receiving the response body
            **kwargs: Additional arguments for request

        Returns:
            Response headers (case-insensitive mapping)

        Raises:
            OtaSyncArchiveChangedError: On HTTP 409
            OtaSyncServerError: On transport failure or any other error status
        """
        logger.debug(f"API request: {method} {self.source_url}")

        try:
            response = self.session.request(
                method,
                self.source_url,
                stream=True,
                timeout=self.timeout,
                verify=self.verify_ssl,
                **kwargs
            )

            try:
                if response.status_code == 409:
                    logger.error(f"Archive changed on server: {response.text}")
                    raise OtaSyncArchiveChangedError(
                        "Server archive changed since the index was downloaded",
                        status_code=409
                    )

                if response.status_code != 200:
                    logger.error(f"Request failed with status {response.status_code}: {response.text}")
                    raise OtaSyncServerError(
                        f"{method} {self.source_url} failed with status {response.status_code}: {response.text}",
                        status_code=response.status_code
                    )

                # Write file in chunks to handle large archives
                with open(dest, 'wb') as f:
                    for chunk in response.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
                        if chunk:
                            f.write(chunk)

                return response.headers
            finally:
                response.close()

        except requests.exceptions.ConnectionError as e:
            logger.error(f"Cannot connect to server at {self.source_url}: {e}")
            raise OtaSyncServerError(f"Cannot connect to server at {self.source_url}")
        except requests.exceptions.Timeout:
            logger.error("Request timed out")
            raise OtaSyncServerError("Request timed out")
        except requests.exceptions.RequestException as e:
            logger.error(f"Request error: {str(e)}")
            raise OtaSyncServerError(f"Request error: {str(e)}")
