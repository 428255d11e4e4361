"""
OTA Sync Client - Sync Operations Module

Runs one sync: index download, local scan, diff download, merge.

State machine:
    REQUEST_INDEX -> SCAN_LOCAL -> [REQUEST_DIFF] -> MERGE_DIFF -> FINALIZE -> DONE
Any failure moves to FAILED and is re-raised; there is no retry and no
partial result. REQUEST_DIFF is skipped when no bit is set.

Author: OTA Sync Project
"""

import logging
import shutil
import tarfile
import tempfile
from pathlib import Path
from typing import Optional, Callable, Iterator, List

from otasync.common.archive_codec import (
    OpenArchiveReader, OpenArchiveWriter, DiscardArchiveWriter, IterateEntries, CopyEntry
)
from otasync.common.bitmap_codec import CompressBitmap
from otasync.common.errors import ArchiveFormatError
from otasync.client.models import SyncState, MissingEntry, ScanResult, SyncReport, IndexInfo
from otasync.client.operations.local_diff_scanner import LocalDiffScanner

# Configure logging
logger = logging.getLogger(__name__)


class SyncOperations:
    """
    Handles a sync of one server archive into a local output archive.

    Responsibilities:
    - Sequence the protocol phases over the API client
    - Keep every intermediate file in a per-run scratch directory
    - Merge staged and downloaded entries into the output archive
    - Move the finished archive to its destination
    - Report progress via callbacks
    """

    def __init__(self, api_client, preserve_order: bool = True,
                 work_dir: Optional[Path] = None, debug: bool = False):
        """
        Initialize sync operations handler.

        Args:
            api_client: OtaSyncAPI instance for server communication
            preserve_order: Put fetched files back at their original archive position
                            (False appends them after all local entries)
            work_dir: Parent directory for the scratch directory (None = system temp)
            debug: Per-entry logging
        """
        self.api = api_client
        self.preserve_order = preserve_order
        self.work_dir = Path(work_dir) if work_dir else None
        self.debug = debug
        self.state: Optional[SyncState] = None

    def _enter(self, state: SyncState):
        logger.debug(f"Sync state: {state.value}")
        self.state = state

    def sync(self, destination: Path, reference_dir: Path,
             progress_callback: Optional[Callable] = None) -> SyncReport:
        """
        Rebuild the server archive at destination.

        Args:
            destination: Output .tgz file
            reference_dir: Local tree providing files that did not change
            progress_callback: Optional callback for progress updates
                             Called with (message: str, current: int, total: int)

        Returns:
            SyncReport for the written archive

        Raises:
            OtaSyncAPIError: If a request fails
            OtaSyncProtocolError: If a server response is malformed
            OSError: If local output cannot be written
        """
        destination = Path(destination)

        def report(message: str, current: int):
            logger.info(message)
            if progress_callback:
                progress_callback(message, current, 100)

        if self.work_dir:
            self.work_dir.mkdir(parents=True, exist_ok=True)

        try:
            with tempfile.TemporaryDirectory(prefix="otasync-", dir=self.work_dir) as scratch:
                scratch_dir = Path(scratch)

                # Step 1: Load index from server
                self._enter(SyncState.REQUEST_INDEX)
                report(f"downloading index from {self.api.source_url} to {destination}", 0)
                index_file = scratch_dir / "index.tgz"
                index_info = self.api.download_index(index_file)

                # Step 2: Compare index against the reference directory
                self._enter(SyncState.SCAN_LOCAL)
                report(f"comparing index against {reference_dir}", 20)
                staging_file = scratch_dir / "staging.tar"
                scan = self._scan(index_file, staging_file, reference_dir, scratch_dir)
                self._check_index_count(index_info, scan)

                # Step 3: Load missing files from server
                diff_file = None
                report(f"downloading {scan.missing_count} missing files from {self.api.source_url}", 50)
                if scan.any_requested:
                    self._enter(SyncState.REQUEST_DIFF)
                    diff_file = scratch_dir / "diff.tgz"
                    self.api.request_diff(CompressBitmap(scan.bitmap), diff_file, index_info.fingerprint)

                # Step 4: Assemble output
                self._enter(SyncState.MERGE_DIFF)
                report("assembling archive", 80)
                output_file = scratch_dir / "output.tgz"
                self._merge(staging_file, diff_file, scan.missing, output_file)

                # Step 5: Move into place
                self._enter(SyncState.FINALIZE)
                destination.parent.mkdir(parents=True, exist_ok=True)
                shutil.move(str(output_file), str(destination))

            self._enter(SyncState.DONE)
            report("done", 100)

            return SyncReport(
                destination=destination,
                entry_count=scan.entry_count,
                regular_file_count=scan.regular_file_count,
                fetched_count=scan.missing_count
            )

        except Exception:
            logger.error(f"Sync failed during {self.state.value if self.state else 'startup'}")
            self._enter(SyncState.FAILED)
            raise

    def _scan(self, index_file: Path, staging_file: Path, reference_dir: Path,
              scratch_dir: Path) -> ScanResult:
        """Run the local scan from the downloaded index into the staging archive."""
        scanner = LocalDiffScanner(reference_dir, scratch_dir, debug=self.debug)

        with open(index_file, 'rb') as index_in, open(staging_file, 'wb') as staging_out:
            reader = OpenArchiveReader(index_in)
            writer = OpenArchiveWriter(staging_out, compressed=False)
            try:
                result = scanner.scan(reader, writer)
            except BaseException:
                DiscardArchiveWriter(writer)
                raise
            finally:
                reader.close()
            writer.close()

        return result

    def _check_index_count(self, index_info: IndexInfo, scan: ScanResult) -> None:
        """
        Compare the regular-file count of the scanned index with the server's.

        Raises:
            ArchiveFormatError: If they differ (corrupt or truncated index)
        """
        if index_info.regular_file_count is None:
            logger.debug("Server sent no regular-file count, skipping index count check")
            return

        if index_info.regular_file_count != scan.regular_file_count:
            raise ArchiveFormatError(
                f"Index holds {scan.regular_file_count} regular files but the server "
                f"reported {index_info.regular_file_count}"
            )

    def _merge(self, staging_file: Path, diff_file: Optional[Path],
               missing: List[MissingEntry], output_file: Path) -> None:
        """
        Write the output archive from the staged entries and the downloaded files.

        Args:
            staging_file: Uncompressed tar of every entry available locally
            diff_file: gzip-compressed diff archive (None if nothing was requested)
            missing: Missing entries in counter order, as recorded by the scanner
            output_file: gzip-compressed output archive

        Raises:
            ArchiveFormatError: If the diff does not contain exactly the requested files
        """
        with open(staging_file, 'rb') as staging_in, open(output_file, 'wb') as output_out:
            staging_reader = OpenArchiveReader(staging_in, compressed=False)
            writer = OpenArchiveWriter(output_out)

            diff_in = open(diff_file, 'rb') if diff_file else None
            diff_reader = None
            try:
                if diff_in is not None:
                    diff_reader = OpenArchiveReader(diff_in)
                fetched = self._copy_fetched(diff_reader, writer, missing)

                if self.preserve_order:
                    self._merge_in_place(staging_reader, writer, fetched, missing)
                else:
                    # Reference behavior: downloaded files go after everything staged
                    for member in IterateEntries(staging_reader):
                        CopyEntry(staging_reader, writer, member)
                    for _ in fetched:
                        pass
            except BaseException:
                DiscardArchiveWriter(writer)
                raise
            finally:
                staging_reader.close()
                if diff_reader is not None:
                    diff_reader.close()
                if diff_in is not None:
                    diff_in.close()

            # Write tar end-of-archive blocks and gzip footer
            writer.close()

    def _merge_in_place(self, staging_reader: tarfile.TarFile, writer: tarfile.TarFile,
                        fetched: Iterator[str], missing: List[MissingEntry]) -> None:
        """
        Interleave staged and fetched entries in original archive order.

        Every missing entry was recorded with its ordinal position in the
        index; it is written as soon as the output reaches that position.
        """
        output_position = 0
        next_missing = 0

        def write_due_fetched():
            nonlocal output_position, next_missing
            while next_missing < len(missing) and missing[next_missing].position == output_position:
                next(fetched)
                next_missing += 1
                output_position += 1

        for member in IterateEntries(staging_reader):
            write_due_fetched()
            CopyEntry(staging_reader, writer, member)
            output_position += 1

        write_due_fetched()

        # Run the diff stream to its end so extra entries are detected
        for _ in fetched:
            pass

    def _copy_fetched(self, diff_reader: Optional[tarfile.TarFile], writer: tarfile.TarFile,
                      missing: List[MissingEntry]) -> Iterator[str]:
        """
        Copy downloaded entries to the output one at a time.

        Each entry must be the next requested file; the name of every copied
        entry is yielded after it was written.

        Raises:
            ArchiveFormatError: If the diff holds unexpected, extra or too few entries
        """
        received = 0

        if diff_reader is not None:
            for member in IterateEntries(diff_reader):
                if received >= len(missing):
                    raise ArchiveFormatError(f"Server sent an entry that was not requested: {member.name}")

                expected = missing[received]
                if member.name != expected.name:
                    raise ArchiveFormatError(
                        f"Server sent {member.name} where {expected.name} "
                        f"(regular file #{expected.counter}) was expected"
                    )

                # Include downloaded files into archive
                CopyEntry(diff_reader, writer, member)
                received += 1

                if self.debug:
                    logger.info(f"< {member.name}")
                yield member.name

        if received != len(missing):
            raise ArchiveFormatError(
                f"Server sent {received} of {len(missing)} requested files"
            )
