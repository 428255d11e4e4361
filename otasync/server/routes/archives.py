"""
OTA Sync Server - Archive Endpoints

This module contains the two protocol endpoints, dispatched by HTTP method
on the archive path:
- GET  /<name>: gzip-compressed tar index of the archive
- POST /<name>: gzip-compressed tar of the regular files requested by the
  gzip-compressed presence bitmap in the request body

Any other method on an archive path is answered with 405 by the router.
Handlers are stateless; everything they need comes from the request and
the settings stored on the application.
"""

import logging
from pathlib import Path

from fastapi import APIRouter, HTTPException, Request, status
from fastapi.responses import StreamingResponse
from starlette.concurrency import run_in_threadpool

from otasync.common.bitmap_codec import DecompressBitmap, RequiredBitmapLength
from otasync.common.errors import ArchiveFormatError, BitmapFormatError
from otasync.common.protocol import (
    CONTENT_TYPE, FINGERPRINT_HEADER, REGULAR_FILE_COUNT_HEADER
)
from otasync.server.archive_storage import ResolveArchivePath, SummarizeArchive
from otasync.server.diff_server import WriteDiff
from otasync.server.index_builder import WriteIndex
from otasync.server.models import ArchiveSummary
from otasync.server.settings import ServerSettings
from otasync.server.streaming import StreamArchive


# Create logger
logger = logging.getLogger(__name__)

# Create router instance
router = APIRouter()


# ==================== Helpers ====================

def _GetSettings(request: Request) -> ServerSettings:
    return request.app.state.settings


def _ResolveOr404(archive_name: str, settings: ServerSettings) -> Path:
    try:
        return ResolveArchivePath(archive_name, settings.archive_root)
    except FileNotFoundError as e:
        logger.warning(str(e))
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="File not found"
        )


def _SummarizeOr500(archive_path: Path) -> ArchiveSummary:
    try:
        return SummarizeArchive(archive_path)
    except (ArchiveFormatError, OSError) as e:
        logger.error(f"Cannot read archive {archive_path}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Cannot read tgz file"
        )


# ==================== Archive Endpoints ====================

@router.get("/{archive_name:path}", tags=["Archives"])
def get_index(archive_name: str, request: Request):
    """
    Serve the index of a source archive

    Every counted regular file is replaced by its content hash; all other
    entries are sent unchanged. The archive fingerprint is returned in a
    header so the client can pin its diff request to this exact archive.

    Args:
        archive_name: Archive path beneath the archive root

    Returns:
        StreamingResponse: gzip-compressed tar index

    Raises:
        HTTPException: 404 if the archive does not exist, 500 if it cannot be read
    """
    settings = _GetSettings(request)
    archive_path = _ResolveOr404(archive_name, settings)

    logger.info(f"Serving index file {archive_path}")
    summary = _SummarizeOr500(archive_path)

    def transform(output):
        WriteIndex(archive_path, output, debug=settings.debug)

    return StreamingResponse(
        StreamArchive(transform, description=f"index of {archive_path.name}"),
        media_type=CONTENT_TYPE,
        headers={
            FINGERPRINT_HEADER: summary.fingerprint,
            REGULAR_FILE_COUNT_HEADER: str(summary.regular_file_count)
        }
    )


@router.post("/{archive_name:path}", tags=["Archives"])
async def post_diff(archive_name: str, request: Request):
    """
    Serve the regular files a client is missing

    The request body is the gzip-compressed presence bitmap built from
    the index. Files whose bit is set are streamed back in archive order.

    Args:
        archive_name: Archive path beneath the archive root

    Returns:
        StreamingResponse: gzip-compressed tar of the requested files

    Raises:
        HTTPException: 404 if the archive does not exist, 409 if it changed since
                       the index was served, 500 if the archive or bitmap is unreadable
                       or the bitmap is too short
    """
    settings = _GetSettings(request)
    archive_path = _ResolveOr404(archive_name, settings)

    logger.info(f"Serving diff file {archive_path}")
    summary = await run_in_threadpool(_SummarizeOr500, archive_path)

    expected_fingerprint = request.headers.get(FINGERPRINT_HEADER)
    if settings.verify_fingerprint and expected_fingerprint \
            and expected_fingerprint != summary.fingerprint:
        logger.warning(
            f"Archive {archive_path.name} changed since index was served "
            f"({expected_fingerprint} != {summary.fingerprint})"
        )
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Archive changed since the index was requested"
        )

    body = await request.body()
    try:
        bitmap = DecompressBitmap(body)
    except BitmapFormatError as e:
        logger.error(str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Cannot read request bitmap"
        )

    required = RequiredBitmapLength(summary.regular_file_count)
    if len(bitmap) < required:
        logger.error(
            f"Request bitmap out of bounds: {len(bitmap)} byte(s) for "
            f"{summary.regular_file_count} regular files in {archive_path.name}"
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Request bitmap out of bounds: {len(bitmap)} byte(s) given, {required} required"
        )

    def transform(output):
        WriteDiff(archive_path, bitmap, output, debug=settings.debug)

    return StreamingResponse(
        StreamArchive(transform, description=f"diff of {archive_path.name}"),
        media_type=CONTENT_TYPE,
        headers={FINGERPRINT_HEADER: summary.fingerprint}
    )
