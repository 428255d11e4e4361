"""
OTA Sync Client - CLI Mode Module

Implements the command-line sync: resolves paths, sets up logging to a
timestamped file, runs the sync and maps the outcome to an exit code.

Author: OTA Sync Project
"""

import sys
import logging
import posixpath
from pathlib import Path
from datetime import datetime
from typing import Optional
from urllib.parse import urlparse

from otasync.common.errors import OtaSyncProtocolError
from otasync.common.protocol import ARCHIVE_SUFFIX
from otasync.client.api import OtaSyncAPI
from otasync.client.exceptions import OtaSyncAPIError
from otasync.client.managers import ConfigManager, get_base_dir
from otasync.client.operations import SyncOperations


# Exit codes
EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_CONFIG_ERROR = 2


def setup_cli_logging(config_manager: ConfigManager, debug: bool = False) -> Path:
    """
    Setup logging for CLI mode with timestamped log file.

    Creates log file with format: otasync-YYYY-MM-DD-HH-MM-SS.log
    in a "logs" subdirectory next to the executable or in the current directory.

    Args:
        config_manager: ConfigManager instance for log settings
        debug: Force DEBUG level regardless of the configured level

    Returns:
        Path to the created log file
    """
    log_level = "DEBUG" if debug else config_manager.get("log_level", "INFO")

    timestamp = datetime.now().strftime("%Y-%m-%d-%H-%M-%S")
    log_filename = f"otasync-{timestamp}.log"

    log_dir = get_base_dir() / "logs"
    log_dir.mkdir(exist_ok=True)

    log_file = log_dir / log_filename

    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler(sys.stdout)  # Also output to console
        ]
    )

    logger = logging.getLogger(__name__)
    logger.info(f"OTA Sync CLI - Log file: {log_file}")
    logger.info(f"Log level: {log_level}")

    return log_file


def cleanup_old_logs(config_manager: ConfigManager, current_log: Path):
    """
    Delete log files older than retention period.

    Args:
        config_manager: ConfigManager instance for retention settings
        current_log: Path to current log file (don't delete this)
    """
    logger = logging.getLogger(__name__)
    retention_days = config_manager.get("log_retention_days", 30)

    if retention_days <= 0:
        return  # Retention disabled

    log_dir = current_log.parent
    cutoff_time = datetime.now().timestamp() - (retention_days * 86400)

    deleted_count = 0
    for log_file in log_dir.glob("otasync-*.log"):
        if log_file == current_log:
            continue

        try:
            if log_file.stat().st_mtime < cutoff_time:
                log_file.unlink()
                deleted_count += 1
        except OSError as e:
            logger.warning(f"Failed to delete old log file {log_file}: {e}")

    if deleted_count > 0:
        logger.info(f"Deleted {deleted_count} old log file(s)")


def validate_source_url(source_url: str) -> Optional[str]:
    """
    Check the archive URL.

    Returns:
        Error message, or None if the URL is usable
    """
    parsed = urlparse(source_url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return f"<src> must be an http(s) URL: {source_url}"
    if not parsed.path.endswith(ARCHIVE_SUFFIX):
        return f"<src> argument requires {ARCHIVE_SUFFIX} suffix"
    return None


def resolve_destination(source_url: str, destination: str) -> Path:
    """
    Determine the output file for a sync.

    - "dir/" (trailing slash): the archive's URL basename inside dir
    - "name.tgz": used as is
    - anything else: treated as a directory

    Args:
        source_url: Archive URL
        destination: Destination path or directory as given by the user

    Returns:
        Path of the output archive
    """
    archive_name = posixpath.basename(urlparse(source_url).path)

    if destination.endswith("/"):
        return Path(destination) / archive_name
    if destination.endswith(ARCHIVE_SUFFIX):
        return Path(destination)
    return Path(destination) / archive_name


def run_cli_sync(source_url: str, destination: Optional[str] = None,
                 reference_dir: Optional[str] = None, debug: bool = False,
                 config_file: Optional[Path] = None) -> int:
    """
    Execute a sync without user interaction.

    Process:
    1. Validate source URL
    2. Load configuration and apply command-line overrides
    3. Setup logging to timestamped file and resolve destination
    4. Run the sync
    5. Return appropriate exit code

    Args:
        source_url: Archive URL (must end in .tgz)
        destination: Output directory or .tgz file (overrides config)
        reference_dir: Local reference directory (overrides config)
        debug: Verbose per-entry output
        config_file: Explicit config.json path

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    logger = None
    api_client = None

    # Nothing is written (config, logs) for an unusable URL
    error = validate_source_url(source_url)
    if error:
        print(error, file=sys.stderr)
        return EXIT_CONFIG_ERROR

    try:
        config_mgr = ConfigManager(config_file)
        config_mgr.load_config()
        config_mgr.override("destination", destination)
        config_mgr.override("reference_dir", reference_dir)

        log_file = setup_cli_logging(config_mgr, debug)
        logger = logging.getLogger(__name__)
        cleanup_old_logs(config_mgr, log_file)

        output_path = resolve_destination(source_url, config_mgr.get("destination"))
        reference_path = Path(config_mgr.get("reference_dir"))

        if not reference_path.is_dir():
            logger.error(f"Reference directory does not exist: {reference_path}")
            return EXIT_CONFIG_ERROR

        logger.debug(f"src: {source_url}")
        logger.debug(f"dst: {output_path}")
        logger.debug(f"ref: {reference_path}")

        api_client = OtaSyncAPI(
            source_url,
            timeout=config_mgr.get("request_timeout", 600),
            verify_ssl=config_mgr.get("verify_ssl", True)
        )

        sync_ops = SyncOperations(
            api_client,
            preserve_order=config_mgr.get("preserve_order", True),
            work_dir=config_mgr.get("work_dir"),
            debug=debug
        )

        report = sync_ops.sync(output_path, reference_path)

        logger.info(
            f"Wrote {report.destination}: {report.entry_count} entries, "
            f"{report.fetched_count} of {report.regular_file_count} files downloaded"
        )
        return EXIT_SUCCESS

    except (OtaSyncAPIError, OtaSyncProtocolError) as e:
        if logger:
            logger.error(f"Sync failed: {e}")
        else:
            print(f"Sync failed: {e}", file=sys.stderr)
        return EXIT_FAILURE

    except KeyboardInterrupt:
        if logger:
            logger.warning("Operation cancelled by user (Ctrl+C)")
        else:
            print("\nOperation cancelled by user", file=sys.stderr)
        return EXIT_FAILURE

    except Exception as e:
        if logger:
            logger.exception(f"Unexpected error: {e}")
        else:
            print(f"Unexpected error: {e}", file=sys.stderr)
        return EXIT_FAILURE

    finally:
        if api_client:
            api_client.close()
