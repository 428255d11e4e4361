"""
OTA Sync Server - Main FastAPI Application

This module contains the FastAPI application factory and the server entry point.
The server answers GET (index) and POST (diff) requests for the tgz
archives stored beneath its archive root.
"""

import argparse
import logging
import sys
from logging.handlers import RotatingFileHandler
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path
from typing import List, Optional

import uvicorn
from fastapi import FastAPI

from otasync import __version__
from otasync.server.archive_storage import InitializeArchiveRoot
from otasync.server.routes import archives
from otasync.server.settings import ServerSettings, LoadSettings, ParseBindAddress

logger = logging.getLogger(__name__)


# ==================== Logging ====================

def ConfigureLogging(settings: ServerSettings) -> None:
    """
    Configure logging to write to the console and, if enabled, a rotating log file

    Args:
        settings: Server settings (log_dir, debug)
    """
    handlers: List[logging.Handler] = [logging.StreamHandler()]

    if settings.log_dir is not None:
        settings.log_dir.mkdir(parents=True, exist_ok=True)
        log_filename = settings.log_dir / f"otasync-server-{datetime.now().strftime('%Y-%m-%d')}.log"
        handlers.append(
            # File handler with rotation (max 10MB per file, keep 10 backup files)
            RotatingFileHandler(
                log_filename,
                maxBytes=10 * 1024 * 1024,  # 10MB
                backupCount=10,
                encoding='utf-8'
            )
        )

    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers
    )


# ==================== Application Factory ====================

def CreateApp(settings: Optional[ServerSettings] = None) -> FastAPI:
    """
    Build the FastAPI application for a set of settings

    Args:
        settings: Server settings; defaults are used when omitted

    Returns:
        FastAPI application with the archive routes mounted
    """
    settings = settings or ServerSettings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        FastAPI lifespan event handler for startup and shutdown
        """
        logger.info("OTA Sync Server starting up...")
        InitializeArchiveRoot(settings.archive_root)
        logger.info(f"Serving archives from {settings.archive_root.absolute()}")
        logger.info("Server startup complete")

        yield

        logger.info("OTA Sync Server shutting down...")
        logger.info("Shutdown complete")

    app = FastAPI(
        title="OTA Sync Server",
        description="Content-addressed tgz image server: hash index and per-file diff downloads",
        version=__version__,
        lifespan=lifespan
    )
    app.state.settings = settings

    app.include_router(archives.router)

    return app


# ==================== Main Entry Point ====================

def main(argv: Optional[List[str]] = None) -> int:
    """
    Parse command-line arguments and run the server with uvicorn
    """
    parser = argparse.ArgumentParser(description='OTA Sync - tgz image server')
    parser.add_argument('--bind', help='Bind to this [host]:port (default :8090)')
    parser.add_argument('--archive-root', type=Path, help='Directory holding the tgz archives (default /tmp)')
    parser.add_argument('--config', type=Path, help='JSON settings file')
    parser.add_argument('--debug', action='store_true', default=None, help='Enable debug output')

    args = parser.parse_args(argv)

    host = port = None
    if args.bind:
        try:
            host, port = ParseBindAddress(args.bind)
        except ValueError as e:
            print(f"Invalid --bind: {e}", file=sys.stderr)
            return 2

    settings = LoadSettings(
        args.config,
        host=host,
        port=port,
        archive_root=args.archive_root,
        debug=args.debug
    )

    ConfigureLogging(settings)
    logger.info(f"Starting OTA Sync Server on {settings.host}:{settings.port}...")

    uvicorn.run(
        CreateApp(settings),
        host=settings.host,
        port=settings.port,
        timeout_keep_alive=settings.timeout_seconds,
        log_level="debug" if settings.debug else "info"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
