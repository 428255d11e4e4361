"""
OTA Sync Server - Settings

Server configuration model and loader.
Settings are built once at startup and stored on the application;
handlers read them from the request instead of from module globals.
"""

import json
import logging
from pathlib import Path
from typing import Optional, Tuple

from pydantic import BaseModel

logger = logging.getLogger(__name__)


DEFAULT_PORT = 8090


class ServerSettings(BaseModel):
    """Server configuration"""
    archive_root: Path = Path("/tmp")  # Source archives are resolved beneath this directory
    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT
    debug: bool = False  # Per-entry logging in the transforms
    log_dir: Optional[Path] = Path("logs")  # None disables the log file
    timeout_seconds: int = 600
    verify_fingerprint: bool = True  # Reject diff requests for an archive that changed since its index


def ParseBindAddress(bind: str) -> Tuple[str, int]:
    """
    Split a "[host]:port" bind address

    An empty host binds all interfaces, so ":8090" means 0.0.0.0:8090.

    Raises:
        ValueError: If the port is missing or not a number
    """
    host, separator, port = bind.rpartition(":")
    if not separator:
        raise ValueError(f"Bind address must look like [host]:port, got '{bind}'")
    return (host or "0.0.0.0", int(port))


def LoadSettings(config_file: Optional[Path] = None, **overrides) -> ServerSettings:
    """
    Build settings from an optional JSON file plus explicit overrides

    Args:
        config_file: JSON file with ServerSettings fields (optional)
        **overrides: Field values that take priority over the file; None values are ignored

    Returns:
        ServerSettings instance
    """
    data = {}
    if config_file is not None:
        logger.debug(f"Loading server settings from {config_file}")
        with open(config_file, 'r') as f:
            data = json.load(f)

    for key, value in overrides.items():
        if value is not None:
            data[key] = value

    return ServerSettings(**data)
