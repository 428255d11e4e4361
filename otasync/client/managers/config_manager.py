"""
OTA Sync Client - Configuration Manager

Handles loading and saving client configuration from/to config.json.

Author: OTA Sync Project
"""

import json
import logging
import sys
from pathlib import Path
from typing import Optional, Dict, Any

# Configure logging
logger = logging.getLogger(__name__)


# Default configuration values
DEFAULT_CONFIG = {
    "reference_dir": "/",  # Local tree compared against the index
    "destination": "./",  # Output directory or .tgz file name
    "request_timeout": 600,  # Seconds, applied to every HTTP request
    "verify_ssl": True,
    "preserve_order": True,  # Re-insert fetched files at their original archive position
    "work_dir": None,  # None means use the system temp directory
    "log_level": "INFO",
    "log_retention_days": 30
}


def get_base_dir() -> Path:
    """Directory next to the executable, or the current directory when run as a script"""
    if getattr(sys, 'frozen', False):
        # Running as compiled executable
        return Path(sys.executable).parent
    # Running as script
    return Path.cwd()


class ConfigManager:
    """
    Manages client configuration.

    Responsibilities:
    - Load/save config.json next to the executable (same location as logs folder)
    - Fill in defaults for missing keys
    - Provide configuration values to other modules
    """

    def __init__(self, config_file: Optional[Path] = None):
        """
        Initialize configuration manager.

        Args:
            config_file: Explicit config file path (default: config.json in the base directory)
        """
        self.config_file = Path(config_file) if config_file else get_base_dir() / "config.json"
        self.config: Dict[str, Any] = {}

    def load_config(self) -> Dict[str, Any]:
        """
        Load configuration from config.json.
        Creates default config if file doesn't exist.

        Returns:
            Configuration dictionary
        """
        if self.config_file.exists():
            logger.debug(f"Loading configuration from {self.config_file}")
            with open(self.config_file, 'r') as f:
                self.config = json.load(f)
            # Merge with defaults for any missing keys
            for key, value in DEFAULT_CONFIG.items():
                if key not in self.config:
                    self.config[key] = value
            logger.info("Configuration loaded successfully")
        else:
            logger.info(f"Configuration file not found, creating default at {self.config_file}")
            self.config = DEFAULT_CONFIG.copy()
            self.save_config()

        return self.config

    def save_config(self):
        """Save current configuration to config.json."""
        logger.debug(f"Saving configuration to {self.config_file}")
        self.config_file.parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_file, 'w') as f:
            json.dump(self.config, f, indent=2)
        logger.debug("Configuration saved successfully")

    def get(self, key: str, default=None) -> Any:
        """
        Get configuration value.

        Args:
            key: Configuration key
            default: Default value if key not found

        Returns:
            Configuration value
        """
        return self.config.get(key, default)

    def override(self, key: str, value: Any):
        """
        Set a configuration value for this run only (not saved).

        None values are ignored so unset command-line options keep the configured value.
        """
        if value is not None:
            self.config[key] = value
