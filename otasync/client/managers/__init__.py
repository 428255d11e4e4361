"""
OTA Sync Client - Managers Package

Contains the configuration manager.

Author: OTA Sync Project
"""

from .config_manager import ConfigManager, DEFAULT_CONFIG, get_base_dir

__all__ = [
    'ConfigManager',
    'DEFAULT_CONFIG',
    'get_base_dir'
]
