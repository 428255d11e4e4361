"""
Tests for OTA Sync Server settings

Tests bind address parsing and settings loading.
"""

import json
from pathlib import Path

import pytest

from otasync.server.settings import ParseBindAddress, LoadSettings, DEFAULT_PORT


def test_parse_bind_address():
    assert ParseBindAddress(":8090") == ("0.0.0.0", 8090)
    assert ParseBindAddress("127.0.0.1:9000") == ("127.0.0.1", 9000)


def test_parse_bind_address_rejects_bad_values():
    with pytest.raises(ValueError):
        ParseBindAddress("8090")
    with pytest.raises(ValueError):
        ParseBindAddress("localhost:http")


def test_defaults():
    settings = LoadSettings()

    assert settings.port == DEFAULT_PORT
    assert settings.archive_root == Path("/tmp")
    assert settings.verify_fingerprint is True


def test_file_values_and_overrides(tmp_path):
    """Test that explicit overrides win over the file and None overrides are ignored"""
    config_file = tmp_path / "server.json"
    config_file.write_text(json.dumps({"archive_root": "/srv/images", "port": 9000, "debug": True}))

    settings = LoadSettings(config_file, port=9100, debug=None)

    assert settings.archive_root == Path("/srv/images")
    assert settings.port == 9100
    assert settings.debug is True
