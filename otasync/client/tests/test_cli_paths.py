"""
Tests for CLI argument handling in OTA Sync Client

Tests destination resolution, URL validation and configuration exit codes.
"""

from pathlib import Path

from otasync.client.cli import (
    resolve_destination, validate_source_url, run_cli_sync,
    EXIT_CONFIG_ERROR
)


URL = "http://localhost:8090/releases/image-1234.tgz"


def test_destination_directory_with_slash():
    """Test that a trailing slash means "put it in this directory" """
    assert resolve_destination(URL, "./") == Path("./image-1234.tgz")
    assert resolve_destination(URL, "/var/images/") == Path("/var/images/image-1234.tgz")


def test_destination_explicit_file():
    assert resolve_destination(URL, "/var/images/latest.tgz") == Path("/var/images/latest.tgz")


def test_destination_without_suffix_is_directory():
    assert resolve_destination(URL, "/var/images") == Path("/var/images/image-1234.tgz")


def test_validate_source_url():
    assert validate_source_url(URL) is None
    assert validate_source_url("https://example.com/a.tgz") is None
    assert validate_source_url("http://localhost:8090/image.tar") is not None
    assert validate_source_url("ftp://localhost/image.tgz") is not None
    assert validate_source_url("image-1234.tgz") is not None


def test_invalid_url_is_config_error(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)

    exit_code = run_cli_sync(
        "http://localhost:8090/image.zip",
        reference_dir=str(tmp_path),
        config_file=tmp_path / "config.json"
    )

    assert exit_code == EXIT_CONFIG_ERROR
    assert not (tmp_path / "config.json").exists()


def test_invalid_url_writes_nothing(tmp_path, monkeypatch):
    """Test that a rejected URL leaves neither a config file nor a log directory behind"""
    monkeypatch.chdir(tmp_path)

    exit_code = run_cli_sync("ftp://localhost/image-1234.tgz")

    assert exit_code == EXIT_CONFIG_ERROR
    assert list(tmp_path.iterdir()) == []


def test_missing_reference_dir_is_config_error(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)

    exit_code = run_cli_sync(
        URL,
        destination=str(tmp_path) + "/",
        reference_dir=str(tmp_path / "does-not-exist"),
        config_file=tmp_path / "config.json"
    )

    assert exit_code == EXIT_CONFIG_ERROR
