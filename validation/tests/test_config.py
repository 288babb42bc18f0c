import logging

import pytest
from pydantic import ValidationError

from validation.app.config import ValidationConfig


def test_defaults():
    config = ValidationConfig()

    assert config.MAX_FILE_SIZE_MB == 30
    assert config.max_file_size_bytes == 30 * 1024 * 1024
    assert config.MAX_ARCHIVE_DEPTH == 8
    assert config.STAGING_DIR is None
    assert config.log_level == logging.INFO


def test_from_env(monkeypatch, tmp_path):
    monkeypatch.setenv("VALIDATION_MAX_FILE_SIZE_MB", "5")
    monkeypatch.setenv("VALIDATION_MAX_ARCHIVE_DEPTH", "2")
    monkeypatch.setenv("VALIDATION_STAGING_DIR", str(tmp_path))
    monkeypatch.setenv("VALIDATION_LOG_LEVEL", "debug")

    config = ValidationConfig.from_env()

    assert config.MAX_FILE_SIZE_MB == 5
    assert config.MAX_ARCHIVE_DEPTH == 2
    assert config.STAGING_DIR == tmp_path
    assert config.LOG_LEVEL == "DEBUG"
    assert config.log_level == logging.DEBUG


def test_rejects_unknown_log_level():
    with pytest.raises(ValidationError, match="LOG_LEVEL"):
        ValidationConfig(LOG_LEVEL="chatty")


def test_rejects_non_positive_limits():
    with pytest.raises(ValidationError):
        ValidationConfig(MAX_ARCHIVE_DEPTH=0)

    with pytest.raises(ValidationError):
        ValidationConfig(MAX_FILE_SIZE_MB=-1)


def test_rejects_missing_staging_dir(tmp_path):
    with pytest.raises(ValidationError, match="STAGING_DIR"):
        ValidationConfig(STAGING_DIR=tmp_path / "does-not-exist")


def test_config_is_frozen():
    config = ValidationConfig()

    with pytest.raises(ValidationError):
        config.MAX_ARCHIVE_DEPTH = 3
