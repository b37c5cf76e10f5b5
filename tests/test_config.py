"""
Tests for settings loading and validation.
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from utilities.config import CatalogConfig


def test_defaults(monkeypatch):
    monkeypatch.delenv("MONGODB_DATABASE", raising=False)
    monkeypatch.delenv("DEFAULT_PAGE_SIZE", raising=False)
    config = CatalogConfig(_env_file=None)

    assert config.mongodb_database == "library"
    assert config.default_page_size == 10
    assert config.max_page_size == 100
    assert config.get_log_file_path() is None


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("MONGODB_DATABASE", "catalog_test")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("LOG_FILE", "logs/api.log")

    config = CatalogConfig(_env_file=None)

    assert config.mongodb_database == "catalog_test"
    assert config.log_level == "DEBUG"
    assert config.get_log_file_path() == Path("logs/api.log")


@pytest.mark.parametrize("key,value", [
    ("LOG_LEVEL", "LOUD"),
    ("LOG_FORMAT", "xml"),
    ("MAX_PAGE_SIZE", "0"),
])
def test_invalid_settings(monkeypatch, key, value):
    monkeypatch.setenv(key, value)
    with pytest.raises(ValidationError):
        CatalogConfig(_env_file=None)
