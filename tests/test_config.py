"""
Unit tests for environment-driven configuration.
"""

import os

import pytest
from pydantic import ValidationError

from oramacore_client import (
    ClientSettings,
    CollectionManagerConfig,
    ConfigError,
    OramaCoreManagerConfig,
    ProjectManagerConfig,
)
from oramacore_client.auth import DEFAULT_JWT_URL, DEFAULT_READER_URL


@pytest.fixture
def clean_env(monkeypatch):
    """Remove any ORAMA_* variables from the environment."""
    for key in list(os.environ):
        if key.startswith("ORAMA_"):
            monkeypatch.delenv(key)
    return monkeypatch


class TestClientSettings:
    def test_defaults(self, clean_env):
        settings = ClientSettings(_env_file=None)

        assert settings.auth_jwt_url == DEFAULT_JWT_URL
        assert settings.timeout == 30.0
        assert settings.collection_id is None

    def test_reads_prefixed_env(self, clean_env):
        clean_env.setenv("ORAMA_COLLECTION_ID", "col-1")
        clean_env.setenv("ORAMA_COLLECTION_API_KEY", "p_secret")
        clean_env.setenv("ORAMA_WRITER_URL", "https://writer.test")
        clean_env.setenv("ORAMA_TIMEOUT", "5")

        settings = ClientSettings(_env_file=None)

        assert settings.collection_id == "col-1"
        assert settings.collection_api_key == "p_secret"
        assert settings.timeout == 5.0

    def test_rejects_non_positive_timeout(self, clean_env):
        clean_env.setenv("ORAMA_TIMEOUT", "0")
        with pytest.raises(ValidationError):
            ClientSettings(_env_file=None)


class TestManagerConfigs:
    def test_collection_config_from_settings(self, clean_env):
        settings = ClientSettings(
            _env_file=None,
            collection_id="col-1",
            collection_api_key="sk",
            writer_url="https://writer.test",
        )
        config = CollectionManagerConfig.from_settings(settings)

        assert config.collection_id == "col-1"
        assert config.writer_url == "https://writer.test"
        assert config.reader_url == DEFAULT_READER_URL

    def test_missing_collection_id(self, clean_env):
        settings = ClientSettings(_env_file=None, collection_api_key="sk")
        with pytest.raises(ConfigError, match="ORAMA_COLLECTION_ID"):
            CollectionManagerConfig.from_settings(settings)

    def test_project_config(self, clean_env):
        settings = ClientSettings(
            _env_file=None,
            project_id="proj-1",
            collection_api_key="sk",
            reader_url="https://reader.test",
        )
        config = ProjectManagerConfig.from_settings(settings).to_collection_config()

        assert config.collection_id == "proj-1"
        assert config.reader_url == "https://reader.test"
        assert config.writer_url is None

    def test_core_manager_config_requires_master_key(self, clean_env):
        settings = ClientSettings(_env_file=None, writer_url="https://writer.test")
        with pytest.raises(ConfigError, match="ORAMA_MASTER_API_KEY"):
            OramaCoreManagerConfig.from_settings(settings)
