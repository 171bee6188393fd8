"""
Unit tests for configuration.

Tests cover:
- Defaults
- Loading from environment
- Validation failures
"""

import pytest

from resourcedb.config import (
    HttpConfig,
    ObservabilityConfig,
    ServerConfig,
    StoreBackend,
    StoreConfig,
)
from resourcedb.store import InMemoryResourceStore, SqliteResourceStore, create_resource_store
from resourcedb.validate import RequiredFields


class TestConfigDefaults:
    """Tests for default values."""

    def test_defaults(self):
        config = ServerConfig()
        assert config.http.port == 8080
        assert config.http.request_timeout_ms == 30000
        assert config.store.backend == StoreBackend.MEMORY
        assert config.store.required_fields == ()
        assert config.observability.log_format == "json"
        config.validate()


class TestConfigFromEnv:
    """Tests for from_env()."""

    def test_http_from_env(self, monkeypatch):
        monkeypatch.setenv("HTTP_PORT", "9000")
        monkeypatch.setenv("HTTP_CORS_ORIGINS", "https://a.example, https://b.example")
        monkeypatch.setenv("REQUEST_TIMEOUT_MS", "1500")

        config = HttpConfig.from_env()

        assert config.port == 9000
        assert config.cors_origins == ("https://a.example", "https://b.example")
        assert config.request_timeout_ms == 1500

    def test_store_from_env(self, monkeypatch):
        monkeypatch.setenv("STORE_BACKEND", "SQLite")
        monkeypatch.setenv("SQLITE_PATH", "/tmp/r.db")
        monkeypatch.setenv("REQUIRED_FIELDS", "name,email")

        config = StoreConfig.from_env()

        assert config.backend == StoreBackend.SQLITE
        assert config.sqlite_path == "/tmp/r.db"
        assert config.required_fields == ("name", "email")

    def test_invalid_backend(self, monkeypatch):
        monkeypatch.setenv("STORE_BACKEND", "mongo")
        with pytest.raises(ValueError, match="STORE_BACKEND"):
            ServerConfig.from_env()

    def test_server_from_env_validates(self, monkeypatch):
        monkeypatch.setenv("HTTP_PORT", "70000")
        with pytest.raises(ValueError, match="HTTP_PORT"):
            ServerConfig.from_env()


class TestConfigValidation:
    """Tests for validate()."""

    def test_non_positive_timeout(self):
        config = ServerConfig(http=HttpConfig(request_timeout_ms=0))
        with pytest.raises(ValueError, match="REQUEST_TIMEOUT_MS"):
            config.validate()

    def test_bad_log_format(self):
        config = ServerConfig(observability=ObservabilityConfig(log_format="xml"))
        with pytest.raises(ValueError, match="LOG_FORMAT"):
            config.validate()

    def test_bad_list_interval(self):
        config = ServerConfig(store=StoreConfig(list_check_interval=0))
        with pytest.raises(ValueError, match="LIST_CHECK_INTERVAL"):
            config.validate()


class TestStoreFactory:
    """Tests for create_resource_store."""

    def test_memory(self):
        store = create_resource_store(StoreConfig())
        assert isinstance(store, InMemoryResourceStore)

    def test_sqlite(self, tmp_path):
        store = create_resource_store(
            StoreConfig(backend=StoreBackend.SQLITE, sqlite_path=str(tmp_path / "r.db"))
        )
        assert isinstance(store, SqliteResourceStore)

    def test_required_fields_wired(self):
        store = create_resource_store(StoreConfig(required_fields=("name",)))
        assert isinstance(store.validator, RequiredFields)
        assert store.validator.names == ("name",)
