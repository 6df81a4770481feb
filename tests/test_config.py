"""Tests for application settings."""

import pytest
from pydantic import ValidationError

from shelfscan.config import AppSettings, SyncEndpoint


class TestSettings:
    def test_defaults(self):
        settings = AppSettings()
        assert settings.embedder.dim == 768
        assert settings.search.product_max_distance == 0.25
        assert settings.search.face_max_distance == 0.1
        assert settings.search.relative_distance_factor == 1.40
        assert settings.search.zoom_factors == [1.0, 2.0]
        assert settings.indexing.batch_size == 10
        assert settings.capture.capture_interval == 0.2

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("SHELFSCAN_DATABASE_PATH", "/tmp/other.sqlite3")
        monkeypatch.setenv("SHELFSCAN_LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("SHELFSCAN_SYNC_URL", "wss://sync.example.com/shop")
        monkeypatch.setenv("SHELFSCAN_SYNC_USERNAME", "pos")
        monkeypatch.delenv("SHELFSCAN_SYNC_PASSWORD", raising=False)

        settings = AppSettings.from_env()
        assert settings.database_path == "/tmp/other.sqlite3"
        assert settings.log_level == "DEBUG"
        assert settings.sync.endpoint.url == "wss://sync.example.com/shop"
        assert settings.sync.endpoint.has_credentials is False


class TestSyncEndpoint:
    @pytest.mark.parametrize("url", ["http://example.com", "example.com", "ftp://example.com"])
    def test_requires_websocket_scheme(self, url):
        with pytest.raises(ValidationError):
            SyncEndpoint(url=url)

    def test_credentials_need_both_parts(self):
        assert SyncEndpoint(url="ws://host", username="u", password="p").has_credentials
        assert not SyncEndpoint(url="ws://host", password="p").has_credentials
