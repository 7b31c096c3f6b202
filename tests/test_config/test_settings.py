"""Tests for application settings."""

import pytest
from pydantic import ValidationError

from src.config.settings import Settings, get_settings


class TestSettings:
    def test_watch_list_from_comma_separated_env(self, monkeypatch):
        monkeypatch.setenv("WATCH_LIST", "alice, bob,,carol ")

        settings = Settings()

        assert settings.watch_list == ["alice", "bob", "carol"]

    def test_watch_list_from_list(self):
        settings = Settings(watch_list=["alice", "bob"])
        assert settings.watch_list == ["alice", "bob"]

    def test_empty_watch_list(self, monkeypatch):
        monkeypatch.setenv("WATCH_LIST", "")
        assert Settings().watch_list == []

    def test_twitch_configured(self):
        assert Settings(twitch_client_id="id", twitch_access_token="tok").twitch_configured
        assert not Settings(twitch_client_id="id", twitch_access_token=None).twitch_configured

    def test_backend_must_be_known(self):
        with pytest.raises(ValidationError):
            Settings(watch_list_backend="redis")

    def test_tracing_enabled_by_endpoint(self):
        assert not Settings(otel_exporter_otlp_endpoint=None).tracing_enabled
        assert Settings(otel_exporter_otlp_endpoint="http://otel:4317").tracing_enabled

    def test_is_production(self):
        assert Settings(environment="production").is_production
        assert not Settings(environment="development").is_production

    def test_debug_env_is_ignored(self, monkeypatch):
        monkeypatch.setenv("DEBUG", "true")

        settings = Settings()

        assert "debug" not in Settings.model_fields
        assert not hasattr(settings, "debug")

    def test_toml_file(self, tmp_path, monkeypatch):
        (tmp_path / "stream_alerts.toml").write_text(
            'watch_list = ["alice", "bob"]\n'
            'watch_list_backend = "postgres"\n'
            'twitch_client_id = "from-toml"\n'
        )
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv("TWITCH_CLIENT_ID", raising=False)

        settings = Settings()

        assert settings.watch_list == ["alice", "bob"]
        assert settings.watch_list_backend == "postgres"
        assert settings.twitch_client_id == "from-toml"

    def test_env_overrides_toml(self, tmp_path, monkeypatch):
        (tmp_path / "stream_alerts.toml").write_text('twitch_client_id = "from-toml"\n')
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("TWITCH_CLIENT_ID", "from-env")

        assert Settings().twitch_client_id == "from-env"

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()
