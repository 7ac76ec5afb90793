"""Tests for environment-driven settings."""

from pathlib import Path

from cadence.config.settings import Settings, get_database_url


class TestSettings:
    """Invalid values fall back to safe defaults instead of failing startup."""

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "sqlite:///:memory:")
        monkeypatch.setenv("LOG_LEVEL", "debug")
        monkeypatch.setenv("DEFAULT_TIMEZONE", "Europe/Madrid")

        config = Settings()

        assert config.database_url == "sqlite:///:memory:"
        assert config.log_level == "DEBUG"
        assert config.default_timezone == "Europe/Madrid"

    def test_invalid_log_level_defaults_to_info(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "verbose")

        assert Settings().log_level == "INFO"

    def test_invalid_timezone_defaults_to_chicago(self, monkeypatch):
        monkeypatch.setenv("DEFAULT_TIMEZONE", "Nowhere/Special")

        assert Settings().default_timezone == "America/Chicago"

    def test_catalog_path_points_at_packaged_yaml(self, monkeypatch):
        monkeypatch.delenv("CHALLENGE_CATALOG_PATH", raising=False)

        assert Path(Settings().challenge_catalog_path).name == "challenges.yaml"
        assert Path(Settings().challenge_catalog_path).exists()


def test_sqlite_fallback_uses_absolute_path(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)

    url = get_database_url()

    assert url.startswith("sqlite:///")
    assert Path(url.removeprefix("sqlite:///")).is_absolute()
