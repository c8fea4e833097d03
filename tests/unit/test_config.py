"""Unit tests for environment-driven settings."""

import pytest

from mailcapture.config import Settings, get_settings

from tests.samples import TEST_API_KEY


class TestDefaults:
    """Defaults without any environment"""

    def test_defaults(self, monkeypatch):
        for name in ("SMTP_PORT", "MIME_STRICT", "API_PREFIX", "EMAIL_DOMAIN", "ADMIN_APP_PORT", "API_KEY"):
            monkeypatch.delenv(name, raising=False)
        settings = Settings(_env_file=None)
        assert settings.SMTP_PORT == 25
        assert settings.MIME_STRICT is True
        assert settings.API_PREFIX == "/api"
        assert settings.email_domains == []
        assert settings.admin_api_enabled is False

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("SMTP_PORT", "2525")
        monkeypatch.setenv("MIME_STRICT", "false")
        settings = Settings(_env_file=None)
        assert settings.SMTP_PORT == 2525
        assert settings.MIME_STRICT is False


class TestEmailDomains:
    """Comma-separated domain list"""

    def test_split_and_normalized(self):
        settings = Settings(_env_file=None, EMAIL_DOMAIN=" Example.com, ,other.org ")
        assert settings.email_domains == ["example.com", "other.org"]

    def test_blank_entries_dropped(self):
        assert Settings(_env_file=None, EMAIL_DOMAIN=" , ").email_domains == []


class TestAdminApiEnabled:
    """Admin API requires a port and a long enough key"""

    @pytest.mark.parametrize(
        "port,key,expected",
        [
            (2255, TEST_API_KEY, True),
            (2255, "short", False),
            (2255, None, False),
            (None, TEST_API_KEY, False),
        ],
    )
    def test_enabled(self, port, key, expected):
        settings = Settings(_env_file=None, ADMIN_APP_PORT=port, API_KEY=key)
        assert settings.admin_api_enabled is expected

    def test_minimum_length_boundary(self):
        settings = Settings(_env_file=None, ADMIN_APP_PORT=2255, API_KEY="k" * 20)
        assert settings.admin_api_enabled is True


class TestGetSettings:
    """Cached settings"""

    def test_cached(self):
        get_settings.cache_clear()
        try:
            assert get_settings() is get_settings()
        finally:
            get_settings.cache_clear()
