"""
Settings tests: values come from TASKHIVE_* environment variables.
"""

import pytest

from taskhive.config import Settings


@pytest.fixture
def clean_env(monkeypatch):
    for key in ("TASKHIVE_ALLOWED_ORIGINS", "TASKHIVE_DEBUG", "TASKHIVE_DATABASE_URL"):
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


class TestAllowedOrigins:
    def test_comma_separated_env(self, clean_env):
        clean_env.setenv("TASKHIVE_ALLOWED_ORIGINS", "http://a.com, http://b.com,")

        settings = Settings(_env_file=None)

        assert settings.allowed_origins == ["http://a.com", "http://b.com"]

    def test_single_origin_env(self, clean_env):
        clean_env.setenv("TASKHIVE_ALLOWED_ORIGINS", "https://app.example.com")
        assert Settings(_env_file=None).allowed_origins == ["https://app.example.com"]

    def test_default(self, clean_env):
        assert Settings(_env_file=None).allowed_origins == ["http://localhost:3000"]

    def test_list_passed_directly(self, clean_env):
        settings = Settings(_env_file=None, allowed_origins=["http://c.com"])
        assert settings.allowed_origins == ["http://c.com"]


def test_prefixed_env_values(clean_env):
    clean_env.setenv("TASKHIVE_DEBUG", "true")
    clean_env.setenv("TASKHIVE_DATABASE_URL", "sqlite+aiosqlite:///./other.db")

    settings = Settings(_env_file=None)

    assert settings.debug is True
    assert settings.database_url == "sqlite+aiosqlite:///./other.db"
