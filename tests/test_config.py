"""Tests for settings resolution."""

import pytest

from unity_voice.config import Settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("DATABASE_URL", "PORT", "LEVELS_PER_TOPIC", "GENERATION_MODEL"):
        monkeypatch.delenv(name, raising=False)


class TestSettings:
    def test_yaml_defaults(self):
        settings = Settings()
        assert settings.port == 5000
        assert settings.levels_per_topic == 3
        assert settings.generation_model == "gpt-4o-mini"

    def test_init_overrides(self):
        settings = Settings(database_url="sqlite+aiosqlite://", levels_per_topic=5)
        assert settings.database_url == "sqlite+aiosqlite://"
        assert settings.levels_per_topic == 5

    def test_environment_overrides_yaml(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "postgresql+asyncpg://db/unity")
        monkeypatch.setenv("PORT", "8080")
        settings = Settings()
        assert settings.database_url == "postgresql+asyncpg://db/unity"
        assert settings.port == 8080
