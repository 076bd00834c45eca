"""Unit tests for environment-driven configuration."""

import pytest

from aura_prompts import config
from aura_prompts.lib.exceptions import ConfigurationError


def test_cache_ttl_default(monkeypatch):
    monkeypatch.delenv("PROMPT_CACHE_TTL_SECONDS", raising=False)
    assert config.get_prompt_cache_ttl_seconds() == 300.0


def test_cache_ttl_from_env(monkeypatch):
    monkeypatch.setenv("PROMPT_CACHE_TTL_SECONDS", "12.5")
    assert config.get_prompt_cache_ttl_seconds() == 12.5


@pytest.mark.parametrize("value", ["soon", "0", "-5"])
def test_cache_ttl_invalid(monkeypatch, value):
    monkeypatch.setenv("PROMPT_CACHE_TTL_SECONDS", value)
    with pytest.raises(ConfigurationError):
        config.get_prompt_cache_ttl_seconds()


def test_database_url_falls_back_to_postgres_parts(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.setenv("POSTGRES_HOST", "db.internal")
    monkeypatch.setenv("POSTGRES_DB", "aura_test")

    url = config.get_app_database_url()
    assert url.startswith("postgresql://")
    assert url.endswith("@db.internal:5432/aura_test")


def test_registry_path_override(monkeypatch, tmp_path):
    monkeypatch.delenv("PROMPT_REGISTRY_PATH", raising=False)
    assert config.get_prompt_registry_path().name == "registry.yaml"

    monkeypatch.setenv("PROMPT_REGISTRY_PATH", str(tmp_path / "custom.yaml"))
    assert config.get_prompt_registry_path() == tmp_path / "custom.yaml"


def test_admin_emails_are_normalized(monkeypatch):
    monkeypatch.setenv("ADMIN_EMAILS", " Admin@Example.com, ,ops@example.com")
    assert config.get_admin_emails() == {"admin@example.com", "ops@example.com"}


@pytest.mark.parametrize("raw, expected", [(None, True), ("false", False), ("YES", True), ("", True)])
def test_seed_defaults_flag(monkeypatch, raw, expected):
    if raw is None:
        monkeypatch.delenv("PROMPT_SEED_DEFAULTS", raising=False)
    else:
        monkeypatch.setenv("PROMPT_SEED_DEFAULTS", raw)
    assert config.should_seed_prompt_defaults() is expected


def test_invalid_log_level_defaults_to_info(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "chatty")
    assert config.get_log_level() == "INFO"
