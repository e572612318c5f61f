from __future__ import annotations

from careerhub.config.settings import Settings


def test_defaults(monkeypatch):
    for name in ("JOB_IMPORT_BATCH_SIZE", "OPENAI_API_KEY", "LOG_LEVEL", "JOB_IMPORT_SCHEMA"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings()

    assert settings.job_import.batch_size == 5
    assert settings.job_import.prefer_ai is True
    assert settings.openai.model == "gpt-4o-mini"
    assert settings.warehouse.schema_name == "job_import"
    assert settings.log_level == "INFO"
    assert settings.ai_available is False


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("JOB_IMPORT_BATCH_SIZE", "3")
    monkeypatch.setenv("JOB_IMPORT_RATE_LIMIT_PER_HOST_S", "0")
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    monkeypatch.setenv("JOB_IMPORT_SCHEMA", "imports")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")

    settings = Settings()

    assert settings.job_import.batch_size == 3
    assert settings.job_import.rate_limit_per_host_s == 0.0
    assert settings.warehouse.schema_name == "imports"
    assert settings.log_level == "DEBUG"
    assert settings.ai_available is True


def test_ai_can_be_disabled_with_a_key_present(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    monkeypatch.setenv("JOB_IMPORT_AI_ENABLED", "false")

    assert Settings().ai_available is False
