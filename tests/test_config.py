import os

import pytest
from pydantic import ValidationError

from core.config import Settings, load_settings

ENV_KEYS = (
    "STORAGE_BACKEND", "USE_REDIS", "CALLER_LOG_DIR", "AUDIT_LOG_DIR", "EXTRACTION_MODE",
    "MAX_CLARIFICATIONS", "CLARIFICATION_POLICY", "PARAPHRASE_QUESTIONS", "API_KEY", "OPENAI_API_KEY",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_defaults():
    settings = load_settings()
    assert settings.storage_backend == "file"
    assert settings.extraction_mode == "auto"
    assert settings.max_clarifications is None
    assert settings.clarification_policy == "repeat"
    assert settings.logs_dir == os.path.join("./data/logs", "logs")
    assert not settings.llm_configured


def test_environment_values(monkeypatch, tmp_path):
    monkeypatch.setenv("CALLER_LOG_DIR", str(tmp_path))
    monkeypatch.setenv("MAX_CLARIFICATIONS", "2")
    monkeypatch.setenv("CLARIFICATION_POLICY", "Skip")
    monkeypatch.setenv("PARAPHRASE_QUESTIONS", "false")
    monkeypatch.setenv("API_KEY", "sk-test")

    settings = load_settings()
    assert settings.log_dir == str(tmp_path)
    assert settings.logs_dir == os.path.join(str(tmp_path), "logs")
    assert settings.max_clarifications == 2
    assert settings.clarification_policy == "skip"
    assert settings.paraphrase_questions is False
    assert settings.llm_configured


def test_use_redis_flag(monkeypatch):
    monkeypatch.setenv("USE_REDIS", "true")
    assert load_settings().storage_backend == "redis"
    monkeypatch.setenv("STORAGE_BACKEND", "memory")
    assert load_settings().storage_backend == "memory"


def test_audit_dir_override(monkeypatch, tmp_path):
    monkeypatch.setenv("AUDIT_LOG_DIR", str(tmp_path / "audit"))
    assert load_settings().logs_dir == str(tmp_path / "audit")


def test_overrides_win(monkeypatch):
    monkeypatch.setenv("EXTRACTION_MODE", "llm")
    assert load_settings(extraction_mode="heuristic").extraction_mode == "heuristic"


@pytest.mark.parametrize("field, value", [
    ("clarification_policy", "ignore"),
    ("storage_backend", "sqlite"),
    ("extraction_mode", "magic"),
])
def test_invalid_choices(field, value):
    with pytest.raises(ValidationError):
        Settings(**{field: value})
