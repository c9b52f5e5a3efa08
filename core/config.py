from __future__ import annotations

import logging
import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator

from .models import BaseConfig

logger = logging.getLogger(__name__)

CLARIFICATION_POLICIES = ("repeat", "skip", "close")
STORAGE_BACKENDS = ("memory", "file", "redis")
EXTRACTION_MODES = ("auto", "llm", "heuristic")


class Settings(BaseConfig):
    """Runtime settings read from the environment"""

    # LLM
    model: str = "gpt-4o-mini"
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    azure_endpoint: Optional[str] = None
    azure_key: Optional[str] = None
    azure_version: str = "2024-06-01"
    azure_deployment: Optional[str] = None
    llm_timeout: float = Field(default=20.0, gt=0)
    extraction_mode: str = "auto"
    paraphrase_questions: bool = True

    # Storage
    log_dir: str = "./data/logs"
    audit_dir: Optional[str] = None
    storage_backend: str = "file"
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0
    session_ttl: Optional[int] = None
    state_cache_size: int = Field(default=256, ge=0)

    # Clarification handling
    max_clarifications: Optional[int] = None
    clarification_policy: str = "repeat"

    @field_validator("clarification_policy")
    @classmethod
    def _check_policy(cls, v: str) -> str:
        v = v.lower()
        if v not in CLARIFICATION_POLICIES:
            raise ValueError(f"clarification_policy must be one of {CLARIFICATION_POLICIES}")
        return v

    @field_validator("storage_backend")
    @classmethod
    def _check_backend(cls, v: str) -> str:
        v = v.lower()
        if v not in STORAGE_BACKENDS:
            raise ValueError(f"storage_backend must be one of {STORAGE_BACKENDS}")
        return v

    @field_validator("extraction_mode")
    @classmethod
    def _check_mode(cls, v: str) -> str:
        v = v.lower()
        if v not in EXTRACTION_MODES:
            raise ValueError(f"extraction_mode must be one of {EXTRACTION_MODES}")
        return v

    @property
    def llm_configured(self) -> bool:
        return bool(self.api_key or (self.azure_endpoint and self.azure_key))

    @property
    def logs_dir(self) -> str:
        return self.audit_dir or os.path.join(self.log_dir, "logs")


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str) -> Optional[int]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    return int(raw)


def load_settings(**overrides) -> Settings:
    """Build Settings from the environment (and .env); keyword overrides win"""
    load_dotenv()

    backend = os.getenv("STORAGE_BACKEND")
    if not backend:
        backend = "redis" if _env_bool("USE_REDIS", False) else "file"

    values = {
        'model': os.getenv("MODEL", "gpt-4o-mini"),
        'api_key': os.getenv("API_KEY") or os.getenv("OPENAI_API_KEY"),
        'base_url': os.getenv("BASE_URL"),
        'azure_endpoint': os.getenv("AZURE_OPENAI_ENDPOINT"),
        'azure_key': os.getenv("AZURE_OPENAI_KEY"),
        'azure_version': os.getenv("AZURE_OPENAI_VERSION", "2024-06-01"),
        'azure_deployment': os.getenv("AZURE_OPENAI_DEPLOYMENT"),
        'llm_timeout': float(os.getenv("LLM_TIMEOUT", "20")),
        'extraction_mode': os.getenv("EXTRACTION_MODE", "auto"),
        'paraphrase_questions': _env_bool("PARAPHRASE_QUESTIONS", True),
        'log_dir': os.getenv("CALLER_LOG_DIR", "./data/logs"),
        'audit_dir': os.getenv("AUDIT_LOG_DIR") or None,
        'storage_backend': backend,
        'redis_host': os.getenv("REDIS_HOST", "localhost"),
        'redis_port': int(os.getenv("REDIS_PORT", "6379")),
        'redis_db': int(os.getenv("REDIS_DB", "0")),
        'session_ttl': _env_int("SESSION_TTL"),
        'state_cache_size': int(os.getenv("STATE_CACHE_SIZE", "256")),
        'max_clarifications': _env_int("MAX_CLARIFICATIONS"),
        'clarification_policy': os.getenv("CLARIFICATION_POLICY", "repeat"),
    }
    values.update(overrides)
    settings = Settings(**values)
    logger.debug(f"Loaded settings: backend={settings.storage_backend} mode={settings.extraction_mode}")
    return settings
