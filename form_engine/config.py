"""Engine configuration: form namespace, abnormal concept class and
interpretation, log level.

Each setting resolves from the first source that defines it: a
`FORM_ENGINE_*` environment variable, a text file under `config/`, the
`form_engine_config.json` file, then the built-in default. `EngineConfig`
validates the result.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator


CONFIG_DIR = Path("config")
ROOT_ENGINE_CONFIG = Path("form_engine_config.json")
logger = logging.getLogger(__name__)

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def _read_config_file(rel_path: str) -> Optional[str]:
    path = CONFIG_DIR / rel_path
    try:
        if path.exists():
            return path.read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("config_override_unreadable path=%s error=%s", path, e)
        return None
    return None


def _env(key: str, default: Optional[str] = None) -> Optional[str]:
    return os.environ.get(key, default)


class EngineConfig(BaseModel):
    form_namespace: str = Field(default="Bahmni")
    abnormal_concept_class: str = Field(default="Abnormal")
    abnormal_interpretation: str = Field(default="ABNORMAL")
    log_level: str = Field(default="INFO")

    @field_validator("form_namespace", "abnormal_concept_class", "abnormal_interpretation")
    @classmethod
    def must_be_non_empty(cls, v: str) -> str:
        if not isinstance(v, str) or not v.strip():
            raise ValueError("value must be a non-empty string")
        return v.strip()

    @field_validator("log_level")
    @classmethod
    def level_must_be_known(cls, v: str) -> str:
        level = str(v).strip().upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {sorted(_LOG_LEVELS)}")
        return level


def _read_json_file(path: Path) -> dict:
    try:
        if path.exists():
            return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.error("config_json_unreadable path=%s error=%s", path, e)
    return {}


def load_config() -> EngineConfig:
    """Load configuration with validation.

    Precedence (highest first):
    1) Environment variables
    2) Text files in `config/` (optional)
    3) form_engine_config.json at project root
    4) Defaults
    """

    base = _read_json_file(ROOT_ENGINE_CONFIG)

    def _base(key: str, default: Optional[str] = None) -> Optional[str]:
        if not isinstance(base, dict) or base.get(key) is None:
            return default
        return str(base[key])

    namespace = _env("FORM_ENGINE_NAMESPACE") or _read_config_file("form.namespace") or _base("form_namespace", "Bahmni")
    abnormal_class = (
        _env("FORM_ENGINE_ABNORMAL_CLASS")
        or _read_config_file("abnormal.concept_class")
        or _base("abnormal_concept_class", "Abnormal")
    )
    interpretation = (
        _env("FORM_ENGINE_ABNORMAL_INTERPRETATION")
        or _read_config_file("abnormal.interpretation")
        or _base("abnormal_interpretation", "ABNORMAL")
    )
    log_level = _env("FORM_ENGINE_LOG_LEVEL") or _read_config_file("log.level") or _base("log_level", "INFO")

    try:
        return EngineConfig(
            form_namespace=namespace,
            abnormal_concept_class=abnormal_class,
            abnormal_interpretation=interpretation,
            log_level=log_level,
        )
    except PydanticValidationError as e:
        logger.error("config_invalid errors=%s", e.error_count())
        raise


# Module-level cached config shared by models and mappers
_CONFIG: EngineConfig | None = None


def get_config() -> EngineConfig:
    """Return the process-wide config, loading it on first use."""
    global _CONFIG
    if _CONFIG is None:
        _CONFIG = load_config()
    return _CONFIG


def reset_config() -> None:
    """Drop the cached config so the next `get_config()` reloads it."""
    global _CONFIG
    _CONFIG = None


__all__ = [
    "EngineConfig",
    "load_config",
    "get_config",
    "reset_config",
]
