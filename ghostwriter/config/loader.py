"""YAML and env loader with fail-fast validation."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from dotenv import load_dotenv

from ghostwriter.models import SettingsConfig

ENV_PREFIX = "GHOSTWRITER_"

# Environment overrides: variable suffix -> (section, field)
_ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "LLM_BASE_URL": ("llm", "base_url"),
    "LLM_MODEL": ("llm", "model"),
    "LLM_API_KEY_ENV": ("llm", "api_key_env"),
    "LLM_RPM": ("llm", "requests_per_minute"),
    "WRITERS": ("orchestrator", "writer_count"),
    "MAX_CONCURRENT_WRITERS": ("orchestrator", "max_concurrent_writers"),
    "TIMEOUT": ("orchestrator", "timeout_seconds"),
    "TARGET_WORDS": ("orchestrator", "target_word_count"),
    "RESEARCH_DEPTH": ("orchestrator", "research_depth"),
    "LOG_LEVEL": ("logging", "level"),
    "LOG_DIR": ("logging", "log_dir"),
}


def _read_yaml(path: str) -> dict:
    resolved = Path(path)
    if not resolved.exists():
        raise FileNotFoundError(f"Missing config file: {path}")
    with resolved.open("r", encoding="utf-8") as file_obj:
        loaded = yaml.safe_load(file_obj) or {}
    if not isinstance(loaded, dict):
        raise ValueError(f"Expected object at root of YAML file: {path}")
    return loaded


def apply_env_overrides(raw: Dict[str, Any], environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    """Return a copy of raw settings with GHOSTWRITER_* variables applied."""
    environ = os.environ if environ is None else environ
    merged = {section: dict(values or {}) for section, values in raw.items()}
    for suffix, (section, field) in _ENV_OVERRIDES.items():
        value = environ.get(f"{ENV_PREFIX}{suffix}")
        if value:
            merged.setdefault(section, {})[field] = value
    return merged


def load_settings(settings_path: Optional[str] = "config/settings.yaml") -> SettingsConfig:
    """
    Load settings from YAML (optional) and the environment.

    Args:
        settings_path: YAML settings file; None uses defaults plus environment

    Raises:
        FileNotFoundError: If settings_path is given but missing
        ValueError: If the YAML root is not a mapping
        pydantic.ValidationError: If values are out of range
    """
    load_dotenv()
    raw = _read_yaml(settings_path) if settings_path else {}
    return SettingsConfig.model_validate(apply_env_overrides(raw))


def resolve_api_key(settings: SettingsConfig) -> Optional[str]:
    """API key for the configured completion endpoint, if one is set."""
    load_dotenv()
    return os.getenv(settings.llm.api_key_env) or None
