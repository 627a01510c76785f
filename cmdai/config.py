"""Configuration loading.

Settings come from three layers, later layers overriding earlier ones:

1. Built-in defaults (:data:`DEFAULT_CONFIG`).
2. ``~/.cmdai/config.yaml``, written by ``cmdai configure``.  A
   missing or malformed file is ignored.
3. Environment variables such as ``CMDAI_PROVIDERS`` or
   ``AZURE_OPENAI_API_KEY``.  A ``.env`` file in the home directory
   (or, failing that, the current directory) is loaded into the
   environment first.

The result is an :class:`AIConfig` consumed by the rest of the
package.  ``confidence_threshold`` is carried for future gating of
learned examples and is not enforced anywhere yet.
"""

from __future__ import annotations

import copy
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Raised when a configuration value has the wrong type."""


DEFAULT_CONFIG: Dict[str, Any] = {
    "ai": {
        "enabled": True,
        "providers": ["ollama"],
        "timeout_seconds": 30,
        "fallback_to_patterns": True,
        "confidence_threshold": 0.7,
    },
    "ollama": {
        "endpoint": "http://localhost:11434",
        "model": "codellama:7b",
    },
    "azure_openai": {
        "endpoint": None,
        "api_key": None,
        "model": "model-router",
    },
    "learning": {
        "enabled": True,
        "path": None,
        "capacity": 1000,
    },
}

# Environment variable -> (section, key, type)
ENV_OVERRIDES = {
    "CMDAI_ENABLE_AI": ("ai", "enabled", bool),
    "CMDAI_PROVIDERS": ("ai", "providers", list),
    "CMDAI_TIMEOUT_SECONDS": ("ai", "timeout_seconds", float),
    "CMDAI_FALLBACK_TO_PATTERNS": ("ai", "fallback_to_patterns", bool),
    "CMDAI_CONFIDENCE_THRESHOLD": ("ai", "confidence_threshold", float),
    "CMDAI_MODEL_NAME": ("ollama", "model", str),
    "OLLAMA_ENDPOINT": ("ollama", "endpoint", str),
    "AZURE_OPENAI_ENDPOINT": ("azure_openai", "endpoint", str),
    "AZURE_OPENAI_API_KEY": ("azure_openai", "api_key", str),
    "AZURE_OPENAI_MODEL_NAME": ("azure_openai", "model", str),
    "CMDAI_ENABLE_LEARNING": ("learning", "enabled", bool),
    "CMDAI_LEARNING_PATH": ("learning", "path", str),
}

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def config_dir() -> Path:
    """Return the user's configuration directory (``~/.cmdai``)."""
    return Path.home() / ".cmdai"


def config_file() -> Path:
    return config_dir() / "config.yaml"


@dataclass
class AIConfig:
    enable_ai: bool = True
    providers: List[str] = field(default_factory=lambda: ["ollama"])
    model_name: str = "codellama:7b"
    ollama_endpoint: str = "http://localhost:11434"
    azure_openai_endpoint: Optional[str] = None
    azure_openai_api_key: Optional[str] = None
    azure_openai_model_name: str = "model-router"
    timeout_seconds: float = 30
    fallback_to_patterns: bool = True
    enable_learning: bool = True
    confidence_threshold: float = 0.7
    learning_path: Optional[Path] = None
    learning_capacity: int = 1000

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AIConfig":
        """Build a config from the nested dictionary layout of config.yaml.

        :raises ConfigError: When a section is not a mapping or a value
          cannot be converted.
        """
        merged = _merge_sections(data)
        ai = merged["ai"]
        ollama = merged["ollama"]
        azure = merged["azure_openai"]
        learning = merged["learning"]
        providers = ai.get("providers") or []
        if isinstance(providers, str):
            providers = _split_list(providers)
        if not isinstance(providers, list):
            raise ConfigError("ai.providers must be a list of provider names")
        try:
            return cls(
                enable_ai=_to_bool(ai["enabled"]),
                providers=[str(p) for p in providers],
                model_name=str(ollama["model"]),
                ollama_endpoint=str(ollama["endpoint"]),
                azure_openai_endpoint=azure.get("endpoint") or None,
                azure_openai_api_key=azure.get("api_key") or None,
                azure_openai_model_name=str(azure.get("model") or "model-router"),
                timeout_seconds=float(ai["timeout_seconds"]),
                fallback_to_patterns=_to_bool(ai["fallback_to_patterns"]),
                enable_learning=_to_bool(learning["enabled"]),
                confidence_threshold=float(ai["confidence_threshold"]),
                learning_path=Path(learning["path"]).expanduser() if learning.get("path") else None,
                learning_capacity=int(learning["capacity"]),
            )
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"Invalid configuration value: {exc}") from exc

    def resolved_learning_path(self) -> Path:
        return self.learning_path or config_dir() / "learning.json"


def _merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    result = copy.deepcopy(dict(base))
    for key, value in override.items():
        if value is None and isinstance(result.get(key), dict):
            continue
        if isinstance(value, Mapping) and isinstance(result.get(key), dict):
            result[key] = _merge(result[key], value)
        else:
            result[key] = value
    return result


def _merge_sections(data: Mapping[str, Any]) -> Dict[str, Any]:
    """Overlay ``data`` on the defaults, checking each section is a mapping."""
    merged = _merge(DEFAULT_CONFIG, data)
    for section in DEFAULT_CONFIG:
        if not isinstance(merged[section], dict):
            raise ConfigError(f"'{section}' section must be a mapping, got {merged[section]!r}")
    return merged


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ConfigError(f"Expected a boolean, got {value!r}")


def _split_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def load_dotenv_files() -> None:
    """Load ``~/.env``, or ``./.env`` when the former does not exist."""
    home_env = Path.home() / ".env"
    cwd_env = Path.cwd() / ".env"
    if home_env.is_file():
        load_dotenv(home_env)
    elif cwd_env.is_file():
        load_dotenv(cwd_env)


def load_config_file(path: Optional[Path] = None) -> Dict[str, Any]:
    """Load YAML configuration, returning an empty mapping if missing or malformed."""
    cfg_path = path or config_file()
    if cfg_path.exists():
        try:
            with cfg_path.open("r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
            if isinstance(data, dict):
                return data
            logger.warning("Ignoring %s: expected a mapping at the top level", cfg_path)
        except (OSError, yaml.YAMLError) as exc:
            logger.warning("Ignoring unreadable config file %s: %s", cfg_path, exc)
    return {}


def apply_env_overrides(data: Mapping[str, Any], environ: Mapping[str, str]) -> Dict[str, Any]:
    result = _merge_sections(data)
    for var, (section, key, kind) in ENV_OVERRIDES.items():
        raw = environ.get(var)
        if raw is None or raw == "":
            continue
        if kind is list:
            value: Any = _split_list(raw)
        elif kind is bool:
            value = _to_bool(raw)
        else:
            value = raw
        result[section][key] = value
    return result


def load_config(
    path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
    use_dotenv: bool = True,
) -> AIConfig:
    """Load the effective configuration.

    :param path: Config file to read instead of ``~/.cmdai/config.yaml``.
    :param environ: Environment mapping to read overrides from.  Defaults
      to ``os.environ`` after ``.env`` files have been loaded.
    :param use_dotenv: Whether to load ``.env`` files first.
    """
    if use_dotenv and environ is None:
        load_dotenv_files()
    data = load_config_file(path)
    data = apply_env_overrides(data, os.environ if environ is None else environ)
    return AIConfig.from_dict(data)


def save_config(data: Mapping[str, Any], path: Optional[Path] = None) -> Path:
    """Persist configuration to disk and return the file written."""
    cfg_path = path or config_file()
    cfg_path.parent.mkdir(parents=True, exist_ok=True)
    with cfg_path.open("w", encoding="utf-8") as f:
        yaml.safe_dump(dict(data), f, default_flow_style=False, sort_keys=False)
    return cfg_path
