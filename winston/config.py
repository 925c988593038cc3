"""Configuration loading for winston (.winston.yml + environment)."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

import yaml

CONFIG_FILENAME = ".winston.yml"

DEFAULT_MODEL = "claude-3-7-sonnet-latest"
DEFAULT_BASE_URL = "https://api.anthropic.com/v1"
DEFAULT_MAX_TOKENS = 4000
DEFAULT_REQUEST_TIMEOUT = 300.0

ENV_API_KEY_KEYS = ("ANTHROPIC_API_KEY", "WINSTON_API_KEY")
ENV_MODEL_KEYS = ("WINSTON_LLM_MODEL",)
ENV_BASE_URL_KEYS = ("WINSTON_LLM_BASE_URL",)

FAILURE_POLICIES = ("abort", "continue")


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class LLMConfig:
    """Language-model settings handed to every LLM-backed stage."""

    model: str = DEFAULT_MODEL
    api_key: Optional[str] = None
    base_url: str = DEFAULT_BASE_URL
    max_tokens: int = DEFAULT_MAX_TOKENS
    temperature: Optional[float] = None
    request_timeout: Optional[float] = DEFAULT_REQUEST_TIMEOUT

    @property
    def has_credentials(self) -> bool:
        return bool(self.api_key)


@dataclass
class WinstonConfig:
    """Represents the settings defined in .winston.yml merged with the environment."""

    root: Path
    llm: LLMConfig = field(default_factory=LLMConfig)
    output_dir: Path = Path("output")
    workdir: Path = Path("temp_repos")
    failure_policy: str = "abort"
    stages: List[str] = field(default_factory=list)
    log_file: Optional[Path] = None
    log_levels: Dict[str, str] = field(default_factory=dict)


def load_config(
    config_path: Path | None = None,
    *,
    environ: Mapping[str, str] | None = None,
) -> WinstonConfig:
    """Load configuration from disk, falling back to environment values and defaults."""
    env = os.environ if environ is None else environ
    config_file = _resolve_config_path(config_path or Path.cwd())
    root = config_file.parent.resolve()

    data: Dict[str, Any] = {}
    if config_file.exists():
        data = _read_config(config_file)

    llm = _build_llm_config(_as_dict(data.get("llm")), env)

    output_dir = _as_path(data.get("output_dir"), root) or root / "output"
    workdir = _as_path(data.get("workdir"), root) or root / "temp_repos"

    logging_data = _as_dict(data.get("logging"))
    log_levels = _build_log_levels(_as_dict(logging_data.get("levels")))

    failure_policy = (_as_str(data.get("failure_policy")) or "abort").lower()
    if failure_policy not in FAILURE_POLICIES:
        raise ConfigError(
            f"failure_policy must be one of {', '.join(FAILURE_POLICIES)}; got '{failure_policy}'"
        )

    return WinstonConfig(
        root=root,
        llm=llm,
        output_dir=output_dir,
        workdir=workdir,
        failure_policy=failure_policy,
        stages=[name.lower() for name in _as_str_list(data.get("stages"))],
        log_file=_as_path(logging_data.get("file"), root),
        log_levels=log_levels,
    )


def _build_llm_config(llm_data: Dict[str, Any], env: Mapping[str, str]) -> LLMConfig:
    model = _as_str(llm_data.get("model")) or _first_env_value(env, ENV_MODEL_KEYS) or DEFAULT_MODEL
    base_url = (
        _as_str(llm_data.get("base_url"))
        or _first_env_value(env, ENV_BASE_URL_KEYS)
        or DEFAULT_BASE_URL
    )
    api_key = _as_str(llm_data.get("api_key")) or _first_env_value(env, ENV_API_KEY_KEYS)

    max_tokens = _as_int(llm_data.get("max_tokens"))
    request_timeout = _as_float(llm_data.get("request_timeout"))

    return LLMConfig(
        model=model,
        api_key=api_key,
        base_url=base_url.rstrip("/"),
        max_tokens=max_tokens if max_tokens is not None else DEFAULT_MAX_TOKENS,
        temperature=_as_float(llm_data.get("temperature")),
        request_timeout=request_timeout if request_timeout is not None else DEFAULT_REQUEST_TIMEOUT,
    )


def _build_log_levels(levels_data: Dict[str, Any]) -> Dict[str, str]:
    levels: Dict[str, str] = {}
    for component, value in levels_data.items():
        name = (_as_str(value) or "").upper()
        if not isinstance(logging.getLevelName(name), int):
            raise ConfigError(f"logging level for '{component}' must be a level name; got '{value}'")
        levels[str(component)] = name
    return levels


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigError(f"{path.name} must contain a mapping at the root")
    return loaded


def _first_env_value(env: Mapping[str, str], keys: Sequence[str]) -> Optional[str]:
    for key in keys:
        value = env.get(key)
        if value:
            return value
    return None


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float)) and not isinstance(value, bool) else None


def _as_path(value: Any, root: Path) -> Optional[Path]:
    text = _as_str(value)
    if not text:
        return None
    path = Path(text).expanduser()
    return path if path.is_absolute() else root / path


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float))]
    return []
