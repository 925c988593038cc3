"""Tests for winston.config."""

from __future__ import annotations

from pathlib import Path

import pytest

from winston.config import (
    DEFAULT_BASE_URL,
    DEFAULT_MAX_TOKENS,
    DEFAULT_MODEL,
    DEFAULT_REQUEST_TIMEOUT,
    ConfigError,
    WinstonConfig,
    load_config,
)


def test_load_config_returns_defaults_when_missing(tmp_path: Path) -> None:
    config = load_config(tmp_path, environ={})

    assert isinstance(config, WinstonConfig)
    assert config.root == tmp_path.resolve()
    assert config.output_dir == tmp_path.resolve() / "output"
    assert config.workdir == tmp_path.resolve() / "temp_repos"
    assert config.failure_policy == "abort"
    assert config.stages == []
    assert config.log_file is None
    assert config.log_levels == {}
    assert config.llm.model == DEFAULT_MODEL
    assert config.llm.base_url == DEFAULT_BASE_URL
    assert config.llm.max_tokens == DEFAULT_MAX_TOKENS
    assert config.llm.request_timeout == DEFAULT_REQUEST_TIMEOUT
    assert config.llm.api_key is None
    assert not config.llm.has_credentials


def test_load_config_parses_expected_fields(tmp_path: Path) -> None:
    config_file = tmp_path / ".winston.yml"
    config_file.write_text(
        """
llm:
  model: "claude-test"
  api_key: "file-key"
  base_url: "http://localhost:9000/v1/"
  max_tokens: 256
  temperature: 0.2
  request_timeout: 60
output_dir: reports
workdir: /var/tmp/winston
failure_policy: Continue
stages: [Diagram, static]
""",
        encoding="utf-8",
    )

    config = load_config(tmp_path, environ={"ANTHROPIC_API_KEY": "env-key"})

    assert config.llm.model == "claude-test"
    assert config.llm.api_key == "file-key"
    assert config.llm.base_url == "http://localhost:9000/v1"
    assert config.llm.max_tokens == 256
    assert config.llm.temperature == 0.2
    assert config.llm.request_timeout == 60.0
    assert config.output_dir == tmp_path.resolve() / "reports"
    assert config.workdir == Path("/var/tmp/winston")
    assert config.failure_policy == "continue"
    assert config.stages == ["diagram", "static"]


def test_environment_fills_missing_llm_values(tmp_path: Path) -> None:
    config = load_config(
        tmp_path,
        environ={
            "WINSTON_API_KEY": "winston-key",
            "WINSTON_LLM_MODEL": "env-model",
            "WINSTON_LLM_BASE_URL": "https://proxy.example/v1",
        },
    )

    assert config.llm.api_key == "winston-key"
    assert config.llm.model == "env-model"
    assert config.llm.base_url == "https://proxy.example/v1"
    assert config.llm.has_credentials


def test_anthropic_key_takes_priority_over_winston_key(tmp_path: Path) -> None:
    config = load_config(tmp_path, environ={"ANTHROPIC_API_KEY": "a", "WINSTON_API_KEY": "w"})

    assert config.llm.api_key == "a"


def test_explicit_config_file_path(tmp_path: Path) -> None:
    config_file = tmp_path / "custom.yml"
    config_file.write_text("output_dir: out\n", encoding="utf-8")

    config = load_config(config_file, environ={})

    assert config.output_dir == tmp_path.resolve() / "out"


def test_empty_config_file_uses_defaults(tmp_path: Path) -> None:
    (tmp_path / ".winston.yml").write_text("\n", encoding="utf-8")

    assert load_config(tmp_path, environ={}).failure_policy == "abort"


def test_invalid_yaml_raises(tmp_path: Path) -> None:
    (tmp_path / ".winston.yml").write_text("llm: [unclosed\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(tmp_path, environ={})


def test_non_mapping_root_raises(tmp_path: Path) -> None:
    (tmp_path / ".winston.yml").write_text("- just\n- a list\n", encoding="utf-8")

    with pytest.raises(ConfigError, match="mapping"):
        load_config(tmp_path, environ={})


def test_unknown_failure_policy_raises(tmp_path: Path) -> None:
    (tmp_path / ".winston.yml").write_text("failure_policy: retry\n", encoding="utf-8")

    with pytest.raises(ConfigError, match="failure_policy"):
        load_config(tmp_path, environ={})


def test_logging_section_sets_file_and_component_levels(tmp_path: Path) -> None:
    (tmp_path / ".winston.yml").write_text(
        "logging:\n  file: logs/winston.log\n  levels:\n    fetch.git: debug\n    llm: Warning\n",
        encoding="utf-8",
    )

    config = load_config(tmp_path, environ={})

    assert config.log_file == tmp_path.resolve() / "logs" / "winston.log"
    assert config.log_levels == {"fetch.git": "DEBUG", "llm": "WARNING"}


def test_unknown_logging_level_raises(tmp_path: Path) -> None:
    (tmp_path / ".winston.yml").write_text("logging:\n  levels:\n    llm: chatty\n", encoding="utf-8")

    with pytest.raises(ConfigError, match="llm"):
        load_config(tmp_path, environ={})
