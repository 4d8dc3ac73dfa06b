"""
Tests for the configuration system.

Tests SwarmConfig dataclass, load_config, save_config and create_executor.
"""

import json
import pytest
from pathlib import Path

from swarmflow.backends import AnthropicAPIExecutor, ClaudeCLIExecutor, EchoExecutor
from swarmflow.config import (
    EXECUTORS,
    PROCESSES,
    SwarmConfig,
    create_executor,
    format_choices_help,
    load_config,
    save_config,
)


class TestSwarmConfig:
    """Tests for SwarmConfig dataclass."""

    def test_default_values(self):
        """Default config uses the claude CLI and the sequential process."""
        config = SwarmConfig()

        assert config.executor == "claude"
        assert config.llm_model == "claude-sonnet-4-20250514"
        assert config.llm_timeout == 120
        assert config.process == "sequential"
        assert config.synthesis_char_limit == 3000
        assert config.max_rpm is None
        assert config.verbose is True

    def test_invalid_executor(self):
        """Invalid executor raises ValueError."""
        with pytest.raises(ValueError) as exc_info:
            SwarmConfig(executor="invalid")

        assert "executor" in str(exc_info.value)
        assert "invalid" in str(exc_info.value)

    def test_invalid_process(self):
        with pytest.raises(ValueError) as exc_info:
            SwarmConfig(process="parallel")

        assert "process" in str(exc_info.value)

    @pytest.mark.parametrize("kwargs", [
        {"llm_timeout": 0},
        {"synthesis_char_limit": 99},
        {"max_rpm": 0},
    ])
    def test_invalid_numbers(self, kwargs):
        with pytest.raises(ValueError):
            SwarmConfig(**kwargs)

    def test_from_dict(self):
        """SwarmConfig.from_dict creates config from dictionary."""
        data = {
            "executor": "anthropic-api",
            "llm_model": "claude-opus-4-20250514",
            "llm_timeout": 180,
            "process": "hierarchical",
            "synthesis_char_limit": 500,
            "max_rpm": 30,
            "verbose": False,
        }

        config = SwarmConfig.from_dict(data)

        assert config.to_dict() == data

    def test_from_dict_with_defaults(self):
        """SwarmConfig.from_dict uses defaults for missing keys."""
        config = SwarmConfig.from_dict({"executor": "echo"})

        assert config.executor == "echo"
        assert config.process == "sequential"
        assert config.llm_timeout == 120


class TestLoadSaveConfig:
    """Tests for load_config and save_config."""

    def test_missing_file_returns_defaults(self, tmp_path):
        assert load_config(tmp_path / "nope.json") == SwarmConfig()

    def test_round_trip(self, tmp_path):
        path = tmp_path / ".swarm" / "config.json"
        config = SwarmConfig(executor="echo", process="hierarchical")

        written = save_config(config, path)

        assert written == path
        assert json.loads(path.read_text())["executor"] == "echo"
        assert load_config(path) == config

    def test_malformed_json(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("{not json")

        with pytest.raises(ValueError) as exc_info:
            load_config(path)

        assert "Invalid config file" in str(exc_info.value)

    def test_non_object_json(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("[1, 2]")

        with pytest.raises(ValueError):
            load_config(path)

    def test_default_path(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        save_config(SwarmConfig(executor="echo"))

        assert Path(".swarm/config.json").exists()
        assert load_config().executor == "echo"


class TestCreateExecutor:
    """Tests for create_executor."""

    def test_claude(self):
        executor = create_executor(SwarmConfig(executor="claude", llm_timeout=60))
        assert isinstance(executor, ClaudeCLIExecutor)
        assert executor.cli_tool == "claude"
        assert executor.timeout == 60

    def test_opencode(self):
        executor = create_executor(SwarmConfig(executor="opencode"))
        assert isinstance(executor, ClaudeCLIExecutor)
        assert executor.cli_tool == "opencode"

    def test_anthropic_api(self):
        executor = create_executor(SwarmConfig(executor="anthropic-api", llm_model="m"))
        assert isinstance(executor, AnthropicAPIExecutor)
        assert executor.model == "m"

    def test_echo(self):
        assert isinstance(create_executor(SwarmConfig(executor="echo")), EchoExecutor)


def test_format_choices_help():
    text = format_choices_help(EXECUTORS, "Executors:")
    assert text.splitlines()[0] == "Executors:"
    assert all(f"  {name}:" in text for name in EXECUTORS)
    assert set(PROCESSES) == {"sequential", "hierarchical"}
