"""
Configuration system for swarmflow.

Provides SwarmConfig dataclass for executor and strategy selection and
load_config function for loading configuration from .swarm/config.json.
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .backends import (
    AnthropicAPIExecutor,
    CapabilityExecutor,
    ClaudeCLIExecutor,
    EchoExecutor,
)


DEFAULT_CONFIG_PATH = Path(".swarm/config.json")

# Executor registry: centralized definitions with descriptions for help text
EXECUTORS = {
    "claude": "Uses Claude Code CLI (claude -p) for every agent (default)",
    "opencode": "Uses OpenCode CLI (opencode -p) for every agent",
    "anthropic-api": "Uses Anthropic API directly - requires ANTHROPIC_API_KEY env var",
    "echo": "Deterministic offline responses, useful for dry runs and tests",
}

PROCESSES = {
    "sequential": "Tasks run one after another in dependency order (default)",
    "hierarchical": "A manager agent coordinates, delegates and synthesizes",
}


def format_choices_help(choices: dict[str, str], intro: str = "") -> str:
    """Format help text for a registry with all options described."""
    lines = [intro] if intro else []
    for name, desc in choices.items():
        lines.append(f"  {name}: {desc}")
    return "\n".join(lines)


@dataclass
class SwarmConfig:
    """
    Configuration for swarmflow runs.

    Attributes:
        executor: Capability executor used by every agent
                  ("claude", "opencode", "anthropic-api" or "echo")
        llm_model: Model to use (default: claude-sonnet-4-20250514)
        llm_timeout: Default timeout for executor calls in seconds (default: 120)
        process: Default strategy for workflows that name none
        synthesis_char_limit: Per-output cut-off in the manager's final synthesis
        max_rpm: Requests-per-minute hint passed along with the swarm
        verbose: Stream lifecycle events to the console
    """

    executor: str = "claude"
    llm_model: str = "claude-sonnet-4-20250514"
    llm_timeout: int = 120
    process: str = "sequential"
    synthesis_char_limit: int = 3000
    max_rpm: int | None = None
    verbose: bool = True

    def __post_init__(self):
        """Validate configuration values."""
        if self.executor not in EXECUTORS:
            raise ValueError(
                f"Invalid executor: {self.executor}. "
                f"Valid options: {set(EXECUTORS)}"
            )
        if self.process not in PROCESSES:
            raise ValueError(
                f"Invalid process: {self.process}. "
                f"Valid options: {set(PROCESSES)}"
            )
        if self.llm_timeout <= 0:
            raise ValueError(f"Invalid llm_timeout: {self.llm_timeout}. Must be positive")
        if self.synthesis_char_limit < 100:
            raise ValueError(
                f"Invalid synthesis_char_limit: {self.synthesis_char_limit}. "
                f"Must be at least 100"
            )
        if self.max_rpm is not None and self.max_rpm <= 0:
            raise ValueError(f"Invalid max_rpm: {self.max_rpm}. Must be positive")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SwarmConfig":
        """Create SwarmConfig from a dictionary."""
        return cls(
            executor=data.get("executor", "claude"),
            llm_model=data.get("llm_model", "claude-sonnet-4-20250514"),
            llm_timeout=data.get("llm_timeout", 120),
            process=data.get("process", "sequential"),
            synthesis_char_limit=data.get("synthesis_char_limit", 3000),
            max_rpm=data.get("max_rpm"),
            verbose=data.get("verbose", True),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "executor": self.executor,
            "llm_model": self.llm_model,
            "llm_timeout": self.llm_timeout,
            "process": self.process,
            "synthesis_char_limit": self.synthesis_char_limit,
            "max_rpm": self.max_rpm,
            "verbose": self.verbose,
        }


def create_executor(config: SwarmConfig) -> CapabilityExecutor:
    """Create the capability executor named by the config."""
    if config.executor in ("claude", "opencode"):
        return ClaudeCLIExecutor(
            timeout=config.llm_timeout,
            cli_tool=config.executor,
            model=config.llm_model,
        )
    if config.executor == "anthropic-api":
        return AnthropicAPIExecutor(model=config.llm_model)
    if config.executor == "echo":
        return EchoExecutor()
    raise ValueError(f"Unknown executor: {config.executor}")


def load_config(config_path: str | Path | None = None) -> SwarmConfig:
    """
    Load configuration from file or return defaults.

    Args:
        config_path: Path to config file. If None, looks for .swarm/config.json

    Returns:
        SwarmConfig with loaded or default values
    """
    config_path = DEFAULT_CONFIG_PATH if config_path is None else Path(config_path)

    if not config_path.exists():
        return SwarmConfig()

    try:
        data = json.loads(config_path.read_text())
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid config file {config_path}: {e}") from e
    if not isinstance(data, dict):
        raise ValueError(f"Invalid config file {config_path}: expected a JSON object")
    return SwarmConfig.from_dict(data)


def save_config(config: SwarmConfig, config_path: str | Path | None = None) -> Path:
    """
    Save configuration to file.

    Args:
        config: SwarmConfig to save
        config_path: Path to config file. If None, saves to .swarm/config.json

    Returns:
        Path the config was written to
    """
    config_path = DEFAULT_CONFIG_PATH if config_path is None else Path(config_path)
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(json.dumps(config.to_dict(), indent=2))
    return config_path
