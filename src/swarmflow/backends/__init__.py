"""
Capability executors for swarmflow.

This package defines the abstract executor contract every worker calls:
- CapabilityExecutor: opaque "do the work" step (worker + prompt -> text)

Concrete implementations:
- ClaudeCLIExecutor: claude/opencode CLI
- AnthropicAPIExecutor: Anthropic API
- EchoExecutor: deterministic offline responses
"""

from .base import (
    CapabilityExecutor,
    WorkerContext,
    TaskPrompt,
    render_prompt,
)
from .echo import EchoExecutor
from .llm import (
    ClaudeCLIExecutor,
    AnthropicAPIExecutor,
    ExecutorBackendError,
)

__all__ = [
    # Abstract interface
    "CapabilityExecutor",
    # Data models
    "WorkerContext",
    "TaskPrompt",
    "render_prompt",
    # Implementations
    "EchoExecutor",
    "ClaudeCLIExecutor",
    "AnthropicAPIExecutor",
    "ExecutorBackendError",
]
