"""
Capability executors backed by a language model.

Provides ClaudeCLIExecutor (using a CLI tool) and AnthropicAPIExecutor
(using the API).
"""

import subprocess

from anthropic import Anthropic, APIError, AuthenticationError

from ..errors import CapabilityExecutionError
from .base import CapabilityExecutor, TaskPrompt, WorkerContext, render_prompt


class ExecutorBackendError(CapabilityExecutionError):
    """Raised when an executor backend cannot complete a call."""


class ClaudeCLIExecutor(CapabilityExecutor):
    """
    Executor using CLI tools (claude or opencode).

    Uses your existing Claude Code authentication (Max/Pro subscription).
    No API key needed.
    """

    def __init__(self, timeout: int = 120, cli_tool: str = "claude", model: str | None = None):
        """
        Initialize the CLI executor.

        Args:
            timeout: Timeout in seconds for CLI calls (default: 120). A task's
                     max_execution_time hint takes precedence when present.
            cli_tool: CLI tool to use ("claude" or "opencode")
            model: Optional model name passed to the claude CLI
        """
        self.timeout = timeout
        self.cli_tool = cli_tool
        self.model = model

    def execute(self, worker: WorkerContext, prompt: TaskPrompt) -> str:
        timeout = prompt.max_execution_time or self.timeout
        return self._call_cli(render_prompt(worker, prompt), timeout)

    def _build_command(self, prompt: str) -> list[str]:
        """Build CLI command based on configured tool."""
        if self.cli_tool == "opencode":
            return ["opencode", "-p", prompt]
        cmd = ["claude", "-p", prompt, "--output-format", "text"]
        if self.model:
            cmd.extend(["--model", self.model])
        return cmd

    def _call_cli(self, prompt: str, timeout: int) -> str:
        cmd = self._build_command(prompt)
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=timeout,
            )
        except FileNotFoundError:
            raise ExecutorBackendError(
                f"{self.cli_tool} CLI not found. Install the required CLI tool."
            )
        except subprocess.TimeoutExpired:
            raise ExecutorBackendError(f"{self.cli_tool} CLI timed out after {timeout} seconds")

        if result.returncode != 0:
            raise ExecutorBackendError(f"{self.cli_tool} CLI failed: {result.stderr or 'Unknown error'}")
        return result.stdout.strip()


class AnthropicAPIExecutor(CapabilityExecutor):
    """
    Executor using the Anthropic API directly.

    Requires ANTHROPIC_API_KEY environment variable.
    """

    def __init__(self, model: str = "claude-sonnet-4-20250514", max_tokens: int = 4096):
        """
        Initialize the API executor.

        Args:
            model: Model to use (default: claude-sonnet-4-20250514)
            max_tokens: Upper bound on response tokens
        """
        self.model = model
        self.max_tokens = max_tokens
        self._client = None

    def _get_client(self) -> Anthropic:
        if self._client is None:
            try:
                self._client = Anthropic()
            except AuthenticationError as e:
                raise ExecutorBackendError(f"Anthropic API key missing or invalid: {e}")
        return self._client

    def execute(self, worker: WorkerContext, prompt: TaskPrompt) -> str:
        client = self._get_client()
        request = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "system": f"You are {worker.role}. {worker.goal}",
            "messages": [{"role": "user", "content": render_prompt(worker, prompt)}],
        }
        if prompt.max_execution_time:
            request["timeout"] = prompt.max_execution_time
        try:
            response = client.messages.create(**request)
        except APIError as e:
            raise ExecutorBackendError(f"Anthropic API call failed: {e}") from e

        texts = [block.text for block in response.content if getattr(block, "type", "text") == "text"]
        if not texts:
            raise ExecutorBackendError("Anthropic API returned no text content")
        return "".join(texts)
