"""
Tests for model-backed executors.

Tests ClaudeCLIExecutor and AnthropicAPIExecutor implementing CapabilityExecutor.
"""

import subprocess
import pytest
from unittest.mock import patch, MagicMock

from swarmflow.backends.base import CapabilityExecutor, TaskPrompt, WorkerContext
from swarmflow.backends.llm import (
    AnthropicAPIExecutor,
    ClaudeCLIExecutor,
    ExecutorBackendError,
)
from swarmflow.errors import CapabilityExecutionError


WORKER = WorkerContext(role="Analyst", goal="Analyze data", backstory="Ten years in finance")


def _prompt(**kwargs) -> TaskPrompt:
    return TaskPrompt(description="Summarize Q3", expected_output="Three bullets", **kwargs)


class TestClaudeCLIExecutor:
    """Tests for ClaudeCLIExecutor."""

    def test_implements_executor(self):
        assert isinstance(ClaudeCLIExecutor(), CapabilityExecutor)

    def test_defaults(self):
        executor = ClaudeCLIExecutor()
        assert executor.timeout == 120
        assert executor.cli_tool == "claude"
        assert executor.model is None

    @patch("swarmflow.backends.llm.subprocess.run")
    def test_calls_claude_cli(self, mock_run):
        """execute() calls claude CLI with correct arguments."""
        mock_run.return_value = MagicMock(returncode=0, stdout="  Revenue up  \n", stderr="")

        result = ClaudeCLIExecutor(timeout=30).execute(WORKER, _prompt())

        assert result == "Revenue up"
        cmd = mock_run.call_args[0][0]
        assert cmd[0] == "claude"
        assert "-p" in cmd
        assert "--output-format" in cmd
        assert "text" in cmd
        assert mock_run.call_args[1]["timeout"] == 30

    @patch("swarmflow.backends.llm.subprocess.run")
    def test_prompt_contains_worker_and_task(self, mock_run):
        mock_run.return_value = MagicMock(returncode=0, stdout="ok", stderr="")

        ClaudeCLIExecutor().execute(WORKER, _prompt())

        cmd = mock_run.call_args[0][0]
        prompt = cmd[cmd.index("-p") + 1]
        assert "You are Analyst." in prompt
        assert "Task: Summarize Q3" in prompt
        assert "Expected Output: Three bullets" in prompt

    @patch("swarmflow.backends.llm.subprocess.run")
    def test_time_hint_overrides_timeout(self, mock_run):
        mock_run.return_value = MagicMock(returncode=0, stdout="ok", stderr="")

        ClaudeCLIExecutor(timeout=120).execute(WORKER, _prompt(max_execution_time=7))

        assert mock_run.call_args[1]["timeout"] == 7

    @patch("swarmflow.backends.llm.subprocess.run")
    def test_model_flag(self, mock_run):
        mock_run.return_value = MagicMock(returncode=0, stdout="ok", stderr="")

        ClaudeCLIExecutor(model="claude-opus-4-20250514").execute(WORKER, _prompt())

        cmd = mock_run.call_args[0][0]
        assert cmd[cmd.index("--model") + 1] == "claude-opus-4-20250514"

    @patch("swarmflow.backends.llm.subprocess.run")
    def test_opencode_does_not_use_output_format(self, mock_run):
        mock_run.return_value = MagicMock(returncode=0, stdout="ok", stderr="")

        ClaudeCLIExecutor(cli_tool="opencode").execute(WORKER, _prompt())

        cmd = mock_run.call_args[0][0]
        assert cmd[0] == "opencode"
        assert "--output-format" not in cmd

    @patch("swarmflow.backends.llm.subprocess.run")
    def test_raises_on_cli_not_found(self, mock_run):
        mock_run.side_effect = FileNotFoundError()

        with pytest.raises(ExecutorBackendError) as exc_info:
            ClaudeCLIExecutor().execute(WORKER, _prompt())

        assert "CLI not found" in str(exc_info.value)

    @patch("swarmflow.backends.llm.subprocess.run")
    def test_raises_on_timeout(self, mock_run):
        mock_run.side_effect = subprocess.TimeoutExpired(cmd="claude", timeout=120)

        with pytest.raises(ExecutorBackendError) as exc_info:
            ClaudeCLIExecutor().execute(WORKER, _prompt())

        assert "timed out" in str(exc_info.value)

    @patch("swarmflow.backends.llm.subprocess.run")
    def test_raises_on_cli_error(self, mock_run):
        mock_run.return_value = MagicMock(returncode=1, stdout="", stderr="Some error occurred")

        with pytest.raises(ExecutorBackendError) as exc_info:
            ClaudeCLIExecutor(cli_tool="opencode").execute(WORKER, _prompt())

        assert "opencode CLI failed" in str(exc_info.value)
        assert "Some error occurred" in str(exc_info.value)


class TestAnthropicAPIExecutor:
    """Tests for AnthropicAPIExecutor."""

    def test_defaults(self):
        executor = AnthropicAPIExecutor()
        assert executor.model == "claude-sonnet-4-20250514"
        assert executor.max_tokens == 4096

    @patch("swarmflow.backends.llm.Anthropic")
    def test_calls_api(self, mock_anthropic_class):
        mock_client = MagicMock()
        mock_anthropic_class.return_value = mock_client
        mock_client.messages.create.return_value = MagicMock(
            content=[MagicMock(type="text", text="Revenue grew 8%")]
        )

        result = AnthropicAPIExecutor().execute(WORKER, _prompt())

        assert result == "Revenue grew 8%"
        call_kwargs = mock_client.messages.create.call_args[1]
        assert call_kwargs["model"] == "claude-sonnet-4-20250514"
        assert call_kwargs["max_tokens"] == 4096
        assert "Analyst" in call_kwargs["system"]
        assert "Task: Summarize Q3" in call_kwargs["messages"][0]["content"]
        assert "timeout" not in call_kwargs

    @patch("swarmflow.backends.llm.Anthropic")
    def test_time_hint_sets_request_timeout(self, mock_anthropic_class):
        mock_client = MagicMock()
        mock_anthropic_class.return_value = mock_client
        mock_client.messages.create.return_value = MagicMock(content=[MagicMock(type="text", text="ok")])

        AnthropicAPIExecutor().execute(WORKER, _prompt(max_execution_time=15))

        assert mock_client.messages.create.call_args[1]["timeout"] == 15

    @patch("swarmflow.backends.llm.Anthropic")
    def test_client_is_reused(self, mock_anthropic_class):
        mock_client = MagicMock()
        mock_anthropic_class.return_value = mock_client
        mock_client.messages.create.return_value = MagicMock(content=[MagicMock(type="text", text="ok")])

        executor = AnthropicAPIExecutor()
        executor.execute(WORKER, _prompt())
        executor.execute(WORKER, _prompt())

        mock_anthropic_class.assert_called_once()

    @patch("swarmflow.backends.llm.Anthropic")
    def test_no_text_content(self, mock_anthropic_class):
        mock_client = MagicMock()
        mock_anthropic_class.return_value = mock_client
        mock_client.messages.create.return_value = MagicMock(content=[MagicMock(type="tool_use")])

        with pytest.raises(ExecutorBackendError):
            AnthropicAPIExecutor().execute(WORKER, _prompt())


class TestExecutorBackendError:
    """Tests for ExecutorBackendError."""

    def test_is_capability_error(self):
        assert issubclass(ExecutorBackendError, CapabilityExecutionError)

    def test_can_be_raised_with_message(self):
        with pytest.raises(ExecutorBackendError) as exc_info:
            raise ExecutorBackendError("Test error message")

        assert str(exc_info.value) == "Test error message"
