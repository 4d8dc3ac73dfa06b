"""
Tasks: single-use units of work with declared dependencies.

A Task moves PENDING -> RUNNING -> COMPLETED | FAILED | SKIPPED exactly once.
Orchestrators are reusable, so every run executes fresh copies of the
configured tasks (see Task.fresh_copy).
"""

import re
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Optional

from .errors import AlreadyExecutedError, CapabilityExecutionError, ConfigurationError
from .output import TaskOutput

if TYPE_CHECKING:
    from .agent import Agent


_PLACEHOLDER = re.compile(r"\{(\w+)\}")


class TaskStatus(Enum):
    """Lifecycle status of a task."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


def interpolate(text: str, inputs: dict[str, Any] | None) -> str:
    """Replace {name} placeholders whose name is a key of inputs; leave the rest."""
    if not text or not inputs:
        return text

    def _sub(match: re.Match) -> str:
        key = match.group(1)
        return str(inputs[key]) if key in inputs else match.group(0)

    return _PLACEHOLDER.sub(_sub, text)


def join_context(outputs: list[TaskOutput]) -> str:
    """Join the raw text of context outputs the way conditions see it."""
    return " ".join(o.raw for o in outputs if o.raw).strip()


@dataclass(eq=False)
class Task:
    """
    A single unit of work assigned to an agent.

    Attributes:
        description: What to do (required)
        expected_output: What a good answer looks like
        agent: Agent that performs the task; may be None until a
               hierarchical manager delegates it
        id: Unique task id, referenced by other tasks' depends_on
        depends_on: Ids of tasks whose outputs this task needs
        tools: Capabilities required to perform the task
        async_execution: Run on a separate thread when last in sequence
        max_execution_time: Time hint in seconds, forwarded to the executor
        condition: Predicate over the joined context text; False skips the task
        context: Free-form data attached to the task
        output_file: Path the raw output is written to on completion
    """
    description: str
    expected_output: str = ""
    agent: Optional["Agent"] = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    depends_on: list[str] = field(default_factory=list)
    tools: list[str] = field(default_factory=list)
    async_execution: bool = False
    max_execution_time: int | None = None
    condition: Callable[[str], bool] | None = None
    context: dict[str, Any] = field(default_factory=dict)
    output_file: str | None = None

    status: TaskStatus = field(default=TaskStatus.PENDING, init=False)
    output: TaskOutput | None = field(default=None, init=False, repr=False)
    started_at: datetime | None = field(default=None, init=False, repr=False)
    completed_at: datetime | None = field(default=None, init=False, repr=False)
    failure_reason: str | None = field(default=None, init=False, repr=False)

    def __post_init__(self):
        if not self.description or not self.description.strip():
            raise ConfigurationError("Task description cannot be empty")
        if isinstance(self.depends_on, str):
            self.depends_on = [self.depends_on] if self.depends_on else []
        if isinstance(self.tools, str):
            self.tools = [self.tools] if self.tools else []

    @property
    def prompt(self) -> str:
        """Task description and expected output as plain text."""
        text = f"Task: {self.description}\n"
        if self.expected_output:
            text += f"Expected Output: {self.expected_output}\n"
        return text

    def is_ready(self, completed_ids: set[str]) -> bool:
        """True when every declared dependency has completed."""
        return set(self.depends_on) <= set(completed_ids)

    def relevant_context(self, outputs: list[TaskOutput]) -> list[TaskOutput]:
        """
        Select the outputs this task should see.

        With declared dependencies, exactly their outputs; without any, the
        entire history.
        """
        if not self.depends_on:
            return list(outputs)
        wanted = set(self.depends_on)
        return [o for o in outputs if o.task_id in wanted]

    def assign(self, agent: "Agent") -> "Task":
        """Bind an agent to a task that has not started yet."""
        if self.status != TaskStatus.PENDING:
            raise AlreadyExecutedError(self.id)
        self.agent = agent
        return self

    def fresh_copy(self, inputs: dict[str, Any] | None = None) -> "Task":
        """
        Return a PENDING copy of this task for a new run.

        Args:
            inputs: Run inputs substituted into {placeholders} of the
                    description, expected output and output file

        Returns:
            New Task with the same id and configuration
        """
        return replace(
            self,
            description=interpolate(self.description, inputs),
            expected_output=interpolate(self.expected_output, inputs),
            output_file=interpolate(self.output_file, inputs) if self.output_file else None,
            depends_on=list(self.depends_on),
            tools=list(self.tools),
            context=dict(self.context),
        )

    def execute(self, context_outputs: list[TaskOutput]) -> TaskOutput:
        """
        Run the task once.

        Args:
            context_outputs: Outputs made available by the strategy

        Returns:
            The agent's output, or a skip record when the condition is False

        Raises:
            AlreadyExecutedError: If the task is not PENDING
            CapabilityExecutionError: If no agent is assigned or the agent fails
        """
        if self.status != TaskStatus.PENDING:
            raise AlreadyExecutedError(self.id)

        self.status = TaskStatus.RUNNING
        self.started_at = datetime.now()

        try:
            if self.condition is not None and not self.condition(join_context(context_outputs)):
                return self._finish(
                    TaskStatus.SKIPPED,
                    TaskOutput.skipped(
                        task_id=self.id,
                        agent_id=self.agent.id if self.agent else None,
                        description=self.description,
                    ),
                )

            if self.agent is None:
                raise CapabilityExecutionError(
                    f"Agent is required for task execution: {self.id}",
                    task_id=self.id,
                )

            result = self.agent.execute_task(self, self.relevant_context(context_outputs))
            if self.output_file:
                self._save_output(result)
        except Exception as e:
            self.status = TaskStatus.FAILED
            self.failure_reason = str(e)
            self.completed_at = datetime.now()
            if isinstance(e, CapabilityExecutionError):
                raise
            raise CapabilityExecutionError(
                f"Task execution failed: {self.id}: {e}",
                task_id=self.id,
                agent_id=self.agent.id if self.agent else None,
            ) from e

        return self._finish(TaskStatus.COMPLETED, result)

    def _save_output(self, output: TaskOutput) -> None:
        path = Path(self.output_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(output.raw)

    def _finish(self, status: TaskStatus, output: TaskOutput) -> TaskOutput:
        self.output = output
        self.status = status
        self.completed_at = datetime.now()
        return output
