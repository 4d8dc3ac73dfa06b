"""
Abstract base class for pluggable capability executors.

An executor is the opaque "do the work" step of a worker: it receives the
worker's identity and the task prompt and returns text. swarmflow never looks
inside; it only sequences calls and collects the text.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from ..output import TaskOutput


@dataclass(frozen=True)
class WorkerContext:
    """
    Backend-agnostic description of the worker performing a task.

    Attributes:
        role: The worker's role ("Research Analyst")
        goal: What the worker is trying to achieve
        backstory: Free-form background for the worker
        capabilities: Names of the capabilities (tools) the worker holds
        knowledge: Relevant text looked up from the worker's knowledge store
    """

    role: str
    goal: str
    backstory: str
    capabilities: tuple[str, ...] = ()
    knowledge: str = ""


@dataclass(frozen=True)
class TaskPrompt:
    """
    Backend-agnostic description of the work requested.

    Attributes:
        description: What to do
        expected_output: What the answer should look like
        context_outputs: Outputs of earlier tasks made available to this one
        max_execution_time: Optional time hint in seconds; executors may
            enforce it, the orchestrator does not
    """

    description: str
    expected_output: str = ""
    context_outputs: tuple[TaskOutput, ...] = field(default_factory=tuple)
    max_execution_time: int | None = None


class CapabilityExecutor(ABC):
    """
    Abstract interface for the completion engine behind a worker.

    Implementations raise CapabilityExecutionError (or a subclass) when the
    provider fails. They must not retry on their own behalf unless that is
    their documented policy.

    Example implementations:
    - ClaudeCLIExecutor: Uses the claude CLI (Max/Pro subscription)
    - AnthropicAPIExecutor: Uses the Anthropic API directly
    - EchoExecutor: Deterministic offline responses
    """

    @abstractmethod
    def execute(self, worker: WorkerContext, prompt: TaskPrompt) -> str:
        """
        Perform a task on behalf of a worker.

        Args:
            worker: Who is doing the work
            prompt: What is being asked, with prior outputs as context

        Returns:
            The worker's response text
        """
        ...


def render_prompt(worker: WorkerContext, prompt: TaskPrompt) -> str:
    """Render a worker and task into a single plain-text prompt."""
    lines = [
        f"You are {worker.role}.",
        f"Your goal is: {worker.goal}",
        f"Your backstory: {worker.backstory}",
        "",
    ]

    if prompt.context_outputs:
        lines.append("Context from previous tasks:")
        for ctx in prompt.context_outputs:
            lines.append(f"- {ctx.summary}")
        lines.append("")

    if worker.knowledge:
        lines.append("Relevant knowledge:")
        lines.append(worker.knowledge)
        lines.append("")

    lines.append(f"Task: {prompt.description}")
    if prompt.expected_output:
        lines.append(f"Expected Output: {prompt.expected_output}")

    return "\n".join(lines) + "\n"
