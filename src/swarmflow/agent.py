"""
Agents: named capability holders that perform tasks through an executor.
"""

import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from .backends.base import CapabilityExecutor, TaskPrompt, WorkerContext
from .errors import CapabilityExecutionError, ConfigurationError
from .knowledge import Knowledge
from .memory import Memory
from .output import TaskOutput

if TYPE_CHECKING:
    from .task import Task


@dataclass(eq=False)
class Agent:
    """
    A worker that performs tasks through an opaque capability executor.

    Agents are treated as immutable once built, except for the execution
    counter and the shared memory reference.

    Attributes:
        role: Short role name ("Research Analyst")
        goal: What the agent is trying to achieve
        backstory: Free-form background passed to the executor
        executor: Completion engine that does the actual work
        id: Unique agent id
        tools: Names of the capabilities the agent holds
        allow_delegation: Whether the agent may act as a hierarchical manager
        memory: Optional store the agent writes its responses to
        knowledge: Optional store consulted before each task
        max_execution_time: Default time hint for tasks that set none
        metadata: Free-form data attached to the agent
    """

    role: str
    goal: str
    backstory: str
    executor: CapabilityExecutor
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    tools: list[str] = field(default_factory=list)
    allow_delegation: bool = False
    memory: Memory | None = field(default=None, repr=False)
    knowledge: Knowledge | None = field(default=None, repr=False)
    max_execution_time: int | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    _execution_count: int = field(default=0, init=False, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def __post_init__(self):
        for name in ("role", "goal", "backstory"):
            value = getattr(self, name)
            if not value or not value.strip():
                raise ConfigurationError(f"Agent {name} cannot be empty")
        if self.executor is None:
            raise ConfigurationError(f"Agent {self.role} requires a capability executor")
        if isinstance(self.tools, str):
            self.tools = [self.tools]

    @property
    def execution_count(self) -> int:
        with self._lock:
            return self._execution_count

    @property
    def capabilities(self) -> frozenset[str]:
        """Lower-cased capability names, for matching against task requirements."""
        return frozenset(t.lower() for t in self.tools)

    def share_memory(self, memory: Memory | None) -> None:
        """Point the agent at a (possibly shared) memory store."""
        self.memory = memory

    def worker_context(self, task: "Task") -> WorkerContext:
        """Describe this agent to the executor for a given task."""
        knowledge_text = ""
        if self.knowledge is not None:
            knowledge_text = self.knowledge.query(task.description)
        return WorkerContext(
            role=self.role,
            goal=self.goal,
            backstory=self.backstory,
            capabilities=tuple(self.tools),
            knowledge=knowledge_text,
        )

    def execute_task(self, task: "Task", context: list[TaskOutput]) -> TaskOutput:
        """
        Perform a task and wrap the response in a TaskOutput.

        Args:
            task: Task to perform
            context: Outputs of earlier tasks relevant to this one

        Returns:
            TaskOutput attributed to this agent

        Raises:
            CapabilityExecutionError: If the executor fails or returns no text
        """
        with self._lock:
            self._execution_count += 1

        worker = self.worker_context(task)
        prompt = TaskPrompt(
            description=task.description,
            expected_output=task.expected_output,
            context_outputs=tuple(context),
            max_execution_time=task.max_execution_time or self.max_execution_time,
        )

        started = time.monotonic()
        try:
            response = self.executor.execute(worker, prompt)
        except CapabilityExecutionError:
            raise
        except Exception as e:
            raise CapabilityExecutionError(
                f"Failed to execute task: {task.id}: {e}",
                task_id=task.id,
                agent_id=self.id,
            ) from e
        elapsed_ms = int((time.monotonic() - started) * 1000)

        if not isinstance(response, str):
            raise CapabilityExecutionError(
                f"Executor returned {type(response).__name__} instead of text for task {task.id}",
                task_id=task.id,
                agent_id=self.id,
            )

        if self.memory is not None:
            self.memory.save(self.id, response, {"task_id": task.id})

        return TaskOutput(
            task_id=task.id,
            agent_id=self.id,
            raw=response,
            description=task.description,
            execution_time_ms=elapsed_ms,
            fields={"role": self.role},
        )
