"""
Common contract for execution strategies.

A strategy ("process") receives fresh tasks for one run, executes them
strictly one at a time, emits lifecycle events to the injected sink and
returns an OrchestrationResult. Any failure aborts the run: the partial
outputs are dropped and the error propagates.
"""

import uuid
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any

from ..agent import Agent
from ..events import EventSink, EventType, SwarmEvent
from ..output import OrchestrationResult
from ..task import Task


class ProcessType(Enum):
    """Which execution strategy an orchestrator uses."""
    SEQUENTIAL = "sequential"
    HIERARCHICAL = "hierarchical"


def new_run_id(process_type: ProcessType) -> str:
    return f"{process_type.value}-{uuid.uuid4()}"


class Process(ABC):
    """
    Abstract interface for execution strategies.

    Implementations:
    - SequentialProcess: dependency order, one task after another
    - HierarchicalProcess: a manager agent coordinates delegated tasks
    """

    process_type: ProcessType

    def __init__(self, agents: list[Agent], event_sink: EventSink | None = None):
        self.agents = list(agents)
        self.event_sink = event_sink

    @abstractmethod
    def validate_tasks(self, tasks: list[Task]) -> None:
        """
        Reject task sets this strategy cannot run.

        Raises:
            ConfigurationError: (or a subclass) describing the problem
        """
        ...

    @abstractmethod
    def execute(
        self,
        tasks: list[Task],
        inputs: dict[str, Any] | None = None,
        run_id: str | None = None,
    ) -> OrchestrationResult:
        """
        Execute one run over PENDING tasks.

        Args:
            tasks: Tasks for this run, in declaration order
            inputs: Run inputs
            run_id: Identifier used on events and on the result

        Returns:
            OrchestrationResult for the run
        """
        ...

    def _publish(
        self,
        event_type: EventType,
        message: str,
        run_id: str | None,
        agent_id: str | None = None,
        task_id: str | None = None,
        **metadata: Any,
    ) -> None:
        if self.event_sink is None:
            return
        self.event_sink(SwarmEvent(
            type=event_type,
            message=message,
            run_id=run_id,
            agent_id=agent_id,
            task_id=task_id,
            metadata=metadata,
        ))
