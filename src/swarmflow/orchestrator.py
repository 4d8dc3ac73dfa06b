"""
Orchestrator facade: builds a strategy from a definition and runs it.

An orchestrator is reusable. Each run works on fresh copies of the configured
tasks, so the same orchestrator can be kicked off repeatedly, sequentially or
concurrently, with different inputs.
"""

import threading
import uuid
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

from rich.console import Console

from .agent import Agent
from .errors import ConfigurationError, RunFailedError
from .events import ConsoleEventSink, EventSink, EventType, SwarmEvent
from .knowledge import Knowledge
from .memory import Memory
from .output import OrchestrationResult
from .process import (
    DelegationStrategy,
    HierarchicalProcess,
    Process,
    ProcessType,
    SequentialProcess,
    new_run_id,
)
from .task import Task


class SwarmStatus(Enum):
    """Status of an orchestrator across runs."""
    READY = "ready"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class SwarmDefinition:
    """
    Immutable description of a swarm, validated by build_orchestrator.

    Attributes:
        agents: Agents taking part (the manager may be included)
        tasks: Tasks in declaration order
        process: Execution strategy
        manager_agent: Coordinating agent, required for hierarchical runs
        memory: Store shared with every agent that has none of its own
        knowledge: Store given to every agent that has none of its own
        max_rpm: Requests-per-minute hint for executors; not enforced
        config: Free-form settings carried along with the swarm
        verbose: Render lifecycle events on the console
        id: Swarm id
    """

    agents: tuple[Agent, ...]
    tasks: tuple[Task, ...]
    process: ProcessType = ProcessType.SEQUENTIAL
    manager_agent: Agent | None = None
    memory: Memory | None = None
    knowledge: Knowledge | None = None
    max_rpm: int | None = None
    config: Mapping[str, Any] = field(default_factory=dict)
    verbose: bool = False
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def __post_init__(self):
        object.__setattr__(self, "agents", tuple(self.agents))
        object.__setattr__(self, "tasks", tuple(self.tasks))
        object.__setattr__(self, "config", MappingProxyType(dict(self.config)))
        if isinstance(self.process, str):
            object.__setattr__(self, "process", ProcessType(self.process))


class Orchestrator:
    """
    Runs a SwarmDefinition.

    Lifecycle per run:
    1. RUN_STARTED, status RUNNING
    2. Clone the tasks with the run inputs
    3. Execute the strategy
    4. Status COMPLETED and RUN_COMPLETED, or status FAILED, RUN_FAILED and
       RunFailedError
    """

    def __init__(
        self,
        definition: SwarmDefinition,
        event_sink: EventSink | None = None,
        console: Console | None = None,
        delegation: DelegationStrategy | None = None,
        synthesis_char_limit: int = 3000,
        max_workers: int | None = None,
    ):
        self.definition = definition
        if event_sink is None and definition.verbose:
            event_sink = ConsoleEventSink(console)
        self.event_sink = event_sink
        self.max_workers = max_workers

        self._validate_definition()
        self._memory = definition.memory
        self._attach_stores()

        self._process = self._create_process(delegation, synthesis_char_limit)
        self._process.validate_tasks(list(definition.tasks))

        self._status = SwarmStatus.READY
        self._last_output: OrchestrationResult | None = None
        self._lock = threading.Lock()
        self._pool: ThreadPoolExecutor | None = None

    def _validate_definition(self) -> None:
        if not self.definition.agents:
            raise ConfigurationError("Swarm must have at least one agent")
        if not self.definition.tasks:
            raise ConfigurationError("Swarm must have at least one task")
        if self.definition.process == ProcessType.HIERARCHICAL and self.definition.manager_agent is None:
            raise ConfigurationError("Hierarchical process requires a manager agent")
        if self.definition.max_rpm is not None and self.definition.max_rpm <= 0:
            raise ConfigurationError("max_rpm must be positive")

    def _attach_stores(self) -> None:
        for agent in self._all_agents():
            if self.definition.memory is not None and agent.memory is None:
                agent.share_memory(self.definition.memory)
            if self.definition.knowledge is not None and agent.knowledge is None:
                agent.knowledge = self.definition.knowledge

    def _all_agents(self) -> list[Agent]:
        agents = list(self.definition.agents)
        manager = self.definition.manager_agent
        if manager is not None and all(a is not manager for a in agents):
            agents.append(manager)
        return agents

    def _create_process(
        self,
        delegation: DelegationStrategy | None,
        synthesis_char_limit: int,
    ) -> Process:
        """Create the execution strategy named by the definition."""
        if self.definition.process == ProcessType.SEQUENTIAL:
            return SequentialProcess(list(self.definition.agents), self.event_sink)
        if self.definition.process == ProcessType.HIERARCHICAL:
            return HierarchicalProcess(
                list(self.definition.agents),
                self.definition.manager_agent,
                self.event_sink,
                delegation=delegation,
                synthesis_char_limit=synthesis_char_limit,
            )
        raise ConfigurationError(f"Unknown process type: {self.definition.process}")

    @property
    def id(self) -> str:
        return self.definition.id

    @property
    def process_type(self) -> ProcessType:
        return self.definition.process

    @property
    def process(self) -> Process:
        return self._process

    @property
    def status(self) -> SwarmStatus:
        with self._lock:
            return self._status

    @property
    def last_output(self) -> OrchestrationResult | None:
        with self._lock:
            return self._last_output

    @property
    def max_rpm(self) -> int | None:
        return self.definition.max_rpm

    @property
    def memory(self) -> Memory | None:
        """The store shared across the swarm, if any."""
        return self._memory

    @property
    def knowledge(self) -> Knowledge | None:
        return self.definition.knowledge

    def kickoff(self, inputs: dict[str, Any] | None = None) -> OrchestrationResult:
        """
        Run the swarm once.

        Args:
            inputs: Values substituted into task {placeholders} and passed
                    to the strategy

        Returns:
            OrchestrationResult of the run

        Raises:
            RunFailedError: If any part of the run fails; the cause is chained
        """
        inputs = dict(inputs or {})
        run_id = new_run_id(self.process_type)

        self._publish(EventType.RUN_STARTED, "Swarm kickoff initiated", run_id, inputs=inputs)
        self._set_status(SwarmStatus.RUNNING)

        try:
            tasks = [task.fresh_copy(inputs) for task in self.definition.tasks]
            result = self._process.execute(tasks, inputs, run_id)
        except Exception as e:
            self._set_status(SwarmStatus.FAILED)
            self._publish(EventType.RUN_FAILED, f"Swarm execution failed: {e}", run_id)
            raise RunFailedError(run_id, f"Swarm execution failed: {e}") from e

        with self._lock:
            self._last_output = result
            self._status = SwarmStatus.COMPLETED
        self._publish(
            EventType.RUN_COMPLETED,
            "Swarm execution completed",
            run_id,
            success=result.success,
            task_count=len(result.task_outputs),
        )
        return result

    def kickoff_async(
        self,
        inputs: dict[str, Any] | None = None,
        executor: Executor | None = None,
    ) -> Future:
        """
        Schedule a run and return its Future.

        Args:
            inputs: Run inputs
            executor: Where to run; defaults to the orchestrator's own pool

        Returns:
            Future resolving to an OrchestrationResult, or to RunFailedError
        """
        return (executor or self._get_pool()).submit(self.kickoff, inputs)

    def kickoff_for_each(self, inputs_list: list[dict[str, Any]]) -> list[OrchestrationResult]:
        """Run once per input map, one after another."""
        return [self.kickoff(inputs) for inputs in inputs_list]

    def kickoff_for_each_async(
        self,
        inputs_list: list[dict[str, Any]],
        executor: Executor | None = None,
    ) -> Future:
        """
        Run once per input map, all runs concurrently.

        Returns:
            Future resolving to the results in input order, or to the first
            failure observed
        """
        futures = [self.kickoff_async(inputs, executor) for inputs in inputs_list]
        combined: Future = Future()
        if not futures:
            combined.set_result([])
            return combined

        remaining = [len(futures)]
        lock = threading.Lock()

        def _collect(finished: Future) -> None:
            with lock:
                if combined.done():
                    return
                error = finished.exception()
                if error is not None:
                    combined.set_exception(error)
                    return
                remaining[0] -= 1
                if remaining[0] == 0:
                    combined.set_result([f.result() for f in futures])

        for future in futures:
            future.add_done_callback(_collect)
        return combined

    def share_memory(self, memory: Memory) -> None:
        """Attach one memory store to every agent and make it the swarm's store."""
        self._memory = memory
        for agent in self._all_agents():
            agent.share_memory(memory)

    def reset_memory(self) -> None:
        """Clear the swarm's shared memory store; a no-op without one."""
        if self._memory is None:
            return
        self._memory.clear()
        self._publish(EventType.MEMORY_RESET, "Swarm memory reset", None)

    def shutdown(self, wait: bool = True) -> None:
        """Release the orchestrator's thread pool, if one was created."""
        with self._lock:
            pool, self._pool = self._pool, None
        if pool is not None:
            pool.shutdown(wait=wait)

    def __enter__(self) -> "Orchestrator":
        return self

    def __exit__(self, *exc_info) -> None:
        self.shutdown()

    def _get_pool(self) -> ThreadPoolExecutor:
        with self._lock:
            if self._pool is None:
                self._pool = ThreadPoolExecutor(
                    max_workers=self.max_workers,
                    thread_name_prefix="swarmflow",
                )
            return self._pool

    def _set_status(self, status: SwarmStatus) -> None:
        with self._lock:
            self._status = status

    def _publish(self, event_type: EventType, message: str, run_id: str | None, **metadata: Any) -> None:
        if self.event_sink is None:
            return
        self.event_sink(SwarmEvent(
            type=event_type,
            message=message,
            run_id=run_id,
            metadata={"swarm_id": self.id, **metadata},
        ))


def build_orchestrator(
    definition: SwarmDefinition,
    event_sink: EventSink | None = None,
    console: Console | None = None,
    delegation: DelegationStrategy | None = None,
    synthesis_char_limit: int = 3000,
) -> Orchestrator:
    """
    Validate a definition and build its orchestrator.

    Raises:
        ConfigurationError: (or a subclass) for an invalid definition
    """
    return Orchestrator(
        definition,
        event_sink=event_sink,
        console=console,
        delegation=delegation,
        synthesis_char_limit=synthesis_char_limit,
    )


def run_swarm(
    agents: list[Agent],
    tasks: list[Task],
    inputs: dict[str, Any] | None = None,
    process: ProcessType = ProcessType.SEQUENTIAL,
    manager_agent: Agent | None = None,
) -> OrchestrationResult:
    """Convenience function to build an orchestrator and run it once."""
    definition = SwarmDefinition(
        agents=tuple(agents),
        tasks=tuple(tasks),
        process=process,
        manager_agent=manager_agent,
    )
    return build_orchestrator(definition).kickoff(inputs)
