"""
Hierarchical strategy: a manager agent coordinates workers.

The manager first produces a coordination plan, every task is then delegated
to a worker, and the manager finally synthesizes the collected results. The
result therefore always holds len(tasks) + 2 outputs.
"""

import uuid
from datetime import datetime
from typing import Any

from ..agent import Agent
from ..errors import ConfigurationError
from ..events import EventSink, EventType
from ..output import OrchestrationResult, TaskOutput, aggregate
from ..resolver import validate_dependencies
from ..task import Task, TaskStatus
from .base import Process, ProcessType, new_run_id
from .delegation import CapabilityKeywordDelegation, DelegationStrategy


TRUNCATION_MARKER = "...[truncated]"


class HierarchicalProcess(Process):
    """
    Manager-led execution.

    Tasks run in declaration order; dependency ids are checked but not sorted.
    The manager's coordination response is recorded in the result, while the
    actual assignment is made by the delegation strategy.
    """

    process_type = ProcessType.HIERARCHICAL

    def __init__(
        self,
        agents: list[Agent],
        manager: Agent | None,
        event_sink: EventSink | None = None,
        delegation: DelegationStrategy | None = None,
        synthesis_char_limit: int = 3000,
    ):
        if manager is None:
            raise ConfigurationError("Manager agent is required for hierarchical process")
        super().__init__(agents, event_sink)
        self.manager = manager
        self.workers = [a for a in self.agents if a is not manager and a.id != manager.id]
        self.delegation = delegation or CapabilityKeywordDelegation()
        self.synthesis_char_limit = synthesis_char_limit

    def validate_tasks(self, tasks: list[Task]) -> None:
        if not tasks:
            raise ConfigurationError("Hierarchical process requires at least one task")
        if not self.manager.allow_delegation:
            raise ConfigurationError(
                f"Manager agent '{self.manager.role}' must allow delegation"
            )
        if not self.workers:
            raise ConfigurationError("Hierarchical process requires at least one worker agent")
        validate_dependencies(tasks)

    def execute(
        self,
        tasks: list[Task],
        inputs: dict[str, Any] | None = None,
        run_id: str | None = None,
    ) -> OrchestrationResult:
        run_id = run_id or new_run_id(self.process_type)
        start_time = datetime.now()
        outputs: list[TaskOutput] = []
        current: Task | None = None

        self._publish(
            EventType.PROCESS_STARTED,
            "Hierarchical process execution started",
            run_id,
            self.manager.id,
            task_count=len(tasks),
        )

        try:
            self.validate_tasks(tasks)

            coordination = self.coordination_task(tasks, inputs or {})
            current = coordination
            self._publish(
                EventType.TASK_STARTED,
                "Manager coordination task started",
                run_id,
                self.manager.id,
                coordination.id,
            )
            outputs.append(coordination.execute([]))
            current = None
            self._publish(
                EventType.TASK_COMPLETED,
                "Manager coordination task completed",
                run_id,
                self.manager.id,
                coordination.id,
            )

            for task in tasks:
                current = task
                worker = self.delegation.select(task, self.workers)
                task.assign(worker)
                self._publish(
                    EventType.TASK_STARTED,
                    f"Delegated task started: {task.id} assigned to: {worker.role}",
                    run_id,
                    worker.id,
                    task.id,
                )
                output = task.execute(task.relevant_context(outputs))
                outputs.append(output)
                current = None

                if task.status == TaskStatus.SKIPPED:
                    self._publish(EventType.TASK_SKIPPED, f"Delegated task skipped: {task.id}", run_id, worker.id, task.id)
                else:
                    self._publish(
                        EventType.TASK_COMPLETED,
                        f"Delegated task completed: {task.id}",
                        run_id,
                        worker.id,
                        task.id,
                        execution_time_ms=output.execution_time_ms,
                    )

            synthesis = self.synthesis_task(outputs)
            current = synthesis
            self._publish(
                EventType.TASK_STARTED,
                "Manager synthesis task started",
                run_id,
                self.manager.id,
                synthesis.id,
            )
            final_output = synthesis.execute(list(outputs))
            outputs.append(final_output)
            current = None
            self._publish(
                EventType.TASK_COMPLETED,
                "Manager synthesis task completed",
                run_id,
                self.manager.id,
                synthesis.id,
            )
        except Exception as e:
            if current is not None:
                self._publish(
                    EventType.TASK_FAILED,
                    f"Task failed: {current.id}: {e}",
                    run_id,
                    current.agent.id if current.agent else None,
                    current.id,
                )
            self._publish(EventType.PROCESS_FAILED, f"Hierarchical process failed: {e}", run_id)
            raise

        result = aggregate(
            run_id,
            outputs,
            final_output=final_output.raw,
            start_time=start_time,
            metrics={
                "total_tasks": len(outputs),
                "delegated_tasks": len(tasks),
                "manager_tasks": 2,
            },
        )
        self._publish(
            EventType.PROCESS_COMPLETED,
            "Hierarchical process completed",
            run_id,
            self.manager.id,
            total_tasks=len(outputs),
        )
        return result

    def coordination_task(self, tasks: list[Task], inputs: dict[str, Any]) -> Task:
        """Build the manager's planning task for a run."""
        lines = ["You are the manager coordinating the following tasks:", ""]
        for number, task in enumerate(tasks, start=1):
            lines.append(f"{number}. {task.description}")
            if task.expected_output:
                lines.append(f"   Expected Output: {task.expected_output}")

        lines.append("")
        lines.append("Available worker agents:")
        for worker in self.workers:
            lines.append(f"- {worker.role}: {worker.goal}")

        lines.append("")
        lines.append(
            "Create a task delegation plan. For each task, specify which agent "
            "should handle it and any specific instructions."
        )
        if inputs:
            lines.append("")
            lines.append(f"Input context: {inputs}")

        return Task(
            description="\n".join(lines),
            expected_output="A delegation plan mapping tasks to agents with specific instructions",
            agent=self.manager,
            id=f"coordination-{uuid.uuid4().hex[:8]}",
        )

    def synthesis_task(self, outputs: list[TaskOutput]) -> Task:
        """Build the manager's final task over every output collected so far."""
        lines = [
            "As the manager, review all completed task results and provide a final coordinated output.",
            "",
            "IMPORTANT: Your final output MUST be based on the actual task results provided below. "
            "Do NOT generate new information or make up data. Use ONLY the information from the "
            "completed tasks.",
            "",
        ]
        for number, output in enumerate(outputs, start=1):
            lines.append(f"=== TASK {number} ===")
            lines.append(f"Description: {output.description}")
            lines.append(f"Agent: {output.agent_id}")
            lines.append("Result:")
            lines.append(self._truncate(output.raw or "No output"))
            lines.append("")

        lines.extend([
            "Based on the above task results, provide a comprehensive final output that:",
            "1. Synthesizes all the findings from the completed tasks",
            "2. Presents the information in a clear, organized manner",
            "3. Includes all relevant data and insights from the task outputs",
            "4. Does NOT introduce new information not found in the task results",
        ])

        return Task(
            description="\n".join(lines),
            expected_output="A comprehensive final output that synthesizes all task results accurately",
            agent=self.manager,
            id=f"final-coordination-{uuid.uuid4().hex[:8]}",
        )

    def _truncate(self, text: str) -> str:
        if len(text) <= self.synthesis_char_limit:
            return text
        return text[: self.synthesis_char_limit] + TRUNCATION_MARKER
