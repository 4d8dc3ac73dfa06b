"""
Sequential strategy: tasks run one after another in dependency order.
"""

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Any

from ..agent import Agent
from ..errors import ConfigurationError
from ..events import EventSink, EventType
from ..output import OrchestrationResult, TaskOutput, aggregate
from ..resolver import order_tasks, validate_dependencies
from ..task import Task, TaskStatus
from .base import Process, ProcessType, new_run_id


class SequentialProcess(Process):
    """
    Runs every task in topological order, passing earlier outputs as context.

    A task with declared dependencies sees exactly their outputs; a task
    without any sees the whole history of the run.
    """

    process_type = ProcessType.SEQUENTIAL

    def __init__(self, agents: list[Agent], event_sink: EventSink | None = None):
        super().__init__(agents, event_sink)

    def validate_tasks(self, tasks: list[Task]) -> None:
        if not tasks:
            raise ConfigurationError("Sequential process requires at least one task")
        validate_dependencies(tasks)
        order_tasks(tasks)

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
            "Sequential process execution started",
            run_id,
            task_count=len(tasks),
        )

        try:
            self.validate_tasks(tasks)
            ordered = order_tasks(tasks)

            for index, task in enumerate(ordered):
                current = task
                agent_id = task.agent.id if task.agent else None
                self._publish(EventType.TASK_STARTED, f"Starting task: {task.id}", run_id, agent_id, task.id)

                context = task.relevant_context(outputs)
                if task.async_execution and index == len(ordered) - 1:
                    output = self._execute_async(task, context)
                else:
                    output = task.execute(context)
                outputs.append(output)
                current = None

                if task.status == TaskStatus.SKIPPED:
                    self._publish(EventType.TASK_SKIPPED, f"Task skipped: {task.id}", run_id, agent_id, task.id)
                else:
                    self._publish(
                        EventType.TASK_COMPLETED,
                        f"Task completed: {task.id}",
                        run_id,
                        agent_id,
                        task.id,
                        execution_time_ms=output.execution_time_ms,
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
            self._publish(EventType.PROCESS_FAILED, f"Sequential process failed: {e}", run_id)
            raise

        skipped = sum(1 for o in outputs if o.was_skipped)
        result = aggregate(
            run_id,
            outputs,
            final_output=None,
            start_time=start_time,
            metrics={
                "total_tasks": len(tasks),
                "successful_tasks": sum(1 for o in outputs if o.success and not o.was_skipped),
                "skipped_tasks": skipped,
            },
        )
        self._publish(
            EventType.PROCESS_COMPLETED,
            "Sequential process completed",
            run_id,
            total_tasks=len(tasks),
        )
        return result

    def _execute_async(self, task: Task, context: list[TaskOutput]) -> TaskOutput:
        # Only the last task may run off-thread; its result is awaited before assembly
        with ThreadPoolExecutor(max_workers=1, thread_name_prefix="swarmflow-task") as pool:
            return pool.submit(task.execute, context).result()
