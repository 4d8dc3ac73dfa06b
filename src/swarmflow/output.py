"""
Result records for task outputs and whole orchestration runs.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from types import MappingProxyType
from typing import Any, Mapping


SUMMARY_LENGTH = 100
SKIPPED_OUTPUT = "Task skipped due to condition"
NO_OUTPUT = "No outputs generated"


def summarize(text: str, limit: int = SUMMARY_LENGTH) -> str:
    """Shorten text to at most `limit` characters, marking the cut with '...'."""
    if len(text) <= limit:
        return text
    return text[: limit - 3] + "..."


@dataclass(frozen=True)
class TaskOutput:
    """
    Output produced by one task (or skip record for a gated task).

    Immutable once produced; `fields` is exposed as a read-only mapping.
    """

    task_id: str
    agent_id: str | None
    raw: str
    summary: str = ""
    description: str = ""
    success: bool = True
    execution_time_ms: int = 0
    fields: Mapping[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self):
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))
        if not self.summary:
            object.__setattr__(self, "summary", summarize(self.raw))

    @classmethod
    def skipped(cls, task_id: str, agent_id: str | None, description: str) -> "TaskOutput":
        """Build the record for a task whose condition evaluated false."""
        return cls(
            task_id=task_id,
            agent_id=agent_id,
            raw=SKIPPED_OUTPUT,
            summary="Task was skipped",
            description=description,
            fields={"skipped": True},
        )

    @property
    def was_skipped(self) -> bool:
        return bool(self.fields.get("skipped"))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "task_id": self.task_id,
            "agent_id": self.agent_id,
            "raw": self.raw,
            "summary": self.summary,
            "description": self.description,
            "success": self.success,
            "execution_time_ms": self.execution_time_ms,
            "fields": dict(self.fields),
            "created_at": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class OrchestrationResult:
    """
    Immutable record of one complete orchestration run.

    Attributes:
        run_id: Identifier of the run that produced this result
        task_outputs: Outputs in execution order
        final_output: Text considered the answer of the run
        start_time: When the strategy started
        end_time: When the last output was collected
        success: True only if every task output succeeded
        metrics: Read-only counters reported by the strategy
    """

    run_id: str
    task_outputs: tuple[TaskOutput, ...]
    final_output: str
    start_time: datetime
    end_time: datetime
    success: bool
    metrics: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "task_outputs", tuple(self.task_outputs))
        object.__setattr__(self, "metrics", MappingProxyType(dict(self.metrics)))

    @property
    def execution_time(self) -> timedelta:
        return self.end_time - self.start_time

    @property
    def summary(self) -> str:
        """Per-task summaries joined by newlines."""
        if not self.task_outputs:
            return self.final_output or "No output available"
        return "\n".join(o.summary for o in self.task_outputs if o.summary)

    @property
    def successful_outputs(self) -> list[TaskOutput]:
        return [o for o in self.task_outputs if o.success]

    @property
    def failed_outputs(self) -> list[TaskOutput]:
        return [o for o in self.task_outputs if not o.success]

    @property
    def success_rate(self) -> float:
        if not self.task_outputs:
            return 1.0 if self.success else 0.0
        return len(self.successful_outputs) / len(self.task_outputs)

    def get_task_output(self, task_id: str) -> TaskOutput | None:
        """Return the first output recorded for a task id, if any."""
        for output in self.task_outputs:
            if output.task_id == task_id:
                return output
        return None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "run_id": self.run_id,
            "success": self.success,
            "final_output": self.final_output,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
            "execution_time_ms": int(self.execution_time.total_seconds() * 1000),
            "metrics": dict(self.metrics),
            "task_outputs": [o.to_dict() for o in self.task_outputs],
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)


def aggregate(
    run_id: str,
    outputs: list[TaskOutput],
    final_output: str | None,
    start_time: datetime,
    metrics: Mapping[str, Any] | None = None,
) -> OrchestrationResult:
    """
    Assemble the result of a finished run.

    Args:
        run_id: Run identifier
        outputs: Task outputs in execution order
        final_output: Final text; defaults to the last output's raw text
        start_time: When the run started
        metrics: Strategy-specific counters

    Returns:
        OrchestrationResult whose success flag is the AND of all outputs
    """
    if final_output is None:
        final_output = outputs[-1].raw if outputs else NO_OUTPUT

    return OrchestrationResult(
        run_id=run_id,
        task_outputs=tuple(outputs),
        final_output=final_output,
        start_time=start_time,
        end_time=datetime.now(),
        success=all(o.success for o in outputs),
        metrics=metrics or {},
    )
