"""
Error taxonomy for swarmflow.

Configuration and dependency errors are raised while an orchestrator is
being built, before any task runs. Execution errors abort the run in flight
and reach the caller wrapped in RunFailedError with the original cause
chained.
"""


class SwarmError(Exception):
    """Base class for every error raised by swarmflow."""


class ConfigurationError(SwarmError):
    """Raised when an orchestrator or workflow is configured incorrectly."""


class UnknownDependencyError(ConfigurationError):
    """Raised when a task depends on an id that is not in the task set."""

    def __init__(self, task_id: str, dependency_id: str):
        self.task_id = task_id
        self.dependency_id = dependency_id
        super().__init__(
            f"Task {task_id} depends on non-existent task: {dependency_id}"
        )


class CyclicDependencyError(ConfigurationError):
    """Raised when the task graph cannot be linearized."""

    def __init__(self, task_ids: list[str]):
        self.task_ids = list(task_ids)
        super().__init__(
            f"Circular dependency detected in tasks: {', '.join(self.task_ids)}"
        )


class AlreadyExecutedError(SwarmError):
    """Raised when a task instance is executed a second time."""

    def __init__(self, task_id: str):
        self.task_id = task_id
        super().__init__(
            f"Task {task_id} has already been executed or is in progress"
        )


class CapabilityExecutionError(SwarmError):
    """Raised when a worker cannot produce output for a task."""

    def __init__(
        self,
        message: str,
        task_id: str | None = None,
        agent_id: str | None = None,
    ):
        self.task_id = task_id
        self.agent_id = agent_id
        super().__init__(message)


class RunFailedError(SwarmError):
    """Top-level error surfaced to callers when an orchestration run fails."""

    def __init__(self, run_id: str, message: str):
        self.run_id = run_id
        super().__init__(message)
