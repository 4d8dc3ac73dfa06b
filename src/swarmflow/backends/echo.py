"""Deterministic offline executor for demos, dry runs and tests."""

from .base import CapabilityExecutor, TaskPrompt, WorkerContext


class EchoExecutor(CapabilityExecutor):
    """
    Executor that answers without calling any model.

    The response names the worker role and repeats the task description, so
    a workflow can be exercised end to end without credentials.
    """

    def __init__(self, prefix: str = ""):
        self.prefix = prefix

    def execute(self, worker: WorkerContext, prompt: TaskPrompt) -> str:
        first_line = prompt.description.strip().splitlines()[0] if prompt.description.strip() else ""
        text = f"[{worker.role}] {first_line}"
        if prompt.context_outputs:
            text += f" (context: {len(prompt.context_outputs)} output(s))"
        return f"{self.prefix}{text}"
