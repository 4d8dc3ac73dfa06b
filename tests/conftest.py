"""
Shared pytest fixtures for swarmflow tests.
"""

import threading

import pytest

from swarmflow.agent import Agent
from swarmflow.backends.base import CapabilityExecutor, TaskPrompt, WorkerContext
from swarmflow.events import EventRecorder
from swarmflow.task import Task


class ScriptedExecutor(CapabilityExecutor):
    """
    Executor returning canned responses and recording every call.

    `responses` maps an exact task description to the text to return, or to
    an exception to raise. Unlisted descriptions get a default answer.
    """

    def __init__(self, responses: dict | None = None, default: str = "done"):
        self.responses = dict(responses or {})
        self.default = default
        self.calls: list[tuple[WorkerContext, TaskPrompt]] = []
        self._lock = threading.Lock()

    def execute(self, worker: WorkerContext, prompt: TaskPrompt) -> str:
        with self._lock:
            self.calls.append((worker, prompt))
        response = self.responses.get(prompt.description)
        if isinstance(response, Exception):
            raise response
        if response is not None:
            return response
        return f"{self.default}: {prompt.description.splitlines()[0]}"

    @property
    def descriptions(self) -> list[str]:
        with self._lock:
            return [prompt.description for _, prompt in self.calls]

    @property
    def roles(self) -> list[str]:
        with self._lock:
            return [worker.role for worker, _ in self.calls]


def make_agent(
    role: str = "Worker",
    executor: CapabilityExecutor | None = None,
    **kwargs,
) -> Agent:
    """Helper to create test agents with defaults."""
    return Agent(
        role=role,
        goal=kwargs.pop("goal", f"Do {role.lower()} work"),
        backstory=kwargs.pop("backstory", f"An experienced {role.lower()}"),
        executor=executor or ScriptedExecutor(),
        **kwargs,
    )


def make_task(
    id: str = "task-1",
    description: str | None = None,
    agent: Agent | None = None,
    **kwargs,
) -> Task:
    """Helper to create test tasks with defaults."""
    return Task(
        description=description or f"Perform {id}",
        expected_output=kwargs.pop("expected_output", f"Result of {id}"),
        agent=agent,
        id=id,
        **kwargs,
    )


@pytest.fixture
def executor():
    """A scripted executor with default answers."""
    return ScriptedExecutor()


@pytest.fixture
def recorder():
    """An event recorder to pass as the event sink."""
    return EventRecorder()


@pytest.fixture
def agent(executor):
    """A single worker agent using the scripted executor."""
    return make_agent("Researcher", executor, id="researcher", tools=["search"])
