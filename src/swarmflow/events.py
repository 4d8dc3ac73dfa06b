"""
Lifecycle events emitted while an orchestrator runs.

A sink is any callable that accepts a SwarmEvent. Sinks are injected into the
orchestrator and its strategies; there is no process-wide publisher.
"""

import threading
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable

from rich.console import Console
from rich.markup import escape


class EventType(Enum):
    """Kinds of lifecycle events."""

    RUN_STARTED = "run_started"
    RUN_COMPLETED = "run_completed"
    RUN_FAILED = "run_failed"
    MEMORY_RESET = "memory_reset"

    PROCESS_STARTED = "process_started"
    PROCESS_COMPLETED = "process_completed"
    PROCESS_FAILED = "process_failed"

    TASK_STARTED = "task_started"
    TASK_COMPLETED = "task_completed"
    TASK_FAILED = "task_failed"
    TASK_SKIPPED = "task_skipped"


@dataclass(frozen=True)
class SwarmEvent:
    """One lifecycle notification."""

    type: EventType
    message: str
    run_id: str | None = None
    agent_id: str | None = None
    task_id: str | None = None
    timestamp: datetime = field(default_factory=datetime.now)
    metadata: dict[str, Any] = field(default_factory=dict)


EventSink = Callable[[SwarmEvent], None]


def fan_out(*sinks: EventSink | None) -> EventSink:
    """Combine several sinks into one that forwards events in order."""
    active = [s for s in sinks if s is not None]

    def _emit(event: SwarmEvent) -> None:
        for sink in active:
            sink(event)

    return _emit


class EventRecorder:
    """
    Thread-safe sink that keeps every event it receives.

    Useful for auditing a run after the fact and for tests.
    """

    def __init__(self):
        self._events: list[SwarmEvent] = []
        self._lock = threading.Lock()

    def __call__(self, event: SwarmEvent) -> None:
        with self._lock:
            self._events.append(event)

    @property
    def events(self) -> list[SwarmEvent]:
        with self._lock:
            return list(self._events)

    def types(self, run_id: str | None = None) -> list[EventType]:
        """Event types in emission order, optionally for a single run."""
        return [
            e.type for e in self.events
            if run_id is None or e.run_id == run_id
        ]

    def of_type(self, event_type: EventType) -> list[SwarmEvent]:
        return [e for e in self.events if e.type == event_type]

    def clear(self) -> None:
        with self._lock:
            self._events.clear()


# Console rendering per event type: (emoji, rich style)
_EVENT_STYLES = {
    EventType.RUN_STARTED: ("🐝", "bold blue"),
    EventType.RUN_COMPLETED: ("✅", "bold green"),
    EventType.RUN_FAILED: ("✗", "bold red"),
    EventType.MEMORY_RESET: ("🧹", "dim"),
    EventType.PROCESS_STARTED: ("📋", "bold"),
    EventType.PROCESS_COMPLETED: ("📦", "green"),
    EventType.PROCESS_FAILED: ("✗", "red"),
    EventType.TASK_STARTED: ("🎯", "cyan"),
    EventType.TASK_COMPLETED: ("✓", "green"),
    EventType.TASK_FAILED: ("✗", "red"),
    EventType.TASK_SKIPPED: ("⏭️ ", "yellow"),
}

_TASK_EVENTS = {
    EventType.TASK_STARTED,
    EventType.TASK_COMPLETED,
    EventType.TASK_FAILED,
    EventType.TASK_SKIPPED,
}


class ConsoleEventSink:
    """Render lifecycle events on a rich console."""

    def __init__(self, console: Console | None = None, show_run_id: bool = False):
        self.console = console or Console()
        self.show_run_id = show_run_id

    def __call__(self, event: SwarmEvent) -> None:
        emoji, style = _EVENT_STYLES.get(event.type, ("•", ""))
        indent = "   " if event.type in _TASK_EVENTS else ""
        message = escape(event.message)
        line = f"{indent}{emoji} [{style}]{message}[/]" if style else f"{indent}{emoji} {message}"
        if event.agent_id and event.type in _TASK_EVENTS:
            line += f" [dim](agent: {escape(event.agent_id)})[/]"
        if self.show_run_id and event.run_id:
            line += f" [dim]\\[{event.run_id}][/]"
        self.console.print(line)
