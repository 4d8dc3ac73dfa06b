"""
Run recordings and cross-run metrics built from the lifecycle event stream.

Both EventStore and SwarmMetrics are ordinary event sinks. Pass them to
build_orchestrator directly, or combine them with other sinks via fan_out:

    store = EventStore()
    metrics = SwarmMetrics()
    orchestrator = build_orchestrator(definition, event_sink=fan_out(store, metrics))
    result = orchestrator.kickoff()
    recording = store.recording(result.run_id)
"""

import json
import threading
from collections import Counter, OrderedDict
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

from .events import EventSink, EventType, SwarmEvent


def event_to_dict(event: SwarmEvent) -> dict[str, Any]:
    """Convert an event to a JSON-friendly dictionary."""
    return {
        "type": event.type.value,
        "message": event.message,
        "run_id": event.run_id,
        "agent_id": event.agent_id,
        "task_id": event.task_id,
        "timestamp": event.timestamp.isoformat(),
        "metadata": dict(event.metadata),
    }


def event_from_dict(data: dict[str, Any]) -> SwarmEvent:
    """Rebuild an event written by event_to_dict."""
    return SwarmEvent(
        type=EventType(data["type"]),
        message=data.get("message", ""),
        run_id=data.get("run_id"),
        agent_id=data.get("agent_id"),
        task_id=data.get("task_id"),
        timestamp=datetime.fromisoformat(data["timestamp"]),
        metadata=dict(data.get("metadata") or {}),
    )


def _is_failure(event_type: EventType) -> bool:
    return event_type.value.endswith("_failed")


@dataclass(frozen=True)
class RunSummary:
    """Counts derived from the events of one run."""

    total_events: int
    unique_agents: int
    unique_tasks: int
    error_count: int
    task_time_ms: int


@dataclass(frozen=True)
class RunRecording:
    """
    Ordered, self-contained record of one orchestration run.

    Attributes:
        run_id: Run the events belong to
        swarm_id: Orchestrator that ran it, when known
        status: "failed" if any failure event was seen, "completed" once the
                run or its strategy completed, "unknown" otherwise
        events: Events in emission order
    """

    run_id: str
    swarm_id: str | None
    status: str
    events: tuple[SwarmEvent, ...]

    @classmethod
    def from_events(cls, events: list[SwarmEvent]) -> "RunRecording":
        """
        Build a recording from the events of a single run.

        Raises:
            ValueError: If events is empty
        """
        if not events:
            raise ValueError("Cannot build a recording from an empty event list")

        # sorted() is stable, so events sharing a timestamp keep emission order
        ordered = tuple(sorted(events, key=lambda e: e.timestamp))
        swarm_id = next(
            (e.metadata["swarm_id"] for e in ordered if "swarm_id" in e.metadata),
            None,
        )

        types = {e.type for e in ordered}
        if any(_is_failure(t) for t in types):
            status = "failed"
        elif types & {EventType.RUN_COMPLETED, EventType.PROCESS_COMPLETED}:
            status = "completed"
        else:
            status = "unknown"

        return cls(run_id=ordered[0].run_id, swarm_id=swarm_id, status=status, events=ordered)

    @property
    def start_time(self) -> datetime:
        return self.events[0].timestamp

    @property
    def end_time(self) -> datetime:
        return self.events[-1].timestamp

    @property
    def duration_ms(self) -> int:
        return int((self.end_time - self.start_time).total_seconds() * 1000)

    @property
    def summary(self) -> RunSummary:
        return RunSummary(
            total_events=len(self.events),
            unique_agents=len({e.agent_id for e in self.events if e.agent_id}),
            unique_tasks=len({e.task_id for e in self.events if e.task_id}),
            error_count=sum(1 for e in self.events if _is_failure(e.type)),
            task_time_ms=sum(
                int(e.metadata.get("execution_time_ms", 0))
                for e in self.events
                if e.type == EventType.TASK_COMPLETED
            ),
        )

    def replay(self, sink: EventSink) -> int:
        """Send every recorded event to a sink, in order. Returns the count."""
        for event in self.events:
            sink(event)
        return len(self.events)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        summary = self.summary
        return {
            "run_id": self.run_id,
            "swarm_id": self.swarm_id,
            "status": self.status,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
            "duration_ms": self.duration_ms,
            "summary": {
                "total_events": summary.total_events,
                "unique_agents": summary.unique_agents,
                "unique_tasks": summary.unique_tasks,
                "error_count": summary.error_count,
                "task_time_ms": summary.task_time_ms,
            },
            "events": [event_to_dict(e) for e in self.events],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RunRecording":
        """Rebuild a recording written by to_dict; derived fields are recomputed."""
        return cls.from_events([event_from_dict(e) for e in data.get("events", [])])

    def to_json(self) -> str:
        # Run inputs travel in event metadata and may hold arbitrary values
        return json.dumps(self.to_dict(), indent=2, default=str)

    def save(self, path: str | Path) -> Path:
        """Write the recording as JSON, creating parent directories."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.to_json())
        return path

    @classmethod
    def load(cls, path: str | Path) -> "RunRecording":
        """
        Read a recording saved with save().

        Raises:
            ValueError: If the file is not a valid recording
        """
        path = Path(path)
        try:
            data = json.loads(path.read_text())
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid recording file {path}: {e}") from e
        if not isinstance(data, dict):
            raise ValueError(f"Invalid recording file {path}: expected a JSON object")
        try:
            return cls.from_dict(data)
        except (KeyError, TypeError) as e:
            raise ValueError(f"Invalid recording file {path}: {e}") from e


class EventStore:
    """
    Thread-safe event sink that keeps events grouped by run.

    Events without a run id are ignored. When the store holds `max_events`
    events, the oldest other run is evicted whole before a new event is
    added; a run never evicts itself.
    """

    def __init__(self, max_events: int = 10_000):
        if max_events <= 0:
            raise ValueError(f"Invalid max_events: {max_events}. Must be positive")
        self.max_events = max_events
        self._runs: OrderedDict[str, list[SwarmEvent]] = OrderedDict()
        self._swarms: dict[str, list[str]] = {}
        self._total = 0
        self._lock = threading.Lock()

    def __call__(self, event: SwarmEvent) -> None:
        if event.run_id is None:
            return
        with self._lock:
            if self._total >= self.max_events:
                self._evict_oldest(keep=event.run_id)

            self._runs.setdefault(event.run_id, []).append(event)
            self._total += 1

            swarm_id = event.metadata.get("swarm_id")
            if swarm_id is not None:
                run_ids = self._swarms.setdefault(swarm_id, [])
                if event.run_id not in run_ids:
                    run_ids.append(event.run_id)

    def events(self, run_id: str) -> list[SwarmEvent]:
        with self._lock:
            return list(self._runs.get(run_id, []))

    def of_type(self, run_id: str, event_type: EventType) -> list[SwarmEvent]:
        return [e for e in self.events(run_id) if e.type == event_type]

    def run_ids(self) -> list[str]:
        """Stored run ids, oldest first."""
        with self._lock:
            return list(self._runs)

    def runs_for_swarm(self, swarm_id: str) -> list[str]:
        with self._lock:
            return [r for r in self._swarms.get(swarm_id, []) if r in self._runs]

    def has_run(self, run_id: str) -> bool:
        with self._lock:
            return run_id in self._runs

    def event_count(self, run_id: str | None = None) -> int:
        with self._lock:
            if run_id is None:
                return self._total
            return len(self._runs.get(run_id, []))

    def delete_run(self, run_id: str) -> int:
        """Drop a run's events. Returns how many were removed."""
        with self._lock:
            return self._delete(run_id)

    def delete_older_than(self, before: datetime) -> int:
        """Drop every run whose last event happened before `before`."""
        with self._lock:
            stale = [r for r, events in self._runs.items() if events[-1].timestamp < before]
            return sum(self._delete(r) for r in stale)

    def recording(self, run_id: str) -> RunRecording | None:
        events = self.events(run_id)
        return RunRecording.from_events(events) if events else None

    def replay(self, run_id: str, sink: EventSink) -> int:
        """Send a stored run's events to a sink, in order. Returns the count."""
        events = self.events(run_id)
        for event in events:
            sink(event)
        return len(events)

    def clear(self) -> None:
        with self._lock:
            self._runs.clear()
            self._swarms.clear()
            self._total = 0

    def stats(self) -> dict[str, Any]:
        with self._lock:
            sizes = [len(events) for events in self._runs.values()]
        return {
            "total_runs": len(sizes),
            "total_events": sum(sizes),
            "max_events": self.max_events,
            "avg_events_per_run": sum(sizes) / len(sizes) if sizes else 0.0,
            "max_events_in_run": max(sizes, default=0),
        }

    def _delete(self, run_id: str) -> int:
        removed = len(self._runs.pop(run_id, []))
        self._total -= removed
        return removed

    def _evict_oldest(self, keep: str) -> None:
        for run_id in self._runs:
            if run_id != keep:
                self._delete(run_id)
                return


class SwarmMetrics:
    """
    Thread-safe event sink aggregating counters across runs.

    Run durations are measured from RUN_STARTED to RUN_COMPLETED or
    RUN_FAILED; per-agent time is the sum of the execution times reported on
    TASK_COMPLETED events.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self.reset()

    def reset(self) -> None:
        with self._lock:
            self._counts: Counter[EventType] = Counter()
            self._in_flight: dict[str, datetime] = {}
            self._run_durations_ms: list[int] = []
            self._agent_completed: Counter[str] = Counter()
            self._agent_failed: Counter[str] = Counter()
            self._agent_time_ms: Counter[str] = Counter()

    def __call__(self, event: SwarmEvent) -> None:
        with self._lock:
            self._counts[event.type] += 1

            if event.type == EventType.RUN_STARTED and event.run_id:
                self._in_flight[event.run_id] = event.timestamp
            elif event.type in (EventType.RUN_COMPLETED, EventType.RUN_FAILED):
                started = self._in_flight.pop(event.run_id, None)
                if started is not None:
                    elapsed = (event.timestamp - started).total_seconds() * 1000
                    self._run_durations_ms.append(int(elapsed))
            elif event.type == EventType.TASK_COMPLETED and event.agent_id:
                self._agent_completed[event.agent_id] += 1
                self._agent_time_ms[event.agent_id] += int(event.metadata.get("execution_time_ms", 0))
            elif event.type == EventType.TASK_FAILED and event.agent_id:
                self._agent_failed[event.agent_id] += 1

    def count(self, event_type: EventType) -> int:
        with self._lock:
            return self._counts[event_type]

    @property
    def runs_in_flight(self) -> int:
        with self._lock:
            return len(self._in_flight)

    def snapshot(self) -> dict[str, Any]:
        """Current counters as a plain dictionary."""
        with self._lock:
            durations = list(self._run_durations_ms)
            agents = sorted(set(self._agent_completed) | set(self._agent_failed))
            return {
                "runs_started": self._counts[EventType.RUN_STARTED],
                "runs_completed": self._counts[EventType.RUN_COMPLETED],
                "runs_failed": self._counts[EventType.RUN_FAILED],
                "runs_in_flight": len(self._in_flight),
                "tasks_completed": self._counts[EventType.TASK_COMPLETED],
                "tasks_failed": self._counts[EventType.TASK_FAILED],
                "tasks_skipped": self._counts[EventType.TASK_SKIPPED],
                "avg_run_duration_ms": sum(durations) / len(durations) if durations else 0.0,
                "max_run_duration_ms": max(durations, default=0),
                "agents": {
                    agent_id: {
                        "tasks_completed": self._agent_completed[agent_id],
                        "tasks_failed": self._agent_failed[agent_id],
                        "total_time_ms": self._agent_time_ms[agent_id],
                    }
                    for agent_id in agents
                },
            }
