"""
Memory stores shared between agents.

Memory is a simple keyed text store: agents append what they produced and
later tasks can search it. Stores handle their own synchronization.
"""

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


class Memory(ABC):
    """Abstract interface for agent memory."""

    @abstractmethod
    def save(self, agent_id: str | None, content: str, metadata: dict[str, Any] | None = None) -> None:
        """Store a piece of content, optionally attributed to an agent."""
        ...

    @abstractmethod
    def search(self, query: str, limit: int = 5) -> list[str]:
        """Return up to `limit` stored contents matching the query, newest first."""
        ...

    @abstractmethod
    def recent(self, agent_id: str | None = None, limit: int = 5) -> list[str]:
        """Return the most recent contents, for one agent or for everyone."""
        ...

    @abstractmethod
    def clear(self) -> None:
        ...

    @abstractmethod
    def clear_for_agent(self, agent_id: str) -> None:
        ...

    @abstractmethod
    def __len__(self) -> int:
        ...


@dataclass
class MemoryEntry:
    """A single stored memory."""

    agent_id: str | None
    content: str
    metadata: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)


class InMemoryMemory(Memory):
    """
    Thread-safe in-process memory.

    Suitable for tests and single-process deployments. Search is a
    case-insensitive substring match.
    """

    def __init__(self):
        self._entries: list[MemoryEntry] = []
        self._lock = threading.Lock()

    def save(self, agent_id: str | None, content: str, metadata: dict[str, Any] | None = None) -> None:
        entry = MemoryEntry(agent_id=agent_id, content=content, metadata=dict(metadata or {}))
        with self._lock:
            self._entries.append(entry)

    def search(self, query: str, limit: int = 5) -> list[str]:
        if not query or not query.strip():
            return []
        needle = query.lower()
        with self._lock:
            matches = [e for e in self._entries if needle in e.content.lower()]
        return [e.content for e in reversed(matches)][:limit]

    def recent(self, agent_id: str | None = None, limit: int = 5) -> list[str]:
        with self._lock:
            entries = [
                e for e in self._entries
                if agent_id is None or e.agent_id == agent_id
            ]
        return [e.content for e in reversed(entries)][:limit]

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def clear_for_agent(self, agent_id: str) -> None:
        with self._lock:
            self._entries = [e for e in self._entries if e.agent_id != agent_id]

    def size_for_agent(self, agent_id: str) -> int:
        with self._lock:
            return sum(1 for e in self._entries if e.agent_id == agent_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
