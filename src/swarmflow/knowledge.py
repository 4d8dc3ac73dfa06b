"""
Knowledge stores consulted by agents before they work on a task.
"""

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


class Knowledge(ABC):
    """Abstract interface for a knowledge base."""

    @abstractmethod
    def query(self, query: str) -> str:
        """Return the single most relevant source text, or '' if none."""
        ...

    @abstractmethod
    def search(self, query: str, limit: int = 5) -> list[str]:
        ...

    @abstractmethod
    def add_source(self, source_id: str, content: str, metadata: dict[str, Any] | None = None) -> None:
        ...

    @abstractmethod
    def remove_source(self, source_id: str) -> None:
        ...

    @abstractmethod
    def sources(self) -> list[str]:
        ...

    def has_source(self, source_id: str) -> bool:
        return source_id in self.sources()


@dataclass
class KnowledgeSource:
    source_id: str
    content: str
    metadata: dict[str, Any] = field(default_factory=dict)
    added_at: datetime = field(default_factory=datetime.now)


class InMemoryKnowledge(Knowledge):
    """
    Keyword-matching knowledge base kept in process memory.

    Relevance is the number of case-insensitive occurrences of the query in
    a source's content.
    """

    def __init__(self):
        self._sources: dict[str, KnowledgeSource] = {}
        self._lock = threading.Lock()

    def _ranked(self, query: str) -> list[KnowledgeSource]:
        if not query or not query.strip():
            return []
        needle = query.lower()
        with self._lock:
            candidates = list(self._sources.values())
        scored = [(s.content.lower().count(needle), s) for s in candidates]
        # sorted() is stable, so equal scores keep insertion order
        return [s for count, s in sorted(scored, key=lambda pair: -pair[0]) if count > 0]

    def query(self, query: str) -> str:
        ranked = self._ranked(query)
        return ranked[0].content if ranked else ""

    def search(self, query: str, limit: int = 5) -> list[str]:
        return [s.content for s in self._ranked(query)[:limit]]

    def add_source(self, source_id: str, content: str, metadata: dict[str, Any] | None = None) -> None:
        if not source_id or not source_id.strip():
            raise ValueError("Source ID cannot be empty")
        if content is None:
            raise ValueError("Content cannot be None")
        with self._lock:
            self._sources[source_id] = KnowledgeSource(
                source_id=source_id,
                content=content,
                metadata=dict(metadata or {}),
            )

    def remove_source(self, source_id: str) -> None:
        with self._lock:
            self._sources.pop(source_id, None)

    def sources(self) -> list[str]:
        with self._lock:
            return list(self._sources)

    def get_source_content(self, source_id: str) -> str | None:
        with self._lock:
            source = self._sources.get(source_id)
        return source.content if source else None

    def clear(self) -> None:
        with self._lock:
            self._sources.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sources)
