"""
Delegation strategies: which worker a hierarchical manager hands a task to.
"""

import hashlib
import re
from abc import ABC, abstractmethod

from ..agent import Agent
from ..errors import ConfigurationError
from ..task import Task


# Words too common to signal expertise
STOPWORDS = frozenset({
    "the", "and", "for", "with", "from", "into", "that", "this", "all",
    "any", "are", "was", "will", "its", "our", "your", "their", "about",
    "task", "tasks", "make", "create", "provide", "using", "use",
})

_WORD = re.compile(r"[a-z0-9]+")


def keywords(text: str) -> set[str]:
    """Lower-cased words of at least three characters, minus stopwords."""
    return {w for w in _WORD.findall(text.lower()) if len(w) >= 3 and w not in STOPWORDS}


def stable_index(key: str, size: int) -> int:
    """Deterministic bucket for a key, identical across processes."""
    digest = hashlib.sha256(key.encode()).hexdigest()
    return int(digest, 16) % size


class DelegationStrategy(ABC):
    """
    Abstract interface for choosing a worker for a task.

    Replaceable so that a planner that understands the manager's
    coordination response can be substituted.
    """

    @abstractmethod
    def select(self, task: Task, workers: list[Agent]) -> Agent:
        """
        Pick the worker that should perform a task.

        Args:
            task: Task being delegated
            workers: Candidate workers (never includes the manager)

        Returns:
            One of the workers
        """
        ...


class CapabilityKeywordDelegation(DelegationStrategy):
    """
    Default heuristic, in priority order:

    1. First worker whose capabilities intersect the task's required tools
    2. First worker whose role or goal contains a keyword of the description
    3. sha256(task id) modulo the number of workers
    """

    def select(self, task: Task, workers: list[Agent]) -> Agent:
        if not workers:
            raise ConfigurationError("No workers available for delegation")

        required = {t.lower() for t in task.tools}
        if required:
            for worker in workers:
                if worker.capabilities & required:
                    return worker

        task_words = keywords(task.description)
        if task_words:
            for worker in workers:
                profile = f"{worker.role} {worker.goal}".lower()
                if any(word in profile for word in task_words):
                    return worker

        return workers[stable_index(task.id, len(workers))]
