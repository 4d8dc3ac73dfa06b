"""
Dependency resolution for task sets.

Validation rejects unknown dependency ids; ordering linearizes the graph with
a Kahn-style breadth-first pass that keeps declaration order among tasks that
become ready at the same time.
"""

from collections import deque

from .errors import ConfigurationError, CyclicDependencyError, UnknownDependencyError
from .task import Task


def validate_dependencies(tasks: list[Task]) -> None:
    """
    Check that task ids are unique and every dependency refers to a known task.

    Raises:
        ConfigurationError: If two tasks share an id
        UnknownDependencyError: For the first dependency id (in declaration
            order) that is not in the task set
    """
    seen: set[str] = set()
    for task in tasks:
        if task.id in seen:
            raise ConfigurationError(f"Duplicate task id: {task.id}")
        seen.add(task.id)

    for task in tasks:
        for dep in task.depends_on:
            if dep not in seen:
                raise UnknownDependencyError(task.id, dep)


def order_tasks(tasks: list[Task]) -> list[Task]:
    """
    Order tasks so that each follows all of its dependencies.

    Args:
        tasks: Tasks in declaration order

    Returns:
        Tasks in execution order

    Raises:
        CyclicDependencyError: If the tasks cannot be linearized (a cycle,
            or a dependency that never becomes satisfiable)
    """
    ordered: list[Task] = []
    processed: set[str] = set()
    queued: set[str] = set()
    queue: deque[Task] = deque()

    for task in tasks:
        if not task.depends_on:
            queue.append(task)
            queued.add(task.id)

    while queue:
        current = queue.popleft()
        ordered.append(current)
        processed.add(current.id)

        for task in tasks:
            if task.id not in queued and task.is_ready(processed):
                queue.append(task)
                queued.add(task.id)

    if len(ordered) != len(tasks):
        raise CyclicDependencyError([t.id for t in tasks if t.id not in processed])

    return ordered


def dependency_levels(tasks: list[Task]) -> list[list[str]]:
    """
    Group task ids by dependency depth.

    Level 0 holds tasks without dependencies; level n holds tasks whose
    deepest dependency sits on level n-1.
    """
    depth: dict[str, int] = {}
    for task in order_tasks(tasks):
        depth[task.id] = 1 + max((depth[d] for d in task.depends_on), default=-1)

    levels: list[list[str]] = [[] for _ in range(max(depth.values(), default=-1) + 1)]
    for task in tasks:
        levels[depth[task.id]].append(task.id)
    return levels
