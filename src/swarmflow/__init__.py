"""
swarmflow - Task-dependency orchestration for role-based agents

Agents with roles, goals and capabilities perform tasks that declare
dependencies on one another. An orchestrator resolves the dependency graph,
runs the tasks one at a time under a sequential or manager-led hierarchical
strategy, threads earlier outputs into later prompts and aggregates the
results.
"""

__version__ = "0.1.0"

from .agent import Agent
from .errors import (
    SwarmError,
    ConfigurationError,
    UnknownDependencyError,
    CyclicDependencyError,
    AlreadyExecutedError,
    CapabilityExecutionError,
    RunFailedError,
)
from .events import (
    EventType,
    SwarmEvent,
    EventRecorder,
    ConsoleEventSink,
    fan_out,
)
from .observability import (
    EventStore,
    RunRecording,
    SwarmMetrics,
)
from .output import (
    TaskOutput,
    OrchestrationResult,
)
from .orchestrator import (
    Orchestrator,
    SwarmDefinition,
    SwarmStatus,
    build_orchestrator,
    run_swarm,
)
from .process import (
    ProcessType,
    DelegationStrategy,
    CapabilityKeywordDelegation,
)
from .task import Task, TaskStatus

__all__ = [
    # Version
    "__version__",
    # Model
    "Agent",
    "Task",
    "TaskStatus",
    "TaskOutput",
    "OrchestrationResult",
    # Errors
    "SwarmError",
    "ConfigurationError",
    "UnknownDependencyError",
    "CyclicDependencyError",
    "AlreadyExecutedError",
    "CapabilityExecutionError",
    "RunFailedError",
    # Events
    "EventType",
    "SwarmEvent",
    "EventRecorder",
    "ConsoleEventSink",
    "fan_out",
    # Observability
    "EventStore",
    "RunRecording",
    "SwarmMetrics",
    # Orchestrator
    "Orchestrator",
    "SwarmDefinition",
    "SwarmStatus",
    "ProcessType",
    "DelegationStrategy",
    "CapabilityKeywordDelegation",
    "build_orchestrator",
    "run_swarm",
]
