"""
Execution strategies for orchestrator runs.
"""

from .base import Process, ProcessType, new_run_id
from .delegation import CapabilityKeywordDelegation, DelegationStrategy
from .hierarchical import HierarchicalProcess
from .sequential import SequentialProcess

__all__ = [
    "Process",
    "ProcessType",
    "new_run_id",
    "DelegationStrategy",
    "CapabilityKeywordDelegation",
    "SequentialProcess",
    "HierarchicalProcess",
]
