"""
Workflow files: JSON descriptions of agents and tasks.

Example:

    {
      "process": "hierarchical",
      "manager": "lead",
      "memory": true,
      "knowledge": {"style-guide": "Prefer short sentences."},
      "agents": [
        {"id": "lead", "role": "Lead", "goal": "Coordinate", "backstory": "...",
         "allow_delegation": true},
        {"id": "writer", "role": "Writer", "goal": "Write copy", "backstory": "...",
         "tools": ["writing"]}
      ],
      "tasks": [
        {"id": "draft", "description": "Draft a post about {topic}",
         "expected_output": "Markdown", "agent": "writer"}
      ]
    }
"""

import json
from pathlib import Path
from typing import Any

from .agent import Agent
from .backends import CapabilityExecutor
from .config import SwarmConfig
from .errors import ConfigurationError
from .knowledge import InMemoryKnowledge
from .memory import InMemoryMemory
from .orchestrator import SwarmDefinition
from .process import ProcessType
from .task import Task


def _require(entry: dict[str, Any], key: str, kind: str) -> Any:
    value = entry.get(key)
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ConfigurationError(f"{kind} entry is missing '{key}': {entry}")
    return value


def _parse_agent(entry: dict[str, Any], executor: CapabilityExecutor) -> Agent:
    kwargs: dict[str, Any] = {}
    if entry.get("id"):
        kwargs["id"] = entry["id"]
    return Agent(
        role=_require(entry, "role", "Agent"),
        goal=_require(entry, "goal", "Agent"),
        backstory=entry.get("backstory") or _require(entry, "goal", "Agent"),
        executor=executor,
        tools=list(entry.get("tools", [])),
        allow_delegation=bool(entry.get("allow_delegation", False)),
        max_execution_time=entry.get("max_execution_time"),
        **kwargs,
    )


def _parse_task(entry: dict[str, Any], agents: dict[str, Agent]) -> Task:
    agent_ref = entry.get("agent")
    agent = None
    if agent_ref is not None:
        if agent_ref not in agents:
            raise ConfigurationError(
                f"Task {entry.get('id', '?')} references unknown agent: {agent_ref}"
            )
        agent = agents[agent_ref]

    kwargs: dict[str, Any] = {}
    if entry.get("id"):
        kwargs["id"] = entry["id"]
    return Task(
        description=_require(entry, "description", "Task"),
        expected_output=entry.get("expected_output", ""),
        agent=agent,
        depends_on=entry.get("depends_on", []),
        tools=entry.get("tools", []),
        async_execution=bool(entry.get("async_execution", False)),
        max_execution_time=entry.get("max_execution_time"),
        output_file=entry.get("output_file"),
        **kwargs,
    )


def parse_workflow(
    data: dict[str, Any],
    executor: CapabilityExecutor,
    config: SwarmConfig | None = None,
) -> SwarmDefinition:
    """
    Build a SwarmDefinition from a workflow dictionary.

    Args:
        data: Parsed workflow document
        executor: Executor shared by every agent
        config: Supplies defaults for process, max_rpm and verbose

    Returns:
        SwarmDefinition ready for build_orchestrator

    Raises:
        ConfigurationError: If the document is malformed or references
            unknown agents
    """
    if not isinstance(data, dict):
        raise ConfigurationError("Workflow must be a JSON object")

    config = config or SwarmConfig()

    process_name = data.get("process", config.process)
    try:
        process = ProcessType(process_name)
    except ValueError:
        raise ConfigurationError(f"Unknown process type: {process_name}") from None

    agent_entries = data.get("agents") or []
    task_entries = data.get("tasks") or []
    if not agent_entries:
        raise ConfigurationError("Workflow defines no agents")
    if not task_entries:
        raise ConfigurationError("Workflow defines no tasks")

    agents: dict[str, Agent] = {}
    for entry in agent_entries:
        agent = _parse_agent(entry, executor)
        if agent.id in agents:
            raise ConfigurationError(f"Duplicate agent id: {agent.id}")
        agents[agent.id] = agent

    manager = None
    manager_ref = data.get("manager")
    if manager_ref is not None:
        if manager_ref not in agents:
            raise ConfigurationError(f"Manager references unknown agent: {manager_ref}")
        manager = agents[manager_ref]

    tasks = [_parse_task(entry, agents) for entry in task_entries]

    memory = InMemoryMemory() if data.get("memory") else None
    knowledge = None
    if data.get("knowledge"):
        knowledge = InMemoryKnowledge()
        for source_id, content in data["knowledge"].items():
            knowledge.add_source(source_id, content)

    return SwarmDefinition(
        agents=tuple(agents.values()),
        tasks=tuple(tasks),
        process=process,
        manager_agent=manager,
        memory=memory,
        knowledge=knowledge,
        max_rpm=data.get("max_rpm", config.max_rpm),
        config=data.get("config", {}),
        verbose=bool(data.get("verbose", config.verbose)),
    )


def load_workflow(
    path: str | Path,
    executor: CapabilityExecutor,
    config: SwarmConfig | None = None,
) -> SwarmDefinition:
    """
    Load a workflow JSON file.

    Raises:
        ConfigurationError: If the file is missing, is not valid JSON or
            describes an invalid workflow
    """
    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"Workflow file not found: {path}")
    try:
        data = json.loads(path.read_text())
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid workflow file {path}: {e}") from e
    return parse_workflow(data, executor, config)
