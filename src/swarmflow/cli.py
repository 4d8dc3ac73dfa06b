"""
CLI entry point for swarmflow.
"""

import dataclasses

import click
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from . import __version__
from .config import (
    DEFAULT_CONFIG_PATH,
    EXECUTORS,
    PROCESSES,
    SwarmConfig,
    create_executor,
    format_choices_help,
    load_config,
    save_config,
)
from .errors import SwarmError
from .events import ConsoleEventSink, fan_out
from .observability import EventStore, RunRecording
from .orchestrator import Orchestrator, build_orchestrator
from .process import HierarchicalProcess
from .resolver import dependency_levels, order_tasks
from .workflow import load_workflow


console = Console()


def _parse_inputs(values: tuple[str, ...]) -> dict[str, str]:
    """Turn repeated key=value options into a dict."""
    inputs = {}
    for value in values:
        key, sep, val = value.partition("=")
        if not sep or not key.strip():
            raise click.BadParameter(f"expected key=value, got '{value}'", param_hint="--input")
        inputs[key.strip()] = val
    return inputs


def _save_recording(store: EventStore | None, path: str | None, announce: bool) -> None:
    """Write the recording of the run held by the store, if it started."""
    if store is None or not store.run_ids():
        return
    saved = store.recording(store.run_ids()[-1]).save(path)
    if announce:
        console.print(f"[dim]Recording saved to {saved}[/]")


def _print_error(error: Exception) -> None:
    console.print(f"\n[bold red]Error:[/] {escape(str(error))}")
    if error.__cause__ is not None:
        console.print(f"   [dim]Caused by: {escape(str(error.__cause__))}[/]")


@click.group()
@click.version_option(version=__version__)
def main():
    """🐝 swarmflow - Task-dependency orchestration for role-based agents

    Agents perform tasks that depend on one another. Tasks run one at a
    time, in dependency order (sequential) or delegated by a manager agent
    (hierarchical).

    \b
    Configuration:
      Config file: .swarm/config.json (created by 'swarmflow init')
      CLI flags override config file settings.

    \b
    Quick start:
      swarmflow init                       Initialize config in current project
      swarmflow validate workflow.json     Show the execution plan
      swarmflow run workflow.json -i topic=AI
    """
    pass


@main.command(epilog="\b\n" + format_choices_help(EXECUTORS, "Executors:"))
@click.argument("workflow", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--input", "-i", "inputs",
    multiple=True,
    help="Run input as key=value, substituted into {key} placeholders. Repeatable.",
)
@click.option(
    "--executor", "-e",
    type=click.Choice(list(EXECUTORS)),
    help="Capability executor for every agent. claude (default), opencode, anthropic-api or echo.",
)
@click.option(
    "--config", "-c",
    type=click.Path(exists=True),
    help="Path to config file. Default: .swarm/config.json",
)
@click.option(
    "--llm-model",
    default=None,
    help="Model for the executor (default: claude-sonnet-4-20250514).",
)
@click.option(
    "--json", "as_json",
    is_flag=True,
    help="Print the full result as JSON instead of the final output panel.",
)
@click.option(
    "--quiet", "-q",
    is_flag=True,
    help="Do not stream lifecycle events.",
)
@click.option(
    "--record",
    type=click.Path(dir_okay=False),
    default=None,
    help="Save the run's lifecycle events as a JSON recording (see 'swarmflow replay').",
)
def run(
    workflow: str,
    inputs: tuple[str, ...],
    executor: str | None,
    config: str | None,
    llm_model: str | None,
    as_json: bool,
    quiet: bool,
    record: str | None,
):
    """Run a workflow file once."""
    run_inputs = _parse_inputs(inputs)
    store = EventStore() if record else None

    if not as_json:
        console.print(
            Panel.fit(
                f"[bold blue]🐝 swarmflow v{__version__}[/]",
                border_style="blue",
            )
        )

    try:
        swarm_config = load_config(config)
        if executor:
            swarm_config.executor = executor
        if llm_model:
            swarm_config.llm_model = llm_model

        definition = load_workflow(workflow, create_executor(swarm_config), swarm_config)
        if quiet or as_json:
            definition = dataclasses.replace(definition, verbose=False)

        event_sink = None
        if store is not None:
            console_sink = ConsoleEventSink(console) if definition.verbose else None
            event_sink = fan_out(console_sink, store)

        orchestrator = build_orchestrator(
            definition,
            event_sink=event_sink,
            console=console,
            synthesis_char_limit=swarm_config.synthesis_char_limit,
        )
        result = orchestrator.kickoff(run_inputs)
        orchestrator.shutdown()

    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/]")
        raise SystemExit(1)
    except (SwarmError, ValueError) as e:
        _print_error(e)
        _save_recording(store, record, announce=not as_json)
        raise SystemExit(1)

    _save_recording(store, record, announce=not as_json)

    if as_json:
        click.echo(result.to_json())
        return

    console.print("\n" + "━" * 50)
    console.print(Panel(escape(result.final_output), title="Final Output", border_style="green"))
    seconds = result.execution_time.total_seconds()
    console.print(
        f"[bold green]✅ {len(result.task_outputs)} output(s) in {seconds:.1f}s[/] "
        f"[dim]({result.run_id})[/]"
    )


@main.command()
@click.argument("workflow", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--config", "-c",
    type=click.Path(exists=True),
    help="Path to config file. Default: .swarm/config.json",
)
def validate(workflow: str, config: str | None):
    """Validate a workflow file and show its execution plan (no agents run)."""
    try:
        swarm_config = load_config(config)
        definition = load_workflow(workflow, create_executor(swarm_config), swarm_config)
        orchestrator = Orchestrator(dataclasses.replace(definition, verbose=False))
    except (SwarmError, ValueError) as e:
        _print_error(e)
        raise SystemExit(1)

    console.print(f"\n[bold]📋 Execution plan[/] [dim]({definition.process.value})[/]\n")
    console.print(_plan_table(orchestrator))
    console.print(f"\n[green]✓[/] Workflow is valid: {len(definition.tasks)} task(s), {len(definition.agents)} agent(s)")


def _plan_table(orchestrator: Orchestrator) -> Table:
    definition = orchestrator.definition
    tasks = list(definition.tasks)

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("#", style="dim")
    table.add_column("Task", style="white")
    table.add_column("Agent", style="green")
    table.add_column("Depends on", style="dim")
    table.add_column("Description")

    process = orchestrator.process
    if isinstance(process, HierarchicalProcess):
        table.add_row("-", "coordination", process.manager.role, "", "Manager plans delegation")
        for number, task in enumerate(tasks, start=1):
            worker = process.delegation.select(task, process.workers)
            table.add_row(str(number), task.id, worker.role, ", ".join(task.depends_on), escape(task.description))
        table.add_row("-", "final-synthesis", process.manager.role, "", "Manager synthesizes results")
        return table

    level_of = {
        task_id: level
        for level, ids in enumerate(dependency_levels(tasks))
        for task_id in ids
    }
    for number, task in enumerate(order_tasks(tasks), start=1):
        agent = task.agent.role if task.agent else "[red](unassigned)[/]"
        deps = ", ".join(task.depends_on)
        table.add_row(f"{number} (L{level_of[task.id]})", task.id, agent, deps, escape(task.description))
    return table


@main.command()
@click.argument("recording", type=click.Path(exists=True, dir_okay=False))
def replay(recording: str):
    """Replay a run recording saved with 'swarmflow run --record'."""
    try:
        loaded = RunRecording.load(recording)
    except ValueError as e:
        _print_error(e)
        raise SystemExit(1)

    console.print(f"\n[bold]⏪ Replaying {escape(loaded.run_id)}[/] [dim]({loaded.status})[/]\n")
    loaded.replay(ConsoleEventSink(console))

    summary = loaded.summary
    console.print(
        f"\n[bold]{summary.total_events}[/] event(s), {summary.unique_tasks} task(s), "
        f"{summary.unique_agents} agent(s), {summary.error_count} error(s) "
        f"in {loaded.duration_ms / 1000:.1f}s"
    )


@main.command(epilog="\b\n" + format_choices_help(PROCESSES, "Processes:"))
@click.option(
    "--force", "-f",
    is_flag=True,
    help="Overwrite existing configuration",
)
@click.option(
    "--executor", "-e",
    type=click.Choice(list(EXECUTORS)),
    default="claude",
    help="Capability executor to configure (default: claude).",
)
@click.option(
    "--process", "-p",
    type=click.Choice(list(PROCESSES)),
    default="sequential",
    help="Default process for workflows that name none (default: sequential).",
)
def init(force: bool, executor: str, process: str):
    """Initialize swarmflow in the current project.

    \b
    Creates:
      .swarm/             Directory for swarmflow files
      .swarm/config.json  Executor and process configuration
    """
    console.print("\n[bold]🐝 Initializing swarmflow[/]\n")

    if DEFAULT_CONFIG_PATH.exists() and not force:
        console.print(f"   [yellow]⚠️  {DEFAULT_CONFIG_PATH} already exists[/]")
        console.print("   Use [cyan]--force[/] to overwrite it.")
        return

    path = save_config(SwarmConfig(executor=executor, process=process))
    console.print(f"   [green]✓[/] Created {path}")
    console.print(f"   Executor: [cyan]{executor}[/]  Process: [cyan]{process}[/]")
    console.print("\n[bold]Next steps:[/]")
    console.print("   1. Write a workflow file describing agents and tasks")
    console.print("   2. Run [cyan]swarmflow run workflow.json[/] to start")


@main.group()
def config():
    """View and modify swarmflow configuration.

    \b
    Commands:
      show    Display current configuration
      set     Update a configuration value
    """
    pass


# Map CLI keys (with hyphens) to config keys (with underscores) and valid options
CONFIG_KEYS = {
    "executor": ("executor", ", ".join(EXECUTORS)),
    "llm-model": ("llm_model", "(any)"),
    "llm-timeout": ("llm_timeout", "(integer)"),
    "process": ("process", ", ".join(PROCESSES)),
    "synthesis-char-limit": ("synthesis_char_limit", "(integer >= 100)"),
    "max-rpm": ("max_rpm", "(integer or 'none')"),
    "verbose": ("verbose", "true, false"),
}

_INT_KEYS = {"llm_timeout", "synthesis_char_limit", "max_rpm"}


def _config_exists() -> bool:
    """Check if swarmflow config exists."""
    return DEFAULT_CONFIG_PATH.exists()


@config.command("show")
def config_show():
    """Display current configuration in a formatted table."""
    if not _config_exists():
        console.print("[bold red]Error:[/] swarmflow not initialized.")
        console.print("Run [cyan]swarmflow init[/] first.")
        raise SystemExit(1)

    try:
        config_dict = load_config().to_dict()
    except ValueError as e:
        _print_error(e)
        raise SystemExit(1)

    console.print("\n[bold]🐝 swarmflow Configuration[/]\n")
    console.print(f"   [dim]Config file:[/] {DEFAULT_CONFIG_PATH}\n")

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Setting", style="white")
    table.add_column("Current Value", style="green")
    table.add_column("Valid Options", style="dim")

    for cli_key, (config_key, valid_options) in CONFIG_KEYS.items():
        table.add_row(cli_key, str(config_dict.get(config_key, "")), valid_options)

    console.print(table)


@config.command("set")
@click.argument("key")
@click.argument("value")
def config_set(key: str, value: str):
    """Set a configuration value.

    \b
    KEY is one of: executor, llm-model, llm-timeout, process,
    synthesis-char-limit, max-rpm, verbose

    \b
    Examples:
      swarmflow config set executor anthropic-api
      swarmflow config set process hierarchical
    """
    if not _config_exists():
        console.print("[bold red]Error:[/] swarmflow not initialized.")
        console.print("Run [cyan]swarmflow init[/] first.")
        raise SystemExit(1)

    if key not in CONFIG_KEYS:
        valid_keys = ", ".join(CONFIG_KEYS.keys())
        console.print(f"[bold red]Error:[/] Unknown config key '{key}'")
        console.print(f"Valid keys: {valid_keys}")
        raise SystemExit(1)

    config_key, _ = CONFIG_KEYS[key]
    parsed: object = value
    if config_key in _INT_KEYS:
        if config_key == "max_rpm" and value.lower() == "none":
            parsed = None
        else:
            try:
                parsed = int(value)
            except ValueError:
                console.print(f"[bold red]Error:[/] {key} must be an integer")
                raise SystemExit(1)
    elif config_key == "verbose":
        if value.lower() not in ("true", "false"):
            console.print(f"[bold red]Error:[/] {key} must be true or false")
            raise SystemExit(1)
        parsed = value.lower() == "true"

    # Rebuild through from_dict so the new value is validated
    try:
        data = load_config().to_dict()
        data[config_key] = parsed
        save_config(SwarmConfig.from_dict(data))
    except ValueError as e:
        _print_error(e)
        raise SystemExit(1)

    console.print(f"[green]✓[/] Set {key} = {value}")


if __name__ == "__main__":
    main()
