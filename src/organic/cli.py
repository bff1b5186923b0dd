"""Command line interface for loading agent files and running their tasks."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .agents.base import Agent
from .agents.loader import load_agent
from .config import AgentConfig
from .errors import BatchExecutionError, InputValidationError, OrganicError, OutputValidationError
from .logging import configure_logging
from .tasks.coercion import COERCION_RULES

app = typer.Typer(help="Organic task runtime CLI")
console = Console()

AGENT_FILE = typer.Argument(..., help="Path to the agent YAML file")
INPUT_OPTION = typer.Option(None, "--input", "-i", help="Input as key=value (repeatable)")
JSON_INPUTS_OPTION = typer.Option(None, "--json-inputs", help="Inputs as a JSON object")
LOG_LEVEL_OPTION = typer.Option("WARNING", "--log-level", help="Logging level")


def _load(path: Path, log_level: str) -> Agent:
    # Implementation paths in the agent file are resolved relative to its directory.
    directory = str(path.resolve().parent)
    if directory not in sys.path:
        sys.path.insert(0, directory)
    agent = load_agent(AgentConfig.from_file(path))
    configure_logging(log_level, agent=agent.name)
    return agent


def _parse_inputs(pairs: Optional[List[str]], json_inputs: Optional[str]) -> Dict[str, Any]:
    inputs: Dict[str, Any] = {}
    if json_inputs:
        try:
            data = json.loads(json_inputs)
        except json.JSONDecodeError as exc:
            raise typer.BadParameter(f"--json-inputs is not valid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise typer.BadParameter("--json-inputs must be a JSON object")
        inputs.update(data)
    for pair in pairs or []:
        if "=" not in pair:
            raise typer.BadParameter(f"Input '{pair}' must use key=value format")
        key, value = pair.split("=", 1)
        inputs[key.strip()] = value
    return inputs


def _report_error(exc: OrganicError) -> None:
    console.print(f"[bold red]Error:[/] {escape(str(exc))}")
    if isinstance(exc, InputValidationError):
        for param, err in exc.errors.items():
            console.print(f"  - input [bold]{param}[/]: {escape(err.reason)}")
    elif isinstance(exc, OutputValidationError):
        for field_name in exc.missing:
            console.print(f"  - output [bold]{field_name}[/]: missing")
        for field_name, err in exc.errors.items():
            console.print(f"  - output [bold]{field_name}[/]: {escape(err.reason)}")
    elif isinstance(exc, BatchExecutionError):
        for index, err in exc.failures.items():
            console.print(f"  - {escape(f'[{index}]')} {type(err).__name__}: {escape(str(err))}")


def _render_contract(contract: Any) -> str:
    return ", ".join(f"{key}: {value}" for key, value in contract.items()) or "-"


@app.command()
def inspect(
    agent_file: Path = AGENT_FILE,
    rules: bool = typer.Option(False, "--rules", help="Also print the type coercion rules"),
    log_level: str = LOG_LEVEL_OPTION,
) -> None:
    """Print the tasks and tools defined by an agent file."""

    configure_logging(log_level)
    try:
        agent = _load(agent_file, log_level)
    except OrganicError as exc:
        _report_error(exc)
        raise typer.Exit(code=1)

    console.print(f"[bold]Agent:[/] {agent.name}\n{agent.description}")
    table = Table(title="Tasks", show_lines=True)
    table.add_column("Task")
    table.add_column("Strategy")
    table.add_column("Inputs")
    table.add_column("Outputs")
    for task in agent.tasks:
        table.add_row(task.name, task.strategy, _render_contract(task.inputs), _render_contract(task.outputs))
    console.print(table)

    console.print("[bold]Tools[/]")
    for descriptor in agent.executor.tool_descriptors():
        console.print(f"- {descriptor.name}: {descriptor.description}")

    if rules:
        rules_table = Table(title="Coercion rules")
        rules_table.add_column("Type")
        rules_table.add_column("Accepts")
        rules_table.add_column("Rule")
        rules_table.add_column("Fails on")
        for semantic_type, rule in COERCION_RULES.items():
            rules_table.add_row(semantic_type.value, rule["accepts"], rule["rule"], rule["fails"])
        console.print(rules_table)


@app.command()
def task(
    agent_file: Path = AGENT_FILE,
    task_name: str = typer.Argument(..., help="Task to execute"),
    inputs: Optional[List[str]] = INPUT_OPTION,
    json_inputs: Optional[str] = JSON_INPUTS_OPTION,
    log_level: str = LOG_LEVEL_OPTION,
) -> None:
    """Execute a single task and print its output as JSON."""

    configure_logging(log_level)
    payload = _parse_inputs(inputs, json_inputs)
    try:
        agent = _load(agent_file, log_level)
        output = agent.execute_task(task_name, payload)
    except OrganicError as exc:
        _report_error(exc)
        raise typer.Exit(code=1)
    console.print_json(json.dumps(output, default=str))


@app.command()
def run(
    agent_file: Path = AGENT_FILE,
    inputs: Optional[List[str]] = INPUT_OPTION,
    json_inputs: Optional[str] = JSON_INPUTS_OPTION,
    log_level: str = LOG_LEVEL_OPTION,
) -> None:
    """Run the agent's main entry point."""

    configure_logging(log_level)
    payload = _parse_inputs(inputs, json_inputs)
    try:
        agent = _load(agent_file, log_level)
        if agent.main is None:
            console.print(f"[bold red]Error:[/] agent '{agent.name}' defines no main entry point")
            raise typer.Exit(code=1)
        result = agent.run(payload)
    except OrganicError as exc:
        _report_error(exc)
        raise typer.Exit(code=1)
    console.print_json(json.dumps(result, default=str))


if __name__ == "__main__":  # pragma: no cover
    app()
