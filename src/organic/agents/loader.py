"""Build agents from configuration files."""

from __future__ import annotations

import pathlib
from typing import Optional

from ..config import AgentConfig, import_string, instantiate_from_path
from ..errors import ConfigError
from ..llm.neural import LLMNeuralInvoker, NeuralInvoker
from ..llm.provider import LLMProvider
from ..tasks.executor import TaskExecutor
from ..tasks.registry import TaskRegistry
from ..tools.builtin import register_builtin_tools
from ..tools.registry import ToolRegistry
from .base import Agent


def build_tool_registry(config: AgentConfig) -> ToolRegistry:
    registry = ToolRegistry(agent_name=config.name)
    register_builtin_tools(
        registry,
        workspace_root=config.execution.workspace,
        allowed_commands=config.execution.allowed_commands,
    )
    registry.configure_from_specs(config.tool_specs)
    return registry


def build_task_registry(config: AgentConfig) -> TaskRegistry:
    """Register every declared task; contract problems raise immediately."""

    registry = TaskRegistry()
    for spec in config.tasks:
        implementation = import_string(spec.implementation) if spec.implementation else None
        if implementation is not None and not callable(implementation):
            raise ConfigError(f"Implementation '{spec.implementation}' for task '{spec.name}' is not callable")
        registry = registry.register(
            spec.name,
            spec.inputs,
            spec.outputs,
            instructions=spec.instructions,
            implementation=implementation,
        )
    return registry


def build_invoker(config: AgentConfig, provider: Optional[LLMProvider] = None) -> NeuralInvoker:
    if provider is None:
        provider = instantiate_from_path(config.llm.provider, **config.llm.params)
    if not hasattr(provider, "generate"):
        raise ConfigError(f"LLM provider '{config.llm.provider}' has no generate method")
    return LLMNeuralInvoker(provider, agent_name=config.name)


def load_agent(config: AgentConfig, *, provider: Optional[LLMProvider] = None) -> Agent:
    """Materialise an :class:`Agent` from its configuration.

    ``provider`` overrides the configured LLM provider, which is handy in
    tests and when the caller already holds a client.
    """

    tools = build_tool_registry(config)
    tasks = build_task_registry(config)
    invoker = build_invoker(config, provider)
    executor = TaskExecutor(tasks, invoker, tools, max_parallel=config.execution.max_parallel)
    main = import_string(config.main) if config.main else None
    if main is not None and not callable(main):
        raise ConfigError(f"Main entry point '{config.main}' is not callable")
    return Agent(
        name=config.name,
        description=config.description or "",
        executor=executor,
        main=main,
    )


def load_agent_file(path: str | pathlib.Path, *, provider: Optional[LLMProvider] = None) -> Agent:
    return load_agent(AgentConfig.from_file(path), provider=provider)
