"""Configuration helpers for agent definition files."""

from __future__ import annotations

import importlib
import pathlib
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, MutableMapping, Optional

import yaml

from .errors import ConfigError

__all__ = [
    "AgentConfig",
    "ConfigError",
    "ExecutionSpec",
    "LLMSpec",
    "TaskSpec",
    "ToolSpec",
    "import_string",
    "instantiate_from_path",
]


@dataclass
class ExecutionSpec:
    """Runtime execution parameters for an agent."""

    max_parallel: int = 4
    workspace: str = "workspace"
    allowed_commands: List[str] = field(default_factory=list)

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "ExecutionSpec":
        if not data:
            return cls()
        try:
            max_parallel = int(data.get("max_parallel", 4))
        except (TypeError, ValueError) as exc:
            raise ConfigError("execution.max_parallel must be an integer") from exc
        if max_parallel < 1:
            raise ConfigError("execution.max_parallel must be at least 1")
        return cls(
            max_parallel=max_parallel,
            workspace=str(data.get("workspace", "workspace")),
            allowed_commands=[str(item) for item in data.get("allowed_commands") or []],
        )


@dataclass
class LLMSpec:
    """Language model provider used for neural tasks."""

    provider: str = "organic.llm.provider:ConsoleEchoProvider"
    params: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "LLMSpec":
        if not data:
            return cls()
        return cls(
            provider=str(data.get("provider", cls.provider)),
            params=dict(data.get("params", {})),
        )


@dataclass
class TaskSpec:
    """A task declaration as written in the agent file."""

    name: str
    inputs: Dict[str, Any] = field(default_factory=dict)
    outputs: Dict[str, Any] = field(default_factory=dict)
    instructions: Optional[str] = None
    implementation: Optional[str] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "TaskSpec":
        if not isinstance(data, Mapping):
            raise ConfigError(f"Task entries must be mappings, got {type(data).__name__}")
        if "name" not in data:
            raise ConfigError("Task is missing required key: name")
        name = str(data["name"])
        if not data.get("instructions") and not data.get("implementation"):
            raise ConfigError(f"Task '{name}' requires instructions or an implementation path")
        for key in ("inputs", "outputs"):
            if data.get(key) is not None and not isinstance(data[key], Mapping):
                raise ConfigError(f"Task '{name}' {key} must be a mapping of name to type")
        return cls(
            name=name,
            inputs=dict(data.get("inputs") or {}),
            outputs=dict(data.get("outputs") or {}),
            instructions=data.get("instructions"),
            implementation=data.get("implementation"),
        )


@dataclass
class ToolSpec:
    """Configuration for a tool instance."""

    name: str
    type: str
    args: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, name: str, data: Mapping[str, Any]) -> "ToolSpec":
        if "type" not in data:
            raise ConfigError(f"Tool '{name}' requires a type path")
        return cls(name=name, type=str(data["type"]), args=dict(data.get("args", {})))


@dataclass
class AgentConfig:
    """Representation of an agent YAML file."""

    name: str
    description: Optional[str]
    tasks: List[TaskSpec]
    llm: LLMSpec = field(default_factory=LLMSpec)
    execution: ExecutionSpec = field(default_factory=ExecutionSpec)
    tool_specs: Dict[str, ToolSpec] = field(default_factory=dict)
    main: Optional[str] = None

    @classmethod
    def from_file(cls, path: str | pathlib.Path) -> "AgentConfig":
        path = pathlib.Path(path)
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigError(f"Cannot read agent file '{path}': {exc}") from exc
        return cls.from_yaml(text, default_name=path.stem)

    @classmethod
    def from_yaml(cls, text: str, *, default_name: str = "agent") -> "AgentConfig":
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ConfigError(f"Agent file is not valid YAML: {exc}") from exc
        if not isinstance(data, MutableMapping):
            raise ConfigError("Configuration root must be a mapping")
        return cls.from_mapping(data, default_name=default_name)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], *, default_name: str = "agent") -> "AgentConfig":
        raw_tasks = data.get("tasks") or []
        if not isinstance(raw_tasks, list):
            raise ConfigError("tasks must be a list")
        tasks = [TaskSpec.from_mapping(item) for item in raw_tasks]
        if not tasks:
            raise ConfigError("At least one task must be defined")
        tool_specs = {
            name: ToolSpec.from_mapping(name, info)
            for name, info in (data.get("tools") or {}).items()
        }
        return cls(
            name=str(data.get("name", default_name)),
            description=data.get("description"),
            tasks=tasks,
            llm=LLMSpec.from_mapping(data.get("llm")),
            execution=ExecutionSpec.from_mapping(data.get("execution")),
            tool_specs=tool_specs,
            main=data.get("main"),
        )

    def get_task(self, name: str) -> TaskSpec:
        for spec in self.tasks:
            if spec.name == name:
                return spec
        raise ConfigError(f"Unknown task '{name}'")


def import_string(path: str) -> Any:
    """Return attribute from module specified by path "module:qualname"."""

    if ":" not in path:
        raise ConfigError(f"Import path '{path}' must use module:qualname format")
    module_path, attr = path.split(":", 1)
    try:
        module = importlib.import_module(module_path)
    except ImportError as exc:
        raise ConfigError(f"Cannot import module '{module_path}': {exc}") from exc
    target: Any = module
    try:
        for part in attr.split("."):
            target = getattr(target, part)
    except AttributeError as exc:
        raise ConfigError(f"Module '{module_path}' has no attribute '{attr}'") from exc
    return target


def instantiate_from_path(path: str, *args: Any, **kwargs: Any) -> Any:
    """Import and instantiate a class given its dotted path."""

    cls = import_string(path)
    return cls(*args, **kwargs)
