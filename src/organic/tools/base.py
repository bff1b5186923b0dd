"""Base classes for tools."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping


@dataclass
class ToolContext:
    """Metadata passed to tool invocations."""

    agent_name: str
    task_name: str | None = None
    metadata: Dict[str, str] = field(default_factory=dict)


@dataclass
class ToolResult:
    """Result returned by a tool."""

    content: Any
    metadata: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ToolDescriptor:
    """What a neural invocation is told about an available tool."""

    name: str
    description: str
    parameters: Mapping[str, str] = field(default_factory=dict)


class Tool:
    """Base tool class."""

    name: str
    description: str
    parameters: Dict[str, str] = {}

    def __init__(self, name: str, description: str | None = None, **kwargs: object) -> None:
        self.name = name
        self.description = description or self.__class__.__doc__ or ""
        self.config = kwargs

    def describe(self) -> ToolDescriptor:
        return ToolDescriptor(name=self.name, description=self.description, parameters=dict(self.parameters))

    def run(self, *, arguments: Mapping[str, Any], context: ToolContext) -> ToolResult:  # pragma: no cover - abstract
        raise NotImplementedError
