"""Registry that keeps track of available tools."""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, List, Mapping, Optional

from ..config import ToolSpec, import_string
from ..errors import ConfigError
from .base import Tool, ToolContext, ToolDescriptor

logger = logging.getLogger(__name__)

ToolFactory = Callable[[], Tool]


class ToolRegistry:
    """Stores tool factories and lazily instantiates them when requested.

    :meth:`invoke` is the tool invocation interface handed to symbolic task
    bodies: it returns the tool's raw content, or ``{"error": message}`` when
    the tool is unknown or fails.
    """

    def __init__(self, agent_name: str = "agent") -> None:
        self.agent_name = agent_name
        self._factories: Dict[str, ToolFactory] = {}
        self._instances: Dict[str, Tool] = {}
        self._lock = threading.Lock()

    def register_instance(self, tool: Tool, *, overwrite: bool = False) -> None:
        with self._lock:
            if tool.name in self._instances and not overwrite:
                raise ValueError(f"Tool {tool.name} already registered")
            self._instances[tool.name] = tool

    def register_factory(self, name: str, factory: ToolFactory, *, overwrite: bool = False) -> None:
        with self._lock:
            if name in self._factories and not overwrite:
                raise ValueError(f"Tool factory {name} already registered")
            self._factories[name] = factory
            self._instances.pop(name, None)

    def register_from_spec(self, spec: ToolSpec) -> None:
        """Resolve the tool class now so a bad type path fails while loading."""

        tool_cls = import_string(spec.type)
        if not isinstance(tool_cls, type) or not issubclass(tool_cls, Tool):
            raise ConfigError(f"Tool '{spec.name}' type '{spec.type}' must be a Tool subclass")

        def factory() -> Tool:
            return tool_cls(name=spec.name, **spec.args)

        self.register_factory(spec.name, factory, overwrite=True)

    def configure_from_specs(self, specs: Mapping[str, ToolSpec]) -> None:
        for spec in specs.values():
            self.register_from_spec(spec)

    def get(self, name: str) -> Tool:
        with self._lock:
            if name in self._instances:
                return self._instances[name]
            if name not in self._factories:
                raise KeyError(f"Tool {name} not registered")
            instance = self._factories[name]()
            self._instances[name] = instance
            return instance

    def __contains__(self, name: object) -> bool:
        return name in self._instances or name in self._factories

    def names(self) -> List[str]:
        return sorted(set(self._instances) | set(self._factories))

    def descriptors(self) -> List[ToolDescriptor]:
        """Describe every tool that can be built; broken ones are logged and skipped."""

        descriptors = []
        for name in self.names():
            try:
                tool = self.get(name)
            except Exception as exc:
                logger.warning(
                    "Tool could not be instantiated",
                    extra={"tool": name, "error": f"{type(exc).__name__}: {exc}"},
                )
                continue
            descriptors.append(tool.describe())
        return descriptors

    def invoke(
        self,
        name: str,
        args: Optional[Mapping[str, Any]] = None,
        *,
        task_name: Optional[str] = None,
    ) -> Any:
        if name not in self:
            logger.warning("Unknown tool requested", extra={"tool": name, "task": task_name})
            return {"error": f"Tool '{name}' not registered. Available tools: {', '.join(self.names()) or 'none'}"}
        context = ToolContext(agent_name=self.agent_name, task_name=task_name)
        try:
            result = self.get(name).run(arguments=dict(args or {}), context=context)
        except Exception as exc:
            logger.warning(
                "Tool invocation failed",
                extra={"tool": name, "task": task_name, "error": f"{type(exc).__name__}: {exc}"},
            )
            return {"error": f"{type(exc).__name__}: {exc}"}
        return result.content
