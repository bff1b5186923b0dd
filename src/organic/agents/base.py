"""Agent: a named set of tasks plus an optional control-flow entry point."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from ..tasks.base import SymbolicCallable, TaskDefinition
from ..tasks.executor import TaskExecutor

logger = logging.getLogger(__name__)

MainCallable = Callable[[Dict[str, Any], "Agent"], Any]


class Agent:
    """Agent whose ``main`` calls tasks by name through its executor.

    ``main`` receives the agent inputs and the agent itself, and uses
    :meth:`execute_task` / :meth:`execute_parallel` the same way regardless
    of whether a task is currently neural or symbolic.
    """

    def __init__(
        self,
        name: str,
        executor: TaskExecutor,
        description: str = "",
        main: Optional[MainCallable] = None,
    ) -> None:
        self.name = name
        self.description = description
        self.executor = executor
        self.main = main

    @property
    def tasks(self) -> List[TaskDefinition]:
        return list(self.executor.registry.values())

    def execute_task(self, name: str, inputs: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        return self.executor.execute_task(name, inputs)

    def execute_parallel(self, task_specs: Sequence[Any], concurrency: Optional[int] = None) -> List[Dict[str, Any]]:
        return self.executor.execute_parallel(task_specs, concurrency)

    def invoke_tool(self, name: str, args: Optional[Mapping[str, Any]] = None) -> Any:
        return self.executor.invoke_tool(name, args)

    def learn(self, task_name: str, implementation: SymbolicCallable) -> TaskDefinition:
        return self.executor.learn(task_name, implementation)

    def run(self, inputs: Optional[Mapping[str, Any]] = None) -> Any:
        if self.main is None:
            raise RuntimeError(f"Agent '{self.name}' has no main entry point")
        if inputs is not None and not isinstance(inputs, Mapping):
            raise TypeError(f"Agent inputs must be a mapping, got {type(inputs).__name__}")
        logger.info("Running agent main", extra={"agent": self.name, "input_keys": sorted(inputs or {})})
        try:
            return self.main(dict(inputs or {}), self)
        except Exception as exc:
            logger.error(
                "Agent main failed",
                extra={"agent": self.name, "error": f"{type(exc).__name__}: {exc}"},
            )
            raise
