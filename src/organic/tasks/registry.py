"""Immutable task registry snapshots."""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Dict, Iterable, Iterator, Mapping, Optional

from ..errors import DuplicateTaskError, InvalidContractError, TaskNotFoundError
from .base import SymbolicCallable, TaskDefinition, define_task


class TaskRegistry(Mapping[str, TaskDefinition]):
    """Read-only mapping of task name to :class:`TaskDefinition`.

    Registering or replacing a task returns a new snapshot and leaves the
    receiver untouched. Executors swap whole snapshots, never entries.
    """

    def __init__(self, tasks: Optional[Mapping[str, TaskDefinition]] = None) -> None:
        self._tasks: Mapping[str, TaskDefinition] = MappingProxyType(dict(tasks or {}))

    @classmethod
    def from_definitions(cls, definitions: Iterable[TaskDefinition]) -> "TaskRegistry":
        registry = cls()
        for definition in definitions:
            registry = registry.add(definition)
        return registry

    def register(
        self,
        name: str,
        inputs: Optional[Mapping[str, Any]] = None,
        outputs: Optional[Mapping[str, Any]] = None,
        *,
        instructions: Optional[str] = None,
        implementation: Optional[SymbolicCallable] = None,
    ) -> "TaskRegistry":
        if name in self._tasks:
            raise DuplicateTaskError(name)
        definition = define_task(
            name,
            inputs,
            outputs,
            instructions=instructions,
            implementation=implementation,
        )
        return self.add(definition)

    def add(self, definition: TaskDefinition) -> "TaskRegistry":
        if definition.name in self._tasks:
            raise DuplicateTaskError(definition.name)
        tasks: Dict[str, TaskDefinition] = dict(self._tasks)
        tasks[definition.name] = definition
        return TaskRegistry(tasks)

    def replace(self, definition: TaskDefinition) -> "TaskRegistry":
        current = self.get_task(definition.name)
        if not current.same_contract(definition):
            raise InvalidContractError(
                definition.name,
                ["replacement must keep the same input and output contract"],
            )
        tasks = dict(self._tasks)
        tasks[definition.name] = definition
        return TaskRegistry(tasks)

    def get_task(self, name: str) -> TaskDefinition:
        try:
            return self._tasks[name]
        except KeyError:
            raise TaskNotFoundError(name, self._tasks.keys()) from None

    def __getitem__(self, name: str) -> TaskDefinition:
        return self._tasks[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._tasks)

    def __len__(self) -> int:
        return len(self._tasks)

    def __repr__(self) -> str:
        return f"TaskRegistry({', '.join(self._tasks)})"
