"""Task definitions: the immutable contract plus an implementation strategy."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Mapping, Optional, Union

from ..errors import InvalidContractError
from .coercion import SemanticType, TYPE_NAMES, parse_type

if TYPE_CHECKING:  # pragma: no cover
    from .context import ExecutionContext

SymbolicCallable = Callable[[Mapping[str, Any], "ExecutionContext"], Any]
Contract = Mapping[str, SemanticType]


@dataclass(frozen=True)
class SymbolicImplementation:
    """Explicit Python logic satisfying a task contract."""

    func: SymbolicCallable


@dataclass(frozen=True)
class NeuralImplementation:
    """Natural-language instructions executed by a language model."""

    instructions: str


Implementation = Union[SymbolicImplementation, NeuralImplementation]


@dataclass(frozen=True)
class TaskDefinition:
    """A named unit of work with a stable input/output contract.

    Instances are never mutated. Switching strategy produces a new definition
    through :meth:`with_implementation`, so anything already holding the old
    definition keeps a consistent view of it.
    """

    name: str
    inputs: Contract
    outputs: Contract
    implementation: Implementation
    instructions: Optional[str] = field(default=None, compare=False)

    @property
    def is_symbolic(self) -> bool:
        return isinstance(self.implementation, SymbolicImplementation)

    @property
    def is_neural(self) -> bool:
        return isinstance(self.implementation, NeuralImplementation)

    @property
    def strategy(self) -> str:
        return "symbolic" if self.is_symbolic else "neural"

    def same_contract(self, other: "TaskDefinition") -> bool:
        return (
            self.name == other.name
            and dict(self.inputs) == dict(other.inputs)
            and dict(self.outputs) == dict(other.outputs)
        )

    def with_implementation(self, func: SymbolicCallable) -> "TaskDefinition":
        """Return a symbolic copy of this task with an identical contract."""

        if not callable(func):
            raise InvalidContractError(self.name, ["implementation must be callable"])
        return dataclasses.replace(self, implementation=SymbolicImplementation(func))

    def to_schema(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": self.strategy,
            "instructions": self.instructions,
            "inputs": _contract_schema(self.inputs),
            "outputs": _contract_schema(self.outputs),
        }


def _contract_schema(contract: Contract) -> Dict[str, Any]:
    return {
        "type": "object",
        "properties": {key: {"type": value.value} for key, value in contract.items()},
        "required": list(contract),
    }


def _validate_contract(label: str, contract: Any, problems: List[str]) -> Contract:
    if contract is None:
        return MappingProxyType({})
    if not isinstance(contract, Mapping):
        problems.append(f"{label} must be a mapping, got {type(contract).__name__}")
        return MappingProxyType({})
    resolved: Dict[str, SemanticType] = {}
    for key, declared in contract.items():
        if not isinstance(key, str) or not key.strip():
            problems.append(f"{label} parameter name {key!r} must be a non-empty string")
            continue
        try:
            resolved[key] = parse_type(declared)
        except ValueError:
            problems.append(
                f"{label} type for '{key}' must be one of {', '.join(TYPE_NAMES)}, got {declared!r}"
            )
    return MappingProxyType(resolved)


def define_task(
    name: str,
    inputs: Optional[Mapping[str, Any]] = None,
    outputs: Optional[Mapping[str, Any]] = None,
    *,
    instructions: Optional[str] = None,
    implementation: Optional[SymbolicCallable] = None,
) -> TaskDefinition:
    """Validate a declaration and build its :class:`TaskDefinition`.

    Every problem is collected before raising, so a single
    :class:`InvalidContractError` describes the whole declaration.
    """

    problems: List[str] = []
    label = name if isinstance(name, str) and name.strip() else repr(name)
    if not isinstance(name, str) or not name.strip():
        problems.append("task name must be a non-empty string")
    input_contract = _validate_contract("inputs", inputs, problems)
    output_contract = _validate_contract("outputs", outputs, problems)

    if instructions is not None and (not isinstance(instructions, str) or not instructions.strip()):
        problems.append("instructions must be a non-empty string")
    if implementation is not None and not callable(implementation):
        problems.append("implementation must be callable")
    if instructions is None and implementation is None:
        problems.append("either instructions or an implementation is required")

    if problems:
        raise InvalidContractError(label, problems)

    strategy: Implementation
    if implementation is not None:
        strategy = SymbolicImplementation(implementation)
    else:
        strategy = NeuralImplementation(instructions)  # type: ignore[arg-type]
    return TaskDefinition(
        name=name,
        inputs=input_contract,
        outputs=output_contract,
        implementation=strategy,
        instructions=instructions,
    )
