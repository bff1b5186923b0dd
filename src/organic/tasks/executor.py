"""Task executor: lookup, contract coercion, dispatch and parallel batches."""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Mapping, Optional, Sequence

from ..errors import (
    BatchExecutionError,
    CoercionError,
    InputValidationError,
    NeuralInvokerUnavailableError,
    OutputValidationError,
)
from .base import NeuralImplementation, SymbolicCallable, SymbolicImplementation, TaskDefinition
from .coercion import coerce
from .context import ExecutionContext
from .registry import TaskRegistry

if TYPE_CHECKING:  # pragma: no cover
    from ..llm.neural import NeuralInvoker
    from ..tools.base import ToolDescriptor
    from ..tools.registry import ToolRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TaskInvocation:
    """One entry of a parallel batch."""

    name: str
    inputs: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_value(cls, value: Any) -> "TaskInvocation":
        if isinstance(value, TaskInvocation):
            return value
        if isinstance(value, str):
            name, inputs = value, None
        elif isinstance(value, Mapping):
            if "name" not in value:
                raise ValueError(f"Task spec {value!r} is missing 'name'")
            name, inputs = value["name"], value.get("inputs")
        elif isinstance(value, (list, tuple)) and len(value) in (1, 2):
            name = value[0]
            inputs = value[1] if len(value) == 2 else None
        else:
            raise ValueError(f"Task spec must be (name, inputs), got {value!r}")
        if not isinstance(name, str):
            raise ValueError(f"Task name must be a string, got {name!r}")
        if inputs is not None and not isinstance(inputs, Mapping):
            raise ValueError(f"Inputs for task '{name}' must be a mapping, got {type(inputs).__name__}")
        return cls(name=name, inputs=dict(inputs or {}))


@dataclass(frozen=True)
class TaskOutcome:
    """Per-entry result of a batch: either an output or the error raised."""

    index: int
    name: str
    output: Optional[Dict[str, Any]] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class TaskExecutor:
    """Runs tasks by name against an explicit registry snapshot.

    The executor keeps no global state. Learning a symbolic implementation
    swaps in a whole new registry snapshot; invocations already running keep
    the definition they looked up.
    """

    def __init__(
        self,
        registry: TaskRegistry,
        invoker: Optional["NeuralInvoker"] = None,
        tools: Optional["ToolRegistry"] = None,
        *,
        max_parallel: int = 4,
    ) -> None:
        if max_parallel < 1:
            raise ValueError("max_parallel must be at least 1")
        self._registry = registry
        self._invoker = invoker
        self._tools = tools
        self.max_parallel = max_parallel
        self._swap_lock = threading.Lock()

    @property
    def registry(self) -> TaskRegistry:
        return self._registry

    def swap_registry(self, registry: TaskRegistry) -> TaskRegistry:
        with self._swap_lock:
            previous, self._registry = self._registry, registry
        logger.info("Task registry swapped", extra={"task_count": len(registry)})
        return previous

    def learn(self, name: str, implementation: SymbolicCallable) -> TaskDefinition:
        """Install a symbolic implementation for ``name`` keeping its contract."""

        with self._swap_lock:
            current = self._registry
            definition = current.get_task(name).with_implementation(implementation)
            self._registry = current.replace(definition)
        logger.info("Symbolic implementation installed", extra={"task": name})
        return definition

    def tool_descriptors(self) -> List["ToolDescriptor"]:
        if self._tools is None:
            return []
        return self._tools.descriptors()

    def invoke_tool(self, name: str, args: Optional[Mapping[str, Any]] = None, *, task_name: Optional[str] = None) -> Any:
        if self._tools is None:
            return {"error": f"Tool '{name}' not registered. Available tools: none"}
        return self._tools.invoke(name, args, task_name=task_name)

    # single invocation ----------------------------------------------------

    def execute_task(self, name: str, inputs: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        started = time.perf_counter()
        try:
            task = self._registry.get_task(name)
            coerced = self._coerce_inputs(task, inputs)
            logger.debug("Executing task", extra={"task": name, "strategy": task.strategy})
            raw = self._dispatch(task, coerced)
            output = self._coerce_outputs(task, raw)
        except Exception as exc:
            logger.warning(
                "Task execution failed",
                extra={
                    "task": name,
                    "error": f"{type(exc).__name__}: {exc}",
                    "duration_s": round(time.perf_counter() - started, 4),
                },
            )
            raise
        logger.debug(
            "Task completed",
            extra={"task": name, "duration_s": round(time.perf_counter() - started, 4)},
        )
        return output

    def _coerce_inputs(self, task: TaskDefinition, inputs: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
        if inputs is None:
            inputs = {}
        if not isinstance(inputs, Mapping):
            raise TypeError(f"Inputs for task '{task.name}' must be a mapping, got {type(inputs).__name__}")
        coerced: Dict[str, Any] = {}
        errors: Dict[str, CoercionError] = {}
        for param, declared in task.inputs.items():
            try:
                coerced[param] = coerce(inputs.get(param), declared)
            except CoercionError as exc:
                errors[param] = exc
        if errors:
            raise InputValidationError(task.name, errors)
        extra = [key for key in inputs if key not in task.inputs]
        if extra:
            logger.debug("Dropping unexpected inputs", extra={"task": task.name, "unexpected": extra})
        return coerced

    def _dispatch(self, task: TaskDefinition, inputs: Dict[str, Any]) -> Any:
        implementation = task.implementation
        if isinstance(implementation, SymbolicImplementation):
            context = ExecutionContext(
                task.name,
                inputs,
                tool_invoker=lambda tool, args: self.invoke_tool(tool, args, task_name=task.name),
            )
            return implementation.func(dict(inputs), context)
        if isinstance(implementation, NeuralImplementation):
            if self._invoker is None:
                raise NeuralInvokerUnavailableError(task.name)
            return self._invoker.invoke(
                implementation.instructions,
                dict(inputs),
                self.tool_descriptors(),
                task_name=task.name,
                output_contract=dict(task.outputs),
            )
        raise TypeError(f"Task '{task.name}' has an unknown implementation {implementation!r}")

    def _coerce_outputs(self, task: TaskDefinition, raw: Any) -> Dict[str, Any]:
        contract = task.outputs
        if not contract:
            return {}
        if isinstance(raw, str) and len(contract) == 1:
            raw = {next(iter(contract)): raw}
        if not isinstance(raw, Mapping):
            raise OutputValidationError(task.name, missing=list(contract))
        output: Dict[str, Any] = {}
        missing: List[str] = []
        errors: Dict[str, CoercionError] = {}
        for field_name, declared in contract.items():
            value = raw.get(field_name)
            if value is None:
                missing.append(field_name)
                continue
            try:
                output[field_name] = coerce(value, declared)
            except CoercionError as exc:
                errors[field_name] = exc
        if missing or errors:
            raise OutputValidationError(task.name, missing=missing, errors=errors)
        return output

    # batches --------------------------------------------------------------

    def execute_batch(
        self,
        task_specs: Iterable[Any],
        concurrency: Optional[int] = None,
    ) -> List[TaskOutcome]:
        """Run independent invocations and report every entry's outcome.

        Never raises for task failures: each failure is recorded on its
        :class:`TaskOutcome`. A failing entry does not cancel the others.
        """

        invocations = [TaskInvocation.from_value(spec) for spec in task_specs]
        limit = self.max_parallel if concurrency is None else concurrency
        if limit < 1:
            raise ValueError("concurrency must be at least 1")
        if not invocations:
            return []

        logger.info("Executing task batch", extra={"count": len(invocations), "concurrency": limit})
        started = time.perf_counter()
        if limit == 1 or len(invocations) == 1:
            outcomes = [self._run_outcome(index, item) for index, item in enumerate(invocations)]
        else:
            workers = min(limit, len(invocations))
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="organic-task") as pool:
                futures = [
                    pool.submit(self._run_outcome, index, item) for index, item in enumerate(invocations)
                ]
                outcomes = [future.result() for future in futures]
        logger.info(
            "Task batch complete",
            extra={
                "count": len(outcomes),
                "failed": sum(1 for outcome in outcomes if not outcome.ok),
                "duration_s": round(time.perf_counter() - started, 4),
            },
        )
        return outcomes

    def execute_parallel(
        self,
        task_specs: Sequence[Any],
        concurrency: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Run a batch and return outputs in submission order.

        Raises :class:`BatchExecutionError` after every entry has finished if
        any of them failed.
        """

        outcomes = self.execute_batch(task_specs, concurrency)
        failures = {outcome.index: outcome.error for outcome in outcomes if outcome.error is not None}
        if failures:
            raise BatchExecutionError(failures, outcomes)
        return [outcome.output for outcome in outcomes]  # type: ignore[misc]

    def _run_outcome(self, index: int, invocation: TaskInvocation) -> TaskOutcome:
        try:
            output = self.execute_task(invocation.name, invocation.inputs)
        except Exception as exc:
            return TaskOutcome(index=index, name=invocation.name, error=exc)
        return TaskOutcome(index=index, name=invocation.name, output=output)
