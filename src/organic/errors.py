"""Exception types raised by the task runtime."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Sequence


class OrganicError(Exception):
    """Base class for every error raised by the runtime itself."""


class ConfigError(OrganicError):
    """Raised when agent configuration files are invalid."""


class CoercionError(OrganicError):
    """A raw value could not be converted into a declared type."""

    def __init__(self, value: Any, target_type: str, reason: str) -> None:
        self.value = value
        self.target_type = target_type
        self.reason = reason
        super().__init__(f"Cannot coerce {value!r} to {target_type}: {reason}")


class TaskNotFoundError(OrganicError):
    def __init__(self, task_name: str, available: Iterable[str] = ()) -> None:
        self.task_name = task_name
        self.available = sorted(available)
        listing = ", ".join(self.available) or "none"
        super().__init__(f"Task '{task_name}' not found. Available tasks: {listing}")


class DuplicateTaskError(OrganicError):
    def __init__(self, task_name: str) -> None:
        self.task_name = task_name
        super().__init__(f"Task '{task_name}' is already registered")


class InvalidContractError(OrganicError):
    """A task declaration is malformed. Lists every problem found."""

    def __init__(self, task_name: str, problems: Sequence[str]) -> None:
        self.task_name = task_name
        self.problems = list(problems)
        super().__init__(f"Invalid contract for task '{task_name}': " + "; ".join(self.problems))


class InputValidationError(OrganicError):
    """One or more inputs failed coercion against the input contract."""

    def __init__(self, task_name: str, errors: Mapping[str, CoercionError]) -> None:
        self.task_name = task_name
        self.errors: Dict[str, CoercionError] = dict(errors)
        details = "; ".join(f"{name}: {err.reason}" for name, err in self.errors.items())
        super().__init__(f"Invalid inputs for task '{task_name}': {details}")

    @property
    def parameters(self) -> List[str]:
        return list(self.errors)


class OutputValidationError(OrganicError):
    """The raw result did not satisfy the output contract."""

    def __init__(
        self,
        task_name: str,
        missing: Sequence[str] = (),
        errors: Mapping[str, CoercionError] | None = None,
    ) -> None:
        self.task_name = task_name
        self.missing = list(missing)
        self.errors: Dict[str, CoercionError] = dict(errors or {})
        parts = []
        if self.missing:
            parts.append("missing fields " + ", ".join(self.missing))
        parts.extend(f"{name}: {err.reason}" for name, err in self.errors.items())
        super().__init__(f"Invalid outputs for task '{task_name}': " + "; ".join(parts))

    @property
    def fields(self) -> List[str]:
        return self.missing + [name for name in self.errors if name not in self.missing]


class NeuralInvokerUnavailableError(OrganicError):
    def __init__(self, task_name: str) -> None:
        self.task_name = task_name
        super().__init__(
            f"Task '{task_name}' is neural but the executor has no neural invoker configured"
        )


class SecurityViolationError(OrganicError):
    """An operation outside the sandboxed helper surface was attempted."""

    def __init__(self, operation: str, message: str) -> None:
        self.operation = operation
        super().__init__(message)


class BatchExecutionError(OrganicError):
    """At least one entry of a parallel batch failed.

    ``failures`` maps the index of every failed entry to its exception and
    ``outcomes`` holds every entry, successes included, in submission order.
    """

    def __init__(self, failures: Mapping[int, BaseException], outcomes: Sequence[Any]) -> None:
        self.failures: Dict[int, BaseException] = dict(sorted(failures.items()))
        self.outcomes = list(outcomes)
        details = "; ".join(
            f"[{index}] {type(exc).__name__}: {exc}" for index, exc in self.failures.items()
        )
        super().__init__(
            f"{len(self.failures)} of {len(self.outcomes)} tasks failed: {details}"
        )

    @property
    def failed_indices(self) -> List[int]:
        return list(self.failures)


class ProviderError(OrganicError):
    """The language model backend could not produce a reply."""
