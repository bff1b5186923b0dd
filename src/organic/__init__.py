"""Organic task runtime: typed tasks with symbolic or neural implementations."""

from importlib import metadata

from .agents import Agent, load_agent, load_agent_file
from .errors import (
    BatchExecutionError,
    CoercionError,
    ConfigError,
    DuplicateTaskError,
    InputValidationError,
    InvalidContractError,
    NeuralInvokerUnavailableError,
    OrganicError,
    OutputValidationError,
    ProviderError,
    SecurityViolationError,
    TaskNotFoundError,
)
from .tasks import (
    ExecutionContext,
    SemanticType,
    TaskDefinition,
    TaskExecutor,
    TaskRegistry,
    coerce,
    define_task,
)

try:
    __version__ = metadata.version("organic-tasks")
except metadata.PackageNotFoundError:  # pragma: no cover - fallback for dev
    __version__ = "0.0.0"

__all__ = [
    "Agent",
    "BatchExecutionError",
    "CoercionError",
    "ConfigError",
    "DuplicateTaskError",
    "ExecutionContext",
    "InputValidationError",
    "InvalidContractError",
    "NeuralInvokerUnavailableError",
    "OrganicError",
    "OutputValidationError",
    "ProviderError",
    "SecurityViolationError",
    "SemanticType",
    "TaskDefinition",
    "TaskExecutor",
    "TaskNotFoundError",
    "TaskRegistry",
    "__version__",
    "coerce",
    "define_task",
    "load_agent",
    "load_agent_file",
]
