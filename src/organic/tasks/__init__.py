"""Task primitives."""

from .base import (
    NeuralImplementation,
    SymbolicImplementation,
    TaskDefinition,
    define_task,
)
from .coercion import COERCION_RULES, SemanticType, coerce, parse_type
from .context import ExecutionContext
from .executor import TaskExecutor, TaskInvocation, TaskOutcome
from .registry import TaskRegistry

__all__ = [
    "COERCION_RULES",
    "ExecutionContext",
    "NeuralImplementation",
    "SemanticType",
    "SymbolicImplementation",
    "TaskDefinition",
    "TaskExecutor",
    "TaskInvocation",
    "TaskOutcome",
    "TaskRegistry",
    "coerce",
    "define_task",
    "parse_type",
]
