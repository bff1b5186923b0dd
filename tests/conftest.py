"""Test configuration and fixtures."""

from __future__ import annotations

import threading
from typing import Any, Dict, List, Mapping

import pytest

from organic.tasks import TaskExecutor, TaskRegistry


class FakeInvoker:
    """Neural invoker returning canned results keyed by task name."""

    def __init__(self, results: Mapping[str, Any] | None = None) -> None:
        self.results = dict(results or {})
        self.calls: List[Dict[str, Any]] = []
        self._lock = threading.Lock()

    def invoke(self, instructions, inputs, available_tools, *, task_name, output_contract):
        with self._lock:
            self.calls.append(
                {
                    "instructions": instructions,
                    "inputs": dict(inputs),
                    "tools": [tool.name for tool in available_tools],
                    "task_name": task_name,
                    "output_contract": dict(output_contract),
                }
            )
        result = self.results[task_name]
        if isinstance(result, Exception):
            raise result
        return result


def double(inputs, context):
    return {"result": inputs["value"] * 2}


@pytest.fixture
def fake_invoker() -> FakeInvoker:
    return FakeInvoker({"greet": "hi"})


@pytest.fixture
def registry() -> TaskRegistry:
    return (
        TaskRegistry()
        .register("double", {"value": "integer"}, {"result": "integer"}, implementation=double)
        .register(
            "greet",
            {"name": "string"},
            {"message": "string"},
            instructions="Greet the person by name",
        )
    )


@pytest.fixture
def executor(registry: TaskRegistry, fake_invoker: FakeInvoker) -> TaskExecutor:
    return TaskExecutor(registry, fake_invoker)
