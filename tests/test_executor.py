import logging
import threading

import pytest

from organic.errors import (
    InputValidationError,
    InvalidContractError,
    NeuralInvokerUnavailableError,
    OutputValidationError,
    TaskNotFoundError,
)
from organic.tasks import TaskExecutor, TaskRegistry, define_task
from organic.tools import ToolRegistry, WorkspaceTool


def test_symbolic_task_coerces_inputs(executor):
    assert executor.execute_task("double", {"value": 21}) == {"result": 42}
    assert executor.execute_task("double", {"value": "21"}) == {"result": 42}


def test_neural_free_text_fills_single_output(executor, fake_invoker):
    assert executor.execute_task("greet", {"name": "Ada"}) == {"message": "hi"}

    call = fake_invoker.calls[0]
    assert call["instructions"] == "Greet the person by name"
    assert call["inputs"] == {"name": "Ada"}
    assert call["task_name"] == "greet"
    assert call["output_contract"] == {"message": "string"}


def test_unknown_task(executor):
    with pytest.raises(TaskNotFoundError) as excinfo:
        executor.execute_task("nonexistent", {})
    assert "double" in str(excinfo.value)
    assert "greet" in str(excinfo.value)


def test_input_errors_are_aggregated():
    def body(inputs, context):  # pragma: no cover - never reached
        raise AssertionError("body must not run")

    registry = TaskRegistry().register(
        "pair", {"a": "integer", "b": "boolean", "c": "string"}, {"ok": "boolean"}, implementation=body
    )
    executor = TaskExecutor(registry)

    with pytest.raises(InputValidationError) as excinfo:
        executor.execute_task("pair", {"a": "x", "b": "maybe", "c": "fine"})
    assert excinfo.value.parameters == ["a", "b"]


def test_missing_input_is_reported(executor):
    with pytest.raises(InputValidationError) as excinfo:
        executor.execute_task("double", {})
    assert excinfo.value.errors["value"].reason == "value is missing"


def test_unexpected_inputs_are_dropped():
    seen = {}

    def body(inputs, context):
        seen.update(inputs)
        return {"result": 1}

    registry = TaskRegistry().register("one", {"value": "integer"}, {"result": "integer"}, implementation=body)
    TaskExecutor(registry).execute_task("one", {"value": 1, "extra": "ignored"})
    assert seen == {"value": 1}


def test_inputs_must_be_a_mapping(executor):
    with pytest.raises(TypeError):
        executor.execute_task("double", [("value", 1)])


def test_output_missing_fields():
    def body(inputs, context):
        return {"a": 1, "c": None}

    registry = TaskRegistry().register(
        "partial", {}, {"a": "integer", "b": "string", "c": "string"}, implementation=body
    )
    with pytest.raises(OutputValidationError) as excinfo:
        TaskExecutor(registry).execute_task("partial", {})
    assert excinfo.value.missing == ["b", "c"]
    assert excinfo.value.fields == ["b", "c"]


def test_output_coercion_failure():
    registry = TaskRegistry().register(
        "bad", {}, {"count": "integer"}, implementation=lambda inputs, context: {"count": "many"}
    )
    with pytest.raises(OutputValidationError) as excinfo:
        TaskExecutor(registry).execute_task("bad", {})
    assert list(excinfo.value.errors) == ["count"]


def test_output_coercion_and_extra_fields():
    registry = TaskRegistry().register(
        "count",
        {},
        {"total": "integer", "ok": "boolean"},
        implementation=lambda inputs, context: {"total": "3", "ok": "true", "debug": "dropped"},
    )
    assert TaskExecutor(registry).execute_task("count", {}) == {"total": 3, "ok": True}


def test_non_mapping_result_reports_all_fields():
    registry = TaskRegistry().register(
        "text", {}, {"a": "string", "b": "string"}, implementation=lambda inputs, context: "plain text"
    )
    with pytest.raises(OutputValidationError) as excinfo:
        TaskExecutor(registry).execute_task("text", {})
    assert excinfo.value.missing == ["a", "b"]


def test_empty_output_contract():
    registry = TaskRegistry().register("noop", {}, {}, implementation=lambda inputs, context: None)
    assert TaskExecutor(registry).execute_task("noop") == {}


def test_neural_task_without_invoker(registry):
    executor = TaskExecutor(registry)
    with pytest.raises(NeuralInvokerUnavailableError):
        executor.execute_task("greet", {"name": "Ada"})


def test_task_exceptions_propagate_and_are_logged(caplog):
    def body(inputs, context):
        raise RuntimeError("boom")

    registry = TaskRegistry().register("explode", {}, {"x": "string"}, implementation=body)
    executor = TaskExecutor(registry)

    with caplog.at_level(logging.WARNING, logger="organic.tasks.executor"):
        with pytest.raises(RuntimeError, match="boom"):
            executor.execute_task("explode", {})
    assert any(getattr(record, "task", None) == "explode" for record in caplog.records)


def test_learn_keeps_contract(executor, fake_invoker):
    before = executor.registry
    executor.learn("greet", lambda inputs, context: {"message": f"hello {inputs['name']}"})

    assert executor.execute_task("greet", {"name": "Ada"}) == {"message": "hello Ada"}
    assert fake_invoker.calls == []
    assert before.get_task("greet").is_neural
    assert executor.registry.get_task("greet").same_contract(before.get_task("greet"))


def test_learn_unknown_task(executor):
    with pytest.raises(TaskNotFoundError):
        executor.learn("nonexistent", lambda inputs, context: {})


def test_swap_registry(executor):
    replacement = TaskRegistry().register(
        "triple", {"value": "integer"}, {"result": "integer"},
        implementation=lambda inputs, context: {"result": inputs["value"] * 3},
    )
    previous = executor.swap_registry(replacement)

    assert "double" in previous
    assert executor.execute_task("triple", {"value": 2}) == {"result": 6}
    with pytest.raises(TaskNotFoundError):
        executor.execute_task("double", {"value": 2})


def test_replace_with_different_contract_is_rejected(executor):
    changed = define_task("double", {"value": "number"}, {"result": "number"}, implementation=lambda i, c: {})
    with pytest.raises(InvalidContractError):
        executor.registry.replace(changed)


def test_symbolic_task_uses_tools(tmp_path):
    tools = ToolRegistry(agent_name="tester")
    tools.register_instance(WorkspaceTool(name="workspace", root=tmp_path))

    def save(inputs, context):
        return context.invoke_tool("workspace", {"operation": "write", "path": "out.txt", "content": inputs["text"]})

    registry = TaskRegistry().register("save", {"text": "string"}, {"path": "string", "written": "integer"}, implementation=save)
    executor = TaskExecutor(registry, tools=tools)

    assert executor.execute_task("save", {"text": "abc"}) == {"path": "out.txt", "written": 3}
    assert (tmp_path / "out.txt").read_text() == "abc"


def test_max_parallel_must_be_positive(registry):
    with pytest.raises(ValueError):
        TaskExecutor(registry, max_parallel=0)


def test_oversized_number_input_is_a_validation_error():
    registry = TaskRegistry().register(
        "half", {"value": "number"}, {"result": "number"},
        implementation=lambda inputs, context: {"result": inputs["value"] / 2},
    )
    with pytest.raises(InputValidationError) as excinfo:
        TaskExecutor(registry).execute_task("half", {"value": 10 ** 400})
    assert excinfo.value.parameters == ["value"]
    assert excinfo.value.errors["value"].reason == "value is not finite"


def test_oversized_number_output_is_a_validation_error():
    registry = TaskRegistry().register(
        "huge", {}, {"result": "number"}, implementation=lambda inputs, context: {"result": 10 ** 400}
    )
    with pytest.raises(OutputValidationError) as excinfo:
        TaskExecutor(registry).execute_task("huge", {})
    assert list(excinfo.value.errors) == ["result"]


def test_decimal_integer_strings_stay_exact(executor):
    assert executor.execute_task("double", {"value": "12345678901234567.0"}) == {"result": 24691357802469134}


class BlockingInvoker:
    def __init__(self) -> None:
        self.started = threading.Event()
        self.release = threading.Event()
        self.calls = 0

    def invoke(self, instructions, inputs, available_tools, *, task_name, output_contract):
        self.calls += 1
        self.started.set()
        assert self.release.wait(timeout=5)
        return "from the model"


def _run_in_thread(target):
    results = {}

    def runner():
        try:
            results["output"] = target()
        except Exception as exc:  # pragma: no cover
            results["error"] = exc

    thread = threading.Thread(target=runner)
    thread.start()
    return thread, results


def test_learn_does_not_affect_invocation_in_flight(registry):
    invoker = BlockingInvoker()
    executor = TaskExecutor(registry, invoker)

    thread, results = _run_in_thread(lambda: executor.execute_task("greet", {"name": "Ada"}))
    assert invoker.started.wait(timeout=5)

    executor.learn("greet", lambda inputs, context: {"message": "from code"})
    assert executor.registry.get_task("greet").is_symbolic

    invoker.release.set()
    thread.join(timeout=5)

    assert results == {"output": {"message": "from the model"}}
    assert executor.execute_task("greet", {"name": "Ada"}) == {"message": "from code"}
    assert invoker.calls == 1


def test_swap_registry_does_not_affect_invocation_in_flight():
    started = threading.Event()
    release = threading.Event()

    def slow(inputs, context):
        started.set()
        assert release.wait(timeout=5)
        return {"result": "old"}

    old = TaskRegistry().register("work", {}, {"result": "string"}, implementation=slow)
    new = TaskRegistry().register(
        "work", {}, {"result": "string"}, implementation=lambda inputs, context: {"result": "new"}
    )
    executor = TaskExecutor(old)

    thread, results = _run_in_thread(lambda: executor.execute_task("work"))
    assert started.wait(timeout=5)
    assert executor.swap_registry(new) is old

    release.set()
    thread.join(timeout=5)

    assert results == {"output": {"result": "old"}}
    assert executor.execute_task("work") == {"result": "new"}
