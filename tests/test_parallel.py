import threading
import time

import pytest

from organic.errors import BatchExecutionError, InputValidationError, TaskNotFoundError
from organic.tasks import TaskExecutor, TaskInvocation, TaskRegistry


def slow_square(inputs, context):
    time.sleep(inputs["delay"])
    return {"result": inputs["value"] ** 2}


@pytest.fixture
def slow_executor():
    registry = TaskRegistry().register(
        "square",
        {"value": "integer", "delay": "number"},
        {"result": "integer"},
        implementation=slow_square,
    )
    return TaskExecutor(registry, max_parallel=8)


def _batch(count, delay=0.05):
    return [("square", {"value": index, "delay": delay}) for index in range(count)]


def test_results_follow_submission_order(slow_executor):
    # Earlier entries sleep longer so they finish last.
    specs = [("square", {"value": index, "delay": 0.01 * (5 - index)}) for index in range(5)]
    results = slow_executor.execute_parallel(specs)
    assert results == [{"result": index ** 2} for index in range(5)]


def test_concurrency_does_not_change_results(slow_executor):
    sequential = slow_executor.execute_parallel(_batch(8, delay=0.01), concurrency=1)
    parallel = slow_executor.execute_parallel(_batch(8, delay=0.01), concurrency=8)
    assert sequential == parallel


def test_parallel_batch_overlaps(slow_executor):
    started = time.perf_counter()
    slow_executor.execute_parallel(_batch(8, delay=0.2), concurrency=8)
    elapsed = time.perf_counter() - started
    assert elapsed < 0.2 * 8 / 2


def test_concurrency_limit_is_respected():
    active = 0
    peak = 0
    lock = threading.Lock()

    def tracked(inputs, context):
        nonlocal active, peak
        with lock:
            active += 1
            peak = max(peak, active)
        time.sleep(0.05)
        with lock:
            active -= 1
        return {"ok": True}

    registry = TaskRegistry().register("tracked", {}, {"ok": "boolean"}, implementation=tracked)
    executor = TaskExecutor(registry)
    executor.execute_parallel(["tracked"] * 9, concurrency=3)
    assert 1 <= peak <= 3


def test_failure_lets_every_entry_finish():
    finished = []
    lock = threading.Lock()

    def work(inputs, context):
        if inputs["fail"]:
            raise RuntimeError(f"entry {inputs['index']} failed")
        time.sleep(0.05)
        with lock:
            finished.append(inputs["index"])
        return {"index": inputs["index"]}

    registry = TaskRegistry().register(
        "work", {"index": "integer", "fail": "boolean"}, {"index": "integer"}, implementation=work
    )
    executor = TaskExecutor(registry, max_parallel=4)
    specs = [("work", {"index": index, "fail": index == 1}) for index in range(4)]

    with pytest.raises(BatchExecutionError) as excinfo:
        executor.execute_parallel(specs)

    error = excinfo.value
    assert sorted(finished) == [0, 2, 3]
    assert error.failed_indices == [1]
    assert isinstance(error.failures[1], RuntimeError)
    assert [outcome.ok for outcome in error.outcomes] == [True, False, True, True]
    assert error.outcomes[3].output == {"index": 3}


def test_execute_batch_reports_outcomes(slow_executor):
    outcomes = slow_executor.execute_batch(
        [
            ("square", {"value": 2, "delay": 0}),
            ("missing", {}),
            {"name": "square", "inputs": {"value": "x", "delay": 0}},
        ]
    )

    assert [outcome.index for outcome in outcomes] == [0, 1, 2]
    assert outcomes[0].output == {"result": 4}
    assert isinstance(outcomes[1].error, TaskNotFoundError)
    assert isinstance(outcomes[2].error, InputValidationError)


def test_empty_batch(slow_executor):
    assert slow_executor.execute_parallel([]) == []


def test_invalid_concurrency(slow_executor):
    with pytest.raises(ValueError):
        slow_executor.execute_parallel(_batch(2), concurrency=0)


@pytest.mark.parametrize(
    "spec, expected",
    [
        ("square", TaskInvocation("square", {})),
        (("square",), TaskInvocation("square", {})),
        (["square", {"value": 1}], TaskInvocation("square", {"value": 1})),
        ({"name": "square", "inputs": {"value": 1}}, TaskInvocation("square", {"value": 1})),
    ],
)
def test_invocation_forms(spec, expected):
    assert TaskInvocation.from_value(spec) == expected


@pytest.mark.parametrize("spec", [42, (), ("a", {}, "extra"), {"inputs": {}}, ("a", "not a mapping"), (1, {})])
def test_malformed_invocations(spec):
    with pytest.raises(ValueError):
        TaskInvocation.from_value(spec)


def test_malformed_spec_rejects_whole_batch(slow_executor):
    with pytest.raises(ValueError):
        slow_executor.execute_parallel([("square", {"value": 1, "delay": 0}), 42])
