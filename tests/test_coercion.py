import math

import pytest

from organic.errors import CoercionError
from organic.tasks.coercion import (
    COERCION_RULES,
    SemanticType,
    coerce,
    is_known_type,
    parse_type,
)


def test_string_coercion():
    assert coerce("hello", "string") == "hello"
    assert coerce(42, "string") == "42"
    assert coerce(1.5, "string") == "1.5"
    assert coerce(True, "string") == "true"
    assert coerce(False, "string") == "false"
    assert coerce("   ", "string") == ""


def test_string_rejects_collections():
    with pytest.raises(CoercionError):
        coerce(["a"], "string")
    with pytest.raises(CoercionError):
        coerce({"a": 1}, "string")


@pytest.mark.parametrize(
    "value, expected",
    [("42", 42.0), (" 3.5 ", 3.5), (7, 7.0), (2.25, 2.25), ("-1e3", -1000.0)],
)
def test_number_coercion(value, expected):
    result = coerce(value, "number")
    assert isinstance(result, float)
    assert result == expected


@pytest.mark.parametrize(
    "value", ["abc", "", "  ", True, "nan", "inf", math.inf, [1], 10 ** 400, -(10 ** 400)]
)
def test_number_failures(value):
    with pytest.raises(CoercionError) as excinfo:
        coerce(value, "number")
    assert excinfo.value.target_type == "number"


@pytest.mark.parametrize(
    "value, expected",
    [
        ("42", 42),
        (21, 21),
        (4.0, 4),
        ("5.0", 5),
        (" -3 ", -3),
        ("1e3", 1000),
        ("12345678901234567.0", 12345678901234567),
        ("-98765432109876543210.000", -98765432109876543210),
        (10 ** 400, 10 ** 400),
    ],
)
def test_integer_coercion(value, expected):
    result = coerce(value, "integer")
    assert isinstance(result, int) and not isinstance(result, bool)
    assert result == expected


@pytest.mark.parametrize(
    "value",
    [3.7, "3.7", "seven", True, None, "  ", math.inf, math.nan, "nan", "1e5000", "12345678901234567.5"],
)
def test_integer_failures(value):
    with pytest.raises(CoercionError):
        coerce(value, "integer")


@pytest.mark.parametrize(
    "value, expected",
    [(True, True), (False, False), ("true", True), ("TRUE", True), (" False ", False), ("1", True), ("0", False)],
)
def test_boolean_coercion(value, expected):
    assert coerce(value, "boolean") is expected


@pytest.mark.parametrize("value", ["yes", "", 1, 0, 2.0])
def test_boolean_failures(value):
    with pytest.raises(CoercionError):
        coerce(value, "boolean")


def test_array_coercion():
    assert coerce("a, b ,c", "array") == ["a", "b", "c"]
    assert coerce("a,,b,", "array") == ["a", "b"]
    assert coerce("   ", "array") == []
    assert coerce((1, 2), "array") == [1, 2]
    raw = [{"x": 1}, 2]
    assert coerce(raw, "array") == raw


def test_array_failures():
    with pytest.raises(CoercionError):
        coerce({"a": 1}, "array")
    with pytest.raises(CoercionError):
        coerce(5, "array")


def test_object_coercion():
    data = {"a": 1}
    assert coerce(data, "object") is data
    assert coerce("", "object") == {}
    with pytest.raises(CoercionError):
        coerce('{"a": 1}', "object")
    with pytest.raises(CoercionError):
        coerce([1, 2], "object")


@pytest.mark.parametrize("type_name", ["string", "number", "integer", "boolean", "array", "object"])
def test_missing_value_never_coerces(type_name):
    with pytest.raises(CoercionError) as excinfo:
        coerce(None, type_name)
    assert excinfo.value.reason == "value is missing"


def test_coercion_is_deterministic():
    assert coerce("12", "integer") == coerce("12", "integer")
    messages = set()
    for _ in range(3):
        with pytest.raises(CoercionError) as excinfo:
            coerce("x", "integer")
        messages.add(str(excinfo.value))
    assert len(messages) == 1


def test_parse_type():
    assert parse_type("Integer") is SemanticType.INTEGER
    assert parse_type(SemanticType.ARRAY) is SemanticType.ARRAY
    with pytest.raises(ValueError):
        parse_type("date")
    assert is_known_type("object")
    assert not is_known_type("float")
    assert not is_known_type(None)


def test_rules_cover_every_type():
    assert set(COERCION_RULES) == set(SemanticType)
    for rule in COERCION_RULES.values():
        assert set(rule) == {"accepts", "rule", "fails"}


@pytest.mark.parametrize(
    "value, type_name",
    [("text", "string"), (2.5, "number"), (7, "integer"), (False, "boolean"), ([1, "a"], "array"), ({"k": 1}, "object")],
)
def test_native_values_pass_through(value, type_name):
    once = coerce(value, type_name)
    assert once == value
    assert coerce(once, type_name) == once
