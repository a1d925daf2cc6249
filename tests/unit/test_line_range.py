from __future__ import annotations

from itertools import permutations

import pytest

from codesplice.errors import InvalidInstruction, InvalidRange
from codesplice.strategies.line_range import (
    LineRangeStrategy,
    apply_operations,
    find_line_range,
    validate_operations,
)
from codesplice.structured import LineOperation, LineRangeEdit, TextPatchEdit

TEN_LINES = "\n".join(f"line{number}" for number in range(1, 11))


def _replace(start: int, end: int, content: str) -> LineOperation:
    return LineOperation(kind="replace", start_line=start, end_line=end, content=content)


def _insert(after: int, content: str) -> LineOperation:
    return LineOperation(kind="insert", after_line=after, content=content)


def _delete(start: int, end: int) -> LineOperation:
    return LineOperation(kind="delete", start_line=start, end_line=end)


def test_line_count_follows_operation_arithmetic_in_any_order() -> None:
    operations = [
        _replace(2, 3, "merged"),
        _insert(5, "new-a\nnew-b"),
        _delete(8, 9),
    ]
    results = {apply_operations(TEN_LINES, list(order)) for order in permutations(operations)}

    assert len(results) == 1
    (result,) = results
    assert len(result.split("\n")) == 10 - 1 + 2 - 2
    assert result.split("\n")[:3] == ["line1", "merged", "line4"]
    assert "line8" not in result and "line9" not in result


def test_equal_keys_let_the_last_array_entry_win() -> None:
    operations = [_replace(3, 3, "first"), _replace(3, 3, "second")]

    lines = apply_operations(TEN_LINES, operations).split("\n")

    assert len(lines) == 10
    assert lines[2] == "second"
    assert "first" not in lines


def test_reapplying_a_batch_diverges() -> None:
    operations = [_delete(2, 2), _insert(0, "header")]

    once = apply_operations(TEN_LINES, operations)
    twice = apply_operations(once, operations)

    assert once != twice
    assert once.split("\n")[:3] == ["header", "line1", "line3"]
    assert twice.split("\n")[:3] == ["header", "header", "line3"]


def test_insert_after_zero_prepends_and_after_last_appends() -> None:
    result = apply_operations("a\nb", [_insert(0, "top"), _insert(2, "bottom")])

    assert result == "top\na\nb\nbottom"


@pytest.mark.parametrize(
    "operation",
    [
        _replace(0, 1, "x"),
        _replace(4, 3, "x"),
        _replace(10, 11, "x"),
        _delete(11, 11),
        _insert(11, "x"),
        _insert(-1, "x"),
    ],
)
def test_out_of_bounds_operations_raise_invalid_range(operation: LineOperation) -> None:
    with pytest.raises(InvalidRange):
        apply_operations(TEN_LINES, [operation])


@pytest.mark.parametrize(
    "operation",
    [
        LineOperation(kind="replace", start_line=1, content="x"),
        LineOperation(kind="replace", start_line=1, end_line=1),
        LineOperation(kind="insert", content="x"),
        LineOperation(kind="delete", end_line=2),
    ],
)
def test_missing_fields_raise_invalid_instruction(operation: LineOperation) -> None:
    with pytest.raises(InvalidInstruction):
        apply_operations(TEN_LINES, [operation])


def test_strategy_rejects_non_line_payloads() -> None:
    strategy = LineRangeStrategy()
    edit = TextPatchEdit(target_file="a.txt", patches=[{"find": "a", "replace": "b"}])

    with pytest.raises(InvalidInstruction):
        strategy.apply("a", edit)


def test_strategy_applies_line_range_edits() -> None:
    strategy = LineRangeStrategy()
    edit = LineRangeEdit(target_file="notes.txt", operations=[_replace(1, 1, "changed")])

    assert strategy.can_handle("anything")
    assert strategy.apply("original\nkept", edit) == "changed\nkept"


def test_find_line_range_ignores_indentation() -> None:
    content = "def a():\n    return 1\n\ndef b():\n    return 2\n"

    assert find_line_range(content, "def b():\n  return 2") == (4, 5)
    assert find_line_range(content, "def c():") is None
    assert find_line_range(content, "\n") is None


def test_validate_operations_reports_problems_without_applying() -> None:
    problems = validate_operations(
        [
            _replace(3, 2, "x"),
            LineOperation(kind="insert", content="x"),
            _delete(1, 20),
            _replace(1, 1, "ok"),
        ],
        line_count=10,
    )

    assert len(problems) == 3
    assert problems[0].startswith("operation 1 (replace)")
    assert "afterLine is required" in problems[1]
    assert "exceeds 10 lines" in problems[2]
