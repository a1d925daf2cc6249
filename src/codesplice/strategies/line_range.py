"""Line-numbered edits applied to raw text."""

from __future__ import annotations

import logging
from typing import Sequence

from ..errors import InvalidInstruction, InvalidRange
from ..structured import EditKind, FileEdit, LineOperation, LineRangeEdit
from .base import EditStrategy

LOGGER = logging.getLogger(__name__)


def _ordered(operations: Sequence[LineOperation]) -> list[LineOperation]:
    """Sort by line descending; equal lines keep array order so the last entry lands last."""
    indexed = sorted(enumerate(operations), key=lambda item: (-item[1].sort_line, item[0]))
    return [operation for _, operation in indexed]


def _require_span(operation: LineOperation, line_count: int) -> tuple[int, int]:
    start, end = operation.start_line, operation.end_line
    if start is None or end is None:
        raise InvalidInstruction(
            f"{operation.kind} operation requires startLine and endLine",
            details={"kind": operation.kind, "startLine": start, "endLine": end},
        )
    if not 1 <= start <= end <= line_count:
        raise InvalidRange(
            f"{operation.kind} range {start}-{end} is outside 1-{line_count}",
            details={"kind": operation.kind, "startLine": start, "endLine": end, "lineCount": line_count},
        )
    return start, end


def _apply_operation(lines: list[str], operation: LineOperation) -> None:
    if operation.kind == "replace":
        start, end = _require_span(operation, len(lines))
        if operation.content is None:
            raise InvalidInstruction(
                "replace operation requires content",
                details={"startLine": start, "endLine": end},
            )
        lines[start - 1 : end] = operation.content.split("\n")
    elif operation.kind == "insert":
        after = operation.after_line
        if after is None:
            raise InvalidInstruction("insert operation requires afterLine", details={"kind": "insert"})
        if operation.content is None:
            raise InvalidInstruction("insert operation requires content", details={"afterLine": after})
        if not 0 <= after <= len(lines):
            raise InvalidRange(
                f"insert afterLine {after} is outside 0-{len(lines)}",
                details={"afterLine": after, "lineCount": len(lines)},
            )
        lines[after:after] = operation.content.split("\n")
    else:
        start, end = _require_span(operation, len(lines))
        del lines[start - 1 : end]


def apply_operations(content: str, operations: Sequence[LineOperation]) -> str:
    """Apply ``operations`` to ``content`` in descending line order.

    Bounds are never clamped: an operation outside the current line count
    raises :class:`InvalidRange` and the input text is left untouched.
    """
    lines = content.split("\n")
    for operation in _ordered(operations):
        _apply_operation(lines, operation)
    return "\n".join(lines)


def validate_operations(operations: Sequence[LineOperation], *, line_count: int | None = None) -> list[str]:
    """Return human-readable problems with ``operations`` without applying them."""
    problems: list[str] = []
    for index, operation in enumerate(operations, start=1):
        label = f"operation {index} ({operation.kind})"
        if operation.kind in {"replace", "delete"}:
            start, end = operation.start_line, operation.end_line
            if start is None or end is None:
                problems.append(f"{label}: startLine and endLine are required")
                continue
            if start < 1 or end < start:
                problems.append(f"{label}: invalid range {start}-{end}")
            elif line_count is not None and end > line_count:
                problems.append(f"{label}: range {start}-{end} exceeds {line_count} lines")
            if operation.kind == "replace" and operation.content is None:
                problems.append(f"{label}: content is required")
        else:
            after = operation.after_line
            if after is None:
                problems.append(f"{label}: afterLine is required")
            elif after < 0 or (line_count is not None and after > line_count):
                problems.append(f"{label}: afterLine {after} is out of range")
            if operation.content is None:
                problems.append(f"{label}: content is required")
    return problems


def find_line_range(content: str, search_text: str) -> tuple[int, int] | None:
    """Find the first run of lines matching ``search_text`` ignoring indentation."""
    needle = [line.strip() for line in search_text.strip("\n").split("\n")]
    if not needle or not any(needle):
        return None
    lines = [line.strip() for line in content.split("\n")]
    size = len(needle)
    for start in range(len(lines) - size + 1):
        if lines[start : start + size] == needle:
            return start + 1, start + size
    return None


class LineRangeStrategy(EditStrategy):
    """Universal fallback strategy operating on explicit line numbers."""

    name = "line-range"
    kind = EditKind.LINE_RANGE

    def apply(self, content: str, edit: FileEdit, *, extension: str = "") -> str:
        if not isinstance(edit, LineRangeEdit):
            raise InvalidInstruction(
                f"Line-range strategy cannot consume {edit.kind.value} edits",
                details={"file": edit.target_file, "editKind": edit.kind.value},
            )
        return self.apply_operations(content, edit.operations)

    def apply_operations(self, content: str, operations: Sequence[LineOperation]) -> str:
        LOGGER.debug("Applying %d line operation(s)", len(operations))
        return apply_operations(content, operations)
