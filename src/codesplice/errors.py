"""Exception taxonomy raised while applying structured edits."""

from __future__ import annotations

from typing import Any, Mapping

__all__ = [
    "EditError",
    "InvalidInstruction",
    "InvalidRange",
    "ParseFailure",
    "TargetNotFound",
    "UnparseableResult",
    "UnsupportedInDegradedMode",
]


class EditError(RuntimeError):
    """Base class for failures that abort a single file edit."""

    def __init__(self, message: str, *, details: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        self.details: dict[str, Any] = dict(details or {})

    @property
    def kind(self) -> str:
        return type(self).__name__


class TargetNotFound(EditError):
    """Raised when a transformation or patch references absent text or an unknown path."""

    def __init__(self, target: str, *, reason: str | None = None) -> None:
        preview = target if len(target) <= 80 else f"{target[:77]}..."
        message = f"Target not found: {preview!r}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message, details={"target": target, "reason": reason})
        self.target = target


class InvalidRange(EditError):
    """Raised when a line operation addresses lines outside the current content."""


class InvalidInstruction(EditError):
    """Raised when an edit payload is malformed or cannot be consumed by a strategy."""


class ParseFailure(EditError):
    """Raised by the script parser when source text contains syntax errors.

    The semantic strategy catches this internally and switches to degraded
    text mode, so it never reaches callers of the engine.
    """

    def __init__(self, message: str, *, line: int = 1, column: int = 0) -> None:
        super().__init__(message, details={"line": line, "column": column})
        self.line = line
        self.column = column


class UnsupportedInDegradedMode(EditError):
    """Raised when a structural-only action is requested on unparseable source."""


class UnparseableResult(EditError):
    """Raised when a structural step produced text that no longer parses."""
