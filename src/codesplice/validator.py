"""Per-file-type syntax checks over a project snapshot."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Literal, Mapping

import libcst as cst

from .structured import ProjectFile
from .syntax.javascript import dialect_for_extension, locate_syntax_error, parse_tree

LOGGER = logging.getLogger(__name__)

ErrorCategory = Literal["syntax", "type", "runtime"]

SCRIPT_TYPES = frozenset({"javascript", "js", "jsx", "mjs", "cjs", "typescript", "ts", "tsx"})
PYTHON_TYPES = frozenset({"python", "py"})
MARKUP_TYPES = frozenset({"html", "htm"})
STYLE_TYPES = frozenset({"css", "scss", "less"})

VOID_ELEMENTS = frozenset(
    {
        "area",
        "base",
        "br",
        "col",
        "embed",
        "hr",
        "img",
        "input",
        "link",
        "meta",
        "param",
        "source",
        "track",
        "wbr",
    }
)

_TAG = re.compile(r"<(/?)([a-zA-Z][a-zA-Z0-9-]*)[^>]*?(/?)>")


@dataclass(frozen=True, slots=True)
class ValidationError:
    """Positional problem found in one file; informational only."""

    file: str
    line: int
    column: int
    message: str
    category: ErrorCategory = "syntax"

    def render(self) -> str:
        return f"{self.file}:{self.line}:{self.column} - {self.category} error: {self.message}"


@dataclass(slots=True)
class ValidationReport:
    """Aggregated result of validating a snapshot."""

    errors: list[ValidationError] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors

    def error_summary(self) -> str:
        """Render one line per error in ``file:line:column - category error: message`` form."""
        return "\n".join(error.render() for error in self.errors)

    def for_file(self, name: str) -> list[ValidationError]:
        return [error for error in self.errors if error.file == name]

    def to_dict(self) -> dict[str, object]:
        return {
            "valid": self.valid,
            "errors": [
                {
                    "file": error.file,
                    "line": error.line,
                    "column": error.column,
                    "message": error.message,
                    "category": error.category,
                }
                for error in self.errors
            ],
        }


def validate_script(name: str, content: str, declared_type: str) -> list[ValidationError]:
    tree, encoded = parse_tree(content, dialect_for_extension(declared_type))
    issue = locate_syntax_error(tree, encoded)
    if issue is None:
        return []
    return [ValidationError(name, issue.line, issue.column, issue.message)]


def validate_python(name: str, content: str) -> list[ValidationError]:
    try:
        cst.parse_module(content)
    except cst.ParserSyntaxError as error:
        return [ValidationError(name, error.raw_line, error.raw_column, error.message)]
    return []


def validate_markup(name: str, content: str) -> list[ValidationError]:
    errors: list[ValidationError] = []
    stack: list[tuple[str, int, int]] = []
    for line_number, line in enumerate(content.split("\n"), start=1):
        for match in _TAG.finditer(line):
            closing, tag, self_closing = match.group(1), match.group(2).lower(), match.group(3)
            if tag in VOID_ELEMENTS or self_closing:
                continue
            if closing:
                if stack and stack[-1][0] == tag:
                    stack.pop()
                else:
                    errors.append(
                        ValidationError(name, line_number, match.start(), f"Unexpected closing tag </{tag}>")
                    )
            else:
                stack.append((tag, line_number, match.start()))
    for tag, line_number, column in stack:
        errors.append(ValidationError(name, line_number, column, f"Unclosed tag <{tag}>"))
    return errors


def validate_style(name: str, content: str) -> list[ValidationError]:
    errors: list[ValidationError] = []
    lines = content.split("\n")
    depth = 0
    for line_number, line in enumerate(lines, start=1):
        for index, char in enumerate(line):
            if char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth < 0:
                    errors.append(ValidationError(name, line_number, index + 1, "Unexpected closing brace }"))
                    depth = 0
    if depth > 0:
        errors.append(ValidationError(name, len(lines), 1, f"{depth} unclosed brace(s)"))
    return errors


def validate_file(name: str, content: str, declared_type: str) -> list[ValidationError]:
    """Check one file according to its declared type; unknown types always pass."""
    kind = declared_type.lower().lstrip(".")
    if kind in SCRIPT_TYPES:
        # jsx/tsx content is only recognisable from the file name
        suffix = PurePosixPath(name).suffix.lower().lstrip(".")
        return validate_script(name, content, suffix if suffix in SCRIPT_TYPES else kind)
    if kind in PYTHON_TYPES:
        return validate_python(name, content)
    if kind in MARKUP_TYPES:
        return validate_markup(name, content)
    if kind in STYLE_TYPES:
        return validate_style(name, content)
    return []


def validate(files: Mapping[str, ProjectFile]) -> ValidationReport:
    """Validate every file of a snapshot and aggregate the errors in snapshot order."""
    report = ValidationReport()
    for name, entry in files.items():
        declared = entry.declared_type or PurePosixPath(name).suffix.lstrip(".")
        report.errors.extend(validate_file(name, entry.content, declared))
    if report.errors:
        LOGGER.debug("Validation found %d error(s)", len(report.errors))
    return report
