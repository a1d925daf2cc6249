"""Text heuristics used when script source cannot be parsed.

Each helper works on plain text and never raises for a missing target; callers
decide how an absent match is reported.
"""

from __future__ import annotations

import re
from typing import Sequence

__all__ = [
    "block_end_line",
    "extract_function_name",
    "find_function_block",
    "find_matching_brace",
    "insert_relative_to_target",
    "is_block_like",
    "remove_block_at",
    "remove_lines_containing",
    "rename_identifier",
    "strip_duplicate_blocks",
    "wrap_in_condition",
]

_FUNCTION_KEYWORD = re.compile(r"\bfunction\b\s*\*?\s*([A-Za-z_$][\w$]*)")
_CALL_LIKE = re.compile(r"([A-Za-z_$][\w$]*)\s*\(")
_QUOTES = "'\"`"


def extract_function_name(target: str) -> str | None:
    """Pull a function name out of ``function NAME`` or ``NAME(`` style targets."""
    match = _FUNCTION_KEYWORD.search(target)
    if match:
        return match.group(1)
    match = _CALL_LIKE.search(target)
    if match:
        return match.group(1)
    stripped = target.strip()
    if re.fullmatch(r"[A-Za-z_$][\w$]*", stripped):
        return stripped
    return None


def is_block_like(target: str) -> bool:
    return "function" in target or "{" in target


def find_matching_brace(text: str, open_index: int) -> int | None:
    """Return the index of the ``}`` closing the ``{`` at ``open_index``.

    Braces inside string literals and comments are ignored.
    """
    depth = 0
    index = open_index
    length = len(text)
    while index < length:
        char = text[index]
        if char in _QUOTES:
            index = _skip_string(text, index)
            continue
        if text.startswith("//", index):
            newline = text.find("\n", index)
            index = length if newline == -1 else newline
            continue
        if text.startswith("/*", index):
            closing = text.find("*/", index + 2)
            index = length if closing == -1 else closing + 2
            continue
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return index
        index += 1
    return None


def _skip_string(text: str, start: int) -> int:
    quote = text[start]
    index = start + 1
    while index < len(text):
        char = text[index]
        if char == "\\":
            index += 2
            continue
        if char == quote:
            return index + 1
        if char == "\n" and quote != "`":
            return index + 1
        index += 1
    return len(text)


def find_function_block(text: str, name: str) -> tuple[int, int] | None:
    """Locate ``function NAME(...) { ... }`` and return its ``[start, end)`` span."""
    pattern = re.compile(r"(?:async\s+)?function\s*\*?\s*" + re.escape(name) + r"\s*\([^)]*\)\s*\{")
    match = pattern.search(text)
    if match is None:
        return None
    closing = find_matching_brace(text, match.end() - 1)
    if closing is None:
        return None
    return match.start(), closing + 1


def rename_identifier(text: str, old: str, new: str) -> tuple[str, int]:
    """Rename every whole-identifier occurrence of ``old``; return text and count."""
    pattern = re.compile(r"(?<![\w$])" + re.escape(old) + r"(?![\w$])")
    return pattern.subn(lambda _match: new, text)


def insert_relative_to_target(text: str, target: str, code: str, *, after: bool) -> str | None:
    """Insert ``code`` as new line(s) after or before the line holding ``target``."""
    index = text.find(target)
    if index == -1:
        return None
    if after:
        newline = text.find("\n", index + len(target))
        if newline == -1:
            return f"{text}\n{code}"
        return f"{text[: newline + 1]}{code}\n{text[newline + 1 :]}"
    line_start = text.rfind("\n", 0, index) + 1
    return f"{text[:line_start]}{code}\n{text[line_start:]}"


def remove_lines_containing(text: str, target: str) -> str | None:
    """Drop every line containing ``target``; multi-line targets are cut out literally."""
    if "\n" in target:
        if target not in text:
            return None
        return text.replace(target, "")
    lines = text.split("\n")
    kept = [line for line in lines if target not in line]
    if len(kept) == len(lines):
        return None
    return "\n".join(kept)


def wrap_in_condition(text: str, target: str, condition: str) -> str | None:
    """Wrap the first occurrence of ``target`` in an ``if`` block."""
    index = text.find(target)
    if index == -1:
        return None
    line_start = text.rfind("\n", 0, index) + 1
    prefix = text[line_start:index]
    indent = prefix[: len(prefix) - len(prefix.lstrip())]
    wrapped = f"if ({condition}) {{\n{indent}  {target}\n{indent}}}"
    return f"{text[:index]}{wrapped}{text[index + len(target):]}"


def _line_brace_delta(line: str) -> tuple[int, bool]:
    depth = 0
    opened = False
    index = 0
    while index < len(line):
        char = line[index]
        if char in _QUOTES:
            index = _skip_string(line, index)
            continue
        if line.startswith("//", index):
            break
        if char == "{":
            depth += 1
            opened = True
        elif char == "}":
            depth -= 1
        index += 1
    return depth, opened


def block_end_line(lines: Sequence[str], start: int) -> int | None:
    """Index of the line closing the first block opened at or after ``start``."""
    depth = 0
    opened = False
    for index in range(start, len(lines)):
        delta, line_opened = _line_brace_delta(lines[index])
        opened = opened or line_opened
        depth += delta
        if opened and depth <= 0:
            return index
    return None


def _anchor_line(target: str) -> str | None:
    for line in target.split("\n"):
        if line.strip():
            return line.strip()
    return None


def _stripped(lines: Sequence[str]) -> list[str]:
    return [line.strip() for line in lines]


def strip_duplicate_blocks(text: str, target: str) -> str | None:
    """Remove repeated copies of the block anchored by ``target``, keeping the first.

    Two layouts are recognised. When the anchor line occurs several times,
    later segments identical to the one starting at the first occurrence
    (up to the second occurrence) are removed. When it occurs once, copies of
    the anchored block's body and closing brace that directly follow the block
    are removed. Returns ``None`` when nothing repeated was found.
    """
    anchor = _anchor_line(target)
    if anchor is None:
        return None
    lines = text.split("\n")
    hits = [index for index, line in enumerate(lines) if anchor in line]
    if not hits:
        return None

    removed: set[int] = set()
    first = hits[0]
    if len(hits) > 1:
        template = _stripped(lines[first : hits[1]])
        while template and not template[-1]:
            template.pop()
        size = len(template)
        for start in hits[1:]:
            if start in removed:
                continue
            if _stripped(lines[start : start + size]) == template:
                removed.update(range(start, start + size))
    else:
        closing = block_end_line(lines, first)
        if closing is not None and closing > first:
            template = _stripped(lines[first + 1 : closing + 1])
            size = len(template)
            index = closing + 1
            while size and index + size <= len(lines):
                if _stripped(lines[index : index + size]) == template:
                    removed.update(range(index, index + size))
                    index += size
                elif not lines[index].strip():
                    index += 1
                else:
                    break

    if not removed:
        return None
    return "\n".join(line for index, line in enumerate(lines) if index not in removed)


def remove_block_at(text: str, target: str) -> str | None:
    """Remove the block that starts on the first line holding ``target``'s anchor."""
    anchor = _anchor_line(target)
    if anchor is None:
        return None
    lines = text.split("\n")
    for index, line in enumerate(lines):
        if anchor in line:
            closing = block_end_line(lines, index)
            if closing is None:
                return None
            return "\n".join(lines[:index] + lines[closing + 1 :])
    return None
