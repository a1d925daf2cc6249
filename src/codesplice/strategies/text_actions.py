"""Interpret semantic transformations as plain text operations."""

from __future__ import annotations

import logging
from typing import Sequence

from ..config import DegradedPolicy
from ..errors import InvalidInstruction, TargetNotFound, UnsupportedInDegradedMode
from ..structured import Transformation, TransformAction
from ..syntax import heuristics

LOGGER = logging.getLogger(__name__)


def require_target(transformation: Transformation) -> str:
    """Return the target, refusing empty anchors that would match everywhere.

    Literal replacement may target whitespace; every other action needs visible text.
    """
    target = transformation.target
    literal = transformation.action is TransformAction.REPLACE
    if not target or (not literal and not target.strip()):
        raise InvalidInstruction(
            f"{transformation.action.value} requires a non-empty target",
            details={"action": transformation.action.value, "target": target},
        )
    return target


def require_payload(transformation: Transformation) -> str:
    payload = transformation.payload
    if payload is None:
        raise InvalidInstruction(
            f"{transformation.action.value} on {transformation.target!r} requires code or value",
            details={"action": transformation.action.value, "target": transformation.target},
        )
    return payload


def insert_relative(content: str, transformation: Transformation) -> str:
    code = require_payload(transformation)
    after = transformation.action is TransformAction.INSERT_AFTER
    updated = heuristics.insert_relative_to_target(content, transformation.target, code, after=after)
    if updated is None:
        raise TargetNotFound(transformation.target)
    return updated


def rename(content: str, transformation: Transformation) -> str:
    new_name = transformation.value if transformation.value is not None else transformation.code
    if not new_name:
        raise InvalidInstruction(
            f"rename of {transformation.target!r} requires a new name in value",
            details={"target": transformation.target},
        )
    updated, count = heuristics.rename_identifier(content, transformation.target, new_name)
    if count == 0:
        raise TargetNotFound(transformation.target, reason="identifier does not occur")
    return updated


def delete_lines(content: str, transformation: Transformation) -> str:
    updated = heuristics.remove_lines_containing(content, transformation.target)
    if updated is None:
        raise TargetNotFound(transformation.target)
    return updated


def replace_first(content: str, transformation: Transformation) -> str:
    replacement = require_payload(transformation)
    target = require_target(transformation)
    if target not in content:
        raise TargetNotFound(target)
    return content.replace(target, replacement, 1)


def wrap(content: str, transformation: Transformation) -> str:
    condition = transformation.value or transformation.code or "true"
    updated = heuristics.wrap_in_condition(content, transformation.target, condition)
    if updated is None:
        raise TargetNotFound(transformation.target)
    return updated


def _replace_or_function_block(content: str, transformation: Transformation) -> str:
    replacement = require_payload(transformation)
    target = transformation.target
    if target and target in content:
        return content.replace(target, replacement, 1)
    if "function" in target:
        name = heuristics.extract_function_name(target)
        span = heuristics.find_function_block(content, name) if name else None
        if span is not None:
            LOGGER.info("Replacing function block %s by brace matching", name)
            start, end = span
            return f"{content[:start]}{replacement}{content[end:]}"
    raise TargetNotFound(target)


def _delete_text(content: str, transformation: Transformation) -> str:
    target = transformation.target
    if heuristics.is_block_like(target):
        deduplicated = heuristics.strip_duplicate_blocks(content, target)
        if deduplicated is not None:
            LOGGER.info("Removed duplicated blocks anchored at %r", target.strip().split("\n", 1)[0])
            return deduplicated
        without_block = heuristics.remove_block_at(content, target)
        if without_block is not None:
            return without_block
    return delete_lines(content, transformation)


def apply_text_transformation(
    content: str,
    transformation: Transformation,
    *,
    unsupported: DegradedPolicy = "raise",
) -> str:
    """Apply one transformation without any structural knowledge of the source."""
    require_target(transformation)
    action = transformation.action
    if action in {TransformAction.REPLACE, TransformAction.MODIFY}:
        return _replace_or_function_block(content, transformation)
    if action is TransformAction.DELETE:
        return _delete_text(content, transformation)
    if action in {TransformAction.INSERT_AFTER, TransformAction.INSERT_BEFORE}:
        return insert_relative(content, transformation)
    if action is TransformAction.RENAME:
        return rename(content, transformation)
    if action is TransformAction.WRAP_IN_CONDITION:
        return wrap(content, transformation)
    if unsupported == "skip":
        LOGGER.warning(
            "Skipping %s on %r: not available without a syntax tree",
            action.value,
            transformation.target,
        )
        return content
    raise UnsupportedInDegradedMode(
        f"{action.value} requires parseable source",
        details={"action": action.value, "target": transformation.target},
    )


def apply_text_transformations(
    content: str,
    transformations: Sequence[Transformation],
    *,
    unsupported: DegradedPolicy = "raise",
) -> str:
    """Apply ``transformations`` in order as text operations."""
    for transformation in transformations:
        content = apply_text_transformation(content, transformation, unsupported=unsupported)
    return content
