"""Semantic transformations over a parsed script, with a text fallback."""

from __future__ import annotations

import json
import logging
import re
import textwrap
from dataclasses import dataclass
from typing import AbstractSet, Literal, Sequence

from tree_sitter import Node

from ..config import SEMANTIC_EXTENSIONS, DegradedPolicy
from ..errors import InvalidInstruction, ParseFailure, TargetNotFound
from ..structured import (
    EditKind,
    FileEdit,
    LineRangeEdit,
    SemanticEdit,
    TextPatchEdit,
    Transformation,
    TransformAction,
)
from ..syntax import heuristics
from ..syntax.javascript import (
    CLASS_TYPES,
    FIELD_TYPES,
    FUNCTION_TYPES,
    ScriptModule,
    dialect_for_extension,
    find_function,
    iter_bindings,
    member_name,
    unwrap_expression,
)
from . import text_actions
from .base import EditStrategy

LOGGER = logging.getLogger(__name__)

_IDENTIFIER = re.compile(r"[A-Za-z_$][\w$]*")
_BLOCK_SCOPES = frozenset({"program", "statement_block"})
_VALUE_HOLDERS = FIELD_TYPES | {"variable_declarator", "pair"}


def _key_of(member: Node) -> Node | None:
    for field_name in ("key", "name", "property"):
        key = member.child_by_field_name(field_name)
        if key is not None:
            return key
    return None


@dataclass(frozen=True, slots=True)
class PathSegment:
    """One step of a dotted access path such as ``class.Game.update().speed``."""

    kind: Literal["member", "index", "call", "class"]
    name: str


def parse_access_path(target: str) -> list[PathSegment]:
    """Split ``target`` into path segments, accepting ``a[0]`` and ``a["b"]`` forms."""
    normalised = re.sub(r"\[(\d+)\]", r".\1", target.strip())
    normalised = re.sub(r"\[\s*['\"]([^'\"]+)['\"]\s*\]", r".\1", normalised)
    raw = [segment.strip() for segment in normalised.split(".")]
    if not raw or any(not segment for segment in raw):
        raise TargetNotFound(target, reason="not a valid access path")
    segments: list[PathSegment] = []
    index = 0
    while index < len(raw):
        segment = raw[index]
        if segment == "class" and index + 1 < len(raw):
            segments.append(PathSegment("class", raw[index + 1]))
            index += 2
            continue
        if segment.endswith(")") and "(" in segment:
            segments.append(PathSegment("call", segment.split("(", 1)[0].strip()))
        elif segment.isdigit():
            segments.append(PathSegment("index", segment))
        else:
            segments.append(PathSegment("member", segment))
        index += 1
    return segments


def render_value(transformation: Transformation) -> str:
    """Render the new value for ``modify``: JSON literals normalised, anything else raw."""
    if transformation.value is not None:
        try:
            parsed = json.loads(transformation.value)
        except ValueError:
            return transformation.value
        return json.dumps(parsed, ensure_ascii=False)
    if transformation.code is not None:
        return transformation.code
    raise InvalidInstruction(
        f"modify on {transformation.target!r} requires value or code",
        details={"target": transformation.target},
    )


class _PathResolver:
    """Walks access paths over a parsed module and splices new values in."""

    def __init__(self, module: ScriptModule, target: str) -> None:
        self.module = module
        self.source = module.encoded
        self.target = target

    def scope_of(self, node: Node) -> Node:
        """Descend from a binding to the node whose children hold its members."""
        if node.type in _VALUE_HOLDERS:
            value = node.child_by_field_name("value")
            if value is not None:
                node = value
        elif node.type == "assignment_expression":
            right = node.child_by_field_name("right")
            if right is not None:
                node = right
        node = unwrap_expression(node) or node
        if node.type in FUNCTION_TYPES or node.type in CLASS_TYPES:
            body = node.child_by_field_name("body")
            if body is not None:
                return unwrap_expression(body) or body
        return node

    def member(self, container: Node, segment: PathSegment) -> Node | None:
        scope = self.scope_of(container)
        if scope.type in _BLOCK_SCOPES:
            for name, binding in iter_bindings(scope, self.source):
                if name == segment.name:
                    return binding
            return None
        if scope.type in {"object", "class_body"}:
            for child in scope.named_children:
                if child.type == "shorthand_property_identifier":
                    if member_name(child, self.source) == segment.name:
                        return child
                    continue
                key = _key_of(child)
                if key is not None and member_name(key, self.source) == segment.name:
                    return child
            return None
        if scope.type == "array" and segment.kind == "index":
            elements = [child for child in scope.named_children if child.type != "comment"]
            position = int(segment.name)
            return elements[position] if position < len(elements) else None
        return None

    def find_class(self, container: Node, name: str) -> Node | None:
        stack = [container]
        while stack:
            node = stack.pop()
            if node.type in CLASS_TYPES:
                class_name = node.child_by_field_name("name")
                if class_name is not None and member_name(class_name, self.source) == name:
                    return node
            elif node.type == "variable_declarator":
                value = unwrap_expression(node.child_by_field_name("value"))
                declared = node.child_by_field_name("name")
                if (
                    value is not None
                    and value.type in CLASS_TYPES
                    and declared is not None
                    and member_name(declared, self.source) == name
                ):
                    return value
            stack.extend(reversed(node.named_children))
        return None

    def step(self, container: Node, segment: PathSegment) -> Node:
        if segment.kind == "class":
            found = self.find_class(container, segment.name)
        elif segment.kind == "call":
            found = find_function(self.scope_of(container), segment.name, self.source)
        else:
            found = self.member(container, segment)
        if found is None:
            raise TargetNotFound(self.target, reason=f"no binding for {segment.name!r}")
        return found

    def value_span(self, binding: Node) -> tuple[int, int, str] | None:
        """Return ``(start, end, prefix)`` of the span holding a binding's value."""
        if binding.type in _VALUE_HOLDERS:
            value = binding.child_by_field_name("value")
            if value is not None:
                return value.start_byte, value.end_byte, ""
            if binding.type == "pair":
                return None
            end = binding.end_byte
            if self.source[binding.start_byte : end].rstrip().endswith(b";"):
                end = binding.start_byte + self.source[binding.start_byte : end].rstrip().rfind(b";")
            return end, end, " = "
        if binding.type == "assignment_expression":
            right = binding.child_by_field_name("right")
            if right is not None:
                return right.start_byte, right.end_byte, ""
        if binding.type == "shorthand_property_identifier":
            name = member_name(binding, self.source)
            return binding.start_byte, binding.end_byte, f"{name}: "
        return binding.start_byte, binding.end_byte, ""

    def append_property(self, obj: Node, name: str, rendered: str) -> str:
        key = name if _IDENTIFIER.fullmatch(name) else json.dumps(name)
        entry = f"{key}: {rendered}"
        members = [child for child in obj.named_children if child.type != "comment"]
        if not members:
            return self.module.splice(obj.start_byte + 1, obj.end_byte - 1, f" {entry} ")
        last = members[-1]
        separator = " "
        if obj.start_point[0] != obj.end_point[0]:
            separator = "\n" + self.module.line_indent(last)
        siblings = obj.children
        position = next(
            index
            for index, child in enumerate(siblings)
            if (child.start_byte, child.end_byte) == (last.start_byte, last.end_byte)
        )
        following = siblings[position + 1] if position + 1 < len(siblings) else None
        if following is not None and following.type == ",":
            return self.module.splice(following.end_byte, following.end_byte, f"{separator}{entry},")
        return self.module.splice(last.end_byte, last.end_byte, f",{separator}{entry}")

    def assign(self, rendered: str) -> str:
        segments = parse_access_path(self.target)
        container = self.module.root
        for segment in segments[:-1]:
            container = self.step(container, segment)
        final = segments[-1]
        if final.kind in {"class", "call"}:
            node = self.step(container, final)
            return self.module.splice(node.start_byte, node.end_byte, rendered)
        binding = self.member(container, final)
        if binding is None:
            scope = self.scope_of(container)
            if scope.type == "object" and final.kind == "member":
                return self.append_property(scope, final.name, rendered)
            raise TargetNotFound(self.target, reason=f"no binding for {final.name!r}")
        span = self.value_span(binding)
        if span is None:
            raise TargetNotFound(self.target, reason="binding has no value")
        start, end, prefix = span
        return self.module.splice(start, end, f"{prefix}{rendered}")


def _insert_in_body(module: ScriptModule, transformation: Transformation) -> str:
    code = text_actions.require_payload(transformation)
    name = heuristics.extract_function_name(transformation.target)
    if name is None:
        raise TargetNotFound(transformation.target, reason="no function name in target")
    function = find_function(module.root, name, module.encoded)
    if function is None:
        raise TargetNotFound(transformation.target, reason=f"no function named {name!r}")
    body = function.child_by_field_name("body")
    if body is None or body.type != "statement_block":
        raise TargetNotFound(transformation.target, reason=f"{name} has no block body")

    statements = body.named_children
    if statements and statements[0].start_point[0] != body.start_point[0]:
        indent = module.line_indent(statements[0])
    else:
        indent = module.line_indent(body) + "  "
    lines = textwrap.dedent(code).strip("\n").split("\n")
    block = "\n".join(f"{indent}{line}" if line.strip() else "" for line in lines)

    opening, closing = body.children[0], body.children[-1]
    if transformation.position == "start":
        return module.splice(opening.end_byte, opening.end_byte, f"\n{block}")
    if module.starts_line(closing):
        line_start = module.line_start(closing)
        return module.splice(line_start, line_start, f"{block}\n")
    return module.splice(closing.start_byte, closing.start_byte, f"\n{block}\n{module.line_indent(body)}")


class SemanticStrategy(EditStrategy):
    """Structural edits for JavaScript and TypeScript sources."""

    name = "semantic"
    kind = EditKind.SEMANTIC

    def __init__(
        self,
        extensions: AbstractSet[str] | None = None,
        *,
        degraded_unsupported: DegradedPolicy = "raise",
    ) -> None:
        super().__init__(extensions if extensions is not None else SEMANTIC_EXTENSIONS)
        self._degraded_unsupported = degraded_unsupported

    def apply(self, content: str, edit: FileEdit, *, extension: str = "") -> str:
        if isinstance(edit, SemanticEdit):
            transformations = list(edit.transformations)
        elif isinstance(edit, TextPatchEdit):
            transformations = [
                Transformation(action=TransformAction.REPLACE, target=patch.find, code=patch.replace)
                for patch in edit.patches
            ]
        elif isinstance(edit, LineRangeEdit):
            raise InvalidInstruction(
                "Semantic strategy cannot consume lineRange edits",
                details={"file": edit.target_file, "editKind": edit.kind.value},
            )
        else:
            raise InvalidInstruction(f"Unsupported edit payload {type(edit).__name__}")
        return self.apply_transformations(content, transformations, extension=extension)

    def apply_transformations(
        self,
        content: str,
        transformations: Sequence[Transformation],
        *,
        extension: str = "",
    ) -> str:
        """Apply ``transformations`` structurally, or as text when ``content`` does not parse."""
        dialect = dialect_for_extension(extension)
        try:
            module = ScriptModule.parse(content, dialect)
        except ParseFailure as failure:
            LOGGER.info(
                "Source does not parse (line %d: %s); applying %d transformation(s) as text",
                failure.line,
                failure,
                len(transformations),
            )
            return text_actions.apply_text_transformations(
                content,
                transformations,
                unsupported=self._degraded_unsupported,
            )
        for transformation in transformations:
            module = self._apply_structural(module, transformation)
        return module.generate()

    def _apply_structural(self, module: ScriptModule, transformation: Transformation) -> ScriptModule:
        text_actions.require_target(transformation)
        action = transformation.action
        source = module.generate()
        if action is TransformAction.MODIFY:
            updated = _PathResolver(module, transformation.target).assign(render_value(transformation))
        elif action in {TransformAction.INSERT_AFTER, TransformAction.INSERT_BEFORE}:
            updated = text_actions.insert_relative(source, transformation)
        elif action is TransformAction.RENAME:
            updated = text_actions.rename(source, transformation)
        elif action is TransformAction.DELETE:
            updated = text_actions.delete_lines(source, transformation)
        elif action is TransformAction.REPLACE:
            updated = text_actions.replace_first(source, transformation)
        elif action is TransformAction.INSERT_IN_BODY:
            updated = _insert_in_body(module, transformation)
        else:
            updated = text_actions.wrap(source, transformation)
        LOGGER.debug("Applied %s to %r", action.value, transformation.target)
        return module.reparse(updated, action=action.value)
