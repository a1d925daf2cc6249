"""Tree-sitter backed parse/regenerate primitive for JavaScript and TypeScript."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Iterator, Literal

import tree_sitter_javascript
import tree_sitter_typescript
from tree_sitter import Language, Node, Parser, Tree

from ..errors import ParseFailure, UnparseableResult

__all__ = [
    "CLASS_TYPES",
    "Dialect",
    "FIELD_TYPES",
    "FUNCTION_TYPES",
    "ScriptModule",
    "SyntaxIssue",
    "dialect_for_extension",
    "find_function",
    "iter_bindings",
    "locate_syntax_error",
    "member_name",
    "parse_tree",
    "unwrap_expression",
]

Dialect = Literal["javascript", "typescript", "tsx"]

FUNCTION_TYPES = frozenset(
    {
        "function_declaration",
        "generator_function_declaration",
        "function_expression",
        "function",
        "generator_function",
        "arrow_function",
        "method_definition",
    }
)
CLASS_TYPES = frozenset({"class_declaration", "class", "abstract_class_declaration"})
FIELD_TYPES = frozenset({"field_definition", "public_field_definition"})
_DECLARATION_LISTS = frozenset({"lexical_declaration", "variable_declaration"})
_WRAPPER_TYPES = frozenset(
    {"parenthesized_expression", "as_expression", "satisfies_expression", "non_null_expression"}
)


@lru_cache(maxsize=None)
def _language(dialect: Dialect) -> Language:
    if dialect == "tsx":
        return Language(tree_sitter_typescript.language_tsx())
    if dialect == "typescript":
        return Language(tree_sitter_typescript.language_typescript())
    return Language(tree_sitter_javascript.language())


def dialect_for_extension(extension: str) -> Dialect:
    """Map a file extension (or declared type) to the grammar that parses it."""
    lowered = extension.lower().lstrip(".")
    if lowered == "tsx":
        return "tsx"
    if lowered in {"ts", "mts", "cts", "typescript"}:
        return "typescript"
    return "javascript"


@dataclass(frozen=True, slots=True)
class SyntaxIssue:
    """Position of the first syntax problem in a parse tree."""

    line: int
    column: int
    message: str


def _char_column(source: bytes, byte_offset: int) -> int:
    line_start = source.rfind(b"\n", 0, byte_offset) + 1
    return len(source[line_start:byte_offset].decode("utf-8", errors="replace"))


def locate_syntax_error(tree: Tree, source: bytes) -> SyntaxIssue | None:
    """Return the first error or missing node in document order, if any."""
    root = tree.root_node
    if not root.has_error:
        return None
    stack: list[Node] = [root]
    while stack:
        node = stack.pop()
        if node.is_missing:
            return SyntaxIssue(
                line=node.start_point[0] + 1,
                column=_char_column(source, node.start_byte),
                message=f'Missing "{node.type}"',
            )
        if node.is_error:
            fragment = source[node.start_byte : node.end_byte].decode("utf-8", errors="replace")
            token = fragment.strip().split("\n", 1)[0][:40]
            message = f'Unexpected token "{token}"' if token else "Unexpected end of input"
            return SyntaxIssue(
                line=node.start_point[0] + 1,
                column=_char_column(source, node.start_byte),
                message=message,
            )
        for child in reversed(node.children):
            if child.has_error or child.is_missing:
                stack.append(child)
    return SyntaxIssue(line=1, column=0, message="Syntax error")


def parse_tree(source: str, dialect: Dialect) -> tuple[Tree, bytes]:
    encoded = source.encode("utf-8")
    parser = Parser(_language(dialect))
    return parser.parse(encoded), encoded


@dataclass(slots=True)
class ScriptModule:
    """Parsed script whose text is regenerated by splicing byte spans."""

    source: str
    dialect: Dialect
    tree: Tree
    encoded: bytes

    @classmethod
    def parse(cls, source: str, dialect: Dialect = "javascript") -> "ScriptModule":
        """Parse ``source``; raise :class:`ParseFailure` when the tree contains errors."""
        tree, encoded = parse_tree(source, dialect)
        issue = locate_syntax_error(tree, encoded)
        if issue is not None:
            raise ParseFailure(issue.message, line=issue.line, column=issue.column)
        return cls(source=source, dialect=dialect, tree=tree, encoded=encoded)

    @property
    def root(self) -> Node:
        return self.tree.root_node

    def generate(self) -> str:
        return self.source

    def line_start(self, node: Node) -> int:
        return self.encoded.rfind(b"\n", 0, node.start_byte) + 1

    def starts_line(self, node: Node) -> bool:
        """True when only whitespace precedes ``node`` on its line."""
        return not self.encoded[self.line_start(node) : node.start_byte].strip()

    def line_indent(self, node: Node) -> str:
        """Leading whitespace of the line on which ``node`` starts."""
        prefix = self.encoded[self.line_start(node) : node.start_byte].decode("utf-8")
        return prefix[: len(prefix) - len(prefix.lstrip())]

    def splice(self, start_byte: int, end_byte: int, replacement: str) -> str:
        """Return the module text with ``[start_byte, end_byte)`` replaced."""
        updated = self.encoded[:start_byte] + replacement.encode("utf-8") + self.encoded[end_byte:]
        return updated.decode("utf-8")

    def reparse(self, source: str, *, action: str) -> "ScriptModule":
        """Re-parse regenerated text, refusing results that no longer parse."""
        try:
            return ScriptModule.parse(source, self.dialect)
        except ParseFailure as failure:
            raise UnparseableResult(
                f"{action} produced unparseable code at line {failure.line}: {failure}",
                details={"action": action, "line": failure.line, "column": failure.column},
            ) from failure


def unwrap_expression(node: Node | None) -> Node | None:
    """Strip parentheses and TypeScript assertion wrappers from an expression."""
    while node is not None and node.type in _WRAPPER_TYPES:
        children = [child for child in node.named_children if child.type != "comment"]
        if not children:
            break
        node = children[0]
    return node


def member_name(node: Node, source: bytes) -> str | None:
    """Return the property/identifier name of a key-like node."""
    if node.type == "string":
        raw = source[node.start_byte : node.end_byte].decode("utf-8")
        return raw[1:-1] if len(raw) >= 2 else raw
    if node.type in {
        "identifier",
        "property_identifier",
        "private_property_identifier",
        "shorthand_property_identifier",
        "type_identifier",
        "number",
    }:
        return source[node.start_byte : node.end_byte].decode("utf-8")
    return None


def _declared_name(node: Node, source: bytes) -> str | None:
    for field_name in ("name", "property", "key"):
        child = node.child_by_field_name(field_name)
        if child is not None:
            return member_name(child, source)
    return None


def iter_bindings(scope: Node, source: bytes) -> Iterator[tuple[str, Node]]:
    """Yield ``(name, node)`` for declarations directly inside a program or block.

    Variable declarators, functions, classes, exported declarations and
    ``export default`` values (named ``default``) are reported in source order.
    """
    for statement in scope.named_children:
        node = statement
        if node.type == "export_statement":
            declaration = node.child_by_field_name("declaration")
            value = node.child_by_field_name("value")
            if declaration is not None:
                node = declaration
            elif value is not None:
                yield "default", value
                continue
            else:
                continue
        if node.type in _DECLARATION_LISTS:
            for declarator in node.named_children:
                if declarator.type != "variable_declarator":
                    continue
                name = _declared_name(declarator, source)
                if name is not None:
                    yield name, declarator
        elif node.type in FUNCTION_TYPES or node.type in CLASS_TYPES:
            name = _declared_name(node, source)
            if name is not None:
                yield name, node
        elif node.type == "expression_statement":
            expression = node.named_children[0] if node.named_children else None
            if expression is not None and expression.type == "assignment_expression":
                left = expression.child_by_field_name("left")
                if left is not None and left.type == "identifier":
                    yield member_name(left, source) or "", expression


def _is_function_value(node: Node | None) -> bool:
    node = unwrap_expression(node)
    return node is not None and node.type in FUNCTION_TYPES


def find_function(root: Node, name: str, source: bytes) -> Node | None:
    """Find the first function-like node named ``name`` in document order.

    Matches function declarations, methods, and variables, properties or
    assignments whose value is a function expression.
    """
    stack: list[Node] = [root]
    while stack:
        node = stack.pop()
        if node.type in {"function_declaration", "generator_function_declaration", "method_definition"}:
            if _declared_name(node, source) == name:
                return node
        elif node.type in {"variable_declarator", "pair"}:
            value = node.child_by_field_name("value")
            if _declared_name(node, source) == name and _is_function_value(value):
                return unwrap_expression(value)
        elif node.type == "assignment_expression":
            left = node.child_by_field_name("left")
            right = node.child_by_field_name("right")
            if left is not None and _is_function_value(right):
                left_name = left.child_by_field_name("property") if left.type == "member_expression" else left
                if left_name is not None and member_name(left_name, source) == name:
                    return unwrap_expression(right)
        stack.extend(reversed(node.named_children))
    return None
