from __future__ import annotations

import logging
from typing import Callable

import pytest

from codesplice.errors import InvalidInstruction, TargetNotFound, UnsupportedInDegradedMode
from codesplice.strategies.semantic import SemanticStrategy
from codesplice.structured import SemanticEdit
from codesplice.validator import validate_script

DuplicatedFunction = Callable[[int], str]

BROKEN_TAIL = "\nconst = ;\n"


def _apply(source: str, *transformations: dict, strategy: SemanticStrategy | None = None) -> str:
    edit = SemanticEdit(target_file="game.js", transformations=list(transformations))
    return (strategy or SemanticStrategy()).apply(source, edit, extension="js")


def _balanced(text: str) -> bool:
    return text.count("{") == text.count("}")


@pytest.mark.parametrize("copies", [1, 2, 3])
def test_delete_strips_duplicated_trailing_blocks(
    copies: int, duplicated_body: str, duplicated_function: DuplicatedFunction
) -> None:
    source = duplicated_function(copies)
    assert validate_script("game.js", source, "js"), "fixture must be unparseable"

    result = _apply(source, {"action": "delete", "target": duplicated_body})

    assert result.count("autoColorChangeTimer++;") == 1
    assert _balanced(result)
    assert validate_script("game.js", result, "js") == []


@pytest.mark.parametrize("copies", [1, 2])
def test_delete_anchored_on_function_header_strips_body_copies(
    copies: int, duplicated_function: DuplicatedFunction
) -> None:
    source = duplicated_function(copies)

    result = _apply(source, {"action": "delete", "target": "function updateColorSystem() {"})

    assert result.count("autoColorChangeTimer++;") == 1
    assert result.startswith("function updateColorSystem() {")
    assert _balanced(result)


def test_delete_of_unique_block_removes_it() -> None:
    source = "function keep() {\n  a();\n}\nfunction drop() {\n  b();\n}" + BROKEN_TAIL

    result = _apply(source, {"action": "delete", "target": "function drop() {"})

    assert "drop" not in result
    assert "function keep() {\n  a();\n}" in result


def test_delete_plain_target_drops_matching_lines() -> None:
    source = "draw();\nconsole.log('x');" + BROKEN_TAIL

    result = _apply(source, {"action": "delete", "target": "console.log"})

    assert "console.log" not in result
    assert result.startswith("draw();\n")


def test_replace_falls_back_to_function_block() -> None:
    source = "function draw() {\n  if (a) { old(); }\n}\nfunction other() {}" + BROKEN_TAIL

    result = _apply(
        source,
        {"action": "replace", "target": "function draw() { something else }", "code": "function draw() {\n  fresh();\n}"},
    )

    assert result.startswith("function draw() {\n  fresh();\n}\nfunction other() {}")
    assert "old();" not in result


def test_modify_with_literal_target_replaces_text() -> None:
    source = "const speed = 5;" + BROKEN_TAIL

    result = _apply(source, {"action": "modify", "target": "speed = 5", "value": "speed = 9"})

    assert result.startswith("const speed = 9;")


def test_missing_target_raises_target_not_found() -> None:
    with pytest.raises(TargetNotFound):
        _apply("draw();" + BROKEN_TAIL, {"action": "replace", "target": "function nothing()", "code": "x"})


def test_rename_insert_and_wrap_work_on_text() -> None:
    source = "let blob1 = 1;\nlet blob10 = 2;\ndraw(blob1);" + BROKEN_TAIL

    result = _apply(
        source,
        {"action": "rename", "target": "blob1", "value": "mainBlob"},
        {"action": "insert-after", "target": "let blob10", "code": "let extra = 3;"},
        {"action": "wrap-in-condition", "target": "draw(mainBlob);", "value": "ready"},
    )

    assert result.startswith(
        "let mainBlob = 1;\nlet blob10 = 2;\nlet extra = 3;\nif (ready) {\n  draw(mainBlob);\n}"
    )


def test_rename_requires_new_name() -> None:
    with pytest.raises(InvalidInstruction):
        _apply("let a = 1;" + BROKEN_TAIL, {"action": "rename", "target": "a"})


def test_insert_in_body_raises_by_default() -> None:
    with pytest.raises(UnsupportedInDegradedMode):
        _apply("function f() {}" + BROKEN_TAIL, {"action": "insert-in-body", "target": "f()", "code": "x();"})


def test_insert_in_body_is_skipped_when_configured(caplog: pytest.LogCaptureFixture) -> None:
    source = "function f() {}" + BROKEN_TAIL
    strategy = SemanticStrategy(degraded_unsupported="skip")

    with caplog.at_level(logging.WARNING, logger="codesplice.strategies.text_actions"):
        result = _apply(
            source,
            {"action": "insert-in-body", "target": "f()", "code": "x();"},
            {"action": "replace", "target": "f()", "code": "g()"},
            strategy=strategy,
        )

    assert result.startswith("function g() {}")
    assert any("insert-in-body" in record.getMessage() for record in caplog.records)


@pytest.mark.parametrize(
    "transformation",
    [
        {"action": "delete", "target": ""},
        {"action": "rename", "target": "", "value": "X"},
        {"action": "insert-before", "target": "", "code": "let c = 3;"},
        {"action": "wrap-in-condition", "target": "\n", "value": "ready"},
    ],
)
def test_empty_target_is_rejected_on_unparseable_source(transformation: dict) -> None:
    with pytest.raises(InvalidInstruction):
        _apply("let a = 1;" + BROKEN_TAIL, transformation)
