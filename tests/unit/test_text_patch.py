from __future__ import annotations

import pytest

from codesplice.errors import InvalidInstruction, TargetNotFound, UnsupportedInDegradedMode
from codesplice.strategies.text_patch import TextPatchStrategy, apply_patches
from codesplice.structured import LineRangeEdit, Patch, SemanticEdit, TextPatchEdit


def test_markup_class_is_replaced() -> None:
    markup = '<body>\n  <div class="container">\n    <p>Hi</p>\n  </div>\n</body>\n'
    edit = TextPatchEdit(
        target_file="index.html",
        patches=[Patch(find='<div class="container">', replace='<div class="wrapper">')],
    )

    result = TextPatchStrategy().apply(markup, edit, extension="html")

    assert "wrapper" in result
    assert "container" not in result


def test_every_replacement_is_present_and_replaced_text_is_gone() -> None:
    content = "color: red;\nmargin: 0;\npadding: 1px;\n"
    patches = [
        Patch(find="red", replace="blue"),
        Patch(find="margin: 0", replace="margin: 4px"),
        Patch(find="padding: 1px", replace="padding: 2px"),
    ]

    result = apply_patches(content, patches)

    for patch in patches:
        assert patch.replace in result
        assert patch.find not in result


def test_only_first_occurrence_is_replaced_and_patches_chain() -> None:
    result = apply_patches("a a a", [Patch(find="a", replace="b"), Patch(find="b a", replace="c")])

    assert result == "c a"


def test_absent_find_raises_target_not_found() -> None:
    with pytest.raises(TargetNotFound) as excinfo:
        apply_patches("hello", [Patch(find="hello", replace="bye"), Patch(find="missing", replace="x")])

    assert excinfo.value.target == "missing"


def test_empty_find_raises_invalid_instruction() -> None:
    with pytest.raises(InvalidInstruction):
        apply_patches("hello", [Patch(find="", replace="x")])


def test_semantic_payload_is_interpreted_as_text() -> None:
    edit = SemanticEdit(
        target_file="styles.css",
        transformations=[
            {"action": "replace", "target": "red", "value": "green"},
            {"action": "insert-after", "target": "body {", "code": "  margin: 0;"},
        ],
    )

    result = TextPatchStrategy().apply("body {\n  color: red;\n}", edit, extension="css")

    assert result == "body {\n  margin: 0;\n  color: green;\n}"


def test_structural_only_actions_follow_the_degraded_policy() -> None:
    edit = SemanticEdit(
        target_file="styles.css",
        transformations=[{"action": "insert-in-body", "target": "body", "code": "x"}],
    )

    with pytest.raises(UnsupportedInDegradedMode):
        TextPatchStrategy().apply("body {}", edit)
    assert TextPatchStrategy(degraded_unsupported="skip").apply("body {}", edit) == "body {}"


def test_line_range_payload_is_rejected() -> None:
    edit = LineRangeEdit(target_file="a.css", operations=[])

    with pytest.raises(InvalidInstruction):
        TextPatchStrategy().apply("", edit)


def test_capability_covers_text_extensions_only() -> None:
    strategy = TextPatchStrategy()

    assert strategy.can_handle("HTML")
    assert strategy.can_handle(".scss")
    assert not strategy.can_handle("js")


def test_semantic_delete_with_empty_target_keeps_markdown_intact() -> None:
    edit = SemanticEdit(target_file="README.md", transformations=[{"action": "delete", "target": ""}])

    with pytest.raises(InvalidInstruction):
        TextPatchStrategy().apply("# Title\nbody\n", edit, extension="md")
