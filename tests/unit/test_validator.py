from __future__ import annotations

import textwrap

import pytest

from codesplice.structured import ProjectFile
from codesplice.validator import (
    ValidationError,
    validate,
    validate_markup,
    validate_python,
    validate_script,
    validate_style,
)

WELL_FORMED = {
    "app.js": ProjectFile(content="const a = 1;\nfunction f() {\n  return a;\n}\n", declared_type="javascript"),
    "types.ts": ProjectFile(content="const n: number = 1;\nexport { n };\n", declared_type="typescript"),
    "view.tsx": ProjectFile(content="export const V = () => <div>{1}</div>;\n", declared_type="tsx"),
    "index.html": ProjectFile(
        content='<!DOCTYPE html>\n<html>\n<head><meta charset="utf-8"></head>\n<body>\n<br>\n<img src="a.png" />\n<div><p>Hi</p></div>\n</body>\n</html>\n',
        declared_type="html",
    ),
    "style.css": ProjectFile(content="body {\n  color: red;\n}\n.a { margin: 0; }\n", declared_type="css"),
    "tool.py": ProjectFile(content="def run() -> int:\n    return 1\n", declared_type="python"),
    "notes.md": ProjectFile(content="# {{ unbalanced <div>", declared_type="markdown"),
}


def test_well_formed_files_are_valid() -> None:
    report = validate(WELL_FORMED)

    assert report.valid is True
    assert report.errors == []


@pytest.mark.parametrize("name", sorted(WELL_FORMED))
def test_each_well_formed_file_is_valid_on_its_own(name: str) -> None:
    assert validate({name: WELL_FORMED[name]}).valid


def test_single_unclosed_style_brace_is_reported_on_last_line() -> None:
    content = "body {\n  color: red;\n.a { margin: 0; }"

    errors = validate_style("style.css", content)

    assert len(errors) == 1
    assert errors[0].line == 3
    assert errors[0].message == "1 unclosed brace(s)"


def test_unexpected_style_brace_resets_counter() -> None:
    errors = validate_style("style.css", "}\na { b: c; }\n")

    assert [(error.line, error.message) for error in errors] == [(1, "Unexpected closing brace }")]


def test_markup_reports_mismatch_and_unclosed_tags() -> None:
    content = textwrap.dedent(
        """\
        <div>
          <section>
          </span>
        </div>
        """
    )

    errors = validate_markup("index.html", content)

    assert [error.message for error in errors] == [
        "Unexpected closing tag </span>",
        "Unexpected closing tag </div>",
        "Unclosed tag <div>",
        "Unclosed tag <section>",
    ]
    assert errors[-1].line == 2


def test_script_syntax_error_has_position() -> None:
    errors = validate_script("app.js", "const a = 1;\nconst = ;\n", "javascript")

    assert len(errors) == 1
    assert errors[0].line == 2
    assert errors[0].category == "syntax"
    assert errors[0].message.startswith(("Unexpected", "Missing"))


def test_script_missing_brace_is_reported() -> None:
    errors = validate_script("app.js", "function f() {\n  return 1;\n", "js")

    assert len(errors) == 1


def test_python_syntax_error_is_reported() -> None:
    errors = validate_python("tool.py", "x = = 1\n")

    assert len(errors) == 1
    assert (errors[0].line, errors[0].column) == (1, 0)


def test_declared_type_falls_back_to_extension() -> None:
    report = validate({"broken.css": ProjectFile(content="a {")})

    assert not report.valid
    assert report.for_file("broken.css")[0].message == "1 unclosed brace(s)"


def test_error_summary_format() -> None:
    report = validate({"broken.css": ProjectFile(content="}", declared_type="css")})

    assert report.error_summary() == "broken.css:1:1 - syntax error: Unexpected closing brace }"
    assert report.to_dict()["valid"] is False


def test_validation_error_render() -> None:
    error = ValidationError("a.js", 3, 4, "Missing \";\"")

    assert error.render() == 'a.js:3:4 - syntax error: Missing ";"'


def test_tsx_file_declared_typescript_accepts_jsx() -> None:
    report = validate(
        {"App.tsx": ProjectFile(content="const App = () => <div>hi</div>;\n", declared_type="typescript")}
    )

    assert report.valid, report.error_summary()
