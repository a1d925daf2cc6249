"""Typed payloads that describe structured edits submitted to the engine."""

from __future__ import annotations

import json
from enum import Enum
from typing import Annotated, Any, List, Literal, Mapping, Optional, Sequence, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel
from pydantic.type_adapter import TypeAdapter

__all__ = [
    "EditKind",
    "FileEdit",
    "LineOperation",
    "LineRangeEdit",
    "Patch",
    "ProjectFile",
    "SemanticEdit",
    "TextPatchEdit",
    "Transformation",
    "TransformAction",
    "coerce_edit_batch",
    "coerce_project_files",
]


class EditKind(str, Enum):
    """Discriminator values for the ``FileEdit`` union."""

    SEMANTIC = "semantic"
    TEXT_PATCH = "textPatch"
    LINE_RANGE = "lineRange"


class TransformAction(str, Enum):
    """Semantic transformation actions understood by the engine."""

    MODIFY = "modify"
    INSERT_AFTER = "insert-after"
    INSERT_BEFORE = "insert-before"
    RENAME = "rename"
    DELETE = "delete"
    REPLACE = "replace"
    INSERT_IN_BODY = "insert-in-body"
    WRAP_IN_CONDITION = "wrap-in-condition"


_ACTION_ALIASES = {
    "add-after": TransformAction.INSERT_AFTER.value,
    "add-before": TransformAction.INSERT_BEFORE.value,
    "insert-in": TransformAction.INSERT_IN_BODY.value,
}

_LEGACY_EDIT_KINDS = {
    "ast": EditKind.SEMANTIC.value,
    "magicast": EditKind.SEMANTIC.value,
    "diff": EditKind.TEXT_PATCH.value,
    "line": EditKind.LINE_RANGE.value,
}


class PayloadModel(BaseModel):
    """Base model for instruction payloads (camelCase on the wire)."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )


class Transformation(PayloadModel):
    """Single semantic transformation addressed by path or text pattern."""

    action: TransformAction
    target: str
    value: Optional[str] = None
    code: Optional[str] = None
    position: Literal["start", "end"] = "end"

    @field_validator("action", mode="before")
    @classmethod
    def _normalise_action(cls, value: Any) -> Any:
        if isinstance(value, str):
            lowered = value.strip().lower().replace("_", "-")
            return _ACTION_ALIASES.get(lowered, lowered)
        return value

    @field_validator("position", mode="before")
    @classmethod
    def _normalise_position(cls, value: Any) -> Any:
        if value is None:
            return "end"
        if isinstance(value, str):
            lowered = value.strip().lower()
            return {"before": "start", "after": "end"}.get(lowered, lowered)
        return value

    @field_validator("value", mode="before")
    @classmethod
    def _stringify_value(cls, value: Any) -> Any:
        if value is None or isinstance(value, str):
            return value
        return json.dumps(value)

    @property
    def payload(self) -> str | None:
        """Return the code to splice in, preferring ``code`` over ``value``."""
        if self.code is not None:
            return self.code
        return self.value


class Patch(PayloadModel):
    """Literal find/replace pair."""

    find: str
    replace: str


class LineOperation(PayloadModel):
    """Line-numbered edit with 1-based inclusive bounds."""

    kind: Literal["replace", "insert", "delete"] = Field(
        validation_alias=AliasChoices("kind", "type"),
    )
    start_line: Optional[int] = None
    end_line: Optional[int] = None
    after_line: Optional[int] = None
    content: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("content", "newContent", "new_content"),
    )

    @property
    def sort_line(self) -> int:
        """Line used to order operations (``startLine`` falling back to ``afterLine``)."""
        if self.start_line is not None:
            return self.start_line
        if self.after_line is not None:
            return self.after_line
        return 0


class SemanticEdit(PayloadModel):
    """Semantic transformations for one file."""

    target_file: str = Field(validation_alias=AliasChoices("targetFile", "target_file", "file"))
    edit_kind: Literal["semantic"] = "semantic"
    transformations: List[Transformation] = Field(default_factory=list)
    fallback_operations: Optional[List[LineOperation]] = None

    @property
    def kind(self) -> EditKind:
        return EditKind.SEMANTIC

    def describe(self) -> str:
        return _count_label(len(self.transformations), "transformation")


class TextPatchEdit(PayloadModel):
    """Ordered literal patches for one file."""

    target_file: str = Field(validation_alias=AliasChoices("targetFile", "target_file", "file"))
    edit_kind: Literal["textPatch"] = "textPatch"
    patches: List[Patch] = Field(default_factory=list)
    fallback_operations: Optional[List[LineOperation]] = None

    @property
    def kind(self) -> EditKind:
        return EditKind.TEXT_PATCH

    def describe(self) -> str:
        return _count_label(len(self.patches), "patch", plural="patches")


class LineRangeEdit(PayloadModel):
    """Line-numbered operations for one file."""

    target_file: str = Field(validation_alias=AliasChoices("targetFile", "target_file", "file"))
    edit_kind: Literal["lineRange"] = "lineRange"
    operations: List[LineOperation] = Field(default_factory=list)

    @property
    def kind(self) -> EditKind:
        return EditKind.LINE_RANGE

    @property
    def fallback_operations(self) -> None:
        return None

    def describe(self) -> str:
        return _count_label(len(self.operations), "operation")


FileEdit = Annotated[
    Union[SemanticEdit, TextPatchEdit, LineRangeEdit],
    Field(discriminator="edit_kind"),
]


class ProjectFile(BaseModel):
    """One entry of a project snapshot."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    content: str = ""
    declared_type: str = Field(
        default="",
        validation_alias=AliasChoices("declaredType", "declared_type", "type"),
        serialization_alias="type",
    )


def _count_label(count: int, noun: str, *, plural: str | None = None) -> str:
    label = noun if count == 1 else (plural or f"{noun}s")
    return f"{count} {label}"


def _normalise_legacy_edit(entry: Any) -> Any:
    """Translate the original wire keys (``file``/``type``) into the tagged form."""
    if not isinstance(entry, Mapping):
        return entry
    normalised = dict(entry)
    if "editKind" not in normalised and "edit_kind" not in normalised:
        declared = normalised.get("type")
        if isinstance(declared, str):
            declared = declared.strip()
            normalised["editKind"] = _LEGACY_EDIT_KINDS.get(declared.lower(), declared)
    if normalised.get("editKind") in _LEGACY_EDIT_KINDS:
        normalised["editKind"] = _LEGACY_EDIT_KINDS[normalised["editKind"]]
    if "fallbackOperations" not in normalised and normalised.get("editKind") != EditKind.LINE_RANGE.value:
        operations = normalised.get("operations")
        if isinstance(operations, Sequence) and not isinstance(operations, (str, bytes)):
            normalised["fallbackOperations"] = operations
    return normalised


_EDIT_BATCH_ADAPTER: TypeAdapter[List[FileEdit]] = TypeAdapter(List[FileEdit])
_PROJECT_FILES_ADAPTER: TypeAdapter[dict[str, ProjectFile]] = TypeAdapter(dict[str, ProjectFile])


def coerce_edit_batch(payload: Any) -> list[FileEdit]:
    """Validate a decoded JSON payload into an ordered list of ``FileEdit`` values.

    Accepts either a list of edits or a mapping with an ``edits`` list.
    """
    if isinstance(payload, Mapping) and "edits" in payload:
        payload = payload["edits"]
    if not isinstance(payload, Sequence) or isinstance(payload, (str, bytes)):
        raise ValueError("Edit batch must be a list of edits or a mapping with an 'edits' list")
    entries = [_normalise_legacy_edit(entry) for entry in payload]
    try:
        return _EDIT_BATCH_ADAPTER.validate_python(entries)
    except ValidationError as error:
        raise ValueError(f"Edit batch did not validate: {error}") from error


def coerce_project_files(payload: Any) -> dict[str, ProjectFile]:
    """Validate a snapshot mapping of file name to ``{content, type}`` entries."""
    if not isinstance(payload, Mapping):
        raise ValueError("Project snapshot must be a mapping of file names to entries")
    normalised: dict[str, Any] = {}
    for name, entry in payload.items():
        if isinstance(entry, str):
            normalised[str(name)] = {"content": entry}
        else:
            normalised[str(name)] = entry
    try:
        return _PROJECT_FILES_ADAPTER.validate_python(normalised)
    except ValidationError as error:
        raise ValueError(f"Project snapshot did not validate: {error}") from error
