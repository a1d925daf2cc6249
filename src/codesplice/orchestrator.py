"""Batch application of file edits with per-file fallback and reporting."""

from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Mapping, Sequence

from .config import EngineConfig
from .errors import EditError
from .router import StrategySelector, detect_file_type
from .strategies import EditStrategy, LineRangeStrategy, default_strategies
from .structured import EditKind, FileEdit, LineOperation, ProjectFile
from .telemetry import emit_event
from .validator import ValidationReport, validate

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class FileEditFailure:
    """Record of an edit that could not be applied to one file."""

    file: str
    error: str
    message: str
    fallback_attempted: bool = False

    def render(self) -> str:
        suffix = " (fallback failed)" if self.fallback_attempted else ""
        return f"{self.file}: {self.error}: {self.message}{suffix}"


@dataclass(slots=True)
class BatchResult:
    """Outcome of one ``apply_edit_batch`` call."""

    updated_files: dict[str, ProjectFile]
    applied_file_names: list[str] = field(default_factory=list)
    errors: list[FileEditFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def summarize_batch(edits: Sequence[FileEdit]) -> str:
    """Return one line per file listing how many operations each edit kind carries."""
    per_file: "OrderedDict[str, list[str]]" = OrderedDict()
    for edit in edits:
        per_file.setdefault(edit.target_file, []).append(f"{edit.kind.value}: {edit.describe()}")
    if not per_file:
        return "No edits."
    return "\n".join(f"{name}: {'; '.join(parts)}" for name, parts in per_file.items())


class EditOrchestrator:
    """Sequences strategy selection, application and fallback across an edit batch."""

    def __init__(
        self,
        strategies: Sequence[EditStrategy] | None = None,
        *,
        config: EngineConfig | None = None,
    ) -> None:
        self._config = config or EngineConfig()
        self._selector = StrategySelector(strategies or default_strategies(self._config))
        fallback = self._selector.for_kind(EditKind.LINE_RANGE)
        self._fallback = fallback if isinstance(fallback, LineRangeStrategy) else LineRangeStrategy()

    @property
    def selector(self) -> StrategySelector:
        return self._selector

    def _emit(self, event: str, **fields: object) -> None:
        emit_event(event, enabled=self._config.telemetry_enabled, **fields)

    def apply_edit_batch(
        self,
        current_files: Mapping[str, ProjectFile],
        edits: Sequence[FileEdit],
    ) -> BatchResult:
        """Apply ``edits`` in order against a copy of ``current_files``.

        Failures are recorded per file and never abort the rest of the batch.
        """
        files: dict[str, ProjectFile] = dict(current_files)
        result = BatchResult(updated_files=files)
        for edit in edits:
            name = edit.target_file
            entry = files.get(name)
            extension = detect_file_type(name)
            if entry is None:
                LOGGER.info("Creating %s from an empty file", name)
                entry = ProjectFile(content="", declared_type=extension)
            outcome = self._apply_one(entry.content, edit, extension)
            if isinstance(outcome, FileEditFailure):
                result.errors.append(outcome)
                continue
            files[name] = entry.model_copy(update={"content": outcome})
            if name not in result.applied_file_names:
                result.applied_file_names.append(name)

        self._emit(
            "batch.completed",
            edits=len(edits),
            applied=result.applied_file_names,
            failures=result.errors,
        )
        return result

    def _apply_one(self, content: str, edit: FileEdit, extension: str) -> str | FileEditFailure:
        name = edit.target_file
        strategy = self._selector.select(edit.kind, extension)
        try:
            updated = strategy.apply(content, edit, extension=extension)
        except EditError as error:
            LOGGER.warning("%s failed on %s: %s", strategy.name, name, error)
            self._emit("edit.failed", file=name, strategy=strategy.name, error=error)
            fallback_operations = edit.fallback_operations
            if not fallback_operations:
                return FileEditFailure(file=name, error=error.kind, message=str(error))
            return self._apply_fallback(content, name, fallback_operations, error)
        self._emit("edit.applied", file=name, strategy=strategy.name, kind=edit.kind)
        return updated

    def _apply_fallback(
        self,
        content: str,
        name: str,
        operations: Sequence[LineOperation],
        original_error: EditError,
    ) -> str | FileEditFailure:
        LOGGER.info("Retrying %s with %d fallback line operation(s)", name, len(operations))
        try:
            updated = self._fallback.apply_operations(content, operations)
        except EditError as error:
            LOGGER.warning("Fallback failed on %s: %s", name, error)
            self._emit("edit.failed", file=name, strategy=self._fallback.name, error=error)
            return FileEditFailure(
                file=name,
                error=original_error.kind,
                message=f"{original_error}; fallback: {error}",
                fallback_attempted=True,
            )
        self._emit("edit.fallback", file=name, strategy=self._fallback.name, operations=len(operations))
        return updated

    def validate(self, files: Mapping[str, ProjectFile]) -> ValidationReport:
        return validate(files)

    def summarize_batch(self, edits: Sequence[FileEdit]) -> str:
        return summarize_batch(edits)


def apply_edit_batch(
    current_files: Mapping[str, ProjectFile],
    edits: Sequence[FileEdit],
    *,
    config: EngineConfig | None = None,
) -> BatchResult:
    """Convenience wrapper building a default orchestrator for one batch."""
    return EditOrchestrator(config=config).apply_edit_batch(current_files, edits)
