"""Ordered literal find/replace patches."""

from __future__ import annotations

import logging
from typing import AbstractSet, Sequence

from ..config import TEXT_PATCH_EXTENSIONS, DegradedPolicy
from ..errors import InvalidInstruction, TargetNotFound
from ..structured import EditKind, FileEdit, LineRangeEdit, Patch, SemanticEdit, TextPatchEdit
from .base import EditStrategy
from .text_actions import apply_text_transformations

LOGGER = logging.getLogger(__name__)


def apply_patches(content: str, patches: Sequence[Patch]) -> str:
    """Replace the first occurrence of each ``find`` in turn."""
    for index, patch in enumerate(patches):
        if not patch.find:
            raise InvalidInstruction(f"patch {index + 1} has an empty find string", details={"index": index})
        if patch.find not in content:
            raise TargetNotFound(patch.find, reason=f"patch {index + 1}")
        content = content.replace(patch.find, patch.replace, 1)
    return content


class TextPatchStrategy(EditStrategy):
    """Literal text replacement for markup, styles and data files."""

    name = "text-patch"
    kind = EditKind.TEXT_PATCH

    def __init__(
        self,
        extensions: AbstractSet[str] | None = None,
        *,
        degraded_unsupported: DegradedPolicy = "raise",
    ) -> None:
        super().__init__(extensions if extensions is not None else TEXT_PATCH_EXTENSIONS)
        self._degraded_unsupported = degraded_unsupported

    def apply(self, content: str, edit: FileEdit, *, extension: str = "") -> str:
        if isinstance(edit, TextPatchEdit):
            return self.apply_patches(content, edit.patches)
        if isinstance(edit, SemanticEdit):
            LOGGER.debug("Interpreting %s as text operations", edit.describe())
            return apply_text_transformations(
                content,
                edit.transformations,
                unsupported=self._degraded_unsupported,
            )
        if isinstance(edit, LineRangeEdit):
            raise InvalidInstruction(
                "Text-patch strategy cannot consume lineRange edits",
                details={"file": edit.target_file, "editKind": edit.kind.value},
            )
        raise InvalidInstruction(f"Unsupported edit payload {type(edit).__name__}")

    def apply_patches(self, content: str, patches: Sequence[Patch]) -> str:
        return apply_patches(content, patches)
