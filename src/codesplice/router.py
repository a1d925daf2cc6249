"""Selection logic that maps an edit kind and file extension to a strategy."""

from __future__ import annotations

from pathlib import PurePosixPath
from typing import Sequence

from .config import SEMANTIC_EXTENSIONS, TEXT_PATCH_EXTENSIONS
from .strategies import EditStrategy
from .structured import EditKind


def detect_file_type(path: str) -> str:
    """Return the lowercase extension of ``path`` without the leading dot."""
    return PurePosixPath(path.replace("\\", "/")).suffix.lower().lstrip(".")


def suggest_edit_kind(extension: str) -> EditKind:
    """Recommend the edit kind an instruction generator should emit for ``extension``."""
    lowered = extension.lower().lstrip(".")
    if lowered in SEMANTIC_EXTENSIONS:
        return EditKind.SEMANTIC
    if lowered in TEXT_PATCH_EXTENSIONS and lowered != "txt":
        return EditKind.TEXT_PATCH
    return EditKind.LINE_RANGE


class StrategySelector:
    """Pick the most specific capable strategy from an ordered collection.

    The requested kind wins when its strategy handles the extension; otherwise
    strategies are tried in the order given and the last one is the universal
    fallback.
    """

    def __init__(self, strategies: Sequence[EditStrategy]) -> None:
        if not strategies:
            raise ValueError("StrategySelector requires at least one strategy")
        self._strategies = tuple(strategies)
        self._by_kind: dict[EditKind, EditStrategy] = {}
        for strategy in self._strategies:
            self._by_kind.setdefault(strategy.kind, strategy)

    @property
    def strategies(self) -> tuple[EditStrategy, ...]:
        return self._strategies

    def select(self, edit_kind: EditKind | str, extension: str) -> EditStrategy:
        """Return the strategy that should apply an edit of ``edit_kind``."""
        kind = self._normalize_kind(edit_kind)
        requested = self._by_kind.get(kind)
        if requested is not None and requested.can_handle(extension):
            return requested
        for strategy in self._strategies:
            if strategy.can_handle(extension):
                return strategy
        return self._strategies[-1]

    def for_kind(self, edit_kind: EditKind | str) -> EditStrategy | None:
        """Return the first registered strategy of ``edit_kind``, ignoring extensions."""
        return self._by_kind.get(self._normalize_kind(edit_kind))

    @staticmethod
    def _normalize_kind(edit_kind: EditKind | str) -> EditKind:
        """Resolve ``edit_kind`` into a concrete ``EditKind`` enum member."""
        if isinstance(edit_kind, EditKind):
            return edit_kind
        try:
            return EditKind(edit_kind)
        except ValueError as error:
            raise ValueError(f"Unknown edit kind: {edit_kind!r}") from error
