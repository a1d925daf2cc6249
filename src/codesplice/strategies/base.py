"""Common interface shared by the edit strategies."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import AbstractSet, ClassVar

from ..structured import EditKind, FileEdit


class EditStrategy(ABC):
    """Turns one ``FileEdit`` plus current text into replacement text."""

    name: ClassVar[str]
    kind: ClassVar[EditKind]

    def __init__(self, extensions: AbstractSet[str] | None = None) -> None:
        self._extensions = frozenset(ext.lower().lstrip(".") for ext in extensions) if extensions is not None else None

    def can_handle(self, extension: str) -> bool:
        """Return whether the strategy supports files with ``extension``."""
        if self._extensions is None:
            return True
        return extension.lower().lstrip(".") in self._extensions

    @abstractmethod
    def apply(self, content: str, edit: FileEdit, *, extension: str = "") -> str:
        """Apply ``edit`` to ``content`` and return the complete new text."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
