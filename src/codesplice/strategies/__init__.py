"""Edit strategies and the default priority order used by the selector."""

from __future__ import annotations

from ..config import EngineConfig
from .base import EditStrategy
from .line_range import LineRangeStrategy
from .semantic import SemanticStrategy
from .text_patch import TextPatchStrategy

__all__ = [
    "EditStrategy",
    "LineRangeStrategy",
    "SemanticStrategy",
    "TextPatchStrategy",
    "default_strategies",
]


def default_strategies(config: EngineConfig | None = None) -> list[EditStrategy]:
    """Return fresh strategies in priority order: semantic, text patch, line range."""
    config = config or EngineConfig()
    return [
        SemanticStrategy(
            config.semantic_extensions,
            degraded_unsupported=config.degraded_unsupported,
        ),
        TextPatchStrategy(
            config.text_patch_extensions,
            degraded_unsupported=config.degraded_unsupported,
        ),
        LineRangeStrategy(),
    ]
