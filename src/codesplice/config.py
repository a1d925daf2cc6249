"""Engine configuration loaded from YAML with environment overrides."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Iterable, Literal, Mapping

import yaml

LOGGER = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = "codesplice.yaml"

SEMANTIC_EXTENSIONS: frozenset[str] = frozenset({"js", "jsx", "ts", "tsx", "mjs", "cjs"})
TEXT_PATCH_EXTENSIONS: frozenset[str] = frozenset(
    {"html", "css", "scss", "less", "xml", "json", "yaml", "yml", "md", "txt"}
)

DegradedPolicy = Literal["raise", "skip"]

DEFAULT_CONFIG_TEMPLATE: dict[str, Any] = {
    "engine": {
        "semantic_extensions": sorted(SEMANTIC_EXTENSIONS),
        "text_patch_extensions": sorted(TEXT_PATCH_EXTENSIONS),
        "degraded_unsupported": "raise",
        "telemetry": True,
    },
}


@dataclass(frozen=True, slots=True)
class EngineConfig:
    """Immutable settings shared by every strategy of an engine instance."""

    semantic_extensions: frozenset[str] = field(default=SEMANTIC_EXTENSIONS)
    text_patch_extensions: frozenset[str] = field(default=TEXT_PATCH_EXTENSIONS)
    degraded_unsupported: DegradedPolicy = "raise"
    telemetry_enabled: bool = True


def _normalise_extensions(raw: Any, default: frozenset[str]) -> frozenset[str]:
    """Coerce a YAML list of extensions into a lowercase set without dots."""
    if isinstance(raw, str):
        raw = [raw]
    if not isinstance(raw, Iterable):
        return default
    cleaned = {
        str(entry).strip().lower().lstrip(".")
        for entry in raw
        if isinstance(entry, (str, int)) and str(entry).strip()
    }
    return frozenset(cleaned) if cleaned else default


def _parse_policy(raw: Any, default: DegradedPolicy) -> DegradedPolicy:
    if isinstance(raw, str):
        lowered = raw.strip().lower()
        if lowered == "raise":
            return "raise"
        if lowered == "skip":
            return "skip"
    if raw is not None:
        LOGGER.warning("Ignoring unknown degraded_unsupported policy %r", raw)
    return default


def _parse_flag(raw: Any, default: bool) -> bool:
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, str):
        lowered = raw.strip().lower()
        if lowered in {"1", "true", "yes", "on"}:
            return True
        if lowered in {"0", "false", "no", "off"}:
            return False
    return default


def config_from_mapping(data: Mapping[str, Any]) -> EngineConfig:
    """Build an ``EngineConfig`` from the ``engine`` section of a config mapping."""
    section = data.get("engine") if isinstance(data, Mapping) else None
    if not isinstance(section, Mapping):
        return EngineConfig()
    defaults = EngineConfig()
    return EngineConfig(
        semantic_extensions=_normalise_extensions(
            section.get("semantic_extensions"), defaults.semantic_extensions
        ),
        text_patch_extensions=_normalise_extensions(
            section.get("text_patch_extensions"), defaults.text_patch_extensions
        ),
        degraded_unsupported=_parse_policy(
            section.get("degraded_unsupported"), defaults.degraded_unsupported
        ),
        telemetry_enabled=_parse_flag(section.get("telemetry"), defaults.telemetry_enabled),
    )


def _load_yaml(path: Path) -> Mapping[str, Any]:
    """Read a YAML mapping, treating a missing file as empty configuration."""
    try:
        with path.open("r", encoding="utf-8") as handle:
            loaded = yaml.safe_load(handle) or {}
    except FileNotFoundError:
        return {}
    if not isinstance(loaded, Mapping):
        raise ValueError(f"Expected mapping at top level of {path}")
    return loaded


def load_engine_config(
    path: Path | str | None = None,
    *,
    env: Mapping[str, str] | None = None,
) -> EngineConfig:
    """Load engine settings from ``path`` and apply ``CODESPLICE_*`` overrides."""
    env_mapping = os.environ if env is None else env
    config = EngineConfig()
    if path is not None:
        config = config_from_mapping(_load_yaml(Path(path)))

    policy_override = env_mapping.get("CODESPLICE_DEGRADED_UNSUPPORTED")
    if policy_override is not None:
        config = replace(
            config,
            degraded_unsupported=_parse_policy(policy_override, config.degraded_unsupported),
        )

    telemetry_override = env_mapping.get("CODESPLICE_TELEMETRY")
    if telemetry_override is not None:
        config = replace(
            config,
            telemetry_enabled=_parse_flag(telemetry_override, config.telemetry_enabled),
        )
    return config
