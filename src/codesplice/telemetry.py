"""Structured telemetry events emitted while applying edit batches."""

from __future__ import annotations

import dataclasses
import json
import logging
from datetime import datetime, timezone
from enum import Enum
from pathlib import PurePath
from typing import Any

from pydantic import BaseModel

from .errors import EditError

TELEMETRY_LOGGER = logging.getLogger("codesplice.telemetry")


def _encode(value: Any) -> Any:
    """``json.dumps`` hook for engine objects carried in event fields."""
    if isinstance(value, EditError):
        return {"kind": value.kind, "message": str(value), "details": value.details}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, PurePath):
        return value.as_posix()
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=str)
    return str(value)


def emit_event(event: str, *, enabled: bool = True, **fields: Any) -> None:
    """Log ``event`` and its fields as one compact JSON line."""
    if not enabled:
        return
    payload = {"event": event, "timestamp": datetime.now(timezone.utc).isoformat(), **fields}
    TELEMETRY_LOGGER.info(json.dumps(payload, default=_encode, separators=(",", ":"), ensure_ascii=True))
