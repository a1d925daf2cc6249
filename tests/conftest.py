from __future__ import annotations

import json
import os
import subprocess
import sys
import textwrap
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


DUPLICATED_BODY = textwrap.dedent(
    """\
        // Handle auto color change timer
        autoColorChangeTimer++;
        if (autoColorChangeTimer > 100) {
            autoColorChangeTimer = 0;
        }
    }
    """
)


@pytest.fixture()
def duplicated_body() -> str:
    return DUPLICATED_BODY


@pytest.fixture()
def duplicated_function() -> Callable[[int], str]:
    """Build a correct function followed by ``copies`` pasted duplicates of its body."""

    def build(copies: int) -> str:
        return "function updateColorSystem() {\n" + DUPLICATED_BODY * (copies + 1)

    return build


@dataclass(slots=True)
class Workspace:
    """Scratch directory holding JSON inputs for CLI smoke tests."""

    root: Path

    def write_json(self, name: str, payload: Any) -> Path:
        path = self.root / name
        path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        return path

    def run_cli(self, *args: str) -> subprocess.CompletedProcess[str]:
        """Invoke ``python -m codesplice.cli`` with the provided arguments."""

        env = os.environ.copy()
        pythonpath = str(SRC)
        if env.get("PYTHONPATH"):
            pythonpath = os.pathsep.join([pythonpath, env["PYTHONPATH"]])
        env["PYTHONPATH"] = pythonpath
        env["CODESPLICE_TELEMETRY"] = "0"

        command = [sys.executable, "-m", "codesplice.cli", *args]
        return subprocess.run(  # noqa: S603 - command constructed from known values
            command,
            cwd=self.root,
            env=env,
            capture_output=True,
            text=True,
            check=False,
        )


@pytest.fixture()
def workspace(tmp_path: Path) -> Workspace:
    root = tmp_path / "workspace"
    root.mkdir()
    return Workspace(root=root)
