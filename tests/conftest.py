from __future__ import annotations

import os
import time
from pathlib import Path

import pytest

from wat.commands import WatCommand
from wat.config_loader import WatConfig
from wat.logs import CommandLog
from wat.workspace import WAT_DIR, WatWorkspace


class FakeRunner:
    """Stands in for run_cmd_and_log; records every call."""

    def __init__(self, failing=(), on_call=None):
        self.failing = set(failing)
        self.on_call = on_call
        self.calls: list[str] = []

    def __call__(self, scope, root, cmd, timeout=None):
        err = scope.error()
        if err is not None:
            raise err
        self.calls.append(cmd.command)
        if self.on_call is not None:
            self.on_call(len(self.calls), scope, root)
        return CommandLog(command=cmd.command, success=cmd.command not in self.failing, duration=0.01)


def write_file(root: Path, name: str, content: str, age: float = 0.0) -> Path:
    """Write a workspace file whose mtime is `age` seconds in the past."""
    path = root / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    mtime = time.time() - age
    os.utime(path, (mtime, mtime))
    return path


@pytest.fixture
def ws(tmp_path: Path) -> WatWorkspace:
    (tmp_path / WAT_DIR).mkdir()
    return WatWorkspace(tmp_path)


@pytest.fixture
def config() -> WatConfig:
    return WatConfig()


@pytest.fixture
def cmds() -> list[WatCommand]:
    return [WatCommand(command="go build"), WatCommand(command="go test"), WatCommand(command="go vet")]
