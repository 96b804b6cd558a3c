"""
WAT Command Logs — The Training Data

A log group is every command outcome observed against one fixed
workspace state, labeled with why that state existed. Groups are
persisted as a single indented JSON document under .wat/.
"""

from __future__ import annotations

import os
import tempfile
from datetime import datetime
from enum import IntEnum
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

if TYPE_CHECKING:
    from wat.workspace import WatWorkspace

CMD_LOG_FILE = "cmdlog.json"


class LogSource(IntEnum):
    # An edit made by the user
    USER = 1

    # A made-up command log used to bootstrap training, so that there is
    # interesting data to work with before the user runs any commands.
    BOOTSTRAP = 2

    # An edit automatically generated by the fuzzer
    FUZZ = 3

    # Logs generated when the trainer runs the commands in the workspace
    # for the first time.
    TRAIN_INIT = 4


class LogContext(BaseModel):
    model_config = ConfigDict(frozen=True)

    # Root-relative paths of files that have been recently edited.
    # The definition of "recent" is deliberately fuzzy and might change.
    recent_edits: frozenset[str] = frozenset()
    start_time: datetime
    source: LogSource


class CommandLog(BaseModel):
    model_config = ConfigDict(frozen=True)

    # The `command` field of the WatCommand that ran
    command: str
    success: bool
    duration: float  # seconds


class CommandLogGroup(BaseModel):
    """All the commands that ran at a particular state of the workspace."""

    logs: list[CommandLog] = Field(default_factory=list)
    context: LogContext

    def add(self, log: CommandLog) -> None:
        self.logs.append(log)


_GROUPS = TypeAdapter(list[CommandLogGroup])


def dump_cmd_log_groups(groups: list[CommandLogGroup]) -> str:
    return _GROUPS.dump_json(groups, indent=2).decode("utf-8")


def read_cmd_log_groups(ws: WatWorkspace) -> list[CommandLogGroup]:
    return _GROUPS.validate_json(ws.read(CMD_LOG_FILE))


def write_cmd_log_groups(ws: WatWorkspace, groups: list[CommandLogGroup]) -> None:
    """
    Replace the persisted log artifact.

    The document is written next to the artifact first and swapped in,
    so a failed write never leaves a truncated file behind.
    """
    ws.wat_dir.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(prefix=".cmdlog-", suffix=".json", dir=ws.wat_dir)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(dump_cmd_log_groups(groups))
            f.write("\n")
        os.replace(tmp, ws.wat_dir / CMD_LOG_FILE)
    except BaseException:
        if os.path.exists(tmp):
            os.unlink(tmp)
        raise
