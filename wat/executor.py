"""
Runs one command against the workspace and records how it went.
"""

from __future__ import annotations

import os
import signal
import subprocess
import time
from pathlib import Path
from typing import IO, Union

from loguru import logger

from wat.cancel import CancelScope, DeadlineExceeded
from wat.commands import WatCommand
from wat.logs import CommandLog

Sink = Union[int, IO, None]


class CommandExecutionError(Exception):
    """The execution harness itself is broken. A failing test is not this."""


def run_cmd_and_log(
    scope: CancelScope,
    root: Path,
    cmd: WatCommand,
    timeout: float | None = None,
    stdout: Sink = subprocess.DEVNULL,
    stderr: Sink = subprocess.DEVNULL,
) -> CommandLog:
    """
    Run cmd in root and return its outcome.

    Raises the scope's error if the scope is already done before the
    command starts. Once started, a command runs to completion or to its
    own timeout; the only exception is the scope deadline, which kills
    the command and raises DeadlineExceeded.
    """
    err = scope.error()
    if err is not None:
        raise err

    wait_for = timeout
    remaining = scope.remaining()
    if remaining is not None and (wait_for is None or remaining < wait_for):
        wait_for = remaining

    start = time.monotonic()
    try:
        proc = subprocess.Popen(
            cmd.command,
            shell=True,
            cwd=root,
            stdin=subprocess.DEVNULL,
            stdout=stdout,
            stderr=stderr,
            start_new_session=True,
        )
    except OSError as e:
        raise CommandExecutionError(f"Could not start {cmd.command!r}: {e}") from e

    try:
        returncode = proc.wait(timeout=wait_for)
    except subprocess.TimeoutExpired:
        _kill(proc)
        duration = time.monotonic() - start
        if isinstance(scope.error(), DeadlineExceeded):
            raise DeadlineExceeded(f"deadline exceeded while running {cmd.command!r}")
        logger.debug(f"[EXEC] {cmd.command} timed out after {duration:.1f}s")
        return CommandLog(command=cmd.command, success=False, duration=duration)
    except BaseException:
        # KeyboardInterrupt and friends: don't leave the command running.
        _kill(proc)
        raise

    duration = time.monotonic() - start
    logger.debug(f"[EXEC] {cmd.command} exited {returncode} in {duration:.2f}s")
    return CommandLog(command=cmd.command, success=returncode == 0, duration=duration)


def _kill(proc: subprocess.Popen) -> None:
    try:
        os.killpg(proc.pid, signal.SIGKILL)
    except ProcessLookupError:
        pass
    proc.wait()
