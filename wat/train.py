"""
WAT Trainer — Training Data Generation

Runs every command against the workspace in a series of states and
records what happened:

  1. Baseline: the workspace as it is now.
  2. One fuzzed state per source file, most recently edited first.

Every fuzzed file is restored no matter how the run ends. The run is
expected to be interrupted (by the user, or by a deadline) long before
it finishes, so interruption returns what was collected, not an error.
"""

from __future__ import annotations

import sys
import time
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import IO, Callable, Optional

from loguru import logger
from rich.console import Console
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn, TimeElapsedColumn

from wat.cancel import CancelScope, RunInterrupted
from wat.commands import WatCommand
from wat.config_loader import WatConfig, load_config
from wat.executor import run_cmd_and_log
from wat.fuzz import fuzz, fuzz_marker, preserve_file, should_fuzz_file
from wat.interrupt import InterruptWatcher, terminate_as_exit
from wat.logs import (
    CMD_LOG_FILE,
    CommandLog,
    CommandLogGroup,
    LogContext,
    LogSource,
    read_cmd_log_groups,
    write_cmd_log_groups,
)
from wat.workspace import FileInfo, WatWorkspace

RunCmd = Callable[[CancelScope, Path, WatCommand, Optional[float]], CommandLog]


def _is_terminal(stream: IO) -> bool:
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())


class Trainer:
    """
    Generates training data for one workspace.

    Streams and the command runner are injected so that each Trainer is
    self-contained; nothing here reads process-wide state directly.
    """

    def __init__(
        self,
        ws: WatWorkspace,
        config: WatConfig | None = None,
        run_cmd: RunCmd = run_cmd_and_log,
        stdin: IO | None = None,
        stdout: IO | None = None,
        stderr: IO | None = None,
    ):
        self.ws = ws
        self.config = config or load_config(ws.root)
        self.run_cmd = run_cmd
        self.stdin = stdin if stdin is not None else sys.stdin
        self.stdout = stdout if stdout is not None else sys.stdout
        self.console = Console(file=stderr if stderr is not None else sys.stderr)

        # Why the most recent train_at() stopped early, if it did.
        self.last_interruption: RunInterrupted | None = None

    # -----------------------------------------------------------------------
    # Cache Gate
    # -----------------------------------------------------------------------

    def train(
        self,
        cmds: list[WatCommand],
        ttl: timedelta,
        scope: CancelScope | None = None,
    ) -> list[CommandLogGroup]:
        """
        Gets training data.

        If sufficiently fresh training data lives on disk, return that data.
        Otherwise, generate new training data and write it to disk.
        A ttl of zero or less always regenerates.
        """
        if ttl.total_seconds() > 0:
            try:
                info = self.ws.stat(CMD_LOG_FILE)
            except FileNotFoundError:
                info = None

            if info is not None and time.time() - info.st_mtime < ttl.total_seconds():
                logger.info(f"[TRAIN] Reusing training data from {self.ws.wat_dir / CMD_LOG_FILE}")
                return read_cmd_log_groups(self.ws)

        result = self.train_at(cmds, scope or CancelScope())

        if self.last_interruption is not None:
            logger.warning(
                f"[TRAIN] Training stopped early ({self.last_interruption}); "
                f"persisting {len(result)} log groups"
            )
        write_cmd_log_groups(self.ws, result)
        return result

    # -----------------------------------------------------------------------
    # Run Orchestrator
    # -----------------------------------------------------------------------

    def train_at(self, cmds: list[WatCommand], scope: CancelScope) -> list[CommandLogGroup]:
        self.last_interruption = None

        with terminate_as_exit(), CancelScope(parent=scope) as run_scope:
            watcher = None
            if _is_terminal(self.stdout):
                self.console.print("Beginning training...type <Enter> or <Esc> to interrupt")
                watcher = InterruptWatcher(run_scope, self.stdin, self.config.train.interrupt_keys)
                watcher.start()

            try:
                result = self._train_in_scope(cmds, run_scope)
                self.last_interruption = run_scope.error()
            finally:
                if watcher is not None:
                    watcher.stop()

        return result

    def _train_in_scope(self, cmds: list[WatCommand], scope: CancelScope) -> list[CommandLogGroup]:
        files = self._files_by_recency()
        result: list[CommandLogGroup] = []

        # Run all commands in the current workspace.
        recent_edit = None
        cutoff = self.config.train.recency_cutoff.total_seconds()
        if files and time.time() - files[0].mod_time < cutoff:
            recent_edit = files[0].name

        group = self.run_init_group(cmds, scope, recent_edit)
        if group.logs:
            result.append(group)

        # Fuzz each file and run all commands. This may take a long time. We
        # expect the user to cancel or time to run out before we finish, so we
        # fuzz the files in order of recent edits.
        for f in files:
            if scope.cancelled:
                break

            if not should_fuzz_file(f.name, self.config.train.fuzz_suffixes):
                continue

            group = self.fuzz_and_run(cmds, scope, f.name)
            if group is not None and group.logs:
                result.append(group)

        return result

    def _files_by_recency(self) -> list[FileInfo]:
        files = self.ws.walk_root(self.config.workspace.skip_dirs)
        return sorted(files, key=lambda f: f.mod_time, reverse=True)

    def run_init_group(
        self,
        cmds: list[WatCommand],
        scope: CancelScope,
        recent_edit: str | None,
    ) -> CommandLogGroup:
        """Run all the commands against the workspace as it is."""
        self.console.print("Running all tests in the current workspace")
        return self.run_cmds_with_progress(cmds, scope, LogContext(
            recent_edits=frozenset({recent_edit}) if recent_edit else frozenset(),
            start_time=datetime.now(timezone.utc),
            source=LogSource.TRAIN_INIT,
        ))

    def fuzz_and_run(
        self,
        cmds: list[WatCommand],
        scope: CancelScope,
        file_to_fuzz: str,
    ) -> CommandLogGroup | None:
        """
        Make a dumb edit to one file and run all the commands.

        Returns None when fuzzing doesn't change the file.
        """
        abs_path = self.ws.root / file_to_fuzz
        old_contents = abs_path.read_bytes()

        new_contents = fuzz(old_contents)
        if new_contents == old_contents:
            logger.debug(f"[TRAIN] Nothing to fuzz in {file_to_fuzz}")
            return None

        marker = fuzz_marker(file_to_fuzz, self.config.train.comment_prefixes)
        if marker is not None:
            new_contents += marker

        with preserve_file(abs_path):
            abs_path.write_bytes(new_contents)

            self.console.print(f"Fuzzing {file_to_fuzz!r} and running all tests")
            return self.run_cmds_with_progress(cmds, scope, LogContext(
                recent_edits=frozenset({file_to_fuzz}),
                start_time=datetime.now(timezone.utc),
                source=LogSource.FUZZ,
            ))

    # -----------------------------------------------------------------------
    # Batch Runner
    # -----------------------------------------------------------------------

    def run_cmds_with_progress(
        self,
        cmds: list[WatCommand],
        scope: CancelScope,
        log_ctx: LogContext,
    ) -> CommandLogGroup:
        """
        Run every command in order against the current workspace state.

        Stops at the first sign of cancellation and returns the logs
        collected so far. Any other failure is fatal to the whole run.
        """
        group = CommandLogGroup(logs=[], context=log_ctx)
        timeout = self.config.train.command_timeout.total_seconds()

        progress = Progress(
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            console=self.console,
        )
        with progress:
            task = progress.add_task("commands", total=len(cmds))
            for cmd in cmds:
                if scope.cancelled:
                    break
                try:
                    log = self.run_cmd(scope, self.ws.root, cmd, timeout)
                except RunInterrupted as e:
                    logger.info(f"[TRAIN] Batch stopped early: {e}")
                    break
                group.add(log)
                progress.advance(task)

        return group
