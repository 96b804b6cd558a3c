"""
Keyboard interrupts for long training runs.

The watcher runs beside the training loop and only ever touches the
cancel scope. The loop notices at its next check and returns what it
has collected so far.
"""

from __future__ import annotations

import os
import select
import signal
import termios
import threading
import tty
from contextlib import contextmanager
from typing import IO, Iterable, Iterator

from loguru import logger

from wat.cancel import CancelScope

ASCII_ENTER = "\r"
ASCII_LINE_FEED = "\n"
ASCII_ESC = "\x1b"


@contextmanager
def _cbreak(fd: int) -> Iterator[None]:
    """Deliver keystrokes one at a time, without waiting for a newline."""
    if not os.isatty(fd):
        yield
        return

    saved = termios.tcgetattr(fd)
    try:
        tty.setcbreak(fd)
        yield
    finally:
        termios.tcsetattr(fd, termios.TCSADRAIN, saved)


def wait_on_interrupt_char(
    scope: CancelScope,
    stream: IO,
    keys: Iterable[str],
    poll_interval: float = 0.1,
) -> bool:
    """
    Block until one of keys is typed on stream.

    Returns True when a key arrived, False if the scope finished first
    or the stream hit end of input.
    """
    wanted = set(keys)
    fd = stream.fileno()
    with _cbreak(fd):
        while not scope.cancelled:
            ready, _, _ = select.select([fd], [], [], poll_interval)
            if not ready:
                continue
            data = os.read(fd, 1)
            if not data:
                return False
            if data.decode("utf-8", errors="ignore") in wanted:
                return True
    return False


class InterruptWatcher:
    """Cancels a scope when the user types an interrupt key."""

    def __init__(
        self,
        scope: CancelScope,
        stream: IO,
        keys: Iterable[str] = (ASCII_ENTER, ASCII_LINE_FEED, ASCII_ESC),
        poll_interval: float = 0.1,
    ):
        self.scope = scope
        self.stream = stream
        self.keys = list(keys)
        self.poll_interval = poll_interval
        self._thread = threading.Thread(target=self._run, name="wat-interrupt", daemon=True)

    def start(self) -> None:
        self._thread.start()

    def stop(self) -> None:
        self.scope.cancel()
        self._thread.join()

    def _run(self) -> None:
        try:
            interrupted = wait_on_interrupt_char(self.scope, self.stream, self.keys, self.poll_interval)
        except (OSError, ValueError, termios.error) as e:
            logger.warning(f"[INTERRUPT] Stopped watching for keystrokes: {e}")
            return
        if interrupted:
            logger.info("[INTERRUPT] Interrupted by keystroke")
            self.scope.cancel()


@contextmanager
def terminate_as_exit() -> Iterator[None]:
    """
    Turn SIGTERM into SystemExit for the duration of the block, so
    cleanup in finally clauses still runs when the process is killed.

    Signal handlers can only be installed from the main thread; elsewhere
    this is a no-op.
    """
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def _handler(signum, frame):
        raise SystemExit(128 + signum)

    previous = signal.signal(signal.SIGTERM, _handler)
    try:
        yield
    finally:
        signal.signal(signal.SIGTERM, previous if previous is not None else signal.SIG_DFL)
