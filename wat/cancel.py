"""
Cooperative cancellation.

A CancelScope is a stop token shared between the training loop and
the interrupt watcher. Nothing is ever preempted: blocking operations
poll the scope at well-defined points (between commands, between files).
"""

from __future__ import annotations

import threading
import time


class RunInterrupted(Exception):
    """A run stopped early. Not a failure: callers keep what they collected."""


class Cancelled(RunInterrupted):
    def __init__(self, message: str = "run cancelled"):
        super().__init__(message)


class DeadlineExceeded(RunInterrupted):
    def __init__(self, message: str = "run deadline exceeded"):
        super().__init__(message)


class CancelScope:
    """
    A cancellable scope, optionally bounded by a deadline and chained to a parent.

    Cancelling a scope never affects its parent; cancelling a parent is
    observed by every child.
    """

    def __init__(self, parent: CancelScope | None = None, timeout: float | None = None):
        self._parent = parent
        self._event = threading.Event()
        self._deadline = time.monotonic() + timeout if timeout is not None else None

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self.error() is not None

    def error(self) -> RunInterrupted | None:
        if self._parent is not None:
            err = self._parent.error()
            if err is not None:
                return err
        if self._event.is_set():
            return Cancelled()
        if self._deadline is not None and time.monotonic() >= self._deadline:
            return DeadlineExceeded()
        return None

    def remaining(self) -> float | None:
        """Seconds until the nearest deadline in the chain, or None if unbounded."""
        candidates = []
        if self._deadline is not None:
            candidates.append(max(0.0, self._deadline - time.monotonic()))
        if self._parent is not None:
            parent_remaining = self._parent.remaining()
            if parent_remaining is not None:
                candidates.append(parent_remaining)
        return min(candidates) if candidates else None

    def __enter__(self) -> CancelScope:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cancel()
