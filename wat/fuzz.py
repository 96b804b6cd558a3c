"""
WAT Fuzzer

A dumb, deterministic mutation used to put the workspace into a
perturbed state: replace false with true and 0 with 1. It is not
meant to be clever, only reversible.
"""

from __future__ import annotations

import os
import re
import stat
from contextlib import contextmanager
from pathlib import Path, PurePosixPath
from typing import Iterable, Iterator, Mapping

from loguru import logger

MATCH_FALSE = re.compile(rb"\bfalse\b")
MATCH_ZERO = re.compile(rb"\b0\b")

FUZZ_MARKER = "Modified by WAT fuzzer (https://github.com/windmilleng/wat)"


def fuzz(contents: bytes) -> bytes:
    contents = MATCH_FALSE.sub(b"true", contents)
    contents = MATCH_ZERO.sub(b"1", contents)
    return contents


def should_fuzz_file(name: str, suffixes: Iterable[str]) -> bool:
    return any(name.endswith(suffix) for suffix in suffixes)


def fuzz_marker(name: str, comment_prefixes: Mapping[str, str]) -> bytes | None:
    """The trailing comment flagging a fuzzed file, if we know how to comment it."""
    prefix = comment_prefixes.get(PurePosixPath(name).suffix)
    if prefix is None:
        return None
    return f"\n{prefix} {FUZZ_MARKER}".encode("utf-8")


@contextmanager
def preserve_file(path: Path) -> Iterator[bytes]:
    """
    Capture a file's content and mode, and put both back on the way out.

    Restoration runs on every exit path, including exceptions and
    KeyboardInterrupt. A failed restore is logged, never raised, so it
    can't mask whatever ended the body.
    """
    original = path.read_bytes()
    mode = stat.S_IMODE(os.stat(path).st_mode)
    try:
        yield original
    finally:
        try:
            path.write_bytes(original)
            os.chmod(path, mode)
        except OSError as e:
            logger.error(f"[FUZZ] Failed to restore {path}, its contents may be lost: {e}")
