"""
WAT Workspace

The directory tree under test. Holds the source files the trainer
walks and fuzzes, plus the .wat/ directory with config and the
persisted training data.
"""

from __future__ import annotations

import os
import stat
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, NoReturn

from loguru import logger
from rich.console import Console

WAT_DIR = ".wat"
DEFAULT_SKIP_DIRS = frozenset({".git", WAT_DIR})

console = Console(stderr=True)


class WorkspaceError(Exception):
    pass


@dataclass(frozen=True)
class FileInfo:
    name: str  # root-relative, '/'-separated
    mod_time: float  # seconds since the epoch


class WatWorkspace:
    """
    Access to a workspace root and its .wat/ directory.
    """

    def __init__(self, root: Path):
        self._root = root.resolve()

    @property
    def root(self) -> Path:
        return self._root

    @property
    def wat_dir(self) -> Path:
        return self._root / WAT_DIR

    def stat(self, name: str) -> os.stat_result:
        """Stat a file inside .wat/. Raises FileNotFoundError if it is missing."""
        return os.stat(self.wat_dir / name)

    def read(self, name: str) -> bytes:
        return (self.wat_dir / name).read_bytes()

    def write(self, name: str, data: bytes) -> None:
        self.wat_dir.mkdir(parents=True, exist_ok=True)
        (self.wat_dir / name).write_bytes(data)

    def walk_root(self, skip_dirs: Iterable[str] = ()) -> list[FileInfo]:
        """Every regular file under the root, with its modification time."""
        skip = DEFAULT_SKIP_DIRS | set(skip_dirs)
        files: list[FileInfo] = []
        for dirpath, dirnames, filenames in os.walk(self._root):
            dirnames[:] = sorted(d for d in dirnames if d not in skip)
            for fname in sorted(filenames):
                full = Path(dirpath) / fname
                try:
                    st = full.lstat()
                except FileNotFoundError:
                    # Deleted between listing and stat.
                    continue
                if not stat.S_ISREG(st.st_mode):
                    continue
                rel = full.relative_to(self._root).as_posix()
                files.append(FileInfo(name=rel, mod_time=st.st_mtime))
        return files

    def fatal(self, what: str, err: BaseException) -> NoReturn:
        """Report an unrecoverable error and exit the process."""
        logger.opt(exception=err).debug(f"[WORKSPACE] {what} failed")
        console.print(f"[red]💥 {what}: {err}[/]")
        raise SystemExit(1)


def find_workspace_root(start: Path) -> Path | None:
    """Walk up from start looking for a directory that contains .wat/."""
    current = start.resolve()
    for candidate in (current, *current.parents):
        if (candidate / WAT_DIR).is_dir():
            return candidate
    return None


def get_or_init_workspace(start: Path | None = None) -> WatWorkspace:
    """
    Find the enclosing workspace, or initialize one at start (default: cwd).
    """
    start = (start or Path.cwd()).resolve()
    root = find_workspace_root(start)
    if root is None:
        root = start
        try:
            (root / WAT_DIR).mkdir(exist_ok=True)
        except OSError as e:
            raise WorkspaceError(f"Failed to initialize {root / WAT_DIR}: {e}") from e
        logger.info(f"[WORKSPACE] Initialized {root / WAT_DIR}")

    return WatWorkspace(root)
