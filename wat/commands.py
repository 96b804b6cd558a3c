"""
The command list: every batch runs these, in this order.
"""

from __future__ import annotations

from pathlib import Path

from loguru import logger
from pydantic import BaseModel

from wat.config_loader import WatConfig
from wat.workspace import WatWorkspace


class WatCommand(BaseModel):
    command: str


def detect_test_command(root: Path) -> str | None:
    """Auto-detect the test command based on workspace contents."""
    if (root / "go.mod").exists():
        return "go test ./..."
    if (root / "package.json").exists():
        return "npm test"
    if (root / "Cargo.toml").exists():
        return "cargo test"
    if (root / "pyproject.toml").exists() or (root / "setup.py").exists():
        return "python -m pytest"
    if (root / "Makefile").exists():
        return "make test"
    return None


def populate_at(ws: WatWorkspace, config: WatConfig) -> list[WatCommand]:
    if config.commands:
        return [WatCommand(command=c) for c in config.commands]

    detected = detect_test_command(ws.root)
    if detected is None:
        logger.warning(f"[COMMANDS] No commands configured or detected in {ws.root}")
        return []

    logger.info(f"[COMMANDS] Detected test command: {detected}")
    return [WatCommand(command=detected)]
