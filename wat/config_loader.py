"""
Configuration loader for WAT.
Merges defaults with per-repo .wat/config.yaml overrides.
"""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

class TrainConfig(BaseModel):
    recency_cutoff: timedelta = timedelta(hours=1)
    ttl: timedelta = timedelta(hours=48)
    command_timeout: timedelta = timedelta(minutes=5)
    # TODO: fuzzing only knows how to comment Go and JS files; other languages
    # need their own mutation rules before they can be added here.
    fuzz_suffixes: list[str] = Field(default_factory=lambda: [".go", ".js"])
    comment_prefixes: dict[str, str] = Field(
        default_factory=lambda: {".go": "//", ".js": "//"}
    )
    interrupt_keys: list[str] = Field(default_factory=lambda: ["\r", "\n", "\x1b"])


class WorkspaceConfig(BaseModel):
    skip_dirs: list[str] = Field(default_factory=lambda: [".git", ".wat"])


class WatConfig(BaseModel):
    train: TrainConfig = Field(default_factory=TrainConfig)
    workspace: WorkspaceConfig = Field(default_factory=WorkspaceConfig)
    commands: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Loader
# ---------------------------------------------------------------------------

_DEFAULT_CONFIG_PATH = Path(__file__).parent / "config.yaml"


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge override into base."""
    merged = base.copy()
    for key, value in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(root: Path | None = None) -> WatConfig:
    """
    Load config by merging:
      1. Built-in defaults (wat/config.yaml)
      2. Repo-level overrides (<root>/.wat/config.yaml)
    """
    with open(_DEFAULT_CONFIG_PATH, "r") as f:
        base: dict[str, Any] = yaml.safe_load(f) or {}

    if root:
        repo_config = root / ".wat" / "config.yaml"
        if repo_config.exists():
            with open(repo_config, "r") as f:
                overrides: dict[str, Any] = yaml.safe_load(f) or {}
            base = _deep_merge(base, overrides)

    return WatConfig(**base)
