"""Isolated working-directory allocation for provider CLI processes."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from uuid import uuid4

logger = logging.getLogger(__name__)


class WorkdirManager:
    """Names per-conversation directories under one root.

    Paths are only named here; the process layer creates them right before
    spawning and removes them right after.
    """

    def __init__(self, root_dir: Path) -> None:
        self.root_dir = root_dir

    def fresh(self, prefix: str) -> Path:
        """Return a new, randomly unique directory path."""

        return self.root_dir / f"{prefix}-{uuid4()}"

    def default(self, prefix: str) -> Path:
        """Return the provider fallback directory used when a request names none."""

        return self.root_dir / f"{prefix}-default"


def ensure_workdir(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    return path


def remove_workdir(path: Path) -> None:
    """Delete a working directory tree; a missing directory is not an error."""

    shutil.rmtree(path, ignore_errors=True)
    if path.exists():
        logger.warning("Working directory %s could not be fully removed", path)
