"""
Host filesystem adapter — every mutation of the host filesystem.

The permission propagator and the exposure manager never touch the
filesystem directly; they go through this adapter so dry-run mode can
log the intended change instead of making it. Reads are always real.

Methods raise ``OSError`` on failure. Callers decide whether that is a
warning or an error.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)


class HostFilesystem:
    """Dry-run aware filesystem operations."""

    def __init__(self, dry_run: bool = False):
        self._dry_run = dry_run
        self._planned: list[str] = []

    @property
    def dry_run(self) -> bool:
        return self._dry_run

    @property
    def planned(self) -> list[str]:
        """Mutations that dry-run mode logged instead of performing."""
        return self._planned

    def _intercept(self, description: str) -> bool:
        """Record a mutation in dry-run mode. Returns True if intercepted."""
        if not self._dry_run:
            logger.debug("FS %s", description)
            return False
        logger.info("[dry-run] %s", description)
        self._planned.append(description)
        return True

    def makedirs(self, path: Path) -> None:
        if path.is_dir():
            return
        if self._intercept(f"mkdir -p {path}"):
            return
        path.mkdir(parents=True, exist_ok=True)

    def write_text(self, path: Path, content: str, mode: int = 0o644) -> None:
        """Write a file atomically (temp file in the same directory, then rename)."""
        if self._intercept(f"write {path} ({len(content)} bytes)"):
            return

        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=path.parent,
            prefix=f".{path.name}_",
            suffix=".tmp",
        )
        tmp = Path(tmp_name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(content)
            os.chmod(tmp, mode)
            tmp.replace(path)
        except Exception:
            tmp.unlink(missing_ok=True)
            raise

    def symlink(self, link: Path, target: Path) -> None:
        """Point ``link`` at ``target``, replacing whatever link is there."""
        if self._intercept(f"ln -sfn {target} {link}"):
            return
        link.parent.mkdir(parents=True, exist_ok=True)
        if link.is_symlink():
            link.unlink()
        link.symlink_to(target)

    def chown_group(self, path: Path, gid: int) -> None:
        if self._intercept(f"chgrp {gid} {path}"):
            return
        os.chown(path, -1, gid, follow_symlinks=False)

    def chmod(self, path: Path, mode: int) -> None:
        if self._intercept(f"chmod {mode:o} {path}"):
            return
        os.chmod(path, mode)
