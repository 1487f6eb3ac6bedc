"""
Permission Propagator — make an install tree usable by the dev group.

Group ownership and group permission bits are applied recursively, and
every directory gets the setgid bit so anything created later (by any
group member, by a later install) inherits the group without another
pass. Failures on individual paths become warnings; they never fail
the tool that owns the tree.
"""

from __future__ import annotations

import grp
import logging
import os
import stat
from dataclasses import dataclass, field
from pathlib import Path

from devbootstrap.adapters.base import CommandRunner
from devbootstrap.adapters.shell.filesystem import HostFilesystem
from devbootstrap.core.models.installer import PermissionTarget

logger = logging.getLogger(__name__)

# Warnings quote at most this many failing paths per tree
_MAX_REPORTED = 3


@dataclass
class PropagationOutcome:
    """What one propagation pass did."""

    path: Path
    changed: int = 0
    unchanged: int = 0
    failures: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "path": str(self.path),
            "changed": self.changed,
            "unchanged": self.unchanged,
            "warnings": self.warnings,
        }


def group_exists(group: str) -> bool:
    try:
        grp.getgrnam(group)
    except KeyError:
        return False
    return True


def ensure_group(
    group: str,
    runner: CommandRunner,
    *,
    privileged: bool,
) -> list[str]:
    """Create the shared development group if it is missing.

    Returns:
        Warnings (empty when the group exists or was created).
    """
    if group_exists(group):
        return []

    if not privileged:
        msg = f"group '{group}' does not exist and cannot be created without root"
        logger.warning(msg)
        return [msg]

    receipt = runner.run(["groupadd", group], operation=f"create group {group}")
    if receipt.failed:
        msg = f"could not create group '{group}': {receipt.error}"
        logger.warning(msg)
        return [msg]

    logger.info("Created group '%s'", group)
    return []


def desired_mode(current: int, target: PermissionTarget, *, is_dir: bool) -> int:
    """Mode bits after propagation. Bits are only ever added."""
    mode = stat.S_IMODE(current)
    if is_dir:
        mode |= target.dir_mode
        if target.setgid:
            mode |= stat.S_ISGID
        return mode
    mode |= target.file_mode
    if mode & stat.S_IXUSR:
        mode |= stat.S_IXGRP
    return mode


def propagate(target: PermissionTarget, fs: HostFilesystem) -> PropagationOutcome:
    """Apply group ownership and mode bits to ``target.path`` recursively.

    The root is handled first, then the tree is walked once without
    following symlinks. Symlinks themselves are left alone. Paths that
    already carry the right group and mode are not touched, so a second
    pass over the same tree performs no writes.

    Safe on a missing path (nothing to do) and on partially populated
    trees left behind by a previous run.
    """
    root = target.path
    outcome = PropagationOutcome(path=root)

    if not root.exists() or root.is_symlink():
        logger.debug("Propagation target %s does not exist, nothing to do", root)
        return outcome

    try:
        gid = grp.getgrnam(target.group).gr_gid
    except KeyError:
        if fs.dry_run:
            logger.info("[dry-run] chgrp -R %s %s; chmod -R g+rwX; setgid on directories",
                        target.group, root)
            return outcome
        msg = f"group '{target.group}' not found; permissions under {root} not shared"
        logger.warning(msg)
        outcome.warnings.append(msg)
        return outcome

    _apply(fs, root, gid, target, outcome, is_dir=root.is_dir())

    if root.is_dir():
        def _walk_error(err: OSError) -> None:
            outcome.failures.append(f"{err.filename}: {err.strerror}")

        for dirpath, dirnames, filenames in os.walk(root, onerror=_walk_error):
            base = Path(dirpath)
            for name in dirnames:
                path = base / name
                if not path.is_symlink():
                    _apply(fs, path, gid, target, outcome, is_dir=True)
            for name in filenames:
                path = base / name
                if path.is_symlink() or not path.is_file():
                    continue
                _apply(fs, path, gid, target, outcome, is_dir=False)

    if outcome.failures:
        shown = "; ".join(outcome.failures[:_MAX_REPORTED])
        more = len(outcome.failures) - _MAX_REPORTED
        suffix = f" (and {more} more)" if more > 0 else ""
        msg = (
            f"could not share {len(outcome.failures)} path(s) under {root} "
            f"with group '{target.group}': {shown}{suffix}"
        )
        logger.warning(msg)
        outcome.warnings.append(msg)

    logger.info(
        "Propagated group '%s' under %s: %d changed, %d unchanged",
        target.group,
        root,
        outcome.changed,
        outcome.unchanged,
    )
    return outcome


def _apply(
    fs: HostFilesystem,
    path: Path,
    gid: int,
    target: PermissionTarget,
    outcome: PropagationOutcome,
    *,
    is_dir: bool,
) -> None:
    try:
        st = os.lstat(path)
        touched = False
        if st.st_gid != gid:
            fs.chown_group(path, gid)
            touched = True
        wanted = desired_mode(st.st_mode, target, is_dir=is_dir)
        if stat.S_IMODE(st.st_mode) != wanted:
            fs.chmod(path, wanted)
            touched = True
    except OSError as e:
        outcome.failures.append(f"{path}: {e.strerror or e}")
        return

    if touched:
        outcome.changed += 1
    else:
        outcome.unchanged += 1
