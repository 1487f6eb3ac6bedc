"""
Install context — everything an installer strategy needs for one run.

Built once per invocation from the host configuration. It decides
who the per-user installs are for, whether system-wide installs are
possible, and carries the (possibly dry-run) adapters.
"""

from __future__ import annotations

import logging
import os
import pwd
from dataclasses import dataclass
from pathlib import Path

from devbootstrap.adapters.base import CommandRunner
from devbootstrap.adapters.shell.command import ShellCommandRunner
from devbootstrap.adapters.shell.filesystem import HostFilesystem
from devbootstrap.core.models.host import HostConfig, HostLayout, ToolSettings

logger = logging.getLogger(__name__)


@dataclass
class InstallContext:
    """The installers' view of the host."""

    config: HostConfig
    runner: CommandRunner
    fs: HostFilesystem
    privileged: bool                # may install system-wide, create groups, expose globally
    target_user: str                # owner of per-user installs
    target_home: Path
    run_as: str | None = None       # set when per-user commands must go through sudo
    search_path: str = ""           # PATH consulted when a tool is not in a known location

    @property
    def layout(self) -> HostLayout:
        return self.config.layout

    @property
    def dev_group(self) -> str:
        return self.config.dev_group

    @property
    def dry_run(self) -> bool:
        return self.runner.dry_run

    def settings(self, tool: str) -> ToolSettings:
        return self.config.settings_for(tool)


def _user_exists(name: str) -> bool:
    try:
        pwd.getpwnam(name)
    except KeyError:
        return False
    return True


def current_user_name() -> str:
    return pwd.getpwuid(os.getuid()).pw_name


def resolve_target_user(
    config: HostConfig,
    *,
    privileged: bool,
    current_user: str,
) -> tuple[str, Path, str | None]:
    """Pick the account that per-user installs belong to.

    Resolution order:
      1. The configured development user, if the account exists and we
         are either that user or root (commands then run through sudo).
      2. The invoking user (root's home when privileged).

    Returns:
        ``(user, home, run_as)`` where ``run_as`` is None when commands
        can run as the current process.
    """
    layout = config.layout
    wanted = config.username

    if wanted and _user_exists(wanted):
        home = layout.home_path / wanted
        if wanted == current_user:
            return wanted, home, None
        if privileged:
            return wanted, home, wanted
        logger.warning(
            "Cannot install for '%s' without root; installing for '%s' instead",
            wanted,
            current_user,
        )
    elif wanted:
        logger.warning("Development user '%s' does not exist; using '%s'", wanted, current_user)

    if current_user == "root":
        return current_user, layout.path("/root"), None
    return current_user, Path.home(), None


def build_context(
    config: HostConfig,
    *,
    runner: CommandRunner | None = None,
    fs: HostFilesystem | None = None,
    privileged: bool | None = None,
    search_path: str | None = None,
) -> InstallContext:
    """Build the install context for one run.

    Args:
        config: Effective host configuration (file + env + CLI overrides).
        runner: Command runner. Defaults to a real shell runner.
        fs: Filesystem adapter. Defaults to a real one.
        privileged: Override the root check (tests simulate both).
        search_path: Override the PATH used for fallback lookups.
    """
    if runner is None:
        runner = ShellCommandRunner(dry_run=config.dry_run)
    elif config.dry_run and not runner.dry_run:
        raise ValueError("dry-run configuration requires a dry-run command runner")

    if fs is None:
        fs = HostFilesystem(dry_run=runner.dry_run)

    if privileged is None:
        privileged = os.geteuid() == 0

    user, home, run_as = resolve_target_user(
        config,
        privileged=privileged,
        current_user=current_user_name(),
    )

    return InstallContext(
        config=config,
        runner=runner,
        fs=fs,
        privileged=privileged,
        target_user=user,
        target_home=home,
        run_as=run_as,
        search_path=os.environ.get("PATH", "") if search_path is None else search_path,
    )
