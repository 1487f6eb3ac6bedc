"""
Adapter base — the contract between installers and the host.

Installers never call ``subprocess`` directly. They hand a command to
a CommandRunner and get a Receipt back. Dry-run handling, sudo
wrapping for the development user, and command logging live here so
the real runner and the mock behave identically up to the point of
execution.
"""

from __future__ import annotations

import logging
import shlex
from abc import ABC, abstractmethod
from typing import Mapping, Sequence

from devbootstrap.core.models.receipt import Receipt

logger = logging.getLogger(__name__)


def format_argv(argv: Sequence[str]) -> str:
    """Render a command the way it would be typed in a shell."""
    return " ".join(shlex.quote(a) for a in argv)


class CommandRunner(ABC):
    """Abstract base class for command runners.

    Runners execute commands and return receipts.
    They NEVER raise for a failed command — failures are captured in
    the Receipt.

    In dry-run mode every mutating command is logged, recorded in
    ``planned`` and reported as successful without being executed.
    Read-only probes (``read_only=True``) always execute.
    """

    def __init__(self, dry_run: bool = False):
        self._dry_run = dry_run
        self._planned: list[str] = []

    @property
    @abstractmethod
    def name(self) -> str:
        """The runner identifier (e.g., 'shell', 'mock')."""

    @abstractmethod
    def is_available(self) -> bool:
        """Check if the runner can execute commands. Never raises."""

    @abstractmethod
    def _execute(
        self,
        argv: list[str],
        *,
        operation: str,
        env: Mapping[str, str] | None,
        cwd: str | None,
    ) -> Receipt:
        """Execute a fully built command. MUST never raise."""

    @property
    def dry_run(self) -> bool:
        return self._dry_run

    @property
    def planned(self) -> list[str]:
        """Commands that dry-run mode logged instead of executing."""
        return self._planned

    def build_argv(
        self,
        argv: Sequence[str],
        *,
        env: Mapping[str, str] | None = None,
        user: str | None = None,
        home: str | None = None,
    ) -> list[str]:
        """Wrap a command so it runs as ``user``.

        sudo resets the environment, so extra variables travel through
        ``env`` on the command line instead of the process environment.
        """
        if not user:
            return list(argv)
        prefix = ["sudo", "-H", "-u", user, "env"]
        if home:
            prefix.append(f"HOME={home}")
        for key, value in (env or {}).items():
            prefix.append(f"{key}={value}")
        return prefix + list(argv)

    def run(
        self,
        argv: Sequence[str],
        *,
        operation: str = "",
        env: Mapping[str, str] | None = None,
        user: str | None = None,
        home: str | None = None,
        cwd: str | None = None,
        read_only: bool = False,
    ) -> Receipt:
        """Run a command and return its receipt.

        Args:
            argv: Command list.
            operation: Label used in logs and on the receipt.
            env: Extra environment variables.
            user: Run as this user (through sudo) instead of the caller.
            home: HOME for ``user``.
            cwd: Working directory.
            read_only: The command does not change the host; it runs
                even in dry-run mode.
        """
        full = self.build_argv(argv, env=env, user=user, home=home)
        label = operation or format_argv(argv)
        process_env = None if user else env

        if self._dry_run and not read_only:
            rendered = format_argv(full)
            logger.info("[dry-run] CMD %s", rendered)
            self._planned.append(rendered)
            return Receipt.success(
                adapter=self.name,
                operation=label,
                output="",
                metadata={"dry_run": True, "command": rendered},
            )

        logger.info("CMD %s", format_argv(full))
        return self._execute(full, operation=label, env=process_env, cwd=cwd)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r} dry_run={self._dry_run}>"
