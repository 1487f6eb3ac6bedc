"""
Installer strategy — one subclass per tool, one state machine for all.

Every tool goes through the same phases:

    DETECT → (SKIPPED_PRESENT | PRIMARY_INSTALL [→ FALLBACK_INSTALL])
           → PERMISSION_PROPAGATE → EXPOSE → VERIFY → (INSTALLED | FAILED)

Subclasses only describe *where* a tool lives and *how* to install it.
``execute_strategy`` owns the transitions, so scope downgrade, fallback
handling, warning collection and verification behave the same for
every tool.
"""

from __future__ import annotations

import logging
import os
import re
import shlex
import shutil
from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path
from typing import Any

from devbootstrap.core.models.installer import (
    Detection,
    InstallationResult,
    InstallerSpec,
    InstallStatus,
    PermissionTarget,
    Scope,
)
from devbootstrap.core.models.receipt import Receipt
from devbootstrap.core.services import exposure, permissions
from devbootstrap.core.services.tool_install.context import InstallContext

logger = logging.getLogger(__name__)


class Phase(str, Enum):
    START = "START"
    DETECT = "DETECT"
    SKIPPED_PRESENT = "SKIPPED_PRESENT"
    PRIMARY_INSTALL = "PRIMARY_INSTALL"
    FALLBACK_INSTALL = "FALLBACK_INSTALL"
    PERMISSION_PROPAGATE = "PERMISSION_PROPAGATE"
    EXPOSE = "EXPOSE"
    VERIFY = "VERIFY"
    INSTALLED = "INSTALLED"
    FAILED = "FAILED"


class InstallerStrategy(ABC):
    """Base class for per-tool installers."""

    spec: InstallerSpec

    # Version probe: ``<binary> <version_args>``, first regex group wins
    version_args: tuple[str, ...] = ("--version",)
    version_pattern: str = r"(\d+\.\d+(?:\.\d+)?\S*)"

    @property
    def name(self) -> str:
        return self.spec.name

    def requested_scope(self, ctx: InstallContext) -> Scope:
        """The tool's default scope, unless configuration overrides it."""
        mode = ctx.settings(self.name).install_mode
        return Scope.parse(mode) if mode else self.spec.scope

    # ── Locations ──────────────────────────────────────────────

    @abstractmethod
    def prefix(self, ctx: InstallContext, scope: Scope) -> Path:
        """Install root for the given scope."""

    @abstractmethod
    def bin_dir(self, ctx: InstallContext, scope: Scope) -> Path:
        """Directory the tool's binaries land in."""

    def system_prefix(self, ctx: InstallContext, default: str) -> Path:
        """Configured ``prefix`` (a host path) or ``<opt>/<default>``."""
        configured = ctx.settings(self.name).prefix
        if configured:
            return ctx.layout.path(configured)
        return ctx.layout.opt_path / default

    def binary_path(self, ctx: InstallContext, scope: Scope) -> Path:
        return self.bin_dir(ctx, scope) / self.spec.binaries[0]

    def exposure_links(self, ctx: InstallContext, scope: Scope) -> list[tuple[Path, Path]]:
        """``(binary, link name)`` pairs for the global binary directory."""
        base = self.bin_dir(ctx, scope)
        return [(base / name, Path(name)) for name in self.spec.binaries]

    def permission_target(self, ctx: InstallContext, scope: Scope) -> PermissionTarget:
        return PermissionTarget(path=self.prefix(ctx, scope), group=ctx.dev_group)

    def path_entries(self, ctx: InstallContext, scope: Scope) -> list[str]:
        return [self.shell_path(ctx, self.bin_dir(ctx, scope))]

    def init_hooks(self, ctx: InstallContext, scope: Scope) -> list[str]:
        return []

    def snippet(self, ctx: InstallContext, scope: Scope) -> exposure.ProfileSnippet:
        return exposure.ProfileSnippet(
            family=self.spec.family,
            path_entries=tuple(self.path_entries(ctx, scope)),
            hooks=tuple(self.init_hooks(ctx, scope)),
        )

    @staticmethod
    def shell_path(ctx: InstallContext, path: Path) -> str:
        """Render a path for a login snippet; home paths become ``$HOME/...``."""
        try:
            rel = path.relative_to(ctx.target_home)
        except ValueError:
            return str(path)
        return f"$HOME/{rel}"

    # ── Detection / verification ───────────────────────────────

    def candidates(self, ctx: InstallContext) -> list[tuple[Scope, Path]]:
        """Known binary locations, checked in order."""
        return [
            (Scope.SYSTEM, self.binary_path(ctx, Scope.SYSTEM)),
            (Scope.PER_USER, self.binary_path(ctx, Scope.PER_USER)),
        ]

    def probe_env(self, ctx: InstallContext, binary: Path) -> dict[str, str] | None:
        return None

    def read_version(self, ctx: InstallContext, binary: Path) -> str | None:
        """Run the version command and extract the version string."""
        receipt = ctx.runner.run(
            [str(binary), *self.version_args],
            operation=f"{self.name} version probe",
            env=self.probe_env(ctx, binary),
            read_only=True,
        )
        if receipt.failed:
            return None
        text = receipt.output + "\n" + str(receipt.metadata.get("stderr", ""))
        match = re.search(self.version_pattern, text)
        return match.group(1) if match else None

    def probe(self, ctx: InstallContext) -> Detection:
        """Find a binary that runs and reports a version.

        Known locations first, then ``ctx.search_path``. Detection and
        verification both use this, so they can never disagree.
        """
        searched: list[str] = []
        reason = "not found"

        for scope, path in self.candidates(ctx):
            searched.append(str(path))
            if not _is_executable(path):
                continue
            version = self.read_version(ctx, path)
            if version:
                return Detection(
                    present=True, binary=path, version=version, scope=scope, searched=searched
                )
            reason = f"{path} did not report a version"

        if ctx.search_path:
            searched.append(f"PATH={ctx.search_path}")
            found = shutil.which(self.spec.binaries[0], path=ctx.search_path)
            if found:
                version = self.read_version(ctx, Path(found))
                if version:
                    return Detection(
                        present=True, binary=Path(found), version=version, searched=searched
                    )
                reason = f"{found} did not report a version"

        return Detection(present=False, searched=searched, reason=reason)

    def detect(self, ctx: InstallContext) -> Detection:
        return self.probe(ctx)

    def verify(self, ctx: InstallContext) -> Detection:
        return self.probe(ctx)

    # ── Installation ───────────────────────────────────────────

    @abstractmethod
    def primary_install(self, ctx: InstallContext, scope: Scope) -> Receipt:
        """Preferred install method (usually the tool's official installer)."""

    def fallback_install(self, ctx: InstallContext, scope: Scope) -> Receipt | None:
        """Self-contained alternative, tried only after the primary fails."""
        return None

    def user_kwargs(self, ctx: InstallContext, scope: Scope) -> dict[str, Any]:
        """Runner kwargs that make per-user commands run as the target user."""
        if scope == Scope.PER_USER and ctx.run_as:
            return {"user": ctx.run_as, "home": str(ctx.target_home)}
        return {}

    def run(
        self,
        ctx: InstallContext,
        scope: Scope,
        argv: list[str],
        *,
        operation: str,
        env: dict[str, str] | None = None,
    ) -> Receipt:
        return ctx.runner.run(
            argv,
            operation=f"{self.name}: {operation}",
            env=env,
            **self.user_kwargs(ctx, scope),
        )

    def shell(
        self,
        ctx: InstallContext,
        scope: Scope,
        script: str,
        *,
        operation: str,
        env: dict[str, str] | None = None,
    ) -> Receipt:
        """Run a bash pipeline; system installs get a group-writable umask."""
        prelude = "set -o pipefail; "
        if scope == Scope.SYSTEM:
            prelude += "umask 002; "
        return self.run(ctx, scope, ["bash", "-c", prelude + script], operation=operation, env=env)

    def venv_install(
        self,
        ctx: InstallContext,
        scope: Scope,
        *,
        venv: Path,
        requirement: str,
        link: Path,
    ) -> Receipt:
        """Install ``requirement`` into an isolated venv and link its binary.

        Upgrading pip inside the venv is best effort; the install itself
        is not.
        """
        py = shlex.quote(str(venv / "bin" / "python"))
        binary = shlex.quote(str(venv / "bin" / self.spec.binaries[0]))
        script = (
            f"python3 -m venv {shlex.quote(str(venv))}"
            f" && {{ {py} -m pip install --upgrade pip wheel || true; }}"
            f" && {py} -m pip install --upgrade {shlex.quote(requirement)}"
            f" && mkdir -p {shlex.quote(str(link.parent))}"
            f" && ln -sfn {binary} {shlex.quote(str(link))}"
        )
        return self.shell(ctx, scope, script, operation=f"install {requirement} into {venv}")

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.name}>"


def _is_executable(path: Path) -> bool:
    return path.is_file() and os.access(path, os.X_OK)


# ═══════════════════════════════════════════════════════════════════
#  State machine
# ═══════════════════════════════════════════════════════════════════


class _Trace:
    """Records phase transitions and logs them with the tool prefix."""

    def __init__(self, tool: str):
        self.tool = tool
        self.phases: list[str] = [Phase.START.value]

    @property
    def current(self) -> str:
        return self.phases[-1]

    def enter(self, phase: Phase) -> None:
        logger.info("[%s] %s → %s", self.tool, self.current, phase.value)
        self.phases.append(phase.value)


def execute_strategy(strategy: InstallerStrategy, ctx: InstallContext) -> InstallationResult:
    """Drive one tool through its install state machine.

    Only install and verification failures fail the tool. Permission
    and exposure problems are attached as warnings. Verification is
    never followed by another install attempt.
    """
    trace = _Trace(strategy.name)
    notes: list[str] = []
    warnings: list[str] = []

    def finish(status: InstallStatus, detail: str, **fields: Any) -> InstallationResult:
        trace.enter(Phase.INSTALLED if status == InstallStatus.INSTALLED else Phase.FAILED)
        return InstallationResult(
            tool=strategy.name,
            status=status,
            detail="; ".join([detail, *notes]),
            warnings=warnings,
            phases=list(trace.phases),
            **fields,
        )

    # ── DETECT ──
    trace.enter(Phase.DETECT)
    found = strategy.detect(ctx)
    if found.present:
        trace.enter(Phase.SKIPPED_PRESENT)
        return InstallationResult(
            tool=strategy.name,
            status=InstallStatus.INSTALLED,
            detail=f"already present: {found.binary} ({found.version})",
            scope=found.scope,
            version=found.version,
            already_present=True,
            phases=list(trace.phases),
        )
    logger.debug("[%s] not present: %s", strategy.name, found.reason)

    # ── Scope ──
    scope = strategy.requested_scope(ctx)
    downgraded = False
    if scope == Scope.SYSTEM and not ctx.privileged:
        scope = Scope.PER_USER
        downgraded = True
        notes.append(
            f"system install needs root; fell back to per-user install for {ctx.target_user}"
        )
        logger.warning("[%s] %s", strategy.name, notes[-1])

    # ── PRIMARY_INSTALL / FALLBACK_INSTALL ──
    trace.enter(Phase.PRIMARY_INSTALL)
    primary = strategy.primary_install(ctx, scope)
    used_fallback = False

    if primary.failed:
        logger.warning("[%s] primary install failed: %s", strategy.name, primary.error)
        if not strategy.spec.has_fallback:
            return finish(
                InstallStatus.FAILED,
                f"primary install failed: {primary.error}",
                scope=scope,
                downgraded=downgraded,
            )
        trace.enter(Phase.FALLBACK_INSTALL)
        fallback = strategy.fallback_install(ctx, scope)
        if fallback is None or fallback.failed:
            reason = fallback.error if fallback is not None else "no fallback available"
            return finish(
                InstallStatus.FAILED,
                f"primary install failed: {primary.error}; fallback install failed: {reason}",
                scope=scope,
                downgraded=downgraded,
            )
        used_fallback = True
        notes.append(f"primary install failed ({primary.error}); fallback install used")

    # ── PERMISSION_PROPAGATE ──
    trace.enter(Phase.PERMISSION_PROPAGATE)
    propagated = permissions.propagate(strategy.permission_target(ctx, scope), ctx.fs)
    warnings += propagated.warnings

    # ── EXPOSE ──
    trace.enter(Phase.EXPOSE)
    exposed = exposure.expose(
        strategy.exposure_links(ctx, scope),
        strategy.snippet(ctx, scope),
        layout=ctx.layout,
        fs=ctx.fs,
        privileged=ctx.privileged,
    )
    warnings += exposed.warnings

    # ── VERIFY ──
    trace.enter(Phase.VERIFY)
    location = strategy.binary_path(ctx, scope)
    if ctx.dry_run:
        version = ctx.settings(strategy.name).version
        detail = f"[dry-run] would install {strategy.name} at {location}"
    else:
        verified = strategy.verify(ctx)
        if not verified.present:
            return finish(
                InstallStatus.FAILED,
                (
                    f"verification failed: {verified.reason}; "
                    f"searched {', '.join(verified.searched) or '<nothing>'}; "
                    f"PATH={ctx.search_path or os.environ.get('PATH', '')}"
                ),
                scope=scope,
                downgraded=downgraded,
                used_fallback=used_fallback,
            )
        version = verified.version
        location = verified.binary or location
        detail = f"installed at {location} ({version})"

    return finish(
        InstallStatus.INSTALLED,
        detail,
        scope=scope,
        version=version,
        downgraded=downgraded,
        used_fallback=used_fallback,
        exposure_degraded=exposed.degraded,
    )
