"""pipenv — virtualenv and dependency workflow."""

from __future__ import annotations

import shlex
from pathlib import Path

from devbootstrap.core.models.installer import InstallerSpec, PermissionTarget, Scope
from devbootstrap.core.models.receipt import Receipt
from devbootstrap.core.services.tool_install.context import InstallContext
from devbootstrap.core.services.tool_install.strategy import InstallerStrategy


class PipenvInstaller(InstallerStrategy):
    """pip install, with an isolated venv when pip refuses.

    A system pip install puts the binary straight into the global bin
    directory. The venv fallback lives under ``<opt>/pipenv`` (system)
    or ``~/.local/share/pipenv`` (per-user) and is linked into the
    prefix's ``bin/``.
    """

    spec = InstallerSpec(
        name="pipenv",
        scope=Scope.SYSTEM,
        family="pipenv",
        summary="virtualenv and dependency workflow",
        binaries=("pipenv",),
        has_fallback=True,
    )
    version_pattern = r"version\s+(\d+\.\d+(?:\.\d+)?\S*)"

    def prefix(self, ctx: InstallContext, scope: Scope) -> Path:
        if scope == Scope.SYSTEM:
            return self.system_prefix(ctx, "pipenv")
        return ctx.target_home / ".local" / "share" / "pipenv"

    def bin_dir(self, ctx: InstallContext, scope: Scope) -> Path:
        if scope == Scope.SYSTEM:
            return self.prefix(ctx, scope) / "bin"
        return ctx.target_home / ".local" / "bin"

    def candidates(self, ctx: InstallContext) -> list[tuple[Scope, Path]]:
        found = [(Scope.SYSTEM, self.binary_path(ctx, Scope.SYSTEM))]
        # A symlink here is an exposure link, not a system pip install
        global_bin = ctx.layout.bin_path / "pipenv"
        if not global_bin.is_symlink():
            found.append((Scope.SYSTEM, global_bin))
        found.append((Scope.PER_USER, self.binary_path(ctx, Scope.PER_USER)))
        return found

    def permission_target(self, ctx: InstallContext, scope: Scope) -> PermissionTarget:
        if scope == Scope.SYSTEM:
            return super().permission_target(ctx, scope)
        return PermissionTarget(path=ctx.target_home / ".local", group=ctx.dev_group)

    def exposure_links(self, ctx: InstallContext, scope: Scope) -> list[tuple[Path, Path]]:
        # A system pip install already lands in the global bin directory
        if scope == Scope.SYSTEM and not self.binary_path(ctx, scope).exists():
            return []
        return super().exposure_links(ctx, scope)

    def requirement(self, ctx: InstallContext) -> str:
        version = ctx.settings(self.name).version
        return f"pipenv=={version}" if version else "pipenv"

    def primary_install(self, ctx: InstallContext, scope: Scope) -> Receipt:
        argv = ["python3", "-m", "pip", "install", "--upgrade"]
        if scope == Scope.PER_USER:
            argv.append("--user")
        argv.append(self.requirement(ctx))
        return self.shell(ctx, scope, shlex.join(argv), operation="pip install")

    def fallback_install(self, ctx: InstallContext, scope: Scope) -> Receipt:
        return self.venv_install(
            ctx,
            scope,
            venv=self.prefix(ctx, scope) / "venv",
            requirement=self.requirement(ctx),
            link=self.binary_path(ctx, scope),
        )
