"""poetry — dependency management and packaging."""

from __future__ import annotations

import shlex
from pathlib import Path

from devbootstrap.core.models.installer import InstallerSpec, PermissionTarget, Scope
from devbootstrap.core.models.receipt import Receipt
from devbootstrap.core.services.tool_install.context import InstallContext
from devbootstrap.core.services.tool_install.strategy import InstallerStrategy

INSTALLER_URL = "https://install.python-poetry.org"


class PoetryInstaller(InstallerStrategy):
    """Official installer with ``POETRY_HOME``; isolated venv as fallback.

    System scope: ``<opt>/pypoetry`` (or the configured prefix /
    ``POETRY_HOME``), binary in ``<prefix>/bin``. Per-user: the
    installer's defaults, ``~/.local/share/pypoetry`` with the
    binary in ``~/.local/bin``.
    """

    spec = InstallerSpec(
        name="poetry",
        scope=Scope.SYSTEM,
        family="poetry",
        summary="dependency management and packaging",
        binaries=("poetry",),
        has_fallback=True,
    )
    version_pattern = r"Poetry \(version ([^)\s]+)\)"

    def prefix(self, ctx: InstallContext, scope: Scope) -> Path:
        if scope == Scope.SYSTEM:
            return self.system_prefix(ctx, "pypoetry")
        return ctx.target_home / ".local" / "share" / "pypoetry"

    def bin_dir(self, ctx: InstallContext, scope: Scope) -> Path:
        if scope == Scope.SYSTEM:
            return self.prefix(ctx, scope) / "bin"
        return ctx.target_home / ".local" / "bin"

    def permission_target(self, ctx: InstallContext, scope: Scope) -> PermissionTarget:
        if scope == Scope.SYSTEM:
            return super().permission_target(ctx, scope)
        return PermissionTarget(path=ctx.target_home / ".local", group=ctx.dev_group)

    def requirement(self, ctx: InstallContext) -> str:
        version = ctx.settings(self.name).version
        return f"poetry=={version}" if version else "poetry"

    def primary_install(self, ctx: InstallContext, scope: Scope) -> Receipt:
        env: dict[str, str] = {}
        if scope == Scope.SYSTEM:
            env["POETRY_HOME"] = str(self.prefix(ctx, scope))
        version = ctx.settings(self.name).version
        if version:
            env["POETRY_VERSION"] = version
        script = f"curl -sSL {shlex.quote(INSTALLER_URL)} | python3 -"
        return self.shell(ctx, scope, script, operation="official installer", env=env or None)

    def fallback_install(self, ctx: InstallContext, scope: Scope) -> Receipt:
        return self.venv_install(
            ctx,
            scope,
            venv=self.prefix(ctx, scope) / "venv",
            requirement=self.requirement(ctx),
            link=self.binary_path(ctx, scope),
        )
