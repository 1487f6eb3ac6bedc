"""uv — fast Python package installer and resolver."""

from __future__ import annotations

import shlex
from pathlib import Path

from devbootstrap.core.models.installer import InstallerSpec, Scope
from devbootstrap.core.models.receipt import Receipt
from devbootstrap.core.services.tool_install.context import InstallContext
from devbootstrap.core.services.tool_install.strategy import InstallerStrategy

INSTALLER_URL = "https://astral.sh/uv/install.sh"
PINNED_INSTALLER_URL = "https://astral.sh/uv/{version}/install.sh"


class UvInstaller(InstallerStrategy):
    """Official standalone installer, pointed at a shared bin directory.

    System scope: ``<opt>/uv/bin``. Per-user: ``~/.local/bin``.
    """

    spec = InstallerSpec(
        name="uv",
        scope=Scope.SYSTEM,
        family="uv",
        summary="fast Python package installer and resolver",
        binaries=("uv", "uvx"),
        has_fallback=False,
    )
    version_pattern = r"uv\s+(\d+\.\d+\.\d+\S*)"

    def prefix(self, ctx: InstallContext, scope: Scope) -> Path:
        if scope == Scope.SYSTEM:
            return self.system_prefix(ctx, "uv")
        return ctx.target_home / ".local"

    def bin_dir(self, ctx: InstallContext, scope: Scope) -> Path:
        return self.prefix(ctx, scope) / "bin"

    def installer_url(self, ctx: InstallContext) -> str:
        version = ctx.settings(self.name).version
        if version:
            return PINNED_INSTALLER_URL.format(version=version)
        return INSTALLER_URL

    def primary_install(self, ctx: InstallContext, scope: Scope) -> Receipt:
        install_dir = self.bin_dir(ctx, scope)
        if scope == Scope.SYSTEM:
            ctx.fs.makedirs(install_dir)
        script = (
            f"curl -LsSf {shlex.quote(self.installer_url(ctx))}"
            f" | env UV_INSTALL_DIR={shlex.quote(str(install_dir))} UV_NO_MODIFY_PATH=1 sh"
        )
        return self.shell(ctx, scope, script, operation="official installer")
