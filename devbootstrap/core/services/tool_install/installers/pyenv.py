"""
pyenv — Python version manager.

Per-user by default (``~/.pyenv``); a system install lives in
``<opt>/pyenv`` and is shared through the dev group. Besides the tool
itself, the requested Python versions are part of "installed": a
pyenv without them is not considered present.
"""

from __future__ import annotations

import logging
import shlex
from pathlib import Path

from devbootstrap.core.models.installer import Detection, InstallerSpec, Scope
from devbootstrap.core.models.receipt import Receipt
from devbootstrap.core.services.tool_install.context import InstallContext
from devbootstrap.core.services.tool_install.strategy import InstallerStrategy

logger = logging.getLogger(__name__)

INSTALLER_URL = "https://pyenv.run"
REPOSITORY_URL = "https://github.com/pyenv/pyenv.git"


class PyenvInstaller(InstallerStrategy):
    spec = InstallerSpec(
        name="pyenv",
        scope=Scope.PER_USER,
        family="pyenv",
        summary="Python version manager",
        binaries=("pyenv",),
        has_fallback=True,
    )
    version_pattern = r"pyenv\s+(\d+\.\d+\.\d+\S*)"

    # ── Locations ──────────────────────────────────────────────

    def prefix(self, ctx: InstallContext, scope: Scope) -> Path:
        if scope == Scope.SYSTEM:
            return self.system_prefix(ctx, "pyenv")
        return ctx.target_home / ".pyenv"

    def bin_dir(self, ctx: InstallContext, scope: Scope) -> Path:
        return self.prefix(ctx, scope) / "bin"

    def path_entries(self, ctx: InstallContext, scope: Scope) -> list[str]:
        # PATH is derived from PYENV_ROOT inside the hook
        return []

    def init_hooks(self, ctx: InstallContext, scope: Scope) -> list[str]:
        link = ctx.layout.bin_path / "pyenv"
        hooks = []
        if scope == Scope.SYSTEM:
            root = shlex.quote(str(self.prefix(ctx, scope)))
            hooks.append(f'[ -z "${{PYENV_ROOT:-}}" ] && export PYENV_ROOT={root}')
        hooks.append(
            "\n".join(
                [
                    f'if [ -z "${{PYENV_ROOT:-}}" ] && [ -L {link} ]; then',
                    f'  _pyenv_exe="$(readlink -f {link} 2>/dev/null)"',
                    '  _pyenv_root="$(dirname "$(dirname "$_pyenv_exe")")"',
                    '  [ -d "$_pyenv_root" ] && export PYENV_ROOT="$_pyenv_root"',
                    "  unset _pyenv_exe _pyenv_root",
                    "fi",
                    'if [ -z "${PYENV_ROOT:-}" ] && [ -d "$HOME/.pyenv" ]; then',
                    '  export PYENV_ROOT="$HOME/.pyenv"',
                    "fi",
                ]
            )
        )
        hooks.append(
            "\n".join(
                [
                    'if [ -n "${PYENV_ROOT:-}" ]; then',
                    '  case ":${PATH}:" in',
                    '    *":${PYENV_ROOT}/bin:"*) ;;',
                    '    *) PATH="${PYENV_ROOT}/bin:${PATH}" ;;',
                    "  esac",
                    "  export PATH",
                    '  command -v pyenv >/dev/null 2>&1 && eval "$(pyenv init -)"',
                    "fi",
                ]
            )
        )
        return hooks

    # ── Detection ──────────────────────────────────────────────

    def requested_versions(self, ctx: InstallContext) -> list[str]:
        return list(ctx.settings(self.name).python_versions)

    def probe_env(self, ctx: InstallContext, binary: Path) -> dict[str, str]:
        return {"PYENV_ROOT": str(binary.parent.parent)}

    def installed_versions(self, ctx: InstallContext, binary: Path) -> set[str]:
        receipt = ctx.runner.run(
            [str(binary), "versions", "--bare"],
            operation="pyenv versions",
            env=self.probe_env(ctx, binary),
            read_only=True,
        )
        if receipt.failed:
            return set()
        return {line.strip() for line in receipt.output.splitlines() if line.strip()}

    def probe(self, ctx: InstallContext) -> Detection:
        found = super().probe(ctx)
        wanted = self.requested_versions(ctx)
        if not found.present or not wanted or found.binary is None:
            return found

        missing = [v for v in wanted if v not in self.installed_versions(ctx, found.binary)]
        if missing:
            return Detection(
                present=False,
                binary=found.binary,
                version=found.version,
                scope=found.scope,
                searched=found.searched,
                reason=f"Python {', '.join(missing)} not installed in {found.binary.parent.parent}",
            )
        return found

    # ── Installation ───────────────────────────────────────────

    def primary_install(self, ctx: InstallContext, scope: Scope) -> Receipt:
        root = self.prefix(ctx, scope)
        if not self.binary_path(ctx, scope).is_file():
            receipt = self.shell(
                ctx,
                scope,
                f"curl -fsSL {shlex.quote(INSTALLER_URL)} | bash",
                operation="pyenv installer",
                env={"PYENV_ROOT": str(root)},
            )
            if receipt.failed:
                return receipt
        return self.install_pythons(ctx, scope)

    def fallback_install(self, ctx: InstallContext, scope: Scope) -> Receipt:
        """Shallow clone of the pyenv repository.

        Only the pyenv checkout has an alternative source. When pyenv is
        already in place the primary failed while building Python, and
        that build is not attempted a second time.
        """
        root = self.prefix(ctx, scope)
        binary = self.binary_path(ctx, scope)
        if binary.is_file():
            return Receipt.failure(
                adapter=ctx.runner.name,
                operation="pyenv: clone repository",
                error=f"pyenv already present at {binary}; Python build not retried",
            )
        receipt = self.run(
            ctx,
            scope,
            ["git", "clone", "--depth", "1", REPOSITORY_URL, str(root)],
            operation="clone repository",
        )
        if receipt.failed:
            return receipt
        return self.install_pythons(ctx, scope)

    def install_pythons(self, ctx: InstallContext, scope: Scope) -> Receipt:
        """Install each requested version and make the first one global."""
        versions = self.requested_versions(ctx)
        pyenv = str(self.binary_path(ctx, scope))
        env = {"PYENV_ROOT": str(self.prefix(ctx, scope))}

        if not versions:
            return Receipt.skip(
                adapter=ctx.runner.name,
                operation="pyenv: install Python versions",
                reason="no Python versions requested",
            )

        for version in versions:
            receipt = self.run(
                ctx,
                scope,
                [pyenv, "install", "-s", version],
                operation=f"install Python {version}",
                env=env,
            )
            if receipt.failed:
                return receipt

        logger.info("[pyenv] global Python: %s", versions[0])
        return self.run(
            ctx,
            scope,
            [pyenv, "global", versions[0]],
            operation=f"set global Python {versions[0]}",
            env=env,
        )
