"""
Status use case — probe every registered tool without changing anything.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping

from devbootstrap.adapters.base import CommandRunner
from devbootstrap.core.config.loader import ConfigError
from devbootstrap.core.services.tool_install.context import build_context
from devbootstrap.core.services.tool_install.registry import INSTALLERS
from devbootstrap.core.use_cases.install import effective_config


@dataclass
class ToolStatus:
    name: str
    present: bool = False
    version: str | None = None
    binary: str | None = None
    scope: str | None = None
    enabled: bool = False
    skip: bool = False
    reason: str = ""

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "present": self.present,
            "version": self.version,
            "binary": self.binary,
            "scope": self.scope,
            "enabled": self.enabled,
            "skip": self.skip,
            "reason": self.reason,
        }


@dataclass
class StatusResult:
    """Presence and version of every registered tool."""

    tools: list[ToolStatus] = field(default_factory=list)
    target_user: str = ""
    error: str | None = None

    @property
    def present_count(self) -> int:
        return sum(1 for t in self.tools if t.present)

    def to_dict(self) -> dict:
        result: dict = {}
        if self.error:
            result["error"] = self.error
            return result
        result["target_user"] = self.target_user
        result["tools"] = [t.to_dict() for t in self.tools]
        return result


def get_status(
    config_path: Path | None = None,
    *,
    root: str | None = None,
    user: str | None = None,
    runner: CommandRunner | None = None,
    search_path: str | None = None,
    environ: Mapping[str, str] | None = None,
) -> StatusResult:
    """Probe every registered tool.

    Probes are read-only, so this is safe to run as any user.
    """
    result = StatusResult()
    try:
        config = effective_config(config_path, environ, root=root, user=user)
    except ConfigError as e:
        result.error = str(e)
        return result

    # Nothing here mutates the host; the runner only has to execute probes.
    config.dry_run = False
    ctx = build_context(config, runner=runner, search_path=search_path)
    result.target_user = ctx.target_user

    for name, strategy in INSTALLERS.items():
        settings = ctx.settings(name)
        found = strategy.detect(ctx)
        result.tools.append(
            ToolStatus(
                name=name,
                present=found.present,
                version=found.version,
                binary=str(found.binary) if found.binary else None,
                scope=found.scope.value if found.scope else None,
                enabled=settings.enabled,
                skip=settings.skip,
                reason="" if found.present else found.reason,
            )
        )
    return result
