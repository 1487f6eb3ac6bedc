"""
Install use case — from CLI intent to a RunReport.

Loads the config file, layers environment and CLI overrides on top,
resolves the selection, builds the install context and hands
everything to the orchestrator. The full vertical slice.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Sequence

from devbootstrap.adapters.base import CommandRunner
from devbootstrap.core.config.loader import ConfigError, apply_env_overrides, load_config
from devbootstrap.core.engine.orchestrator import RunReport, run_installation
from devbootstrap.core.models.host import HostConfig, ToolSettings
from devbootstrap.core.services.tool_install.context import InstallContext, build_context
from devbootstrap.core.services.tool_install.registry import known_tools
from devbootstrap.core.services.tool_install.selector import select_tools

logger = logging.getLogger(__name__)


@dataclass
class InstallResult:
    """Result of an install run."""

    report: RunReport | None = None
    config: HostConfig | None = None
    selected: list[str] = field(default_factory=list)
    dropped: list[str] = field(default_factory=list)
    target_user: str = ""
    error: str | None = None

    def to_dict(self) -> dict:
        result: dict = {}
        if self.error:
            result["error"] = self.error
            return result

        result["selected"] = self.selected
        result["dropped"] = self.dropped
        result["target_user"] = self.target_user
        if self.config:
            result["dev_group"] = self.config.dev_group
        if self.report:
            result["report"] = self.report.to_dict()
        return result


def effective_config(
    config_path: Path | None = None,
    environ: Mapping[str, str] | None = None,
    *,
    dry_run: bool = False,
    group: str | None = None,
    user: str | None = None,
    root: str | None = None,
    skip: Sequence[str] = (),
) -> HostConfig:
    """File, then environment, then CLI flags.

    Raises:
        ConfigError: If the file or an override is invalid.
    """
    config = load_config(config_path)
    config = apply_env_overrides(config, known_tools(), environ)

    if dry_run:
        config.dry_run = True
    if group:
        config.dev_group = group
    if user:
        config.username = user
    if root:
        config.layout.root = root
    for name in skip:
        key = name.strip().lower()
        settings = config.tools.get(key) or ToolSettings()
        settings.skip = True
        config.tools[key] = settings
    return config


def run_install(
    tools: Sequence[str] | None = None,
    config_path: Path | None = None,
    *,
    skip: Sequence[str] = (),
    dry_run: bool = False,
    group: str | None = None,
    user: str | None = None,
    root: str | None = None,
    runner: CommandRunner | None = None,
    privileged: bool | None = None,
    search_path: str | None = None,
    environ: Mapping[str, str] | None = None,
) -> InstallResult:
    """Install the requested tools.

    Args:
        tools: Explicit ordered tool names. None falls back to the
            configured ``select`` list, then to per-tool enable flags.
        config_path: Optional explicit path to devbootstrap.yml.
        skip: Tools to exclude (reported as skipped).
        dry_run: Log every mutation instead of performing it.
        group: Override the shared development group.
        user: Override the development user.
        root: Override the host root (all layout paths resolve under it).
        runner: Command runner override (tests pass a MockRunner).
        privileged: Override the root check.
        search_path: Override the PATH used for fallback lookups.
        environ: Environment to read overrides from (default: os.environ).

    Returns:
        InstallResult with the RunReport, or an error for bad config.
    """
    result = InstallResult()

    try:
        config = effective_config(
            config_path,
            environ,
            dry_run=dry_run,
            group=group,
            user=user,
            root=root,
            skip=skip,
        )
    except ConfigError as e:
        result.error = str(e)
        return result
    result.config = config

    explicit = list(tools) if tools else config.select
    selection = select_tools(known_tools(), explicit=explicit, flags=config.enable_flags())
    result.selected = selection.tools
    result.dropped = selection.dropped

    try:
        ctx: InstallContext = build_context(
            config,
            runner=runner,
            privileged=privileged,
            search_path=search_path,
        )
    except ValueError as e:
        result.error = str(e)
        return result
    result.target_user = ctx.target_user

    report = run_installation(selection.tools, ctx)
    report.warnings[:0] = [f"unknown tool '{name}' ignored" for name in selection.dropped]
    result.report = report
    return result
