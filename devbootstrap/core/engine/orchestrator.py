"""
Orchestrator — runs the selected installers and aggregates the outcome.

Tools run strictly one after another: a tool's permissions and
exposure are settled before the next tool starts. One tool's failure,
expected or not, never stops the rest. After the loop the profile
snippets are regenerated for every tool present on the host, not just
the ones this run touched.

Flow:
    selection → ensure group → per tool: skip? | state machine → global refresh → RunReport
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Mapping, Sequence

from devbootstrap.core.models.installer import InstallationResult, InstallStatus
from devbootstrap.core.services import exposure, permissions
from devbootstrap.core.services.tool_install.context import InstallContext
from devbootstrap.core.services.tool_install.registry import INSTALLERS
from devbootstrap.core.services.tool_install.strategy import (
    InstallerStrategy,
    execute_strategy,
)

logger = logging.getLogger(__name__)


class OverallStatus(str, Enum):
    SUCCESS = "success"
    PARTIAL_FAILURE = "partial_failure"
    NO_OP = "no_op"
    TOTAL_FAILURE = "total_failure"


@dataclass
class RunReport:
    """Aggregated outcome of one run. Never persisted."""

    results: list[InstallationResult] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    degraded_path: bool = False
    dry_run: bool = False

    def _names(self, status: InstallStatus) -> list[str]:
        return [r.tool for r in self.results if r.status == status]

    @property
    def installed(self) -> list[str]:
        return self._names(InstallStatus.INSTALLED)

    @property
    def skipped(self) -> list[str]:
        return self._names(InstallStatus.SKIPPED)

    @property
    def failed(self) -> list[str]:
        return self._names(InstallStatus.FAILED)

    @property
    def overall_status(self) -> OverallStatus:
        if self.installed:
            return OverallStatus.PARTIAL_FAILURE if self.failed else OverallStatus.SUCCESS
        if self.failed:
            return OverallStatus.TOTAL_FAILURE
        return OverallStatus.NO_OP

    @property
    def exit_code(self) -> int:
        if self.overall_status in (OverallStatus.SUCCESS, OverallStatus.NO_OP):
            return 0
        return 1

    def result_for(self, tool: str) -> InstallationResult | None:
        for result in self.results:
            if result.tool == tool:
                return result
        return None

    def to_dict(self) -> dict:
        return {
            "overall_status": self.overall_status.value,
            "exit_code": self.exit_code,
            "dry_run": self.dry_run,
            "installed": self.installed,
            "skipped": self.skipped,
            "failed": self.failed,
            "degraded_path": self.degraded_path,
            "warnings": self.warnings,
            "results": [r.model_dump(mode="json") for r in self.results],
        }


def aggregate(
    results: Iterable[InstallationResult],
    *,
    warnings: Sequence[str] = (),
    degraded_path: bool = False,
    dry_run: bool = False,
) -> RunReport:
    """Build a RunReport. The status sets partition ``results`` by tool."""
    return RunReport(
        results=list(results),
        warnings=list(warnings),
        degraded_path=degraded_path,
        dry_run=dry_run,
    )


def _run_one(strategy: InstallerStrategy, ctx: InstallContext) -> InstallationResult:
    if ctx.settings(strategy.name).skip:
        logger.info("[%s] excluded by configuration", strategy.name)
        return InstallationResult(
            tool=strategy.name,
            status=InstallStatus.SKIPPED,
            detail="excluded by configuration",
        )
    try:
        return execute_strategy(strategy, ctx)
    except Exception as e:
        logger.exception("[%s] unexpected error", strategy.name)
        return InstallationResult(
            tool=strategy.name,
            status=InstallStatus.FAILED,
            detail=f"unexpected error: {e}",
        )


def refresh_global_exposure(
    ctx: InstallContext,
    results: Sequence[InstallationResult],
    registry: Mapping[str, InstallerStrategy],
) -> exposure.ExposureOutcome:
    """Regenerate snippets for every tool family present on the host.

    Tools installed by this run use the scope they were installed in.
    Everything else is probed; tools only found on PATH are not ours
    to expose and are left alone.
    """
    installed = {r.tool: r for r in results if r.installed}
    snippets = []

    for name, strategy in registry.items():
        result = installed.get(name)
        scope = result.scope if result is not None else None
        if result is None:
            found = strategy.detect(ctx)
            if not found.present:
                continue
            scope = found.scope
        if scope is None:
            logger.debug("[%s] found on PATH only, no snippet", name)
            continue
        snippets.append(strategy.snippet(ctx, scope))

    logger.info("Global refresh: %s", ", ".join(s.family for s in snippets) or "<none>")
    return exposure.refresh_snippets(
        snippets,
        layout=ctx.layout,
        fs=ctx.fs,
        privileged=ctx.privileged,
    )


def run_installation(
    tools: Sequence[str],
    ctx: InstallContext,
    registry: Mapping[str, InstallerStrategy] | None = None,
) -> RunReport:
    """Install the selected tools in order and report.

    Always returns a RunReport, even when every tool failed. An empty
    selection returns NoOp without touching the host.
    """
    registry = INSTALLERS if registry is None else registry

    if not tools:
        logger.info("No tools selected, nothing to do")
        return aggregate([], dry_run=ctx.dry_run)

    warnings: list[str] = list(
        permissions.ensure_group(ctx.dev_group, ctx.runner, privileged=ctx.privileged)
    )
    results: list[InstallationResult] = []

    for name in tools:
        strategy = registry.get(name)
        if strategy is None:
            results.append(
                InstallationResult(
                    tool=name,
                    status=InstallStatus.FAILED,
                    detail="no installer registered",
                )
            )
            continue
        result = _run_one(strategy, ctx)
        logger.info("[%s] %s: %s", name, result.status.value, result.detail)
        results.append(result)

    for result in results:
        warnings += [f"{result.tool}: {w}" for w in result.warnings]

    degraded = any(r.exposure_degraded for r in results)
    try:
        refreshed = refresh_global_exposure(ctx, results, registry)
    except Exception as e:
        logger.exception("Global exposure refresh failed")
        warnings.append(f"global PATH refresh failed: {e}")
        degraded = True
    else:
        warnings += refreshed.warnings
        degraded = degraded or refreshed.degraded

    report = aggregate(results, warnings=warnings, degraded_path=degraded, dry_run=ctx.dry_run)
    logger.info(
        "Run finished: %s (installed=%d skipped=%d failed=%d)",
        report.overall_status.value,
        len(report.installed),
        len(report.skipped),
        len(report.failed),
    )
    return report
