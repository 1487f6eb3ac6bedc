"""
CLI commands for tool installation.

Thin wrappers over ``devbootstrap.core.use_cases``.
"""

from __future__ import annotations

import json
import sys

import click

_MARKERS = {
    "installed": ("✓", "green"),
    "skipped": ("⊘", "yellow"),
    "failed": ("✗", "red"),
}

_OVERALL_COLORS = {
    "success": "green",
    "no_op": "white",
    "partial_failure": "yellow",
    "total_failure": "red",
}


@click.group()
def tools() -> None:
    """Tools — install, status, list."""


# ── Install ─────────────────────────────────────────────────────


@tools.command()
@click.argument("names", nargs=-1)
@click.option("--skip", "skip", multiple=True, help="Exclude a tool (repeatable).")
@click.option("--dry-run", is_flag=True, help="Log every change instead of making it.")
@click.option("--group", default=None, help="Shared development group (default: dev).")
@click.option("--user", default=None, help="Development user for per-user installs.")
@click.option("--root", default=None, help="Host root all paths resolve under (default: /).")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def install(
    ctx: click.Context,
    names: tuple[str, ...],
    skip: tuple[str, ...],
    dry_run: bool,
    group: str | None,
    user: str | None,
    root: str | None,
    as_json: bool,
) -> None:
    """Install tools (default: the configured selection).

    \b
    Examples:
        devbootstrap tools install uv poetry
        devbootstrap tools install --dry-run --skip pyenv
    """
    from devbootstrap.core.use_cases.install import run_install

    result = run_install(
        tools=list(names) or None,
        config_path=ctx.obj.get("config_path"),
        skip=skip,
        dry_run=dry_run,
        group=group,
        user=user,
        root=root,
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        if result.error:
            sys.exit(1)
        if result.report and result.report.exit_code:
            sys.exit(result.report.exit_code)
        return

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    report = result.report
    assert report is not None  # guaranteed after error check above
    quiet = ctx.obj.get("quiet", False)

    if not quiet:
        prefix = "[dry-run] " if report.dry_run else ""
        assert result.config is not None
        click.secho(
            f"\n⚡ {prefix}Installing for {result.target_user} (group {result.config.dev_group})",
            fg="cyan",
            bold=True,
        )

    if not report.results:
        click.echo("   Nothing selected.")

    width = max((len(r.tool) for r in report.results), default=0)
    for r in report.results:
        marker, color = _MARKERS[r.status.value]
        click.secho(f"   {marker} ", fg=color, nl=False)
        click.echo(f"{r.tool.ljust(width)}  {r.detail}")

    if report.warnings and not quiet:
        click.echo()
        click.secho("⚠️  Warnings:", fg="yellow")
        for warn in report.warnings:
            click.echo(f"   • {warn}")
        if report.degraded_path:
            click.echo("   • PATH for other users is degraded; open a new login shell after fixing.")

    overall = report.overall_status.value
    click.echo()
    click.echo("   Result: ", nl=False)
    click.secho(overall, fg=_OVERALL_COLORS.get(overall, "white"), bold=True, nl=False)
    click.echo(
        f" ({len(report.installed)} installed, {len(report.skipped)} skipped, "
        f"{len(report.failed)} failed)"
    )
    click.echo()

    if report.exit_code:
        sys.exit(report.exit_code)


# ── Observe ─────────────────────────────────────────────────────


@tools.command()
@click.option("--user", default=None, help="Development user whose home is probed.")
@click.option("--root", default=None, help="Host root all paths resolve under (default: /).")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def status(ctx: click.Context, user: str | None, root: str | None, as_json: bool) -> None:
    """Show which tools are present, where, and which version."""
    from devbootstrap.core.use_cases.status import get_status

    result = get_status(config_path=ctx.obj.get("config_path"), root=root, user=user)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        if result.error:
            sys.exit(1)
        return

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    click.secho(f"🔧 Tools (user {result.target_user}):", fg="cyan", bold=True)
    for t in result.tools:
        if t.present:
            scope = f" [{t.scope}]" if t.scope else ""
            click.secho("   ✓ ", fg="green", nl=False)
            click.echo(f"{t.name} {t.version}{scope}  → {t.binary}")
        else:
            click.secho("   ✗ ", fg="red", nl=False)
            click.echo(f"{t.name}  ({t.reason})")
    click.echo()


@tools.command("list")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def list_tools(as_json: bool) -> None:
    """List installable tools."""
    from devbootstrap.core.services.tool_install.registry import INSTALLERS

    specs = [strategy.spec for strategy in INSTALLERS.values()]

    if as_json:
        click.echo(json.dumps([s.model_dump(mode="json") for s in specs], indent=2))
        return

    width = max(len(s.name) for s in specs)
    for s in specs:
        fallback = "fallback" if s.has_fallback else "no fallback"
        click.echo(
            f"   {s.name.ljust(width)}  {s.scope.value:<8}  {s.family:<7}  "
            f"{fallback:<11}  {s.summary}"
        )
