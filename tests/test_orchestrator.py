"""
Tests for the orchestrator — isolation, aggregation, idempotence,
dry-run purity and the global exposure refresh.
"""

import hashlib
from pathlib import Path

from devbootstrap.core.engine.orchestrator import (
    OverallStatus,
    RunReport,
    aggregate,
    run_installation,
)
from devbootstrap.core.models.installer import InstallationResult, InstallStatus, Scope
from devbootstrap.core.services.tool_install.registry import INSTALLERS

from conftest import creates, register_versions


def _result(tool: str, status: InstallStatus) -> InstallationResult:
    return InstallationResult(tool=tool, status=status)


def _install_everything(runner, ctx, home: Path) -> None:
    """Make every installer's primary method 'work'."""
    opt, bin_dir = ctx.layout.opt_path, ctx.layout.bin_path
    runner.set_response(
        "astral.sh", side_effect=creates(opt / "uv" / "bin" / "uv", opt / "uv" / "bin" / "uvx")
    )
    runner.set_response("pyenv.run", side_effect=creates(home / ".pyenv" / "bin" / "pyenv"))
    runner.set_response("pip install --upgrade pipenv", side_effect=creates(bin_dir / "pipenv"))
    runner.set_response(
        "install.python-poetry.org", side_effect=creates(opt / "pypoetry" / "bin" / "poetry")
    )


def _snapshot(root: Path) -> dict[str, tuple]:
    """Content hash, inode and mode of everything under root."""
    state = {}
    for path in sorted(root.rglob("*")):
        st = path.lstat()
        digest = ""
        if path.is_file() and not path.is_symlink():
            digest = hashlib.sha256(path.read_bytes()).hexdigest()
        state[str(path.relative_to(root))] = (digest, st.st_ino, st.st_mode, st.st_mtime_ns)
    return state


# ── Aggregation Tests ────────────────────────────────────────────────


class TestAggregate:
    def test_partial_failure(self):
        report = aggregate(
            [
                _result("uv", InstallStatus.INSTALLED),
                _result("pipenv", InstallStatus.SKIPPED),
                _result("poetry", InstallStatus.FAILED),
            ]
        )
        assert report.overall_status == OverallStatus.PARTIAL_FAILURE
        assert report.installed == ["uv"]
        assert report.skipped == ["pipenv"]
        assert report.failed == ["poetry"]
        assert report.exit_code == 1

    def test_success(self):
        report = aggregate([_result("uv", InstallStatus.INSTALLED), _result("x", InstallStatus.SKIPPED)])
        assert report.overall_status == OverallStatus.SUCCESS
        assert report.exit_code == 0

    def test_all_skipped_is_noop(self):
        report = aggregate([_result("uv", InstallStatus.SKIPPED)])
        assert report.overall_status == OverallStatus.NO_OP
        assert report.exit_code == 0

    def test_empty_is_noop(self):
        assert RunReport().overall_status == OverallStatus.NO_OP

    def test_all_failed_is_total_failure(self):
        report = aggregate([_result("uv", InstallStatus.FAILED), _result("poetry", InstallStatus.FAILED)])
        assert report.overall_status == OverallStatus.TOTAL_FAILURE
        assert report.exit_code == 1

    def test_to_dict(self):
        report = aggregate(
            [_result("uv", InstallStatus.INSTALLED)], warnings=["w"], degraded_path=True
        )
        data = report.to_dict()
        assert data["overall_status"] == "success"
        assert data["exit_code"] == 0
        assert data["installed"] == ["uv"]
        assert data["degraded_path"] is True
        assert data["warnings"] == ["w"]
        assert data["results"][0]["tool"] == "uv"
        assert data["results"][0]["status"] == "installed"


# ── Run Tests ────────────────────────────────────────────────────────


class TestRunInstallation:
    def test_empty_selection_touches_nothing(self, ctx, runner, host_root):
        before = _snapshot(host_root)
        report = run_installation([], ctx)
        assert report.overall_status == OverallStatus.NO_OP
        assert runner.call_count == 0
        assert _snapshot(host_root) == before

    def test_all_tools(self, ctx, runner, home):
        _install_everything(runner, ctx, home)

        report = run_installation(["uv", "pyenv", "pipenv", "poetry"], ctx)

        assert report.installed == ["uv", "pyenv", "pipenv", "poetry"]
        assert report.overall_status == OverallStatus.SUCCESS
        assert not report.degraded_path
        for family in ("uv", "pyenv", "pipenv", "poetry"):
            assert (ctx.layout.profile_path / f"devbootstrap-{family}.sh").is_file()

    def test_results_follow_selection_order(self, ctx, runner, home):
        _install_everything(runner, ctx, home)
        report = run_installation(["poetry", "uv"], ctx)
        assert [r.tool for r in report.results] == ["poetry", "uv"]

    def test_configured_skip(self, make_ctx, runner, home):
        ctx = make_ctx(tools={"pipenv": {"skip": True}})
        _install_everything(runner, ctx, home)

        report = run_installation(["uv", "pipenv"], ctx)

        assert report.skipped == ["pipenv"]
        assert report.result_for("pipenv").detail == "excluded by configuration"
        assert runner.calls_matching("pip install") == []
        assert report.overall_status == OverallStatus.SUCCESS

    def test_failure_is_isolated(self, ctx, runner, home):
        _install_everything(runner, ctx, home)
        runner.set_failure("astral.sh", error="network unreachable")

        report = run_installation(["uv", "poetry"], ctx)

        assert report.failed == ["uv"]
        assert report.installed == ["poetry"]
        assert report.overall_status == OverallStatus.PARTIAL_FAILURE

    def test_unexpected_exception_is_isolated(self, ctx, runner, home):
        _install_everything(runner, ctx, home)

        class Exploding(type(INSTALLERS["uv"])):
            def detect(self, ctx):
                raise RuntimeError("boom")

        registry = dict(INSTALLERS, uv=Exploding())
        report = run_installation(["uv", "poetry"], ctx, registry=registry)

        assert report.result_for("uv").status == InstallStatus.FAILED
        assert report.result_for("uv").detail == "unexpected error: boom"
        assert report.installed == ["poetry"]

    def test_unregistered_tool_fails(self, ctx):
        report = run_installation(["conda"], ctx, registry={})
        assert report.failed == ["conda"]

    def test_second_run_is_idempotent(self, ctx, runner, home, host_root):
        _install_everything(runner, ctx, home)
        tools = ["uv", "pyenv", "pipenv", "poetry"]

        run_installation(tools, ctx)
        before = _snapshot(host_root)
        runner.reset()
        register_versions(runner)
        report = run_installation(tools, ctx)

        assert report.installed == tools
        assert all(r.already_present for r in report.results)
        assert _snapshot(host_root) == before
        assert [c for c in runner.commands if "--version" not in c and "versions" not in c] == []

    def test_second_run_keeps_per_user_pipenv(self, make_ctx, runner, home, host_root):
        ctx = make_ctx(tools={"pipenv": {"install_mode": "user"}})
        runner.set_response(
            "pip install --upgrade --user pipenv",
            side_effect=creates(home / ".local" / "bin" / "pipenv"),
        )
        snippet = ctx.layout.profile_path / "devbootstrap-pipenv.sh"

        first = run_installation(["pipenv"], ctx)
        assert (ctx.layout.bin_path / "pipenv").is_symlink()
        before = _snapshot(host_root)
        runner.reset()
        register_versions(runner)
        second = run_installation(["pipenv"], ctx)

        assert first.results[0].scope == Scope.PER_USER
        assert second.results[0].already_present
        assert second.results[0].scope == Scope.PER_USER
        assert _snapshot(host_root) == before
        assert "$HOME/.local/bin" in snippet.read_text()
        assert str(ctx.layout.opt_path) not in snippet.read_text()

    def test_dry_run_is_pure(self, make_ctx, host_root):
        ctx = make_ctx(dry_run=True)
        before = _snapshot(host_root)

        report = run_installation(["uv", "pyenv", "pipenv", "poetry"], ctx)

        assert report.installed == ["uv", "pyenv", "pipenv", "poetry"]
        assert report.dry_run
        assert _snapshot(host_root) == before
        assert ctx.runner.planned
        assert ctx.fs.planned


# ── Global Refresh Tests ─────────────────────────────────────────────


class TestGlobalRefresh:
    def test_previously_installed_tool_keeps_its_snippet(self, ctx, runner, home):
        _install_everything(runner, ctx, home)
        run_installation(["uv"], ctx)
        uv_snippet = ctx.layout.profile_path / "devbootstrap-uv.sh"
        uv_snippet.unlink()

        run_installation(["poetry"], ctx)

        assert uv_snippet.is_file()
        assert (ctx.layout.profile_path / "devbootstrap-poetry.sh").is_file()

    def test_absent_tools_get_no_snippet(self, ctx, runner, home):
        _install_everything(runner, ctx, home)
        run_installation(["uv"], ctx)
        assert not (ctx.layout.profile_path / "devbootstrap-poetry.sh").exists()

    def test_unprivileged_run_reports_degraded_path(self, make_ctx, runner, home):
        ctx = make_ctx(privileged=False)
        local_bin = home / ".local" / "bin"
        runner.set_response("astral.sh", side_effect=creates(local_bin / "uv", local_bin / "uvx"))

        report = run_installation(["uv"], ctx)

        assert report.installed == ["uv"]
        assert report.overall_status == OverallStatus.SUCCESS
        assert report.degraded_path
        assert report.warnings
