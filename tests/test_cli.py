"""
Tests for CLI — command parsing and output formatting.

Uses Click's CliRunner for isolated testing. Every invocation passes
``-q`` so log lines stay out of the captured output.
"""

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from devbootstrap.main import cli

# Environment overrides that would leak the developer's shell into the run.
_CLEAN_ENV = {
    name: None
    for name in (
        "DEVBOOT_LOG_LEVEL",
        "DEVBOOT_LOG_FILE",
        "DEVBOOT_TOOLS",
        "DEVBOOT_DRY_RUN",
        "USER_GROUP",
        "USERNAME",
        "POETRY_HOME",
        "PYENV_PYTHON_VERSION",
        "PYENV_PYTHON_VERSIONS",
        "INSTALL_UV",
        "INSTALL_PYENV",
        "INSTALL_PIPENV",
        "INSTALL_POETRY",
    )
}

VALID_CONFIG = """\
dev_group: dev
tools:
  uv:
    enabled: true
"""


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner(env=_CLEAN_ENV)


class TestCliBasics:
    def test_help(self, runner):
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "devbootstrap" in result.output
        assert "tools" in result.output
        assert "config" in result.output

    def test_version(self, runner):
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_tools_help(self, runner):
        result = runner.invoke(cli, ["tools", "--help"])
        assert result.exit_code == 0
        for command in ("install", "status", "list"):
            assert command in result.output


class TestToolsList:
    def test_lists_registry_order(self, runner):
        result = runner.invoke(cli, ["-q", "tools", "list", "--json"])
        assert result.exit_code == 0
        names = [spec["name"] for spec in json.loads(result.output)]
        assert names == ["uv", "pyenv", "pipenv", "poetry"]

    def test_table(self, runner):
        result = runner.invoke(cli, ["-q", "tools", "list"])
        assert result.exit_code == 0
        assert "poetry" in result.output
        assert "fallback" in result.output


class TestToolsInstall:
    def test_dry_run_touches_nothing(self, runner, tmp_path: Path):
        host = tmp_path / "host"
        host.mkdir()
        with runner.isolated_filesystem(temp_dir=tmp_path):
            result = runner.invoke(
                cli,
                ["-q", "tools", "install", "uv", "--dry-run", "--root", str(host), "--json"],
            )
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["selected"] == ["uv"]
        assert data["report"]["dry_run"] is True
        assert data["report"]["installed"] == ["uv"]
        assert list(host.iterdir()) == []

    def test_nothing_selected(self, runner, tmp_path: Path):
        with runner.isolated_filesystem(temp_dir=tmp_path):
            result = runner.invoke(cli, ["-q", "tools", "install", "--root", str(tmp_path)])
        assert result.exit_code == 0
        assert "Nothing selected" in result.output
        assert "no_op" in result.output

    def test_bad_config(self, runner, tmp_path: Path):
        with runner.isolated_filesystem(temp_dir=tmp_path):
            Path("devbootstrap.yml").write_text("- not a mapping\n")
            result = runner.invoke(cli, ["-q", "tools", "install", "--dry-run"])
        assert result.exit_code == 1
        assert "❌" in result.output


class TestConfigCheck:
    def test_valid(self, runner, tmp_path: Path):
        with runner.isolated_filesystem(temp_dir=tmp_path):
            Path("devbootstrap.yml").write_text(VALID_CONFIG)
            result = runner.invoke(cli, ["-q", "-c", "devbootstrap.yml", "config", "check"])
        assert result.exit_code == 0
        assert "valid" in result.output
        assert "uv" in result.output

    def test_unknown_tool(self, runner, tmp_path: Path):
        with runner.isolated_filesystem(temp_dir=tmp_path):
            Path("devbootstrap.yml").write_text("tools:\n  conda:\n    enabled: true\n")
            result = runner.invoke(
                cli, ["-q", "-c", "devbootstrap.yml", "config", "check", "--json"]
            )
        assert result.exit_code == 1
        data = json.loads(result.output)
        assert data["valid"] is False
        assert "conda" in data["errors"][0]
