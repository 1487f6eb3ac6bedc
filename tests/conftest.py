"""
Shared test fixtures and configuration.

Every test works against a fake host rooted in ``tmp_path``: the
layout resolves /opt, /usr/local/bin, /etc/profile.d and /home under
it, and a MockRunner stands in for every command.
"""

import grp
import os
from pathlib import Path
from typing import Callable

import pytest

from devbootstrap.adapters.mock import MockRunner
from devbootstrap.adapters.shell.filesystem import HostFilesystem
from devbootstrap.core.models.host import HostConfig, HostLayout
from devbootstrap.core.services.tool_install.context import InstallContext

VERSION_OUTPUT = {
    "uv": "uv 0.4.18",
    "pyenv": "pyenv 2.4.0",
    "pipenv": "pipenv, version 2024.0.1",
    "poetry": "Poetry (version 1.8.3)",
}


def make_executable(path: Path) -> Path:
    """Create a stand-in binary."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("#!/bin/sh\nexit 0\n")
    path.chmod(0o755)
    return path


def creates(*paths: Path) -> Callable[[list[str]], None]:
    """MockRunner side effect that 'installs' binaries."""

    def _effect(argv: list[str]) -> None:
        for path in paths:
            make_executable(path)

    return _effect


def register_versions(runner: MockRunner) -> None:
    """Make every tool's version probe answer like the real tool."""
    for tool, output in VERSION_OUTPUT.items():
        runner.set_response(f"{tool} --version", stdout=output)


@pytest.fixture
def dev_group() -> str:
    """A group the test process belongs to, so chgrp is allowed."""
    return grp.getgrgid(os.getgid()).gr_name


@pytest.fixture
def host_root(tmp_path: Path) -> Path:
    root = tmp_path / "host"
    root.mkdir()
    return root


@pytest.fixture
def layout(host_root: Path) -> HostLayout:
    return HostLayout(root=str(host_root))


@pytest.fixture
def home(host_root: Path) -> Path:
    path = host_root / "home" / "alice"
    path.mkdir(parents=True)
    return path


@pytest.fixture
def runner() -> MockRunner:
    mock = MockRunner()
    register_versions(mock)
    return mock


@pytest.fixture
def make_ctx(layout: HostLayout, home: Path, dev_group: str, runner: MockRunner):
    """Factory for install contexts on the fake host."""

    def _make(
        *,
        tools: dict | None = None,
        privileged: bool = True,
        dry_run: bool = False,
        runner_override: MockRunner | None = None,
    ) -> InstallContext:
        mock = runner_override or runner
        if dry_run and not mock.dry_run:
            mock = MockRunner(dry_run=True)
            register_versions(mock)
        config = HostConfig(
            dev_group=dev_group,
            username="alice",
            dry_run=dry_run,
            layout=layout,
            tools=tools or {},
        )
        return InstallContext(
            config=config,
            runner=mock,
            fs=HostFilesystem(dry_run=mock.dry_run),
            privileged=privileged,
            target_user="alice",
            target_home=home,
            search_path="",
        )

    return _make


@pytest.fixture
def ctx(make_ctx) -> InstallContext:
    return make_ctx()
