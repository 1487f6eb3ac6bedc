"""
Installer registry — the static table of installable tools.

Order matters: flag-based selection and ``tools list``/``tools status``
follow it.
"""

from __future__ import annotations

from devbootstrap.core.services.tool_install.installers.pipenv import PipenvInstaller
from devbootstrap.core.services.tool_install.installers.poetry import PoetryInstaller
from devbootstrap.core.services.tool_install.installers.pyenv import PyenvInstaller
from devbootstrap.core.services.tool_install.installers.uv import UvInstaller
from devbootstrap.core.services.tool_install.strategy import InstallerStrategy

INSTALLERS: dict[str, InstallerStrategy] = {
    strategy.name: strategy
    for strategy in (
        UvInstaller(),
        PyenvInstaller(),
        PipenvInstaller(),
        PoetryInstaller(),
    )
}


def known_tools() -> list[str]:
    return list(INSTALLERS)


def get_installer(name: str) -> InstallerStrategy | None:
    return INSTALLERS.get(name)
