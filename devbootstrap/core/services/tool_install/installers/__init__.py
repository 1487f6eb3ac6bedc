"""Per-tool installer strategies."""

from devbootstrap.core.services.tool_install.installers.pipenv import PipenvInstaller  # noqa: F401
from devbootstrap.core.services.tool_install.installers.poetry import PoetryInstaller  # noqa: F401
from devbootstrap.core.services.tool_install.installers.pyenv import PyenvInstaller  # noqa: F401
from devbootstrap.core.services.tool_install.installers.uv import UvInstaller  # noqa: F401
