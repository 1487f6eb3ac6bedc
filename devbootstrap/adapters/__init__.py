"""
Adapters — the only code that touches the host.

    CommandRunner      base class (dry-run, sudo wrapping, logging)
    ShellCommandRunner real subprocess execution
    MockRunner         test double
    HostFilesystem     dry-run aware filesystem mutations
"""

from devbootstrap.adapters.base import CommandRunner, format_argv
from devbootstrap.adapters.mock import MockRunner
from devbootstrap.adapters.shell.command import ShellCommandRunner
from devbootstrap.adapters.shell.filesystem import HostFilesystem

__all__ = [
    "CommandRunner",
    "HostFilesystem",
    "MockRunner",
    "ShellCommandRunner",
    "format_argv",
]
