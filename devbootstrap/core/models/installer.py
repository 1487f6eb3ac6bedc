"""
Installer models — static tool descriptions and per-run outcomes.

InstallerSpec is defined once per tool in the static registry.
InstallationResult is produced fresh by every run and is never
persisted.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class Scope(str, Enum):
    """Where a tool is installed."""

    SYSTEM = "system"       # shared, group-owned install under a fixed prefix
    PER_USER = "per-user"   # installed into the target user's home

    @classmethod
    def parse(cls, value: str) -> Scope:
        """Parse a config value (``system``, ``user`` or ``per-user``)."""
        normalized = value.strip().lower()
        if normalized == "system":
            return cls.SYSTEM
        if normalized in ("user", "per-user", "per_user"):
            return cls.PER_USER
        raise ValueError(f"Unknown install scope: {value!r}")


class InstallStatus(str, Enum):
    INSTALLED = "installed"
    SKIPPED = "skipped"
    FAILED = "failed"


class InstallerSpec(BaseModel):
    """Static description of one installable tool."""

    model_config = ConfigDict(frozen=True)

    name: str
    scope: Scope                        # default scope before overrides/downgrade
    family: str                         # init-snippet family
    summary: str = ""
    binaries: tuple[str, ...]           # exposed binaries; the first one is probed
    has_fallback: bool = False


class PermissionTarget(BaseModel):
    """A directory tree that must be usable by the shared group.

    Modes are bits added on top of what is already there, so owner
    permissions and executability are never reduced. Files that are
    executable by their owner also become executable by the group.
    """

    path: Path
    group: str
    dir_mode: int = 0o070       # g+rwx
    file_mode: int = 0o060      # g+rw (plus g+x for owner-executable files)
    setgid: bool = True


class Detection(BaseModel):
    """Outcome of probing for a tool's binary.

    The same probe answers both "is it already here?" and "did the
    install work?", so the two can never disagree.
    """

    present: bool = False
    binary: Path | None = None
    version: str | None = None
    scope: Scope | None = None          # None when only found on PATH
    searched: list[str] = Field(default_factory=list)
    reason: str = ""


class InstallationResult(BaseModel):
    """Outcome of one tool in one run. Exactly one status per tool."""

    tool: str
    status: InstallStatus
    detail: str = ""
    scope: Scope | None = None
    version: str | None = None

    used_fallback: bool = False
    downgraded: bool = False
    already_present: bool = False
    exposure_degraded: bool = False

    warnings: list[str] = Field(default_factory=list)
    phases: list[str] = Field(default_factory=list)

    @property
    def installed(self) -> bool:
        return self.status == InstallStatus.INSTALLED

    @property
    def failed(self) -> bool:
        return self.status == InstallStatus.FAILED
