"""
Host model — what the bootstrap run is provisioning.

Loaded from devbootstrap.yml (plus environment overrides), this
describes the shared development group, the development user,
where system-wide things live, and per-tool settings.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator


class ToolSettings(BaseModel):
    """Per-tool configuration, passed as opaque context into its installer."""

    enabled: bool = False                           # flag-based selection
    skip: bool = False                              # excluded by configuration
    install_mode: Literal["system", "user"] | None = None
    version: str | None = None
    # Exact `pyenv versions --bare` names ("3.12.4"); a prefix like "3.12"
    # never counts as installed, so the tool would fail verification.
    python_versions: list[str] = Field(default_factory=list)
    prefix: str | None = None                       # system install prefix override
    extra: dict[str, Any] = Field(default_factory=dict)

    @field_validator("install_mode", mode="before")
    @classmethod
    def _normalize_mode(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip().lower()
            if value in ("per-user", "per_user"):
                return "user"
            if value == "":
                return None
        return value


class HostLayout(BaseModel):
    """Well-known host locations.

    Every absolute path is resolved under ``root``. On a real host root
    is ``/``; tests point it at a temporary directory so that nothing
    outside it is touched.
    """

    root: str = "/"
    bin_dir: str = "/usr/local/bin"
    profile_dir: str = "/etc/profile.d"
    opt_dir: str = "/opt"
    home_base: str = "/home"

    def path(self, raw: str | Path) -> Path:
        """Resolve an absolute host path under the layout root."""
        raw_str = str(raw)
        if self.root in ("", "/"):
            return Path(raw_str)
        return Path(self.root) / raw_str.lstrip("/")

    @property
    def bin_path(self) -> Path:
        return self.path(self.bin_dir)

    @property
    def profile_path(self) -> Path:
        return self.path(self.profile_dir)

    @property
    def opt_path(self) -> Path:
        return self.path(self.opt_dir)

    @property
    def home_path(self) -> Path:
        return self.path(self.home_base)


class HostConfig(BaseModel):
    """Root configuration — loaded from devbootstrap.yml."""

    dev_group: str = "dev"
    username: str | None = None
    dry_run: bool = False

    select: list[str] | None = None                 # explicit ordered selection
    layout: HostLayout = Field(default_factory=HostLayout)
    tools: dict[str, ToolSettings] = Field(default_factory=dict)

    def settings_for(self, tool: str) -> ToolSettings:
        """Settings for a tool, or defaults if it is not configured."""
        return self.tools.get(tool) or ToolSettings()

    def enable_flags(self) -> dict[str, bool]:
        """Per-tool enable flags, in declaration order."""
        return {name: settings.enabled for name, settings in self.tools.items()}
