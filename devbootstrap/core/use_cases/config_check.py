"""
Config check use case — validate devbootstrap.yml and report issues.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping

from devbootstrap.core.config.loader import (
    ConfigError,
    apply_env_overrides,
    find_config_file,
    load_config,
)
from devbootstrap.core.models.host import HostConfig
from devbootstrap.core.services.permissions import group_exists
from devbootstrap.core.services.tool_install.registry import known_tools

_PARTIAL_VERSION = re.compile(r"\d+(?:\.\d+)?")


@dataclass
class ConfigCheckResult:
    """Result of configuration validation."""

    valid: bool = False
    config: HostConfig | None = None
    config_path: Path | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "valid": self.valid,
            "config_path": str(self.config_path) if self.config_path else None,
            "errors": self.errors,
            "warnings": self.warnings,
            "dev_group": self.config.dev_group if self.config else None,
            "tool_count": len(self.config.tools) if self.config else 0,
        }


def check_config(
    config_path: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> ConfigCheckResult:
    """Validate the configuration and report issues.

    Args:
        config_path: Optional explicit path to devbootstrap.yml.
        environ: Environment to read overrides from (default: os.environ).

    Returns:
        ConfigCheckResult with validation status and any issues.
    """
    result = ConfigCheckResult()

    if config_path is None:
        config_path = find_config_file()
    if config_path is None:
        result.errors.append("No devbootstrap.yml found.")
        return result
    result.config_path = config_path

    known = known_tools()
    try:
        config = load_config(config_path)
        config = apply_env_overrides(config, known, environ)
    except ConfigError as e:
        result.errors.append(str(e))
        return result
    result.config = config

    # Semantic checks
    unknown = sorted(set(config.tools) - set(known))
    if unknown:
        result.errors.append(
            f"Unknown tools: {', '.join(unknown)} (known: {', '.join(known)})"
        )

    if config.select is not None:
        bad = [n for n in config.select if n.strip().lower() not in known]
        if bad:
            result.warnings.append(f"Selection names unknown tools, they will be ignored: {', '.join(bad)}")
        if not config.select:
            result.warnings.append("Selection is empty. Nothing will be installed.")
    elif not any(config.enable_flags().values()):
        result.warnings.append("No tool is enabled. Nothing will be installed.")

    if not group_exists(config.dev_group):
        result.warnings.append(
            f"Group '{config.dev_group}' does not exist yet; it is created on install when run as root."
        )

    pyenv = config.tools.get("pyenv")
    if pyenv and pyenv.python_versions:
        wanted = pyenv.enabled or (config.select is not None and "pyenv" in config.select)
        if not wanted:
            result.warnings.append("Python versions are configured but pyenv is not selected.")
        partial = [v for v in pyenv.python_versions if _PARTIAL_VERSION.fullmatch(v)]
        if partial:
            result.warnings.append(
                f"Python versions must be exact (e.g. 3.12.4), not prefixes: {', '.join(partial)}"
            )

    skipped_and_selected = [
        n for n in (config.select or []) if config.settings_for(n.strip().lower()).skip
    ]
    if skipped_and_selected:
        result.warnings.append(
            f"Selected but marked skip (reported as skipped): {', '.join(skipped_and_selected)}"
        )

    result.valid = len(result.errors) == 0
    return result
