"""
Configuration loader — reads devbootstrap.yml into a HostConfig.

The file is optional: without one every default applies and nothing
is selected. Environment variables (the interface provisioning
scripts already use) are layered on top, and CLI flags on top of
those in the install use case.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable, Mapping

import yaml
from pydantic import ValidationError

from devbootstrap.core.models.host import HostConfig, ToolSettings

logger = logging.getLogger(__name__)

# Default config filename
CONFIG_FILE = "devbootstrap.yml"

_TRUE = ("1", "yes", "true", "on", "y")
_FALSE = ("0", "no", "false", "off", "n", "")


class ConfigError(Exception):
    """Raised when the configuration file or an override is invalid."""


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Search for devbootstrap.yml starting from the given directory, walking up.

    Args:
        start_dir: Directory to start searching from (default: cwd).

    Returns:
        Path to devbootstrap.yml, or None if not found.
    """
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        candidate = current / CONFIG_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break  # filesystem root
        current = parent

    return None


def load_config(path: Path | None = None, *, search: bool = True) -> HostConfig:
    """Load and validate the host configuration.

    Args:
        path: Explicit path to devbootstrap.yml. If None and ``search``
            is set, searches upward from the working directory.
        search: Whether to look for a config file when ``path`` is None.

    Returns:
        Validated HostConfig (defaults when no file is found).

    Raises:
        ConfigError: If an explicit file is missing, or any file is invalid.
    """
    if path is None and search:
        path = find_config_file()

    if path is None:
        logger.debug("No %s found, using defaults", CONFIG_FILE)
        return HostConfig()

    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    logger.debug("Loading config from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    # `tools:` entries may be written as bare `uv:` (null) or `uv: true`
    tools = data.get("tools")
    if isinstance(tools, dict):
        data["tools"] = {
            name: _coerce_tool_entry(entry) for name, entry in tools.items()
        }

    try:
        config = HostConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {path}: {e}") from e

    logger.info("Loaded config from %s (%d tool entries)", path, len(config.tools))
    return config


def _coerce_tool_entry(entry: object) -> object:
    if entry is None:
        return {}
    if isinstance(entry, bool):
        return {"enabled": entry}
    return entry


def parse_bool(value: str, *, name: str) -> bool:
    """Parse a yes/no style environment value."""
    normalized = value.strip().lower()
    if normalized in _TRUE:
        return True
    if normalized in _FALSE:
        return False
    raise ConfigError(f"{name}: expected yes/no, got {value!r}")


def _split_csv(value: str) -> list[str]:
    return [part.strip() for part in value.replace(" ", ",").split(",") if part.strip()]


def apply_env_overrides(
    config: HostConfig,
    tools: Iterable[str],
    environ: Mapping[str, str] | None = None,
) -> HostConfig:
    """Layer environment variables over a loaded config.

    Recognized variables:
        INSTALL_<TOOL>            yes/no, enables a tool for flag selection
        <TOOL>_INSTALL_MODE       system | user
        <TOOL>_VERSION            version pin
        PYENV_PYTHON_VERSIONS     Python versions for pyenv (comma/space separated)
        PYENV_PYTHON_VERSION      single Python version (wins over the list)
        POETRY_HOME               poetry system prefix
        USER_GROUP                shared development group
        USERNAME                  development user
        DEVBOOT_TOOLS             explicit ordered selection
        DEVBOOT_DRY_RUN           yes/no

    Returns:
        A new HostConfig; the input is not modified.

    Raises:
        ConfigError: If a value cannot be parsed.
    """
    env = os.environ if environ is None else environ
    updated = config.model_copy(deep=True)

    for tool in tools:
        key = tool.upper()
        settings = updated.tools.get(tool) or ToolSettings()
        changed = False

        if f"INSTALL_{key}" in env:
            settings.enabled = parse_bool(env[f"INSTALL_{key}"], name=f"INSTALL_{key}")
            changed = True
        if env.get(f"{key}_INSTALL_MODE"):
            try:
                settings = ToolSettings.model_validate(
                    {**settings.model_dump(), "install_mode": env[f"{key}_INSTALL_MODE"]}
                )
            except ValidationError as e:
                raise ConfigError(f"{key}_INSTALL_MODE: {e}") from e
            changed = True
        if env.get(f"{key}_VERSION"):
            settings.version = env[f"{key}_VERSION"].strip()
            changed = True

        if changed:
            updated.tools[tool] = settings

    if env.get("PYENV_PYTHON_VERSIONS") or env.get("PYENV_PYTHON_VERSION"):
        pyenv = updated.tools.get("pyenv") or ToolSettings()
        if env.get("PYENV_PYTHON_VERSIONS"):
            pyenv.python_versions = _split_csv(env["PYENV_PYTHON_VERSIONS"])
        if env.get("PYENV_PYTHON_VERSION"):
            pyenv.python_versions = [env["PYENV_PYTHON_VERSION"].strip()]
        updated.tools["pyenv"] = pyenv

    if env.get("POETRY_HOME"):
        poetry = updated.tools.get("poetry") or ToolSettings()
        poetry.prefix = env["POETRY_HOME"].strip()
        updated.tools["poetry"] = poetry

    if env.get("USER_GROUP"):
        updated.dev_group = env["USER_GROUP"].strip()
    if env.get("USERNAME"):
        updated.username = env["USERNAME"].strip()
    if env.get("DEVBOOT_TOOLS"):
        updated.select = _split_csv(env["DEVBOOT_TOOLS"])
    if "DEVBOOT_DRY_RUN" in env:
        updated.dry_run = updated.dry_run or parse_bool(
            env["DEVBOOT_DRY_RUN"], name="DEVBOOT_DRY_RUN"
        )

    return updated
