"""
Logging setup for devbootstrap runs.

The console shows what an operator needs while the run is in front of
them: warnings only by default, the phase transcript with ``-v``, and
file:line diagnostics with ``--debug``. Level comes from the CLI flag,
then DEVBOOT_LOG_LEVEL, then WARNING.

Runs are often unattended (provisioning scripts, image builds), so a
log file named by DEVBOOT_LOG_FILE records everything at DEBUG unless
DEVBOOT_LOG_FILE_LEVEL says otherwise.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Mapping

# ── Environment variables ───────────────────────────────────────

ENV_LOG_LEVEL = "DEVBOOT_LOG_LEVEL"
ENV_LOG_FILE = "DEVBOOT_LOG_FILE"
ENV_LOG_FILE_LEVEL = "DEVBOOT_LOG_FILE_LEVEL"

# ── Formats ─────────────────────────────────────────────────────

# (format, datefmt) per console tier; a level uses the first tier it reaches
_CONSOLE_TIERS = (
    (logging.DEBUG, "%(asctime)s %(levelname)-5s [%(name)s:%(lineno)d] %(message)s", "%H:%M:%S"),
    (logging.INFO, "%(asctime)s %(message)s", "%H:%M:%S"),
)
_CONSOLE_DEFAULT = "%(levelname)s: %(message)s"

_FILE_FORMAT = "%(asctime)s %(levelname)-5s [%(name)s:%(lineno)d] %(message)s"
_FILE_DATEFMT = "%Y-%m-%d %H:%M:%S"


def resolve_level(
    cli_level: str | None,
    environ: Mapping[str, str] | None = None,
) -> str:
    """Pick the console level: CLI flag, then env var, then WARNING."""
    if cli_level:
        return cli_level
    env = os.environ if environ is None else environ
    return env.get(ENV_LOG_LEVEL, "") or "WARNING"


def _console_formatter(level: int) -> logging.Formatter:
    for threshold, fmt, datefmt in _CONSOLE_TIERS:
        if level <= threshold:
            return logging.Formatter(fmt, datefmt=datefmt)
    return logging.Formatter(_CONSOLE_DEFAULT)


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
) -> None:
    """Install the console handler and, optionally, the run log file.

    Replaces any handlers already on the root logger, so calling it
    twice leaves one console handler.

    Args:
        level: Console level name.
        log_file: Path of the run log, if any.
        log_file_level: Level for the run log (default DEBUG).
    """
    console_level = _parse_level(level)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(_console_formatter(console_level))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(console)
    root_level = console_level

    if log_file:
        file_level = _parse_level(log_file_level or "DEBUG")
        run_log = logging.FileHandler(log_file, encoding="utf-8")
        run_log.setLevel(file_level)
        run_log.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt=_FILE_DATEFMT))
        root.addHandler(run_log)
        root_level = min(root_level, file_level)

    root.setLevel(root_level)
    logging.raiseExceptions = False


def _parse_level(level: str | None) -> int:
    """Level name to number; unknown or empty names mean WARNING."""
    numeric = getattr(logging, (level or "").upper(), None)
    return numeric if isinstance(numeric, int) else logging.WARNING
