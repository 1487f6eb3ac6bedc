"""
Selector — which tools this run should handle.

Input is either an explicit ordered list of names (from the CLI, the
``select`` key, or ``DEVBOOT_TOOLS``) or the per-tool ``enabled``
flags. An explicit list always wins over flags.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Mapping, Sequence

logger = logging.getLogger(__name__)


@dataclass
class Selection:
    """Normalized selection plus whatever had to be dropped."""

    tools: list[str] = field(default_factory=list)
    dropped: list[str] = field(default_factory=list)
    source: str = "flags"           # explicit | flags

    @property
    def empty(self) -> bool:
        return not self.tools


def _split(names: Iterable[str]) -> list[str]:
    """Normalize names; accepts comma-separated entries."""
    out: list[str] = []
    for raw in names:
        for part in str(raw).split(","):
            name = part.strip().lower()
            if name:
                out.append(name)
    return out


def select_tools(
    known: Sequence[str],
    *,
    explicit: Sequence[str] | None = None,
    flags: Mapping[str, bool] | None = None,
) -> Selection:
    """Resolve the tool list for a run.

    Args:
        known: Registered tool names, in registry order.
        explicit: Ordered list of requested names. Overrides ``flags``
            when given (even if it resolves to nothing).
        flags: Per-tool enable flags. Enabled tools are returned in
            registry order.

    Returns:
        Selection with deduplicated, order-preserving, known names.
        Unknown names are dropped with a warning.
    """
    known_set = set(known)
    selection = Selection()

    if explicit is not None:
        selection.source = "explicit"
        requested = _split(explicit)
    else:
        normalized = {
            name.strip().lower(): bool(enabled) for name, enabled in (flags or {}).items()
        }
        requested = [name for name in known if normalized.get(name)]
        requested += [
            name for name, enabled in normalized.items() if enabled and name not in known_set
        ]

    for name in requested:
        if name not in known_set:
            if name not in selection.dropped:
                logger.warning("Unknown tool '%s' ignored (known: %s)", name, ", ".join(known))
                selection.dropped.append(name)
            continue
        if name not in selection.tools:
            selection.tools.append(name)

    logger.info(
        "Selected tools (%s): %s",
        selection.source,
        ", ".join(selection.tools) or "<none>",
    )
    return selection
