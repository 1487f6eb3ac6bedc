"""
Tool installation service — package re-exports.

Layers, leaf first: context → selector → strategy (state machine)
→ installers → registry.

    from devbootstrap.core.services.tool_install import INSTALLERS, execute_strategy
"""

# ── Context ──
from devbootstrap.core.services.tool_install.context import (  # noqa: F401
    InstallContext,
    build_context,
    resolve_target_user,
)

# ── Registry ──
from devbootstrap.core.services.tool_install.registry import (  # noqa: F401
    INSTALLERS,
    get_installer,
    known_tools,
)

# ── Selection ──
from devbootstrap.core.services.tool_install.selector import (  # noqa: F401
    Selection,
    select_tools,
)

# ── State machine ──
from devbootstrap.core.services.tool_install.strategy import (  # noqa: F401
    InstallerStrategy,
    Phase,
    execute_strategy,
)
