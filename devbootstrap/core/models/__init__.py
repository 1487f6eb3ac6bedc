"""
Domain models — Pydantic types for devbootstrap.

All models are re-exported here for convenient access:

    from devbootstrap.core.models import HostConfig, InstallationResult, Receipt
"""

from devbootstrap.core.models.host import HostConfig, HostLayout, ToolSettings
from devbootstrap.core.models.installer import (
    Detection,
    InstallationResult,
    InstallerSpec,
    InstallStatus,
    PermissionTarget,
    Scope,
)
from devbootstrap.core.models.receipt import Receipt

__all__ = [
    # installer.py
    "Detection",
    # host.py
    "HostConfig",
    "HostLayout",
    "InstallStatus",
    "InstallationResult",
    "InstallerSpec",
    "PermissionTarget",
    # receipt.py
    "Receipt",
    "Scope",
    "ToolSettings",
]
