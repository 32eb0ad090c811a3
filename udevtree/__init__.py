"""
udevtree — reference-counted handles onto the Linux udev device tree.

Public API:
    - Device handles:
        Device (from_syspath / from_device_number, attributes, parent walk)
    - Process-wide context:
        get_context, init_context, release_context, Context
    - Value types:
        DeviceKind, DeviceNumber
    - Errors:
        UninitializedError
"""

from __future__ import annotations

# Version from installed dist; falls back to dev string when run from source tree.
try:
    from importlib.metadata import version, PackageNotFoundError
except Exception:  # pragma: no cover
    version = None  # type: ignore[assignment]
    PackageNotFoundError = Exception  # type: ignore[misc]

try:  # pragma: no cover
    __version__ = version("udevtree")
except (PackageNotFoundError, Exception):  # pragma: no cover
    __version__ = "0.0.0.dev0"

# Public API re-exports
from .context import Context, get_context, init_context, release_context
from .device import Device
from .errors import UninitializedError
from .types import DeviceKind, DeviceNumber

__all__ = [
    "__version__",
    # Handles
    "Device",
    # Context
    "Context",
    "get_context",
    "init_context",
    "release_context",
    # Values
    "DeviceKind",
    "DeviceNumber",
    # Errors
    "UninitializedError",
]
