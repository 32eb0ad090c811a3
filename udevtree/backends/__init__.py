"""
Internal backends package.

Only `discover_backend` is considered part of the importable surface here.
The concrete backends are picked by `udevtree.context` on first use.
"""

from __future__ import annotations

from .discovery import discover_backend  # re-export for internal use

__all__ = ["discover_backend"]
