# udevtree/context.py
"""
Process-wide udev context.

The native context is created on the first lookup and released once at
interpreter exit. Callers normally never touch it directly: Device factories
call get_context() themselves.
"""

from __future__ import annotations
import atexit
import logging
import threading
from typing import Any, Optional

from .backends import discover_backend
from .errors import UninitializedError, raise_for_errno
from .types import UdevBackend

logger = logging.getLogger(__name__)


class Context:
    __slots__ = ("backend", "_ptr")

    def __init__(self, backend: UdevBackend, ptr: Any):
        self.backend = backend
        self._ptr = ptr

    @property
    def ptr(self) -> Any:
        if self._ptr is None:
            raise UninitializedError("uninitialized udev context")
        return self._ptr

    def release(self) -> None:
        ptr, self._ptr = self._ptr, None
        if ptr is not None:
            self.backend.udev_unref(ptr)

    def __repr__(self) -> str:
        state = "released" if self._ptr is None else "live"
        return f"<Context backend={self.backend.name} {state}>"


_lock = threading.Lock()
_context: Optional[Context] = None


def _create(backend: Optional[UdevBackend]) -> Context:
    if backend is None:
        backend = discover_backend()
    ptr, err = backend.udev_new()
    if ptr is None:
        raise_for_errno(err, "udev_new")
    logger.debug("created udev context with %s backend", backend.name)
    return Context(backend, ptr)


def init_context(backend: Optional[UdevBackend] = None) -> Context:
    """
    Build the process-wide context with a specific backend. Must run before
    anything else calls get_context(); a second initialisation is refused.
    """
    global _context
    with _lock:
        if _context is not None:
            raise RuntimeError("udev context already initialised")
        _context = _create(backend)
        return _context


def get_context() -> Context:
    global _context
    ctx = _context
    if ctx is not None:
        return ctx
    with _lock:
        # another thread may have won the race while we waited
        if _context is None:
            _context = _create(None)
        return _context


def release_context() -> None:
    """
    Drop the process-wide context. Registered with atexit; nothing may call
    get_context() concurrently with this.
    """
    global _context
    with _lock:
        ctx, _context = _context, None
    if ctx is not None:
        logger.debug("releasing udev context")
        ctx.release()


atexit.register(release_context)
