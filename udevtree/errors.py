from __future__ import annotations
import errno
import os
from typing import NoReturn


class UninitializedError(TypeError):
    """A device handle was used before being bound, or after close()."""


def raise_for_errno(code: int, operation: str) -> NoReturn:
    """
    Raise the exception matching a failed native call.

    ENOMEM goes to MemoryError so it reaches the interpreter's out-of-memory
    path. Anything else becomes OSError, which Python narrows to the
    matching subclass (FileNotFoundError for ENOENT, ...). A zero code means
    the native side failed without saying why; the OSError then has no errno.
    """
    if code == errno.ENOMEM:
        raise MemoryError(f"{operation}: out of memory")
    if code:
        raise OSError(code, f"{operation}: {os.strerror(code)}")
    raise OSError(f"{operation} failed")
