from __future__ import annotations
from dataclasses import dataclass
import logging
import os
from typing import Callable, List, Optional
from ..types import UdevBackend
from .libudev import LibudevBackend
from .sysfs import SYSFS_ROOT_DEFAULT, SysfsBackend

logger = logging.getLogger(__name__)

BACKEND_NAMES = ("libudev", "sysfs")


@dataclass(frozen=True)
class Candidate:
    """Represents a potential backend in the discovery order."""

    kind: str  # "explicit", "env", "libudev", "sysfs"
    ref: str  # backend name / library / sysfs root, for debugging
    opener: Callable[[], UdevBackend]  # returns a ready backend, or raises


def _opener_for(name: str, library: Optional[str], sysfs_root: str) -> Callable[[], UdevBackend]:
    if name == "libudev":
        return lambda: LibudevBackend(library)
    if name == "sysfs":

        def open_sysfs() -> UdevBackend:
            if not os.path.isdir(sysfs_root):
                raise FileNotFoundError(sysfs_root)
            return SysfsBackend(sysfs_root)

        return open_sysfs
    raise ValueError(f"unknown udev backend {name!r}, expected one of {BACKEND_NAMES}")


def _resolve_candidates(
    *,
    explicit: Optional[str],
    env_backend: Optional[str],
    library: Optional[str],
    sysfs_root: str,
    allow_libudev: bool,
) -> List[Candidate]:
    """
    Build an ordered list of candidates. Pure function -> easy to unit test.
    An explicit or env-selected backend is the only candidate; otherwise
    libudev is preferred and the sysfs emulation is the fallback.
    """
    forced = explicit or env_backend
    if forced:
        kind = "explicit" if explicit else "env"
        return [Candidate(kind, forced, _opener_for(forced, library, sysfs_root))]

    cands: List[Candidate] = []
    if allow_libudev:
        cands.append(
            Candidate("libudev", library or "libudev.so.1", _opener_for("libudev", library, sysfs_root))
        )
    cands.append(Candidate("sysfs", sysfs_root, _opener_for("sysfs", library, sysfs_root)))
    return cands


# -------- public entry --------


def discover_backend(
    name: Optional[str] = None,
    *,
    library: Optional[str] = None,
    sysfs_root: Optional[str] = None,
) -> UdevBackend:
    cands = _resolve_candidates(
        explicit=name,
        env_backend=os.getenv("UDEVTREE_BACKEND") or None,
        library=library or os.getenv("UDEVTREE_LIBUDEV") or None,
        sysfs_root=sysfs_root or os.getenv("UDEVTREE_SYSFS") or SYSFS_ROOT_DEFAULT,
        allow_libudev=os.getenv("UDEVTREE_NO_LIBUDEV") != "1",
    )

    last_err: Optional[Exception] = None
    for c in cands:
        try:
            backend = c.opener()
        except (OSError, AttributeError) as e:
            # AttributeError: a libudev build missing one of the symbols we bind
            logger.debug("backend candidate %s (%s) unavailable: %s", c.kind, c.ref, e)
            last_err = e
            continue
        logger.debug("using %s backend (%s)", backend.name, c.ref)
        return backend

    raise RuntimeError(
        "No udev backend available. "
        "Install libudev, or point UDEVTREE_SYSFS at a sysfs tree."
    ) from last_err
