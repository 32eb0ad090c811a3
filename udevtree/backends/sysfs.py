#!/usr/bin/python
#
# Python udevtree library
# Pure-Python sysfs backend, mirroring libudev's device semantics
#
# (c) 2025 Steven Noonan
# Licensed under the MIT license
#

from __future__ import annotations
import errno
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Optional

from ..types import Reading

SYSFS_ROOT_DEFAULT = "/sys"

_SYSNUM_RE = re.compile(r"(\d+)$")


@dataclass(eq=False)
class SysfsUdev:
    root: Path
    refcount: int = 1


@dataclass(eq=False)
class SysfsNode:
    """
    One device node. `refcount` starts at 1 for the creator; a node handed
    out by get_parent is owned by the child that cached it.
    """

    udev: SysfsUdev
    syspath: Path
    refcount: int = 1
    freed: bool = False
    _parent: Optional["SysfsNode"] = field(default=None, repr=False)


def _read_uevent(p: Path) -> Dict[str, str]:
    out: Dict[str, str] = {}
    for line in p.read_text(encoding="utf-8", errors="replace").splitlines():
        key, sep, value = line.partition("=")
        if sep:
            out[key.strip()] = value.strip()
    return out


class SysfsBackend:
    """
    Answers the libudev device API straight from a sysfs tree.

    Only reference counting is modeled in memory; every attribute is read
    from the filesystem again on each call.
    """

    name = "sysfs"

    def __init__(self, root: str = SYSFS_ROOT_DEFAULT):
        self.root = Path(root)
        self._getters: Dict[str, Callable[[SysfsNode], Reading]] = {
            "syspath": self._get_syspath,
            "sysname": self._get_sysname,
            "sysnum": self._get_sysnum,
            "devpath": self._get_devpath,
            "devnode": self._get_devnode,
            "devtype": self._get_devtype,
            "subsystem": lambda n: self._get_link_name(n, "subsystem"),
            "driver": lambda n: self._get_link_name(n, "driver"),
        }

    # ----- context -----
    def udev_new(self) -> Reading:
        if not self.root.is_dir():
            return Reading(None, errno.ENOENT)
        return Reading(SysfsUdev(self.root.resolve()), 0)

    def udev_unref(self, udev: SysfsUdev) -> None:
        udev.refcount -= 1

    # ----- device lifetime -----
    def device_new_from_syspath(self, udev: SysfsUdev, syspath: str) -> Reading:
        real = Path(os.path.realpath(syspath))
        try:
            real.relative_to(udev.root)
        except ValueError:
            return Reading(None, errno.EINVAL)
        if not (real / "uevent").is_file():
            return Reading(None, errno.ENODEV)
        return Reading(SysfsNode(udev=udev, syspath=real), 0)

    def device_new_from_devnum(self, udev: SysfsUdev, kind: str, devnum: int) -> Reading:
        if kind == "b":
            sub = "block"
        elif kind == "c":
            sub = "char"
        else:
            return Reading(None, errno.EINVAL)
        link = udev.root / "dev" / sub / f"{os.major(devnum)}:{os.minor(devnum)}"
        if not link.exists():
            return Reading(None, errno.ENOENT)
        return self.device_new_from_syspath(udev, str(link))

    def device_ref(self, node: SysfsNode) -> SysfsNode:
        if node.freed:
            raise RuntimeError(f"ref of freed node {node.syspath}")
        node.refcount += 1
        return node

    def device_unref(self, node: SysfsNode) -> None:
        if node.freed:
            raise RuntimeError(f"unref of freed node {node.syspath}")
        node.refcount -= 1
        if node.refcount == 0:
            node.freed = True
            # the cached parent reference belongs to this node
            if node._parent is not None:
                parent, node._parent = node._parent, None
                self.device_unref(parent)

    # ----- queries -----
    def device_get(self, node: SysfsNode, field: str) -> Reading:
        try:
            getter = self._getters[field]
        except KeyError:
            raise ValueError(f"unknown device field: {field!r}") from None
        try:
            return getter(node)
        except OSError as e:
            return Reading(None, e.errno or errno.EIO)

    def _get_syspath(self, node: SysfsNode) -> Reading:
        return Reading(str(node.syspath), 0)

    def _get_sysname(self, node: SysfsNode) -> Reading:
        return Reading(node.syspath.name.replace("!", "/"), 0)

    def _get_sysnum(self, node: SysfsNode) -> Reading:
        m = _SYSNUM_RE.search(node.syspath.name)
        return Reading(m.group(1) if m else None, 0)

    def _get_devpath(self, node: SysfsNode) -> Reading:
        rel = node.syspath.relative_to(node.udev.root)
        return Reading("/" + rel.as_posix(), 0)

    def _get_devnode(self, node: SysfsNode) -> Reading:
        name = _read_uevent(node.syspath / "uevent").get("DEVNAME")
        if not name:
            return Reading(None, errno.ENOENT)
        return Reading(name if name.startswith("/") else f"/dev/{name}", 0)

    def _get_devtype(self, node: SysfsNode) -> Reading:
        return Reading(_read_uevent(node.syspath / "uevent").get("DEVTYPE"), 0)

    def _get_link_name(self, node: SysfsNode, link: str) -> Reading:
        p = node.syspath / link
        if not p.is_symlink():
            return Reading(None, errno.ENOENT)
        return Reading(Path(os.readlink(p)).name, 0)

    def device_get_devnum(self, node: SysfsNode) -> Reading:
        try:
            ev = _read_uevent(node.syspath / "uevent")
        except OSError as e:
            return Reading(0, e.errno or errno.EIO)
        if "MAJOR" not in ev or "MINOR" not in ev:
            return Reading(0, 0)
        try:
            return Reading(os.makedev(int(ev["MAJOR"]), int(ev["MINOR"])), 0)
        except (ValueError, OverflowError):
            return Reading(0, errno.EINVAL)

    def device_get_parent(self, node: SysfsNode) -> Reading:
        if node._parent is not None:
            return Reading(node._parent, 0)

        top = node.udev.root / "devices"
        cur = node.syspath.parent
        while cur != top and top in cur.parents:
            if (cur / "uevent").is_file():
                node._parent = SysfsNode(udev=node.udev, syspath=cur)
                return Reading(node._parent, 0)
            cur = cur.parent
        return Reading(None, errno.ENOENT)

    def device_get_parent_with_subsystem_devtype(
        self, node: SysfsNode, subsystem: str, devtype: Optional[str]
    ) -> Reading:
        cur = node
        while True:
            parent, err = self.device_get_parent(cur)
            if parent is None:
                return Reading(None, err)
            sub, _ = self._get_link_name(parent, "subsystem")
            if sub == subsystem:
                if devtype is None:
                    return Reading(parent, 0)
                try:
                    if self._get_devtype(parent).value == devtype:
                        return Reading(parent, 0)
                except OSError as e:
                    return Reading(None, e.errno or errno.EIO)
            cur = parent
