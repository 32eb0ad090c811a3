#!/usr/bin/python
#
# Python udevtree library
# libudev backend (ctypes)
#
# (c) 2025 Steven Noonan
# Licensed under the MIT license
#

from __future__ import annotations
import ctypes
import ctypes.util
import logging
import os
from typing import Any, Optional

from ..types import STRING_FIELDS, Reading

logger = logging.getLogger(__name__)

LIBUDEV_DEFAULT = "libudev.so.1"

# glibc dev_t is 64-bit on every Linux ABI we care about
dev_t = ctypes.c_uint64
udev_p = ctypes.c_void_p
udev_device_p = ctypes.c_void_p


def _load(name: Optional[str]) -> ctypes.CDLL:
    candidates = [name] if name else [LIBUDEV_DEFAULT, ctypes.util.find_library("udev")]
    last_err: Optional[OSError] = None
    for cand in candidates:
        if not cand:
            continue
        try:
            return ctypes.CDLL(cand, use_errno=True)
        except OSError as e:
            last_err = e
    raise OSError(f"cannot load libudev ({', '.join(c for c in candidates if c)})") from last_err


class LibudevBackend:
    """
    Thin ctypes binding over libudev.so.1.

    Every lookup clears the ctypes errno slot, makes exactly one call and
    reads errno back before anything else runs, returning both as a Reading.
    """

    name = "libudev"

    def __init__(self, library: Optional[str] = None):
        self.lib = _load(library)
        self._setup_function_signatures()
        logger.debug("loaded %s", self.lib._name)

    def _setup_function_signatures(self) -> None:
        lib = self.lib

        # struct udev *udev_new(void)
        lib.udev_new.argtypes = []
        lib.udev_new.restype = udev_p

        # struct udev *udev_unref(struct udev *udev)
        lib.udev_unref.argtypes = [udev_p]
        lib.udev_unref.restype = udev_p

        # struct udev_device *udev_device_new_from_syspath(struct udev *, const char *)
        lib.udev_device_new_from_syspath.argtypes = [udev_p, ctypes.c_char_p]
        lib.udev_device_new_from_syspath.restype = udev_device_p

        # struct udev_device *udev_device_new_from_devnum(struct udev *, char, dev_t)
        lib.udev_device_new_from_devnum.argtypes = [udev_p, ctypes.c_char, dev_t]
        lib.udev_device_new_from_devnum.restype = udev_device_p

        # struct udev_device *udev_device_{ref,unref}(struct udev_device *)
        lib.udev_device_ref.argtypes = [udev_device_p]
        lib.udev_device_ref.restype = udev_device_p
        lib.udev_device_unref.argtypes = [udev_device_p]
        lib.udev_device_unref.restype = udev_device_p

        # const char *udev_device_get_<field>(struct udev_device *)
        for field in STRING_FIELDS:
            fn = getattr(lib, f"udev_device_get_{field}")
            fn.argtypes = [udev_device_p]
            fn.restype = ctypes.c_char_p

        # dev_t udev_device_get_devnum(struct udev_device *)
        lib.udev_device_get_devnum.argtypes = [udev_device_p]
        lib.udev_device_get_devnum.restype = dev_t

        # struct udev_device *udev_device_get_parent(struct udev_device *)
        lib.udev_device_get_parent.argtypes = [udev_device_p]
        lib.udev_device_get_parent.restype = udev_device_p

        # struct udev_device *udev_device_get_parent_with_subsystem_devtype(
        #     struct udev_device *, const char *subsystem, const char *devtype)
        fn = lib.udev_device_get_parent_with_subsystem_devtype
        fn.argtypes = [udev_device_p, ctypes.c_char_p, ctypes.c_char_p]
        fn.restype = udev_device_p

    @staticmethod
    def _call(fn: Any, *args: Any) -> Reading:
        ctypes.set_errno(0)
        value = fn(*args)
        return Reading(value, ctypes.get_errno())

    # ----- context -----
    def udev_new(self) -> Reading:
        return self._call(self.lib.udev_new)

    def udev_unref(self, udev: Any) -> None:
        self.lib.udev_unref(udev)

    # ----- device lifetime -----
    def device_new_from_syspath(self, udev: Any, syspath: str) -> Reading:
        return self._call(
            self.lib.udev_device_new_from_syspath, udev, os.fsencode(syspath)
        )

    def device_new_from_devnum(self, udev: Any, kind: str, devnum: int) -> Reading:
        return self._call(
            self.lib.udev_device_new_from_devnum, udev, kind.encode("ascii"), devnum
        )

    def device_ref(self, device: Any) -> Any:
        return self.lib.udev_device_ref(device)

    def device_unref(self, device: Any) -> None:
        self.lib.udev_device_unref(device)

    # ----- queries -----
    def device_get(self, device: Any, field: str) -> Reading:
        if field not in STRING_FIELDS:
            raise ValueError(f"unknown device field: {field!r}")
        value, err = self._call(getattr(self.lib, f"udev_device_get_{field}"), device)
        # c_char_p results are already copied out of libudev-owned memory
        return Reading(os.fsdecode(value) if value is not None else None, err)

    def device_get_devnum(self, device: Any) -> Reading:
        return self._call(self.lib.udev_device_get_devnum, device)

    def device_get_parent(self, device: Any) -> Reading:
        return self._call(self.lib.udev_device_get_parent, device)

    def device_get_parent_with_subsystem_devtype(
        self, device: Any, subsystem: str, devtype: Optional[str]
    ) -> Reading:
        return self._call(
            self.lib.udev_device_get_parent_with_subsystem_devtype,
            device,
            subsystem.encode("utf-8"),
            devtype.encode("utf-8") if devtype is not None else None,
        )
