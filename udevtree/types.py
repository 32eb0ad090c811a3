# udevtree/types.py
from __future__ import annotations
import os
from enum import Enum
from typing import Any, NamedTuple, Optional, Protocol, runtime_checkable

# Scalar fields every backend answers through device_get(); the names match
# the libudev udev_device_get_<field> accessors.
STRING_FIELDS = (
    "syspath",
    "sysname",
    "sysnum",
    "devpath",
    "devnode",
    "devtype",
    "subsystem",
    "driver",
)


class Reading(NamedTuple):
    """
    Return value of one native call, paired with the errno captured right
    after that call. `value` is None when the native side returned NULL.
    """

    value: Any
    errno: int = 0


class DeviceKind(str, Enum):
    BLOCK = "b"
    CHAR = "c"

    @classmethod
    def _missing_(cls, value: object) -> Optional["DeviceKind"]:
        if isinstance(value, str):
            aliases = {"block": cls.BLOCK, "char": cls.CHAR, "character": cls.CHAR}
            return aliases.get(value.lower())
        return None


class DeviceNumber(NamedTuple):
    major: int
    minor: int

    @classmethod
    def from_dev(cls, dev: int) -> "DeviceNumber":
        return cls(os.major(dev), os.minor(dev))

    def to_dev(self) -> int:
        return os.makedev(self.major, self.minor)

    def __str__(self) -> str:
        return f"{self.major}:{self.minor}"


@runtime_checkable
class UdevBackend(Protocol):
    """
    The native surface the core talks to. Pointers are opaque: a ctypes
    c_void_p for libudev, a SysfsNode for the sysfs emulation.

    Lookups never raise for OS-level failures; they hand back a Reading and
    leave interpretation to the caller.
    """

    name: str

    def udev_new(self) -> Reading: ...

    def udev_unref(self, udev: Any) -> None: ...

    def device_new_from_syspath(self, udev: Any, syspath: str) -> Reading: ...

    def device_new_from_devnum(self, udev: Any, kind: str, devnum: int) -> Reading: ...

    def device_ref(self, device: Any) -> Any: ...

    def device_unref(self, device: Any) -> None: ...

    def device_get(self, device: Any, field: str) -> Reading: ...

    def device_get_devnum(self, device: Any) -> Reading: ...

    def device_get_parent(self, device: Any) -> Reading: ...

    def device_get_parent_with_subsystem_devtype(
        self, device: Any, subsystem: str, devtype: Optional[str]
    ) -> Reading: ...
