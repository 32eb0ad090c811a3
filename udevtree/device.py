# udevtree/device.py
"""
Reference-counted handles onto udev device nodes.

A Device wraps exactly one counted reference to a native udev_device and
drops it exactly once, when the handle is garbage collected or close()d.
Nodes are shared: the same native device can sit behind any number of
handles, including parents obtained from children that are long gone.

A single Device is not safe for unsynchronized use from several threads.
Reading from a bound handle that nobody closes is fine, since the native
pointer never changes after binding.
"""

from __future__ import annotations
import errno
import os
import weakref
from typing import Any, Iterator, Optional, Tuple, TypeVar, Union

from .context import get_context
from .errors import UninitializedError, raise_for_errno
from .types import DeviceKind, DeviceNumber, Reading, UdevBackend

D = TypeVar("D", bound="Device")

DevnumLike = Union[DeviceNumber, Tuple[int, int], int]

DEV_T_MAX = (1 << 64) - 1
DEVNUM_PART_MAX = 0xFFFFFFFF


def _is_int(x: object) -> bool:
    return isinstance(x, int) and not isinstance(x, bool)


def _coerce_devnum(number: DevnumLike) -> int:
    if isinstance(number, tuple):
        if len(number) != 2:
            raise ValueError(f"device number must be (major, minor), got {number!r}")
        major, minor = number
        if not (_is_int(major) and _is_int(minor)):
            raise TypeError(f"major and minor must be ints, got {number!r}")
        if not (0 <= major <= DEVNUM_PART_MAX and 0 <= minor <= DEVNUM_PART_MAX):
            raise ValueError(f"major and minor must fit in 32 bits, got {number!r}")
        try:
            return DeviceNumber(major, minor).to_dev()
        except OverflowError as e:
            # os.makedev on older interpreters takes a signed C int
            raise ValueError(f"device number {number!r} out of range") from e
    if _is_int(number):
        if not 0 <= number <= DEV_T_MAX:
            raise ValueError(f"device number must fit in a 64-bit dev_t, got {number!r}")
        return number
    raise TypeError(f"device number must be an int or (major, minor), got {type(number).__name__}")


class Device:
    def __init__(self) -> None:
        self._backend: Optional[UdevBackend] = None
        self._ptr: Any = None
        self._finalizer: Optional[weakref.finalize] = None

    # ----- binding / lifetime -----
    @classmethod
    def _wrap(cls: type[D], backend: UdevBackend, ptr: Any) -> D:
        """
        Build a handle of this class around a reference the caller already
        owns. Subclasses whose __init__ takes arguments override this.
        """
        dev = cls()
        dev._bind(backend, ptr)
        return dev

    def _bind(self, backend: UdevBackend, ptr: Any) -> None:
        if self._finalizer is not None:
            raise RuntimeError("udev device is already initialized")
        self._backend = backend
        self._ptr = ptr
        self._finalizer = weakref.finalize(self, backend.device_unref, ptr)

    def _device(self) -> Any:
        if self._ptr is None:
            raise UninitializedError("uninitialized udev device")
        return self._ptr

    def close(self) -> None:
        """Drop the reference now instead of at garbage collection."""
        if self._finalizer is not None:
            self._finalizer()
        self._ptr = None

    def __enter__(self: D) -> D:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ----- factories -----
    @classmethod
    def from_syspath(cls: type[D], syspath: Union[str, "os.PathLike[str]"]) -> D:
        if not isinstance(syspath, (str, os.PathLike)):
            raise TypeError(f"syspath must be a str or path, got {type(syspath).__name__}")
        path = os.fsdecode(os.fspath(syspath))

        ctx = get_context()
        ptr, err = ctx.backend.device_new_from_syspath(ctx.ptr, path)
        if ptr is None:
            raise_for_errno(err, "udev_device_new_from_syspath")
        return cls._wrap(ctx.backend, ptr)

    from_path = from_syspath

    @classmethod
    def from_device_number(
        cls: type[D], kind: Union[DeviceKind, str], number: DevnumLike
    ) -> D:
        """
        Look a device up by (kind, devnum). `kind` is "b" for block or "c" for
        character devices; anything else is rejected before touching udev.
        """
        try:
            kind = DeviceKind(kind)
        except ValueError:
            raise ValueError(f"type {kind!r} must be 'b' or 'c'") from None
        dev = _coerce_devnum(number)

        ctx = get_context()
        ptr, err = ctx.backend.device_new_from_devnum(ctx.ptr, kind.value, dev)
        if ptr is None:
            raise_for_errno(err, "udev_device_new_from_devnum")
        return cls._wrap(ctx.backend, ptr)

    from_devnum = from_device_number

    # ----- scalar attributes -----
    def _get_string(self, field: str) -> Optional[str]:
        device = self._device()
        value, err = self._backend.device_get(device, field)
        if value is None:
            # ENOENT and a clear errno both just mean "not set"
            if err and err != errno.ENOENT:
                raise_for_errno(err, f"udev_device_get_{field}")
            return None
        return value

    @property
    def syspath(self) -> Optional[str]:
        return self._get_string("syspath")

    @property
    def sysname(self) -> Optional[str]:
        return self._get_string("sysname")

    @property
    def sysnum(self) -> Optional[str]:
        return self._get_string("sysnum")

    @property
    def devpath(self) -> Optional[str]:
        return self._get_string("devpath")

    @property
    def devnode(self) -> Optional[str]:
        return self._get_string("devnode")

    @property
    def devtype(self) -> Optional[str]:
        return self._get_string("devtype")

    @property
    def subsystem(self) -> Optional[str]:
        return self._get_string("subsystem")

    @property
    def driver(self) -> Optional[str]:
        return self._get_string("driver")

    path = syspath
    name = sysname

    @property
    def devnum(self) -> Optional[DeviceNumber]:
        """
        The device number, or None when none is assigned. udev reports
        "unassigned" as 0:0, so a genuine 0:0 also reads as None.
        """
        device = self._device()
        value, err = self._backend.device_get_devnum(device)
        num = DeviceNumber.from_dev(value)
        if num.major == 0 and num.minor == 0:
            if err:
                raise_for_errno(err, "udev_device_get_devnum")
            return None
        return num

    @property
    def major_number(self) -> Optional[int]:
        num = self.devnum
        return None if num is None else num.major

    @property
    def minor_number(self) -> Optional[int]:
        num = self.devnum
        return None if num is None else num.minor

    # ----- traversal -----
    def _adopt(self: D, reading: Reading, operation: str) -> Optional[D]:
        parent, err = reading
        if parent is None:
            if err and err != errno.ENOENT:
                raise_for_errno(err, operation)
            return None

        # udev_device_get_parent() returns a node owned by this device. Take a
        # reference of our own so the new handle survives this one.
        backend = self._backend
        backend.device_ref(parent)
        try:
            return type(self)._wrap(backend, parent)
        except BaseException:
            backend.device_unref(parent)
            raise

    def parent(self: D) -> Optional[D]:
        device = self._device()
        return self._adopt(
            self._backend.device_get_parent(device), "udev_device_get_parent"
        )

    def parent_with_subsystem_devtype(
        self: D, subsystem: str, devtype: Optional[str] = None
    ) -> Optional[D]:
        """
        Closest ancestor in `subsystem`, optionally also of `devtype`.
        """
        if not isinstance(subsystem, str):
            raise TypeError(f"subsystem must be a str, got {type(subsystem).__name__}")
        if not subsystem:
            raise ValueError("subsystem must not be empty")
        if devtype is not None:
            if not isinstance(devtype, str):
                raise TypeError(f"devtype must be a str, got {type(devtype).__name__}")
            if not devtype:
                raise ValueError("devtype must not be empty; pass None to match any")

        device = self._device()
        return self._adopt(
            self._backend.device_get_parent_with_subsystem_devtype(
                device, subsystem, devtype
            ),
            "udev_device_get_parent_with_subsystem_devtype",
        )

    def ancestors(self: D) -> Iterator[D]:
        """Yield parent(), then its parent, up to the root of the tree."""
        cur = self.parent()
        while cur is not None:
            yield cur
            cur = cur.parent()

    def __repr__(self) -> str:
        if self._ptr is None:
            return f"<{type(self).__name__} (uninitialized)>"
        return f"<{type(self).__name__} {self.syspath!r}>"
