# tests/test_sysfs_backend.py
from __future__ import annotations
import errno
import os
import pytest

from udevtree.backends.sysfs import SysfsBackend
from udevtree.types import STRING_FIELDS, UdevBackend
from conftest import SCSI_DISK


@pytest.fixture
def udev_ptr(sysfs_backend):
    ptr, err = sysfs_backend.udev_new()
    assert err == 0
    return ptr


def test_implements_protocol(sysfs_backend):
    assert isinstance(sysfs_backend, UdevBackend)


def test_every_field_has_a_getter(sysfs_backend, udev_ptr, fake_sysfs):
    node, _ = sysfs_backend.device_new_from_syspath(udev_ptr, str(fake_sysfs / SCSI_DISK))
    for field in STRING_FIELDS:
        sysfs_backend.device_get(node, field)
    with pytest.raises(ValueError):
        sysfs_backend.device_get(node, "bogus")


def test_not_found_signals(sysfs_backend, udev_ptr, fake_sysfs):
    node, _ = sysfs_backend.device_new_from_syspath(
        udev_ptr, str(fake_sysfs / "devices/system/node")
    )
    # subsystem/driver/devnode report ENOENT, the rest "no value, no error"
    assert sysfs_backend.device_get(node, "subsystem") == (None, errno.ENOENT)
    assert sysfs_backend.device_get(node, "driver") == (None, errno.ENOENT)
    assert sysfs_backend.device_get(node, "devnode") == (None, errno.ENOENT)
    assert sysfs_backend.device_get(node, "devtype") == (None, 0)
    assert sysfs_backend.device_get(node, "sysnum") == (None, 0)
    assert sysfs_backend.device_get_devnum(node) == (0, 0)
    assert sysfs_backend.device_get_parent(node) == (None, errno.ENOENT)


def test_sysname_unescapes_bang(sysfs_backend, udev_ptr, fake_sysfs):
    d = fake_sysfs / "devices/virtual/block/cciss!c0d0"
    d.mkdir(parents=True)
    (d / "uevent").write_text("")
    node, _ = sysfs_backend.device_new_from_syspath(udev_ptr, str(d))
    assert sysfs_backend.device_get(node, "sysname") == ("cciss/c0d0", 0)
    assert sysfs_backend.device_get(node, "sysnum") == ("0", 0)


def test_unreadable_uevent_reports_errno(sysfs_backend, udev_ptr, fake_sysfs):
    d = fake_sysfs / "devices/virtual/misc/gone"
    d.mkdir(parents=True)
    (d / "uevent").write_text("MAJOR=10\nMINOR=1\n")
    node, _ = sysfs_backend.device_new_from_syspath(udev_ptr, str(d))
    (d / "uevent").unlink()
    assert sysfs_backend.device_get(node, "devnode") == (None, errno.ENOENT)
    assert sysfs_backend.device_get_devnum(node) == (0, errno.ENOENT)


def test_devnum_from_uevent(sysfs_backend, udev_ptr, fake_sysfs):
    node, _ = sysfs_backend.device_new_from_syspath(udev_ptr, str(fake_sysfs / SCSI_DISK))
    assert sysfs_backend.device_get_devnum(node) == (os.makedev(8, 0), 0)


@pytest.mark.parametrize("uevent", ["MAJOR=x\nMINOR=1\n", "MAJOR=8\nMINOR=\n", "MAJOR=-1\nMINOR=0\n"])
def test_garbled_devnum_reports_einval(sysfs_backend, udev_ptr, fake_sysfs, uevent):
    d = fake_sysfs / "devices/virtual/misc/garbled"
    d.mkdir(parents=True)
    (d / "uevent").write_text(uevent)
    node, _ = sysfs_backend.device_new_from_syspath(udev_ptr, str(d))
    assert sysfs_backend.device_get_devnum(node) == (0, errno.EINVAL)


def test_garbled_devnum_raises_oserror(udev, fake_sysfs):
    from udevtree import Device

    d = fake_sysfs / "devices/virtual/misc/garbled"
    d.mkdir(parents=True)
    (d / "uevent").write_text("MAJOR=x\nMINOR=1\n")
    dev = Device.from_syspath(d)
    with pytest.raises(OSError) as ei:
        dev.devnum
    assert ei.value.errno == errno.EINVAL


def test_new_from_devnum_bad_kind(sysfs_backend, udev_ptr):
    assert sysfs_backend.device_new_from_devnum(udev_ptr, "x", os.makedev(1, 3)) == (
        None,
        errno.EINVAL,
    )


def test_child_owns_cached_parent(sysfs_backend, udev_ptr, fake_sysfs):
    child, _ = sysfs_backend.device_new_from_syspath(
        udev_ptr, str(fake_sysfs / SCSI_DISK / "sda1")
    )
    parent, err = sysfs_backend.device_get_parent(child)
    assert err == 0
    assert parent.refcount == 1
    again, _ = sysfs_backend.device_get_parent(child)
    assert again is parent
    assert parent.refcount == 1

    sysfs_backend.device_unref(child)
    assert child.freed
    assert parent.freed


def test_double_unref_is_detected(sysfs_backend, udev_ptr, fake_sysfs):
    node, _ = sysfs_backend.device_new_from_syspath(
        udev_ptr, str(fake_sysfs / "devices/virtual/mem/null")
    )
    sysfs_backend.device_unref(node)
    with pytest.raises(RuntimeError):
        sysfs_backend.device_unref(node)
    with pytest.raises(RuntimeError):
        sysfs_backend.device_ref(node)


def test_filtered_parent_needs_matching_devtype(sysfs_backend, udev_ptr, fake_sysfs):
    child, _ = sysfs_backend.device_new_from_syspath(
        udev_ptr, str(fake_sysfs / SCSI_DISK / "sda1")
    )
    found, err = sysfs_backend.device_get_parent_with_subsystem_devtype(
        child, "scsi", "scsi_target"
    )
    assert err == 0
    assert found.syspath.name == "target2:0:0"
    assert sysfs_backend.device_get_parent_with_subsystem_devtype(
        child, "scsi", "nope"
    ) == (None, errno.ENOENT)


def test_backend_instances_are_independent(fake_sysfs):
    a = SysfsBackend(str(fake_sysfs))
    b = SysfsBackend(str(fake_sysfs))
    ua, _ = a.udev_new()
    ub, _ = b.udev_new()
    assert ua is not ub
