# tests/conftest.py
from __future__ import annotations
from pathlib import Path
from typing import Optional
import pytest

from udevtree import context
from udevtree.backends.sysfs import SysfsBackend

SCSI_DISK = "devices/pci0000:00/0000:00:10.0/host2/target2:0:0/2:0:0:0/block/sda"


def make_device_dir(
    root: Path,
    rel: str,
    *,
    uevent: str = "",
    subsystem: Optional[str] = None,
    driver: Optional[str] = None,
) -> Path:
    """
    Create <root>/<rel> with a uevent file and, optionally, the subsystem and
    driver symlinks sysfs puts next to it.
    """
    d = root / rel
    d.mkdir(parents=True, exist_ok=True)
    (d / "uevent").write_text(uevent, encoding="utf-8")
    if subsystem:
        target = root / subsystem
        target.mkdir(parents=True, exist_ok=True)
        (d / "subsystem").symlink_to(target, target_is_directory=True)
    if driver:
        target = root / driver
        target.mkdir(parents=True, exist_ok=True)
        (d / "driver").symlink_to(target, target_is_directory=True)
    return d


def link_devnum(root: Path, kind: str, devnum: str, dev_dir: Path) -> None:
    d = root / "dev" / kind
    d.mkdir(parents=True, exist_ok=True)
    (d / devnum).symlink_to(dev_dir, target_is_directory=True)


@pytest.fixture
def fake_sysfs(tmp_path: Path) -> Path:
    """
    Build a fake /sys with enough of the real layout to walk parents:
    cpu0 under a cpu root, a virtual mem/null char device with no parent,
    and a SCSI disk + partition under a PCI controller.
    """
    root = (tmp_path / "sys").resolve()
    root.mkdir()

    make_device_dir(root, "devices/system/cpu")
    make_device_dir(
        root,
        "devices/system/cpu/cpu0",
        subsystem="bus/cpu",
        driver="bus/cpu/drivers/processor",
    )
    make_device_dir(root, "devices/system/node")

    null = make_device_dir(
        root,
        "devices/virtual/mem/null",
        uevent="MAJOR=1\nMINOR=3\nDEVNAME=null\nDEVMODE=0666\n",
        subsystem="class/mem",
    )
    (root / "class" / "mem" / "null").symlink_to(null, target_is_directory=True)
    link_devnum(root, "char", "1:3", null)

    make_device_dir(root, "devices/pci0000:00")
    make_device_dir(
        root,
        "devices/pci0000:00/0000:00:10.0",
        uevent="DRIVER=mptspi\nPCI_SLOT_NAME=0000:00:10.0\n",
        subsystem="bus/pci",
        driver="bus/pci/drivers/mptspi",
    )
    make_device_dir(
        root,
        "devices/pci0000:00/0000:00:10.0/host2",
        uevent="DEVTYPE=scsi_host\n",
        subsystem="bus/scsi",
    )
    make_device_dir(
        root,
        "devices/pci0000:00/0000:00:10.0/host2/target2:0:0",
        uevent="DEVTYPE=scsi_target\n",
        subsystem="bus/scsi",
    )
    make_device_dir(
        root,
        "devices/pci0000:00/0000:00:10.0/host2/target2:0:0/2:0:0:0",
        uevent="DEVTYPE=scsi_device\nDRIVER=sd\n",
        subsystem="bus/scsi",
        driver="bus/scsi/drivers/sd",
    )
    sda = make_device_dir(
        root,
        SCSI_DISK,
        uevent="MAJOR=8\nMINOR=0\nDEVNAME=sda\nDEVTYPE=disk\n",
        subsystem="class/block",
    )
    sda1 = make_device_dir(
        root,
        SCSI_DISK + "/sda1",
        uevent="MAJOR=8\nMINOR=1\nDEVNAME=sda1\nDEVTYPE=partition\nPARTN=1\n",
        subsystem="class/block",
    )
    link_devnum(root, "block", "8:0", sda)
    link_devnum(root, "block", "8:1", sda1)

    return root


@pytest.fixture
def fresh_context(monkeypatch):
    """Start each test without a process-wide context; restore afterwards."""
    monkeypatch.setattr(context, "_context", None)
    monkeypatch.delenv("UDEVTREE_BACKEND", raising=False)
    monkeypatch.delenv("UDEVTREE_SYSFS", raising=False)
    monkeypatch.delenv("UDEVTREE_LIBUDEV", raising=False)
    monkeypatch.delenv("UDEVTREE_NO_LIBUDEV", raising=False)


@pytest.fixture
def sysfs_backend(fake_sysfs: Path) -> SysfsBackend:
    return SysfsBackend(str(fake_sysfs))


@pytest.fixture
def udev(fresh_context, sysfs_backend):
    return context.init_context(sysfs_backend)
