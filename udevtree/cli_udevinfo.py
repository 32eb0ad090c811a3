#!/usr/bin/env python3
# -*- coding: utf-8 -*-
import argparse
import logging
from dataclasses import dataclass
from typing import List, Optional
import udevtree
from udevtree.backends import discover_backend


@dataclass
class ProgramArgs:
    path: Optional[str]
    devnum: Optional[str] = None
    kind: str = "c"
    backend: Optional[str] = None
    sysfs_path: Optional[str] = None
    attribute_walk: bool = False
    debug: bool = False


def parse_devnum(s: str) -> udevtree.DeviceNumber:
    major, sep, minor = s.partition(":")
    if not sep:
        raise ValueError(f"device number must look like MAJOR:MINOR, got {s!r}")
    return udevtree.DeviceNumber(int(major, 10), int(minor, 10))


def format_record(device: udevtree.Device) -> List[str]:
    lines = [f"P: {device.devpath}", f"M: {device.sysname}"]
    if device.sysnum is not None:
        lines.append(f"R: {device.sysnum}")
    subsystem = device.subsystem
    if subsystem is not None:
        lines.append(f"U: {subsystem}")
    if device.devtype is not None:
        lines.append(f"T: {device.devtype}")
    num = device.devnum
    if num is not None:
        kind = "b" if subsystem == "block" else "c"
        lines.append(f"D: {kind} {num}")
    devnode = device.devnode
    if devnode is not None:
        lines.append(f"N: {devnode[len('/dev/'):] if devnode.startswith('/dev/') else devnode}")
    if device.driver is not None:
        lines.append(f"V: {device.driver}")
    return lines


def format_walk_entry(device: udevtree.Device, parent: bool) -> List[str]:
    # udev rule keys: the device itself matches KERNEL=, ancestors KERNELS=
    s = "S" if parent else ""
    what = "parent device" if parent else "device"
    return [
        f"  looking at {what} '{device.devpath}':",
        f'    KERNEL{s}=="{device.sysname or ""}"',
        f'    SUBSYSTEM{s}=="{device.subsystem or ""}"',
        f'    DRIVER{s}=="{device.driver or ""}"',
        "",
    ]


def run(args: ProgramArgs) -> None:
    if args.backend or args.sysfs_path:
        # a sysfs root on its own implies the sysfs backend
        name = args.backend or "sysfs"
        udevtree.init_context(discover_backend(name, sysfs_root=args.sysfs_path))

    if args.devnum is not None:
        device = udevtree.Device.from_device_number(args.kind, parse_devnum(args.devnum))
    elif args.path is not None:
        device = udevtree.Device.from_syspath(args.path)
    else:
        raise ValueError("need a syspath or --devnum")

    out_lines = format_record(device)

    if args.attribute_walk:
        out_lines.append("")
        out_lines.extend(format_walk_entry(device, parent=False))
        for ancestor in device.ancestors():
            out_lines.extend(format_walk_entry(ancestor, parent=True))

    for line in out_lines:
        print(line)


def main() -> None:  # pragma: no cover
    ap = argparse.ArgumentParser(
        description="Minimal `udevadm info` clone on top of udevtree"
    )
    ap.add_argument("path", nargs="?", default=None, help="device syspath")
    ap.add_argument("--devnum", default=None, metavar="MAJ:MIN", help="look up by device number")
    ap.add_argument(
        "--type", dest="kind", choices=("b", "c"), default="c", help="devnum kind: block or char"
    )
    ap.add_argument("--backend", default=None, choices=("libudev", "sysfs"))
    ap.add_argument("--sysfs", dest="sysfs_path", default=None, help="sysfs root for the sysfs backend")
    ap.add_argument(
        "-a", "--attribute-walk", action="store_true", help="print the device and all its parents"
    )
    ap.add_argument("--debug", action="store_true")
    args = ProgramArgs(**vars(ap.parse_args()))
    if args.debug:
        logging.basicConfig(level=logging.DEBUG)
    run(args)


if __name__ == "__main__":  # pragma: no cover
    main()
