"""
Find a calibratable touchscreen device through evdev.

A device is calibratable when it reports absolute X and Y axes that carry a
real range (an axis reporting min == max == -1 is ignored).
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence

try:
    from evdev import InputDevice, ecodes, list_devices  # type: ignore
except Exception:  # pragma: no cover
    InputDevice = None  # type: ignore
    ecodes = None  # type: ignore
    list_devices = None  # type: ignore

from TouchCalibrator.calibration.models import AxisRange

logger = logging.getLogger(__name__)

SYSFS_INPUT = "/sys/class/input"
SYSFS_DEVNAME = "device/name"


class DeviceNotFoundError(LookupError):
    pass


@dataclass
class DeviceInfo:
    path: str  # /dev/input/eventN
    name: str
    axys: AxisRange


def _matches(pre_device: str, path: str, name: str) -> bool:
    if pre_device.isdigit():
        return os.path.basename(path) == f"event{int(pre_device)}"
    return pre_device == path or pre_device == name


def _axis_range(caps) -> Optional[AxisRange]:
    absinfo = dict(caps.get(ecodes.EV_ABS, []))
    ax = absinfo.get(ecodes.ABS_X)
    ay = absinfo.get(ecodes.ABS_Y)
    if ax is None or ay is None:
        return None
    if (ax.min == -1 and ax.max == -1) or (ay.min == -1 and ay.max == -1):
        return None
    return AxisRange(x_min=int(ax.min), x_max=int(ax.max), y_min=int(ay.min), y_max=int(ay.max))


def find_devices(pre_device: Optional[str] = None) -> List[DeviceInfo]:
    """Return every calibratable device, optionally restricted to pre_device
    (an event path, an event number or an exact device name)."""
    if list_devices is None:
        raise RuntimeError("evdev must be installed for device discovery.")
    found: List[DeviceInfo] = []
    for path in list_devices():
        try:
            dev = InputDevice(path)
        except OSError as e:
            logger.debug("Skipping '%s': %s", path, e)
            continue
        try:
            if pre_device is not None and not _matches(pre_device, dev.path, dev.name):
                continue
            caps = dev.capabilities(absinfo=True)
            if ecodes.EV_ABS not in caps:
                logger.debug("Skipping device '%s' %s, does not report Absolute events.", dev.name, dev.path)
                continue
            axys = _axis_range(caps)
            if axys is None:
                logger.debug("Skipping device '%s' %s, does not have two calibratable axes.", dev.name, dev.path)
                continue
            found.append(DeviceInfo(path=dev.path, name=dev.name, axys=axys))
        finally:
            dev.close()
    return found


def select_device(devices: Sequence[DeviceInfo], pre_device: Optional[str] = None) -> DeviceInfo:
    if not devices:
        if pre_device is None:
            raise DeviceNotFoundError("No calibratable devices found.")
        raise DeviceNotFoundError(
            f'Device "{pre_device}" not found; use --list to list the calibratable input devices.'
        )
    chosen = devices[-1]
    if len(devices) > 1:
        logger.warning(
            "multiple calibratable devices found, calibrating last one (%s); use --device to select another one.",
            chosen.name,
        )
    logger.debug("Selected device: %s", chosen.name)
    return chosen


def fake_device(name: str = "Fake_device", axys: Sequence[int] = (0, 1000, 0, 1000)) -> DeviceInfo:
    logger.debug("Faking device: %s", name)
    return DeviceInfo(path="", name=name, axys=AxisRange(*[int(v) for v in axys]))


def apply_precalib(axys: AxisRange, pre: Sequence[int]) -> AxisRange:
    """Override the axis values given on the command line; -1 keeps the device value."""
    current = list(axys.as_tuple())
    for i, v in enumerate(pre[:4]):
        if int(v) != -1:
            current[i] = int(v)
    out = AxisRange(*current)
    logger.debug("Setting precalibration: %i, %i, %i, %i", *out.as_tuple())
    return out


def sysfs_name(name: str, root: str = SYSFS_INPUT) -> Optional[str]:
    """Return name if it matches the kernel name of one of the event devices."""
    for name_path in sorted(Path(root).glob(f"event*/{SYSFS_DEVNAME}")):
        try:
            devname = name_path.read_text(encoding="utf-8", errors="replace").strip()
        except OSError:
            continue
        if devname == name:
            logger.debug("Found that '%s' is a sysfs name.", name)
            return name
    logger.debug("Name '%s' does not match any in '%s/event*/%s'", name, root, SYSFS_DEVNAME)
    return None
