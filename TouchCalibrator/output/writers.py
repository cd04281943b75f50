"""
Config writers: render a CalibrationResult as an xorg.conf.d snippet or a HAL
policy, ready to be copied into place.

We suppose the previous SwapXY value was 0; there is no way to verify it yet.
"""
from __future__ import annotations

import logging
import re
import subprocess
import sys
from typing import Callable, Optional, TextIO, Tuple

from TouchCalibrator.calibration.models import CalibrationResult, OutputType
from TouchCalibrator.devices.discovery import sysfs_name

logger = logging.getLogger(__name__)

PLACEHOLDER_NAME = "!!Name_Of_TouchScreen!!"
XORG_MIN_VERSION = (1, 8)


class ConfigWriter:
    target_path = ""

    def __init__(self, name_lookup: Callable[[str], Optional[str]] = sysfs_name) -> None:
        self._name_lookup = name_lookup

    def render(self, result: CalibrationResult, product: str) -> str:
        raise NotImplementedError

    def emit(self, result: CalibrationResult, device_name: str, stream: Optional[TextIO] = None) -> bool:
        out = stream if stream is not None else sys.stdout
        product = self._name_lookup(device_name)
        not_sysfs_name = product is None
        if not_sysfs_name:
            product = PLACEHOLDER_NAME

        try:
            out.write("\n\n--> Making the calibration permanent <--\n")
            out.write(f"  copy the snippet below into '{self.target_path}'\n")
            out.write(self.render(result, product))
            if not_sysfs_name:
                out.write(f"\nChange '{product}' to your device's name in the config above.\n")
            out.flush()
        except (OSError, ValueError) as e:
            # ValueError: write to a closed stream
            logger.error("Failed to write %s snippet: %s", self.target_path, e)
            return False
        return True


class XorgConfDWriter(ConfigWriter):
    target_path = "/etc/X11/xorg.conf.d/99-calibration.conf"

    def render(self, result: CalibrationResult, product: str) -> str:
        a = result.axys
        lines = [
            'Section "InputClass"',
            '\tIdentifier\t"calibration"',
            f'\tMatchProduct\t"{product}"',
            f'\tOption\t"MinX"\t"{a.x_min}"',
            f'\tOption\t"MaxX"\t"{a.x_max}"',
            f'\tOption\t"MinY"\t"{a.y_min}"',
            f'\tOption\t"MaxY"\t"{a.y_max}"',
        ]
        if result.swap_xy:
            lines.append(f'\tOption\t"SwapXY"\t"{int(result.swap_xy)}" # unless it was already set to 1')
        lines.append("EndSection")
        return "\n".join(lines) + "\n"


class HalWriter(ConfigWriter):
    target_path = "/etc/hal/fdi/policy/touchscreen.fdi"

    def render(self, result: CalibrationResult, product: str) -> str:
        a = result.axys
        lines = [
            f'<match key="info.product" contains="{product}">',
            f'  <merge key="input.x11_options.minx" type="string">{a.x_min}</merge>',
            f'  <merge key="input.x11_options.maxx" type="string">{a.x_max}</merge>',
            f'  <merge key="input.x11_options.miny" type="string">{a.y_min}</merge>',
            f'  <merge key="input.x11_options.maxy" type="string">{a.y_max}</merge>',
        ]
        if result.swap_xy:
            lines.append(f'  <merge key="input.x11_options.swapxy" type="string">{int(result.swap_xy)}</merge>')
        lines.append("</match>")
        return "\n".join(lines) + "\n"


def xorg_version(banner: str) -> Optional[Tuple[int, ...]]:
    m = re.search(r"X\.Org X Server (\d+)\.(\d+)(?:\.(\d+))?", banner)
    if not m:
        return None
    return tuple(int(g) for g in m.groups() if g is not None)


def has_xorgconfd_support() -> bool:
    """True when the running X server is X.Org 1.8 or newer."""
    try:
        proc = subprocess.run(["Xorg", "-version"], capture_output=True, text=True, timeout=5)
    except (OSError, subprocess.SubprocessError) as e:
        logger.debug("Unable to query the X server version: %s", e)
        return False
    # Xorg prints its banner on stderr
    version = xorg_version(proc.stderr + proc.stdout)
    logger.debug("X.Org server version: %s", version)
    return version is not None and version[:2] >= XORG_MIN_VERSION


class AutoDetectWriter(ConfigWriter):
    """xorg.conf.d when the X server supports it, HAL policy otherwise."""

    def __init__(
        self,
        name_lookup: Callable[[str], Optional[str]] = sysfs_name,
        support_check: Callable[[], bool] = has_xorgconfd_support,
    ) -> None:
        super().__init__(name_lookup)
        self._support_check = support_check

    def choose(self) -> ConfigWriter:
        if self._support_check():
            return XorgConfDWriter(self._name_lookup)
        return HalWriter(self._name_lookup)

    def render(self, result: CalibrationResult, product: str) -> str:
        return self.choose().render(result, product)

    def emit(self, result: CalibrationResult, device_name: str, stream: Optional[TextIO] = None) -> bool:
        return self.choose().emit(result, device_name, stream)


def make_writer(output_type: OutputType | str) -> ConfigWriter:
    kind = OutputType(output_type)
    if kind is OutputType.XORGCONFD:
        return XorgConfDWriter()
    if kind is OutputType.HAL:
        return HalWriter()
    return AutoDetectWriter()
