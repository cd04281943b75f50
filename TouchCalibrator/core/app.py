from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional, Sequence, TextIO

from TouchCalibrator.calibration.calibrator import Calibrator
from TouchCalibrator.calibration.models import CalibrationResult, OutputType
from TouchCalibrator.core.settings import SettingsManager
from TouchCalibrator.devices.discovery import (
    DeviceInfo,
    DeviceNotFoundError,
    apply_precalib,
    fake_device,
    find_devices,
    select_device,
)
from TouchCalibrator.output.writers import make_writer

logger = logging.getLogger(__name__)

__version__ = "0.7.5"


def build_parser(settings: SettingsManager) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="touch-calibrator",
        description=f"Four-point touchscreen calibrator, v{__version__}",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="print debug messages during the process")
    parser.add_argument("--list", action="store_true", help="list calibratable input devices and quit")
    parser.add_argument("--device", default=None, help="select a specific device to calibrate (name, path or event number)")
    parser.add_argument(
        "--precalib", nargs="+", type=int, metavar="N", default=None,
        help="manually provide the current calibration setting: <minx> <maxx> <miny> <maxy> (-1 keeps a value)",
    )
    parser.add_argument(
        "--misclick", type=int, default=settings.threshold_misclick(),
        help=f"set the misclick threshold (0=off, default: {settings.threshold_misclick()} pixels)",
    )
    parser.add_argument(
        "--doubleclick", type=int, default=settings.threshold_doubleclick(),
        help=f"set the doubleclick threshold (0=off, default: {settings.threshold_doubleclick()} pixels)",
    )
    parser.add_argument(
        "--output-type", choices=[t.value for t in OutputType], default=settings.output_type(),
        help="type of config to output (default: %(default)s)",
    )
    parser.add_argument("--fake", action="store_true", help="emulate a fake device (for testing purposes)")
    parser.add_argument("--geometry", default=settings.geometry(), help="manually provide the geometry <w>x<h> for the calibration window")
    parser.add_argument("--timeout", type=int, default=settings.timeout_ms(), help="milliseconds without a click before giving up")
    parser.add_argument("--settings", default=None, help="path of an alternative settings.json")
    return parser


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    argv = list(sys.argv[1:] if argv is None else argv)
    # settings path must be known before defaults are read
    pre = argparse.ArgumentParser(add_help=False)
    pre.add_argument("--settings", default=None)
    known, _ = pre.parse_known_args(argv)
    settings = SettingsManager(known.settings)
    args = build_parser(settings).parse_args(argv)
    args.settings_manager = settings
    return args


def print_devices(pre_device: Optional[str] = None, stream: Optional[TextIO] = None) -> int:
    stream = stream or sys.stdout
    devices = find_devices(pre_device)
    if not devices:
        stream.write("No calibratable devices found.\n")
    for dev in devices:
        stream.write(f'Device "{dev.name}" path={dev.path}\n')
    return 0


def choose_device(args: argparse.Namespace) -> DeviceInfo:
    settings: SettingsManager = args.settings_manager
    if args.fake:
        device = fake_device(settings.fake_device_name(), settings.fake_device_axys())
    else:
        device = select_device(find_devices(args.device), args.device)
    if args.precalib:
        device.axys = apply_precalib(device.axys, args.precalib)
    return device


def build_calibrator(args: argparse.Namespace, device: DeviceInfo, stream: Optional[TextIO] = None) -> Calibrator:
    stream = stream or sys.stdout
    calibrator = Calibrator(
        old_axys=device.axys,
        threshold_misclick=args.misclick,
        threshold_doubleclick=args.doubleclick,
        verbose=args.verbose,
        device_name=device.name,
        geometry=args.geometry,
    )
    a = device.axys
    stream.write(f'Calibrating standard Xorg driver "{device.name}"\n')
    stream.write(
        f"\tcurrent calibration values: min_x={a.x_min}, max_x={a.x_max} and min_y={a.y_min}, max_y={a.y_max}\n"
    )
    stream.write(
        "\tIf these values are estimated wrong, either supply it manually with the --precalib option, "
        "or run the 'get_precalib.sh' script to automatically get it (through HAL).\n"
    )
    return calibrator


def write_result(result: CalibrationResult, calibrator: Calibrator, output_type: str, stream: Optional[TextIO] = None) -> bool:
    writer = make_writer(output_type)
    return writer.emit(result, calibrator.device_name, stream)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
    )

    if args.list:
        try:
            return print_devices(args.device)
        except RuntimeError as e:
            logger.error("%s", e)
            return 1

    try:
        device = choose_device(args)
    except (DeviceNotFoundError, RuntimeError) as e:
        logger.error("%s", e)
        return 1

    calibrator = build_calibrator(args, device)

    try:
        from TouchCalibrator.ui.calibration_ui import run_gui
    except ImportError as e:  # pragma: no cover
        logger.error("PyQt6 is not installed. Please install dependencies. (%s)", e)
        return 1

    result = run_gui(calibrator, timeout_ms=args.timeout)
    if result is None:
        # aborted or timed out; nothing to save
        return 0

    if not write_result(result, calibrator, args.output_type):
        logger.error("unable to apply or save configuration values")
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
