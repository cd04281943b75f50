import io
import json

from TouchCalibrator.calibration.models import AxisRange, CalibrationResult, corner_targets
from TouchCalibrator.core import app
from TouchCalibrator.devices.discovery import DeviceInfo
from TouchCalibrator.ui import calibration_ui
from TouchCalibrator.ui.calibration_ui import parse_geometry


def args_for(tmp_path, *argv):
    return app.parse_args(["--settings", str(tmp_path / "settings.json"), *argv])


def test_cli_defaults_come_from_settings(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"thresholds": {"misclick": 30, "doubleclick": 3}}), encoding="utf-8")
    args = app.parse_args(["--settings", str(path)])
    assert args.misclick == 30
    assert args.doubleclick == 3
    assert args.output_type == "auto"


def test_fake_device_with_precalib(tmp_path):
    args = args_for(tmp_path, "--fake", "--precalib", "50", "-1", "60", "900", "--misclick", "0")
    device = app.choose_device(args)
    assert device.axys == AxisRange(50, 1000, 60, 900)

    out = io.StringIO()
    cal = app.build_calibrator(args, device, out)
    assert cal.old_axys == AxisRange(50, 1000, 60, 900)
    assert cal.threshold_misclick == 0
    assert cal.threshold_doubleclick == 7
    assert 'Calibrating standard Xorg driver "Fake_device"' in out.getvalue()
    assert "min_x=50, max_x=1000 and min_y=60, max_y=900" in out.getvalue()


def test_write_result_hal(tmp_path, monkeypatch):
    args = args_for(tmp_path, "--fake", "--output-type", "hal")
    cal = app.build_calibrator(args, app.choose_device(args), io.StringIO())
    out = io.StringIO()
    result = CalibrationResult(AxisRange(1, 997, 1, 997), False)
    assert app.write_result(result, cal, args.output_type, out)
    assert '<merge key="input.x11_options.maxx" type="string">997</merge>' in out.getvalue()


def test_main_reports_missing_device(monkeypatch, tmp_path):
    monkeypatch.setattr(app, "find_devices", lambda pre=None: [])
    assert app.main(["--settings", str(tmp_path / "s.json"), "--device", "nothing"]) == 1


def test_main_list(monkeypatch, tmp_path, capsys):
    monkeypatch.setattr(app, "find_devices", lambda pre=None: [])
    assert app.main(["--settings", str(tmp_path / "s.json"), "--list"]) == 0
    assert "No calibratable devices found." in capsys.readouterr().out


def test_parse_geometry():
    assert parse_geometry("1024x768") == (1024, 768)
    assert parse_geometry("1024*768") is None
    assert parse_geometry(None) is None


def test_corner_targets():
    assert corner_targets(800, 600) == [(100, 75), (699, 75), (100, 524), (699, 524)]


def test_main_list_filters_by_device(monkeypatch, tmp_path, capsys):
    seen = []

    def fake_find(pre=None):
        seen.append(pre)
        return [DeviceInfo("/dev/input/event7", "Wacom Pen", AxisRange(0, 100, 0, 100))]

    monkeypatch.setattr(app, "find_devices", fake_find)
    assert app.main(["--settings", str(tmp_path / "s.json"), "--list", "--device", "Wacom Pen"]) == 0
    assert seen == ["Wacom Pen"]
    assert 'Device "Wacom Pen" path=/dev/input/event7' in capsys.readouterr().out


class BrokenStream(io.StringIO):
    def write(self, s):
        raise OSError(5, "Input/output error")


def test_write_result_reports_failure(tmp_path):
    args = args_for(tmp_path, "--fake", "--output-type", "xorg.conf.d")
    cal = app.build_calibrator(args, app.choose_device(args), io.StringIO())
    result = CalibrationResult(AxisRange(1, 997, 1, 997), False)
    assert app.write_result(result, cal, args.output_type, BrokenStream()) is False


def test_main_fails_when_result_cannot_be_written(monkeypatch, tmp_path, capsys):
    result = CalibrationResult(AxisRange(1, 997, 1, 997), False)
    monkeypatch.setattr(calibration_ui, "run_gui", lambda cal, timeout_ms: result)
    monkeypatch.setattr(app, "write_result", lambda *a, **k: False)
    assert app.main(["--settings", str(tmp_path / "s.json"), "--fake"]) == 1


def test_main_succeeds_when_result_written(monkeypatch, tmp_path, capsys):
    result = CalibrationResult(AxisRange(1, 997, 1, 997), False)
    monkeypatch.setattr(calibration_ui, "run_gui", lambda cal, timeout_ms: result)
    assert app.main(["--settings", str(tmp_path / "s.json"), "--fake", "--output-type", "hal"]) == 0
    assert '<merge key="input.x11_options.minx" type="string">1</merge>' in capsys.readouterr().out
