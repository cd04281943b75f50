import io

import pytest

from TouchCalibrator.calibration.models import AxisRange, CalibrationResult, OutputType
from TouchCalibrator.output import writers
from TouchCalibrator.output.writers import (
    AutoDetectWriter,
    HalWriter,
    XorgConfDWriter,
    make_writer,
    xorg_version,
)

RESULT = CalibrationResult(axys=AxisRange(x_min=12, x_max=987, y_min=30, y_max=1001), swap_xy=False)
SWAPPED = CalibrationResult(axys=AxisRange(x_min=12, x_max=987, y_min=30, y_max=1001), swap_xy=True)


def known_name(name):
    return name


def unknown_name(name):
    return None


def test_xorgconfd_render():
    text = XorgConfDWriter(known_name).render(RESULT, "eGalax Touch")
    assert text.splitlines() == [
        'Section "InputClass"',
        '\tIdentifier\t"calibration"',
        '\tMatchProduct\t"eGalax Touch"',
        '\tOption\t"MinX"\t"12"',
        '\tOption\t"MaxX"\t"987"',
        '\tOption\t"MinY"\t"30"',
        '\tOption\t"MaxY"\t"1001"',
        "EndSection",
    ]


def test_xorgconfd_render_swap_line():
    text = XorgConfDWriter(known_name).render(SWAPPED, "eGalax Touch")
    assert '\tOption\t"SwapXY"\t"1" # unless it was already set to 1' in text.splitlines()


def test_hal_render():
    lines = HalWriter(known_name).render(RESULT, "eGalax Touch").splitlines()
    assert lines[0] == '<match key="info.product" contains="eGalax Touch">'
    assert '  <merge key="input.x11_options.maxy" type="string">1001</merge>' in lines
    assert lines[-1] == "</match>"
    assert not any("swapxy" in line for line in lines)


def test_hal_render_swap_line():
    lines = HalWriter(known_name).render(SWAPPED, "x").splitlines()
    assert '  <merge key="input.x11_options.swapxy" type="string">1</merge>' in lines


def test_emit_uses_placeholder_for_unknown_device():
    out = io.StringIO()
    assert XorgConfDWriter(unknown_name).emit(RESULT, "Fake_device", out)
    text = out.getvalue()
    assert "--> Making the calibration permanent <--" in text
    assert "/etc/X11/xorg.conf.d/99-calibration.conf" in text
    assert 'MatchProduct\t"!!Name_Of_TouchScreen!!"' in text
    assert "Change '!!Name_Of_TouchScreen!!' to your device's name" in text


def test_emit_known_device_has_no_hint():
    out = io.StringIO()
    HalWriter(known_name).emit(RESULT, "eGalax Touch", out)
    text = out.getvalue()
    assert "/etc/hal/fdi/policy/touchscreen.fdi" in text
    assert "Change '" not in text


class BrokenStream(io.StringIO):
    def write(self, s):
        raise OSError(28, "No space left on device")


def test_emit_reports_write_failure():
    assert XorgConfDWriter(known_name).emit(RESULT, "eGalax Touch", BrokenStream()) is False


def test_emit_to_closed_stream_fails():
    out = io.StringIO()
    out.close()
    assert HalWriter(known_name).emit(RESULT, "eGalax Touch", out) is False


@pytest.mark.parametrize("supported, expected", [(True, XorgConfDWriter), (False, HalWriter)])
def test_auto_detect_choice(supported, expected):
    writer = AutoDetectWriter(known_name, support_check=lambda: supported)
    assert isinstance(writer.choose(), expected)


def test_auto_detect_emits_chosen_format():
    out = io.StringIO()
    AutoDetectWriter(known_name, support_check=lambda: False).emit(RESULT, "pen", out)
    assert '<match key="info.product" contains="pen">' in out.getvalue()


def test_xorg_version_parsing():
    banner = "\nX.Org X Server 1.20.14\nX Protocol Version 11, Revision 0\n"
    assert xorg_version(banner) == (1, 20, 14)
    assert xorg_version("X.Org X Server 21.1") == (21, 1)
    assert xorg_version("XFree86 Version 4.3.0") is None


def test_has_xorgconfd_support_without_server(monkeypatch):
    def boom(*a, **k):
        raise FileNotFoundError("Xorg")

    monkeypatch.setattr(writers.subprocess, "run", boom)
    assert writers.has_xorgconfd_support() is False


def test_has_xorgconfd_support_old_server(monkeypatch):
    class Proc:
        stdout = ""
        stderr = "X.Org X Server 1.7.6\n"

    monkeypatch.setattr(writers.subprocess, "run", lambda *a, **k: Proc())
    assert writers.has_xorgconfd_support() is False


def test_make_writer():
    assert isinstance(make_writer("xorg.conf.d"), XorgConfDWriter)
    assert isinstance(make_writer(OutputType.HAL), HalWriter)
    assert isinstance(make_writer("auto"), AutoDetectWriter)
    with pytest.raises(ValueError):
        make_writer("xinput")
