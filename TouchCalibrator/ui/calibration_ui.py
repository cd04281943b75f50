"""
Fullscreen PyQt6 calibration window showing four crosses near the screen
corners, to be pressed in order: top-left, top-right, bottom-left, bottom-right.

Behavior:
- Every press goes to the Calibrator; a rejected press that emptied the
  session shows "Mis-click detected, restarting...".
- A clock in the middle fills up; if no press arrives before it is full the
  window closes without a result.
- Any key aborts.
- Emits calibrationFinished(result) after the fourth accepted press.
"""
from __future__ import annotations

import logging
import math
import re
from typing import List, Optional, Tuple

from PyQt6.QtCore import QPointF, QRectF, Qt, QTimer, pyqtSignal
from PyQt6.QtGui import QColor, QFont, QFontMetrics, QGuiApplication, QPainter, QPen
from PyQt6.QtWidgets import QApplication, QWidget

from TouchCalibrator.calibration.calibrator import Calibrator
from TouchCalibrator.calibration.models import NUM_POINTS, CalibrationResult, corner_targets

logger = logging.getLogger(__name__)

# Timeout parameters
TIME_STEP_MS = 100
MAX_TIME_MS = 15000

# Clock appearance
CROSS_LINES = 25
CROSS_CIRCLE = 4
CLOCK_RADIUS = 50
CLOCK_LINE_WIDTH = 10

FONT_SIZE = 16
HELP_TEXT = [
    "Touchscreen Calibration",
    "Press the point, use a stylus to increase precision.",
    "",
    "(To abort, press any key or wait)",
]
MISCLICK_MESSAGE = "Mis-click detected, restarting..."


def parse_geometry(geo: Optional[str]) -> Optional[Tuple[int, int]]:
    """Parse 'WxH'; None if missing or malformed."""
    if not geo:
        return None
    m = re.fullmatch(r"\s*(\d+)x(\d+)\s*", geo)
    if not m:
        logger.warning("error parsing geometry string %r - using defaults.", geo)
        return None
    return int(m.group(1)), int(m.group(2))


class CalibrationArea(QWidget):
    calibrationFinished = pyqtSignal(object)  # CalibrationResult

    def __init__(self, calibrator: Calibrator, timeout_ms: int = MAX_TIME_MS) -> None:
        super().__init__()
        self.calibrator = calibrator
        self.timeout_ms = int(max(TIME_STEP_MS, timeout_ms))
        self.result: Optional[CalibrationResult] = None
        self.message: Optional[str] = None
        self.time_elapsed = 0
        self.display_width = 0
        self.display_height = 0
        self.targets: List[Tuple[int, int]] = []

        self._manual_size = parse_geometry(calibrator.get_geometry())
        if self._manual_size is not None:
            self.set_display_size(*self._manual_size)

        self.setWindowFlags(Qt.WindowType.FramelessWindowHint | Qt.WindowType.WindowStaysOnTopHint)
        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)

        self._timer = QTimer(self)
        self._timer.setInterval(TIME_STEP_MS)
        self._timer.timeout.connect(self._on_timer)  # type: ignore[attr-defined]

    # -----------------
    # Public API
    # -----------------
    def start(self) -> None:
        screen = QGuiApplication.primaryScreen()
        if screen is not None:
            self.setGeometry(screen.geometry())
        self.showFullScreen()
        self._timer.start()

    def set_display_size(self, width: int, height: int) -> None:
        self.display_width = int(width)
        self.display_height = int(height)
        self.targets = corner_targets(self.display_width, self.display_height)
        # reset calibration if already started
        self.calibrator.reset()

    # -----------------
    # Events
    # -----------------
    def resizeEvent(self, event):  # type: ignore[override]
        if self._manual_size is None and (
            self.width() != self.display_width or self.height() != self.display_height
        ):
            self.set_display_size(self.width(), self.height())
        super().resizeEvent(event)

    def mousePressEvent(self, event):  # type: ignore[override]
        self.time_elapsed = 0
        pos = event.globalPosition().toPoint()
        accepted = self.calibrator.add_click(pos.x(), pos.y())

        if not accepted and self.calibrator.click_count() == 0:
            self.message = MISCLICK_MESSAGE
        else:
            self.message = None

        if self.calibrator.click_count() >= NUM_POINTS:
            self.result = self.calibrator.finish(self.display_width, self.display_height)
            self._timer.stop()
            self.calibrationFinished.emit(self.result)  # type: ignore[attr-defined]
            self.close()
            return
        self.update()

    def keyPressEvent(self, event):  # type: ignore[override]
        logger.info("Calibration aborted by key press.")
        self._timer.stop()
        self.close()

    def _on_timer(self) -> None:
        self.time_elapsed += TIME_STEP_MS
        if self.time_elapsed > self.timeout_ms:
            logger.info("Calibration timed out after %d ms.", self.timeout_ms)
            self._timer.stop()
            self.close()
            return
        self.update()

    # -----------------
    # Painting
    # -----------------
    def paintEvent(self, event):  # type: ignore[override]
        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        painter.fillRect(self.rect(), QColor(0, 0, 0))
        w, h = self.display_width, self.display_height

        font = QFont()
        font.setPixelSize(FONT_SIZE)
        painter.setFont(font)
        fm = QFontMetrics(font)

        # Help text in a frame above the clock
        text_width = max(fm.horizontalAdvance(line) for line in HELP_TEXT)
        text_height = fm.height() + 2
        x = (w - text_width) / 2
        y = (h - text_height) / 2 - 60
        painter.setPen(QPen(QColor(255, 255, 255), 2))
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.drawRect(QRectF(x - 10, y - len(HELP_TEXT) * text_height - 10,
                                text_width + 20, len(HELP_TEXT) * text_height + 20))
        y -= 3
        for line in reversed(HELP_TEXT):
            painter.drawText(QPointF(x + (text_width - fm.horizontalAdvance(line)) / 2, y), line)
            y -= text_height

        # Points clicked so far in white, the current one in red
        count = self.calibrator.click_count()
        for i, (px, py) in enumerate(self.targets[: count + 1]):
            color = QColor(255, 255, 255) if i < count else QColor(204, 0, 0)
            painter.setPen(QPen(color, 1))
            painter.drawLine(QPointF(px - CROSS_LINES, py), QPointF(px + CROSS_LINES, py))
            painter.drawLine(QPointF(px, py - CROSS_LINES), QPointF(px, py + CROSS_LINES))
            painter.drawEllipse(QPointF(px, py), CROSS_CIRCLE, CROSS_CIRCLE)

        # Clock
        cx, cy = w / 2, h / 2
        painter.setPen(QPen(QColor(128, 128, 128), 1))
        painter.setBrush(QColor(128, 128, 128))
        painter.drawEllipse(QPointF(cx, cy), CLOCK_RADIUS / 2, CLOCK_RADIUS / 2)
        r = (CLOCK_RADIUS - CLOCK_LINE_WIDTH) / 2
        span = self.time_elapsed / float(self.timeout_ms) * 360.0
        painter.setPen(QPen(QColor(0, 0, 0), CLOCK_LINE_WIDTH))
        painter.setBrush(Qt.BrushStyle.NoBrush)
        # Qt angles are in 1/16th of a degree, counter-clockwise from 3 o'clock
        painter.drawArc(QRectF(cx - r, cy - r, 2 * r, 2 * r), 90 * 16, -int(math.floor(span * 16)))

        if self.message:
            mw = fm.horizontalAdvance(self.message)
            mh = fm.height()
            mx = (w - mw) / 2
            my = (h - mh + CLOCK_RADIUS) / 2 + 60
            painter.setPen(QPen(QColor(255, 255, 255), 2))
            painter.drawRect(QRectF(mx - 10, my - mh - 10, mw + 20, mh + 25))
            painter.drawText(QPointF(mx, my), self.message)
        painter.end()


def run_gui(calibrator: Calibrator, timeout_ms: int = MAX_TIME_MS) -> Optional[CalibrationResult]:
    """Show the calibration window and block until it closes."""
    app = QApplication.instance() or QApplication([])
    area = CalibrationArea(calibrator, timeout_ms=timeout_ms)
    area.start()
    app.exec()
    return area.result
