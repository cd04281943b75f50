"""Calibrator: click validation and the calibration math for a four-corner
touchscreen calibration.

Features:
  - add_click(x, y) with double-click and mis-click rejection
  - reset() to start over
  - finish(width, height) turns the four clicks into new axis bounds and an
    axis swap flag

Notes:
  * A threshold of 0 disables the matching check.
  * A mis-click clears every click collected so far; the user restarts at the
    upper-left point.
  * finish() never mutates the session, so it can be reset and reused.
"""
from __future__ import annotations

import logging
from typing import List, Optional

import numpy as np

from .models import (
    LL,
    LR,
    NUM_BLOCKS,
    NUM_POINTS,
    UL,
    UR,
    AxisRange,
    CalibrationResult,
    ClickPoint,
)

logger = logging.getLogger(__name__)


class IncompleteSequenceError(RuntimeError):
    """finish() was called without exactly four accepted clicks."""


class Calibrator:
    def __init__(
        self,
        old_axys: AxisRange,
        threshold_misclick: int = 15,
        threshold_doubleclick: int = 7,
        verbose: bool = False,
        device_name: str = "",
        geometry: Optional[str] = None,
    ) -> None:
        self.old_axys = old_axys
        self.threshold_misclick = int(threshold_misclick)
        self.threshold_doubleclick = int(threshold_doubleclick)
        self.verbose = bool(verbose)
        self.device_name = device_name
        self.geometry = geometry
        self.clicks: List[ClickPoint] = []

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------
    def click_count(self) -> int:
        return len(self.clicks)

    def set_threshold_doubleclick(self, t: int) -> None:
        self.threshold_doubleclick = int(t)

    def set_threshold_misclick(self, t: int) -> None:
        self.threshold_misclick = int(t)

    def get_geometry(self) -> Optional[str]:
        return self.geometry

    def reset(self) -> None:
        self.clicks.clear()

    # ------------------------------------------------------------------
    # Click handling
    # ------------------------------------------------------------------
    def add_click(self, x: int, y: int) -> bool:
        x, y = int(x), int(y)
        n = len(self.clicks)

        if n >= NUM_POINTS:
            self._debug("Not adding click %i (X=%i, Y=%i): already have %i clicks", n, x, y, NUM_POINTS)
            return False

        if self.threshold_doubleclick > 0 and n > 0:
            t = self.threshold_doubleclick
            for prev in reversed(self.clicks):
                if abs(x - prev.x) <= t and abs(y - prev.y) <= t:
                    self._debug(
                        "Not adding click %i (X=%i, Y=%i): within %i pixels of previous click",
                        n, x, y, t,
                    )
                    return False

        if self.threshold_misclick > 0 and n > 0:
            if not self._is_aligned(x, y):
                self._log_misclick(x, y)
                self.reset()
                return False

        self.clicks.append(ClickPoint(x, y))
        self._debug("Adding click %i (X=%i, Y=%i)", n, x, y)
        return True

    def along_axis(self, v: int, x0: int, y0: int) -> bool:
        """True if v is within the mis-click threshold of x0 or of y0."""
        t = self.threshold_misclick
        return abs(v - x0) <= t or abs(v - y0) <= t

    def _is_aligned(self, x: int, y: int) -> bool:
        c = self.clicks
        n = len(c)
        if n == 1:
            # along one axis of the first point
            return self.along_axis(x, c[0].x, c[0].y) or self.along_axis(y, c[0].x, c[0].y)
        if n == 2:
            # along the other axis of the first point than the second point
            return (
                (self.along_axis(y, c[0].x, c[0].y) and self.along_axis(c[1].x, c[0].x, c[0].y))
                or (self.along_axis(x, c[0].x, c[0].y) and self.along_axis(c[1].y, c[0].x, c[0].y))
            )
        if n == 3:
            # along both axes of the second and third point
            return (
                (self.along_axis(x, c[1].x, c[1].y) and self.along_axis(y, c[2].x, c[2].y))
                or (self.along_axis(y, c[1].x, c[1].y) and self.along_axis(x, c[2].x, c[2].y))
            )
        return False

    # ------------------------------------------------------------------
    # Calibration math
    # ------------------------------------------------------------------
    def finish(self, width: int, height: int) -> CalibrationResult:
        if len(self.clicks) != NUM_POINTS:
            raise IncompleteSequenceError(
                f"need exactly {NUM_POINTS} clicks to finish, have {len(self.clicks)}"
            )
        if width <= 0 or height <= 0:
            raise ValueError(f"invalid display size {width}x{height}")

        pts = np.array([(p.x, p.y) for p in self.clicks], dtype=np.int64)

        # Should x and y be swapped?
        swap_xy = bool(abs(pts[UL, 0] - pts[UR, 0]) < abs(pts[UL, 1] - pts[UR, 1]))
        if swap_xy:
            exchange_corners(pts, LL, UR)

        old = self.old_axys
        scale_x = (old.x_max - old.x_min) / float(width)
        scale_y = (old.y_max - old.y_min) / float(height)
        x_min = int((pts[UL, 0] + pts[LL, 0]) * scale_x / 2 + old.x_min)
        x_max = int((pts[UR, 0] + pts[LR, 0]) * scale_x / 2 + old.x_min)
        y_min = int((pts[UL, 1] + pts[UR, 1]) * scale_y / 2 + old.y_min)
        y_max = int((pts[LL, 1] + pts[LR, 1]) * scale_y / 2 + old.y_min)

        # The targets sit one block in from each edge; extrapolate to the edges
        delta_x = int((x_max - x_min) / float(NUM_BLOCKS - 2))
        x_min -= delta_x
        x_max += delta_x
        delta_y = int((y_max - y_min) / float(NUM_BLOCKS - 2))
        y_min -= delta_y
        y_max += delta_y

        # Swapped axes also swap which extremum lands in which field
        if swap_xy:
            x_min, y_max = y_max, x_min
            y_min, x_max = x_max, y_min

        axys = AxisRange(x_min=x_min, x_max=x_max, y_min=y_min, y_max=y_max)
        self._debug(
            "Calibration result: min_x=%d, max_x=%d, min_y=%d, max_y=%d, swap_xy=%s",
            x_min, x_max, y_min, y_max, swap_xy,
        )
        return CalibrationResult(axys=axys, swap_xy=swap_xy)

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------
    def _debug(self, msg: str, *args) -> None:
        if self.verbose:
            logger.debug(msg, *args)

    def _log_misclick(self, x: int, y: int) -> None:
        c = self.clicks
        n = len(c)
        t = self.threshold_misclick
        if n == 1:
            self._debug(
                "Mis-click detected, click %i (X=%i, Y=%i) not aligned with click 0 (X=%i, Y=%i) (threshold=%i)",
                n, x, y, c[0].x, c[0].y, t,
            )
        elif n == 2:
            self._debug(
                "Mis-click detected, click %i (X=%i, Y=%i) not aligned with click 0 (X=%i, Y=%i) "
                "or click 1 (X=%i, Y=%i) (threshold=%i)",
                n, x, y, c[0].x, c[0].y, c[1].x, c[1].y, t,
            )
        elif n == 3:
            self._debug(
                "Mis-click detected, click %i (X=%i, Y=%i) not aligned with click 1 (X=%i, Y=%i) "
                "or click 2 (X=%i, Y=%i) (threshold=%i)",
                n, x, y, c[1].x, c[1].y, c[2].x, c[2].y, t,
            )


def exchange_corners(pts: np.ndarray, a: int, b: int) -> None:
    """Swap the coordinate pairs of corners a and b in place."""
    pts[[a, b]] = pts[[b, a]]
