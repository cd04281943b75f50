"""
Calibration data models.

The screen is partitioned into NUM_BLOCKS x NUM_BLOCKS rectangles of equal
size. The user presses the points marked 'O', at the inner corner of each of
the four corner blocks:

  +--+--+--+--+--+--+--+--+
  |  |  |  |  |  |  |  |  |
  +--O--+--+--+--+--+--O--+
  |  |  |  |  |  |  |  |  |
  +--+--+--+--+--+--+--+--+
  :  :  :  :  :  :  :  :  :
  +--+--+--+--+--+--+--+--+
  |  |  |  |  |  |  |  |  |
  +--O--+--+--+--+--+--O--+
  |  |  |  |  |  |  |  |  |
  +--+--+--+--+--+--+--+--+
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Tuple

NUM_BLOCKS = 8

# Names of the points, in click order
UL = 0  # upper-left
UR = 1  # upper-right
LL = 2  # lower-left
LR = 3  # lower-right

NUM_POINTS = 4


@dataclass(frozen=True)
class AxisRange:
    x_min: int
    x_max: int
    y_min: int
    y_max: int

    def as_tuple(self) -> Tuple[int, int, int, int]:
        return (self.x_min, self.x_max, self.y_min, self.y_max)


@dataclass(frozen=True)
class ClickPoint:
    x: int  # pixels
    y: int


@dataclass(frozen=True)
class CalibrationResult:
    axys: AxisRange
    swap_xy: bool


class OutputType(Enum):
    AUTO = "auto"
    XORGCONFD = "xorg.conf.d"
    HAL = "hal"


def corner_targets(width: int, height: int) -> List[Tuple[int, int]]:
    """Pixel positions of the four click targets, indexed by UL/UR/LL/LR."""
    dx = width // NUM_BLOCKS
    dy = height // NUM_BLOCKS
    targets = [(0, 0)] * NUM_POINTS
    targets[UL] = (dx, dy)
    targets[UR] = (width - dx - 1, dy)
    targets[LL] = (dx, height - dy - 1)
    targets[LR] = (width - dx - 1, height - dy - 1)
    return targets
