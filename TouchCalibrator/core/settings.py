"""
Settings manager for TouchCalibrator.

Loads/saves JSON settings from TouchCalibrator/settings.json and exposes helpers.
Command line options override whatever is stored here.
"""
from __future__ import annotations

import json
import os
from typing import Any, Dict, Optional, Tuple


class SettingsManager:
    def __init__(self, path: Optional[str] = None) -> None:
        here = os.path.dirname(os.path.abspath(__file__))
        self._root = os.path.dirname(here)
        self.path = path or os.path.join(self._root, "settings.json")
        self.data: Dict[str, Any] = {}
        self.load()

    def load(self) -> None:
        if not os.path.exists(self.path):
            # provide minimal defaults
            self.data = {
                "thresholds": {"misclick": 15, "doubleclick": 7},
                "output_type": "auto",
                "timeout_ms": 15000,
                "geometry": None,
                "fake_device": {"name": "Fake_device", "axys": [0, 1000, 0, 1000]},
            }
            return
        with open(self.path, "r", encoding="utf-8") as f:
            self.data = json.load(f)

    def save(self) -> None:
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(self.data, f, indent=2)

    # Convenience accessors -------------------------------------------------
    def threshold_misclick(self) -> int:
        return int(self.data.get("thresholds", {}).get("misclick", 15))

    def set_threshold_misclick(self, t: int) -> None:
        self.data.setdefault("thresholds", {})["misclick"] = int(t)

    def threshold_doubleclick(self) -> int:
        return int(self.data.get("thresholds", {}).get("doubleclick", 7))

    def set_threshold_doubleclick(self, t: int) -> None:
        self.data.setdefault("thresholds", {})["doubleclick"] = int(t)

    def output_type(self) -> str:
        return str(self.data.get("output_type", "auto"))

    def set_output_type(self, name: str) -> None:
        self.data["output_type"] = str(name)

    def timeout_ms(self) -> int:
        return int(self.data.get("timeout_ms", 15000))

    def set_timeout_ms(self, ms: int) -> None:
        self.data["timeout_ms"] = int(ms)

    def geometry(self) -> Optional[str]:
        v = self.data.get("geometry")
        return str(v) if v else None

    def set_geometry(self, geo: Optional[str]) -> None:
        self.data["geometry"] = geo

    def fake_device_name(self) -> str:
        return str(self.data.get("fake_device", {}).get("name", "Fake_device"))

    def fake_device_axys(self) -> Tuple[int, int, int, int]:
        arr = self.data.get("fake_device", {}).get("axys", [0, 1000, 0, 1000])
        try:
            return int(arr[0]), int(arr[1]), int(arr[2]), int(arr[3])
        except (TypeError, ValueError, IndexError):
            return 0, 1000, 0, 1000
