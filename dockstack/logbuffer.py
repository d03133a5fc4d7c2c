"""Thread-safe rolling buffer of log lines."""
from __future__ import annotations

import threading
from typing import List

from .constants import LOG_BUFFER_HIGH_WATER, LOG_BUFFER_LOW_WATER


class LogBuffer:
    """Keeps at most ``high_water`` lines.

    Once an append pushes the size past ``high_water`` the oldest lines are
    dropped in one batch so that ``low_water`` lines remain.
    """

    def __init__(self, high_water: int = LOG_BUFFER_HIGH_WATER, low_water: int = LOG_BUFFER_LOW_WATER):
        if not 0 <= low_water <= high_water:
            raise ValueError("low_water must be between 0 and high_water")
        self.high_water = high_water
        self.low_water = low_water
        self._lines: List[str] = []
        self._lock = threading.Lock()

    def append(self, line: str) -> None:
        with self._lock:
            self._lines.append(line)
            if len(self._lines) > self.high_water:
                del self._lines[: len(self._lines) - self.low_water]

    def extend(self, lines: List[str]) -> None:
        for line in lines:
            self.append(line)

    def snapshot(self) -> List[str]:
        with self._lock:
            return list(self._lines)

    def clear(self) -> None:
        with self._lock:
            self._lines.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._lines)
