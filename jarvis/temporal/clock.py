"""
Millisecond Clock
=================

Injectable clock for chat message timestamps and polling cursors.

GUARANTEES:
- Readings never go backwards for a single clock instance, even if the
  wall clock is stepped back
- In replay mode readings come from a fixed tick sequence, so tests get
  byte-identical timestamps
"""

from __future__ import annotations
from typing import Iterable, List, Optional
import threading

from ..contracts.base import epoch_millis


class ClockExhausted(Exception):
    """Raised when a replay clock runs out of ticks."""
    pass


class MillisClock:
    """
    Non-decreasing epoch-millisecond clock.

    MODES:
    ======
    1. LIVE mode: reads system time
    2. REPLAY mode: returns the next tick from a recorded sequence

    Both modes clamp to the last returned value.
    """

    def __init__(self, ticks: Optional[Iterable[int]] = None):
        self._ticks: Optional[List[int]] = list(ticks) if ticks is not None else None
        self._index = 0
        self._last = 0
        self._lock = threading.Lock()

    @classmethod
    def live(cls) -> MillisClock:
        return cls()

    @classmethod
    def replay(cls, ticks: Iterable[int]) -> MillisClock:
        return cls(ticks=ticks)

    def is_live(self) -> bool:
        return self._ticks is None

    def now(self) -> int:
        with self._lock:
            if self._ticks is None:
                reading = epoch_millis()
            else:
                if self._index >= len(self._ticks):
                    raise ClockExhausted(
                        f"Replay clock exhausted after {len(self._ticks)} ticks"
                    )
                reading = self._ticks[self._index]
                self._index += 1

            self._last = max(self._last, reading)
            return self._last

    def observe(self, timestamp: int) -> None:
        """Fold an externally seen timestamp in, so later readings are not lower."""
        with self._lock:
            self._last = max(self._last, timestamp)

    def __repr__(self) -> str:
        mode = "LIVE" if self.is_live() else "REPLAY"
        return f"MillisClock({mode}, last={self._last})"
