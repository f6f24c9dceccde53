"""Count-rate tracking and progress lines for the counting game monitors."""

from __future__ import annotations

import math
import time
from dataclasses import dataclass, field

from countinggame.protocol import _trunc_mod

FAST_RATE = 0.05
FAST_DISPLAY_INTERVAL_MS = 500
RATE_RESET_MS = 2000


def _elapsed_ms(now: float, then: float) -> int:
    return math.floor((now - then) * 1000 + 1e-6)


@dataclass
class ProgressMonitor:
    """Tracks counts over time and produces the progress text to display.

    Times are seconds from a monotonic clock.
    """

    max_students: int
    start: float = field(default_factory=time.monotonic)
    last_display: float = field(init=False)
    last_count_time: float = field(init=False)
    last_rate_reset: float = field(init=False)
    total_counts: int = field(init=False, default=0)
    counts_since_last_reset: int = field(init=False, default=0)
    fast_mode: bool = field(init=False, default=False)

    def __post_init__(self) -> None:
        self.last_display = self.start
        self.last_count_time = self.start
        self.last_rate_reset = self.start

    def record(self, now: float) -> None:
        """Note that a count happened at ``now``."""
        self.total_counts += 1
        self.counts_since_last_reset += 1
        self.last_count_time = now

    def should_display(self, now: float) -> bool:
        """Whether a received count should be shown; fast mode throttles output."""
        return not self.fast_mode or _elapsed_ms(now, self.last_display) >= FAST_DISPLAY_INTERVAL_MS

    def current_rate(self, now: float) -> float:
        """Counts per millisecond since the last rate reset."""
        elapsed = _elapsed_ms(now, self.last_rate_reset)
        return self.counts_since_last_reset / elapsed if elapsed > 0 else 0.0

    def render(self, count: int, now: float, timeout: bool = False) -> str:
        """Return the progress text for ``count`` and update the rate state."""
        elapsed = _elapsed_ms(now, self.last_rate_reset)
        rate = self.current_rate(now)
        student = _trunc_mod(count, self.max_students)

        if self.fast_mode:
            text = f"\rCurrent count: {count} | Rate: {rate:.3f} counts/ms    "
            self._reset_rate(now)
        else:
            prefix = "\n[timeout] " if timeout else "\n"
            text = f"{prefix}Count {count} from student {student}"
            if student == 0 and elapsed > RATE_RESET_MS:
                self._reset_rate(now)

        self.fast_mode = rate > FAST_RATE
        return text

    def _reset_rate(self, now: float) -> None:
        self.last_rate_reset = now
        self.counts_since_last_reset = 0