"""Clock implementations shared by every timing gate."""

import time


class SystemClock:
    """Wall-clock time in whole epoch seconds."""

    def now(self) -> int:
        return int(time.time())


class ManualClock:
    """Clock that only moves when told to; used for replays and tests."""

    def __init__(self, start: int = 0) -> None:
        self._now = start

    def now(self) -> int:
        return self._now

    def advance(self, seconds: int) -> int:
        if seconds < 0:
            raise ValueError(f"cannot move the clock backwards by {seconds}s")
        self._now += seconds
        return self._now

    def set(self, timestamp: int) -> None:
        if timestamp < self._now:
            raise ValueError(f"clock is monotonic: {timestamp} < {self._now}")
        self._now = timestamp
