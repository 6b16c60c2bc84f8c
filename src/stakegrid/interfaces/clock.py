"""Clock Protocol Interface."""

from typing import Protocol


class IClock(Protocol):
    """Single monotonic time source shared by every timing gate."""

    def now(self) -> int:
        """Return the current time in whole seconds."""
        ...
