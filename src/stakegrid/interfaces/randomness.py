"""Random Source Protocol Interface."""

from typing import Protocol


class IRandomSource(Protocol):
    """Protocol for the randomness consulted once per battle resolution.

    Implementations return a non-negative integer carrying at least 256 bits
    of entropy.  ``timestamp`` and both participant identities act as domain
    separators so that distinct battles never share a draw.
    """

    def draw(self, *, timestamp: int, challenger: str, opponent: str) -> int:
        """Produce one draw for a battle between ``challenger`` and ``opponent``."""
        ...
