"""
Square-grid coordinate mathematics for StakeGrid.

The board is a bounded rectangle of cells addressed by ``(x, y)`` with
``0 <= x < width`` and ``0 <= y < height``.  Agents step one cell at a time
in any of eight directions, so the natural metric is the Chebyshev
distance:

    distance = max(|dx|, |dy|)

Two cells are adjacent when their Chebyshev distance is at most one, which
includes diagonals (8-connected neighbourhood).
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class GridCoord:
    """
    A cell on the board.

    Attributes:
        x: Column index
        y: Row index

    Example:
        >>> origin = GridCoord(x=0, y=0)
        >>> chebyshev_distance(origin, GridCoord(x=1, y=1))
        1
    """

    x: int
    y: int

    def offset(self, dx: int, dy: int) -> "GridCoord":
        """Return the coordinate shifted by ``(dx, dy)``."""
        return GridCoord(x=self.x + dx, y=self.y + dy)


# Direction vectors for the 8 neighbours
STEP_DIRECTIONS: list[tuple[int, int]] = [
    (1, 0),  # East
    (1, -1),  # Northeast
    (0, -1),  # North
    (-1, -1),  # Northwest
    (-1, 0),  # West
    (-1, 1),  # Southwest
    (0, 1),  # South
    (1, 1),  # Southeast
]


def is_unit_step(dx: int, dy: int) -> bool:
    """
    Check that ``(dx, dy)`` is a single king-move step.

    Both components must lie in ``{-1, 0, 1}`` and they may not both be zero.

    Example:
        >>> is_unit_step(1, -1)
        True
        >>> is_unit_step(0, 0)
        False
        >>> is_unit_step(2, 0)
        False
    """
    return (dx, dy) in STEP_DIRECTIONS


def in_bounds(coord: GridCoord, width: int, height: int) -> bool:
    """Return True when ``coord`` lies on a ``width`` x ``height`` board."""
    return 0 <= coord.x < width and 0 <= coord.y < height


def chebyshev_distance(a: GridCoord, b: GridCoord) -> int:
    """
    Calculate the number of king-move steps between two cells.

    Args:
        a: First coordinate
        b: Second coordinate

    Returns:
        ``max(|ax - bx|, |ay - by|)``

    Example:
        >>> chebyshev_distance(GridCoord(0, 0), GridCoord(3, 1))
        3
    """
    return max(abs(a.x - b.x), abs(a.y - b.y))

