"""Terrain oracle.

Every cell's terrain is a pure function of its coordinates: the SHA-256
digest of ``"x:y"`` is read as a big-endian integer and bucketed modulo 100.
The first ``mountain_pct`` values are mountains, the next ``river_pct`` are
rivers and everything else is normal ground.  Results never change for a
given cell.
"""

from __future__ import annotations

import hashlib

from stakegrid.domain.enums import Terrain
from stakegrid.domain.rules_config import DEFAULT_RULES, TerrainRules


def terrain_roll(x: int, y: int) -> int:
    """Return the deterministic bucket value in ``[0, 100)`` for a cell."""

    digest = hashlib.sha256(f"{x}:{y}".encode()).digest()
    return int.from_bytes(digest, "big") % 100


def classify(x: int, y: int, rules: TerrainRules = DEFAULT_RULES.terrain) -> Terrain:
    """Classify the cell at ``(x, y)``."""

    roll = terrain_roll(x, y)
    if roll < rules.mountain_pct:
        return Terrain.MOUNTAIN
    if roll < rules.mountain_pct + rules.river_pct:
        return Terrain.RIVER
    return Terrain.NORMAL


def terrain_map(
    width: int, height: int, rules: TerrainRules = DEFAULT_RULES.terrain
) -> dict[tuple[int, int], Terrain]:
    """Classify every cell on a ``width`` x ``height`` board."""

    return {(x, y): classify(x, y, rules) for x in range(width) for y in range(height)}
