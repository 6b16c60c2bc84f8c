"""Utility functions for the StakeGrid system."""

from stakegrid.utils.clock import ManualClock, SystemClock
from stakegrid.utils.grid_math import GridCoord, chebyshev_distance, in_bounds, is_unit_step
from stakegrid.utils.rng import (
    HashRandomSource,
    SeededRandomSource,
    SequenceRandomSource,
    compose_draw,
    generate_seed,
    seed_to_draw,
)

__all__ = [
    "GridCoord",
    "HashRandomSource",
    "ManualClock",
    "SeededRandomSource",
    "SequenceRandomSource",
    "SystemClock",
    "chebyshev_distance",
    "compose_draw",
    "generate_seed",
    "in_bounds",
    "is_unit_step",
    "seed_to_draw",
]
