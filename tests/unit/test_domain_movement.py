"""Unit tests for movement and adjacency rules."""

from __future__ import annotations

import pytest
from hypothesis import given
from hypothesis import strategies as st

from stakegrid.domain import models as dm
from stakegrid.domain import movement
from stakegrid.domain.enums import Terrain
from stakegrid.domain.errors import PreconditionViolation, UnknownAgentError
from stakegrid.domain.protocol import create_world
from stakegrid.domain.rules_config import DEFAULT_RULES
from stakegrid.domain.terrain import classify, terrain_roll

ASH = dm.AgentID("ash")
BIRCH = dm.AgentID("birch")
CEDAR = dm.AgentID("cedar")
DUNE = dm.AgentID("dune")


def _world(positions: dict[str, tuple[int, int]] | None = None) -> dm.World:
    positions = positions or {"ash": (0, 0), "birch": (1, 0), "cedar": (9, 9), "dune": (5, 5)}
    roster = [
        dm.AgentSpec(id=dm.AgentID(agent_id), name=agent_id.title(), x=x, y=y)
        for agent_id, (x, y) in positions.items()
    ]
    return create_world(dm.WorldID(1), "moves", roster, created_at=0)


def test_move_updates_position_and_cooldown():
    world = _world()
    outcome = movement.move(world, ASH, 1, 0, now=1_000)

    assert (outcome.x, outcome.y) == (1, 0)
    assert world.agents[ASH].position == (1, 0)
    terrain = classify(1, 0)
    assert outcome.terrain == terrain
    assert outcome.available_after == 1_000 + DEFAULT_RULES.movement.cooldown_for(terrain)
    assert world.agents[ASH].available_after == outcome.available_after


def _first_cell(low: int, high: int) -> tuple[int, int]:
    return next(
        (x, y) for x in range(10) for y in range(10) if low <= terrain_roll(x, y) < high
    )


@pytest.mark.parametrize(
    ("low", "high", "terrain", "cooldown"),
    [(0, 10, Terrain.MOUNTAIN, 10_800), (10, 20, Terrain.RIVER, 7_200)],
)
def test_entering_rough_terrain_sets_longer_cooldown(low, high, terrain, cooldown):
    x, y = _first_cell(low, high)
    start = (x - 1, y) if x > 0 else (x + 1, y)
    world = _world({"ash": (0, 0), "birch": (1, 0), "cedar": (9, 9), "dune": start})

    outcome = movement.move(world, DUNE, x - start[0], 0, now=5_000)

    assert (outcome.x, outcome.y) == (x, y)
    assert outcome.terrain == terrain
    assert outcome.available_after == 5_000 + cooldown
    assert world.agents[DUNE].available_after == 5_000 + cooldown


def test_cells_may_be_shared():
    world = _world()
    movement.move(world, ASH, 1, 0, now=0)
    assert world.agents[ASH].position == world.agents[BIRCH].position


def test_off_grid_move_is_rejected_without_change():
    world = _world()
    with pytest.raises(PreconditionViolation):
        movement.move(world, ASH, -1, 0, now=0)
    assert world.agents[ASH].position == (0, 0)
    assert world.agents[ASH].available_after == 0


def test_east_edge_move_is_rejected_without_change():
    world = _world()
    with pytest.raises(PreconditionViolation):
        movement.move(world, CEDAR, 1, 0, now=0)
    assert world.agents[CEDAR].position == (9, 9)
    assert world.agents[CEDAR].available_after == 0


@pytest.mark.parametrize(("dx", "dy"), [(0, 0), (2, 0), (0, -2)])
def test_invalid_steps_are_rejected(dx, dy):
    world = _world()
    with pytest.raises(PreconditionViolation, match="invalid step"):
        movement.move(world, CEDAR, dx, dy, now=0)


def test_cooldown_blocks_until_expiry():
    world = _world()
    outcome = movement.move(world, ASH, 0, 1, now=0)
    with pytest.raises(PreconditionViolation, match="cannot move before"):
        movement.move(world, ASH, 0, 1, now=outcome.available_after - 1)
    movement.move(world, ASH, 0, -1, now=outcome.available_after)
    assert world.agents[ASH].position == (0, 0)


def test_dead_agents_cannot_move():
    world = _world()
    world.agents[ASH].alive = False
    with pytest.raises(PreconditionViolation, match="dead"):
        movement.move(world, ASH, 1, 1, now=0)


def test_unknown_agent():
    world = _world()
    with pytest.raises(UnknownAgentError):
        movement.move(world, dm.AgentID("ghost"), 1, 0, now=0)


def test_adjacency_includes_diagonals_and_excludes_dead():
    world = _world({"ash": (0, 0), "birch": (1, 1), "cedar": (2, 2), "dune": (0, 0)})
    assert movement.are_adjacent(world, ASH, BIRCH)
    assert not movement.are_adjacent(world, ASH, CEDAR)
    assert movement.are_adjacent(world, ASH, dm.AgentID("dune"))

    world.agents[BIRCH].alive = False
    assert not movement.are_adjacent(world, ASH, BIRCH)
    assert not movement.are_adjacent(world, BIRCH, ASH)


@given(
    st.tuples(st.integers(0, 9), st.integers(0, 9)),
    st.tuples(st.integers(0, 9), st.integers(0, 9)),
    st.booleans(),
)
def test_adjacency_is_symmetric(first, second, kill):
    world = _world({"ash": first, "birch": second, "cedar": (9, 9), "dune": (5, 5)})
    if kill:
        world.agents[BIRCH].alive = False
    assert movement.are_adjacent(world, ASH, BIRCH) == movement.are_adjacent(world, BIRCH, ASH)
    if kill:
        assert not movement.are_adjacent(world, ASH, BIRCH)
