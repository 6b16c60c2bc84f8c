"""Roster lookups, movement and adjacency rules."""

from __future__ import annotations

from stakegrid.domain import terrain
from stakegrid.domain.errors import PreconditionViolation, UnknownAgentError
from stakegrid.domain.models import Agent, AgentID, MoveOutcome, World
from stakegrid.domain.rules_config import DEFAULT_RULES, RulesConfig
from stakegrid.utils.grid_math import GridCoord, chebyshev_distance, in_bounds, is_unit_step


def get_agent(world: World, agent_id: AgentID) -> Agent:
    """Return the roster entry for ``agent_id`` or raise ``UnknownAgentError``."""

    agent = world.agents.get(agent_id)
    if agent is None:
        raise UnknownAgentError(agent_id)
    return agent


def require_alive(world: World, agent_id: AgentID) -> Agent:
    agent = get_agent(world, agent_id)
    if not agent.alive:
        raise PreconditionViolation(f"agent {agent_id!r} is dead")
    return agent


def validate_move(
    world: World,
    agent_id: AgentID,
    dx: int,
    dy: int,
    *,
    now: int,
) -> GridCoord:
    """Check every movement precondition and return the destination."""

    agent = require_alive(world, agent_id)
    if now < agent.available_after:
        raise PreconditionViolation(
            f"agent {agent_id!r} cannot move before {agent.available_after} (now {now})"
        )
    if not is_unit_step(dx, dy):
        raise PreconditionViolation(f"invalid step ({dx}, {dy})")

    destination = GridCoord(agent.x, agent.y).offset(dx, dy)
    if not in_bounds(destination, world.width, world.height):
        raise PreconditionViolation(
            f"destination ({destination.x}, {destination.y}) is off the "
            f"{world.width}x{world.height} grid"
        )
    return destination


def move(
    world: World,
    agent_id: AgentID,
    dx: int,
    dy: int,
    *,
    now: int,
    rules: RulesConfig = DEFAULT_RULES,
) -> MoveOutcome:
    """Move an agent one step and start the terrain-dependent cooldown."""

    destination = validate_move(world, agent_id, dx, dy, now=now)
    cell = terrain.classify(destination.x, destination.y, rules.terrain)

    agent = world.agents[agent_id]
    agent.x = destination.x
    agent.y = destination.y
    agent.available_after = now + rules.movement.cooldown_for(cell)

    return MoveOutcome(
        agent_id=agent_id,
        x=agent.x,
        y=agent.y,
        terrain=cell,
        available_after=agent.available_after,
    )


def are_adjacent(world: World, a: AgentID, b: AgentID) -> bool:
    """True when both agents are alive and within one king-move of each other."""

    first = get_agent(world, a)
    second = get_agent(world, b)
    if not (first.alive and second.alive):
        return False
    return chebyshev_distance(GridCoord(first.x, first.y), GridCoord(second.x, second.y)) <= 1


def require_adjacent(world: World, a: AgentID, b: AgentID) -> None:
    if not are_adjacent(world, a, b):
        raise PreconditionViolation(f"agents {a!r} and {b!r} are not adjacent")
