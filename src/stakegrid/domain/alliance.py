"""Alliance proposal, formation and cooldown rules.

Per unordered pair of agents the relation moves through::

    no relation -> one side proposed -> allied -> broken (cooldown) -> no relation

An alliance needs a proposal in each direction.  Agents that are already
allied can neither propose nor be proposed to; they must break first.
Breaking starts a cooldown keyed on the unordered pair, so it blocks new
proposals in both directions.
"""

from __future__ import annotations

from dataclasses import dataclass

from stakegrid.domain.errors import PreconditionViolation
from stakegrid.domain.models import AgentID, World
from stakegrid.domain.movement import get_agent, require_adjacent, require_alive
from stakegrid.domain.rules_config import DEFAULT_RULES, AllianceRules


@dataclass(slots=True)
class ProposalOutcome:
    """Result of a proposal: either pending or a freshly formed alliance."""

    proposer: AgentID
    target: AgentID
    formed: bool


def pair_key(a: AgentID, b: AgentID) -> str:
    """Order-independent key for an unordered pair of agents."""

    first, second = sorted((a, b))
    return f"{first}|{second}"


def cooldown_until(world: World, a: AgentID, b: AgentID) -> int:
    """Return the time before which ``a`` and ``b`` may not ally (0 if never broken)."""

    return world.alliance_cooldowns.get(pair_key(a, b), 0)


def cooldown_active(world: World, a: AgentID, b: AgentID, *, now: int) -> bool:
    return now < cooldown_until(world, a, b)


def has_proposed(world: World, proposer: AgentID, target: AgentID) -> bool:
    return target in world.alliance_proposals.get(proposer, [])


def _clear_proposal(world: World, proposer: AgentID, target: AgentID) -> None:
    targets = world.alliance_proposals.get(proposer)
    if not targets:
        return
    remaining = [agent for agent in targets if agent != target]
    if remaining:
        world.alliance_proposals[proposer] = remaining
    else:
        world.alliance_proposals.pop(proposer, None)


def validate_proposal(world: World, proposer: AgentID, target: AgentID, *, now: int) -> None:
    if proposer == target:
        raise PreconditionViolation("an agent cannot ally with itself")
    first = require_alive(world, proposer)
    second = require_alive(world, target)
    require_adjacent(world, proposer, target)
    if first.alliance is not None:
        raise PreconditionViolation(f"agent {proposer!r} is already allied with {first.alliance!r}")
    if second.alliance is not None:
        raise PreconditionViolation(f"agent {target!r} is already allied with {second.alliance!r}")
    if cooldown_active(world, proposer, target, now=now):
        raise PreconditionViolation(
            f"alliance between {proposer!r} and {target!r} is on cooldown until "
            f"{cooldown_until(world, proposer, target)}"
        )


def propose(world: World, proposer: AgentID, target: AgentID, *, now: int) -> ProposalOutcome:
    """Record a proposal and form the alliance when it is mutual."""

    validate_proposal(world, proposer, target, now=now)

    if has_proposed(world, target, proposer):
        _clear_proposal(world, target, proposer)
        _clear_proposal(world, proposer, target)
        world.agents[proposer].alliance = target
        world.agents[target].alliance = proposer
        return ProposalOutcome(proposer=proposer, target=target, formed=True)

    if not has_proposed(world, proposer, target):
        world.alliance_proposals.setdefault(proposer, []).append(target)
    return ProposalOutcome(proposer=proposer, target=target, formed=False)


def break_alliance(
    world: World,
    agent_id: AgentID,
    *,
    now: int,
    rules: AllianceRules = DEFAULT_RULES.alliance,
) -> AgentID:
    """Dissolve ``agent_id``'s alliance and start the pair cooldown.

    Returns the former ally.
    """

    agent = get_agent(world, agent_id)
    if agent.alliance is None:
        raise PreconditionViolation(f"agent {agent_id!r} is not allied")
    ally_id = agent.alliance
    agent.alliance = None
    ally = world.agents.get(ally_id)
    if ally is not None and ally.alliance == agent_id:
        ally.alliance = None
    world.alliance_cooldowns[pair_key(agent_id, ally_id)] = now + rules.cooldown_seconds
    return ally_id


def dissolve(world: World, agent_id: AgentID) -> AgentID | None:
    """Drop an alliance without a cooldown (used when a member dies)."""

    agent = get_agent(world, agent_id)
    ally_id = agent.alliance
    if ally_id is None:
        return None
    agent.alliance = None
    ally = world.agents.get(ally_id)
    if ally is not None and ally.alliance == agent_id:
        ally.alliance = None
    return ally_id
