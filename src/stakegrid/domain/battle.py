"""Battle resolution rules.

Odds come from each side's *effective stake*: the agent's own vault plus its
ally's vault.  A single 256-bit random draw decides everything:

* ``draw % scale`` is compared against ``threshold = stake_a * scale //
  (stake_a + stake_b)`` where ``stake_a`` is the opponent side and
  ``stake_b`` the challenger side; the challenger wins when the roll is below
  the threshold.
* bits 64 and up pick the payout percentage from the inclusive range
  ``payout_min_pct..payout_max_pct``.
* bits 128 and up decide elimination (``% 100 < elimination_pct``).

The loser's vault pays the winner's vault; on elimination it pays
everything and the loser is permanently out.  Shares never move, only the
underlying, so the sum of the two vaults is conserved.
"""

from __future__ import annotations

from dataclasses import dataclass

from stakegrid.domain import alliance
from stakegrid.domain.errors import PreconditionViolation
from stakegrid.domain.models import AgentID, World
from stakegrid.domain.movement import require_adjacent, require_alive
from stakegrid.domain.rules_config import DEFAULT_RULES, BattleRules
from stakegrid.domain.vault import ensure_vault, get_vault, transfer_underlying

PAYOUT_SHIFT = 64
ELIMINATION_SHIFT = 128
PERCENT = 100


@dataclass(slots=True)
class BattleRoll:
    """Values derived from one random draw."""

    outcome: int
    payout_pct: int
    elimination_roll: int


@dataclass(slots=True)
class BattleResult:
    """Summary of a resolved battle."""

    challenger: AgentID
    opponent: AgentID
    challenger_stake: int
    opponent_stake: int
    threshold: int
    outcome: int
    winner: AgentID
    loser: AgentID
    payout_pct: int
    payout: int
    eliminated: bool
    dissolved_alliance: AgentID | None = None

    @property
    def challenger_won(self) -> bool:
        return self.winner == self.challenger


def effective_stake(world: World, agent_id: AgentID) -> int:
    """Own vault underlying plus the ally's, if any."""

    agent = world.agents[agent_id]
    stake = get_vault(world, agent_id).total_staked
    if agent.alliance is not None:
        stake += get_vault(world, agent.alliance).total_staked
    return stake


def split_draw(random_value: int, rules: BattleRules = DEFAULT_RULES.battle) -> BattleRoll:
    """Derive the outcome roll, payout percentage and elimination roll."""

    if random_value < 0:
        raise ValueError(f"random draw must be non-negative, got {random_value}")
    span = rules.payout_max_pct - rules.payout_min_pct + 1
    return BattleRoll(
        outcome=random_value % rules.probability_scale,
        payout_pct=rules.payout_min_pct + (random_value >> PAYOUT_SHIFT) % span,
        elimination_roll=(random_value >> ELIMINATION_SHIFT) % PERCENT,
    )


def win_threshold(opponent_stake: int, challenger_stake: int, scale: int) -> int:
    total = opponent_stake + challenger_stake
    if total <= 0:
        raise PreconditionViolation("battle requires a positive combined stake")
    return opponent_stake * scale // total


def validate_battle(world: World, challenger: AgentID, opponent: AgentID) -> None:
    """Check every precondition shared by challenges and resolutions."""

    if challenger == opponent:
        raise PreconditionViolation("an agent cannot battle itself")
    first = require_alive(world, challenger)
    require_alive(world, opponent)
    require_adjacent(world, challenger, opponent)
    if first.alliance == opponent:
        raise PreconditionViolation(f"agents {challenger!r} and {opponent!r} are allied")
    if effective_stake(world, challenger) + effective_stake(world, opponent) <= 0:
        raise PreconditionViolation("battle requires a positive combined stake")


def resolve_battle(
    world: World,
    challenger: AgentID,
    opponent: AgentID,
    random_value: int,
    *,
    rules: BattleRules = DEFAULT_RULES.battle,
) -> BattleResult:
    """Resolve a battle and apply payout and elimination to ``world``."""

    validate_battle(world, challenger, opponent)

    challenger_stake = effective_stake(world, challenger)
    opponent_stake = effective_stake(world, opponent)
    threshold = win_threshold(opponent_stake, challenger_stake, rules.probability_scale)
    roll = split_draw(random_value, rules)

    if roll.outcome < threshold:
        winner, loser = challenger, opponent
    else:
        winner, loser = opponent, challenger

    eliminated = roll.elimination_roll < rules.elimination_pct
    loser_vault = ensure_vault(world, loser)
    winner_vault = ensure_vault(world, winner)
    if eliminated:
        payout = loser_vault.total_staked
    else:
        payout = loser_vault.total_staked * roll.payout_pct // PERCENT
    transfer_underlying(loser_vault, winner_vault, payout)

    dissolved = None
    if eliminated:
        dissolved = _eliminate(world, loser)

    world.battle_count += 1
    return BattleResult(
        challenger=challenger,
        opponent=opponent,
        challenger_stake=challenger_stake,
        opponent_stake=opponent_stake,
        threshold=threshold,
        outcome=roll.outcome,
        winner=winner,
        loser=loser,
        payout_pct=PERCENT if eliminated else roll.payout_pct,
        payout=payout,
        eliminated=eliminated,
        dissolved_alliance=dissolved,
    )


def _eliminate(world: World, agent_id: AgentID) -> AgentID | None:
    world.agents[agent_id].alive = False
    ally = alliance.dissolve(world, agent_id)

    world.alliance_proposals.pop(agent_id, None)
    for proposer in list(world.alliance_proposals):
        targets = [t for t in world.alliance_proposals[proposer] if t != agent_id]
        if targets:
            world.alliance_proposals[proposer] = targets
        else:
            del world.alliance_proposals[proposer]

    world.pending_challenges = {
        challenger: target
        for challenger, target in world.pending_challenges.items()
        if agent_id not in (challenger, target)
    }
    return ally


# --- Challenge/accept protocol --------------------------------------------------


def record_challenge(world: World, challenger: AgentID, opponent: AgentID) -> AgentID | None:
    """Store a pending challenge; returns the opponent of any replaced challenge."""

    validate_battle(world, challenger, opponent)
    previous = world.pending_challenges.get(challenger)
    world.pending_challenges[challenger] = opponent
    return previous


def take_challenge(world: World, opponent: AgentID, challenger: AgentID) -> None:
    """Check that ``challenger`` has challenged ``opponent`` and is still eligible."""

    if world.pending_challenges.get(challenger) != opponent:
        raise PreconditionViolation(
            f"agent {challenger!r} has no pending challenge against {opponent!r}"
        )
    validate_battle(world, challenger, opponent)
