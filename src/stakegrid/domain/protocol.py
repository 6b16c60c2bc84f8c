"""Protocol orchestration for a StakeGrid world.

:class:`GridProtocol` is the only entry point that mutates a :class:`World`.
Each operation validates every precondition first, performs any external
token transfer next and only then mutates state, so a rejected or failed
operation leaves the world untouched.  Every successful mutation appends an
:class:`Event` to the world's log.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from stakegrid.domain import alliance, battle, movement, terrain, vault
from stakegrid.domain.enums import BattleProtocol, EventType, Terrain, WithdrawalPolicy
from stakegrid.domain.errors import ExternalTransferFailure, PreconditionViolation
from stakegrid.domain.models import (
    Agent,
    AgentID,
    AgentSpec,
    Event,
    EventID,
    MoveOutcome,
    PendingWithdrawal,
    StakerID,
    Vault,
    World,
    WorldID,
)
from stakegrid.domain.rules_config import DEFAULT_RULES, RulesConfig
from stakegrid.interfaces import IClock, IRandomSource, ITokenLedger
from stakegrid.utils.grid_math import GridCoord, in_bounds

logger = logging.getLogger(__name__)


def create_world(
    world_id: WorldID,
    name: str,
    roster: Sequence[AgentSpec],
    *,
    created_at: int,
    rules: RulesConfig = DEFAULT_RULES,
) -> World:
    """Build a world with the fixed roster and emit ``WORLD_CREATED``."""

    grid = rules.grid
    if len(roster) != grid.roster_size:
        raise PreconditionViolation(
            f"a world needs exactly {grid.roster_size} agents, got {len(roster)}"
        )
    ids = [spec.id for spec in roster]
    if len(set(ids)) != len(ids):
        raise PreconditionViolation("agent ids must be unique")
    for spec in roster:
        if not spec.id:
            raise PreconditionViolation("agent ids must be non-empty")
        if not in_bounds(GridCoord(spec.x, spec.y), grid.width, grid.height):
            raise PreconditionViolation(
                f"agent {spec.id!r} starts off the {grid.width}x{grid.height} grid"
            )

    world = World(
        id=world_id,
        name=name,
        width=grid.width,
        height=grid.height,
        created_at=created_at,
        agents={
            spec.id: Agent(id=spec.id, name=spec.name, x=spec.x, y=spec.y) for spec in roster
        },
    )
    _append_event(
        world,
        created_at,
        EventType.WORLD_CREATED,
        ids,
        {
            "name": name,
            "width": world.width,
            "height": world.height,
            "positions": {spec.id: [spec.x, spec.y] for spec in roster},
        },
    )
    return world


def _append_event(
    world: World,
    timestamp: int,
    event_type: EventType,
    agents: Sequence[AgentID],
    details: dict[str, object],
) -> Event:
    event = Event(
        id=EventID(len(world.events) + 1),
        world_id=world.id,
        timestamp=timestamp,
        event_type=event_type,
        agents=list(agents),
        details=details,
    )
    world.events.append(event)
    return event


class GridProtocol:
    """Exposes the operation set of one world.

    The clock, token ledger and randomness source are injected so that the
    same rules run against production adapters and deterministic doubles.
    """

    def __init__(
        self,
        world: World,
        *,
        ledger: ITokenLedger,
        clock: IClock,
        randomness: IRandomSource,
        rules: RulesConfig = DEFAULT_RULES,
    ) -> None:
        self.world = world
        self._ledger = ledger
        self._clock = clock
        self._randomness = randomness
        self.rules = rules

    def _emit(
        self, event_type: EventType, agents: Sequence[AgentID], details: dict[str, object]
    ) -> Event:
        event = _append_event(self.world, self._clock.now(), event_type, agents, details)
        logger.info(
            "world %s: %s %s", int(self.world.id), event_type, ", ".join(event.agents)
        )
        return event

    # --- Movement ---------------------------------------------------------------

    def move(self, agent_id: AgentID, dx: int, dy: int) -> MoveOutcome:
        outcome = movement.move(
            self.world, agent_id, dx, dy, now=self._clock.now(), rules=self.rules
        )
        self._emit(
            EventType.AGENT_MOVED,
            [agent_id],
            {
                "x": outcome.x,
                "y": outcome.y,
                "terrain": str(outcome.terrain),
                "available_after": outcome.available_after,
            },
        )
        return outcome

    # --- Vaults -----------------------------------------------------------------

    def stake(self, staker: StakerID, agent_id: AgentID, amount: int) -> int:
        """Deposit ``amount`` on ``agent_id`` and return the shares minted."""

        self._require_external_staker(staker)
        movement.require_alive(self.world, agent_id)
        minted = vault.shares_for_deposit(vault.get_vault(self.world, agent_id), amount)

        if not self._ledger.transfer_from(staker, amount):
            raise ExternalTransferFailure(f"could not debit {amount} from {staker!r}")

        target = vault.ensure_vault(self.world, agent_id)
        vault.apply_deposit(target, staker, amount, minted)
        self._emit(
            EventType.STAKED,
            [agent_id],
            {
                "staker": staker,
                "amount": amount,
                "shares": minted,
                "total_staked": target.total_staked,
                "total_shares": target.total_shares,
            },
        )
        return minted

    def withdraw(self, staker: StakerID, agent_id: AgentID, shares: int) -> int:
        """Burn ``shares`` and pay out the underlying; returns the amount paid."""

        self._require_external_staker(staker)
        self._require_withdrawal_policy(WithdrawalPolicy.IMMEDIATE)
        movement.get_agent(self.world, agent_id)
        source = vault.get_vault(self.world, agent_id)
        vault.require_share_balance(source, staker, shares)
        amount = vault.amount_for_shares(source, shares)

        if amount and not self._ledger.transfer(staker, amount):
            raise ExternalTransferFailure(f"could not credit {amount} to {staker!r}")

        vault.apply_withdrawal(self.world.vaults[agent_id], staker, shares, amount)
        self._emit(
            EventType.WITHDRAWN,
            [agent_id],
            {
                "staker": staker,
                "shares": shares,
                "amount": amount,
                "total_staked": source.total_staked,
                "total_shares": source.total_shares,
            },
        )
        return amount

    def request_withdraw(
        self, staker: StakerID, agent_id: AgentID, shares: int
    ) -> PendingWithdrawal:
        """Lock ``shares`` now and schedule the payout after the withdrawal delay."""

        self._require_external_staker(staker)
        self._require_withdrawal_policy(WithdrawalPolicy.DELAYED)
        movement.get_agent(self.world, agent_id)
        pending = vault.lock_withdrawal(
            self.world,
            agent_id,
            staker,
            shares,
            now=self._clock.now(),
            delay_seconds=self.rules.vault.withdrawal_delay_seconds,
        )
        self._emit(
            EventType.WITHDRAWAL_REQUESTED,
            [agent_id],
            {
                "staker": staker,
                "shares": shares,
                "amount": pending.amount,
                "available_at": pending.available_at,
            },
        )
        return pending

    def complete_withdraw(self, staker: StakerID, agent_id: AgentID) -> int:
        self._require_withdrawal_policy(WithdrawalPolicy.DELAYED)
        movement.get_agent(self.world, agent_id)
        pending = vault.require_mature_withdrawal(
            self.world, agent_id, staker, now=self._clock.now()
        )

        if pending.amount and not self._ledger.transfer(staker, pending.amount):
            raise ExternalTransferFailure(f"could not credit {pending.amount} to {staker!r}")

        vault.release_withdrawal(self.world, pending)
        self._emit(
            EventType.WITHDRAWAL_COMPLETED,
            [agent_id],
            {"staker": staker, "shares": pending.shares, "amount": pending.amount},
        )
        return pending.amount

    def _require_withdrawal_policy(self, policy: WithdrawalPolicy) -> None:
        active = self.rules.vault.withdrawal_policy
        if active != policy:
            raise PreconditionViolation(f"operation unavailable under {active} withdrawal policy")

    def _require_external_staker(self, staker: StakerID) -> None:
        if staker == self._ledger.custody_account:
            raise PreconditionViolation(f"{staker!r} is the custody account and cannot stake")

    # --- Battles ----------------------------------------------------------------

    def challenge_battle(
        self, challenger: AgentID, opponent: AgentID
    ) -> battle.BattleResult | None:
        """Challenge an adjacent agent.

        Under the immediate protocol the battle resolves at once and the result
        is returned.  Under challenge/accept the challenge is recorded and
        ``None`` is returned.
        """

        if self.rules.battle.protocol == BattleProtocol.IMMEDIATE:
            return self._resolve(challenger, opponent)

        replaced = battle.record_challenge(self.world, challenger, opponent)
        self._emit(
            EventType.BATTLE_CHALLENGED,
            [challenger, opponent],
            {"challenger": challenger, "opponent": opponent, "replaced": replaced},
        )
        return None

    def accept_battle(self, opponent: AgentID, challenger: AgentID) -> battle.BattleResult:
        """Accept a pending challenge from ``challenger`` and resolve it."""

        if self.rules.battle.protocol != BattleProtocol.CHALLENGE_ACCEPT:
            raise PreconditionViolation(
                f"battles resolve immediately under the {self.rules.battle.protocol} protocol"
            )
        battle.take_challenge(self.world, opponent, challenger)
        result = self._resolve(challenger, opponent)
        self.world.pending_challenges.pop(challenger, None)
        return result

    def _resolve(self, challenger: AgentID, opponent: AgentID) -> battle.BattleResult:
        battle.validate_battle(self.world, challenger, opponent)
        random_value = self._randomness.draw(
            timestamp=self._clock.now(), challenger=challenger, opponent=opponent
        )
        result = battle.resolve_battle(
            self.world, challenger, opponent, random_value, rules=self.rules.battle
        )
        self._emit(
            EventType.BATTLE_RESOLVED,
            [challenger, opponent],
            {
                "challenger": challenger,
                "opponent": opponent,
                "challenger_stake": result.challenger_stake,
                "opponent_stake": result.opponent_stake,
                "threshold": result.threshold,
                "outcome": result.outcome,
                "winner": result.winner,
                "loser": result.loser,
                "payout_pct": result.payout_pct,
                "payout": result.payout,
                "eliminated": result.eliminated,
            },
        )
        if result.eliminated:
            self._emit(
                EventType.AGENT_ELIMINATED,
                [result.loser],
                {"killed_by": result.winner, "dissolved_alliance": result.dissolved_alliance},
            )
        return result

    # --- Alliances --------------------------------------------------------------

    def propose_alliance(self, proposer: AgentID, target: AgentID) -> alliance.ProposalOutcome:
        outcome = alliance.propose(self.world, proposer, target, now=self._clock.now())
        if outcome.formed:
            self._emit(EventType.ALLIANCE_FORMED, [proposer, target], {})
        else:
            self._emit(
                EventType.ALLIANCE_PROPOSED,
                [proposer, target],
                {"proposer": proposer, "target": target},
            )
        return outcome

    def break_alliance(self, agent_id: AgentID) -> AgentID:
        """Break ``agent_id``'s alliance; returns the former ally."""

        former = alliance.break_alliance(
            self.world, agent_id, now=self._clock.now(), rules=self.rules.alliance
        )
        self._emit(
            EventType.ALLIANCE_BROKEN,
            [agent_id, former],
            {"cooldown_until": alliance.cooldown_until(self.world, agent_id, former)},
        )
        return former

    # --- Queries ----------------------------------------------------------------

    def agent(self, agent_id: AgentID) -> Agent:
        return movement.get_agent(self.world, agent_id)

    def roster(self) -> list[Agent]:
        return list(self.world.agents.values())

    def vault(self, agent_id: AgentID) -> Vault:
        movement.get_agent(self.world, agent_id)
        return vault.get_vault(self.world, agent_id)

    def shares_of(self, agent_id: AgentID, staker: StakerID) -> int:
        return self.vault(agent_id).shares_of(staker)

    def alliance_cooldown(self, a: AgentID, b: AgentID) -> int:
        movement.get_agent(self.world, a)
        movement.get_agent(self.world, b)
        return alliance.cooldown_until(self.world, a, b)

    def are_adjacent(self, a: AgentID, b: AgentID) -> bool:
        return movement.are_adjacent(self.world, a, b)

    def terrain_at(self, x: int, y: int) -> Terrain:
        if not in_bounds(GridCoord(x, y), self.world.width, self.world.height):
            raise PreconditionViolation(f"cell ({x}, {y}) is off the grid")
        return terrain.classify(x, y, self.rules.terrain)

    def effective_stake(self, agent_id: AgentID) -> int:
        movement.get_agent(self.world, agent_id)
        return battle.effective_stake(self.world, agent_id)

    def pending_challenge(self, challenger: AgentID) -> AgentID | None:
        return self.world.pending_challenges.get(challenger)

    def pending_withdrawal(
        self, agent_id: AgentID, staker: StakerID
    ) -> PendingWithdrawal | None:
        return vault.get_pending_withdrawal(self.world, agent_id, staker)
