"""Dataclasses describing every StakeGrid entity.

The rules layer operates purely on these in-memory types.  A single
:class:`World` owns the roster, the vaults, the alliance bookkeeping and the
event log; every rule function receives it explicitly, so there is no
module-level state anywhere in the domain.

Persistence adapters (see :mod:`stakegrid.repository`) serialise the
aggregate as a whole.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import NewType

from .enums import EventType, Terrain

# --- Strongly typed identifiers -------------------------------------------------

WorldID = NewType("WorldID", int)
AgentID = NewType("AgentID", str)
StakerID = NewType("StakerID", str)
EventID = NewType("EventID", int)


# --- Core dataclasses -----------------------------------------------------------


@dataclass(slots=True)
class AgentSpec:
    """Initial roster entry supplied when a world is created."""

    id: AgentID
    name: str
    x: int
    y: int


@dataclass(slots=True)
class Agent:
    """Roster entrant with position, liveness, cooldown and alliance state."""

    id: AgentID
    name: str
    x: int
    y: int
    available_after: int = 0
    alive: bool = True
    alliance: AgentID | None = None

    @property
    def position(self) -> tuple[int, int]:
        return (self.x, self.y)


@dataclass(slots=True)
class Vault:
    """Share-based accounting of value staked on one agent."""

    agent_id: AgentID
    total_staked: int = 0
    total_shares: int = 0
    shares: dict[StakerID, int] = field(default_factory=dict)

    def shares_of(self, staker: StakerID) -> int:
        return self.shares.get(staker, 0)


@dataclass(slots=True)
class PendingWithdrawal:
    """Redemption locked by ``request_withdraw`` and released after a delay."""

    agent_id: AgentID
    staker: StakerID
    shares: int
    amount: int
    requested_at: int
    available_at: int


@dataclass(slots=True)
class Event:
    """Notification record emitted by a mutating operation."""

    id: EventID
    world_id: WorldID
    timestamp: int
    event_type: EventType
    agents: list[AgentID]
    details: dict[str, object] = field(default_factory=dict)


@dataclass(slots=True)
class MoveOutcome:
    """Result of a successful move."""

    agent_id: AgentID
    x: int
    y: int
    terrain: Terrain
    available_after: int


@dataclass(slots=True)
class World:
    """Root aggregate owning all protocol state."""

    id: WorldID
    name: str
    width: int
    height: int
    created_at: int
    agents: dict[AgentID, Agent] = field(default_factory=dict)
    vaults: dict[AgentID, Vault] = field(default_factory=dict)
    alliance_proposals: dict[AgentID, list[AgentID]] = field(default_factory=dict)
    alliance_cooldowns: dict[str, int] = field(default_factory=dict)
    pending_challenges: dict[AgentID, AgentID] = field(default_factory=dict)
    pending_withdrawals: dict[str, PendingWithdrawal] = field(default_factory=dict)
    events: list[Event] = field(default_factory=list)
    battle_count: int = 0
