"""HTTP routes for the StakeGrid API."""

from __future__ import annotations

import asyncio
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from pydantic import BaseModel, Field

from stakegrid.api.runtime import ApiState
from stakegrid.database import check_database_health
from stakegrid.domain import models as dm
from stakegrid.domain.battle import BattleResult
from stakegrid.domain.enums import EventType
from stakegrid.domain.errors import (
    ExternalTransferFailure,
    PreconditionViolation,
    UnknownAgentError,
)
from stakegrid.domain.protocol import GridProtocol

router = APIRouter()


def get_state(request: Request) -> ApiState:
    state = getattr(request.app.state, "api_state", None)
    if state is None:  # pragma: no cover - FastAPI should always initialise state
        raise RuntimeError("API state not initialised")
    return state


ApiStateDep = Annotated[ApiState, Depends(get_state)]


@contextmanager
def domain_errors() -> Iterator[None]:
    """Translate protocol exceptions into HTTP responses."""

    try:
        yield
    except FileNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="world not found") from exc
    except UnknownAgentError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except PreconditionViolation as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except ExternalTransferFailure as exc:
        raise HTTPException(status_code=status.HTTP_402_PAYMENT_REQUIRED, detail=str(exc)) from exc


# --- Schemas ---------------------------------------------------------------------


class AgentSeed(BaseModel):
    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    x: int = Field(ge=0)
    y: int = Field(ge=0)


class CreateWorldRequest(BaseModel):
    name: str = Field(min_length=1)
    agents: list[AgentSeed]


class AgentView(BaseModel):
    id: str
    name: str
    x: int
    y: int
    terrain: str
    available_after: int
    alive: bool
    alliance: str | None


class VaultView(BaseModel):
    agent_id: str
    total_staked: int
    total_shares: int
    effective_stake: int
    stakers: dict[str, int]


class WorldSummary(BaseModel):
    id: int
    name: str
    width: int
    height: int
    created_at: int
    battle_count: int
    alive_agents: int
    event_count: int


class WorldDetail(WorldSummary):
    agents: list[AgentView]
    vaults: list[VaultView]
    pending_challenges: dict[str, str]
    terrain: list[list[str]]


class MoveRequest(BaseModel):
    dx: int = Field(ge=-1, le=1)
    dy: int = Field(ge=-1, le=1)


class MoveResponse(BaseModel):
    agent_id: str
    x: int
    y: int
    terrain: str
    available_after: int


class TerrainResponse(BaseModel):
    x: int
    y: int
    terrain: str


class AdjacencyResponse(BaseModel):
    a: str
    b: str
    adjacent: bool


class PendingWithdrawalView(BaseModel):
    agent_id: str
    staker: str
    shares: int
    amount: int
    requested_at: int
    available_at: int


class ShareBalance(BaseModel):
    agent_id: str
    staker: str
    shares: int
    pending_withdrawal: PendingWithdrawalView | None = None


class StakeRequest(BaseModel):
    staker: str = Field(min_length=1)
    amount: int = Field(gt=0)


class StakeResponse(BaseModel):
    agent_id: str
    staker: str
    amount: int
    shares: int


class WithdrawRequest(BaseModel):
    staker: str = Field(min_length=1)
    shares: int = Field(gt=0)


class WithdrawResponse(BaseModel):
    agent_id: str
    staker: str
    shares: int
    amount: int


class CompleteWithdrawRequest(BaseModel):
    staker: str = Field(min_length=1)


class ChallengeRequest(BaseModel):
    challenger: str = Field(min_length=1)
    opponent: str = Field(min_length=1)


class BattleView(BaseModel):
    challenger: str
    opponent: str
    challenger_stake: int
    opponent_stake: int
    threshold: int
    outcome: int
    winner: str
    loser: str
    payout_pct: int
    payout: int
    eliminated: bool


class ChallengeResponse(BaseModel):
    status: str
    result: BattleView | None = None


class ProposeRequest(BaseModel):
    proposer: str = Field(min_length=1)
    target: str = Field(min_length=1)


class ProposeResponse(BaseModel):
    proposer: str
    target: str
    formed: bool


class BreakRequest(BaseModel):
    agent: str = Field(min_length=1)


class BreakResponse(BaseModel):
    agent: str
    former_ally: str
    cooldown_until: int


class CooldownResponse(BaseModel):
    a: str
    b: str
    cooldown_until: int
    active: bool


class EventView(BaseModel):
    id: int
    timestamp: int
    event_type: str
    agents: list[str]
    details: dict[str, object]


class TokenBalance(BaseModel):
    account: str
    balance: int


class MintRequest(BaseModel):
    account: str = Field(min_length=1)
    amount: int = Field(gt=0)


# --- Serialisation helpers -------------------------------------------------------


def _agent_view(protocol: GridProtocol, agent: dm.Agent) -> AgentView:
    return AgentView(
        id=agent.id,
        name=agent.name,
        x=agent.x,
        y=agent.y,
        terrain=str(protocol.terrain_at(agent.x, agent.y)),
        available_after=agent.available_after,
        alive=agent.alive,
        alliance=agent.alliance,
    )


def _vault_view(protocol: GridProtocol, agent_id: dm.AgentID) -> VaultView:
    vault = protocol.vault(agent_id)
    return VaultView(
        agent_id=agent_id,
        total_staked=vault.total_staked,
        total_shares=vault.total_shares,
        effective_stake=protocol.effective_stake(agent_id),
        stakers=dict(vault.shares),
    )


def _summary(world: dm.World) -> WorldSummary:
    return WorldSummary(
        id=int(world.id),
        name=world.name,
        width=world.width,
        height=world.height,
        created_at=world.created_at,
        battle_count=world.battle_count,
        alive_agents=sum(1 for agent in world.agents.values() if agent.alive),
        event_count=len(world.events),
    )


def _detail(protocol: GridProtocol) -> WorldDetail:
    world = protocol.world
    return WorldDetail(
        **_summary(world).model_dump(),
        agents=[_agent_view(protocol, agent) for agent in protocol.roster()],
        vaults=[_vault_view(protocol, agent_id) for agent_id in world.agents],
        pending_challenges=dict(world.pending_challenges),
        terrain=[
            [str(protocol.terrain_at(x, y)) for x in range(world.width)]
            for y in range(world.height)
        ],
    )


def _battle_view(result: BattleResult) -> BattleView:
    return BattleView(
        challenger=result.challenger,
        opponent=result.opponent,
        challenger_stake=result.challenger_stake,
        opponent_stake=result.opponent_stake,
        threshold=result.threshold,
        outcome=result.outcome,
        winner=result.winner,
        loser=result.loser,
        payout_pct=result.payout_pct,
        payout=result.payout,
        eliminated=result.eliminated,
    )


def _pending_view(pending: dm.PendingWithdrawal) -> PendingWithdrawalView:
    return PendingWithdrawalView(
        agent_id=pending.agent_id,
        staker=pending.staker,
        shares=pending.shares,
        amount=pending.amount,
        requested_at=pending.requested_at,
        available_at=pending.available_at,
    )


# --- Worlds ----------------------------------------------------------------------


@router.get("/health")
async def health(state: ApiStateDep) -> dict[str, object]:
    rules = state.rules
    return {
        "status": "ok",
        "database": await asyncio.to_thread(check_database_health, state.engine),
        "grid": [rules.grid.width, rules.grid.height],
        "battle_protocol": str(rules.battle.protocol),
        "withdrawal_policy": str(rules.vault.withdrawal_policy),
    }


@router.get("/worlds", response_model=list[WorldSummary])
async def list_worlds(state: ApiStateDep) -> list[WorldSummary]:
    return [_summary(world) for world in await state.worlds.list_worlds()]


@router.post("/worlds", response_model=WorldDetail, status_code=status.HTTP_201_CREATED)
async def create_world(request: CreateWorldRequest, state: ApiStateDep) -> WorldDetail:
    roster = [
        dm.AgentSpec(id=dm.AgentID(seed.id), name=seed.name, x=seed.x, y=seed.y)
        for seed in request.agents
    ]
    with domain_errors():
        world = await state.worlds.create(request.name, roster)
    return _detail(state.worlds.protocol_for(world))


@router.get("/worlds/{world_id}", response_model=WorldDetail)
async def get_world(world_id: int, state: ApiStateDep) -> WorldDetail:
    with domain_errors():
        return await state.worlds.inspect(dm.WorldID(world_id), _detail)


@router.get("/worlds/{world_id}/agents", response_model=list[AgentView])
async def list_agents(world_id: int, state: ApiStateDep) -> list[AgentView]:
    with domain_errors():
        return await state.worlds.inspect(
            dm.WorldID(world_id),
            lambda protocol: [
                _agent_view(protocol, agent) for agent in protocol.roster()
            ],
        )


@router.get("/worlds/{world_id}/agents/{agent_id}", response_model=AgentView)
async def get_agent(world_id: int, agent_id: str, state: ApiStateDep) -> AgentView:
    with domain_errors():
        return await state.worlds.inspect(
            dm.WorldID(world_id),
            lambda protocol: _agent_view(protocol, protocol.agent(dm.AgentID(agent_id))),
        )


@router.post("/worlds/{world_id}/agents/{agent_id}/move", response_model=MoveResponse)
async def move_agent(
    world_id: int, agent_id: str, request: MoveRequest, state: ApiStateDep
) -> MoveResponse:
    with domain_errors():
        outcome = await state.worlds.execute(
            dm.WorldID(world_id),
            lambda protocol: protocol.move(dm.AgentID(agent_id), request.dx, request.dy),
        )
    return MoveResponse(
        agent_id=outcome.agent_id,
        x=outcome.x,
        y=outcome.y,
        terrain=str(outcome.terrain),
        available_after=outcome.available_after,
    )


@router.get("/worlds/{world_id}/terrain", response_model=TerrainResponse)
async def get_terrain(
    world_id: int,
    state: ApiStateDep,
    x: Annotated[int, Query()],
    y: Annotated[int, Query()],
) -> TerrainResponse:
    with domain_errors():
        terrain = await state.worlds.inspect(
            dm.WorldID(world_id), lambda protocol: protocol.terrain_at(x, y)
        )
    return TerrainResponse(x=x, y=y, terrain=str(terrain))


@router.get("/worlds/{world_id}/adjacency", response_model=AdjacencyResponse)
async def get_adjacency(
    world_id: int,
    state: ApiStateDep,
    a: Annotated[str, Query()],
    b: Annotated[str, Query()],
) -> AdjacencyResponse:
    with domain_errors():
        adjacent = await state.worlds.inspect(
            dm.WorldID(world_id),
            lambda protocol: protocol.are_adjacent(dm.AgentID(a), dm.AgentID(b)),
        )
    return AdjacencyResponse(a=a, b=b, adjacent=adjacent)


# --- Vaults ----------------------------------------------------------------------


@router.get("/worlds/{world_id}/vaults/{agent_id}", response_model=VaultView)
async def get_vault(world_id: int, agent_id: str, state: ApiStateDep) -> VaultView:
    with domain_errors():
        return await state.worlds.inspect(
            dm.WorldID(world_id), lambda protocol: _vault_view(protocol, dm.AgentID(agent_id))
        )


@router.get(
    "/worlds/{world_id}/vaults/{agent_id}/stakers/{staker}", response_model=ShareBalance
)
async def get_share_balance(
    world_id: int, agent_id: str, staker: str, state: ApiStateDep
) -> ShareBalance:
    def query(protocol: GridProtocol) -> ShareBalance:
        agent_key, staker_key = dm.AgentID(agent_id), dm.StakerID(staker)
        pending = protocol.pending_withdrawal(agent_key, staker_key)
        return ShareBalance(
            agent_id=agent_id,
            staker=staker,
            shares=protocol.shares_of(agent_key, staker_key),
            pending_withdrawal=_pending_view(pending) if pending is not None else None,
        )

    with domain_errors():
        return await state.worlds.inspect(dm.WorldID(world_id), query)


@router.post("/worlds/{world_id}/vaults/{agent_id}/stake", response_model=StakeResponse)
async def stake(
    world_id: int, agent_id: str, request: StakeRequest, state: ApiStateDep
) -> StakeResponse:
    with domain_errors():
        shares = await state.worlds.execute(
            dm.WorldID(world_id),
            lambda protocol: protocol.stake(
                dm.StakerID(request.staker), dm.AgentID(agent_id), request.amount
            ),
        )
    return StakeResponse(
        agent_id=agent_id, staker=request.staker, amount=request.amount, shares=shares
    )


@router.post("/worlds/{world_id}/vaults/{agent_id}/withdraw", response_model=WithdrawResponse)
async def withdraw(
    world_id: int, agent_id: str, request: WithdrawRequest, state: ApiStateDep
) -> WithdrawResponse:
    with domain_errors():
        amount = await state.worlds.execute(
            dm.WorldID(world_id),
            lambda protocol: protocol.withdraw(
                dm.StakerID(request.staker), dm.AgentID(agent_id), request.shares
            ),
        )
    return WithdrawResponse(
        agent_id=agent_id, staker=request.staker, shares=request.shares, amount=amount
    )


@router.post(
    "/worlds/{world_id}/vaults/{agent_id}/withdrawals/request",
    response_model=PendingWithdrawalView,
    status_code=status.HTTP_202_ACCEPTED,
)
async def request_withdrawal(
    world_id: int, agent_id: str, request: WithdrawRequest, state: ApiStateDep
) -> PendingWithdrawalView:
    with domain_errors():
        pending = await state.worlds.execute(
            dm.WorldID(world_id),
            lambda protocol: protocol.request_withdraw(
                dm.StakerID(request.staker), dm.AgentID(agent_id), request.shares
            ),
        )
    return _pending_view(pending)


@router.post(
    "/worlds/{world_id}/vaults/{agent_id}/withdrawals/complete",
    response_model=WithdrawResponse,
)
async def complete_withdrawal(
    world_id: int, agent_id: str, request: CompleteWithdrawRequest, state: ApiStateDep
) -> WithdrawResponse:
    def operation(protocol: GridProtocol) -> WithdrawResponse:
        staker = dm.StakerID(request.staker)
        pending = protocol.pending_withdrawal(dm.AgentID(agent_id), staker)
        amount = protocol.complete_withdraw(staker, dm.AgentID(agent_id))
        return WithdrawResponse(
            agent_id=agent_id,
            staker=request.staker,
            shares=pending.shares if pending is not None else 0,
            amount=amount,
        )

    with domain_errors():
        return await state.worlds.execute(dm.WorldID(world_id), operation)


# --- Battles ---------------------------------------------------------------------


@router.post("/worlds/{world_id}/battles/challenge", response_model=ChallengeResponse)
async def challenge(
    world_id: int, request: ChallengeRequest, state: ApiStateDep
) -> ChallengeResponse:
    with domain_errors():
        result = await state.worlds.execute(
            dm.WorldID(world_id),
            lambda protocol: protocol.challenge_battle(
                dm.AgentID(request.challenger), dm.AgentID(request.opponent)
            ),
        )
    if result is None:
        return ChallengeResponse(status="pending")
    return ChallengeResponse(status="resolved", result=_battle_view(result))


@router.post("/worlds/{world_id}/battles/accept", response_model=ChallengeResponse)
async def accept(world_id: int, request: ChallengeRequest, state: ApiStateDep) -> ChallengeResponse:
    with domain_errors():
        result = await state.worlds.execute(
            dm.WorldID(world_id),
            lambda protocol: protocol.accept_battle(
                dm.AgentID(request.opponent), dm.AgentID(request.challenger)
            ),
        )
    return ChallengeResponse(status="resolved", result=_battle_view(result))


# --- Alliances -------------------------------------------------------------------


@router.post("/worlds/{world_id}/alliances/propose", response_model=ProposeResponse)
async def propose_alliance(
    world_id: int, request: ProposeRequest, state: ApiStateDep
) -> ProposeResponse:
    with domain_errors():
        outcome = await state.worlds.execute(
            dm.WorldID(world_id),
            lambda protocol: protocol.propose_alliance(
                dm.AgentID(request.proposer), dm.AgentID(request.target)
            ),
        )
    return ProposeResponse(proposer=outcome.proposer, target=outcome.target, formed=outcome.formed)


@router.post("/worlds/{world_id}/alliances/break", response_model=BreakResponse)
async def break_alliance(world_id: int, request: BreakRequest, state: ApiStateDep) -> BreakResponse:
    def operation(protocol: GridProtocol) -> BreakResponse:
        agent = dm.AgentID(request.agent)
        former = protocol.break_alliance(agent)
        return BreakResponse(
            agent=agent,
            former_ally=former,
            cooldown_until=protocol.alliance_cooldown(agent, former),
        )

    with domain_errors():
        return await state.worlds.execute(dm.WorldID(world_id), operation)


@router.get("/worlds/{world_id}/alliances/cooldown", response_model=CooldownResponse)
async def get_alliance_cooldown(
    world_id: int,
    state: ApiStateDep,
    a: Annotated[str, Query()],
    b: Annotated[str, Query()],
) -> CooldownResponse:
    with domain_errors():
        until = await state.worlds.inspect(
            dm.WorldID(world_id),
            lambda protocol: protocol.alliance_cooldown(dm.AgentID(a), dm.AgentID(b)),
        )
    return CooldownResponse(a=a, b=b, cooldown_until=until, active=state.clock.now() < until)


# --- Events and tokens -----------------------------------------------------------


@router.get("/worlds/{world_id}/events", response_model=list[EventView])
async def list_events(
    world_id: int,
    state: ApiStateDep,
    since: Annotated[int, Query(ge=0)] = 0,
    event_type: Annotated[EventType | None, Query()] = None,
    limit: Annotated[int | None, Query(ge=1, le=1000)] = None,
) -> list[EventView]:
    with domain_errors():
        events = await state.worlds.events(
            dm.WorldID(world_id), since=since, event_type=event_type, limit=limit
        )
    return [
        EventView(
            id=int(event.id),
            timestamp=event.timestamp,
            event_type=str(event.event_type),
            agents=list(event.agents),
            details=event.details,
        )
        for event in events
    ]


@router.get("/worlds/{world_id}/tokens/{account}", response_model=TokenBalance)
async def get_token_balance(world_id: int, account: str, state: ApiStateDep) -> TokenBalance:
    with domain_errors():
        balance = await state.worlds.balance_of(dm.WorldID(world_id), account)
    return TokenBalance(account=account, balance=balance)


@router.post(
    "/worlds/{world_id}/tokens/mint",
    response_model=TokenBalance,
    status_code=status.HTTP_201_CREATED,
)
async def mint_tokens(world_id: int, request: MintRequest, state: ApiStateDep) -> TokenBalance:
    if not state.settings.enable_faucet:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="faucet disabled")
    with domain_errors():
        balance = await state.worlds.mint(dm.WorldID(world_id), request.account, request.amount)
    return TokenBalance(account=request.account, balance=balance)
