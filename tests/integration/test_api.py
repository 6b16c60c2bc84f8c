"""Integration tests for the FastAPI layer."""

from __future__ import annotations

import pytest
from httpx import ASGITransport, AsyncClient

from stakegrid.api.app import create_app
from stakegrid.api.runtime import ApiState
from stakegrid.config import Settings
from stakegrid.domain import models as dm
from stakegrid.repository import JsonWorldRepository
from stakegrid.services import CUSTODY_ACCOUNT
from stakegrid.utils import ManualClock, SequenceRandomSource, compose_draw

START = 1_700_000_000

ROSTER = [
    {"id": "ash", "name": "Ash", "x": 0, "y": 0},
    {"id": "birch", "name": "Birch", "x": 1, "y": 0},
    {"id": "cedar", "name": "Cedar", "x": 9, "y": 9},
    {"id": "dune", "name": "Dune", "x": 5, "y": 5},
]


def _make_app(tmp_path, *, draws=(), **overrides):
    clock = ManualClock(start=START)
    overrides.setdefault("enable_faucet", True)
    settings = Settings(
        data_dir=tmp_path / "worlds",
        database_url=f"sqlite:///{tmp_path / 'api.db'}",
        **overrides,
    )

    def factory() -> ApiState:
        return ApiState(settings=settings, clock=clock, randomness=SequenceRandomSource(draws))

    app = create_app(state_factory=factory)
    transport = ASGITransport(app=app)
    return app, transport, clock


async def _create_world(client: AsyncClient) -> int:
    response = await client.post("/worlds", json={"name": "Arena", "agents": ROSTER})
    assert response.status_code == 201
    payload = response.json()
    assert len(payload["agents"]) == 4
    assert len(payload["terrain"]) == 10
    return payload["id"]


async def _fund(client: AsyncClient, world_id: int, account: str, amount: int) -> None:
    response = await client.post(
        f"/worlds/{world_id}/tokens/mint", json={"account": account, "amount": amount}
    )
    assert response.status_code == 201


@pytest.mark.asyncio
async def test_world_lifecycle_via_api(tmp_path):
    app, transport, clock = _make_app(tmp_path, draws=[compose_draw(outcome=0)])

    async with (
        app.router.lifespan_context(app),
        AsyncClient(transport=transport, base_url="http://test") as client,
    ):
        response = await client.get("/health")
        assert response.status_code == 200
        health = response.json()
        assert health["status"] == "ok"
        assert health["database"] is True
        assert health["battle_protocol"] == "immediate"

        world_id = await _create_world(client)
        await _fund(client, world_id, "alice", 5_000)
        await _fund(client, world_id, "bob", 5_000)

        response = await client.post(
            f"/worlds/{world_id}/vaults/ash/stake", json={"staker": "alice", "amount": 1_000}
        )
        assert response.status_code == 200
        assert response.json()["shares"] == 1_000

        response = await client.post(
            f"/worlds/{world_id}/vaults/birch/stake", json={"staker": "bob", "amount": 3_000}
        )
        assert response.status_code == 200

        response = await client.post(f"/worlds/{world_id}/agents/ash/move", json={"dx": 1, "dy": 1})
        assert response.status_code == 200
        moved = response.json()
        assert (moved["x"], moved["y"]) == (1, 1)
        assert moved["available_after"] > START

        response = await client.post(f"/worlds/{world_id}/agents/ash/move", json={"dx": 1, "dy": 0})
        assert response.status_code == 409

        response = await client.get(
            f"/worlds/{world_id}/adjacency", params={"a": "ash", "b": "birch"}
        )
        assert response.json()["adjacent"] is True

        response = await client.post(
            f"/worlds/{world_id}/battles/challenge",
            json={"challenger": "ash", "opponent": "birch"},
        )
        assert response.status_code == 200
        battle = response.json()
        assert battle["status"] == "resolved"
        assert battle["result"]["winner"] == "ash"
        assert battle["result"]["payout"] == 630

        response = await client.get(f"/worlds/{world_id}/vaults/ash")
        vault = response.json()
        assert vault["total_staked"] == 1_630
        assert vault["stakers"] == {"alice": 1_000}

        response = await client.post(
            f"/worlds/{world_id}/vaults/ash/withdraw", json={"staker": "alice", "shares": 1_000}
        )
        assert response.status_code == 200
        assert response.json()["amount"] == 1_630

        response = await client.get(f"/worlds/{world_id}/tokens/alice")
        assert response.json()["balance"] == 5_630

        response = await client.post(
            f"/worlds/{world_id}/alliances/propose", json={"proposer": "ash", "target": "birch"}
        )
        assert response.json()["formed"] is False
        response = await client.post(
            f"/worlds/{world_id}/alliances/propose", json={"proposer": "birch", "target": "ash"}
        )
        assert response.json()["formed"] is True

        response = await client.post(f"/worlds/{world_id}/alliances/break", json={"agent": "ash"})
        assert response.status_code == 200
        broken = response.json()
        assert broken["former_ally"] == "birch"
        assert broken["cooldown_until"] == START + 86_400

        response = await client.get(
            f"/worlds/{world_id}/alliances/cooldown", params={"a": "birch", "b": "ash"}
        )
        assert response.json()["active"] is True
        clock.advance(86_400)
        response = await client.get(
            f"/worlds/{world_id}/alliances/cooldown", params={"a": "birch", "b": "ash"}
        )
        assert response.json()["active"] is False

        response = await client.get(
            f"/worlds/{world_id}/events", params={"event_type": "battle_resolved"}
        )
        events = response.json()
        assert len(events) == 1
        assert events[0]["agents"] == ["ash", "birch"]

        response = await client.get(f"/worlds/{world_id}/events", params={"since": 1, "limit": 2})
        assert [event["id"] for event in response.json()] == [2, 3]

    stored = JsonWorldRepository(tmp_path / "worlds").load(dm.WorldID(world_id))
    assert stored.battle_count == 1
    assert stored.agents[dm.AgentID("ash")].alliance is None


@pytest.mark.asyncio
async def test_error_mapping(tmp_path):
    app, transport, _ = _make_app(tmp_path)

    async with (
        app.router.lifespan_context(app),
        AsyncClient(transport=transport, base_url="http://test") as client,
    ):
        response = await client.post("/worlds", json={"name": "Small", "agents": ROSTER[:3]})
        assert response.status_code == 409

        world_id = await _create_world(client)

        assert (await client.get("/worlds/99")).status_code == 404
        assert (await client.get(f"/worlds/{world_id}/agents/ghost")).status_code == 404
        assert (await client.get(f"/worlds/{world_id}/vaults/ghost")).status_code == 404

        response = await client.post(f"/worlds/{world_id}/agents/ash/move", json={"dx": 2, "dy": 0})
        assert response.status_code == 422

        response = await client.post(
            f"/worlds/{world_id}/agents/ash/move", json={"dx": -1, "dy": 0}
        )
        assert response.status_code == 409

        response = await client.post(
            f"/worlds/{world_id}/vaults/ash/stake", json={"staker": "pauper", "amount": 10}
        )
        assert response.status_code == 402

        response = await client.post(
            f"/worlds/{world_id}/vaults/ash/stake",
            json={"staker": CUSTODY_ACCOUNT, "amount": 10},
        )
        assert response.status_code == 409
        assert (await client.get("/worlds/99/tokens/alice")).status_code == 404

        response = await client.post(
            f"/worlds/{world_id}/battles/challenge",
            json={"challenger": "ash", "opponent": "cedar"},
        )
        assert response.status_code == 409

        response = await client.post(
            f"/worlds/{world_id}/vaults/ash/withdrawals/request",
            json={"staker": "alice", "shares": 1},
        )
        assert response.status_code == 409

        response = await client.get(f"/worlds/{world_id}/terrain", params={"x": 0, "y": 20})
        assert response.status_code == 409

        response = await client.get(f"/worlds/{world_id}/agents")
        assert [agent["id"] for agent in response.json()] == ["ash", "birch", "cedar", "dune"]

        response = await client.get("/worlds")
        assert [world["id"] for world in response.json()] == [world_id]


@pytest.mark.asyncio
async def test_challenge_accept_and_delayed_withdrawal(tmp_path):
    app, transport, clock = _make_app(
        tmp_path,
        draws=[compose_draw(outcome=9_999)],
        battle_protocol="challenge_accept",
        withdrawal_policy="delayed",
        withdrawal_delay_seconds=600,
    )

    async with (
        app.router.lifespan_context(app),
        AsyncClient(transport=transport, base_url="http://test") as client,
    ):
        world_id = await _create_world(client)
        await _fund(client, world_id, "alice", 1_000)
        await _fund(client, world_id, "bob", 1_000)
        for agent, staker in (("ash", "alice"), ("birch", "bob")):
            response = await client.post(
                f"/worlds/{world_id}/vaults/{agent}/stake", json={"staker": staker, "amount": 1_000}
            )
            assert response.status_code == 200

        response = await client.post(
            f"/worlds/{world_id}/battles/challenge",
            json={"challenger": "ash", "opponent": "birch"},
        )
        assert response.json() == {"status": "pending", "result": None}

        response = await client.get(f"/worlds/{world_id}")
        assert response.json()["pending_challenges"] == {"ash": "birch"}

        response = await client.post(
            f"/worlds/{world_id}/battles/accept",
            json={"challenger": "ash", "opponent": "birch"},
        )
        assert response.status_code == 200
        result = response.json()["result"]
        assert result["winner"] == "birch"
        assert result["payout"] == 210

        response = await client.post(
            f"/worlds/{world_id}/vaults/birch/withdrawals/request",
            json={"staker": "bob", "shares": 1_000},
        )
        assert response.status_code == 202
        pending = response.json()
        assert pending["amount"] == 1_210
        assert pending["available_at"] == START + 600

        response = await client.get(f"/worlds/{world_id}/vaults/birch/stakers/bob")
        balance = response.json()
        assert balance["shares"] == 0
        assert balance["pending_withdrawal"]["amount"] == 1_210

        response = await client.post(
            f"/worlds/{world_id}/vaults/birch/withdrawals/complete", json={"staker": "bob"}
        )
        assert response.status_code == 409

        clock.advance(600)
        response = await client.post(
            f"/worlds/{world_id}/vaults/birch/withdrawals/complete", json={"staker": "bob"}
        )
        assert response.status_code == 200
        assert response.json()["amount"] == 1_210

        response = await client.get(f"/worlds/{world_id}/tokens/bob")
        assert response.json()["balance"] == 1_210


@pytest.mark.asyncio
async def test_faucet_can_be_disabled(tmp_path):
    app, transport, _ = _make_app(tmp_path, enable_faucet=False)

    async with (
        app.router.lifespan_context(app),
        AsyncClient(transport=transport, base_url="http://test") as client,
    ):
        world_id = await _create_world(client)
        response = await client.post(
            f"/worlds/{world_id}/tokens/mint", json={"account": "alice", "amount": 10}
        )
        assert response.status_code == 403

        response = await client.get(f"/worlds/{world_id}/tokens/alice")
        assert response.json() == {"account": "alice", "balance": 0}
