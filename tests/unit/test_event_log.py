"""Tests for the SQL event log."""

from __future__ import annotations

from stakegrid.domain import models as dm
from stakegrid.domain.enums import EventType
from stakegrid.services import SqlEventLog


def test_record_and_filter(session_factory, protocol):
    protocol.move(dm.AgentID("ash"), 1, 1)
    protocol.stake(dm.StakerID("alice"), dm.AgentID("ash"), 10)
    log = SqlEventLog(session_factory)

    assert log.record(protocol.world.events) == 3
    assert log.latest_sequence(dm.WorldID(1)) == 3

    everything = log.list_events(dm.WorldID(1))
    assert [e.event_type for e in everything] == [
        EventType.WORLD_CREATED,
        EventType.AGENT_MOVED,
        EventType.STAKED,
    ]
    assert everything == protocol.world.events

    assert [e.id for e in log.list_events(dm.WorldID(1), since=1)] == [2, 3]
    staked = log.list_events(dm.WorldID(1), event_type=EventType.STAKED)
    assert len(staked) == 1
    assert staked[0].details["amount"] == 10
    assert len(log.list_events(dm.WorldID(1), limit=1)) == 1


def test_empty_batches_and_unknown_worlds(session_factory):
    log = SqlEventLog(session_factory)
    assert log.record([]) == 0
    assert log.latest_sequence(dm.WorldID(7)) == 0
    assert log.list_events(dm.WorldID(7)) == []
