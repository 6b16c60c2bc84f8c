"""Enumerations used across the StakeGrid domain."""

from __future__ import annotations

from enum import StrEnum


class Terrain(StrEnum):
    """Terrain classes produced by the terrain oracle."""

    NORMAL = "normal"
    MOUNTAIN = "mountain"
    RIVER = "river"


class BattleProtocol(StrEnum):
    """How a challenge turns into a resolved battle."""

    IMMEDIATE = "immediate"
    CHALLENGE_ACCEPT = "challenge_accept"


class WithdrawalPolicy(StrEnum):
    """Whether stakers redeem shares at once or after a delay."""

    IMMEDIATE = "immediate"
    DELAYED = "delayed"


class EventType(StrEnum):
    """Notification records emitted by mutating operations."""

    WORLD_CREATED = "world_created"
    AGENT_MOVED = "agent_moved"
    STAKED = "staked"
    WITHDRAWN = "withdrawn"
    WITHDRAWAL_REQUESTED = "withdrawal_requested"
    WITHDRAWAL_COMPLETED = "withdrawal_completed"
    BATTLE_CHALLENGED = "battle_challenged"
    BATTLE_RESOLVED = "battle_resolved"
    AGENT_ELIMINATED = "agent_eliminated"
    ALLIANCE_PROPOSED = "alliance_proposed"
    ALLIANCE_FORMED = "alliance_formed"
    ALLIANCE_BROKEN = "alliance_broken"
