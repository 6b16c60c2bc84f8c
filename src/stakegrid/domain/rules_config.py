"""Declarative rule configuration for the StakeGrid domain."""

from __future__ import annotations

from dataclasses import dataclass

from .enums import BattleProtocol, Terrain, WithdrawalPolicy

HOUR = 3600


@dataclass(frozen=True, slots=True)
class GridRules:
    """Board dimensions and roster size."""

    width: int = 10
    height: int = 10
    roster_size: int = 4


@dataclass(frozen=True, slots=True)
class TerrainRules:
    """Cumulative percentage buckets used by the terrain oracle."""

    mountain_pct: int = 10
    river_pct: int = 10


@dataclass(frozen=True, slots=True)
class MovementRules:
    """Terrain-to-cooldown policy table (seconds)."""

    normal_cooldown_seconds: int = HOUR
    river_cooldown_seconds: int = 2 * HOUR
    mountain_cooldown_seconds: int = 3 * HOUR

    def cooldown_for(self, terrain: Terrain) -> int:
        table = {
            Terrain.NORMAL: self.normal_cooldown_seconds,
            Terrain.RIVER: self.river_cooldown_seconds,
            Terrain.MOUNTAIN: self.mountain_cooldown_seconds,
        }
        return table[terrain]


@dataclass(frozen=True, slots=True)
class VaultRules:
    """Withdrawal policy for stakers."""

    withdrawal_policy: WithdrawalPolicy = WithdrawalPolicy.IMMEDIATE
    withdrawal_delay_seconds: int = 2 * HOUR


@dataclass(frozen=True, slots=True)
class AllianceRules:
    """Alliance cooldown after a break."""

    cooldown_seconds: int = 24 * HOUR


@dataclass(frozen=True, slots=True)
class BattleRules:
    """Parameters for battle odds, payout and elimination."""

    protocol: BattleProtocol = BattleProtocol.IMMEDIATE
    probability_scale: int = 10_000
    payout_min_pct: int = 21
    payout_max_pct: int = 30
    elimination_pct: int = 5


@dataclass(frozen=True, slots=True)
class RulesConfig:
    """Top-level configuration container for all subsystems."""

    grid: GridRules = GridRules()
    terrain: TerrainRules = TerrainRules()
    movement: MovementRules = MovementRules()
    vault: VaultRules = VaultRules()
    alliance: AllianceRules = AllianceRules()
    battle: BattleRules = BattleRules()


DEFAULT_RULES = RulesConfig()
