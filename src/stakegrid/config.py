"""Configuration for the StakeGrid tools."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from stakegrid.domain.enums import BattleProtocol, WithdrawalPolicy
from stakegrid.domain.rules_config import (
    AllianceRules,
    BattleRules,
    GridRules,
    MovementRules,
    RulesConfig,
    VaultRules,
)


class Settings(BaseSettings):
    """Application settings, overridable through ``STAKEGRID_*`` env vars or ``.env``."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", env_prefix="STAKEGRID_"
    )

    data_dir: Path = Field(default=Path("worlds"), description="Where world snapshots live")
    database_url: str = Field(
        default="sqlite:///stakegrid.db",
        description="SQLAlchemy URL for token balances and the event log",
    )
    database_echo: bool = Field(default=False, description="Echo SQL statements")
    grid_width: int = Field(default=10, gt=0)
    grid_height: int = Field(default=10, gt=0)
    normal_cooldown_seconds: int = Field(default=3600, gt=0)
    river_cooldown_seconds: int = Field(default=7200, gt=0)
    mountain_cooldown_seconds: int = Field(default=10800, gt=0)
    alliance_cooldown_seconds: int = Field(default=86400, gt=0)
    withdrawal_policy: WithdrawalPolicy = Field(default=WithdrawalPolicy.IMMEDIATE)
    withdrawal_delay_seconds: int = Field(default=7200, gt=0)
    battle_protocol: BattleProtocol = Field(default=BattleProtocol.IMMEDIATE)
    battle_seed: str | None = Field(
        default=None,
        description="When set, battles draw from a seeded source for reproducible runs",
    )
    enable_faucet: bool = Field(
        default=False, description="Expose the development token mint endpoint"
    )
    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:5173", "http://127.0.0.1:5173"],
        description="Origins allowed to call the HTTP API",
    )
    log_level: str = Field(default="info", description="Log level passed to uvicorn")

    def to_rules(self) -> RulesConfig:
        """Build the rule configuration described by these settings."""

        return RulesConfig(
            grid=GridRules(width=self.grid_width, height=self.grid_height),
            movement=MovementRules(
                normal_cooldown_seconds=self.normal_cooldown_seconds,
                river_cooldown_seconds=self.river_cooldown_seconds,
                mountain_cooldown_seconds=self.mountain_cooldown_seconds,
            ),
            vault=VaultRules(
                withdrawal_policy=self.withdrawal_policy,
                withdrawal_delay_seconds=self.withdrawal_delay_seconds,
            ),
            alliance=AllianceRules(cooldown_seconds=self.alliance_cooldown_seconds),
            battle=BattleRules(protocol=self.battle_protocol),
        )


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""

    settings = Settings()
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    return settings
