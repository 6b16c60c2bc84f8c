"""Domain model for StakeGrid.

This package hosts every protocol rule in one place.  It exposes:

* Dataclasses describing the world aggregate (see :mod:`models`).
* Enumerations and strongly-typed identifiers used across the rules layer.
* Rule configuration objects (see :mod:`rules_config`).
* Pure rule functions for terrain, movement, vaults, alliances and battles.
* The :class:`~stakegrid.domain.protocol.GridProtocol` orchestrator.

Everything operates in memory; persistence lives behind thin repository
adapters.
"""

from . import (
    alliance,
    battle,
    enums,
    errors,
    models,
    movement,
    protocol,
    rules_config,
    terrain,
    vault,
)

__all__ = [
    "alliance",
    "battle",
    "enums",
    "errors",
    "models",
    "movement",
    "protocol",
    "rules_config",
    "terrain",
    "vault",
]
