"""JSON snapshot storage for StakeGrid worlds."""

from __future__ import annotations

import logging
import re
from pathlib import Path

from pydantic import TypeAdapter

from stakegrid.domain import models as dm

logger = logging.getLogger(__name__)

_SNAPSHOT_NAME = re.compile(r"^world_(\d+)\.json$")


class JsonWorldRepository:
    """Persist each world as one JSON document under ``base_path``.

    Snapshots are written to a sibling temporary file and moved into place,
    so a reader never observes a half-written world.
    """

    def __init__(self, base_path: Path) -> None:
        self.base_path = base_path
        self.base_path.mkdir(parents=True, exist_ok=True)
        self._adapter: TypeAdapter[dm.World] = TypeAdapter(dm.World)

    def _path_for(self, world_id: dm.WorldID) -> Path:
        return self.base_path / f"world_{int(world_id)}.json"

    def exists(self, world_id: dm.WorldID) -> bool:
        return self._path_for(world_id).exists()

    def save(self, world: dm.World) -> Path:
        """Serialize ``world`` and return the snapshot path."""

        path = self._path_for(world.id)
        staging = path.with_suffix(".json.tmp")
        staging.write_bytes(self._adapter.dump_json(world, indent=2))
        staging.replace(path)
        logger.debug("saved world %s (%d events)", int(world.id), len(world.events))
        return path

    def load(self, world_id: dm.WorldID) -> dm.World:
        """Load a snapshot; raises ``FileNotFoundError`` for unknown worlds."""

        return self._adapter.validate_json(self._path_for(world_id).read_bytes())

    def list_worlds(self) -> list[dm.WorldID]:
        ids = []
        for path in self.base_path.glob("world_*.json"):
            match = _SNAPSHOT_NAME.match(path.name)
            if match:
                ids.append(dm.WorldID(int(match.group(1))))
        return sorted(ids, key=int)

    def next_world_id(self) -> dm.WorldID:
        existing = self.list_worlds()
        return dm.WorldID(int(existing[-1]) + 1 if existing else 1)
