"""Runtime primitives backing the StakeGrid HTTP API."""

from __future__ import annotations

import asyncio
import copy
import logging
from collections.abc import Callable, Sequence
from contextlib import suppress
from typing import TypeVar

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from stakegrid.config import Settings, get_settings
from stakegrid.database import create_db_engine, create_session_factory, init_db
from stakegrid.domain import models as dm
from stakegrid.domain.enums import EventType
from stakegrid.domain.errors import ProtocolError
from stakegrid.domain.protocol import GridProtocol, create_world
from stakegrid.domain.rules_config import RulesConfig
from stakegrid.interfaces import IClock, IRandomSource
from stakegrid.repository import JsonWorldRepository
from stakegrid.services import SqlEventLog, SqlTokenLedger
from stakegrid.utils.clock import SystemClock
from stakegrid.utils.rng import HashRandomSource, SeededRandomSource

logger = logging.getLogger(__name__)

T = TypeVar("T")


class WorldService:
    """Load, operate on and persist worlds.

    Mutations run one at a time under an ``asyncio.Lock``; the synchronous
    domain work happens in a worker thread.  Ledger transfers and mirrored
    events of an operation are staged in one database session that is only
    committed once the world snapshot has been written, so a rejected or
    unpersisted operation leaves no trace.
    """

    def __init__(
        self,
        repository: JsonWorldRepository,
        *,
        session_factory: sessionmaker[Session],
        event_log: SqlEventLog,
        clock: IClock,
        rules: RulesConfig,
        battle_seed: str | None = None,
        randomness: IRandomSource | None = None,
    ) -> None:
        self._repository = repository
        self._session_factory = session_factory
        self._event_log = event_log
        self._clock = clock
        self._rules = rules
        self._battle_seed = battle_seed
        self._randomness = randomness
        self._lock = asyncio.Lock()

    @property
    def rules(self) -> RulesConfig:
        return self._rules

    async def list_worlds(self) -> list[dm.World]:
        return await asyncio.to_thread(self._list_worlds_sync)

    def _list_worlds_sync(self) -> list[dm.World]:
        worlds: list[dm.World] = []
        for world_id in self._repository.list_worlds():
            with suppress(FileNotFoundError):
                worlds.append(self._repository.load(world_id))
        return worlds

    def _require_world(self, world_id: dm.WorldID) -> None:
        if not self._repository.exists(world_id):
            raise FileNotFoundError(f"world {int(world_id)} does not exist")

    def ledger_for(self, world_id: dm.WorldID, *, session: Session | None = None) -> SqlTokenLedger:
        return SqlTokenLedger(self._session_factory, int(world_id), session=session)

    def randomness_for(self, world: dm.World) -> IRandomSource:
        if self._randomness is not None:
            return self._randomness
        if self._battle_seed is not None:
            return SeededRandomSource(
                self._battle_seed, world_id=int(world.id), battle_index=world.battle_count
            )
        return HashRandomSource()

    def protocol_for(self, world: dm.World, *, session: Session | None = None) -> GridProtocol:
        return GridProtocol(
            world,
            ledger=self.ledger_for(world.id, session=session),
            clock=self._clock,
            randomness=self.randomness_for(world),
            rules=self._rules,
        )

    async def create(self, name: str, roster: Sequence[dm.AgentSpec]) -> dm.World:
        async with self._lock:
            return await asyncio.to_thread(self._create_sync, name, roster)

    def _create_sync(self, name: str, roster: Sequence[dm.AgentSpec]) -> dm.World:
        world = create_world(
            self._repository.next_world_id(),
            name,
            roster,
            created_at=self._clock.now(),
            rules=self._rules,
        )
        self._repository.save(world)
        self._event_log.record(world.events)
        logger.info("created world %s (%s)", int(world.id), name)
        return world

    async def execute(self, world_id: dm.WorldID, operation: Callable[[GridProtocol], T]) -> T:
        """Run a mutating operation and persist the world if it succeeds."""

        async with self._lock:
            return await asyncio.to_thread(self._execute_sync, world_id, operation)

    def _execute_sync(self, world_id: dm.WorldID, operation: Callable[[GridProtocol], T]) -> T:
        try:
            world = self._repository.load(world_id)
        except FileNotFoundError:
            logger.warning("world %s missing from repository", int(world_id))
            raise
        previous = copy.deepcopy(world)

        # Closing the session without a commit rolls back staged transfers.
        with self._session_factory() as session:
            mirrored = self._event_log.latest_sequence(world_id, session=session)
            try:
                result = operation(self.protocol_for(world, session=session))
            except ProtocolError as exc:
                logger.warning("world %s: operation rejected: %s", int(world_id), exc)
                raise
            self._event_log.record(world.events[mirrored:], session=session)
            self._repository.save(world)
            try:
                session.commit()
            except SQLAlchemyError:
                logger.exception(
                    "world %s: ledger commit failed, restoring previous snapshot", int(world_id)
                )
                self._repository.save(previous)
                raise
        return result

    async def inspect(self, world_id: dm.WorldID, query: Callable[[GridProtocol], T]) -> T:
        """Answer a read-only query against the latest snapshot."""

        world = await asyncio.to_thread(self._repository.load, world_id)
        return query(self.protocol_for(world))

    async def events(
        self,
        world_id: dm.WorldID,
        *,
        since: int = 0,
        event_type: EventType | None = None,
        limit: int | None = None,
    ) -> list[dm.Event]:
        return await asyncio.to_thread(
            self._events_sync, world_id, since=since, event_type=event_type, limit=limit
        )

    def _events_sync(
        self,
        world_id: dm.WorldID,
        *,
        since: int,
        event_type: EventType | None,
        limit: int | None,
    ) -> list[dm.Event]:
        self._require_world(world_id)
        return self._event_log.list_events(
            world_id, since=since, event_type=event_type, limit=limit
        )

    async def balance_of(self, world_id: dm.WorldID, account: str) -> int:
        return await asyncio.to_thread(self._balance_sync, world_id, account)

    def _balance_sync(self, world_id: dm.WorldID, account: str) -> int:
        self._require_world(world_id)
        return self.ledger_for(world_id).balance_of(account)

    async def mint(self, world_id: dm.WorldID, account: str, amount: int) -> int:
        """Credit freshly minted tokens to ``account``; returns the new balance."""

        async with self._lock:
            return await asyncio.to_thread(self._mint_sync, world_id, account, amount)

    def _mint_sync(self, world_id: dm.WorldID, account: str, amount: int) -> int:
        self._require_world(world_id)
        return self.ledger_for(world_id).mint(account, amount)


class ApiState:
    """Aggregated services shared by the FastAPI layer."""

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        clock: IClock | None = None,
        randomness: IRandomSource | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.rules = self.settings.to_rules()
        self.clock = clock or SystemClock()
        self.engine: Engine = create_db_engine(self.settings)
        init_db(self.engine)
        self.session_factory = create_session_factory(self.engine)
        self.repository = JsonWorldRepository(self.settings.data_dir)
        self.event_log = SqlEventLog(self.session_factory)
        self.worlds = WorldService(
            self.repository,
            session_factory=self.session_factory,
            event_log=self.event_log,
            clock=self.clock,
            rules=self.rules,
            battle_seed=self.settings.battle_seed,
            randomness=randomness,
        )

    async def shutdown(self) -> None:
        self.engine.dispose()


def build_state() -> ApiState:
    """Factory used by the API to initialize state."""

    return ApiState()
