"""Queryable event log backed by SQLAlchemy.

Worlds keep their own event list inside the JSON snapshot; this log mirrors
those records into a table so observers can page through and filter them
without loading whole worlds.
"""

from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy import func, select
from sqlalchemy.orm import Session, sessionmaker

from stakegrid.domain import models as dm
from stakegrid.domain.enums import EventType
from stakegrid.models import EventRecord


class SqlEventLog:
    """Append-only store of protocol events."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def record(self, events: Iterable[dm.Event], *, session: Session | None = None) -> int:
        """Persist ``events`` in one transaction and return how many were written.

        With ``session`` the rows are only flushed; committing is up to the caller.
        """

        rows = [
            EventRecord(
                world_id=int(event.world_id),
                sequence=int(event.id),
                timestamp=event.timestamp,
                event_type=str(event.event_type),
                agents=list(event.agents),
                details=dict(event.details),
            )
            for event in events
        ]
        if not rows:
            return 0
        if session is not None:
            session.add_all(rows)
            session.flush()
            return len(rows)
        with self._session_factory() as own, own.begin():
            own.add_all(rows)
        return len(rows)

    def latest_sequence(self, world_id: dm.WorldID, *, session: Session | None = None) -> int:
        """Highest mirrored event id for ``world_id``, or 0 when none are stored."""

        query = select(func.max(EventRecord.sequence)).where(EventRecord.world_id == int(world_id))
        if session is not None:
            return session.execute(query).scalar() or 0
        with self._session_factory() as own:
            return own.execute(query).scalar() or 0

    def list_events(
        self,
        world_id: dm.WorldID,
        *,
        since: int = 0,
        event_type: EventType | None = None,
        limit: int | None = None,
    ) -> list[dm.Event]:
        """Return events with a sequence above ``since``, oldest first."""

        query = (
            select(EventRecord)
            .where(EventRecord.world_id == int(world_id), EventRecord.sequence > since)
            .order_by(EventRecord.sequence)
        )
        if event_type is not None:
            query = query.where(EventRecord.event_type == str(event_type))
        if limit is not None:
            query = query.limit(limit)

        with self._session_factory() as session:
            records = session.execute(query).scalars().all()
            return [
                dm.Event(
                    id=dm.EventID(record.sequence),
                    world_id=dm.WorldID(record.world_id),
                    timestamp=record.timestamp,
                    event_type=EventType(record.event_type),
                    agents=[dm.AgentID(agent) for agent in record.agents],
                    details=dict(record.details),
                )
                for record in records
            ]
