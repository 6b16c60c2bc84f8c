"""Event log model.

Mirror of the notification records appended to each world, kept in a
queryable table for indexers and user interfaces.
"""

from typing import Any

from sqlalchemy import JSON, BigInteger, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampCreatedMixin


class EventRecord(Base, TimestampCreatedMixin):
    """Represents one protocol event.

    Attributes:
        id: Primary key
        world_id: World that emitted the event
        sequence: Event id within the world (1-based, gapless)
        timestamp: Protocol clock time of the event (epoch seconds)
        event_type: Event type name
        agents: JSON array of involved agent ids
        details: JSON with event-specific fields
    """

    __tablename__ = "events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    world_id: Mapped[int] = mapped_column(Integer, nullable=False)
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)
    event_type: Mapped[str] = mapped_column(String, nullable=False)
    agents: Mapped[list[str]] = mapped_column(JSON, nullable=False)
    details: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)

    __table_args__ = (
        UniqueConstraint("world_id", "sequence", name="uq_events_world_sequence"),
        Index("idx_events_world_type", "world_id", "event_type"),
    )

    def __repr__(self) -> str:
        return f"<EventRecord(world={self.world_id}, seq={self.sequence}, type='{self.event_type}')>"
