"""SQLAlchemy models for the StakeGrid side stores.

This module exports the declarative base and the durable tables backing the
token ledger and the event log.
"""

from .base import Base, TimestampCreatedMixin, TimestampMixin
from .event import EventRecord
from .token import TokenAccount

__all__ = [
    "Base",
    "EventRecord",
    "TimestampCreatedMixin",
    "TimestampMixin",
    "TokenAccount",
]
