"""Adapters connecting the StakeGrid core to durable infrastructure."""

from stakegrid.services.event_log import SqlEventLog
from stakegrid.services.token_ledger import CUSTODY_ACCOUNT, InMemoryTokenLedger, SqlTokenLedger

__all__ = [
    "CUSTODY_ACCOUNT",
    "InMemoryTokenLedger",
    "SqlEventLog",
    "SqlTokenLedger",
]
