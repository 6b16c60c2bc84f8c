"""Protocol interfaces for the capabilities injected into the StakeGrid core.

Use these protocols for type hints and dependency injection, allowing
production adapters and deterministic test doubles to be swapped freely.
"""

from stakegrid.interfaces.clock import IClock
from stakegrid.interfaces.ledger import ITokenLedger
from stakegrid.interfaces.randomness import IRandomSource

__all__ = [
    "IClock",
    "IRandomSource",
    "ITokenLedger",
]
