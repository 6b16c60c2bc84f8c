"""Randomness sources for battle resolution.

Battles consult exactly one 256-bit draw.  Three sources are provided:

* :class:`HashRandomSource` hashes the timestamp, a chunk of fresh
  "chain-state" entropy and both participant identities with SHA-256.  The
  participants act as domain separators so simultaneous battles never share
  a draw.  This is **not** unpredictable to a party that controls ordering
  and timing of calls; production deployments should inject a verifiable or
  committed source instead.
* :class:`SeededRandomSource` derives the draw from a configured salt, the
  world and the battle index, for reproducible runs.
* :class:`SequenceRandomSource` replays a fixed list of draws, which makes
  battle arithmetic reproducible for replays and tests.

Examples:
    >>> seed = generate_seed(world_id=1, battle_index=3, challenger="ash", opponent="elm")
    >>> seed
    '1:3:ash:elm'
    >>> seed_to_draw(seed) == seed_to_draw(seed)
    True
"""

import hashlib
import os
from collections.abc import Callable, Iterable

CHAIN_STATE_BYTES = 32


def generate_seed(world_id: int, battle_index: int, challenger: str, opponent: str) -> str:
    """Generate a deterministic seed string for a battle.

    Format: "world_id:battle_index:challenger:opponent"

    Raises:
        ValueError: If world_id or battle_index is negative
    """
    if world_id < 0:
        raise ValueError(f"world_id must be non-negative, got {world_id}")
    if battle_index < 0:
        raise ValueError(f"battle_index must be non-negative, got {battle_index}")

    return f"{world_id}:{battle_index}:{challenger}:{opponent}"


def seed_to_draw(seed: str) -> int:
    """Convert a seed string to a stable 256-bit integer (SHA-256 of the seed)."""
    digest = hashlib.sha256(seed.encode("utf-8")).digest()
    return int.from_bytes(digest, "big", signed=False)


def _default_chain_state() -> bytes:
    return os.urandom(CHAIN_STATE_BYTES)


class HashRandomSource:
    """SHA-256 over timestamp, chain-state entropy and participant identities."""

    def __init__(self, chain_state: Callable[[], bytes] = _default_chain_state) -> None:
        self._chain_state = chain_state

    def draw(self, *, timestamp: int, challenger: str, opponent: str) -> int:
        hasher = hashlib.sha256()
        hasher.update(timestamp.to_bytes(8, "big", signed=False))
        hasher.update(self._chain_state())
        for participant in (challenger, opponent):
            encoded = participant.encode("utf-8")
            hasher.update(len(encoded).to_bytes(4, "big"))
            hasher.update(encoded)
        return int.from_bytes(hasher.digest(), "big", signed=False)


class SeededRandomSource:
    """Deterministic draws derived from a salt, the world and the battle index.

    Useful for reproducible runs: the same salt and history always yield
    the same battle outcomes.
    """

    def __init__(self, salt: str, *, world_id: int, battle_index: int) -> None:
        self._salt = salt
        self._world_id = world_id
        self._battle_index = battle_index

    def draw(self, *, timestamp: int, challenger: str, opponent: str) -> int:
        seed = generate_seed(self._world_id, self._battle_index, challenger, opponent)
        return seed_to_draw(f"{self._salt}:{timestamp}:{seed}")


class SequenceRandomSource:
    """Replay a fixed sequence of draws, recording every request."""

    def __init__(self, values: Iterable[int]) -> None:
        self._values = list(values)
        self._position = 0
        self.requests: list[dict[str, object]] = []

    def draw(self, *, timestamp: int, challenger: str, opponent: str) -> int:
        if self._position >= len(self._values):
            raise LookupError("random sequence exhausted")
        value = self._values[self._position]
        self._position += 1
        self.requests.append(
            {"timestamp": timestamp, "challenger": challenger, "opponent": opponent}
        )
        return value

    @property
    def remaining(self) -> int:
        return len(self._values) - self._position


def compose_draw(*, outcome: int, payout_index: int = 0, elimination_roll: int = 99) -> int:
    """Build a draw whose battle fields decode to the given values.

    ``outcome`` occupies the low bits, ``payout_index`` (offset from the
    minimum payout percentage) starts at bit 64 and ``elimination_roll`` at
    bit 128, matching :func:`stakegrid.domain.battle.split_draw` as long as
    ``outcome`` is below the probability scale, ``payout_index`` below the
    payout span and ``elimination_roll`` below 100.

    >>> compose_draw(outcome=5, payout_index=2, elimination_roll=1) % 10_000
    5
    """
    if min(outcome, payout_index, elimination_roll) < 0:
        raise ValueError("draw components must be non-negative")
    return outcome | (payout_index << 64) | (elimination_roll << 128)
