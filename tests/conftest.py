"""Pytest configuration to ensure the `src` package layout is importable.

This adds the `src/` directory to `sys.path` so tests can import the
`stakegrid` package without requiring an editable install in CI.  Shared
fixtures build worlds with a manual clock, an in-memory token ledger and
scripted randomness.
"""

import sys
from pathlib import Path

import pytest

SRC_PATH = Path(__file__).resolve().parents[1] / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from stakegrid.domain import models as dm  # noqa: E402
from stakegrid.domain.protocol import GridProtocol, create_world  # noqa: E402
from stakegrid.services import InMemoryTokenLedger  # noqa: E402
from stakegrid.utils import ManualClock, SequenceRandomSource  # noqa: E402

START = 1_700_000_000


def default_roster() -> list[dm.AgentSpec]:
    """Four agents: ``ash`` and ``birch`` adjacent, ``cedar`` and ``dune`` far away."""

    return [
        dm.AgentSpec(id=dm.AgentID("ash"), name="Ash", x=0, y=0),
        dm.AgentSpec(id=dm.AgentID("birch"), name="Birch", x=1, y=0),
        dm.AgentSpec(id=dm.AgentID("cedar"), name="Cedar", x=9, y=9),
        dm.AgentSpec(id=dm.AgentID("dune"), name="Dune", x=5, y=5),
    ]


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(start=START)


@pytest.fixture
def ledger() -> InMemoryTokenLedger:
    return InMemoryTokenLedger({"alice": 10_000, "bob": 10_000})


@pytest.fixture
def world() -> dm.World:
    return create_world(dm.WorldID(1), "test", default_roster(), created_at=START)


@pytest.fixture
def randomness() -> SequenceRandomSource:
    return SequenceRandomSource([])


@pytest.fixture
def protocol(world, ledger, clock, randomness) -> GridProtocol:
    return GridProtocol(world, ledger=ledger, clock=clock, randomness=randomness)


@pytest.fixture
def settings(tmp_path):
    from stakegrid.config import Settings

    return Settings(
        data_dir=tmp_path / "worlds",
        database_url=f"sqlite:///{tmp_path / 'stakegrid.db'}",
    )


@pytest.fixture
def session_factory(settings):
    from stakegrid.database import create_db_engine, create_session_factory, init_db

    engine = create_db_engine(settings)
    init_db(engine)
    yield create_session_factory(engine)
    engine.dispose()
