"""Tests for the token ledger adapters."""

from __future__ import annotations

import pytest

from stakegrid.services import CUSTODY_ACCOUNT, InMemoryTokenLedger, SqlTokenLedger


@pytest.fixture
def sql_ledger(session_factory) -> SqlTokenLedger:
    return SqlTokenLedger(session_factory, world_id=1)


@pytest.fixture(params=["memory", "sql"])
def any_ledger(request, session_factory):
    if request.param == "memory":
        return InMemoryTokenLedger()
    return SqlTokenLedger(session_factory, world_id=1)


def test_mint_and_balance(any_ledger):
    assert any_ledger.balance_of("alice") == 0
    assert any_ledger.mint("alice", 500) == 500
    assert any_ledger.mint("alice", 250) == 750
    assert any_ledger.balance_of("alice") == 750


def test_mint_requires_positive_amount(any_ledger):
    with pytest.raises(ValueError):
        any_ledger.mint("alice", 0)


def test_debit_and_credit_go_through_custody(any_ledger):
    any_ledger.mint("alice", 500)
    assert any_ledger.transfer_from("alice", 200)
    assert any_ledger.balance_of("alice") == 300
    assert any_ledger.balance_of(CUSTODY_ACCOUNT) == 200

    assert any_ledger.transfer("bob", 150)
    assert any_ledger.balance_of("bob") == 150
    assert any_ledger.balance_of(CUSTODY_ACCOUNT) == 50


def test_failed_transfers_change_nothing(any_ledger):
    any_ledger.mint("alice", 100)
    assert not any_ledger.transfer_from("alice", 101)
    assert not any_ledger.transfer_from("nobody", 1)
    assert not any_ledger.transfer("bob", 1)
    assert not any_ledger.transfer_from("alice", -5)
    assert any_ledger.balance_of("alice") == 100
    assert any_ledger.balance_of(CUSTODY_ACCOUNT) == 0


def test_sql_balances_are_scoped_per_world(session_factory, sql_ledger):
    sql_ledger.mint("alice", 100)
    other = SqlTokenLedger(session_factory, world_id=2)
    assert other.balance_of("alice") == 0
    assert sql_ledger.balance_of("alice") == 100


def test_sql_balances_persist_across_adapters(session_factory, sql_ledger):
    sql_ledger.mint("alice", 100)
    sql_ledger.transfer_from("alice", 40)
    reopened = SqlTokenLedger(session_factory, world_id=1)
    assert reopened.balance_of("alice") == 60
    assert reopened.balance_of(CUSTODY_ACCOUNT) == 40


def test_self_transfer_is_refused(any_ledger):
    any_ledger.mint("alice", 100)
    assert any_ledger.transfer_from("alice", 50)
    assert not any_ledger.transfer_from(CUSTODY_ACCOUNT, 50)
    assert not any_ledger.transfer(CUSTODY_ACCOUNT, 50)
    assert any_ledger.balance_of(CUSTODY_ACCOUNT) == 50
    assert any_ledger.balance_of("alice") == 50


def test_staged_transfers_commit_with_the_session(session_factory, sql_ledger):
    sql_ledger.mint("alice", 100)
    with session_factory() as session:
        staged = SqlTokenLedger(session_factory, world_id=1, session=session)
        assert staged.transfer_from("alice", 30)
        assert staged.balance_of("alice") == 70
        assert sql_ledger.balance_of("alice") == 100
        session.commit()
    assert sql_ledger.balance_of("alice") == 70
    assert sql_ledger.balance_of(CUSTODY_ACCOUNT) == 30


def test_staged_transfers_roll_back_without_commit(session_factory, sql_ledger):
    sql_ledger.mint("alice", 100)
    with session_factory() as session:
        staged = SqlTokenLedger(session_factory, world_id=1, session=session)
        assert staged.transfer_from("alice", 30)
    assert sql_ledger.balance_of("alice") == 100
    assert sql_ledger.balance_of(CUSTODY_ACCOUNT) == 0
