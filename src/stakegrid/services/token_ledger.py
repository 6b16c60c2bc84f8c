"""Token ledger adapters.

Both adapters satisfy :class:`stakegrid.interfaces.ITokenLedger`.  Tokens
debited from stakers are held in a custody account and credited back out of
it on withdrawal; a transfer either moves the whole amount or nothing.

A :class:`SqlTokenLedger` built over a caller-owned session stages its writes
in that session instead of committing them, so the caller can commit the
transfers together with the world snapshot or roll them back.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from stakegrid.models import TokenAccount

logger = logging.getLogger(__name__)

CUSTODY_ACCOUNT = "stakegrid:custody"


class SqlTokenLedger:
    """Durable balances stored in the ``token_accounts`` table of one world."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        world_id: int,
        *,
        custody_account: str = CUSTODY_ACCOUNT,
        session: Session | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._session = session
        self.world_id = world_id
        self.custody_account = custody_account

    @contextmanager
    def _unit_of_work(self) -> Iterator[Session]:
        if self._session is not None:
            yield self._session
            self._session.flush()
            return
        with self._session_factory() as session, session.begin():
            yield session

    def _account(self, session: Session, account: str, *, create: bool = False) -> TokenAccount | None:
        row = session.execute(
            select(TokenAccount).where(
                TokenAccount.world_id == self.world_id, TokenAccount.account == account
            )
        ).scalar_one_or_none()
        if row is None and create:
            row = TokenAccount(world_id=self.world_id, account=account, balance=0)
            session.add(row)
            session.flush()
        return row

    def balance_of(self, account: str) -> int:
        if self._session is not None:
            row = self._account(self._session, account)
            return row.balance if row is not None else 0
        with self._session_factory() as session:
            row = self._account(session, account)
            return row.balance if row is not None else 0

    def mint(self, account: str, amount: int) -> int:
        """Create ``amount`` new tokens for ``account`` and return the new balance."""

        if amount <= 0:
            raise ValueError(f"mint amount must be positive, got {amount}")
        with self._unit_of_work() as session:
            row = self._account(session, account, create=True)
            row.balance += amount
            balance = row.balance
        logger.info("world %s: minted %s tokens for %s", self.world_id, amount, account)
        return balance

    def transfer_from(self, payer: str, amount: int) -> bool:
        return self._move(payer, self.custody_account, amount)

    def transfer(self, payee: str, amount: int) -> bool:
        return self._move(self.custody_account, payee, amount)

    def _move(self, source: str, target: str, amount: int) -> bool:
        if amount < 0 or source == target:
            return False
        try:
            with self._unit_of_work() as session:
                debit = self._account(session, source)
                if debit is None or debit.balance < amount:
                    logger.warning(
                        "world %s: transfer of %s from %s refused (insufficient balance)",
                        self.world_id,
                        amount,
                        source,
                    )
                    return False
                credit = self._account(session, target, create=True)
                debit.balance -= amount
                credit.balance += amount
        except SQLAlchemyError:
            logger.exception("world %s: transfer from %s to %s failed", self.world_id, source, target)
            return False
        return True


class InMemoryTokenLedger:
    """Process-local ledger for simulations and tests."""

    def __init__(
        self,
        balances: dict[str, int] | None = None,
        *,
        custody_account: str = CUSTODY_ACCOUNT,
    ) -> None:
        self.balances: dict[str, int] = dict(balances or {})
        self.custody_account = custody_account

    def balance_of(self, account: str) -> int:
        return self.balances.get(account, 0)

    def mint(self, account: str, amount: int) -> int:
        if amount <= 0:
            raise ValueError(f"mint amount must be positive, got {amount}")
        self.balances[account] = self.balance_of(account) + amount
        return self.balances[account]

    def transfer_from(self, payer: str, amount: int) -> bool:
        return self._move(payer, self.custody_account, amount)

    def transfer(self, payee: str, amount: int) -> bool:
        return self._move(self.custody_account, payee, amount)

    def _move(self, source: str, target: str, amount: int) -> bool:
        if amount < 0 or source == target or self.balance_of(source) < amount:
            return False
        self.balances[source] = self.balance_of(source) - amount
        self.balances[target] = self.balance_of(target) + amount
        return True
