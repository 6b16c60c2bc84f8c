"""Token account model.

Balances of the fungible token used for vault deposits and withdrawals.  The
protocol's custody account is an ordinary row whose name is configured on
the ledger adapter.
"""

from sqlalchemy import BigInteger, CheckConstraint, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin


class TokenAccount(Base, TimestampMixin):
    """Token balance held by one account within one world.

    Attributes:
        id: Primary key
        world_id: World the balance belongs to
        account: Account identifier (staker id or custody name)
        balance: Non-negative token balance
    """

    __tablename__ = "token_accounts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    world_id: Mapped[int] = mapped_column(Integer, nullable=False)
    account: Mapped[str] = mapped_column(String, nullable=False)
    balance: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint("world_id", "account", name="uq_token_accounts_world_account"),
        CheckConstraint("balance >= 0", name="ck_token_accounts_balance"),
        Index("idx_token_accounts_world", "world_id"),
    )

    def __repr__(self) -> str:
        return f"<TokenAccount(world={self.world_id}, account='{self.account}', balance={self.balance})>"
