"""Token Ledger Protocol Interface.

The fungible token ledger is an external collaborator.  Vault deposits debit
the staker and withdrawals credit the staker; the protocol only relies on the
contract below.
"""

from typing import Protocol


class ITokenLedger(Protocol):
    """Protocol defining the transferable-balance ledger used by vaults.

    Both transfer methods must be all-or-nothing: on failure they return
    ``False`` and leave every balance unchanged.  Tokens held for the
    protocol sit in ``custody_account``.
    """

    custody_account: str

    def transfer_from(self, payer: str, amount: int) -> bool:
        """Move ``amount`` from ``payer`` into the protocol's custody.

        Args:
            payer: Account being debited
            amount: Non-negative token amount

        Returns:
            True if the debit happened, False otherwise
        """
        ...

    def transfer(self, payee: str, amount: int) -> bool:
        """Release ``amount`` from the protocol's custody to ``payee``.

        Args:
            payee: Account being credited
            amount: Non-negative token amount

        Returns:
            True if the credit happened, False otherwise
        """
        ...

    def balance_of(self, account: str) -> int:
        """Return the token balance held by ``account``."""
        ...
