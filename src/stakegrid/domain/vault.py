"""Share-based vault accounting.

Each agent owns a vault that tracks the underlying value staked on it
(``total_staked``) and the shares outstanding against that value
(``total_shares``).  Shares are minted on deposit at the current exchange
rate and burned on withdrawal.  Battles move ``total_staked`` between vaults
without touching shares, so stakers carry battle risk proportionally.

All divisions round down: a depositor never receives more shares than the
proportional entitlement and a redeemer never receives more than the
proportional value.
"""

from __future__ import annotations

from stakegrid.domain.errors import InvariantViolation, PreconditionViolation
from stakegrid.domain.models import AgentID, PendingWithdrawal, StakerID, Vault, World


def get_vault(world: World, agent_id: AgentID) -> Vault:
    """Return the agent's vault, or an empty detached one if none exists yet."""

    return world.vaults.get(agent_id) or Vault(agent_id=agent_id)


def ensure_vault(world: World, agent_id: AgentID) -> Vault:
    vault = world.vaults.get(agent_id)
    if vault is None:
        vault = Vault(agent_id=agent_id)
        world.vaults[agent_id] = vault
    return vault


def shares_for_deposit(vault: Vault, amount: int) -> int:
    """Number of shares minted for depositing ``amount``."""

    if amount <= 0:
        raise PreconditionViolation(f"deposit amount must be positive, got {amount}")
    if vault.total_shares == 0:
        return amount
    if vault.total_staked == 0:
        raise InvariantViolation(
            f"vault {vault.agent_id!r} has {vault.total_shares} shares but no underlying"
        )
    return amount * vault.total_shares // vault.total_staked


def amount_for_shares(vault: Vault, shares: int) -> int:
    """Underlying value redeemed by burning ``shares``."""

    if shares <= 0:
        raise PreconditionViolation(f"share amount must be positive, got {shares}")
    if shares > vault.total_shares:
        raise PreconditionViolation(
            f"cannot redeem {shares} shares from a vault with {vault.total_shares}"
        )
    return shares * vault.total_staked // vault.total_shares


def require_share_balance(vault: Vault, staker: StakerID, shares: int) -> None:
    balance = vault.shares_of(staker)
    if shares <= 0:
        raise PreconditionViolation(f"share amount must be positive, got {shares}")
    if balance < shares:
        raise PreconditionViolation(
            f"staker {staker!r} holds {balance} shares of {vault.agent_id!r}, needs {shares}"
        )


def apply_deposit(vault: Vault, staker: StakerID, amount: int, minted: int) -> None:
    vault.total_staked += amount
    vault.total_shares += minted
    vault.shares[staker] = vault.shares_of(staker) + minted


def apply_withdrawal(vault: Vault, staker: StakerID, shares: int, amount: int) -> None:
    remaining = vault.shares_of(staker) - shares
    if remaining < 0 or amount > vault.total_staked:
        raise InvariantViolation(f"withdrawal overdraws vault {vault.agent_id!r}")
    if remaining:
        vault.shares[staker] = remaining
    else:
        vault.shares.pop(staker, None)
    vault.total_shares -= shares
    vault.total_staked -= amount


def transfer_underlying(source: Vault, target: Vault, amount: int) -> None:
    """Move underlying value between vaults without minting or burning shares."""

    if amount < 0 or amount > source.total_staked:
        raise InvariantViolation(
            f"cannot move {amount} out of vault {source.agent_id!r} "
            f"holding {source.total_staked}"
        )
    source.total_staked -= amount
    target.total_staked += amount


# --- Delayed withdrawals --------------------------------------------------------


def withdrawal_key(agent_id: AgentID, staker: StakerID) -> str:
    return f"{agent_id}/{staker}"


def get_pending_withdrawal(
    world: World, agent_id: AgentID, staker: StakerID
) -> PendingWithdrawal | None:
    return world.pending_withdrawals.get(withdrawal_key(agent_id, staker))


def lock_withdrawal(
    world: World,
    agent_id: AgentID,
    staker: StakerID,
    shares: int,
    *,
    now: int,
    delay_seconds: int,
) -> PendingWithdrawal:
    """Burn shares now and record the redemption for later release.

    A second request while one is outstanding is rejected.
    """

    if get_pending_withdrawal(world, agent_id, staker) is not None:
        raise PreconditionViolation(
            f"staker {staker!r} already has a pending withdrawal from {agent_id!r}"
        )
    vault = get_vault(world, agent_id)
    require_share_balance(vault, staker, shares)
    amount = amount_for_shares(vault, shares)

    apply_withdrawal(ensure_vault(world, agent_id), staker, shares, amount)
    pending = PendingWithdrawal(
        agent_id=agent_id,
        staker=staker,
        shares=shares,
        amount=amount,
        requested_at=now,
        available_at=now + delay_seconds,
    )
    world.pending_withdrawals[withdrawal_key(agent_id, staker)] = pending
    return pending


def require_mature_withdrawal(
    world: World, agent_id: AgentID, staker: StakerID, *, now: int
) -> PendingWithdrawal:
    pending = get_pending_withdrawal(world, agent_id, staker)
    if pending is None:
        raise PreconditionViolation(
            f"staker {staker!r} has no pending withdrawal from {agent_id!r}"
        )
    if now < pending.available_at:
        raise PreconditionViolation(
            f"withdrawal from {agent_id!r} matures at {pending.available_at} (now {now})"
        )
    return pending


def release_withdrawal(world: World, pending: PendingWithdrawal) -> None:
    world.pending_withdrawals.pop(withdrawal_key(pending.agent_id, pending.staker), None)
