"""
positions.py - Deposit and withdrawal state transitions

Pure calculation functions for DepositLedger records, in the same shape as
the oracle module: all inputs explicit, output a frozen plan describing the
new ledger and the amounts to move. The Vault applies a plan only after the
external transfers it describes have succeeded.

Validation order for withdrawals is fixed: ownership, zero amount,
sufficiency, then arithmetic. Every check runs before any value is built.
"""

from __future__ import annotations
from dataclasses import dataclass

from .core import (
    DepositLedger,
    Unauthorized, InsufficientFunds, ZeroAmount,
    PRICE_SCALE,
)
from .fixed_point import checked_add, to_shares, to_base_amount, trusted_sub


@dataclass(frozen=True, slots=True)
class DepositPlan:
    """Outcome of a deposit calculation, not yet applied."""
    ledger: DepositLedger   # Ledger after the deposit
    amount: int             # Base asset moved into the pool
    shares: int             # Shares minted to the depositor
    rate: int               # Rate the conversion used


@dataclass(frozen=True, slots=True)
class WithdrawPlan:
    """Outcome of a withdrawal calculation, not yet applied."""
    ledger: DepositLedger
    shares: int             # Shares burned from the owner
    base_amount: int        # Base asset paid out of the pool
    rate: int


def create_ledger(owner: str) -> DepositLedger:
    """Return an empty ledger for `owner`."""
    return DepositLedger(owner=owner, deposited_amount=0, share_amount=0)


def require_owner(ledger: DepositLedger, caller: str) -> None:
    """Raise Unauthorized unless `caller` owns `ledger`."""
    if caller != ledger.owner:
        raise Unauthorized(
            f"Unauthorized withdrawal attempt: {caller} does not own the ledger of {ledger.owner}"
        )


def calculate_deposit(
    ledger: DepositLedger,
    amount: int,
    rate: int,
    scale: int = PRICE_SCALE,
) -> DepositPlan:
    """
    Convert `amount` of base asset into shares and credit the ledger.

    Raises:
        ZeroAmount: If amount is zero.
        Overflow: If the conversion or either ledger total leaves the u64 range.
    """
    if amount == 0:
        raise ZeroAmount()
    shares = to_shares(amount, rate, scale)
    new_ledger = DepositLedger(
        owner=ledger.owner,
        deposited_amount=checked_add(ledger.deposited_amount, amount),
        share_amount=checked_add(ledger.share_amount, shares),
    )
    return DepositPlan(ledger=new_ledger, amount=amount, shares=shares, rate=rate)


def calculate_withdraw(
    ledger: DepositLedger,
    caller: str,
    shares: int,
    rate: int,
    scale: int = PRICE_SCALE,
) -> WithdrawPlan:
    """
    Convert `shares` back into base asset and debit the ledger.

    deposited_amount is a lifetime total and is left untouched.

    Raises:
        Unauthorized: If caller is not the ledger owner.
        ZeroAmount: If shares is zero.
        InsufficientFunds: If the ledger holds fewer than `shares`.
        Overflow: If shares * rate leaves the u64 range.
    """
    require_owner(ledger, caller)
    if shares == 0:
        raise ZeroAmount()
    if ledger.share_amount < shares:
        raise InsufficientFunds(
            f"{ledger.owner} holds {ledger.share_amount} shares, requested {shares}"
        )
    base_amount = to_base_amount(shares, rate, scale)
    new_ledger = DepositLedger(
        owner=ledger.owner,
        deposited_amount=ledger.deposited_amount,
        share_amount=trusted_sub(ledger.share_amount, shares),
    )
    return WithdrawPlan(ledger=new_ledger, shares=shares, base_amount=base_amount, rate=rate)
