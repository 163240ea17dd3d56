"""
Core types for the share vault accounting system.

This module provides the foundational data structures and protocols:
1. Constants: fixed-point scale, growth parameters, reserved wallets
2. Exceptions: VaultError and the typed error kinds surfaced to callers
3. Immutable records: PriceOracle, DepositLedger, VaultConfig, VaultOperation
4. Protocols: TransferService, IdentityService, Clock

Records are frozen. A state change always produces a new record, which the
RecordStore commits atomically in place of the old one.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Protocol, runtime_checkable


# ============================================================================
# CONSTANTS
# ============================================================================

# Fixed-point scale for the exchange rate: 1_000_000 represents a rate of 1.0.
PRICE_SCALE = 1_000_000

# Yearly growth expressed against BPS_SCALE: 5_000 / 100_000 = 5% APR.
YEARLY_RATE_BPS = 5_000
BPS_SCALE = 100_000

# 365 days.
SECONDS_PER_YEAR = 31_536_000

# Every stored amount and every intermediate product must fit in a u64.
U64_MAX = 2**64 - 1

# Reserved wallet for share issuance and redemption. Exempt from balance checks.
SYSTEM_WALLET = "system"

# The pool's own custody wallet. Only the vault moves assets out of it.
POOL_WALLET = "pool"

BASE_ASSET = "USDC"
SHARE_ASSET = "vUSDC"

# Singleton key for the oracle record in the RecordStore.
ORACLE_KEY = "oracle"


# ============================================================================
# EXCEPTIONS
# ============================================================================

class VaultError(Exception):
    """Base exception for all vault-related errors."""
    code: Optional[int] = None
    default_message = "vault error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.default_message)


class Unauthorized(VaultError):
    """Raised when the caller is not the identity the operation requires."""
    code = 6000
    default_message = "Unauthorized caller."


class InsufficientFunds(VaultError):
    """Raised when a withdrawal exceeds the ledger's share balance."""
    code = 6001
    default_message = "Insufficient funds for withdrawal."


class Overflow(VaultError):
    """Raised when a checked arithmetic step leaves the u64 range."""
    code = 6002
    default_message = "Arithmetic overflow error"


class ZeroAmount(VaultError):
    """Raised when a deposit or withdrawal amount is zero."""
    code = 6003
    default_message = "Zero transaction error"


class RecordExists(VaultError):
    """Raised when creating a record under a key that is already taken."""
    default_message = "record already exists"


class RecordNotFound(VaultError):
    """Raised when reading a record that was never created."""
    default_message = "record not found"


class ClockSkew(VaultError):
    """Raised when the clock reads earlier than the oracle's last update."""
    default_message = "current time is before the last price update"


class TransferError(VaultError):
    """Raised by a transfer service when it cannot apply a transfer, mint or burn."""
    default_message = "asset transfer failed"


class InvariantViolation(VaultError):
    """Internal consistency failure. Indicates a bug, never a caller error."""
    default_message = "internal invariant violated"


# ============================================================================
# RECORDS
# ============================================================================

@dataclass(frozen=True, slots=True)
class PriceOracle:
    """
    Global exchange-rate record.

    Attributes:
        administrator: Identity allowed to update the rate. Fixed at creation.
        rate: Fixed-point rate scaled by PRICE_SCALE. Never below PRICE_SCALE.
        last_update_time: Unix seconds of the last rate recomputation.
    """
    administrator: str
    rate: int
    last_update_time: int

    def __post_init__(self):
        if not self.administrator or not self.administrator.strip():
            raise ValueError("PriceOracle administrator cannot be empty")
        if not isinstance(self.rate, int) or isinstance(self.rate, bool):
            raise ValueError(f"PriceOracle rate must be int, got {type(self.rate)}")
        if not 0 < self.rate <= U64_MAX:
            raise ValueError(f"PriceOracle rate out of range: {self.rate}")

    def __repr__(self) -> str:
        return (f"PriceOracle(rate={self.rate}, last_update_time={self.last_update_time}, "
                f"admin={self.administrator})")


@dataclass(frozen=True, slots=True)
class DepositLedger:
    """
    Per-depositor record.

    Attributes:
        owner: Identity that exclusively controls this record.
        deposited_amount: Lifetime total of base asset deposited. Never decremented.
        share_amount: Current share balance.
    """
    owner: str
    deposited_amount: int = 0
    share_amount: int = 0

    def __post_init__(self):
        if not self.owner or not self.owner.strip():
            raise ValueError("DepositLedger owner cannot be empty")
        for name in ("deposited_amount", "share_amount"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool):
                raise ValueError(f"DepositLedger {name} must be int, got {type(value)}")
            if not 0 <= value <= U64_MAX:
                raise ValueError(f"DepositLedger {name} out of range: {value}")


@dataclass(frozen=True, slots=True)
class VaultConfig:
    """
    Growth parameters and asset names for a vault instance.

    Defaults reproduce a 5% APR simple-interest share price with a
    1_000_000 fixed-point scale.
    """
    price_scale: int = PRICE_SCALE
    yearly_rate_bps: int = YEARLY_RATE_BPS
    bps_scale: int = BPS_SCALE
    seconds_per_year: int = SECONDS_PER_YEAR
    base_asset: str = BASE_ASSET
    share_asset: str = SHARE_ASSET
    pool_wallet: str = POOL_WALLET

    def __post_init__(self):
        for name in ("price_scale", "bps_scale", "seconds_per_year"):
            if getattr(self, name) <= 0:
                raise ValueError(f"VaultConfig {name} must be positive")
        if self.yearly_rate_bps < 0:
            raise ValueError("VaultConfig yearly_rate_bps cannot be negative")
        if self.base_asset == self.share_asset:
            raise ValueError("Base asset and share asset must be different")
        if self.pool_wallet == SYSTEM_WALLET:
            raise ValueError(f"Pool wallet cannot be the reserved {SYSTEM_WALLET!r} wallet")


class OperationKind(Enum):
    """Kinds of vault operations recorded in the audit trail."""
    INITIALIZE_ORACLE = "initialize_oracle"
    INITIALIZE_LEDGER = "initialize_ledger"
    DEPOSIT = "deposit"
    WITHDRAW = "withdraw"
    UPDATE_PRICE = "update_price"
    SET_LAST_UPDATE_TIME = "set_last_update_time"


@dataclass(frozen=True, slots=True)
class VaultOperation:
    """
    Immutable record of a committed vault operation.

    `base_amount` and `share_amount` are the amounts actually moved by the
    operation (zero for operations that move nothing). `rate` is the rate the
    operation used, or for UPDATE_PRICE the rate it committed.
    """
    kind: OperationKind
    actor: str
    timestamp: int
    sequence_number: int
    rate: int
    base_amount: int = 0
    share_amount: int = 0
    details: Dict[str, int] = field(default_factory=dict)

    def __repr__(self) -> str:
        return (f"VaultOperation(#{self.sequence_number} {self.kind.value} by {self.actor}: "
                f"base={self.base_amount}, shares={self.share_amount}, rate={self.rate})")


# ============================================================================
# PROTOCOLS
# ============================================================================

@runtime_checkable
class TransferService(Protocol):
    """
    Moves base-asset and share-asset balances between identities.

    Each call either applies fully or raises TransferError with no effect.
    """

    def transfer(self, asset: str, source: str, dest: str, amount: int) -> None:
        ...

    def mint(self, asset: str, dest: str, amount: int) -> None:
        ...

    def burn(self, asset: str, source: str, amount: int) -> None:
        ...


@runtime_checkable
class IdentityService(Protocol):
    """Authenticates the caller of the current operation."""

    def current_caller(self) -> str:
        ...


@runtime_checkable
class Clock(Protocol):
    """Source of the current time in whole Unix seconds."""

    def now(self) -> int:
        ...
