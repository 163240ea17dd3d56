"""
vault - Share Vault Accounting Core

Depositors exchange a base asset for shares of a pool whose exchange rate
grows at a fixed yearly rate, and later redeem shares at the then-current
rate. All amounts are unsigned 64-bit integers; the rate is fixed point with
scale 1_000_000.

Usage:
    from vault import Vault, AssetBook, CallerContext, ManualClock, POOL_WALLET

    book = AssetBook("custody")
    book.register_asset("USDC")
    book.register_asset("vUSDC")
    book.register_wallet(POOL_WALLET)
    book.register_wallet("alice")
    book.mint("USDC", "alice", 10_000_000)
    book.mint("USDC", POOL_WALLET, 500_000)   # reserve that pays the yield

    identity = CallerContext()
    clock = ManualClock()
    vault = Vault("main", transfers=book, identity=identity, clock=clock)

    with identity.acting_as("admin"):
        vault.initialize_oracle()
    with identity.acting_as("alice"):
        vault.initialize_ledger()
        vault.deposit(10_000_000)          # 10_000_000 shares at rate 1.0

    clock.advance(31_536_000)
    with identity.acting_as("admin"):
        vault.update_price()               # rate 1_050_000
    with identity.acting_as("alice"):
        vault.withdraw(10_000_000)         # pays out 10_500_000
"""

# Core types
from .core import (
    PriceOracle,
    DepositLedger,
    VaultConfig,
    VaultOperation,
    OperationKind,
    TransferService,
    IdentityService,
    Clock,
    VaultError,
    Unauthorized,
    InsufficientFunds,
    Overflow,
    ZeroAmount,
    RecordExists,
    RecordNotFound,
    ClockSkew,
    TransferError,
    InvariantViolation,
    PRICE_SCALE,
    YEARLY_RATE_BPS,
    BPS_SCALE,
    SECONDS_PER_YEAR,
    U64_MAX,
    SYSTEM_WALLET,
    POOL_WALLET,
    BASE_ASSET,
    SHARE_ASSET,
)

# Fixed-point arithmetic
from .fixed_point import (
    checked_add,
    checked_sub,
    checked_mul,
    checked_div,
    trusted_sub,
    to_shares,
    to_base_amount,
    compute_rate_increase,
)

# Oracle growth engine
from .oracle import (
    create_oracle,
    require_administrator,
    calculate_elapsed,
    calculate_price_update,
    project_rate,
)

# Deposit ledgers
from .positions import (
    DepositPlan,
    WithdrawPlan,
    create_ledger,
    require_owner,
    calculate_deposit,
    calculate_withdraw,
)

# Storage and collaborators
from .store import RecordStore, RecordTransaction
from .asset_book import AssetBook, Move, AppliedMoves
from .identity import CallerContext, ManualClock, SystemClock

# Vault
from .vault import Vault, ledger_key

__all__ = [
    # Core
    'PriceOracle', 'DepositLedger', 'VaultConfig', 'VaultOperation', 'OperationKind',
    'TransferService', 'IdentityService', 'Clock',
    'VaultError', 'Unauthorized', 'InsufficientFunds', 'Overflow', 'ZeroAmount',
    'RecordExists', 'RecordNotFound', 'ClockSkew', 'TransferError', 'InvariantViolation',
    'PRICE_SCALE', 'YEARLY_RATE_BPS', 'BPS_SCALE', 'SECONDS_PER_YEAR', 'U64_MAX',
    'SYSTEM_WALLET', 'POOL_WALLET', 'BASE_ASSET', 'SHARE_ASSET',
    # Fixed point
    'checked_add', 'checked_sub', 'checked_mul', 'checked_div', 'trusted_sub',
    'to_shares', 'to_base_amount', 'compute_rate_increase',
    # Oracle
    'create_oracle', 'require_administrator', 'calculate_elapsed',
    'calculate_price_update', 'project_rate',
    # Positions
    'DepositPlan', 'WithdrawPlan', 'create_ledger', 'require_owner',
    'calculate_deposit', 'calculate_withdraw',
    # Storage and collaborators
    'RecordStore', 'RecordTransaction', 'AssetBook', 'Move', 'AppliedMoves',
    'CallerContext', 'ManualClock', 'SystemClock',
    # Vault
    'Vault', 'ledger_key',
]

__version__ = '1.0.0'
