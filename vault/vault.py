"""
vault.py - Stateful share vault

The Vault class is the only module that mutates vault records. It reads the
caller from the identity service, the time from the clock, runs the pure
calculations in oracle.py and positions.py, drives the transfer service, and
commits the resulting records through the RecordStore.

Key responsibilities:
    - Initializes the oracle singleton and per-owner deposit ledgers
    - Executes deposit, withdraw and update_price as atomic units
    - Keeps ledgers and external balances in step: if any transfer fails,
      transfers already made in the call are reversed and no record changes
    - Records every committed operation in an append-only audit trail

Failures are raised as typed VaultError subclasses. Nothing is retried.
"""

from __future__ import annotations
from contextlib import contextmanager
from dataclasses import replace
from typing import Callable, Dict, Iterator, List, Optional, Tuple
import threading

from .core import (
    # Types
    PriceOracle, DepositLedger, VaultConfig, VaultOperation, OperationKind,
    TransferService, IdentityService, Clock,
    # Constants
    ORACLE_KEY, SYSTEM_WALLET,
    # Exceptions
    VaultError, Unauthorized, InvariantViolation,
)
from .fixed_point import to_shares, to_base_amount
from .oracle import create_oracle, require_administrator, calculate_price_update
from .positions import create_ledger, calculate_deposit, calculate_withdraw
from .store import RecordStore


# (apply, undo) pair for one external effect
Effect = Tuple[Callable[[], None], Callable[[], None]]


def ledger_key(owner: str) -> str:
    """Store key of the deposit ledger owned by `owner`."""
    return f"ledger:{owner}"


class Vault:
    """
    Share vault over an external transfer service.

    Thread Safety:
        Thread-safe. Each call locks only the record it mutates: deposits and
        withdrawals lock the caller's ledger, update_price locks the oracle.
        Deposits and withdrawals read the oracle as a committed snapshot.

    Example:
        vault = Vault("main", transfers=book, identity=identity, clock=clock)
        with identity.acting_as("admin"):
            vault.initialize_oracle()
        with identity.acting_as("alice"):
            vault.initialize_ledger()
            vault.deposit(10_000_000)
    """

    def __init__(
        self,
        name: str,
        transfers: TransferService,
        identity: IdentityService,
        clock: Clock,
        config: VaultConfig = VaultConfig(),
        verbose: bool = True,
        test_mode: bool = False,
    ):
        """
        Create a vault.

        Args:
            name: Vault identifier
            transfers: Service moving base-asset and share balances
            identity: Service reporting the current caller
            clock: Source of the current time in Unix seconds
            config: Growth parameters and asset names
            verbose: Print a line for every applied or rejected operation (default: True)
            test_mode: Enable set_last_update_time() (default: False)
        """
        self.name = name
        self.transfers = transfers
        self.identity = identity
        self.clock = clock
        self.config = config
        self.verbose = verbose
        self._test_mode = test_mode
        self.store = RecordStore()
        self.operation_log: List[VaultOperation] = []
        self._next_sequence = 0
        self._log_lock = threading.Lock()

    # ========================================================================
    # READS
    # ========================================================================

    def get_oracle(self) -> PriceOracle:
        """Return the committed oracle. Raises RecordNotFound before initialization."""
        return self.store.get(ORACLE_KEY)

    def get_ledger(self, owner: str) -> DepositLedger:
        """Return the committed ledger of `owner`. Raises RecordNotFound if absent."""
        return self.store.get(ledger_key(owner))

    def has_ledger(self, owner: str) -> bool:
        return self.store.exists(ledger_key(owner))

    def list_owners(self) -> List[str]:
        """Owners of every initialized ledger, sorted."""
        prefix = ledger_key("")
        return [k[len(prefix):] for k in self.store.keys() if k.startswith(prefix)]

    def preview_deposit(self, amount: int) -> int:
        """Shares `amount` of base asset would buy at the current rate."""
        return to_shares(amount, self.get_oracle().rate, self.config.price_scale)

    def preview_withdraw(self, shares: int) -> int:
        """Base asset `shares` would redeem for at the current rate."""
        return to_base_amount(shares, self.get_oracle().rate, self.config.price_scale)

    # ========================================================================
    # INITIALIZATION
    # ========================================================================

    def initialize_oracle(self) -> VaultOperation:
        """
        Create the oracle with the caller as administrator, rate 1.0.

        Raises:
            RecordExists: If the oracle was already initialized
        """
        with self._reporting(OperationKind.INITIALIZE_ORACLE):
            caller = self.identity.current_caller()
            oracle = create_oracle(caller, self.clock.now(), self.config)
            self.store.create(ORACLE_KEY, oracle)
            return self._record(OperationKind.INITIALIZE_ORACLE, caller, oracle.last_update_time, oracle.rate)

    def initialize_ledger(self) -> VaultOperation:
        """
        Create an empty ledger owned by the caller.

        Raises:
            Unauthorized: If the caller is a reserved wallet
            RecordExists: If the caller already has a ledger
        """
        with self._reporting(OperationKind.INITIALIZE_LEDGER):
            caller = self.identity.current_caller()
            self._require_depositor(caller)
            self.store.create(ledger_key(caller), create_ledger(caller))
            return self._record(OperationKind.INITIALIZE_LEDGER, caller, self.clock.now(), 0)

    # ========================================================================
    # OPERATIONS
    # ========================================================================

    def update_price(self) -> VaultOperation:
        """
        Catch the rate up to the current time. Administrator only.

        Raises:
            Unauthorized: If the caller is not the administrator
            ClockSkew: If the clock reads earlier than the last update
            Overflow: If the accrual leaves the u64 range
        """
        with self._reporting(OperationKind.UPDATE_PRICE):
            caller = self.identity.current_caller()
            now = self.clock.now()
            with self.store.locked(ORACLE_KEY) as txn:
                oracle = txn.record
                require_administrator(oracle, caller)
                updated = calculate_price_update(oracle, now, self.config)
                txn.commit(updated)
                return self._record(
                    OperationKind.UPDATE_PRICE, caller, now, updated.rate,
                    details={
                        'previous_rate': oracle.rate,
                        'elapsed': now - oracle.last_update_time,
                    },
                )

    def deposit(self, amount: int) -> VaultOperation:
        """
        Exchange `amount` of base asset for shares at the current rate.

        The caller's base asset moves to the pool and freshly minted shares
        move to the caller. The caller's ledger is committed only after both
        transfers succeed.

        Raises:
            Unauthorized: If the caller is a reserved wallet
            ZeroAmount: If amount is zero
            Overflow: If the conversion or a ledger total leaves the u64 range
            TransferError: If the transfer service rejects either effect
            RecordNotFound: If the caller has no ledger or the oracle is missing
        """
        with self._reporting(OperationKind.DEPOSIT):
            caller = self.identity.current_caller()
            self._require_depositor(caller)
            rate = self.get_oracle().rate
            cfg = self.config
            with self.store.locked(ledger_key(caller)) as txn:
                plan = calculate_deposit(txn.record, amount, rate, cfg.price_scale)
                self._apply_effects([
                    (lambda: self.transfers.transfer(cfg.base_asset, caller, cfg.pool_wallet, plan.amount),
                     lambda: self.transfers.transfer(cfg.base_asset, cfg.pool_wallet, caller, plan.amount)),
                    (lambda: self.transfers.mint(cfg.share_asset, caller, plan.shares),
                     lambda: self.transfers.burn(cfg.share_asset, caller, plan.shares)),
                ])
                txn.commit(plan.ledger)
                return self._record(
                    OperationKind.DEPOSIT, caller, self.clock.now(), rate,
                    base_amount=plan.amount, share_amount=plan.shares,
                )

    def withdraw(self, shares: int, owner: Optional[str] = None) -> VaultOperation:
        """
        Redeem `shares` from `owner`'s ledger for base asset at the current rate.

        Args:
            shares: Number of shares to redeem
            owner: Ledger to redeem from (default: the caller's own)

        Raises:
            Unauthorized: If the caller does not own the ledger or is a reserved wallet
            ZeroAmount: If shares is zero
            InsufficientFunds: If the ledger holds fewer than `shares`
            Overflow: If shares * rate leaves the u64 range
            TransferError: If the transfer service rejects either effect
            RecordNotFound: If the ledger or the oracle is missing
        """
        with self._reporting(OperationKind.WITHDRAW):
            caller = self.identity.current_caller()
            self._require_depositor(caller)
            owner = owner if owner is not None else caller
            rate = self.get_oracle().rate
            cfg = self.config
            with self.store.locked(ledger_key(owner)) as txn:
                plan = calculate_withdraw(txn.record, caller, shares, rate, cfg.price_scale)
                self._apply_effects([
                    (lambda: self.transfers.burn(cfg.share_asset, owner, plan.shares),
                     lambda: self.transfers.mint(cfg.share_asset, owner, plan.shares)),
                    # Out of pool custody: requested as the pool
                    (lambda: self.transfers.transfer(cfg.base_asset, cfg.pool_wallet, owner, plan.base_amount),
                     lambda: self.transfers.transfer(cfg.base_asset, owner, cfg.pool_wallet, plan.base_amount)),
                ])
                txn.commit(plan.ledger)
                return self._record(
                    OperationKind.WITHDRAW, caller, self.clock.now(), rate,
                    base_amount=plan.base_amount, share_amount=plan.shares,
                )

    def set_last_update_time(self, timestamp: int) -> VaultOperation:
        """
        Overwrite the oracle's last update time. Administrator only, test mode only.

        Backdating lets tests simulate a long accrual period without waiting.

        Raises:
            VaultError: If called when test_mode is False
            Unauthorized: If the caller is not the administrator
        """
        if not self._test_mode:
            raise VaultError(
                "set_last_update_time() is disabled in production mode. "
                "Set test_mode=True when creating Vault for testing."
            )
        with self._reporting(OperationKind.SET_LAST_UPDATE_TIME):
            caller = self.identity.current_caller()
            with self.store.locked(ORACLE_KEY) as txn:
                require_administrator(txn.record, caller)
                txn.commit(replace(txn.record, last_update_time=timestamp))
                return self._record(
                    OperationKind.SET_LAST_UPDATE_TIME, caller, self.clock.now(), txn.record.rate,
                    details={'last_update_time': timestamp},
                )

    # ========================================================================
    # INTERNALS
    # ========================================================================

    def _require_depositor(self, caller: str) -> None:
        """Raise Unauthorized if `caller` is the pool or the system wallet."""
        if caller in (self.config.pool_wallet, SYSTEM_WALLET):
            raise Unauthorized(f"{caller} is a reserved wallet and cannot hold a deposit ledger")

    def _apply_effects(self, effects: List[Effect]) -> None:
        """
        Run external effects in order, all or nothing.

        If an effect fails, the effects already applied are undone in reverse
        order and the original error propagates, whatever its type. A failed
        undo means external balances no longer match the ledger and is raised
        as InvariantViolation.
        """
        applied: List[Effect] = []
        for effect in effects:
            apply, _ = effect
            try:
                apply()
            except Exception:
                for _, undo in reversed(applied):
                    try:
                        undo()
                    except Exception as undo_error:
                        raise InvariantViolation(
                            f"could not reverse a partially applied operation: {undo_error}"
                        ) from undo_error
                raise
            applied.append(effect)

    def _record(
        self,
        kind: OperationKind,
        actor: str,
        timestamp: int,
        rate: int,
        base_amount: int = 0,
        share_amount: int = 0,
        details: Optional[Dict[str, int]] = None,
    ) -> VaultOperation:
        with self._log_lock:
            op = VaultOperation(
                kind=kind,
                actor=actor,
                timestamp=timestamp,
                sequence_number=self._next_sequence,
                rate=rate,
                base_amount=base_amount,
                share_amount=share_amount,
                details=details or {},
            )
            self._next_sequence += 1
            self.operation_log.append(op)
        if self.verbose:
            print(f"✓ APPLIED [{self.name}]: {op!r}")
        return op

    @contextmanager
    def _reporting(self, kind: OperationKind) -> Iterator[None]:
        try:
            yield
        except VaultError as e:
            if self.verbose:
                print(f"✗ REJECTED [{self.name}] {kind.value}: {type(e).__name__}: {e}")
            raise
