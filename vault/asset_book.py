"""
asset_book.py - In-memory double-entry book of asset balances

AssetBook is the stand-in transfer service the vault runs against. It holds
integer balances per (wallet, asset), applies moves atomically and keeps an
audit trail of every applied move.

Key responsibilities:
    - Implements the TransferService protocol (transfer, mint, burn)
    - Executes batches of moves atomically (all apply or none do)
    - Rejects unregistered assets and wallets, and overdrafts
    - Verifies conservation: every asset sums to zero across all wallets

Issuance and redemption go through SYSTEM_WALLET, which is exempt from the
balance floor: a mint is a move out of SYSTEM_WALLET, a burn a move into it.
"""

from __future__ import annotations
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, List, Set, Tuple, Any
import threading

from .core import SYSTEM_WALLET, TransferError, VaultError


@dataclass(frozen=True, slots=True)
class Move:
    """
    A single transfer of an asset between two wallets.

    Attributes:
        quantity: Positive integer amount in the asset's base units.
        asset: Symbol of the asset being moved.
        source: Wallet debited.
        dest: Wallet credited.
    """
    quantity: int
    asset: str
    source: str
    dest: str

    def __post_init__(self):
        if not self.source or not self.source.strip():
            raise ValueError("Move source cannot be empty")
        if not self.dest or not self.dest.strip():
            raise ValueError("Move dest cannot be empty")
        if not self.asset or not self.asset.strip():
            raise ValueError("Move asset cannot be empty")
        if not isinstance(self.quantity, int) or isinstance(self.quantity, bool):
            raise ValueError(f"Move quantity must be int, got {type(self.quantity)}")
        if self.quantity < 0:
            raise ValueError(f"Move quantity cannot be negative, got {self.quantity}")
        if self.source == self.dest:
            raise ValueError("Source and dest must be different")

    def __repr__(self) -> str:
        return f"Move({self.quantity} {self.asset}: {self.source}→{self.dest})"


@dataclass(frozen=True, slots=True)
class AppliedMoves:
    """An executed batch of moves in the AssetBook's log."""
    moves: Tuple[Move, ...]
    sequence_number: int
    memo: str = ""


class AssetBook:
    """
    Double-entry asset book implementing the TransferService protocol.

    Thread Safety:
        Thread-safe. A single lock serializes batch execution.

    Example:
        book = AssetBook("custody", verbose=False)
        book.register_asset("USDC")
        book.register_wallet("alice")
        book.mint("USDC", "alice", 1_000_000)
        book.transfer("USDC", "alice", "pool", 250_000)
    """

    def __init__(self, name: str, verbose: bool = True, test_mode: bool = False):
        """
        Create an asset book.

        Args:
            name: Book identifier
            verbose: Print a line for every applied or rejected batch (default: True)
            test_mode: Allow set_balance() calls (default: False)
        """
        self.name = name
        self.verbose = verbose
        self._test_mode = test_mode
        self.assets: Set[str] = set()
        self.registered_wallets: Set[str] = {SYSTEM_WALLET}
        self.balances: Dict[str, Dict[str, int]] = {SYSTEM_WALLET: defaultdict(int)}
        self.transfer_log: List[AppliedMoves] = []
        self._next_sequence = 0
        self._lock = threading.RLock()

    # ========================================================================
    # REGISTRATION
    # ========================================================================

    def register_asset(self, asset: str) -> None:
        """
        Register an asset symbol.

        Raises:
            ValueError: If the asset is already registered
        """
        with self._lock:
            if asset in self.assets:
                raise ValueError(f"Asset {asset} already registered")
            self.assets.add(asset)
            if self.verbose:
                print(f"📝 Registered asset: {asset}")

    def register_wallet(self, wallet_id: str) -> str:
        """
        Register a wallet.

        Raises:
            ValueError: If the wallet is already registered
        """
        with self._lock:
            if wallet_id in self.registered_wallets:
                raise ValueError(f"Wallet {wallet_id} already registered")
            self.registered_wallets.add(wallet_id)
            self.balances[wallet_id] = defaultdict(int)
            return wallet_id

    def is_registered(self, wallet_id: str) -> bool:
        return wallet_id in self.registered_wallets

    def set_balance(self, wallet_id: str, asset: str, quantity: int) -> None:
        """
        Overwrite a balance directly. Bypasses double-entry; test mode only.

        Raises:
            VaultError: If called when test_mode is False
        """
        if not self._test_mode:
            raise VaultError(
                "set_balance() is disabled in production mode. "
                "Use transfer(), mint() or burn() to modify balances."
            )
        with self._lock:
            self._require_known(wallet_id, asset)
            self.balances[wallet_id][asset] = quantity

    # ========================================================================
    # READS
    # ========================================================================

    def get_balance(self, wallet_id: str, asset: str) -> int:
        """
        Return the balance of `asset` held by `wallet_id`.

        Raises:
            TransferError: If the wallet or asset is not registered
        """
        with self._lock:
            self._require_known(wallet_id, asset)
            return self.balances[wallet_id].get(asset, 0)

    def total_supply(self, asset: str) -> int:
        """
        Sum of `asset` across every wallet except SYSTEM_WALLET.

        Equals the negated SYSTEM_WALLET balance whenever conservation holds.
        """
        with self._lock:
            if asset not in self.assets:
                raise TransferError(f"Asset {asset} not registered")
            return sum(
                self.balances[w].get(asset, 0)
                for w in sorted(self.registered_wallets)
                if w != SYSTEM_WALLET
            )

    def verify_double_entry(self) -> Dict[str, Any]:
        """
        Verify that every asset nets to zero across all wallets.

        Returns:
            Dict with keys:
            - 'valid': bool - True if all assets net to zero
            - 'supplies': Dict[str, int] - circulating supply per asset
            - 'discrepancies': List[Dict] - assets whose wallets do not net to zero
        """
        with self._lock:
            supplies = {}
            discrepancies = []
            for asset in sorted(self.assets):
                net = sum(self.balances[w].get(asset, 0) for w in self.registered_wallets)
                supplies[asset] = self.total_supply(asset)
                if net != 0:
                    discrepancies.append({'asset': asset, 'net': net})
            return {
                'valid': not discrepancies,
                'supplies': supplies,
                'discrepancies': discrepancies,
            }

    # ========================================================================
    # TRANSFER SERVICE
    # ========================================================================

    def transfer(self, asset: str, source: str, dest: str, amount: int) -> None:
        """Move `amount` of `asset` from `source` to `dest`."""
        self.execute([self._move(amount, asset, source, dest, "transfer")], memo="transfer")

    def mint(self, asset: str, dest: str, amount: int) -> None:
        """Issue `amount` of `asset` to `dest` out of SYSTEM_WALLET."""
        self.execute([self._move(amount, asset, SYSTEM_WALLET, dest, "mint")], memo="mint")

    def burn(self, asset: str, source: str, amount: int) -> None:
        """Redeem `amount` of `asset` held by `source` into SYSTEM_WALLET."""
        self.execute([self._move(amount, asset, source, SYSTEM_WALLET, "burn")], memo="burn")

    def execute(self, moves: List[Move], memo: str = "") -> AppliedMoves:
        """
        Apply a batch of moves atomically.

        Zero-quantity moves are accepted and change nothing.

        Raises:
            TransferError: If any move references an unknown asset or wallet,
                or would leave a non-system wallet below zero. No move in the
                batch is applied.
        """
        with self._lock:
            try:
                self._validate(moves)
            except TransferError as e:
                if self.verbose:
                    print(f"✗ REJECTED [{self.name}] {memo}: {e}")
                raise

            for move in moves:
                self.balances[move.source][move.asset] -= move.quantity
                self.balances[move.dest][move.asset] += move.quantity

            applied = AppliedMoves(
                moves=tuple(moves),
                sequence_number=self._next_sequence,
                memo=memo,
            )
            self._next_sequence += 1
            self.transfer_log.append(applied)
            if self.verbose:
                print(f"✓ APPLIED [{self.name}] {memo}: {', '.join(repr(m) for m in moves)}")
            return applied

    def _move(self, quantity: int, asset: str, source: str, dest: str, memo: str) -> Move:
        """Build a Move, reporting malformed requests as TransferError."""
        try:
            return Move(quantity, asset, source, dest)
        except ValueError as e:
            if self.verbose:
                print(f"✗ REJECTED [{self.name}] {memo}: {e}")
            raise TransferError(str(e)) from e

    def _require_known(self, wallet_id: str, asset: str) -> None:
        if wallet_id not in self.registered_wallets:
            raise TransferError(f"Wallet {wallet_id} not registered")
        if asset not in self.assets:
            raise TransferError(f"Asset {asset} not registered")

    def _validate(self, moves: List[Move]) -> None:
        for move in moves:
            self._require_known(move.source, move.asset)
            self._require_known(move.dest, move.asset)

        # Net changes so a batch can route through a wallet within itself
        net: Dict[Tuple[str, str], int] = defaultdict(int)
        for move in moves:
            net[(move.source, move.asset)] -= move.quantity
            net[(move.dest, move.asset)] += move.quantity

        for (wallet, asset), delta in net.items():
            if wallet == SYSTEM_WALLET:
                continue
            proposed = self.balances[wallet].get(asset, 0) + delta
            if proposed < 0:
                raise TransferError(
                    f"{wallet} {asset}: balance {proposed} would fall below 0"
                )
