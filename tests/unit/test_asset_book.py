"""
test_asset_book.py - Unit tests for the in-memory transfer service

Tests:
- Registration
- transfer / mint / burn
- Atomic batches
- Unknown asset and wallet rejection
- Conservation checks
- Test-mode balance overrides
"""

import pytest

from vault import (
    AssetBook, Move, TransferService, TransferError, VaultError,
    SYSTEM_WALLET, POOL_WALLET,
)


@pytest.fixture
def book():
    book = AssetBook("test", verbose=False, test_mode=True)
    book.register_asset("USDC")
    book.register_asset("vUSDC")
    book.register_wallet("alice")
    book.register_wallet("bob")
    book.register_wallet(POOL_WALLET)
    return book


class TestRegistration:

    def test_system_wallet_preregistered(self):
        assert AssetBook("x", verbose=False).is_registered(SYSTEM_WALLET)

    def test_duplicate_wallet_raises(self, book):
        with pytest.raises(ValueError, match="already registered"):
            book.register_wallet("alice")

    def test_duplicate_asset_raises(self, book):
        with pytest.raises(ValueError, match="already registered"):
            book.register_asset("USDC")

    def test_implements_transfer_service(self, book):
        assert isinstance(book, TransferService)


class TestMove:

    def test_same_source_and_dest_rejected(self):
        with pytest.raises(ValueError):
            Move(1, "USDC", "alice", "alice")

    def test_negative_quantity_rejected(self):
        with pytest.raises(ValueError):
            Move(-1, "USDC", "alice", "bob")

    def test_float_quantity_rejected(self):
        with pytest.raises(ValueError):
            Move(1.0, "USDC", "alice", "bob")


class TestTransferService:

    def test_mint_issues_from_system(self, book):
        book.mint("USDC", "alice", 1_000)
        assert book.get_balance("alice", "USDC") == 1_000
        assert book.get_balance(SYSTEM_WALLET, "USDC") == -1_000

    def test_transfer(self, book):
        book.mint("USDC", "alice", 1_000)
        book.transfer("USDC", "alice", "bob", 400)
        assert book.get_balance("alice", "USDC") == 600
        assert book.get_balance("bob", "USDC") == 400

    def test_burn_redeems_into_system(self, book):
        book.mint("vUSDC", "alice", 1_000)
        book.burn("vUSDC", "alice", 1_000)
        assert book.get_balance("alice", "vUSDC") == 0
        assert book.get_balance(SYSTEM_WALLET, "vUSDC") == 0

    def test_overdraft_rejected(self, book):
        book.mint("USDC", "alice", 100)
        with pytest.raises(TransferError):
            book.transfer("USDC", "alice", "bob", 101)
        assert book.get_balance("alice", "USDC") == 100

    def test_burn_more_than_held_rejected(self, book):
        book.mint("vUSDC", "alice", 10)
        with pytest.raises(TransferError):
            book.burn("vUSDC", "alice", 11)

    def test_unknown_asset_rejected(self, book):
        with pytest.raises(TransferError, match="not registered"):
            book.mint("FAKE", "alice", 1)

    def test_unknown_wallet_rejected(self, book):
        with pytest.raises(TransferError, match="not registered"):
            book.mint("USDC", "mallory", 1)

    def test_zero_quantity_is_noop(self, book):
        book.mint("vUSDC", "alice", 0)
        assert book.get_balance("alice", "vUSDC") == 0
        assert len(book.transfer_log) == 1

    def test_transfer_error_is_vault_error(self):
        assert issubclass(TransferError, VaultError)

    def test_transfer_to_self_is_transfer_error(self, book):
        book.mint("USDC", POOL_WALLET, 10)
        with pytest.raises(TransferError, match="must be different"):
            book.transfer("USDC", POOL_WALLET, POOL_WALLET, 1)
        assert book.get_balance(POOL_WALLET, "USDC") == 10

    def test_mint_to_system_is_transfer_error(self, book):
        with pytest.raises(TransferError):
            book.mint("vUSDC", SYSTEM_WALLET, 1)
        assert book.transfer_log == []

    def test_negative_amount_is_transfer_error(self, book):
        book.mint("USDC", "alice", 10)
        with pytest.raises(TransferError, match="negative"):
            book.transfer("USDC", "alice", "bob", -1)
        with pytest.raises(TransferError):
            book.burn("USDC", "alice", -1)
        assert book.get_balance("alice", "USDC") == 10


class TestAtomicBatches:

    def test_batch_applies_all(self, book):
        book.mint("USDC", "alice", 100)
        applied = book.execute([
            Move(100, "USDC", "alice", "bob"),
            Move(100, "USDC", "bob", POOL_WALLET),
        ])
        assert book.get_balance(POOL_WALLET, "USDC") == 100
        assert applied.sequence_number == 1

    def test_failing_move_rolls_back_batch(self, book):
        book.mint("USDC", "alice", 100)
        with pytest.raises(TransferError):
            book.execute([
                Move(50, "USDC", "alice", "bob"),
                Move(10, "vUSDC", "alice", "bob"),  # alice holds no shares
            ])
        assert book.get_balance("alice", "USDC") == 100
        assert book.get_balance("bob", "USDC") == 0
        assert len(book.transfer_log) == 1

    def test_rejected_batch_not_logged(self, book):
        with pytest.raises(TransferError):
            book.transfer("USDC", "alice", "bob", 1)
        assert book.transfer_log == []


class TestConservation:

    def test_supply_tracks_issuance(self, book):
        book.mint("USDC", "alice", 700)
        book.mint("USDC", "bob", 300)
        book.transfer("USDC", "alice", POOL_WALLET, 200)
        assert book.total_supply("USDC") == 1_000

    def test_double_entry_holds(self, book):
        book.mint("USDC", "alice", 700)
        book.burn("USDC", "alice", 100)
        result = book.verify_double_entry()
        assert result['valid']
        assert result['supplies']['USDC'] == 600

    def test_set_balance_breaks_double_entry(self, book):
        book.set_balance("alice", "USDC", 5)
        result = book.verify_double_entry()
        assert not result['valid']
        assert result['discrepancies'] == [{'asset': 'USDC', 'net': 5}]

    def test_set_balance_disabled_outside_test_mode(self):
        book = AssetBook("prod", verbose=False)
        book.register_asset("USDC")
        book.register_wallet("alice")
        with pytest.raises(VaultError, match="production mode"):
            book.set_balance("alice", "USDC", 5)
