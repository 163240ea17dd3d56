"""
test_vault_lifecycle.py - End-to-end scenarios for the share vault

Tests complete vault lifecycles against a real AssetBook:
- Deposit, a year of growth, full redemption
- Trillion-unit deposit and withdrawal
- Backdated growth with a topped-up pool
- Several depositors entering at different rates
- Verbose reporting of applied and rejected operations
"""

import pytest

from vault import (
    Vault, AssetBook, CallerContext, ManualClock, OperationKind,
    InsufficientFunds, TransferError,
    BASE_ASSET, SHARE_ASSET, POOL_WALLET, SECONDS_PER_YEAR, PRICE_SCALE,
)

from tests.conftest import ADMIN, START_TIME


def setup_vault(holdings, pool_reserve=0, verbose=False):
    """Build a vault over a fresh book where each owner in `holdings` has a ledger."""
    book = AssetBook("custody", verbose=False, test_mode=True)
    book.register_asset(BASE_ASSET)
    book.register_asset(SHARE_ASSET)
    book.register_wallet(POOL_WALLET)
    for owner, amount in holdings.items():
        book.register_wallet(owner)
        book.mint(BASE_ASSET, owner, amount)
    if pool_reserve:
        book.mint(BASE_ASSET, POOL_WALLET, pool_reserve)

    identity = CallerContext()
    clock = ManualClock(START_TIME)
    vault = Vault("lifecycle", book, identity, clock, verbose=verbose, test_mode=True)
    with identity.acting_as(ADMIN):
        vault.initialize_oracle()
    for owner in holdings:
        with identity.acting_as(owner):
            vault.initialize_ledger()
    return vault, book, identity, clock


class TestOneYearLifecycle:

    def test_deposit_grow_redeem(self):
        vault, book, identity, clock = setup_vault({"alice": 10_000_000}, pool_reserve=500_000)

        with identity.acting_as("alice"):
            op = vault.deposit(10_000_000)
        assert op.share_amount == 10_000_000
        assert book.get_balance("alice", SHARE_ASSET) == 10_000_000

        clock.advance(SECONDS_PER_YEAR)
        with identity.acting_as(ADMIN):
            update = vault.update_price()
        assert update.rate == 1_050_000
        assert update.details == {'previous_rate': PRICE_SCALE, 'elapsed': SECONDS_PER_YEAR}
        assert vault.preview_withdraw(10_000_000) == 10_500_000

        with identity.acting_as("alice"):
            op = vault.withdraw(10_000_000)
        assert op.base_amount == 10_500_000
        assert book.get_balance("alice", BASE_ASSET) == 10_500_000
        assert book.get_balance(POOL_WALLET, BASE_ASSET) == 0
        assert vault.get_ledger("alice").share_amount == 0
        assert vault.get_ledger("alice").deposited_amount == 10_000_000

        kinds = [op.kind for op in vault.operation_log]
        assert kinds == [
            OperationKind.INITIALIZE_ORACLE,
            OperationKind.INITIALIZE_LEDGER,
            OperationKind.DEPOSIT,
            OperationKind.UPDATE_PRICE,
            OperationKind.WITHDRAW,
        ]

    def test_unfunded_yield_is_rejected_then_paid(self):
        """Without a reserve the pool cannot pay accrued yield until it is topped up."""
        vault, book, identity, clock = setup_vault({"alice": 10_000_000})
        with identity.acting_as("alice"):
            vault.deposit(10_000_000)
        clock.advance(SECONDS_PER_YEAR)
        with identity.acting_as(ADMIN):
            vault.update_price()

        with identity.acting_as("alice"):
            with pytest.raises(TransferError):
                vault.withdraw(10_000_000)
        assert vault.get_ledger("alice").share_amount == 10_000_000
        assert book.get_balance("alice", SHARE_ASSET) == 10_000_000

        book.mint(BASE_ASSET, POOL_WALLET, 500_000)
        with identity.acting_as("alice"):
            vault.withdraw(10_000_000)
        assert book.get_balance("alice", BASE_ASSET) == 10_500_000


class TestLargeValues:

    def test_trillion_round_trip(self):
        amount = 1_000_000_000_000
        vault, book, identity, _ = setup_vault({"whale": amount})
        with identity.acting_as("whale"):
            vault.deposit(amount)
            assert vault.get_ledger("whale").share_amount == amount
            vault.withdraw(amount)
        assert book.get_balance("whale", BASE_ASSET) == amount
        assert book.get_balance(POOL_WALLET, BASE_ASSET) == 0


class TestBackdatedGrowth:

    def test_backdate_then_repeated_updates(self):
        vault, book, identity, clock = setup_vault({"alice": 5_000_000})
        with identity.acting_as("alice"):
            vault.deposit(5_000_000)

        with identity.acting_as(ADMIN):
            vault.set_last_update_time(clock.now() - SECONDS_PER_YEAR)
            for _ in range(10):
                vault.update_price()
        # Only the first update sees elapsed time
        assert vault.get_oracle().rate == 1_050_000

        book.mint(BASE_ASSET, POOL_WALLET, 1_000_000)
        with identity.acting_as("alice"):
            op = vault.withdraw(4_999_000)
        assert op.base_amount == 5_248_950
        assert op.base_amount > 5_000_000
        assert vault.get_ledger("alice").share_amount == 1_000


class TestMultipleDepositors:

    def test_late_entrant_gets_fewer_shares(self):
        vault, book, identity, clock = setup_vault(
            {"alice": 1_000_000, "bob": 1_050_000}, pool_reserve=100_000,
        )
        with identity.acting_as("alice"):
            vault.deposit(1_000_000)

        clock.advance(SECONDS_PER_YEAR)
        with identity.acting_as(ADMIN):
            vault.update_price()

        with identity.acting_as("bob"):
            op = vault.deposit(1_050_000)
        assert op.share_amount == 1_000_000
        assert vault.list_owners() == ["alice", "bob"]

        # Same shares, same value
        assert vault.preview_withdraw(vault.get_ledger("alice").share_amount) == 1_050_000
        assert vault.preview_withdraw(vault.get_ledger("bob").share_amount) == 1_050_000

        with identity.acting_as("bob"):
            with pytest.raises(InsufficientFunds):
                vault.withdraw(1_000_001)
            vault.withdraw(1_000_000)
        assert book.get_balance("bob", BASE_ASSET) == 1_050_000


class TestVerboseReporting:

    def test_applied_and_rejected_lines(self, capsys):
        vault, _, identity, _ = setup_vault({"alice": 1_000}, verbose=True)
        with identity.acting_as("alice"):
            vault.deposit(1_000)
            with pytest.raises(InsufficientFunds):
                vault.withdraw(2_000)
        out = capsys.readouterr().out
        assert "✓ APPLIED [lifecycle]" in out
        assert "✗ REJECTED [lifecycle] withdraw: InsufficientFunds" in out
