"""
conftest.py - Shared pytest fixtures for vault tests

Provides common fixtures used across unit, conformance and functional tests:
- Asset books (empty, funded)
- Identity and clock stand-ins
- Vaults (bare, initialized, with a funded depositor)
- Snapshot utilities for no-mutation assertions
"""

import pytest
from typing import Dict, Any

from vault import (
    Vault, AssetBook, CallerContext, ManualClock,
    BASE_ASSET, SHARE_ASSET, POOL_WALLET,
)


START_TIME = 1_700_000_000
ADMIN = "admin"
DEPOSITORS = ("alice", "bob", "charlie")

# Base asset held by every depositor in the funded fixtures
STARTING_BALANCE = 1_000_000_000_000
# Base asset held by the pool to pay out accrued yield
POOL_RESERVE = 1_000_000_000_000


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def make_book(verbose: bool = False) -> AssetBook:
    """Asset book with both vault assets, the pool and every depositor registered."""
    book = AssetBook("custody", verbose=verbose, test_mode=True)
    book.register_asset(BASE_ASSET)
    book.register_asset(SHARE_ASSET)
    book.register_wallet(POOL_WALLET)
    for depositor in DEPOSITORS:
        book.register_wallet(depositor)
    return book


def fund(book: AssetBook, wallet: str, amount: int) -> None:
    """Issue base asset to `wallet` through the system wallet."""
    book.mint(BASE_ASSET, wallet, amount)


def snapshot(vault: Vault, book: AssetBook) -> Dict[str, Any]:
    """Capture every record and balance the vault can touch."""
    records = {key: vault.store.get(key) for key in vault.store.keys()}
    balances = {
        (wallet, asset): book.get_balance(wallet, asset)
        for wallet in sorted(book.registered_wallets)
        for asset in sorted(book.assets)
    }
    return {
        'records': records,
        'balances': balances,
        'operations': len(vault.operation_log),
    }


# =============================================================================
# COLLABORATOR FIXTURES
# =============================================================================

@pytest.fixture
def clock():
    return ManualClock(START_TIME)


@pytest.fixture
def identity():
    return CallerContext()


@pytest.fixture
def book():
    """Asset book with registrations but no balances."""
    return make_book()


@pytest.fixture
def funded_book(book):
    """Every depositor and the pool hold base asset."""
    for depositor in DEPOSITORS:
        fund(book, depositor, STARTING_BALANCE)
    fund(book, POOL_WALLET, POOL_RESERVE)
    return book


# =============================================================================
# VAULT FIXTURES
# =============================================================================

@pytest.fixture
def bare_vault(funded_book, identity, clock):
    """Vault with no oracle and no ledgers."""
    return Vault("test", funded_book, identity, clock, verbose=False, test_mode=True)


@pytest.fixture
def vault(bare_vault, identity):
    """Vault with the oracle initialized by ADMIN and a ledger for every depositor."""
    with identity.acting_as(ADMIN):
        bare_vault.initialize_oracle()
    for depositor in DEPOSITORS:
        with identity.acting_as(depositor):
            bare_vault.initialize_ledger()
    return bare_vault


@pytest.fixture
def alice_deposited(vault, identity):
    """Vault where alice has deposited 10,000,000 at rate 1.0."""
    with identity.acting_as("alice"):
        vault.deposit(10_000_000)
    return vault
