#!/usr/bin/env python3
"""
demo.py - Interactive Tutorial: Learn the Vault Step by Step

A walkthrough of the share vault. Each step builds on the previous one.
Press Enter to advance.

WHAT YOU'LL LEARN:
  1-3:  Setup       - Custody book, the oracle, deposit ledgers
  4-5:  Deposits    - Buying shares, rejected operations
  6-7:  Growth      - Advancing time, updating the rate
  8:    Redemption  - Withdrawing shares for base asset plus yield
  9:    Audit       - The operation log and the conservation check

Run:
    python demo.py           # Interactive mode (press Enter for each step)
    python demo.py --quick   # Run all steps without pausing
"""

from dataclasses import dataclass
import sys

from vault import (
    Vault, AssetBook, CallerContext, ManualClock,
    VaultError,
    BASE_ASSET, SHARE_ASSET, POOL_WALLET, SECONDS_PER_YEAR, PRICE_SCALE,
)


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass
class DemoConfig:
    """Configuration for the tutorial. Modify these to experiment."""
    start_time: int = 1_735_722_000
    admin: str = "admin"

    # Initial funding, in base-asset units (6 decimals)
    alice_initial: int = 50_000_000
    bob_initial: int = 50_000_000
    pool_reserve: int = 5_000_000

    alice_deposit: int = 10_000_000
    bob_deposit: int = 10_500_000


CONFIG = DemoConfig()

QUICK_MODE = "--quick" in sys.argv


def wait_for_enter():
    """Pause for user input unless in quick mode."""
    if not QUICK_MODE:
        input("\n[Press Enter to continue...]")


def step_header(number: int, title: str, objective: str):
    """Print a step header with learning objective."""
    print(f"\n{'='*70}")
    print(f"STEP {number}: {title}")
    print(f"{'='*70}")
    print(f"\nObjective: {objective}\n")


def section_header(text: str):
    """Print a section header within a step."""
    print(f"\n--- {text} ---\n")


def fmt(amount: int) -> str:
    """Render a 6-decimal fixed-point amount."""
    return f"{amount / PRICE_SCALE:,.6f}"


def show_balances(book: AssetBook, wallets):
    for wallet in wallets:
        print(f"  {wallet:<8} {BASE_ASSET}: {fmt(book.get_balance(wallet, BASE_ASSET)):>16}"
              f"   {SHARE_ASSET}: {fmt(book.get_balance(wallet, SHARE_ASSET)):>16}")


# ============================================================================
# PHASE 1: SETUP (Steps 1-3)
# ============================================================================

def step_01_custody():
    """Create the book that holds base asset and shares."""
    step_header(1, "The Custody Book",
        "See where balances live before the vault touches them.")

    print("""
    The vault never holds balances itself. It asks a transfer service to
    move base asset and to mint or burn shares. Here that service is an
    AssetBook. Issuance comes out of the SYSTEM wallet, so every asset
    always nets to zero across all wallets.
    """)

    book = AssetBook("custody", verbose=False, test_mode=True)
    book.register_asset(BASE_ASSET)
    book.register_asset(SHARE_ASSET)
    for wallet in (POOL_WALLET, "alice", "bob"):
        book.register_wallet(wallet)
    book.mint(BASE_ASSET, "alice", CONFIG.alice_initial)
    book.mint(BASE_ASSET, "bob", CONFIG.bob_initial)
    book.mint(BASE_ASSET, POOL_WALLET, CONFIG.pool_reserve)

    section_header("Balances")
    show_balances(book, (POOL_WALLET, "alice", "bob"))
    return book


def step_02_oracle(book: AssetBook):
    """Initialize the price oracle."""
    step_header(2, "The Price Oracle",
        "The first caller to initialize the oracle becomes its administrator.")

    identity = CallerContext()
    clock = ManualClock(CONFIG.start_time)
    vault = Vault("demo", book, identity, clock, verbose=True, test_mode=True)

    print(">>> with identity.acting_as('admin'): vault.initialize_oracle()")
    with identity.acting_as(CONFIG.admin):
        vault.initialize_oracle()

    oracle = vault.get_oracle()
    section_header("Oracle")
    print(f"Administrator:    {oracle.administrator}")
    print(f"Rate:             {fmt(oracle.rate)} {BASE_ASSET} per share")
    print(f"Last update time: {oracle.last_update_time}")
    return vault, identity, clock


def step_03_ledgers(vault: Vault, identity: CallerContext):
    """Each depositor opens their own ledger."""
    step_header(3, "Deposit Ledgers",
        "A ledger records one owner's shares; only that owner can withdraw.")

    for owner in ("alice", "bob"):
        with identity.acting_as(owner):
            vault.initialize_ledger()
    print(f"\nOwners: {vault.list_owners()}")


# ============================================================================
# PHASE 2: DEPOSITS (Steps 4-5)
# ============================================================================

def step_04_deposit(vault: Vault, identity: CallerContext, book: AssetBook):
    """Alice buys shares at rate 1.0."""
    step_header(4, "First Deposit",
        "Shares bought = floor(amount * 1,000,000 / rate).")

    print(f"Preview: {fmt(CONFIG.alice_deposit)} {BASE_ASSET} buys "
          f"{fmt(vault.preview_deposit(CONFIG.alice_deposit))} shares\n")
    with identity.acting_as("alice"):
        vault.deposit(CONFIG.alice_deposit)

    section_header("Balances")
    show_balances(book, (POOL_WALLET, "alice"))


def step_05_rejections(vault: Vault, identity: CallerContext):
    """Rejected operations change nothing."""
    step_header(5, "Rejected Operations",
        "Every failure raises a typed error and leaves all state untouched.")

    attempts = [
        ("alice deposits 0", "alice", lambda: vault.deposit(0)),
        ("bob withdraws from alice", "bob", lambda: vault.withdraw(1, owner="alice")),
        ("alice withdraws too much", "alice", lambda: vault.withdraw(CONFIG.alice_deposit + 1)),
        ("bob updates the price", "bob", lambda: vault.update_price()),
    ]
    for label, caller, attempt in attempts:
        print(f"\n>>> {label}")
        with identity.acting_as(caller):
            try:
                attempt()
            except VaultError as e:
                print(f"    error code {e.code}")

    print(f"\nAlice still holds {fmt(vault.get_ledger('alice').share_amount)} shares")


# ============================================================================
# PHASE 3: GROWTH (Steps 6-7)
# ============================================================================

def step_06_advance_time(vault: Vault, identity: CallerContext, clock: ManualClock):
    """A year passes; the rate grows 5% when the administrator updates it."""
    step_header(6, "A Year Passes",
        "The rate only moves when the administrator calls update_price().")

    clock.advance(SECONDS_PER_YEAR)
    print(f"Rate before update: {fmt(vault.get_oracle().rate)}")
    with identity.acting_as(CONFIG.admin):
        op = vault.update_price()
    print(f"Rate after update:  {fmt(op.rate)} (elapsed {op.details['elapsed']}s)")

    print("\nA second update at the same instant changes nothing:")
    with identity.acting_as(CONFIG.admin):
        op = vault.update_price()
    print(f"Rate:               {fmt(op.rate)}")


def step_07_late_deposit(vault: Vault, identity: CallerContext):
    """Bob enters at the higher rate and gets fewer shares."""
    step_header(7, "Late Entrant",
        "The same base amount buys fewer shares once the rate has grown.")

    with identity.acting_as("bob"):
        op = vault.deposit(CONFIG.bob_deposit)
    print(f"\nBob paid {fmt(op.base_amount)} for {fmt(op.share_amount)} shares")
    print(f"Alice's {fmt(vault.get_ledger('alice').share_amount)} shares are worth "
          f"{fmt(vault.preview_withdraw(vault.get_ledger('alice').share_amount))}")


# ============================================================================
# PHASE 4: REDEMPTION AND AUDIT (Steps 8-9)
# ============================================================================

def step_08_withdraw(vault: Vault, identity: CallerContext, book: AssetBook):
    """Alice redeems everything."""
    step_header(8, "Redemption",
        "Base paid = floor(shares * rate / 1,000,000). Yield comes out of the pool.")

    with identity.acting_as("alice"):
        op = vault.withdraw(vault.get_ledger("alice").share_amount)
    print(f"\nAlice received {fmt(op.base_amount)} {BASE_ASSET}")
    ledger = vault.get_ledger("alice")
    print(f"Ledger: deposited {fmt(ledger.deposited_amount)}, shares {fmt(ledger.share_amount)}")

    section_header("Balances")
    show_balances(book, (POOL_WALLET, "alice", "bob"))


def step_09_audit(vault: Vault, book: AssetBook):
    """Walk the operation log and prove conservation."""
    step_header(9, "Audit Trail",
        "Every committed operation is logged; every asset nets to zero.")

    for op in vault.operation_log:
        print(f"  #{op.sequence_number:<3} {op.kind.value:<20} {op.actor:<6} "
              f"rate={fmt(op.rate)} base={fmt(op.base_amount)} shares={fmt(op.share_amount)}")

    check = book.verify_double_entry()
    section_header("Conservation")
    print(f"Valid:    {check['valid']}")
    print(f"Supplies: {check['supplies']}")
    outstanding = sum(vault.get_ledger(o).share_amount for o in vault.list_owners())
    print(f"Ledger shares {outstanding} == circulating shares {book.total_supply(SHARE_ASSET)}")


def main():
    """Run the complete tutorial."""
    print("=" * 70)
    print("       SHARE VAULT - INTERACTIVE TUTORIAL")
    print("=" * 70)

    if QUICK_MODE:
        print("Running in QUICK mode (no pauses)")
    else:
        print("Running in INTERACTIVE mode (press Enter to advance)")

    wait_for_enter()

    book = step_01_custody()
    wait_for_enter()

    vault, identity, clock = step_02_oracle(book)
    wait_for_enter()

    step_03_ledgers(vault, identity)
    wait_for_enter()

    step_04_deposit(vault, identity, book)
    wait_for_enter()

    step_05_rejections(vault, identity)
    wait_for_enter()

    step_06_advance_time(vault, identity, clock)
    wait_for_enter()

    step_07_late_deposit(vault, identity)
    wait_for_enter()

    step_08_withdraw(vault, identity, book)
    wait_for_enter()

    step_09_audit(vault, book)

    print(f"\n{'='*70}")
    print("Next steps:")
    print("  - See vault/vault.py for the operation flow")
    print("  - Run tests: pytest tests/")


if __name__ == "__main__":
    main()
