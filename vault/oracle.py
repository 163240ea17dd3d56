"""
oracle.py - Price oracle growth engine

Pure functions over PriceOracle records. Nothing here touches storage; the
Vault reads a snapshot, calls these, and commits the returned record.

Growth model:
    increase = floor(rate * yearly_bps * elapsed / seconds_per_year / bps_scale)
    rate'    = rate + increase

Each update catches up on everything since the last one, so frequent and
infrequent updates reach the same rate up to truncation. Truncation always
rounds down, so the rate never exceeds exact continuous simple accrual.
"""

from __future__ import annotations

from .core import (
    PriceOracle, VaultConfig,
    ClockSkew, Unauthorized,
)
from .fixed_point import checked_add, compute_rate_increase


def create_oracle(administrator: str, now: int, config: VaultConfig = VaultConfig()) -> PriceOracle:
    """Return a fresh oracle at rate 1.0 last updated at `now`."""
    return PriceOracle(
        administrator=administrator,
        rate=config.price_scale,
        last_update_time=now,
    )


def require_administrator(oracle: PriceOracle, caller: str) -> None:
    """Raise Unauthorized unless `caller` is the oracle's administrator."""
    if caller != oracle.administrator:
        raise Unauthorized(f"{caller} is not the oracle administrator")


def calculate_elapsed(oracle: PriceOracle, now: int) -> int:
    """
    Seconds since the last update.

    Raises:
        ClockSkew: If `now` is earlier than the last update.
    """
    elapsed = now - oracle.last_update_time
    if elapsed < 0:
        raise ClockSkew(
            f"now={now} is before last_update_time={oracle.last_update_time}"
        )
    return elapsed


def calculate_price_update(
    oracle: PriceOracle,
    now: int,
    config: VaultConfig = VaultConfig(),
) -> PriceOracle:
    """
    Compute the oracle after catching up to `now`.

    All arithmetic completes before the new record is built, so a failure
    leaves nothing half-applied.

    Raises:
        ClockSkew: If `now` is earlier than the last update.
        Overflow: If any step of the accrual leaves the u64 range.
    """
    elapsed = calculate_elapsed(oracle, now)
    increase = compute_rate_increase(
        oracle.rate,
        elapsed,
        yearly_rate_bps=config.yearly_rate_bps,
        seconds_per_year=config.seconds_per_year,
        bps_scale=config.bps_scale,
    )
    new_rate = checked_add(oracle.rate, increase)
    return PriceOracle(
        administrator=oracle.administrator,
        rate=new_rate,
        last_update_time=now,
    )


def project_rate(
    oracle: PriceOracle,
    now: int,
    config: VaultConfig = VaultConfig(),
) -> int:
    """Rate an update at `now` would commit, without producing a new record."""
    return calculate_price_update(oracle, now, config).rate
