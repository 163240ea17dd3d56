"""
fixed_point.py - Checked unsigned 64-bit arithmetic and share conversions

Python integers never wrap, so every helper here checks its result against
the u64 range explicitly and raises Overflow instead. Division always floors.

Key Formulas:
    shares        = floor(amount * scale / rate)
    base_amount   = floor(shares * rate / scale)
    rate_increase = floor(floor(floor(rate * yearly_bps * elapsed) / seconds_per_year) / bps_scale)

No floating point anywhere: settlement must be reproducible bit for bit.
"""

from __future__ import annotations

from .core import (
    Overflow, InvariantViolation,
    PRICE_SCALE, YEARLY_RATE_BPS, BPS_SCALE, SECONDS_PER_YEAR, U64_MAX,
)


def _require_u64(value: int, name: str) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be int, got {type(value).__name__}")
    if not 0 <= value <= U64_MAX:
        raise Overflow(f"{name} outside u64 range: {value}")


def checked_add(a: int, b: int) -> int:
    """Return a + b, raising Overflow past U64_MAX."""
    _require_u64(a, "a")
    _require_u64(b, "b")
    result = a + b
    if result > U64_MAX:
        raise Overflow()
    return result


def checked_mul(a: int, b: int) -> int:
    """Return a * b, raising Overflow past U64_MAX."""
    _require_u64(a, "a")
    _require_u64(b, "b")
    result = a * b
    if result > U64_MAX:
        raise Overflow()
    return result


def checked_div(a: int, b: int) -> int:
    """Return floor(a / b). Division by zero is reported as Overflow."""
    _require_u64(a, "a")
    _require_u64(b, "b")
    if b == 0:
        raise Overflow("division by zero")
    return a // b


def checked_sub(a: int, b: int) -> int:
    """Return a - b, raising Overflow below zero."""
    _require_u64(a, "a")
    _require_u64(b, "b")
    if b > a:
        raise Overflow()
    return a - b


def trusted_sub(a: int, b: int) -> int:
    """
    Subtract where the caller has already proven b <= a.

    An underflow here is a bug in the caller, not bad input, so it raises
    InvariantViolation rather than a user-facing error.
    """
    if b > a:
        raise InvariantViolation(f"trusted subtraction underflow: {a} - {b}")
    return a - b


# ============================================================================
# CONVERSIONS
# ============================================================================

def to_shares(amount: int, rate: int, scale: int = PRICE_SCALE) -> int:
    """Convert a base-asset amount to shares at `rate`, rounding down."""
    return checked_div(checked_mul(amount, scale), rate)


def to_base_amount(shares: int, rate: int, scale: int = PRICE_SCALE) -> int:
    """Convert shares to a base-asset amount at `rate`, rounding down."""
    return checked_div(checked_mul(shares, rate), scale)


def compute_rate_increase(
    rate: int,
    elapsed: int,
    yearly_rate_bps: int = YEARLY_RATE_BPS,
    seconds_per_year: int = SECONDS_PER_YEAR,
    bps_scale: int = BPS_SCALE,
) -> int:
    """
    Simple-interest rate increase for `elapsed` seconds.

    Both multiplications run before either division. Reordering the steps
    changes the truncation and therefore the settled rate.
    """
    product = checked_mul(checked_mul(rate, yearly_rate_bps), elapsed)
    return checked_div(checked_div(product, seconds_per_year), bps_scale)
