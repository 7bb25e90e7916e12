"""Fixed-point constants and helpers shared across the engine."""
from __future__ import annotations

from decimal import Decimal, InvalidOperation

# 18 fractional digits for USD values, collateral amounts and health factors.
DECIMALS = 18
PRECISION = 10**DECIMALS

# Health factor reported for an account with no debt.
MAX_HEALTH_FACTOR = 2**256 - 1

MIN_HEALTH_FACTOR = PRECISION  # 1.0

LIQUIDATION_THRESHOLD = 50  # 50/100 → 200% collateralization
LIQUIDATION_PRECISION = 100
LIQUIDATION_BONUS = 10  # 10% of seized collateral
BONUS_PRECISION = 100

MAX_COLLATERAL_ASSETS = 16


def to_fixed(value: str | int | float | Decimal) -> int:
    """Convert a human decimal amount to 18-decimal fixed point.

    Examples:
        "1.5" → 1500000000000000000
        2000 → 2000000000000000000000
    """
    try:
        scaled = Decimal(str(value)) * PRECISION
    except InvalidOperation as e:
        raise ValueError(f"Not a decimal amount: {value!r}") from e
    if scaled != scaled.to_integral_value():
        raise ValueError(f"More than {DECIMALS} fractional digits: {value!r}")
    return int(scaled)


def format_fixed(value: int, places: int = 4) -> str:
    """Render an 18-decimal fixed-point integer for display."""
    if value == MAX_HEALTH_FACTOR:
        return "∞"
    return f"{Decimal(value) / PRECISION:,.{places}f}"
