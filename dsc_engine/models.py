"""Data models — all frozen (immutable)."""
from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class PriceRound:
    """One price report from a feed: ``price × 10^expo`` USD per unit."""

    price: int
    expo: int
    publish_time: int = 0


@dataclass(frozen=True)
class CollateralDetail:
    """Single collateral asset held by an account, valued in USD."""

    asset: str
    amount: int
    usd_value: int


@dataclass(frozen=True)
class AccountInformation:
    """Derived account view — never stored, recomputed on every read."""

    total_dsc_minted: int
    collateral_value_usd: int
    collateral: tuple[CollateralDetail, ...] = ()


@dataclass(frozen=True)
class LedgerSnapshot:
    """Point-in-time copy of every ledger entry."""

    collateral: dict[tuple[str, str], int] = field(default_factory=dict)
    minted: dict[str, int] = field(default_factory=dict)
