"""
Exception hierarchy for the DSC engine.

    EngineError (base)
    ├── AmountMustBePositive
    ├── UnsupportedToken
    ├── LengthMismatch
    ├── TransferFailed
    ├── MintFailed
    ├── HealthFactorBroken      — carries the offending health factor
    ├── HealthFactorOK
    ├── HealthFactorNotImproved
    ├── IllegalState            — a balance would go negative
    ├── ReentrantCall           — engine entered while an operation is in flight
    └── PriceError
        ├── PriceUnavailable
        ├── StalePrice
        └── InvalidPrice

Every engine error aborts the whole operation; the ledger is restored before
the error reaches the caller.
"""
from __future__ import annotations

from .constants import format_fixed


class EngineError(Exception):
    """Base exception for all engine errors."""


class AmountMustBePositive(EngineError):
    def __init__(self, amount: int) -> None:
        super().__init__(f"Amount must be positive, got {amount}")
        self.amount = amount


class UnsupportedToken(EngineError):
    def __init__(self, asset_id: str) -> None:
        super().__init__(f"Asset '{asset_id}' is not an approved collateral")
        self.asset_id = asset_id


class LengthMismatch(EngineError):
    def __init__(self, assets: int, feeds: int) -> None:
        super().__init__(
            f"Collateral assets and price feeds differ in length ({assets} != {feeds})"
        )


class TransferFailed(EngineError):
    """An asset transfer or pull reported failure."""


class MintFailed(EngineError):
    """The DSC token refused to mint."""


class HealthFactorBroken(EngineError):
    def __init__(self, user: str, health_factor: int) -> None:
        super().__init__(
            f"Health factor of '{user}' would be {format_fixed(health_factor)}"
        )
        self.user = user
        self.health_factor = health_factor


class HealthFactorOK(EngineError):
    def __init__(self, user: str, health_factor: int) -> None:
        super().__init__(
            f"Account '{user}' is healthy ({format_fixed(health_factor)}), "
            "nothing to liquidate"
        )
        self.user = user
        self.health_factor = health_factor


class HealthFactorNotImproved(EngineError):
    def __init__(self, user: str, before: int, after: int) -> None:
        super().__init__(
            f"Liquidation of '{user}' moved health factor from "
            f"{format_fixed(before)} to {format_fixed(after)}"
        )
        self.user = user
        self.before = before
        self.after = after


class IllegalState(EngineError):
    """An internal balance would go negative."""


class ReentrantCall(EngineError):
    def __init__(self, operation: str) -> None:
        super().__init__(
            f"'{operation}' called while another engine operation is in flight"
        )
        self.operation = operation


class PriceError(EngineError):
    """Base for problems with price feed data."""


class PriceUnavailable(PriceError):
    def __init__(self, feed_id: str) -> None:
        super().__init__(f"No price available for feed '{feed_id}'")
        self.feed_id = feed_id


class StalePrice(PriceError):
    def __init__(self, feed_id: str, age: float, max_age: int) -> None:
        super().__init__(
            f"Price for feed '{feed_id}' is {age:.0f}s old (max {max_age}s)"
        )
        self.feed_id = feed_id
        self.age = age


class InvalidPrice(PriceError):
    def __init__(self, feed_id: str, price: int) -> None:
        super().__init__(f"Feed '{feed_id}' reported non-positive price {price}")
        self.feed_id = feed_id
        self.price = price
