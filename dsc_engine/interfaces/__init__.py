"""Protocol interfaces for the engine's external collaborators."""
from .price_feed import PriceFeed
from .token import FungibleToken, MintableToken

__all__ = ["FungibleToken", "MintableToken", "PriceFeed"]
