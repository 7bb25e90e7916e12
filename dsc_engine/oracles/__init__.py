"""Price feeds and the oracle adapter the engine reads through."""
from .adapter import PriceOracleAdapter, normalize_price
from .pyth import PythPriceFeed
from .static import StaticPriceFeed

__all__ = ["PriceOracleAdapter", "PythPriceFeed", "StaticPriceFeed", "normalize_price"]
